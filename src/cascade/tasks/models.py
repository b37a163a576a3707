"""
Task Management Models for Cascade

Value records handed to the scheduling core by the task store:
- Task: a single unit of work with priority, status and due date
- TaskStatus: lifecycle status stored as an integer
- TaskDependency: "task_id depends on depends_on_task_id" edge
"""

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_PRIORITY = 1
MAX_PRIORITY = 4
DEFAULT_PRIORITY = 2
UNSET_DUE_DATE = 0


class TaskStatus(int, Enum):
    """Task lifecycle status, persisted as its integer value"""
    TODO = 0
    IN_PROGRESS = 1
    DONE = 2
    WONT_DO = 3

    @classmethod
    def parse(cls, raw: str) -> "TaskStatus":
        """Parse a status name (todo, in_progress, done, wont_do) or its number."""
        text = raw.strip().lower().replace("-", "_")
        if text.isdigit():
            return cls(int(text))
        if text == "complete":
            return cls.DONE
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(
                f"Unknown status '{raw}'. Use: todo, in_progress, done, wont_do"
            ) from None

    @property
    def label(self) -> str:
        return self.name

    @property
    def is_open(self) -> bool:
        """Open tasks still need work and take part in 'next task' selection."""
        return self in (TaskStatus.TODO, TaskStatus.IN_PROGRESS)


class Task(BaseModel):
    """
    A task as seen by the scheduling core.

    The core treats a task as an immutable value for the duration of a query.
    Only id, priority, status and due_date are inspected by the graph,
    heap and sort algorithms; the remaining fields are carried along.
    """

    model_config = ConfigDict(frozen=True)

    # Core Identity
    id: int = Field(..., description="Unique task identifier")
    title: str = Field(..., min_length=1, max_length=200, description="Task title")

    # Scheduling
    priority: int = Field(
        default=DEFAULT_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY,
        description="1 (most urgent) to 4 (least urgent)",
    )
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current task status")
    due_date: int = Field(default=UNSET_DUE_DATE, ge=0, description="Epoch seconds, 0 when unset")

    # Opaque metadata
    creation_time: int = Field(default_factory=lambda: int(time.time()), description="Epoch seconds")
    owner_id: Optional[int] = Field(None, description="Owning user, opaque to the core")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title must not be blank")
        return v

    @property
    def has_due_date(self) -> bool:
        return self.due_date != UNSET_DUE_DATE

    @property
    def is_open(self) -> bool:
        return self.status.is_open


class TaskDependency(BaseModel):
    """Edge meaning task_id cannot be ready until depends_on_task_id is complete"""

    model_config = ConfigDict(frozen=True)

    task_id: int = Field(..., description="Dependent task")
    depends_on_task_id: int = Field(..., description="Task that must complete first")

    @model_validator(mode="after")
    def reject_self_dependency(self):
        if self.task_id == self.depends_on_task_id:
            raise ValueError("A task cannot depend on itself")
        return self
