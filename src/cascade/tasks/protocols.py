"""
Task Protocols

Interfaces at the seams of the task subsystem:
- TaskComparator: "strictly before" ordering injected into the sort engine
- TaskStore: persistence operations the service layer depends on
"""

from typing import Any, List, Optional, Protocol, runtime_checkable

from .models import Task, TaskDependency, TaskStatus


class TaskComparator(Protocol):
    """Return True when ``a`` must be placed strictly before ``b``."""

    def __call__(self, a: Task, b: Task) -> bool:
        ...


@runtime_checkable
class TaskStore(Protocol):
    """Protocol for the task store backing the service layer."""

    async def create_task(
        self,
        title: str,
        priority: int = ...,
        status: TaskStatus = ...,
        due_date: int = ...,
        owner_id: Optional[int] = ...,
    ) -> Task:
        """Insert a task and return it with its assigned id."""
        ...

    async def get_task(self, task_id: int) -> Optional[Task]:
        """Return the task or None when it does not exist."""
        ...

    async def list_tasks(
        self,
        include_closed: bool = ...,
        status: Optional[TaskStatus] = ...,
        priority: Optional[int] = ...,
    ) -> List[Task]:
        """Return tasks in id order, open tasks only unless include_closed."""
        ...

    async def update_task(self, task_id: int, **fields: Any) -> Optional[Task]:
        """Apply field updates and return the new task, or None if missing."""
        ...

    async def delete_task(self, task_id: int) -> bool:
        """Delete a task and every dependency row that mentions it."""
        ...

    async def add_dependency(self, task_id: int, depends_on_id: int) -> None:
        """Persist an already validated dependency edge."""
        ...

    async def remove_dependency(self, task_id: int, depends_on_id: int) -> bool:
        """Delete a dependency row; False if it did not exist."""
        ...

    async def has_dependency(self, task_id: int, depends_on_id: int) -> bool:
        """Check whether the edge is stored."""
        ...

    async def list_dependencies(self) -> List[TaskDependency]:
        """Return every stored dependency edge."""
        ...
