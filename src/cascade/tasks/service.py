"""
Task Service Layer

High-level operations behind the ``cascade`` command line. Every graph or
queue question is answered from a fresh snapshot of the store: the service
loads tasks and edges, builds a TaskDependencyGraph or TaskQueue, queries it
and discards it. Only accepted dependency edges are ever written back.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

import pydantic
import structlog
from pydantic import BaseModel, ConfigDict, Field

from cascade.core.exceptions import ValidationError
from cascade.tasks.comparators import SORT_KEYS, by_id
from cascade.tasks.graph import (
    CriticalPathResult,
    CycleResult,
    TaskDependencyGraph,
    TopologicalOrder,
)
from cascade.tasks.models import (
    DEFAULT_PRIORITY,
    UNSET_DUE_DATE,
    Task,
    TaskStatus,
)
from cascade.tasks.protocols import TaskComparator, TaskStore
from cascade.tasks.queue import TaskQueue
from cascade.tasks.repository import TaskNotFoundError
from cascade.tasks.sorting import merge_sort

logger = structlog.get_logger(__name__)


class DependencyReason(str, Enum):
    """Why a dependency request was or was not applied"""
    APPLIED = "applied"
    SELF_LOOP = "self_loop"
    CYCLE = "cycle"
    ALREADY_EXISTS = "already_exists"
    TASK_NOT_FOUND = "task_not_found"


class DependencyOutcome(BaseModel):
    """Result of an add-dependency request"""

    model_config = ConfigDict(frozen=True)

    task_id: int
    depends_on_id: int
    reason: DependencyReason
    message: str = ""

    @property
    def applied(self) -> bool:
        return self.reason == DependencyReason.APPLIED


class DependencyView(BaseModel):
    """A task with its direct dependencies and dependents"""

    task: Task
    dependencies: List[Task] = Field(default_factory=list)
    dependents: List[Task] = Field(default_factory=list)


class ExecutionPlan(BaseModel):
    """Topological order resolved to task records"""

    result: TopologicalOrder
    tasks: List[Task] = Field(default_factory=list)
    cycle: Optional[CycleResult] = None


class CriticalPathReport(BaseModel):
    """Critical path resolved to task records"""

    result: CriticalPathResult
    tasks: List[Task] = Field(default_factory=list)


class TaskService:
    """
    Orchestrates the task store and the scheduling core.

    The store is injected; the service never opens connections itself.
    """

    def __init__(self, store: TaskStore):
        self.store = store

    # ============================================================================
    # TASK OPERATIONS
    # ============================================================================

    async def create_task(
        self,
        title: str,
        priority: int = DEFAULT_PRIORITY,
        status: TaskStatus = TaskStatus.TODO,
        due_date: int = UNSET_DUE_DATE,
        owner_id: Optional[int] = None,
    ) -> Task:
        try:
            return await self.store.create_task(
                title=title,
                priority=priority,
                status=status,
                due_date=due_date,
                owner_id=owner_id,
            )
        except pydantic.ValidationError as e:
            raise self._invalid(e) from e

    async def get_task(self, task_id: int) -> Task:
        """Return the task or raise TaskNotFoundError"""
        task = await self.store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def update_task(self, task_id: int, **fields: Any) -> Task:
        """Apply the given field updates; raises TaskNotFoundError"""
        try:
            task = await self.store.update_task(task_id, **fields)
        except pydantic.ValidationError as e:
            raise self._invalid(e) from e
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def start_task(self, task_id: int) -> Task:
        return await self.update_task(task_id, status=TaskStatus.IN_PROGRESS)

    async def complete_task(self, task_id: int) -> Task:
        return await self.update_task(task_id, status=TaskStatus.DONE)

    async def delete_task(self, task_id: int) -> None:
        """Delete a task together with all dependencies involving it"""
        if not await self.store.delete_task(task_id):
            raise TaskNotFoundError(task_id)

    async def list_tasks(
        self,
        show_all: bool = False,
        status: Optional[TaskStatus] = None,
        priority: Optional[int] = None,
        sort_by: Optional[str] = None,
    ) -> List[Task]:
        """List tasks, open ones only unless show_all or a status filter is given"""
        comparator = self.resolve_sort_key(sort_by) if sort_by else by_id
        tasks = await self.store.list_tasks(
            include_closed=show_all, status=status, priority=priority
        )
        return merge_sort(tasks, comparator)

    async def get_sorted_tasks(self, comparator: TaskComparator, show_all: bool = True) -> List[Task]:
        tasks = await self.store.list_tasks(include_closed=show_all)
        return merge_sort(tasks, comparator)

    @staticmethod
    def resolve_sort_key(sort_by: str) -> TaskComparator:
        try:
            return SORT_KEYS[sort_by.lower()]
        except KeyError:
            raise ValidationError(
                f"Unknown sort key '{sort_by}'. Use: {', '.join(SORT_KEYS)}",
                field="sort_by",
                value=sort_by,
            ) from None

    # ============================================================================
    # PRIORITY QUEUE OPERATIONS
    # ============================================================================

    async def load_task_queue(self) -> TaskQueue:
        """Heap snapshot of every open task"""
        return TaskQueue.from_tasks(await self.store.list_tasks(include_closed=False))

    async def get_next_task(self) -> Optional[Task]:
        """The open task with the lowest priority number, earliest due date first"""
        queue = await self.load_task_queue()
        return queue.extract_min()

    # ============================================================================
    # DEPENDENCY GRAPH OPERATIONS
    # ============================================================================

    async def build_task_graph(self) -> TaskDependencyGraph:
        """Snapshot of every task and stored dependency edge"""
        tasks = await self.store.list_tasks(include_closed=True)
        dependencies = await self.store.list_dependencies()
        return TaskDependencyGraph.build(tasks, dependencies)

    async def add_dependency(self, task_id: int, depends_on_id: int) -> DependencyOutcome:
        """Validate and persist ``task_id`` depends on ``depends_on_id``"""
        for missing in (task_id, depends_on_id):
            if await self.store.get_task(missing) is None:
                return self._outcome(
                    task_id, depends_on_id, DependencyReason.TASK_NOT_FOUND,
                    f"Task {missing} not found",
                )

        if task_id == depends_on_id:
            return self._outcome(
                task_id, depends_on_id, DependencyReason.SELF_LOOP,
                "A task cannot depend on itself",
            )

        if await self.store.has_dependency(task_id, depends_on_id):
            return self._outcome(
                task_id, depends_on_id, DependencyReason.ALREADY_EXISTS,
                f"Task {task_id} already depends on task {depends_on_id}",
            )

        graph = await self.build_task_graph()
        if not graph.add_dependency(task_id, depends_on_id):
            return self._outcome(
                task_id, depends_on_id, DependencyReason.CYCLE,
                f"Task {depends_on_id} already depends on task {task_id}; "
                "adding this dependency would create a cycle",
            )

        await self.store.add_dependency(task_id, depends_on_id)
        return self._outcome(
            task_id, depends_on_id, DependencyReason.APPLIED,
            f"Task {task_id} now depends on task {depends_on_id}",
        )

    async def remove_dependency(self, task_id: int, depends_on_id: int) -> bool:
        return await self.store.remove_dependency(task_id, depends_on_id)

    async def get_dependency_view(self, task_id: int) -> DependencyView:
        graph = await self.build_task_graph()
        task = graph.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        return DependencyView(
            task=task,
            dependencies=self._resolve(graph, graph.get_dependencies(task_id)),
            dependents=self._resolve(graph, graph.get_dependents(task_id)),
        )

    async def get_execution_order(self) -> ExecutionPlan:
        graph = await self.build_task_graph()
        result = graph.topological_sort()
        if not result.is_valid:
            cycle = graph.detect_cycle()
            logger.warning("execution_order_cycle", tasks=graph.task_count, cycle=cycle.cycle_path)
            return ExecutionPlan(result=result, cycle=cycle)
        return ExecutionPlan(result=result, tasks=self._resolve(graph, result.order))

    async def get_critical_path(self) -> CriticalPathReport:
        graph = await self.build_task_graph()
        result = graph.critical_path()
        if result.has_cycle:
            logger.warning("critical_path_cycle", tasks=graph.task_count)
        return CriticalPathReport(result=result, tasks=self._resolve(graph, result.path))

    async def get_ready_tasks(self) -> List[Task]:
        """Open tasks whose dependencies are all DONE or WONT_DO"""
        graph = await self.build_task_graph()
        closed = [t.id for t in graph.tasks.values() if not t.is_open]
        return self._resolve(graph, graph.get_ready_tasks(closed))

    # ============================================================================
    # HELPER METHODS
    # ============================================================================

    @staticmethod
    def _resolve(graph: TaskDependencyGraph, task_ids: List[int]) -> List[Task]:
        resolved = []
        for task_id in task_ids:
            task = graph.get_task(task_id)
            if task is not None:
                resolved.append(task)
        return resolved

    @staticmethod
    def _outcome(
        task_id: int, depends_on_id: int, reason: DependencyReason, message: str
    ) -> DependencyOutcome:
        outcome = DependencyOutcome(
            task_id=task_id, depends_on_id=depends_on_id, reason=reason, message=message
        )
        log = logger.info if outcome.applied else logger.warning
        log("dependency_" + ("accepted" if outcome.applied else "rejected"),
            task_id=task_id, depends_on=depends_on_id, reason=reason.value)
        return outcome

    @staticmethod
    def _invalid(error: pydantic.ValidationError) -> ValidationError:
        first: Dict[str, Any] = error.errors()[0] if error.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()))
        return ValidationError(first.get("msg", str(error)), field=field or None)
