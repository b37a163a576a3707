"""
Cascade Task Management System

Task scheduling core plus the persistence and service layers around it.

Key Components:
- Task / TaskStatus / TaskDependency: value models
- TaskDependencyGraph: cycle prevention, execution order, critical path
- TaskQueue: binary min-heap for "what next"
- merge_sort + comparators: stable listings
- TaskRepository: async SQLAlchemy store
- TaskService: per-query snapshots over the store
"""

from .comparators import (
    SORT_KEYS,
    by_creation_time,
    by_due_date,
    by_due_date_then_priority,
    by_id,
    by_priority,
    by_priority_then_due_date,
    by_status,
)
from .graph import (
    CriticalPathResult,
    CycleResult,
    ResultStatus,
    TaskDependencyGraph,
    TopologicalOrder,
)
from .models import Task, TaskDependency, TaskStatus
from .protocols import TaskComparator, TaskStore
from .queue import TaskQueue
from .repository import TaskNotFoundError, TaskRepository, TaskRepositoryError
from .service import (
    CriticalPathReport,
    DependencyOutcome,
    DependencyReason,
    DependencyView,
    ExecutionPlan,
    TaskService,
)
from .sorting import merge_sort

__all__ = [
    # Models
    "Task",
    "TaskStatus",
    "TaskDependency",

    # Core
    "TaskDependencyGraph",
    "CycleResult",
    "TopologicalOrder",
    "CriticalPathResult",
    "ResultStatus",
    "TaskQueue",
    "merge_sort",
    "SORT_KEYS",
    "by_priority",
    "by_due_date",
    "by_priority_then_due_date",
    "by_due_date_then_priority",
    "by_id",
    "by_status",
    "by_creation_time",

    # Protocols
    "TaskComparator",
    "TaskStore",

    # Repository
    "TaskRepository",
    "TaskRepositoryError",
    "TaskNotFoundError",

    # Service
    "TaskService",
    "DependencyOutcome",
    "DependencyReason",
    "DependencyView",
    "ExecutionPlan",
    "CriticalPathReport",
]
