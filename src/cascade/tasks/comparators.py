"""
Task comparators.

Each comparator answers "must ``a`` be placed strictly before ``b``?" and is
a strict weak ordering over tasks, suitable for the merge sort in
:mod:`cascade.tasks.sorting`.
"""

from typing import Dict

from .models import Task
from .protocols import TaskComparator


def by_priority(a: Task, b: Task) -> bool:
    return a.priority < b.priority


def by_due_date(a: Task, b: Task) -> bool:
    return a.due_date < b.due_date


def by_priority_then_due_date(a: Task, b: Task) -> bool:
    if a.priority != b.priority:
        return a.priority < b.priority
    return a.due_date < b.due_date


def by_due_date_then_priority(a: Task, b: Task) -> bool:
    if a.due_date != b.due_date:
        return a.due_date < b.due_date
    return a.priority < b.priority


def by_id(a: Task, b: Task) -> bool:
    return a.id < b.id


def by_status(a: Task, b: Task) -> bool:
    return a.status < b.status


def by_creation_time(a: Task, b: Task) -> bool:
    return a.creation_time < b.creation_time


# Names accepted by ``task list --sort``
SORT_KEYS: Dict[str, TaskComparator] = {
    "priority": by_priority_then_due_date,
    "date": by_due_date_then_priority,
    "created": by_creation_time,
    "id": by_id,
    "status": by_status,
}
