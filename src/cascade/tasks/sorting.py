"""
Stable merge sort over tasks.

Listings depend on stability: tasks that compare equal (same priority,
same due date) keep their incoming order, which is id order when they come
from the store.
"""

from typing import List, Sequence

from .models import Task
from .protocols import TaskComparator


def merge_sort(tasks: Sequence[Task], comparator: TaskComparator) -> List[Task]:
    """Return a new list with ``tasks`` sorted by ``comparator``.

    Top-down merge sort. A single scratch buffer the size of the input is
    shared by every merge step. On ties the element from the left half is
    taken first, so the sort is stable.
    """
    items = list(tasks)
    if len(items) <= 1:
        return items

    scratch: List[Task] = list(items)
    _sort_range(items, 0, len(items) - 1, comparator, scratch)
    return items


def _sort_range(
    items: List[Task],
    left: int,
    right: int,
    comparator: TaskComparator,
    scratch: List[Task],
) -> None:
    if left >= right:
        return

    mid = left + (right - left) // 2
    _sort_range(items, left, mid, comparator, scratch)
    _sort_range(items, mid + 1, right, comparator, scratch)
    _merge(items, left, mid, right, comparator, scratch)


def _merge(
    items: List[Task],
    left: int,
    mid: int,
    right: int,
    comparator: TaskComparator,
    scratch: List[Task],
) -> None:
    i, j, k = left, mid + 1, left

    while i <= mid and j <= right:
        # right wins only when strictly before left
        if not comparator(items[j], items[i]):
            scratch[k] = items[i]
            i += 1
        else:
            scratch[k] = items[j]
            j += 1
        k += 1

    while i <= mid:
        scratch[k] = items[i]
        i += 1
        k += 1

    while j <= right:
        scratch[k] = items[j]
        j += 1
        k += 1

    items[left:right + 1] = scratch[left:right + 1]
