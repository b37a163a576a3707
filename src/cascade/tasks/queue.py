"""
Task priority queue.

Binary min-heap stored in a list. A task ranks higher when its priority
number is lower; equal priorities fall back to the earlier due date and
finally to the lower task id, so extraction order is reproducible.
"""

from typing import Iterable, List, Optional

from .models import Task


class TaskQueue:
    """Min-heap of tasks ordered by (priority, due_date, id)."""

    def __init__(self) -> None:
        self._heap: List[Task] = []

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task]) -> "TaskQueue":
        queue = cls()
        for task in tasks:
            queue.insert(task)
        return queue

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def insert(self, task: Task) -> None:
        """Add a task. O(log n)."""
        self._heap.append(task)
        self._sift_up(len(self._heap) - 1)

    def extract_min(self) -> Optional[Task]:
        """Remove and return the highest-priority task, or None when empty."""
        if not self._heap:
            return None

        root = self._heap[0]
        last = self._heap.pop()
        if self._heap:
            self._heap[0] = last
            self._sift_down(0)
        return root

    def peek(self) -> Optional[Task]:
        """Return the highest-priority task without removing it."""
        return self._heap[0] if self._heap else None

    def is_empty(self) -> bool:
        return not self._heap

    @property
    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    # ------------------------------------------------------------------
    # Heap internals
    # ------------------------------------------------------------------

    @staticmethod
    def _parent(i: int) -> int:
        return (i - 1) // 2

    @staticmethod
    def _left_child(i: int) -> int:
        return 2 * i + 1

    @staticmethod
    def _right_child(i: int) -> int:
        return 2 * i + 2

    @staticmethod
    def _is_higher_priority(a: Task, b: Task) -> bool:
        return (a.priority, a.due_date, a.id) < (b.priority, b.due_date, b.id)

    def _swap(self, i: int, j: int) -> None:
        self._heap[i], self._heap[j] = self._heap[j], self._heap[i]

    def _sift_up(self, index: int) -> None:
        while index > 0:
            parent = self._parent(index)
            if not self._is_higher_priority(self._heap[index], self._heap[parent]):
                break
            self._swap(index, parent)
            index = parent

    def _sift_down(self, index: int) -> None:
        size = len(self._heap)
        while True:
            left = self._left_child(index)
            right = self._right_child(index)
            if left >= size:
                return

            best = left
            if right < size and self._is_higher_priority(self._heap[right], self._heap[left]):
                best = right

            if not self._is_higher_priority(self._heap[best], self._heap[index]):
                return
            self._swap(index, best)
            index = best
