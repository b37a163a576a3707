"""
Task Dependency Graph

Directed acyclic graph of task ids. An edge ``task_id -> depends_on_id``
means ``task_id`` cannot be ready until ``depends_on_id`` is complete.

Two mirrored views are kept:
- adjacency_list:    task -> tasks it depends on (forward edges)
- reverse_adjacency: task -> tasks that depend on it

A graph is a per-query snapshot: the service builds one from the store,
asks its questions and throws it away. Nothing here performs I/O, and
every expected failure (cycle, unknown id, empty graph) is a return value.
"""

from collections import deque
from enum import Enum
from typing import Deque, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from cascade.core.exceptions import GraphIntegrityError

from .models import Task, TaskDependency


class ResultStatus(str, Enum):
    """Outcome tag for whole-graph computations"""
    OK = "ok"
    EMPTY = "empty"
    CYCLE_DETECTED = "cycle_detected"


class CycleResult(BaseModel):
    """Result of a full-graph cycle scan"""

    model_config = ConfigDict(frozen=True)

    has_cycle: bool = Field(default=False)
    cycle_path: List[int] = Field(
        default_factory=list,
        description="Ids forming the cycle, first id repeated at the end",
    )


class TopologicalOrder(BaseModel):
    """Execution order with an explicit outcome tag"""

    model_config = ConfigDict(frozen=True)

    status: ResultStatus
    order: List[int] = Field(default_factory=list, description="Dependencies before dependents")

    @property
    def is_valid(self) -> bool:
        return self.status != ResultStatus.CYCLE_DETECTED


class CriticalPathResult(BaseModel):
    """Longest chain of dependent tasks, measured in tasks"""

    model_config = ConfigDict(frozen=True)

    path: List[int] = Field(default_factory=list, description="Dependency first, final dependent last")
    length: int = Field(default=0, description="Number of tasks on the path, -1 when cyclic")
    status: ResultStatus = Field(default=ResultStatus.EMPTY)

    @property
    def has_cycle(self) -> bool:
        return self.status == ResultStatus.CYCLE_DETECTED


class _Color(Enum):
    WHITE = 0  # unvisited
    GRAY = 1   # on the current DFS path
    BLACK = 2  # fully explored


class TaskDependencyGraph(BaseModel):
    """
    Dependency graph with cycle prevention, topological ordering and
    critical path analysis.
    """

    tasks: Dict[int, Task] = Field(default_factory=dict, description="Optional task metadata")
    adjacency_list: Dict[int, Set[int]] = Field(default_factory=dict, description="Dependency graph")
    reverse_adjacency: Dict[int, Set[int]] = Field(default_factory=dict, description="Reverse dependency graph")

    @classmethod
    def build(
        cls,
        tasks: Iterable[Task] = (),
        dependencies: Iterable[TaskDependency] = (),
    ) -> "TaskDependencyGraph":
        """Snapshot constructor used by the service layer."""
        graph = cls()
        for task in tasks:
            graph.add_task(task)
        graph.load_from_dependencies(dependencies)
        return graph

    # ============================================================================
    # GRAPH CONSTRUCTION
    # ============================================================================

    def add_task(self, task: Union[int, Task]) -> None:
        """Ensure a node exists; attach metadata when a Task is given. Idempotent."""
        if isinstance(task, Task):
            task_id = task.id
            self.tasks[task_id] = task
        else:
            task_id = task

        if task_id not in self.adjacency_list:
            self.adjacency_list[task_id] = set()
            self.reverse_adjacency[task_id] = set()

    def remove_task(self, task_id: int) -> None:
        """Remove a node and every edge touching it. No-op when absent."""
        if task_id not in self.adjacency_list:
            return

        for dependency in self.adjacency_list[task_id]:
            self.reverse_adjacency[dependency].discard(task_id)
        for dependent in self.reverse_adjacency[task_id]:
            self.adjacency_list[dependent].discard(task_id)

        del self.adjacency_list[task_id]
        del self.reverse_adjacency[task_id]
        self.tasks.pop(task_id, None)

    def load_from_dependencies(self, dependencies: Iterable[TaskDependency]) -> None:
        """Bulk-load stored edges without cycle checks.

        The store only ever receives edges accepted by add_dependency, so
        they are trusted here. A corrupted store shows up in detect_cycle().
        """
        for dep in dependencies:
            self.add_task(dep.task_id)
            self.add_task(dep.depends_on_task_id)
            self.adjacency_list[dep.task_id].add(dep.depends_on_task_id)
            self.reverse_adjacency[dep.depends_on_task_id].add(dep.task_id)

    def clear(self) -> None:
        self.tasks.clear()
        self.adjacency_list.clear()
        self.reverse_adjacency.clear()

    # ============================================================================
    # EDGE MANAGEMENT
    # ============================================================================

    def add_dependency(self, task_id: int, depends_on_id: int) -> bool:
        """Make ``task_id`` depend on ``depends_on_id``.

        Both endpoints are created if missing. Returns False, leaving every
        edge untouched, when the edge would close a cycle (self loops
        included).
        """
        self.add_task(task_id)
        self.add_task(depends_on_id)

        if self.would_create_cycle(task_id, depends_on_id):
            return False

        self.adjacency_list[task_id].add(depends_on_id)
        self.reverse_adjacency[depends_on_id].add(task_id)
        return True

    def remove_dependency(self, task_id: int, depends_on_id: int) -> None:
        """Remove an edge from both views. No-op when absent."""
        if task_id in self.adjacency_list:
            self.adjacency_list[task_id].discard(depends_on_id)
        if depends_on_id in self.reverse_adjacency:
            self.reverse_adjacency[depends_on_id].discard(task_id)

    # ============================================================================
    # QUERIES
    # ============================================================================

    def has_task(self, task_id: int) -> bool:
        return task_id in self.adjacency_list

    def has_dependency(self, task_id: int, depends_on_id: int) -> bool:
        return depends_on_id in self.adjacency_list.get(task_id, ())

    def get_task(self, task_id: int) -> Optional[Task]:
        return self.tasks.get(task_id)

    def get_dependencies(self, task_id: int) -> List[int]:
        """Tasks that ``task_id`` depends on, ascending."""
        return sorted(self.adjacency_list.get(task_id, ()))

    def get_dependents(self, task_id: int) -> List[int]:
        """Tasks that depend on ``task_id``, ascending."""
        return sorted(self.reverse_adjacency.get(task_id, ()))

    def get_all_task_ids(self) -> List[int]:
        """All node ids in insertion order."""
        return list(self.adjacency_list)

    @property
    def task_count(self) -> int:
        return len(self.adjacency_list)

    @property
    def dependency_count(self) -> int:
        return sum(len(deps) for deps in self.adjacency_list.values())

    def get_ready_tasks(self, completed_ids: Iterable[int]) -> List[int]:
        """Incomplete nodes whose dependencies are all in ``completed_ids``."""
        completed = set(completed_ids)
        return [
            task_id
            for task_id, deps in self.adjacency_list.items()
            if task_id not in completed and deps <= completed
        ]

    def check_integrity(self) -> None:
        """Raise GraphIntegrityError if the two adjacency views disagree."""
        if self.adjacency_list.keys() != self.reverse_adjacency.keys():
            raise GraphIntegrityError("Forward and reverse views hold different nodes")

        for task_id, deps in self.adjacency_list.items():
            for dep in deps:
                if task_id not in self.reverse_adjacency.get(dep, ()):
                    raise GraphIntegrityError(
                        f"Edge {task_id} -> {dep} missing from reverse view", task_id=task_id
                    )
        for dep, dependents in self.reverse_adjacency.items():
            for task_id in dependents:
                if dep not in self.adjacency_list.get(task_id, ()):
                    raise GraphIntegrityError(
                        f"Edge {task_id} -> {dep} missing from forward view", task_id=task_id
                    )

    # ============================================================================
    # CYCLE DETECTION
    # ============================================================================

    def would_create_cycle(self, task_id: int, depends_on_id: int) -> bool:
        """Would adding ``task_id -> depends_on_id`` close a cycle?

        True for a self loop, or when ``depends_on_id`` already reaches
        ``task_id`` through existing dependency edges.
        """
        if task_id == depends_on_id:
            return True

        visited: Set[int] = set()
        queue: Deque[int] = deque([depends_on_id])

        while queue:
            current = queue.popleft()
            if current == task_id:
                return True

            if current in visited:
                continue
            visited.add(current)

            for dependency in self.adjacency_list.get(current, ()):
                if dependency not in visited:
                    queue.append(dependency)

        return False

    def detect_cycle(self) -> CycleResult:
        """Scan the whole graph for a cycle using three-colour DFS.

        The returned path starts at the node the back edge points to, walks
        the DFS path down to the node that owns the back edge, and repeats
        the first node to close the loop.
        """
        colors: Dict[int, _Color] = {task_id: _Color.WHITE for task_id in self.adjacency_list}

        for root in self.adjacency_list:
            if colors[root] is not _Color.WHITE:
                continue

            colors[root] = _Color.GRAY
            path: List[int] = [root]
            stack: List[Tuple[int, Iterator[int]]] = [(root, iter(self.get_dependencies(root)))]

            while stack:
                node, neighbors = stack[-1]
                descended = False

                for neighbor in neighbors:
                    color = colors.get(neighbor, _Color.WHITE)
                    if color is _Color.GRAY:
                        start = path.index(neighbor)
                        return CycleResult(has_cycle=True, cycle_path=path[start:] + [neighbor])
                    if color is _Color.WHITE:
                        colors[neighbor] = _Color.GRAY
                        path.append(neighbor)
                        stack.append((neighbor, iter(self.get_dependencies(neighbor))))
                        descended = True
                        break

                if not descended:
                    colors[node] = _Color.BLACK
                    path.pop()
                    stack.pop()

        return CycleResult(has_cycle=False, cycle_path=[])

    # ============================================================================
    # ORDERING
    # ============================================================================

    def topological_sort(self) -> TopologicalOrder:
        """Kahn's algorithm: every dependency appears before its dependents.

        "In-degree" here is the number of unsatisfied dependencies of a node.
        """
        if not self.adjacency_list:
            return TopologicalOrder(status=ResultStatus.EMPTY, order=[])

        remaining = {task_id: len(deps) for task_id, deps in self.adjacency_list.items()}
        ready: Deque[int] = deque(task_id for task_id, count in remaining.items() if count == 0)
        order: List[int] = []

        while ready:
            current = ready.popleft()
            order.append(current)

            for dependent in self.get_dependents(current):
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    ready.append(dependent)

        if len(order) != len(self.adjacency_list):
            return TopologicalOrder(status=ResultStatus.CYCLE_DETECTED, order=[])

        return TopologicalOrder(status=ResultStatus.OK, order=order)

    def critical_path(self) -> CriticalPathResult:
        """Longest chain of dependency-linked tasks, counted in tasks."""
        if not self.adjacency_list:
            return CriticalPathResult(path=[], length=0, status=ResultStatus.EMPTY)

        if self.detect_cycle().has_cycle:
            return CriticalPathResult(path=[], length=-1, status=ResultStatus.CYCLE_DETECTED)

        longest: Dict[int, int] = {}
        next_hop: Dict[int, int] = {}

        max_length = 0
        start_node: Optional[int] = None

        for task_id in self.adjacency_list:
            length = self._longest_chain_from(task_id, longest, next_hop)
            if length > max_length:
                max_length = length
                start_node = task_id

        path: List[int] = []
        current = start_node
        while current is not None:
            path.append(current)
            current = next_hop.get(current)

        return CriticalPathResult(path=path, length=max_length, status=ResultStatus.OK)

    def _longest_chain_from(
        self,
        root: int,
        longest: Dict[int, int],
        next_hop: Dict[int, int],
    ) -> int:
        """Memoized chain length from ``root`` toward its dependents.

        Post-order walk with an explicit stack. Requires an acyclic graph.
        """
        if root in longest:
            return longest[root]

        stack: List[Tuple[int, bool]] = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if node in longest:
                continue

            dependents = self.get_dependents(node)
            if not expanded:
                stack.append((node, True))
                for dependent in reversed(dependents):
                    if dependent not in longest:
                        stack.append((dependent, False))
                continue

            best_length = 1
            best_next: Optional[int] = None
            for dependent in dependents:
                length = 1 + longest[dependent]
                if length > best_length:
                    best_length = length
                    best_next = dependent

            longest[node] = best_length
            if best_next is not None:
                next_hop[node] = best_next

        return longest[root]
