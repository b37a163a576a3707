# tests/test_graph.py

from __future__ import annotations

import pytest

from cascade.core.exceptions import GraphIntegrityError
from cascade.tasks.graph import ResultStatus, TaskDependencyGraph
from cascade.tasks.models import TaskDependency, TaskStatus


def chain_graph() -> TaskDependencyGraph:
    """3 depends on 2, 2 depends on 1."""
    graph = TaskDependencyGraph()
    for task_id in (1, 2, 3):
        graph.add_task(task_id)
    assert graph.add_dependency(2, 1)
    assert graph.add_dependency(3, 2)
    return graph


def test_add_task_is_idempotent_and_keeps_edges() -> None:
    graph = chain_graph()
    graph.add_task(2)
    assert graph.task_count == 3
    assert graph.get_dependencies(2) == [1]
    assert graph.get_dependents(2) == [3]


def test_add_dependency_creates_missing_endpoints() -> None:
    graph = TaskDependencyGraph()
    assert graph.add_dependency(10, 20)
    assert graph.has_task(10) and graph.has_task(20)
    assert graph.has_dependency(10, 20)
    assert not graph.has_dependency(20, 10)
    graph.check_integrity()


def test_self_loop_is_rejected_without_changes() -> None:
    graph = TaskDependencyGraph()
    graph.add_task(1)
    assert graph.add_dependency(1, 1) is False
    assert graph.dependency_count == 0


def test_cycle_closing_edge_is_rejected() -> None:
    graph = chain_graph()
    assert graph.would_create_cycle(1, 3)
    assert graph.add_dependency(1, 3) is False
    assert graph.dependency_count == 2
    assert not graph.has_dependency(1, 3)
    assert not graph.detect_cycle().has_cycle


def test_would_create_cycle_is_false_for_independent_edge() -> None:
    graph = chain_graph()
    graph.add_task(4)
    assert not graph.would_create_cycle(4, 3)
    assert not graph.would_create_cycle(3, 1)


def test_remove_dependency_and_task() -> None:
    graph = chain_graph()
    graph.remove_dependency(3, 2)
    assert graph.get_dependents(2) == []
    graph.remove_dependency(3, 2)  # absent edge is a no-op

    graph.remove_task(1)
    assert not graph.has_task(1)
    assert graph.get_dependencies(2) == []
    graph.remove_task(99)
    graph.check_integrity()


def test_dependencies_and_dependents_are_sorted() -> None:
    graph = TaskDependencyGraph()
    for dep in (9, 3, 5):
        graph.add_dependency(1, dep)
        graph.add_dependency(dep + 100, 1)
    assert graph.get_dependencies(1) == [3, 5, 9]
    assert graph.get_dependents(1) == [103, 105, 109]


def test_unknown_ids_return_empty_results() -> None:
    graph = TaskDependencyGraph()
    assert graph.get_dependencies(42) == []
    assert graph.get_dependents(42) == []
    assert graph.get_task(42) is None
    assert not graph.has_dependency(42, 1)


def test_build_attaches_task_metadata(make_task) -> None:
    tasks = [make_task(1), make_task(2)]
    graph = TaskDependencyGraph.build(tasks, [TaskDependency(task_id=2, depends_on_task_id=1)])
    assert graph.get_task(1) == tasks[0]
    assert graph.get_dependencies(2) == [1]
    assert graph.get_all_task_ids() == [1, 2]


def test_clear_empties_everything(make_task) -> None:
    graph = TaskDependencyGraph.build([make_task(1)], [])
    graph.clear()
    assert graph.task_count == 0
    assert graph.get_task(1) is None


def test_get_ready_tasks() -> None:
    graph = chain_graph()
    graph.add_task(4)
    assert graph.get_ready_tasks([]) == [1, 4]
    assert graph.get_ready_tasks([1]) == [2, 4]
    assert graph.get_ready_tasks([1, 2, 4]) == [3]


def test_check_integrity_detects_mismatched_views() -> None:
    graph = chain_graph()
    graph.reverse_adjacency[1].discard(2)
    with pytest.raises(GraphIntegrityError):
        graph.check_integrity()


# ----------------------------------------------------------------------
# Whole-graph computations
# ----------------------------------------------------------------------


def test_topological_sort_orders_dependencies_first() -> None:
    result = chain_graph().topological_sort()
    assert result.status == ResultStatus.OK
    assert result.is_valid
    assert result.order == [1, 2, 3]


def test_topological_sort_respects_every_edge() -> None:
    graph = TaskDependencyGraph()
    edges = [(5, 1), (5, 2), (6, 5), (7, 2), (6, 7), (8, 6)]
    for task_id, dep in edges:
        assert graph.add_dependency(task_id, dep)

    order = graph.topological_sort().order
    assert sorted(order) == sorted(graph.get_all_task_ids())
    position = {task_id: i for i, task_id in enumerate(order)}
    for task_id, dep in edges:
        assert position[dep] < position[task_id]


def test_topological_sort_empty_graph() -> None:
    result = TaskDependencyGraph().topological_sort()
    assert result.status == ResultStatus.EMPTY
    assert result.order == []
    assert result.is_valid


def test_cycle_loaded_from_store_is_reported() -> None:
    graph = TaskDependencyGraph()
    graph.load_from_dependencies(
        [
            TaskDependency(task_id=1, depends_on_task_id=2),
            TaskDependency(task_id=2, depends_on_task_id=3),
            TaskDependency(task_id=3, depends_on_task_id=1),
        ]
    )

    cycle = graph.detect_cycle()
    assert cycle.has_cycle
    assert cycle.cycle_path == [1, 2, 3, 1]

    order = graph.topological_sort()
    assert order.status == ResultStatus.CYCLE_DETECTED
    assert order.order == []

    critical = graph.critical_path()
    assert critical.has_cycle
    assert critical.length == -1
    assert critical.path == []


def test_cycle_path_starts_at_revisited_node() -> None:
    # 1 leads into the 2 <-> 3 loop without being part of it
    graph = TaskDependencyGraph()
    graph.load_from_dependencies(
        [
            TaskDependency(task_id=1, depends_on_task_id=2),
            TaskDependency(task_id=2, depends_on_task_id=3),
            TaskDependency(task_id=3, depends_on_task_id=2),
        ]
    )

    cycle = graph.detect_cycle()
    assert cycle.has_cycle
    assert cycle.cycle_path == [2, 3, 2]


def test_detect_cycle_on_acyclic_graph() -> None:
    cycle = chain_graph().detect_cycle()
    assert not cycle.has_cycle
    assert cycle.cycle_path == []


def test_critical_path_of_chain() -> None:
    result = chain_graph().critical_path()
    assert result.status == ResultStatus.OK
    assert result.path == [1, 2, 3]
    assert result.length == 3


def test_critical_path_picks_longest_branch() -> None:
    graph = TaskDependencyGraph()
    # short branch: 2 -> 1 ; long branch: 4 -> 3 -> 1
    graph.add_dependency(2, 1)
    graph.add_dependency(3, 1)
    graph.add_dependency(4, 3)
    result = graph.critical_path()
    assert result.path == [1, 3, 4]
    assert result.length == 3


def test_critical_path_without_edges_is_single_task() -> None:
    graph = TaskDependencyGraph()
    graph.add_task(7)
    graph.add_task(8)
    result = graph.critical_path()
    assert result.status == ResultStatus.OK
    assert result.length == 1
    assert result.path == [7]


def test_critical_path_empty_graph() -> None:
    result = TaskDependencyGraph().critical_path()
    assert result.status == ResultStatus.EMPTY
    assert result.length == 0
    assert result.path == []


def test_long_chain_does_not_hit_recursion_limit() -> None:
    graph = TaskDependencyGraph()
    size = 5000
    graph.load_from_dependencies(
        TaskDependency(task_id=task_id, depends_on_task_id=task_id - 1)
        for task_id in range(2, size + 1)
    )

    assert not graph.detect_cycle().has_cycle
    result = graph.critical_path()
    assert result.length == size
    assert result.path[0] == 1 and result.path[-1] == size


def test_closed_tasks_still_take_part_in_graph(make_task) -> None:
    graph = TaskDependencyGraph.build(
        [make_task(1, status=TaskStatus.DONE), make_task(2)],
        [TaskDependency(task_id=2, depends_on_task_id=1)],
    )
    assert graph.topological_sort().order == [1, 2]
