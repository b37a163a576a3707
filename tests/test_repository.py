# tests/test_repository.py

from __future__ import annotations

import pydantic
import pytest
from sqlalchemy import text

from cascade.core.exceptions import DatabaseError
from cascade.database.connection import ConnectionPool
from cascade.tasks.models import TaskStatus
from cascade.tasks.protocols import TaskStore
from cascade.tasks.repository import TaskNotFoundError, TaskRepository, TaskRepositoryError


@pytest.mark.asyncio
async def test_repository_satisfies_store_protocol(repository: TaskRepository) -> None:
    assert isinstance(repository, TaskStore)


@pytest.mark.asyncio
async def test_create_and_get_task(repository: TaskRepository) -> None:
    task = await repository.create_task("Write report", priority=1, due_date=1_800_000_000)
    assert task.id > 0
    assert task.status is TaskStatus.TODO

    loaded = await repository.get_task(task.id)
    assert loaded == task
    assert await repository.get_task(9999) is None


@pytest.mark.asyncio
async def test_ids_are_assigned_in_order(repository: TaskRepository) -> None:
    first = await repository.create_task("one")
    second = await repository.create_task("two")
    assert second.id > first.id
    assert await repository.count_tasks() == 2


@pytest.mark.asyncio
async def test_create_task_validates_before_insert(repository: TaskRepository) -> None:
    with pytest.raises(pydantic.ValidationError):
        await repository.create_task("bad", priority=7)
    assert await repository.count_tasks() == 0


@pytest.mark.asyncio
async def test_require_task_raises(repository: TaskRepository) -> None:
    with pytest.raises(TaskNotFoundError) as exc_info:
        await repository.require_task(404)
    assert exc_info.value.task_id == 404
    assert exc_info.value.error_code == "TASK_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_tasks_filters(repository: TaskRepository) -> None:
    todo = await repository.create_task("todo", priority=1)
    done = await repository.create_task("done", priority=2, status=TaskStatus.DONE)
    started = await repository.create_task("started", priority=2, status=TaskStatus.IN_PROGRESS)
    dropped = await repository.create_task("dropped", priority=4, status=TaskStatus.WONT_DO)

    open_ids = [t.id for t in await repository.list_tasks()]
    assert open_ids == [todo.id, started.id]
    assert [t.id for t in await repository.list_open_tasks()] == open_ids

    all_ids = [t.id for t in await repository.list_tasks(include_closed=True)]
    assert all_ids == [todo.id, done.id, started.id, dropped.id]

    by_status = await repository.list_tasks(status=TaskStatus.DONE)
    assert [t.id for t in by_status] == [done.id]

    by_priority = await repository.list_tasks(include_closed=True, priority=2)
    assert [t.id for t in by_priority] == [done.id, started.id]


@pytest.mark.asyncio
async def test_update_task(repository: TaskRepository) -> None:
    task = await repository.create_task("draft")

    updated = await repository.update_task(task.id, status=TaskStatus.DONE, title="final")
    assert updated.status is TaskStatus.DONE
    assert updated.title == "final"
    assert updated.creation_time == task.creation_time
    assert await repository.get_task(task.id) == updated

    assert await repository.update_task(9999, priority=1) is None


@pytest.mark.asyncio
async def test_update_task_rejects_bad_values(repository: TaskRepository) -> None:
    task = await repository.create_task("draft")
    with pytest.raises(pydantic.ValidationError):
        await repository.update_task(task.id, priority=0)
    with pytest.raises(TaskRepositoryError):
        await repository.update_task(task.id, id=5)
    assert (await repository.get_task(task.id)).priority == 2


@pytest.mark.asyncio
async def test_dependency_rows(repository: TaskRepository) -> None:
    a = await repository.create_task("a")
    b = await repository.create_task("b")
    c = await repository.create_task("c")

    await repository.add_dependency(b.id, a.id)
    await repository.add_dependency(c.id, b.id)
    assert await repository.has_dependency(b.id, a.id)
    assert not await repository.has_dependency(a.id, b.id)

    edges = [(d.task_id, d.depends_on_task_id) for d in await repository.list_dependencies()]
    assert edges == [(b.id, a.id), (c.id, b.id)]

    assert await repository.remove_dependency(c.id, b.id)
    assert not await repository.remove_dependency(c.id, b.id)
    assert len(await repository.list_dependencies()) == 1


@pytest.mark.asyncio
async def test_duplicate_dependency_hits_constraint(repository: TaskRepository) -> None:
    a = await repository.create_task("a")
    b = await repository.create_task("b")
    await repository.add_dependency(b.id, a.id)

    with pytest.raises(TaskRepositoryError) as exc_info:
        await repository.add_dependency(b.id, a.id)
    assert exc_info.value.error_code == "DEPENDENCY_CONSTRAINT"


@pytest.mark.asyncio
async def test_dependency_on_missing_task_hits_foreign_key(repository: TaskRepository) -> None:
    a = await repository.create_task("a")
    with pytest.raises(TaskRepositoryError):
        await repository.add_dependency(a.id, 9999)


@pytest.mark.asyncio
async def test_delete_task_removes_incident_edges(repository: TaskRepository) -> None:
    a = await repository.create_task("a")
    b = await repository.create_task("b")
    c = await repository.create_task("c")
    await repository.add_dependency(b.id, a.id)
    await repository.add_dependency(c.id, b.id)

    assert await repository.delete_task(b.id)
    assert await repository.get_task(b.id) is None
    assert await repository.list_dependencies() == []
    assert not await repository.delete_task(b.id)


@pytest.mark.asyncio
async def test_data_survives_reopening(db_path) -> None:
    async with ConnectionPool(str(db_path)) as pool:
        created = await TaskRepository(pool).create_task("persisted", priority=3)

    async with ConnectionPool(str(db_path)) as pool:
        assert await pool.health_check()
        loaded = await TaskRepository(pool).get_task(created.id)

    assert loaded == created


@pytest.mark.asyncio
async def test_in_memory_pool() -> None:
    async with ConnectionPool(":memory:") as pool:
        repository = TaskRepository(pool)
        task = await repository.create_task("ephemeral")
        assert await repository.get_task(task.id) == task


@pytest.mark.asyncio
async def test_uninitialized_pool_raises() -> None:
    pool = ConnectionPool(":memory:")
    with pytest.raises(DatabaseError) as exc_info:
        async with pool.read_transaction():
            pass
    assert exc_info.value.error_code == "POOL_NOT_INIT"


@pytest.mark.asyncio
async def test_ids_beyond_sqlite_integer_range(repository: TaskRepository) -> None:
    task = await repository.create_task("a")
    huge = 2**70

    assert await repository.get_task(huge) is None
    assert await repository.update_task(huge, priority=1) is None
    assert not await repository.has_dependency(task.id, huge)
    assert not await repository.remove_dependency(huge, task.id)
    assert not await repository.delete_task(huge)

    with pytest.raises(TaskRepositoryError) as exc_info:
        await repository.add_dependency(task.id, huge)
    assert exc_info.value.error_code == "DEPENDENCY_CONSTRAINT"


@pytest.mark.asyncio
async def test_read_failures_are_wrapped(repository: TaskRepository, pool: ConnectionPool) -> None:
    async with pool.write_transaction() as conn:
        await conn.execute(text("DROP TABLE task_dependencies"))

    with pytest.raises(TaskRepositoryError):
        await repository.list_dependencies()
    with pytest.raises(TaskRepositoryError):
        await repository.has_dependency(1, 2)
