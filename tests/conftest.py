# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Callable, Iterator

import pytest
import pytest_asyncio
import structlog

from cascade.database.connection import ConnectionPool
from cascade.tasks.models import Task, TaskStatus
from cascade.tasks.repository import TaskRepository
from cascade.tasks.service import TaskService


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """CLI tests point structlog at captured streams; undo that after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cascade.db"


@pytest_asyncio.fixture()
async def pool(db_path: Path) -> AsyncIterator[ConnectionPool]:
    pool = ConnectionPool(str(db_path), max_connections=2)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture()
def repository(pool: ConnectionPool) -> TaskRepository:
    return TaskRepository(pool)


@pytest.fixture()
def service(repository: TaskRepository) -> TaskService:
    return TaskService(repository)


@pytest.fixture()
def make_task() -> Callable[..., Task]:
    """
    Factory for in-memory Task values used by the pure graph, heap and
    sort tests.
    """

    def _make(
        task_id: int,
        priority: int = 2,
        due_date: int = 0,
        status: TaskStatus = TaskStatus.TODO,
        title: str = "",
        creation_time: int = 1_700_000_000,
    ) -> Task:
        return Task(
            id=task_id,
            title=title or f"Task {task_id}",
            priority=priority,
            status=status,
            due_date=due_date,
            creation_time=creation_time,
        )

    return _make
