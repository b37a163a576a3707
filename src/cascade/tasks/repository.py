"""
Task Repository Layer - SQLAlchemy Integration

Async repository over the ``tasks`` and ``task_dependencies`` tables,
converting between SQLAlchemy rows and pydantic models.

Key Features:
- Async CRUD operations for tasks
- Dependency edge persistence (validation happens in the service layer)
- Transaction management per operation
"""

import time
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cascade.core.exceptions import DatabaseError, EntityNotFoundError
from cascade.database.connection import ConnectionPool
from cascade.database.schema import SQLITE_MAX_INTEGER, task_dependencies, tasks
from cascade.tasks.models import (
    DEFAULT_PRIORITY,
    UNSET_DUE_DATE,
    Task,
    TaskDependency,
    TaskStatus,
)

logger = structlog.get_logger(__name__)

_UPDATABLE_FIELDS = {"title", "priority", "status", "due_date", "owner_id"}
_OPEN_STATUSES = [TaskStatus.TODO.value, TaskStatus.IN_PROGRESS.value]


def _storable_id(value: int) -> bool:
    """Ids outside the SQLite INTEGER range can never match a row"""
    return -SQLITE_MAX_INTEGER - 1 <= value <= SQLITE_MAX_INTEGER


class TaskRepositoryError(DatabaseError):
    """Task repository specific errors"""
    pass


class TaskNotFoundError(EntityNotFoundError):
    """Task not found in repository"""

    def __init__(self, task_id: int, **kwargs: Any) -> None:
        super().__init__(
            f"Task {task_id} not found",
            entity_type="task",
            entity_id=task_id,
            error_code="TASK_NOT_FOUND",
            **kwargs,
        )
        self.task_id = task_id


class TaskRepository:
    """
    Async repository for task management operations

    Provides a high-level interface for task CRUD and dependency rows
    with automatic conversion between database rows and pydantic models.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

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
        """Insert a task and return it with its assigned id"""
        # Validate through the model before touching the database
        draft = Task(
            id=0,
            title=title,
            priority=priority,
            status=status,
            due_date=due_date,
            creation_time=int(time.time()),
            owner_id=owner_id,
        )

        task_data = self._task_to_row(draft)
        task_data.pop("id")

        try:
            async with self.pool.write_transaction() as conn:
                result = await conn.execute(insert(tasks).values(**task_data))
                task_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to create task", table="tasks") from e

        task = draft.model_copy(update={"id": int(task_id)})
        logger.info("task_created", task_id=task.id, priority=task.priority, status=task.status.name)
        return task

    async def get_task(self, task_id: int) -> Optional[Task]:
        """Get task by ID"""
        if not _storable_id(task_id):
            return None

        try:
            async with self.pool.read_transaction() as conn:
                result = await conn.execute(select(tasks).where(tasks.c.id == task_id))
                row = result.mappings().fetchone()
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to load task", table="tasks") from e

        if not row:
            return None
        return self._row_to_task(row)

    async def require_task(self, task_id: int) -> Task:
        """Get task by ID, raising TaskNotFoundError when missing"""
        task = await self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(
        self,
        include_closed: bool = False,
        status: Optional[TaskStatus] = None,
        priority: Optional[int] = None,
    ) -> List[Task]:
        """List tasks in id order with optional filtering"""
        query = select(tasks)

        if status is not None:
            query = query.where(tasks.c.status == TaskStatus(status).value)
        elif not include_closed:
            query = query.where(tasks.c.status.in_(_OPEN_STATUSES))

        if priority is not None:
            query = query.where(tasks.c.priority == priority)

        query = query.order_by(tasks.c.id)

        try:
            async with self.pool.read_transaction() as conn:
                result = await conn.execute(query)
                rows = result.mappings().fetchall()
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to list tasks", table="tasks") from e

        return [self._row_to_task(row) for row in rows]

    async def list_open_tasks(self) -> List[Task]:
        """Tasks still to be worked on (TODO or IN_PROGRESS)"""
        return await self.list_tasks(include_closed=False)

    async def count_tasks(self) -> int:
        try:
            async with self.pool.read_transaction() as conn:
                result = await conn.execute(select(func.count()).select_from(tasks))
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to count tasks", table="tasks") from e

    async def update_task(self, task_id: int, **fields: Any) -> Optional[Task]:
        """Update task fields; returns the updated task or None if missing"""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise TaskRepositoryError(
                f"Cannot update fields: {', '.join(sorted(unknown))}", table="tasks"
            )

        current = await self.get_task(task_id)
        if current is None:
            return None
        if not fields:
            return current

        # Re-validate the merged record before writing it
        updated = Task.model_validate({**current.model_dump(), **fields})
        values = {name: self._task_to_row(updated)[name] for name in fields}

        try:
            async with self.pool.write_transaction() as conn:
                await conn.execute(update(tasks).where(tasks.c.id == task_id).values(**values))
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to update task", table="tasks") from e

        logger.info("task_updated", task_id=task_id, fields=sorted(fields))
        return updated

    async def delete_task(self, task_id: int) -> bool:
        """Delete a task and every dependency row that mentions it"""
        if not _storable_id(task_id):
            return False

        try:
            async with self.pool.write_transaction() as conn:
                await conn.execute(
                    delete(task_dependencies).where(
                        or_(
                            task_dependencies.c.task_id == task_id,
                            task_dependencies.c.depends_on_task_id == task_id,
                        )
                    )
                )
                result = await conn.execute(delete(tasks).where(tasks.c.id == task_id))
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to delete task", table="tasks") from e

        deleted = result.rowcount > 0
        if deleted:
            logger.info("task_deleted", task_id=task_id)
        return deleted

    # ============================================================================
    # DEPENDENCY OPERATIONS
    # ============================================================================

    async def add_dependency(self, task_id: int, depends_on_id: int) -> None:
        """Persist a dependency edge that the service has already validated"""
        if not (_storable_id(task_id) and _storable_id(depends_on_id)):
            raise TaskRepositoryError(
                f"Task id out of range in dependency {task_id} -> {depends_on_id}",
                table="task_dependencies",
                error_code="DEPENDENCY_CONSTRAINT",
            )

        try:
            async with self.pool.write_transaction() as conn:
                await conn.execute(
                    insert(task_dependencies).values(
                        task_id=task_id, depends_on_task_id=depends_on_id
                    )
                )
        except IntegrityError as e:
            raise TaskRepositoryError(
                f"Cannot store dependency {task_id} -> {depends_on_id}",
                table="task_dependencies",
                error_code="DEPENDENCY_CONSTRAINT",
            ) from e
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to store dependency", table="task_dependencies") from e

        logger.info("dependency_stored", task_id=task_id, depends_on=depends_on_id)

    async def remove_dependency(self, task_id: int, depends_on_id: int) -> bool:
        """Delete a dependency row; False if it did not exist"""
        if not (_storable_id(task_id) and _storable_id(depends_on_id)):
            return False

        try:
            async with self.pool.write_transaction() as conn:
                result = await conn.execute(
                    delete(task_dependencies).where(
                        and_(
                            task_dependencies.c.task_id == task_id,
                            task_dependencies.c.depends_on_task_id == depends_on_id,
                        )
                    )
                )
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to remove dependency", table="task_dependencies") from e

        removed = result.rowcount > 0
        if removed:
            logger.info("dependency_removed", task_id=task_id, depends_on=depends_on_id)
        return removed

    async def has_dependency(self, task_id: int, depends_on_id: int) -> bool:
        if not (_storable_id(task_id) and _storable_id(depends_on_id)):
            return False

        try:
            async with self.pool.read_transaction() as conn:
                result = await conn.execute(
                    select(func.count())
                    .select_from(task_dependencies)
                    .where(
                        and_(
                            task_dependencies.c.task_id == task_id,
                            task_dependencies.c.depends_on_task_id == depends_on_id,
                        )
                    )
                )
                return int(result.scalar_one()) > 0
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to look up dependency", table="task_dependencies") from e

    async def list_dependencies(self) -> List[TaskDependency]:
        """Every stored edge, ordered for reproducible graph snapshots"""
        try:
            async with self.pool.read_transaction() as conn:
                result = await conn.execute(
                    select(task_dependencies).order_by(
                        task_dependencies.c.task_id, task_dependencies.c.depends_on_task_id
                    )
                )
                rows = result.mappings().fetchall()
        except SQLAlchemyError as e:
            raise TaskRepositoryError("Failed to list dependencies", table="task_dependencies") from e

        return [
            TaskDependency(task_id=row["task_id"], depends_on_task_id=row["depends_on_task_id"])
            for row in rows
        ]

    # ============================================================================
    # HELPER METHODS
    # ============================================================================

    @staticmethod
    def _task_to_row(task: Task) -> Dict[str, Any]:
        """Convert pydantic Task to a database row"""
        return {
            "id": task.id,
            "title": task.title,
            "priority": task.priority,
            "status": task.status.value,
            "due_date": task.due_date,
            "creation_time": task.creation_time,
            "owner_id": task.owner_id,
        }

    @staticmethod
    def _row_to_task(row: Any) -> Task:
        """Convert database row to pydantic Task"""
        return Task(
            id=int(row["id"]),
            title=row["title"],
            priority=int(row["priority"]),
            status=TaskStatus(int(row["status"])),
            due_date=int(row["due_date"] or UNSET_DUE_DATE),
            creation_time=int(row["creation_time"]),
            owner_id=row["owner_id"],
        )
