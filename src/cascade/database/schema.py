"""
Database schema definition using SQLAlchemy Core.

Two tables back the task manager: ``tasks`` and ``task_dependencies``.
SQLAlchemy Core (not ORM) keeps rows as plain mappings that the repository
turns into pydantic models.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    Text,
)

# Metadata container for all tables
metadata = MetaData()

# Largest value a SQLite INTEGER column can hold (signed 64-bit)
SQLITE_MAX_INTEGER = 2**63 - 1

# ============================================================================
# TASK TABLES
# ============================================================================

tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column(
        "priority",
        Integer,
        CheckConstraint("priority BETWEEN 1 AND 4", name="ck_tasks_priority"),
        nullable=False,
        default=2,
    ),
    Column(
        "status",
        Integer,
        CheckConstraint("status BETWEEN 0 AND 3", name="ck_tasks_status"),
        nullable=False,
        default=0,
    ),
    Column("due_date", Integer, nullable=False, default=0),  # 0 = not set
    Column("creation_time", Integer, nullable=False),
    Column("owner_id", Integer, nullable=True),
    Index("idx_tasks_status_priority", "status", "priority"),
)

task_dependencies = Table(
    "task_dependencies",
    metadata,
    Column(
        "task_id",
        Integer,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "depends_on_task_id",
        Integer,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    ),
    PrimaryKeyConstraint("task_id", "depends_on_task_id"),
    CheckConstraint("task_id != depends_on_task_id", name="ck_dependency_not_self"),
    Index("idx_dependencies_depends_on", "depends_on_task_id"),
)
