"""
Database layer: SQLAlchemy Core schema and async connection pool.
"""

from cascade.database.connection import ConnectionPool
from cascade.database.schema import SQLITE_MAX_INTEGER, metadata, task_dependencies, tasks

__all__ = ["ConnectionPool", "SQLITE_MAX_INTEGER", "metadata", "task_dependencies", "tasks"]
