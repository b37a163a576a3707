"""
Database connection management using SQLAlchemy 2.0 async with aiosqlite.

Provides:
- SQLAlchemy AsyncEngine with the aiosqlite dialect
- Read and write transaction context managers
- Schema creation and health check

The pool is created by the caller and passed down explicitly; there is no
process-wide connection.
"""

import contextlib
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from cascade.core.config import DatabaseConfig
from cascade.core.exceptions import DatabaseError
from cascade.database.schema import metadata

logger = structlog.get_logger(__name__)


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class ConnectionPool:
    """
    SQLAlchemy 2.0 async connection pool manager.

    Uses create_async_engine with the aiosqlite dialect.
    """

    def __init__(self, db_path: str, max_connections: int = 5, echo: bool = False):
        """
        Initialize connection pool.

        Args:
            db_path: Path to SQLite database, or ":memory:"
            max_connections: Maximum connections in pool
            echo: Log every SQL statement
        """
        self.db_path = db_path
        self.max_connections = max_connections
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.stats: Dict[str, int] = {
            "read_queries": 0,
            "write_queries": 0,
        }

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "ConnectionPool":
        return cls(config.path, max_connections=config.max_connections, echo=config.echo)

    @property
    def is_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    async def initialize(self) -> None:
        """Create the async engine and the schema."""
        if self.engine is not None:
            return

        logger.info("initializing_engine",
                    db_path=str(self.db_path),
                    max_connections=self.max_connections)

        engine_kwargs: Dict[str, Any] = {
            "echo": self.echo,
            "connect_args": {"check_same_thread": False},
        }

        # StaticPool for :memory: databases so every checkout sees one database
        if self.is_memory:
            database_url = "sqlite+aiosqlite:///:memory:"
            engine_kwargs["poolclass"] = StaticPool
        else:
            db_file = Path(self.db_path)
            db_file.parent.mkdir(parents=True, exist_ok=True)
            database_url = f"sqlite+aiosqlite:///{db_file}"
            engine_kwargs["poolclass"] = AsyncAdaptedQueuePool
            engine_kwargs["pool_size"] = self.max_connections
            engine_kwargs["max_overflow"] = 0
            engine_kwargs["pool_pre_ping"] = True

        self.engine = create_async_engine(database_url, **engine_kwargs)
        event.listen(self.engine.sync_engine, "connect", _enable_foreign_keys)

        await self.create_schema()
        logger.info("engine_initialized", db_path=str(self.db_path))

    async def create_schema(self) -> None:
        """Create missing tables and indexes."""
        try:
            async with self.write_transaction() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to create schema", error_code="SCHEMA_CREATE") from e

    async def close(self) -> None:
        """Close the engine and all connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            logger.info("connection_pool_closed", stats=self.stats)

    async def __aenter__(self) -> "ConnectionPool":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @contextlib.asynccontextmanager
    async def read_transaction(self) -> AsyncIterator[AsyncConnection]:
        """
        Get async connection for read operations.

        Returns:
            AsyncConnection for read queries
        """
        if not self.engine:
            raise DatabaseError("Connection pool not initialized", error_code="POOL_NOT_INIT")

        async with self.engine.connect() as conn:
            self.stats["read_queries"] += 1
            try:
                yield conn
            except SQLAlchemyError as e:
                logger.error("read_transaction_failed", error=str(e))
                raise

    @contextlib.asynccontextmanager
    async def write_transaction(self) -> AsyncIterator[AsyncConnection]:
        """
        Get async connection for write operations with transaction.

        Returns:
            AsyncConnection with automatic commit or rollback
        """
        if not self.engine:
            raise DatabaseError("Connection pool not initialized", error_code="POOL_NOT_INIT")

        async with self.engine.begin() as conn:
            self.stats["write_queries"] += 1
            try:
                yield conn
            except SQLAlchemyError as e:
                logger.error("write_transaction_failed", error=str(e))
                # Transaction is rolled back by the context manager
                raise

    async def health_check(self) -> bool:
        """
        Perform database health check.

        Returns:
            True if database is accessible
        """
        try:
            async with self.read_transaction() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except (SQLAlchemyError, DatabaseError) as e:
            logger.error("health_check_failed", error=str(e))
            return False
