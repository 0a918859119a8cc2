"""Database connection and session management."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from rental_inventory.config.settings import Settings
from rental_inventory.logging import get_logger, redact_credentials
from rental_inventory.storage.db_models import Base

logger = get_logger(__name__)


class Database:
    """Database connection manager."""

    def __init__(self, settings: Settings):
        """
        Initialize database connection.

        Args:
            settings: Application settings with database URL
        """
        self.settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self) -> None:
        """Create database engine and session factory."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self.settings.database_url,
            echo=self.settings.log_level == "DEBUG",
            pool_size=self.settings.database_pool_size,
            max_overflow=self.settings.database_max_overflow,
            pool_timeout=self.settings.store_timeout_seconds,
            pool_pre_ping=True,
        )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("database_connected", url=redact_credentials(self.settings.database_url))

    async def disconnect(self) -> None:
        """Close database connections."""
        if self._engine is None:
            return

        await self._engine.dispose()
        self._engine = None
        self._session_factory = None

        logger.info("database_disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Get a transactional session.

        Commits when the block exits normally and rolls back on any
        exception, so a multi-step write either fully applies or not at all.

        Example:
            async with db.session() as session:
                repo = PostgresReservationRepository(session)
                await repo.create(reservation)
        """
        if self._session_factory is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def ping(self) -> None:
        """Run a trivial query; raises on connectivity failure."""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create all database tables. Use migrations in production."""
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("database_tables_created")
