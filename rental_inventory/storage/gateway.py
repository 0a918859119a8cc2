"""Transactional access to repositories with timeouts and error mapping."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from rental_inventory.errors import InventoryError, StoreUnavailable
from rental_inventory.logging import get_logger
from rental_inventory.storage.postgres_reservation_repo import PostgresReservationRepository
from rental_inventory.storage.postgres_service_repo import PostgresServiceRepository

logger = get_logger(__name__)

T = TypeVar("T")

# Infrastructure failures that surface as StoreUnavailable
STORE_FAILURES = (asyncio.TimeoutError, SQLAlchemyError, RedisError, ConnectionError, OSError)


@dataclass
class Repositories:
    """Repositories bound to one database session."""

    services: Any
    reservations: Any


class StoreGateway:
    """Runs repository operations inside one transaction with a deadline.

    Writes run exactly once. Reads are retried once on infrastructure
    failure, as they have no side effects.
    """

    def __init__(
        self,
        db: Any,
        timeout_seconds: float = 5.0,
        service_repo_cls: type = PostgresServiceRepository,
        reservation_repo_cls: type = PostgresReservationRepository,
    ):
        """
        Initialize gateway.

        Args:
            db: Database exposing an async session() context manager
            timeout_seconds: Deadline for each operation
            service_repo_cls: Repository class for rental services
            reservation_repo_cls: Repository class for reservations
        """
        self.db = db
        self.timeout_seconds = timeout_seconds
        self.service_repo_cls = service_repo_cls
        self.reservation_repo_cls = reservation_repo_cls

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Repositories]:
        """Open a session; commit on success, roll back on error."""
        async with self.db.session() as session:
            yield Repositories(
                services=self.service_repo_cls(session),
                reservations=self.reservation_repo_cls(session),
            )

    async def write(
        self, operation: Callable[[Repositories], Awaitable[T]], name: str
    ) -> T:
        """Run a mutating operation once, atomically, within the deadline."""
        return await self._run(operation, name)

    async def read(
        self, operation: Callable[[Repositories], Awaitable[T]], name: str
    ) -> T:
        """Run a read-only operation, retrying once on StoreUnavailable."""
        try:
            return await self._run(operation, name)
        except StoreUnavailable:
            logger.info("store_read_retry", operation=name)
            return await self._run(operation, name)

    async def _run(
        self, operation: Callable[[Repositories], Awaitable[T]], name: str
    ) -> T:
        async def in_transaction() -> T:
            async with self.transaction() as repos:
                return await operation(repos)

        try:
            return await asyncio.wait_for(in_transaction(), timeout=self.timeout_seconds)
        except InventoryError:
            raise
        except STORE_FAILURES as e:
            logger.error(
                "store_operation_failed",
                operation=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreUnavailable(f"Store unavailable during {name}") from e
