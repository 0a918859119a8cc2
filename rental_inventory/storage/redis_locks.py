"""Redis-based distributed locks serializing writes per rental service."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import LockError

from rental_inventory.logging import get_logger

logger = get_logger(__name__)


class RedisLockHelper:
    """Helper for Redis-based distributed locking."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 10,
        wait_timeout_seconds: float = 5.0,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize Redis lock helper."""
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.wait_timeout_seconds = wait_timeout_seconds
        self._client: redis.Redis | None = client

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._client is None:
            self._client = redis.from_url(self.redis_url, encoding="utf-8")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def lock_key(service_id: UUID) -> str:
        return f"rie:lock:service:{service_id}"

    @asynccontextmanager
    async def acquire_service_lock(
        self, service_id: UUID, wait_timeout: Optional[float] = None
    ) -> AsyncGenerator[bool, None]:
        """Acquire exclusive lock on a service's reservations.

        Waits up to wait_timeout seconds; yields False if the lock could not
        be taken in time. The lock expires after ttl_seconds even if the
        holder dies.
        """
        if not self._client:
            raise RuntimeError("Redis client not connected")

        lock = self._client.lock(
            self.lock_key(service_id),
            timeout=self.ttl_seconds,
            sleep=0.05,
            blocking_timeout=(
                self.wait_timeout_seconds if wait_timeout is None else wait_timeout
            ),
        )
        acquired = False

        try:
            acquired = await lock.acquire()
            yield bool(acquired)
        finally:
            if acquired:
                try:
                    await lock.release()
                except LockError:
                    # TTL elapsed while held; another writer may own it now
                    logger.warning("service_lock_expired_before_release", service_id=str(service_id))

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            raise RuntimeError("Redis client not connected")
        return bool(await self._client.ping())
