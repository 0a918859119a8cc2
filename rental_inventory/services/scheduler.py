"""Scheduler for background tasks (soft hold expiration)."""

import asyncio

from rental_inventory.logging import get_logger
from rental_inventory.services.expiration_job import SoftHoldExpirationJob

logger = get_logger(__name__)


class SchedulerService:
    """Background task scheduler for the reservation lifecycle."""

    def __init__(self, expiration_job: SoftHoldExpirationJob, interval_seconds: int = 60):
        """Initialize scheduler service."""
        self.expiration_job = expiration_job
        self.interval_seconds = interval_seconds
        self._running = False
        self._wakeup = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start scheduler loop."""
        self._running = True
        self._wakeup.clear()
        logger.info("scheduler_started", interval_seconds=self.interval_seconds)

        while self._running:
            await self.expiration_job.run()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        logger.info("scheduler_exited")

    async def stop(self) -> None:
        """Stop scheduler loop."""
        self._running = False
        self._wakeup.set()
        logger.info("scheduler_stopped")
