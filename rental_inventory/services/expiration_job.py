"""Soft hold expiration job.

Background job that periodically releases soft holds whose checkout window
has lapsed. Runs on a schedule and moves holds from Pending to Cancelled.
"""

from datetime import datetime
from typing import Optional

from rental_inventory.errors import InventoryError
from rental_inventory.logging import get_logger
from rental_inventory.services.reservation_store import ReservationStore

logger = get_logger(__name__)


class SoftHoldExpirationJob:
    """Background job to cancel soft holds past their expiry."""

    def __init__(self, store: ReservationStore):
        """
        Initialize expiration job.

        Args:
            store: Reservation store for querying and cancelling holds
        """
        self.store = store

    async def run(self, now: Optional[datetime] = None) -> dict[str, int]:
        """
        Execute expiration job.

        Cancels every Pending soft hold whose expires_at is at or before now.

        Returns:
            Dictionary with counts: {"expired": count, "failed": count}
        """
        now = now or datetime.utcnow()
        logger.info("expiration_job_started", now=now.isoformat())

        try:
            result = await self.store.expire_soft_holds(now)
        except InventoryError as e:
            logger.error("expiration_job_error", error=str(e), error_code=e.code)
            return {"expired": 0, "failed": 0}

        logger.info(
            "expiration_job_completed",
            expired=result["expired"],
            failed=result["failed"],
        )

        return result
