"""Reservation store service.

Owns reservation records for rental services. Every write takes the
per-service Redis lock and runs in one transaction, so capacity checks and
inserts can never interleave for the same service.
"""

import math
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional, TypeVar
from uuid import UUID

from redis.exceptions import RedisError

from rental_inventory.errors import (
    CapacityExceeded,
    InvalidRange,
    InvalidState,
    InvalidTransition,
    InventoryError,
    NotFound,
    StoreUnavailable,
)
from rental_inventory.logging import get_logger
from rental_inventory.logging.audit import AuditLogger
from rental_inventory.models.availability import AvailabilityResult
from rental_inventory.models.reservation import (
    Reservation,
    ReservationFilters,
    ReservationInput,
    ReservationListItem,
    ReservationPage,
    ReservationStatus,
    ReservationType,
    ReservationUpdate,
    initial_status_for,
)
from rental_inventory.models.service import InventoryService
from rental_inventory.services.availability_calculator import (
    AvailabilityCalculator,
    validate_quantity,
    validate_range,
)
from rental_inventory.storage.gateway import Repositories, StoreGateway
from rental_inventory.storage.redis_locks import RedisLockHelper

logger = get_logger(__name__)

T = TypeVar("T")

# Default soft hold lifetime when the caller gives no expiry (15 minutes)
SOFT_HOLD_TTL_SECONDS = 900

# Expired holds read per sweep query
EXPIRY_BATCH_SIZE = 500

# Types that consume a customer rental period
RENTAL_TYPES = frozenset({ReservationType.BOOKING, ReservationType.SOFT_HOLD})


class ReservationStore:
    """Queryable, capacity-checked collection of reservations."""

    def __init__(
        self,
        gateway: StoreGateway,
        lock_helper: RedisLockHelper,
        calculator: AvailabilityCalculator,
        soft_hold_ttl_seconds: int = SOFT_HOLD_TTL_SECONDS,
        expiry_batch_size: int = EXPIRY_BATCH_SIZE,
    ):
        """
        Initialize reservation store.

        Args:
            gateway: Transactional repository access
            lock_helper: Per-service lock provider
            calculator: Availability calculator used for capacity checks
            soft_hold_ttl_seconds: Default soft hold lifetime
            expiry_batch_size: Expired holds read per sweep query
        """
        self.gateway = gateway
        self.lock_helper = lock_helper
        self.calculator = calculator
        self.soft_hold_ttl_seconds = soft_hold_ttl_seconds
        self.expiry_batch_size = expiry_batch_size

    # ------------------------------------------------------------------
    # Locking and capacity helpers shared with the lifecycle manager
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def service_lock(self, service_id: UUID) -> AsyncIterator[None]:
        """Hold the per-service write lock or raise StoreUnavailable."""
        try:
            async with self.lock_helper.acquire_service_lock(service_id) as acquired:
                if not acquired:
                    logger.warning("service_lock_timeout", service_id=str(service_id))
                    raise StoreUnavailable(
                        f"Service {service_id} is busy. Please try again."
                    )
                yield
        except RedisError as e:
            logger.error("service_lock_failed", service_id=str(service_id), error=str(e))
            raise StoreUnavailable("Lock service unavailable") from e

    async def run_locked(
        self,
        service_id: UUID,
        operation: Callable[[Repositories], Awaitable[T]],
        name: str,
    ) -> T:
        """Run a write under the service lock in a single transaction."""
        async with self.service_lock(service_id):
            return await self.gateway.write(operation, name)

    async def load_service_for_write(
        self, repos: Repositories, service_id: UUID
    ) -> InventoryService:
        service = await repos.services.get_for_update(service_id)
        if service is None:
            raise NotFound(f"Service not found: {service_id}")
        return service

    async def ensure_capacity(
        self,
        repos: Repositories,
        service: InventoryService,
        start: datetime,
        end: datetime,
        quantity: int,
        exclude_reservation_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
    ) -> AvailabilityResult:
        """Raise CapacityExceeded unless quantity fits over [start, end)."""
        result = await self.calculator.evaluate_in(
            repos, service, start, end, quantity, exclude_reservation_id
        )
        if not result.is_available:
            AuditLogger.log_capacity_rejected(
                actor_id=actor_id,
                service_id=service.id,
                requested=quantity,
                available=result.available_quantity,
                conflict_count=len(result.conflicts),
            )
            raise CapacityExceeded(
                result.message or "Capacity exceeded",
                conflicts=result.conflicts,
                available_quantity=result.available_quantity,
                has_more=result.has_more,
            )
        return result

    @staticmethod
    def check_minimum_period(
        service: InventoryService,
        reservation_type: ReservationType,
        start: datetime,
        end: datetime,
    ) -> None:
        """Customer rentals must last at least the service's minimum period."""
        if reservation_type not in RENTAL_TYPES:
            return
        if end - start < service.minimum_rental_duration:
            raise InvalidRange(
                f"Minimum rental period is {service.minimum_rental_period} "
                f"{service.rental_period_unit.value.lower()}(s)"
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        reservation: ReservationInput,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Create a reservation if it fits within capacity.

        Args:
            reservation: Reservation to create
            actor_id: Who is creating it (for audit)
            now: Current time (defaults to utcnow)

        Returns:
            Created reservation with generated id

        Raises:
            InvalidRange: Empty/inverted range or below minimum rental period
            InvalidQuantity: Quantity not positive or above capacity
            CapacityExceeded: Would exceed capacity at some instant
            NotFound: Unknown service
            StoreUnavailable: Lock or store failure
        """
        validate_range(reservation.start_date, reservation.end_date)
        validate_quantity(reservation.quantity_reserved)
        now = now or datetime.utcnow()

        expires_at = reservation.expires_at
        if reservation.type == ReservationType.SOFT_HOLD and expires_at is None:
            expires_at = now + timedelta(seconds=self.soft_hold_ttl_seconds)

        async def insert(repos: Repositories) -> Reservation:
            service = await self.load_service_for_write(repos, reservation.service_id)
            validate_quantity(reservation.quantity_reserved, service.capacity)
            self.check_minimum_period(
                service, reservation.type, reservation.start_date, reservation.end_date
            )
            await self.ensure_capacity(
                repos,
                service,
                reservation.start_date,
                reservation.end_date,
                reservation.quantity_reserved,
                actor_id=actor_id,
            )
            return await repos.reservations.create(
                Reservation(
                    service_id=reservation.service_id,
                    start_date=reservation.start_date,
                    end_date=reservation.end_date,
                    quantity_reserved=reservation.quantity_reserved,
                    status=initial_status_for(reservation.type),
                    type=reservation.type,
                    booking_id=reservation.booking_id,
                    customer_id=reservation.customer_id,
                    expires_at=expires_at,
                    notes=reservation.notes,
                    created_at=now,
                )
            )

        created = await self.run_locked(reservation.service_id, insert, "create_reservation")

        AuditLogger.log_reservation_created(
            actor_id=actor_id,
            reservation_id=created.id,
            service_id=created.service_id,
            reservation_type=created.type.value,
            quantity=created.quantity_reserved,
            start_date=created.start_date,
            end_date=created.end_date,
        )

        return created

    async def update(
        self,
        reservation_id: UUID,
        changes: ReservationUpdate,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Change dates, quantity or notes of a Pending or Confirmed reservation.

        Capacity is re-validated with the reservation's own prior footprint
        excluded.

        Raises:
            InvalidState: Reservation is not Pending or Confirmed
            CapacityExceeded: New footprint does not fit
        """
        validate_range(changes.start_date, changes.end_date)
        validate_quantity(changes.quantity_reserved)
        now = now or datetime.utcnow()

        existing = await self.get(reservation_id)

        async def apply(repos: Repositories) -> tuple[Reservation, dict]:
            current = await repos.reservations.get_by_id(reservation_id)
            if current is None:
                raise NotFound(f"Reservation not found: {reservation_id}")
            if not current.is_mutable:
                raise InvalidState(
                    f"Reservation in status {current.status.value} cannot be edited"
                )

            service = await self.load_service_for_write(repos, current.service_id)
            validate_quantity(changes.quantity_reserved, service.capacity)
            self.check_minimum_period(
                service, current.type, changes.start_date, changes.end_date
            )
            await self.ensure_capacity(
                repos,
                service,
                changes.start_date,
                changes.end_date,
                changes.quantity_reserved,
                exclude_reservation_id=current.id,
                actor_id=actor_id,
            )

            diff = {
                field: {"from": str(getattr(current, field)), "to": str(getattr(changes, field))}
                for field in ("start_date", "end_date", "quantity_reserved", "notes")
                if getattr(current, field) != getattr(changes, field)
            }
            updated = current.model_copy(
                update={
                    "start_date": changes.start_date,
                    "end_date": changes.end_date,
                    "quantity_reserved": changes.quantity_reserved,
                    "notes": changes.notes,
                    "updated_at": now,
                }
            )
            return await repos.reservations.update(updated), diff

        updated, diff = await self.run_locked(existing.service_id, apply, "update_reservation")

        AuditLogger.log_reservation_updated(actor_id, updated.id, diff)

        return updated

    async def set_status(
        self,
        reservation_id: UUID,
        new_status: ReservationStatus,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Move a reservation along the status state machine.

        Setting the current status again is a no-op so retries are safe.

        Raises:
            InvalidTransition: Edge not allowed
            InvalidState: Confirming a soft hold that already expired
        """
        new_status = ReservationStatus(new_status)
        now = now or datetime.utcnow()

        existing = await self.get(reservation_id)

        async def transition(repos: Repositories) -> tuple[Reservation, Optional[ReservationStatus]]:
            current = await repos.reservations.get_by_id(reservation_id)
            if current is None:
                raise NotFound(f"Reservation not found: {reservation_id}")
            if current.status == new_status:
                return current, None
            if not current.status.can_transition_to(new_status):
                raise InvalidTransition(current.status.value, new_status.value)
            if new_status == ReservationStatus.CONFIRMED and current.is_expired(now):
                raise InvalidState(f"Soft hold {current.id} expired at {current.expires_at}")

            changes: dict = {"status": new_status, "updated_at": now}
            if new_status == ReservationStatus.CANCELLED:
                changes["cancelled_at"] = now
                changes["cancellation_reason"] = reason
            updated = await repos.reservations.update(current.model_copy(update=changes))
            return updated, current.status

        updated, previous = await self.run_locked(
            existing.service_id, transition, "set_reservation_status"
        )

        if previous is not None:
            AuditLogger.log_status_changed(
                actor_id, updated.id, previous.value, updated.status.value
            )

        return updated

    async def cancel(
        self,
        reservation_id: UUID,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """Cancel a reservation, releasing its capacity immediately."""
        return await self.set_status(
            reservation_id, ReservationStatus.CANCELLED, actor_id=actor_id, reason=reason, now=now
        )

    async def expire_soft_holds(self, now: Optional[datetime] = None) -> dict[str, int]:
        """
        Cancel every pending soft hold whose expiry is at or before now.

        Holds are scanned in batches of expiry_batch_size until a batch comes
        back short. Idempotent: a hold confirmed or cancelled since the scan
        is skipped. Individual failures are logged and left for the next sweep.

        Returns:
            Dictionary with counts: {"expired": count, "failed": count}
        """
        now = now or datetime.utcnow()

        async def scan(repos: Repositories) -> list[Reservation]:
            return await repos.reservations.get_expired_soft_holds(
                now, limit=self.expiry_batch_size
            )

        expired_count = 0
        failed_count = 0
        attempted: set[UUID] = set()

        while True:
            holds = await self.gateway.read(scan, "scan_expired_soft_holds")
            # Failed holds stay pending and come back in the next batch
            fresh = [hold for hold in holds if hold.id not in attempted]

            for hold in fresh:
                attempted.add(hold.id)
                try:
                    if await self._expire_hold(hold, now):
                        expired_count += 1
                except InventoryError as e:
                    failed_count += 1
                    logger.error(
                        "soft_hold_expiration_failed",
                        reservation_id=str(hold.id),
                        service_id=str(hold.service_id),
                        error=str(e),
                    )

            if len(holds) < self.expiry_batch_size or not fresh:
                break

        return {"expired": expired_count, "failed": failed_count}

    async def _expire_hold(self, hold: Reservation, now: datetime) -> bool:
        async def expire(repos: Repositories) -> Optional[Reservation]:
            current = await repos.reservations.get_by_id(hold.id)
            if (
                current is None
                or current.status != ReservationStatus.PENDING
                or not current.is_expired(now)
            ):
                return None
            return await repos.reservations.update(
                current.model_copy(
                    update={
                        "status": ReservationStatus.CANCELLED,
                        "cancelled_at": now,
                        "cancellation_reason": "Soft hold expired",
                        "updated_at": now,
                    }
                )
            )

        expired = await self.run_locked(hold.service_id, expire, "expire_soft_hold")
        if expired is None:
            return False

        logger.info(
            "soft_hold_expired",
            reservation_id=str(expired.id),
            service_id=str(expired.service_id),
            expires_at=expired.expires_at.isoformat() if expired.expires_at else None,
        )
        AuditLogger.log_soft_hold_expired(expired.id, expired.expires_at)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, reservation_id: UUID) -> Reservation:
        """Get reservation by id or raise NotFound."""

        async def fetch(repos: Repositories) -> Optional[Reservation]:
            return await repos.reservations.get_by_id(reservation_id)

        reservation = await self.gateway.read(fetch, "get_reservation")
        if reservation is None:
            raise NotFound(f"Reservation not found: {reservation_id}")
        return reservation

    async def find_by_booking_id(self, booking_id: UUID) -> Optional[Reservation]:
        """Most recent reservation linked to a booking, if any."""

        async def fetch(repos: Repositories) -> Optional[Reservation]:
            return await repos.reservations.get_by_booking_id(booking_id)

        return await self.gateway.read(fetch, "find_by_booking_id")

    async def query_overlapping(
        self,
        service_id: UUID,
        start: datetime,
        end: datetime,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> list[Reservation]:
        """Reservations intersecting [start, end), optionally filtered by status."""
        validate_range(start, end)
        status_filter = None if statuses is None else frozenset(statuses)

        async def fetch(repos: Repositories) -> list[Reservation]:
            return await repos.reservations.get_overlapping(
                service_id, start, end, status_filter
            )

        return await self.gateway.read(fetch, "query_overlapping")

    async def list_reservations(
        self, filters: ReservationFilters, now: Optional[datetime] = None
    ) -> ReservationPage:
        """Filtered, paginated reservation listing for the admin views."""
        now = now or datetime.utcnow()

        async def fetch(repos: Repositories) -> tuple[list[Reservation], int]:
            return await repos.reservations.search(filters, now)

        items, total = await self.gateway.read(fetch, "list_reservations")

        return ReservationPage(
            items=[ReservationListItem.from_reservation(r, now) for r in items],
            total_count=total,
            page=filters.page,
            page_size=filters.page_size,
            total_pages=math.ceil(total / filters.page_size) if total else 0,
        )

    async def get_service(self, service_id: UUID) -> InventoryService:
        """Get rental service by id or raise NotFound."""

        async def fetch(repos: Repositories) -> Optional[InventoryService]:
            return await repos.services.get_by_id(service_id)

        service = await self.gateway.read(fetch, "get_service")
        if service is None:
            raise NotFound(f"Service not found: {service_id}")
        return service

    async def sync_service(
        self, service: InventoryService, actor_id: Optional[str] = None
    ) -> InventoryService:
        """Create or replace a service record from the catalog."""

        async def upsert(repos: Repositories) -> InventoryService:
            return await repos.services.upsert(service)

        synced = await self.run_locked(service.id, upsert, "sync_service")
        AuditLogger.log_service_synced(actor_id, synced.id, synced.capacity)
        return synced
