"""Reservation lifecycle manager.

Soft holds, booking confirmation, cancellation, no-show, hand-over and
return, and staff inventory blocks. Every step is one transaction under the
service lock held by the reservation store.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from rental_inventory.errors import InvalidRange, InvalidState, NotFound
from rental_inventory.logging import get_logger
from rental_inventory.logging.audit import AuditLogger
from rental_inventory.models.reservation import (
    BLOCKING_TYPES,
    BookingConfirmation,
    Reservation,
    ReservationInput,
    ReservationStatus,
    ReservationType,
)
from rental_inventory.services.availability_calculator import validate_quantity, validate_range
from rental_inventory.services.reservation_store import ReservationStore
from rental_inventory.storage.gateway import Repositories

logger = get_logger(__name__)


class ReservationLifecycleManager:
    """Drives reservations through their lifecycle."""

    def __init__(self, store: ReservationStore):
        """
        Initialize lifecycle manager.

        Args:
            store: Reservation store owning locking and capacity checks
        """
        self.store = store

    async def place_soft_hold(
        self,
        service_id: UUID,
        start_date: datetime,
        end_date: datetime,
        quantity: int,
        customer_id: Optional[UUID] = None,
        booking_id: Optional[UUID] = None,
        expires_at: Optional[datetime] = None,
        ttl_seconds: Optional[int] = None,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Tentatively reserve units while the customer checks out.

        The hold counts against capacity until confirmed, cancelled or swept
        after expires_at.
        """
        now = now or datetime.utcnow()
        if expires_at is None and ttl_seconds is not None:
            expires_at = now + timedelta(seconds=ttl_seconds)

        return await self.store.create(
            ReservationInput(
                service_id=service_id,
                start_date=start_date,
                end_date=end_date,
                quantity_reserved=quantity,
                type=ReservationType.SOFT_HOLD,
                booking_id=booking_id,
                customer_id=customer_id,
                expires_at=expires_at,
            ),
            actor_id=actor_id,
            now=now,
        )

    async def confirm_booking(
        self,
        booking_id: UUID,
        service_id: Optional[UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        quantity: Optional[int] = None,
        customer_id: Optional[UUID] = None,
        soft_hold_id: Optional[UUID] = None,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BookingConfirmation:
        """
        Confirm a paid booking. Safe to call repeatedly with the same booking_id.

        A live soft hold for the booking is converted in place, as is a hold
        staff already confirmed. A hold that expired, was cancelled or was
        never placed is replaced by a fresh confirmed booking over the
        supplied range (or the hold's range when none is supplied), provided
        capacity is still there. A hold linked to another booking is never
        taken over.

        Args:
            booking_id: Checkout booking id (idempotency key)
            service_id: Service to book when no hold exists
            start_date: Booking start when no hold exists
            end_date: Booking end when no hold exists
            quantity: Units to book when no hold exists
            customer_id: Customer the booking belongs to
            soft_hold_id: Explicit hold to convert instead of lookup by booking_id
            actor_id: Who is confirming (for audit)
            now: Current time (defaults to utcnow)

        Returns:
            BookingConfirmation; replayed is true when nothing changed

        Raises:
            CapacityExceeded: Hold lapsed and capacity is gone
            NotFound: No hold and no service to book
            InvalidState: Hold belongs to another booking or is already closed
        """
        now = now or datetime.utcnow()
        if start_date is not None and end_date is not None:
            validate_range(start_date, end_date)
        if quantity is not None:
            validate_quantity(quantity)

        if soft_hold_id is not None:
            hold = await self.store.get(soft_hold_id)
        else:
            hold = await self.store.find_by_booking_id(booking_id)

        target_service_id = hold.service_id if hold is not None else service_id
        if target_service_id is None:
            raise NotFound(f"No reservation or service for booking {booking_id}")

        async def confirm(repos: Repositories) -> BookingConfirmation:
            latest = await repos.reservations.get_by_booking_id(booking_id)
            if latest is not None and (
                latest.type == ReservationType.BOOKING
                or latest.status not in (ReservationStatus.PENDING, ReservationStatus.CANCELLED)
            ):
                return BookingConfirmation(reservation=latest, replayed=True)

            current = await repos.reservations.get_by_id(hold.id) if hold is not None else None
            if current is not None and (
                current.booking_id not in (None, booking_id)
                or (
                    current.type != ReservationType.SOFT_HOLD
                    and current.booking_id != booking_id
                )
            ):
                raise InvalidState(
                    f"Reservation {current.id} is not a soft hold for booking {booking_id}"
                )
            if current is not None and current.status in (
                ReservationStatus.COMPLETED,
                ReservationStatus.NO_SHOW,
            ):
                raise InvalidState(
                    f"Reservation {current.id} is already {current.status.value}"
                )

            service = await self.store.load_service_for_write(repos, target_service_id)

            if (
                current is not None
                and current.is_active
                and current.status != ReservationStatus.PENDING
            ):
                # Confirmed by staff already; its units are counted, only link it
                linked = await repos.reservations.update(
                    current.model_copy(
                        update={
                            "type": ReservationType.BOOKING,
                            "expires_at": None,
                            "booking_id": booking_id,
                            "customer_id": customer_id or current.customer_id,
                            "updated_at": now,
                        }
                    )
                )
                return BookingConfirmation(reservation=linked)

            if current is not None and current.status == ReservationStatus.PENDING:
                if not current.is_expired(now):
                    await self.store.ensure_capacity(
                        repos,
                        service,
                        current.start_date,
                        current.end_date,
                        current.quantity_reserved,
                        exclude_reservation_id=current.id,
                        actor_id=actor_id,
                    )
                    converted = await repos.reservations.update(
                        current.model_copy(
                            update={
                                "status": ReservationStatus.CONFIRMED,
                                "type": ReservationType.BOOKING,
                                "expires_at": None,
                                "booking_id": booking_id,
                                "customer_id": customer_id or current.customer_id,
                                "updated_at": now,
                            }
                        )
                    )
                    return BookingConfirmation(reservation=converted)

                # Lapsed hold: release it before booking afresh
                await repos.reservations.update(
                    current.model_copy(
                        update={
                            "status": ReservationStatus.CANCELLED,
                            "cancelled_at": now,
                            "cancellation_reason": "Soft hold expired",
                            "updated_at": now,
                        }
                    )
                )

            start = start_date or (current.start_date if current is not None else None)
            end = end_date or (current.end_date if current is not None else None)
            units = quantity or (current.quantity_reserved if current is not None else None)
            if start is None or end is None or units is None:
                raise InvalidRange(
                    f"Booking {booking_id} has no hold; start, end and quantity are required"
                )

            validate_range(start, end)
            validate_quantity(units, service.capacity)
            self.store.check_minimum_period(service, ReservationType.BOOKING, start, end)
            await self.store.ensure_capacity(repos, service, start, end, units, actor_id=actor_id)

            created = await repos.reservations.create(
                Reservation(
                    service_id=service.id,
                    start_date=start,
                    end_date=end,
                    quantity_reserved=units,
                    status=ReservationStatus.CONFIRMED,
                    type=ReservationType.BOOKING,
                    booking_id=booking_id,
                    customer_id=customer_id
                    or (current.customer_id if current is not None else None),
                    created_at=now,
                )
            )
            return BookingConfirmation(reservation=created)

        result = await self.store.run_locked(target_service_id, confirm, "confirm_booking")

        logger.info(
            "booking_confirmed",
            booking_id=str(booking_id),
            reservation_id=str(result.reservation.id),
            replayed=result.replayed,
        )
        AuditLogger.log_booking_confirmed(
            actor_id, result.reservation.id, booking_id, result.replayed
        )

        return result

    async def cancel(
        self,
        reservation_id: UUID,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """Cancel a reservation from any non-terminal status."""
        return await self.store.cancel(reservation_id, actor_id=actor_id, reason=reason, now=now)

    async def mark_no_show(
        self, reservation_id: UUID, actor_id: Optional[str] = None
    ) -> Reservation:
        """Customer never collected a confirmed rental."""
        return await self.store.set_status(
            reservation_id, ReservationStatus.NO_SHOW, actor_id=actor_id
        )

    async def mark_in_use(
        self, reservation_id: UUID, actor_id: Optional[str] = None
    ) -> Reservation:
        """Items handed over to the customer."""
        return await self.store.set_status(
            reservation_id, ReservationStatus.IN_USE, actor_id=actor_id
        )

    async def complete(
        self, reservation_id: UUID, actor_id: Optional[str] = None
    ) -> Reservation:
        """Items returned; the rental is closed."""
        return await self.store.set_status(
            reservation_id, ReservationStatus.COMPLETED, actor_id=actor_id
        )

    async def block_inventory(
        self,
        service_id: UUID,
        start_date: datetime,
        end_date: datetime,
        quantity: int,
        block_type: ReservationType = ReservationType.MAINTENANCE,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Take units out of circulation for maintenance or a manual block.

        Blocks are capacity-checked like bookings but ignore the minimum
        rental period.
        """
        if block_type not in BLOCKING_TYPES:
            raise ValueError(f"{block_type.value} is not a blocking reservation type")

        reservation = await self.store.create(
            ReservationInput(
                service_id=service_id,
                start_date=start_date,
                end_date=end_date,
                quantity_reserved=quantity,
                type=block_type,
                notes=reason,
            ),
            actor_id=actor_id,
            now=now,
        )

        AuditLogger.log_inventory_blocked(
            actor_id, reservation.id, service_id, quantity, reason
        )

        return reservation
