"""Availability calculator.

Decides whether a requested quantity fits a service over a date range,
given the reservations already held, and reports what stands in the way.
"""

from datetime import datetime
from typing import Any, Iterable, Optional
from uuid import UUID

from rental_inventory.errors import InvalidQuantity, InvalidRange, NotFound
from rental_inventory.logging import get_logger
from rental_inventory.models.availability import AvailabilityResult, ConflictingReservation
from rental_inventory.models.reservation import ACTIVE_STATUSES, Reservation
from rental_inventory.models.service import InventoryService
from rental_inventory.services.occupancy import (
    OccupancyTimeline,
    effective_window,
    lookup_window,
    occupancy_weight,
    to_occupancy,
)
from rental_inventory.storage.gateway import Repositories, StoreGateway

logger = get_logger(__name__)

DEFAULT_CONFLICT_LIMIT = 50


def validate_range(start: datetime, end: datetime) -> None:
    """Reject zero-length and inverted ranges."""
    if end <= start:
        raise InvalidRange(
            f"End ({end.isoformat()}) must be after start ({start.isoformat()})"
        )


def validate_quantity(quantity: Any, capacity: Optional[int] = None) -> None:
    """Quantity must be a positive integer, and no more than capacity when known."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(f"Quantity must be a positive integer, got {quantity!r}")
    if capacity is not None and quantity > capacity:
        raise InvalidQuantity(
            f"Quantity {quantity} exceeds service capacity of {capacity}"
        )


class AvailabilityCalculator:
    """Capacity checks over buffer-extended reservation ranges."""

    def __init__(self, gateway: StoreGateway, conflict_limit: int = DEFAULT_CONFLICT_LIMIT):
        """
        Initialize availability calculator.

        Args:
            gateway: Store gateway for read access to services and reservations
            conflict_limit: Maximum conflicts reported per check
        """
        self.gateway = gateway
        self.conflict_limit = conflict_limit

    def evaluate(
        self,
        service: InventoryService,
        reservations: Iterable[Reservation],
        start: datetime,
        end: datetime,
        requested_quantity: int,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> AvailabilityResult:
        """
        Evaluate a request against a known set of reservations.

        Only active reservations count; the excluded reservation (an
        in-place edit) is ignored. Both the existing reservations and the
        requested range are extended by the service buffers.

        Args:
            service: Service whose capacity applies
            reservations: Candidate reservations (any status)
            start: Requested range start (inclusive)
            end: Requested range end (exclusive)
            requested_quantity: Units requested
            exclude_reservation_id: Reservation to ignore

        Returns:
            AvailabilityResult with minimum available quantity over the range
        """
        window_start, window_end = effective_window(service, start, end)

        blocking = [
            reservation
            for reservation in reservations
            if reservation.is_active
            and reservation.id != exclude_reservation_id
            and to_occupancy(service, reservation).overlaps(window_start, window_end)
        ]
        timeline = OccupancyTimeline(to_occupancy(service, r) for r in blocking)
        peak = timeline.peak(window_start, window_end)

        available = max(service.capacity - peak, 0)
        is_available = occupancy_weight(service, requested_quantity) <= available

        result = AvailabilityResult(
            is_available=is_available,
            available_quantity=available,
            requested_quantity=requested_quantity,
            checked_start_date=start,
            checked_end_date=end,
        )

        if is_available:
            result.message = f"{available} of {service.capacity} units available"
            return result

        blocking.sort(key=lambda r: (r.start_date, r.end_date, str(r.id)))
        result.conflicts = [
            ConflictingReservation.from_reservation(r)
            for r in blocking[: self.conflict_limit]
        ]
        result.has_more = len(blocking) > self.conflict_limit
        result.message = (
            f"Only {available} of {service.capacity} units available; "
            f"{requested_quantity} requested"
        )
        return result

    async def evaluate_in(
        self,
        repos: Repositories,
        service: InventoryService,
        start: datetime,
        end: datetime,
        requested_quantity: int,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> AvailabilityResult:
        """Evaluate inside an open transaction (used by writers under the service lock)."""
        window_start, window_end = effective_window(service, start, end)
        query_start, query_end = lookup_window(service, window_start, window_end)
        reservations = await repos.reservations.get_overlapping(
            service.id, query_start, query_end, ACTIVE_STATUSES
        )
        return self.evaluate(
            service, reservations, start, end, requested_quantity, exclude_reservation_id
        )

    async def check_availability(
        self,
        service_id: UUID,
        start: datetime,
        end: datetime,
        requested_quantity: int,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> AvailabilityResult:
        """
        Check whether requested_quantity units are free for the whole range.

        Pure read: takes no lock, so the answer may be stale by one write.
        The authoritative check is repeated when the reservation is created.

        Raises:
            InvalidRange: Range is empty or inverted
            InvalidQuantity: Quantity not positive or above capacity
            NotFound: Unknown service
            StoreUnavailable: Store failed twice
        """
        validate_range(start, end)
        validate_quantity(requested_quantity)

        async def check(repos: Repositories) -> AvailabilityResult:
            service = await repos.services.get_by_id(service_id)
            if service is None:
                raise NotFound(f"Service not found: {service_id}")
            validate_quantity(requested_quantity, service.capacity)
            return await self.evaluate_in(
                repos, service, start, end, requested_quantity, exclude_reservation_id
            )

        result = await self.gateway.read(check, "check_availability")

        logger.debug(
            "availability_checked",
            service_id=str(service_id),
            requested=requested_quantity,
            available=result.available_quantity,
            is_available=result.is_available,
            conflicts=len(result.conflicts),
        )

        return result
