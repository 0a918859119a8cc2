"""Calendar aggregator.

Buckets reservations into day/hour/week slots for the dashboard's
availability calendar.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Iterator, Union
from uuid import UUID

from rental_inventory.errors import InvalidRange, NotFound
from rental_inventory.logging import get_logger
from rental_inventory.models.availability import AvailabilitySlot, CalendarGranularity
from rental_inventory.models.reservation import ACTIVE_STATUSES, Reservation
from rental_inventory.models.service import InventoryService
from rental_inventory.services.availability_calculator import validate_range
from rental_inventory.services.occupancy import OccupancyTimeline, lookup_window, to_occupancy
from rental_inventory.storage.gateway import Repositories, StoreGateway

logger = get_logger(__name__)

DateLike = Union[date, datetime]


def range_start_instant(value: DateLike) -> datetime:
    """A bare date starts at midnight."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def range_end_instant(value: DateLike) -> datetime:
    """A bare date as range end includes that whole day."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value + timedelta(days=1), time.min)


class AvailabilityCalendar:
    """Lazy, restartable sequence of availability slots.

    The reservations are read once; each iteration re-derives slots from
    the same occupancy timeline.
    """

    def __init__(
        self,
        service: InventoryService,
        range_start: datetime,
        range_end: datetime,
        granularity: CalendarGranularity,
        reservations: list[Reservation],
    ):
        self.service = service
        self.range_start = range_start
        self.range_end = range_end
        self.granularity = granularity
        self.reservations = reservations
        self._timeline: OccupancyTimeline | None = None

    def __len__(self) -> int:
        return math.ceil((self.range_end - self.range_start) / self.granularity.step)

    def __iter__(self) -> Iterator[AvailabilitySlot]:
        timeline = self._get_timeline()
        capacity = self.service.capacity
        step = self.granularity.step

        slot_start = self.range_start
        while slot_start < self.range_end:
            slot_end = min(slot_start + step, self.range_end)
            reserved = timeline.peak(slot_start, slot_end)
            available = capacity - reserved
            yield AvailabilitySlot(
                slot_start=slot_start,
                slot_end=slot_end,
                total_quantity=capacity,
                reserved_quantity=reserved,
                available_quantity=available,
                is_fully_booked=available <= 0,
            )
            slot_start = slot_end

    def to_list(self) -> list[AvailabilitySlot]:
        return list(self)

    def _get_timeline(self) -> OccupancyTimeline:
        if self._timeline is None:
            self._timeline = OccupancyTimeline(
                to_occupancy(self.service, reservation)
                for reservation in self.reservations
                if reservation.is_active
            )
        return self._timeline


class CalendarAggregator:
    """Builds availability calendars from the reservation store."""

    def __init__(self, gateway: StoreGateway, max_slots: int = 1000):
        """
        Initialize calendar aggregator.

        Args:
            gateway: Store gateway for read access
            max_slots: Upper bound on slots per request
        """
        self.gateway = gateway
        self.max_slots = max_slots

    async def get_availability_calendar(
        self,
        service_id: UUID,
        range_start: DateLike,
        range_end: DateLike,
        granularity: CalendarGranularity = CalendarGranularity.DAY,
    ) -> AvailabilityCalendar:
        """
        Get per-slot availability covering [range_start, range_end).

        Bare dates are whole days: Jun 1 to Jun 30 gives 30 day slots.

        Raises:
            InvalidRange: Empty/inverted range or too many slots
            NotFound: Unknown service
            StoreUnavailable: Store failed twice
        """
        start = range_start_instant(range_start)
        end = range_end_instant(range_end)
        validate_range(start, end)

        slot_count = math.ceil((end - start) / granularity.step)
        if slot_count > self.max_slots:
            raise InvalidRange(
                f"Range spans {slot_count} {granularity.value.lower()} slots; "
                f"at most {self.max_slots} allowed"
            )

        async def load(repos: Repositories) -> AvailabilityCalendar:
            service = await repos.services.get_by_id(service_id)
            if service is None:
                raise NotFound(f"Service not found: {service_id}")
            query_start, query_end = lookup_window(service, start, end)
            reservations = await repos.reservations.get_overlapping(
                service_id, query_start, query_end, ACTIVE_STATUSES
            )
            return AvailabilityCalendar(service, start, end, granularity, reservations)

        calendar = await self.gateway.read(load, "get_availability_calendar")

        logger.debug(
            "calendar_loaded",
            service_id=str(service_id),
            slots=slot_count,
            reservations=len(calendar.reservations),
        )

        return calendar
