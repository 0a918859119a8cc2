"""Overlap-counting primitive shared by availability checks and calendars.

Reservations are reduced to occupancies (buffer-extended half-open ranges
with a weight) and swept once into a step function of concurrent usage.
Peak usage over any window is then a bisect plus a scan of the breakpoints
inside that window, never a per-instant scan.
"""

from bisect import bisect_left, bisect_right
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from rental_inventory.models.reservation import Reservation
from rental_inventory.models.service import InventoryService


@dataclass(frozen=True)
class Occupancy:
    """Units taken over [start, end)."""

    start: datetime
    end: datetime
    quantity: int
    reservation_id: Optional[UUID] = None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


def occupancy_weight(service: InventoryService, quantity: int) -> int:
    """Units a reservation takes; exclusive services give each rental the whole stock."""
    if not service.allow_simultaneous_bookings:
        return service.capacity
    return quantity


def to_occupancy(service: InventoryService, reservation: Reservation) -> Occupancy:
    """Extend a reservation by the service's turnaround buffers."""
    return Occupancy(
        start=reservation.start_date - service.buffer_before,
        end=reservation.end_date + service.buffer_after,
        quantity=occupancy_weight(service, reservation.quantity_reserved),
        reservation_id=reservation.id,
    )


def effective_window(
    service: InventoryService, start: datetime, end: datetime
) -> tuple[datetime, datetime]:
    """Range a prospective reservation would occupy, buffers included."""
    return start - service.buffer_before, end + service.buffer_after


def lookup_window(
    service: InventoryService, start: datetime, end: datetime
) -> tuple[datetime, datetime]:
    """Raw reservation range to query so every buffer-extended overlap with [start, end) is found."""
    return start - service.buffer_after, end + service.buffer_before


class OccupancyTimeline:
    """Step function of concurrent usage.

    levels[i] is the usage on [times[i], times[i + 1]); usage before
    times[0] and after the last breakpoint is zero.
    """

    def __init__(self, occupancies: Iterable[Occupancy]):
        deltas: dict[datetime, int] = defaultdict(int)
        for occupancy in occupancies:
            if occupancy.end <= occupancy.start or occupancy.quantity <= 0:
                continue
            deltas[occupancy.start] += occupancy.quantity
            deltas[occupancy.end] -= occupancy.quantity

        self.times: list[datetime] = sorted(deltas)
        self.levels: list[int] = []
        running = 0
        for time in self.times:
            # Ends and starts at the same instant net out: ranges are half-open
            running += deltas[time]
            self.levels.append(running)

    def __len__(self) -> int:
        return len(self.times)

    def level_at(self, instant: datetime) -> int:
        """Usage at a single instant."""
        index = bisect_right(self.times, instant) - 1
        if index < 0:
            return 0
        return self.levels[index]

    def peak(self, start: datetime, end: datetime) -> int:
        """Maximum concurrent usage at any instant of [start, end)."""
        if end <= start:
            return 0
        peak = self.level_at(start)
        first = bisect_right(self.times, start)
        last = bisect_left(self.times, end)
        for index in range(first, last):
            if self.levels[index] > peak:
                peak = self.levels[index]
        return peak
