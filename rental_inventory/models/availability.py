"""Derived availability models (never persisted)."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from rental_inventory.models.base import CamelModel
from rental_inventory.models.reservation import Reservation, ReservationStatus, ReservationType


class CalendarGranularity(str, Enum):
    """Calendar bucket size."""

    HOUR = "Hour"
    DAY = "Day"
    WEEK = "Week"

    @property
    def step(self) -> timedelta:
        if self == CalendarGranularity.HOUR:
            return timedelta(hours=1)
        if self == CalendarGranularity.WEEK:
            return timedelta(weeks=1)
        return timedelta(days=1)


class ConflictingReservation(CamelModel):
    """Existing reservation that prevents a request from fitting."""

    reservation_id: UUID
    start_date: datetime
    end_date: datetime
    quantity_reserved: int
    status: ReservationStatus
    type: ReservationType

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "ConflictingReservation":
        return cls(
            reservation_id=reservation.id,
            start_date=reservation.start_date,
            end_date=reservation.end_date,
            quantity_reserved=reservation.quantity_reserved,
            status=reservation.status,
            type=reservation.type,
        )


class AvailabilityResult(CamelModel):
    """Outcome of an availability check for a range and quantity."""

    is_available: bool
    available_quantity: int
    requested_quantity: int
    checked_start_date: datetime
    checked_end_date: datetime
    message: Optional[str] = None
    conflicts: list[ConflictingReservation] = Field(default_factory=list)
    has_more: bool = False


class AvailabilitySlot(CamelModel):
    """Aggregated availability for one calendar bucket."""

    slot_start: datetime
    slot_end: datetime
    total_quantity: int
    reserved_quantity: int
    available_quantity: int
    is_fully_booked: bool
