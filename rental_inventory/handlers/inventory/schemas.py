"""Request bodies for the inventory endpoints."""

from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from pydantic import Field, field_validator

from rental_inventory.errors import InvalidRange
from rental_inventory.models.base import CamelModel, to_naive_utc
from rental_inventory.models.reservation import BLOCKING_TYPES, ReservationStatus, ReservationType


def parse_range_bound(value: str) -> Union[date, datetime]:
    """Parse a calendar bound: a bare ISO date or an ISO instant."""
    try:
        if "T" not in value and " " not in value:
            return date.fromisoformat(value)
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError as e:
        raise InvalidRange(f"Invalid date or instant: {value!r}") from e


class AvailabilityRequest(CamelModel):
    """Availability check for a prospective reservation."""

    start_date: datetime
    end_date: datetime
    quantity: int = 1
    exclude_reservation_id: Optional[UUID] = None


class StatusChangeRequest(CamelModel):
    """Status transition request."""

    status: ReservationStatus
    reason: Optional[str] = Field(default=None, max_length=500)


class SoftHoldRequest(CamelModel):
    """Checkout soft hold."""

    service_id: UUID
    start_date: datetime
    end_date: datetime
    quantity: int
    customer_id: Optional[UUID] = None
    booking_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None
    ttl_seconds: Optional[int] = Field(default=None, gt=0)


class ConfirmBookingRequest(CamelModel):
    """Booking confirmation sent after payment capture.

    Range and quantity are only needed when no soft hold exists.
    """

    service_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    quantity: Optional[int] = None
    customer_id: Optional[UUID] = None
    soft_hold_id: Optional[UUID] = None


class BlockRequest(CamelModel):
    """Maintenance window or manual block."""

    start_date: datetime
    end_date: datetime
    quantity: int
    type: ReservationType = ReservationType.MAINTENANCE
    reason: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("type")
    @classmethod
    def validate_block_type(cls, v: ReservationType) -> ReservationType:
        if v not in BLOCKING_TYPES:
            raise ValueError("type must be Maintenance or Blocked")
        return v
