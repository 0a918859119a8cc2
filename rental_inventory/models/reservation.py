"""Reservation domain models and status state machine."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import Field, field_validator, model_validator

from rental_inventory.models.base import CamelModel


class ReservationStatus(str, Enum):
    """Reservation status enumeration."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_USE = "InUse"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"

    @property
    def is_active(self) -> bool:
        """Active statuses count against capacity."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, new_status: "ReservationStatus") -> bool:
        return new_status in ALLOWED_TRANSITIONS[self]


class ReservationType(str, Enum):
    """Reservation type enumeration."""

    SOFT_HOLD = "SoftHold"
    BOOKING = "Booking"
    MAINTENANCE = "Maintenance"
    BLOCKED = "Blocked"


ACTIVE_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.IN_USE}
)

TERMINAL_STATUSES = frozenset(
    {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW}
)

MUTABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.IN_USE, ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.IN_USE: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}

# Types that block inventory without a customer rental behind them
BLOCKING_TYPES = frozenset({ReservationType.MAINTENANCE, ReservationType.BLOCKED})


def initial_status_for(reservation_type: ReservationType) -> ReservationStatus:
    """Soft holds start Pending; everything else is confirmed on creation."""
    if reservation_type == ReservationType.SOFT_HOLD:
        return ReservationStatus.PENDING
    return ReservationStatus.CONFIRMED


class Reservation(CamelModel):
    """Reservation of rental inventory over a half-open range [start_date, end_date)."""

    id: UUID = Field(default_factory=uuid4)
    service_id: UUID
    start_date: datetime
    end_date: datetime
    quantity_reserved: int = Field(gt=0)
    status: ReservationStatus = Field(default=ReservationStatus.PENDING)
    type: ReservationType = Field(default=ReservationType.BOOKING)
    booking_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_mutable(self) -> bool:
        """Dates, quantity and notes may only change while Pending or Confirmed."""
        return self.status in MUTABLE_STATUSES

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if this is a soft hold whose expiry has passed."""
        if self.type != ReservationType.SOFT_HOLD or self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.utcnow())

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval intersection with [start, end)."""
        return self.start_date < end and start < self.end_date


class ReservationInput(CamelModel):
    """Input model for reservation creation."""

    service_id: UUID
    start_date: datetime
    end_date: datetime
    quantity_reserved: int
    type: ReservationType = ReservationType.BOOKING
    booking_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_expiry_type(self) -> "ReservationInput":
        """expires_at is only meaningful for soft holds."""
        if self.expires_at is not None and self.type != ReservationType.SOFT_HOLD:
            raise ValueError("expires_at is only allowed for SoftHold reservations")
        return self


class ReservationUpdate(CamelModel):
    """Mutable reservation fields."""

    start_date: datetime
    end_date: datetime
    quantity_reserved: int
    notes: Optional[str] = Field(default=None, max_length=1000)


class ReservationFilters(CamelModel):
    """Filters for listing reservations."""

    service_id: Optional[UUID] = None
    statuses: list[ReservationStatus] = Field(default_factory=list)
    types: list[ReservationType] = Field(default_factory=list)
    start_date_from: Optional[datetime] = None
    start_date_to: Optional[datetime] = None
    end_date_from: Optional[datetime] = None
    end_date_to: Optional[datetime] = None
    customer_id: Optional[UUID] = None
    include_expired: bool = True
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)

    @field_validator("statuses", "types", mode="before")
    @classmethod
    def coerce_single(cls, v):
        """Accept a single value where a list is expected."""
        if v is None:
            return []
        if isinstance(v, (str, Enum)):
            return [v]
        return v


class ReservationListItem(CamelModel):
    """Reservation row for list views."""

    id: UUID
    service_id: UUID
    start_date: datetime
    end_date: datetime
    quantity_reserved: int
    status: ReservationStatus
    type: ReservationType
    customer_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None
    is_expired: bool = False

    @classmethod
    def from_reservation(
        cls, reservation: Reservation, now: Optional[datetime] = None
    ) -> "ReservationListItem":
        return cls(
            id=reservation.id,
            service_id=reservation.service_id,
            start_date=reservation.start_date,
            end_date=reservation.end_date,
            quantity_reserved=reservation.quantity_reserved,
            status=reservation.status,
            type=reservation.type,
            customer_id=reservation.customer_id,
            expires_at=reservation.expires_at,
            is_expired=reservation.is_expired(now),
        )


class ReservationPage(CamelModel):
    """Paginated reservation list."""

    items: list[ReservationListItem]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class BookingConfirmation(CamelModel):
    """Result of confirming a booking; replayed is true for a repeated confirm."""

    reservation: Reservation
    replayed: bool = False
