"""Models package - Pydantic domain models."""

from .availability import (
    AvailabilityResult,
    AvailabilitySlot,
    CalendarGranularity,
    ConflictingReservation,
)
from .reservation import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingConfirmation,
    Reservation,
    ReservationFilters,
    ReservationInput,
    ReservationListItem,
    ReservationPage,
    ReservationStatus,
    ReservationType,
    ReservationUpdate,
)
from .service import InventoryService, InventoryServiceInput, RentalPeriodUnit

__all__ = [
    "ACTIVE_STATUSES",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "AvailabilityResult",
    "AvailabilitySlot",
    "BookingConfirmation",
    "CalendarGranularity",
    "ConflictingReservation",
    "InventoryService",
    "InventoryServiceInput",
    "RentalPeriodUnit",
    "Reservation",
    "ReservationFilters",
    "ReservationInput",
    "ReservationListItem",
    "ReservationPage",
    "ReservationStatus",
    "ReservationType",
    "ReservationUpdate",
]
