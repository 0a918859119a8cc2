"""Rental service (catalog item) domain model."""

from datetime import timedelta
from enum import Enum
from uuid import UUID

from pydantic import Field

from rental_inventory.models.base import CamelModel


class RentalPeriodUnit(str, Enum):
    """Unit the minimum rental period is expressed in."""

    HOUR = "Hour"
    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"

    @property
    def duration(self) -> timedelta:
        """Length of one period unit. Months count as 30 days."""
        return _PERIOD_DURATIONS[self]


_PERIOD_DURATIONS = {
    RentalPeriodUnit.HOUR: timedelta(hours=1),
    RentalPeriodUnit.DAY: timedelta(days=1),
    RentalPeriodUnit.WEEK: timedelta(weeks=1),
    RentalPeriodUnit.MONTH: timedelta(days=30),
}


class InventoryService(CamelModel):
    """Rental service as supplied by the catalog.

    Capacity and buffers are read-only to the engine; they change only
    through an explicit catalog sync.
    """

    id: UUID
    name: str = Field(default="", max_length=200)
    inventory_quantity: int = Field(gt=0, description="Total concurrent units (capacity)")
    rental_period_unit: RentalPeriodUnit = Field(default=RentalPeriodUnit.DAY)
    minimum_rental_period: int = Field(default=1, ge=1)
    buffer_time_before: int = Field(default=0, ge=0, description="Minutes blocked before each rental")
    buffer_time_after: int = Field(default=0, ge=0, description="Minutes blocked after each rental")
    allow_simultaneous_bookings: bool = Field(default=True)
    status: str = Field(default="Active", max_length=50)

    @property
    def capacity(self) -> int:
        return self.inventory_quantity

    @property
    def buffer_before(self) -> timedelta:
        return timedelta(minutes=self.buffer_time_before)

    @property
    def buffer_after(self) -> timedelta:
        return timedelta(minutes=self.buffer_time_after)

    @property
    def minimum_rental_duration(self) -> timedelta:
        return self.rental_period_unit.duration * self.minimum_rental_period


class InventoryServiceInput(CamelModel):
    """Catalog sync payload for creating or replacing a service record."""

    name: str = Field(default="", max_length=200)
    inventory_quantity: int = Field(gt=0)
    rental_period_unit: RentalPeriodUnit = Field(default=RentalPeriodUnit.DAY)
    minimum_rental_period: int = Field(default=1, ge=1)
    buffer_time_before: int = Field(default=0, ge=0)
    buffer_time_after: int = Field(default=0, ge=0)
    allow_simultaneous_bookings: bool = Field(default=True)
    status: str = Field(default="Active", max_length=50)
