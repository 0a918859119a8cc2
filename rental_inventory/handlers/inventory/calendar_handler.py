"""Availability calendar endpoint for the dashboard month view."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from rental_inventory.api.dependencies import get_engine
from rental_inventory.engine import InventoryEngine
from rental_inventory.handlers.inventory.schemas import parse_range_bound
from rental_inventory.models.availability import AvailabilitySlot, CalendarGranularity

router = APIRouter(tags=["inventory-calendar"])


@router.get("/services/{service_id}/calendar", response_model=list[AvailabilitySlot])
async def get_calendar(
    service_id: UUID,
    range_start: str = Query(..., alias="rangeStart", description="ISO date or instant"),
    range_end: str = Query(..., alias="rangeEnd", description="ISO date (inclusive day) or instant"),
    granularity: CalendarGranularity = Query(CalendarGranularity.DAY),
    engine: InventoryEngine = Depends(get_engine),
) -> list[AvailabilitySlot]:
    """Per-slot total, reserved and available quantity over the range."""
    calendar = await engine.calendar.get_availability_calendar(
        service_id,
        parse_range_bound(range_start),
        parse_range_bound(range_end),
        granularity,
    )
    return calendar.to_list()
