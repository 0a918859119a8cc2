"""Availability check endpoints used before submitting a reservation."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from rental_inventory.api.dependencies import get_engine
from rental_inventory.engine import InventoryEngine
from rental_inventory.handlers.inventory.schemas import AvailabilityRequest
from rental_inventory.models.availability import AvailabilityResult
from rental_inventory.models.base import to_naive_utc

router = APIRouter(tags=["inventory-availability"])


@router.get("/services/{service_id}/availability", response_model=AvailabilityResult)
async def check_availability_query(
    service_id: UUID,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    quantity: int = Query(1),
    exclude_reservation_id: Optional[UUID] = Query(None, alias="excludeReservationId"),
    engine: InventoryEngine = Depends(get_engine),
) -> AvailabilityResult:
    return await engine.calculator.check_availability(
        service_id,
        to_naive_utc(start_date),
        to_naive_utc(end_date),
        quantity,
        exclude_reservation_id,
    )


@router.post("/services/{service_id}/availability", response_model=AvailabilityResult)
async def check_availability(
    service_id: UUID,
    request: AvailabilityRequest,
    engine: InventoryEngine = Depends(get_engine),
) -> AvailabilityResult:
    """Check whether quantity units are free for the whole range.

    Always 200: an unavailable result carries the conflicting reservations.
    """
    return await engine.calculator.check_availability(
        service_id,
        request.start_date,
        request.end_date,
        request.quantity,
        request.exclude_reservation_id,
    )
