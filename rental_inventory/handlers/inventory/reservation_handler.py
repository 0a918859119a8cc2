"""Admin reservation CRUD endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from rental_inventory.api.dependencies import get_actor_id, get_engine
from rental_inventory.engine import InventoryEngine
from rental_inventory.handlers.inventory.schemas import StatusChangeRequest
from rental_inventory.models.reservation import (
    Reservation,
    ReservationFilters,
    ReservationInput,
    ReservationPage,
    ReservationStatus,
    ReservationType,
    ReservationUpdate,
)

router = APIRouter(prefix="/reservations", tags=["inventory-reservations"])


@router.get("", response_model=ReservationPage)
async def list_reservations(
    service_id: Optional[UUID] = Query(None, alias="serviceId"),
    statuses: list[ReservationStatus] = Query(default=[], alias="statuses"),
    types: list[ReservationType] = Query(default=[], alias="types"),
    start_date_from: Optional[datetime] = Query(None, alias="startDateFrom"),
    start_date_to: Optional[datetime] = Query(None, alias="startDateTo"),
    end_date_from: Optional[datetime] = Query(None, alias="endDateFrom"),
    end_date_to: Optional[datetime] = Query(None, alias="endDateTo"),
    customer_id: Optional[UUID] = Query(None, alias="customerId"),
    include_expired: bool = Query(True, alias="includeExpired"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200, alias="pageSize"),
    engine: InventoryEngine = Depends(get_engine),
) -> ReservationPage:
    """Filtered, paginated reservations, newest start first."""
    filters = ReservationFilters(
        service_id=service_id,
        statuses=statuses,
        types=types,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        end_date_from=end_date_from,
        end_date_to=end_date_to,
        customer_id=customer_id,
        include_expired=include_expired,
        page=page,
        page_size=page_size,
    )
    return await engine.store.list_reservations(filters)


@router.get("/{reservation_id}", response_model=Reservation)
async def get_reservation(
    reservation_id: UUID,
    engine: InventoryEngine = Depends(get_engine),
) -> Reservation:
    return await engine.store.get(reservation_id)


@router.post("", response_model=Reservation, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    request: ReservationInput,
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> Reservation:
    """Create a reservation; 409 with conflicts when capacity is exceeded."""
    return await engine.store.create(request, actor_id=actor_id)


@router.put("/{reservation_id}", response_model=Reservation)
async def update_reservation(
    reservation_id: UUID,
    request: ReservationUpdate,
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> Reservation:
    """Change dates, quantity or notes of a Pending or Confirmed reservation."""
    return await engine.store.update(reservation_id, request, actor_id=actor_id)


@router.patch("/{reservation_id}/status", response_model=Reservation)
async def change_status(
    reservation_id: UUID,
    request: StatusChangeRequest,
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> Reservation:
    return await engine.store.set_status(
        reservation_id, request.status, actor_id=actor_id, reason=request.reason
    )


@router.delete("/{reservation_id}", response_model=Reservation)
async def cancel_reservation(
    reservation_id: UUID,
    reason: Optional[str] = Query(None, max_length=500),
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> Reservation:
    """Cancel a reservation; the record is kept for history."""
    return await engine.lifecycle.cancel(reservation_id, reason=reason, actor_id=actor_id)
