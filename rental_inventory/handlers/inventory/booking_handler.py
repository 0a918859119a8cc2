"""Checkout endpoints: soft holds and booking confirmation."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Response, status

from rental_inventory.api.dependencies import get_actor_id, get_engine
from rental_inventory.engine import InventoryEngine
from rental_inventory.handlers.inventory.schemas import ConfirmBookingRequest, SoftHoldRequest
from rental_inventory.models.reservation import BookingConfirmation, Reservation

router = APIRouter(tags=["inventory-checkout"])


@router.post("/soft-holds", response_model=Reservation, status_code=status.HTTP_201_CREATED)
async def place_soft_hold(
    request: SoftHoldRequest,
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> Reservation:
    """Hold units while the customer pays; released automatically on expiry."""
    return await engine.lifecycle.place_soft_hold(
        request.service_id,
        request.start_date,
        request.end_date,
        request.quantity,
        customer_id=request.customer_id,
        booking_id=request.booking_id,
        expires_at=request.expires_at,
        ttl_seconds=request.ttl_seconds,
        actor_id=actor_id,
    )


@router.post("/bookings/{booking_id}/confirm", response_model=BookingConfirmation)
async def confirm_booking(
    booking_id: UUID,
    response: Response,
    request: Optional[ConfirmBookingRequest] = Body(default=None),
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> BookingConfirmation:
    """Confirm a booking after payment capture. Idempotent per booking id.

    201 when a reservation was confirmed or created, 200 on replay.
    """
    request = request or ConfirmBookingRequest()
    result = await engine.lifecycle.confirm_booking(
        booking_id,
        service_id=request.service_id,
        start_date=request.start_date,
        end_date=request.end_date,
        quantity=request.quantity,
        customer_id=request.customer_id,
        soft_hold_id=request.soft_hold_id,
        actor_id=actor_id,
    )
    response.status_code = status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
    return result
