"""Inventory handlers mounted under /vendor/inventory."""

from fastapi import APIRouter

from .availability_handler import router as availability_router
from .booking_handler import router as booking_router
from .calendar_handler import router as calendar_router
from .reservation_handler import router as reservation_router
from .service_handler import router as service_router

inventory_router = APIRouter(prefix="/vendor/inventory")
inventory_router.include_router(calendar_router)
inventory_router.include_router(availability_router)
inventory_router.include_router(service_router)
inventory_router.include_router(reservation_router)
inventory_router.include_router(booking_router)

__all__ = ["inventory_router"]
