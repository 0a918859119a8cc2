"""Catalog sync and inventory block endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from rental_inventory.api.dependencies import get_actor_id, get_engine
from rental_inventory.engine import InventoryEngine
from rental_inventory.handlers.inventory.schemas import BlockRequest
from rental_inventory.models.reservation import Reservation
from rental_inventory.models.service import InventoryService, InventoryServiceInput

router = APIRouter(tags=["inventory-services"])


@router.put("/services/{service_id}", response_model=InventoryService)
async def sync_service(
    service_id: UUID,
    payload: InventoryServiceInput,
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> InventoryService:
    """Create or replace the engine's copy of a catalog service."""
    service = InventoryService(id=service_id, **payload.model_dump())
    return await engine.store.sync_service(service, actor_id=actor_id)


@router.get("/services/{service_id}", response_model=InventoryService)
async def get_service(
    service_id: UUID,
    engine: InventoryEngine = Depends(get_engine),
) -> InventoryService:
    return await engine.store.get_service(service_id)


@router.post(
    "/services/{service_id}/block",
    response_model=Reservation,
    status_code=status.HTTP_201_CREATED,
)
async def block_inventory(
    service_id: UUID,
    request: BlockRequest,
    engine: InventoryEngine = Depends(get_engine),
    actor_id: Optional[str] = Depends(get_actor_id),
) -> Reservation:
    """Take units out of circulation for maintenance or a manual block."""
    return await engine.lifecycle.block_inventory(
        service_id,
        request.start_date,
        request.end_date,
        request.quantity,
        block_type=request.type,
        reason=request.reason,
        actor_id=actor_id,
    )
