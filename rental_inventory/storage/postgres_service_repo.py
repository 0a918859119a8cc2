"""PostgreSQL repository for rental service records."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rental_inventory.logging import get_logger
from rental_inventory.models.service import InventoryService
from rental_inventory.storage.db_models import InventoryServiceTable
from rental_inventory.storage.repository_base import RepositoryBase

logger = get_logger(__name__)


class PostgresServiceRepository(RepositoryBase[InventoryService]):
    """Service repository using PostgreSQL."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[InventoryService]:
        """Retrieve service by ID."""
        db_service = await self._fetch(id)
        if not db_service:
            return None
        return self._to_domain_model(db_service)

    async def get_for_update(self, id: UUID) -> Optional[InventoryService]:
        """Retrieve service and lock its row until the transaction ends.

        Serializes capacity checks for the same service at the database level.
        """
        stmt = (
            select(InventoryServiceTable)
            .where(InventoryServiceTable.id == id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        db_service = result.scalar_one_or_none()

        if not db_service:
            return None

        return self._to_domain_model(db_service)

    async def create(self, entity: InventoryService) -> InventoryService:
        """Create new service record."""
        db_service = InventoryServiceTable(id=entity.id)
        self._apply(db_service, entity)

        self.session.add(db_service)
        await self.session.flush()

        logger.info(
            "service_created",
            service_id=str(entity.id),
            capacity=entity.inventory_quantity,
        )

        return self._to_domain_model(db_service)

    async def update(self, entity: InventoryService) -> InventoryService:
        """Update existing service record."""
        db_service = await self._fetch(entity.id)

        if not db_service:
            raise ValueError(f"Service not found: {entity.id}")

        self._apply(db_service, entity)
        await self.session.flush()

        logger.info(
            "service_updated",
            service_id=str(entity.id),
            capacity=entity.inventory_quantity,
        )

        return self._to_domain_model(db_service)

    async def upsert(self, entity: InventoryService) -> InventoryService:
        """Create or replace service record (catalog sync)."""
        if await self._fetch(entity.id) is None:
            return await self.create(entity)
        return await self.update(entity)

    async def delete(self, id: UUID) -> bool:
        """Delete service record by ID."""
        db_service = await self._fetch(id)

        if not db_service:
            return False

        await self.session.delete(db_service)
        await self.session.flush()

        logger.info("service_deleted", service_id=str(id))

        return True

    async def _fetch(self, id: UUID) -> Optional[InventoryServiceTable]:
        stmt = select(InventoryServiceTable).where(InventoryServiceTable.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _apply(self, db_service: InventoryServiceTable, entity: InventoryService) -> None:
        db_service.name = entity.name
        db_service.inventory_quantity = entity.inventory_quantity
        db_service.rental_period_unit = entity.rental_period_unit
        db_service.minimum_rental_period = entity.minimum_rental_period
        db_service.buffer_time_before = entity.buffer_time_before
        db_service.buffer_time_after = entity.buffer_time_after
        db_service.allow_simultaneous_bookings = entity.allow_simultaneous_bookings
        db_service.status = entity.status

    def _to_domain_model(self, db_service: InventoryServiceTable) -> InventoryService:
        """Convert database model to domain model."""
        return InventoryService(
            id=db_service.id,
            name=db_service.name,
            inventory_quantity=db_service.inventory_quantity,
            rental_period_unit=db_service.rental_period_unit,
            minimum_rental_period=db_service.minimum_rental_period,
            buffer_time_before=db_service.buffer_time_before,
            buffer_time_after=db_service.buffer_time_after,
            allow_simultaneous_bookings=db_service.allow_simultaneous_bookings,
            status=db_service.status,
        )
