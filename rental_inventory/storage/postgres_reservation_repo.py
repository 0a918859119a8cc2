"""PostgreSQL repository for Reservation entities."""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rental_inventory.logging import get_logger
from rental_inventory.models.reservation import (
    Reservation,
    ReservationFilters,
    ReservationStatus,
    ReservationType,
)
from rental_inventory.storage.db_models import ReservationTable
from rental_inventory.storage.repository_base import RepositoryBase

logger = get_logger(__name__)


class PostgresReservationRepository(RepositoryBase[Reservation]):
    """Reservation repository using PostgreSQL."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[Reservation]:
        """Retrieve reservation by ID."""
        db_reservation = await self._fetch(id)

        if not db_reservation:
            return None

        return self._to_domain_model(db_reservation)

    async def create(self, entity: Reservation) -> Reservation:
        """Insert a fully validated reservation."""
        db_reservation = ReservationTable(
            id=entity.id,
            service_id=entity.service_id,
            start_date=entity.start_date,
            end_date=entity.end_date,
            quantity_reserved=entity.quantity_reserved,
            status=entity.status,
            type=entity.type,
            booking_id=entity.booking_id,
            customer_id=entity.customer_id,
            expires_at=entity.expires_at,
            notes=entity.notes,
            created_at=entity.created_at,
        )

        self.session.add(db_reservation)
        await self.session.flush()

        logger.info(
            "reservation_inserted",
            reservation_id=str(db_reservation.id),
            service_id=str(entity.service_id),
            type=entity.type.value,
            quantity=entity.quantity_reserved,
        )

        return self._to_domain_model(db_reservation)

    async def update(self, entity: Reservation) -> Reservation:
        """Persist dates, quantity, status and linkage of an existing reservation."""
        db_reservation = await self._fetch(entity.id)

        if not db_reservation:
            raise ValueError(f"Reservation not found: {entity.id}")

        db_reservation.start_date = entity.start_date
        db_reservation.end_date = entity.end_date
        db_reservation.quantity_reserved = entity.quantity_reserved
        db_reservation.status = entity.status
        db_reservation.type = entity.type
        db_reservation.booking_id = entity.booking_id
        db_reservation.customer_id = entity.customer_id
        db_reservation.expires_at = entity.expires_at
        db_reservation.notes = entity.notes
        db_reservation.cancellation_reason = entity.cancellation_reason
        db_reservation.cancelled_at = entity.cancelled_at
        db_reservation.updated_at = entity.updated_at or datetime.utcnow()

        await self.session.flush()

        logger.info(
            "reservation_persisted",
            reservation_id=str(entity.id),
            status=entity.status.value,
        )

        return self._to_domain_model(db_reservation)

    async def delete(self, id: UUID) -> bool:
        """Hard-delete a reservation. The API cancels instead."""
        db_reservation = await self._fetch(id)

        if not db_reservation:
            return False

        await self.session.delete(db_reservation)
        await self.session.flush()

        logger.info("reservation_deleted", reservation_id=str(id))

        return True

    async def get_overlapping(
        self,
        service_id: UUID,
        start: datetime,
        end: datetime,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> list[Reservation]:
        """Get reservations whose [start_date, end_date) intersects [start, end)."""
        stmt = (
            select(ReservationTable)
            .where(ReservationTable.service_id == service_id)
            .where(ReservationTable.start_date < end)
            .where(ReservationTable.end_date > start)
        )
        if statuses is not None:
            stmt = stmt.where(ReservationTable.status.in_(list(statuses)))
        stmt = stmt.order_by(ReservationTable.start_date.asc(), ReservationTable.id.asc())

        result = await self.session.execute(stmt)
        return [self._to_domain_model(db_res) for db_res in result.scalars().all()]

    async def get_by_booking_id(self, booking_id: UUID) -> Optional[Reservation]:
        """Get the most recent reservation linked to a booking."""
        stmt = (
            select(ReservationTable)
            .where(ReservationTable.booking_id == booking_id)
            .order_by(ReservationTable.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()

        if not db_reservation:
            return None

        return self._to_domain_model(db_reservation)

    async def get_expired_soft_holds(self, now: datetime, limit: int = 500) -> list[Reservation]:
        """Get pending soft holds whose expiry has passed."""
        stmt = (
            select(ReservationTable)
            .where(ReservationTable.type == ReservationType.SOFT_HOLD)
            .where(ReservationTable.status == ReservationStatus.PENDING)
            .where(ReservationTable.expires_at.is_not(None))
            .where(ReservationTable.expires_at <= now)
            .order_by(ReservationTable.expires_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain_model(db_res) for db_res in result.scalars().all()]

    async def search(
        self, filters: ReservationFilters, now: datetime
    ) -> tuple[list[Reservation], int]:
        """Filter reservations, newest start first. Returns (page items, total count)."""
        conditions = []
        if filters.service_id is not None:
            conditions.append(ReservationTable.service_id == filters.service_id)
        if filters.statuses:
            conditions.append(ReservationTable.status.in_(filters.statuses))
        if filters.types:
            conditions.append(ReservationTable.type.in_(filters.types))
        if filters.start_date_from is not None:
            conditions.append(ReservationTable.start_date >= filters.start_date_from)
        if filters.start_date_to is not None:
            conditions.append(ReservationTable.start_date <= filters.start_date_to)
        if filters.end_date_from is not None:
            conditions.append(ReservationTable.end_date >= filters.end_date_from)
        if filters.end_date_to is not None:
            conditions.append(ReservationTable.end_date <= filters.end_date_to)
        if filters.customer_id is not None:
            conditions.append(ReservationTable.customer_id == filters.customer_id)
        if not filters.include_expired:
            conditions.append(
                or_(
                    ReservationTable.type != ReservationType.SOFT_HOLD,
                    ReservationTable.expires_at.is_(None),
                    ReservationTable.expires_at > now,
                )
            )

        count_stmt = select(func.count()).select_from(ReservationTable).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(ReservationTable)
            .where(*conditions)
            .order_by(ReservationTable.start_date.desc(), ReservationTable.id.asc())
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
        )
        result = await self.session.execute(stmt)
        items = [self._to_domain_model(db_res) for db_res in result.scalars().all()]

        return items, total

    async def _fetch(self, id: UUID) -> Optional[ReservationTable]:
        stmt = select(ReservationTable).where(ReservationTable.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_domain_model(self, db_reservation: ReservationTable) -> Reservation:
        """Convert database model to domain model."""
        return Reservation(
            id=db_reservation.id,
            service_id=db_reservation.service_id,
            start_date=db_reservation.start_date,
            end_date=db_reservation.end_date,
            quantity_reserved=db_reservation.quantity_reserved,
            status=db_reservation.status,
            type=db_reservation.type,
            booking_id=db_reservation.booking_id,
            customer_id=db_reservation.customer_id,
            expires_at=db_reservation.expires_at,
            notes=db_reservation.notes,
            cancellation_reason=db_reservation.cancellation_reason,
            cancelled_at=db_reservation.cancelled_at,
            created_at=db_reservation.created_at,
            updated_at=db_reservation.updated_at,
        )
