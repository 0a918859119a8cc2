"""SQLAlchemy database models.

Maps domain models to PostgreSQL tables.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, relationship

from rental_inventory.models.reservation import ReservationStatus, ReservationType
from rental_inventory.models.service import RentalPeriodUnit


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class InventoryServiceTable(Base):
    """Rental service capacity and buffer configuration synced from the catalog."""

    __tablename__ = "inventory_services"

    id = Column(PG_UUID(as_uuid=True), primary_key=True)
    name = Column(String(200), nullable=False, default="")
    inventory_quantity = Column(Integer, nullable=False)
    rental_period_unit = Column(
        Enum(RentalPeriodUnit, native_enum=True, values_callable=_enum_values),
        nullable=False,
        default=RentalPeriodUnit.DAY,
    )
    minimum_rental_period = Column(Integer, nullable=False, default=1)
    buffer_time_before = Column(Integer, nullable=False, default=0)
    buffer_time_after = Column(Integer, nullable=False, default=0)
    allow_simultaneous_bookings = Column(Boolean, nullable=False, default=True)
    status = Column(String(50), nullable=False, default="Active")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reservations = relationship("ReservationTable", back_populates="service", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("inventory_quantity > 0", name="check_positive_inventory_quantity"),
        CheckConstraint("minimum_rental_period >= 1", name="check_minimum_rental_period"),
        CheckConstraint("buffer_time_before >= 0", name="check_nonnegative_buffer_before"),
        CheckConstraint("buffer_time_after >= 0", name="check_nonnegative_buffer_after"),
    )


class ReservationTable(Base):
    """Reservation entity table."""

    __tablename__ = "reservations"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    service_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("inventory_services.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    quantity_reserved = Column(Integer, nullable=False)
    status = Column(
        Enum(ReservationStatus, native_enum=True, values_callable=_enum_values),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    type = Column(
        Enum(ReservationType, native_enum=True, values_callable=_enum_values),
        nullable=False,
        default=ReservationType.BOOKING,
    )
    booking_id = Column(PG_UUID(as_uuid=True), nullable=True)
    customer_id = Column(PG_UUID(as_uuid=True), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    # Relationships
    service = relationship("InventoryServiceTable", back_populates="reservations")

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="check_reservation_range"),
        CheckConstraint("quantity_reserved > 0", name="check_positive_quantity_reserved"),
        Index("ix_reservations_service_range", service_id, start_date, end_date),
        Index("ix_reservations_service_status", service_id, status),
        Index("ix_reservations_hold_expiry", type, status, expires_at),
        Index("ix_reservations_booking_id", booking_id),
        Index("ix_reservations_customer_id", customer_id),
    )
