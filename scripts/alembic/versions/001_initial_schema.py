"""Initial schema with inventory services and reservations

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""
    # Create enum types
    op.execute("CREATE TYPE rentalperiodunit AS ENUM ('Hour', 'Day', 'Week', 'Month')")
    op.execute(
        "CREATE TYPE reservationstatus AS ENUM "
        "('Pending', 'Confirmed', 'InUse', 'Completed', 'Cancelled', 'NoShow')"
    )
    op.execute("CREATE TYPE reservationtype AS ENUM ('SoftHold', 'Booking', 'Maintenance', 'Blocked')")

    # Create inventory_services table
    op.create_table(
        'inventory_services',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('inventory_quantity', sa.Integer(), nullable=False),
        sa.Column('rental_period_unit', postgresql.ENUM('Hour', 'Day', 'Week', 'Month', name='rentalperiodunit', create_type=False), nullable=False),
        sa.Column('minimum_rental_period', sa.Integer(), nullable=False),
        sa.Column('buffer_time_before', sa.Integer(), nullable=False),
        sa.Column('buffer_time_after', sa.Integer(), nullable=False),
        sa.Column('allow_simultaneous_bookings', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('inventory_quantity > 0', name='check_positive_inventory_quantity'),
        sa.CheckConstraint('minimum_rental_period >= 1', name='check_minimum_rental_period'),
        sa.CheckConstraint('buffer_time_before >= 0', name='check_nonnegative_buffer_before'),
        sa.CheckConstraint('buffer_time_after >= 0', name='check_nonnegative_buffer_after'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('quantity_reserved', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM('Pending', 'Confirmed', 'InUse', 'Completed', 'Cancelled', 'NoShow', name='reservationstatus', create_type=False), nullable=False),
        sa.Column('type', postgresql.ENUM('SoftHold', 'Booking', 'Maintenance', 'Blocked', name='reservationtype', create_type=False), nullable=False),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('start_date < end_date', name='check_reservation_range'),
        sa.CheckConstraint('quantity_reserved > 0', name='check_positive_quantity_reserved'),
        sa.ForeignKeyConstraint(['service_id'], ['inventory_services.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reservations_service_range', 'reservations', ['service_id', 'start_date', 'end_date'])
    op.create_index('ix_reservations_service_status', 'reservations', ['service_id', 'status'])
    op.create_index('ix_reservations_hold_expiry', 'reservations', ['type', 'status', 'expires_at'])
    op.create_index('ix_reservations_booking_id', 'reservations', ['booking_id'])
    op.create_index('ix_reservations_customer_id', 'reservations', ['customer_id'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index('ix_reservations_customer_id', table_name='reservations')
    op.drop_index('ix_reservations_booking_id', table_name='reservations')
    op.drop_index('ix_reservations_hold_expiry', table_name='reservations')
    op.drop_index('ix_reservations_service_status', table_name='reservations')
    op.drop_index('ix_reservations_service_range', table_name='reservations')
    op.drop_table('reservations')
    op.drop_table('inventory_services')

    op.execute('DROP TYPE reservationtype')
    op.execute('DROP TYPE reservationstatus')
    op.execute('DROP TYPE rentalperiodunit')
