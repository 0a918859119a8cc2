"""Unit tests for the availability calculator.

Pure evaluation is tested directly; store access is exercised with mocks
to verify validation happens before any read.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from rental_inventory.errors import InvalidQuantity, InvalidRange, NotFound
from rental_inventory.models.reservation import Reservation, ReservationStatus, ReservationType
from rental_inventory.models.service import InventoryService
from rental_inventory.services.availability_calculator import (
    AvailabilityCalculator,
    validate_quantity,
    validate_range,
)

JAN = lambda day: datetime(2026, 1, day)  # noqa: E731


@pytest.fixture
def service():
    return InventoryService(id=uuid4(), name="Paddle board", inventory_quantity=5)


@pytest.fixture
def calculator():
    return AvailabilityCalculator(MagicMock(), conflict_limit=3)


def booking(service, start, end, quantity, status=ReservationStatus.CONFIRMED):
    return Reservation(
        service_id=service.id,
        start_date=start,
        end_date=end,
        quantity_reserved=quantity,
        status=status,
        type=ReservationType.BOOKING,
    )


class TestValidation:
    """Synchronous request validation."""

    def test_zero_length_range_rejected(self):
        with pytest.raises(InvalidRange):
            validate_range(JAN(1), JAN(1))

    def test_inverted_range_rejected(self):
        with pytest.raises(InvalidRange):
            validate_range(JAN(3), JAN(1))

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None])
    def test_non_positive_or_non_integer_quantity_rejected(self, quantity):
        with pytest.raises(InvalidQuantity):
            validate_quantity(quantity)

    def test_quantity_above_capacity_rejected(self):
        with pytest.raises(InvalidQuantity):
            validate_quantity(6, capacity=5)

    def test_quantity_at_capacity_accepted(self):
        validate_quantity(5, capacity=5)


class TestEvaluate:
    """Capacity arithmetic over known reservations."""

    def test_no_reservations_means_full_capacity(self, calculator, service):
        result = calculator.evaluate(service, [], JAN(1), JAN(2), 5)

        assert result.is_available
        assert result.available_quantity == 5
        assert result.conflicts == []

    def test_minimum_availability_over_range(self, calculator, service):
        reservations = [
            booking(service, JAN(1), JAN(3), 2),
            booking(service, JAN(2), JAN(4), 2),
        ]

        result = calculator.evaluate(service, reservations, JAN(1), JAN(5), 1)

        assert result.available_quantity == 1
        assert result.is_available

    def test_unavailable_reports_sorted_conflicts(self, calculator, service):
        late = booking(service, JAN(3), JAN(6), 2)
        early = booking(service, JAN(1), JAN(4), 3)

        result = calculator.evaluate(service, [late, early], JAN(3), JAN(4), 1)

        assert not result.is_available
        assert result.available_quantity == 0
        assert [c.reservation_id for c in result.conflicts] == [early.id, late.id]
        assert result.has_more is False
        assert "Only 0 of 5" in result.message

    def test_inactive_reservations_do_not_count(self, calculator, service):
        reservations = [
            booking(service, JAN(1), JAN(3), 5, status=ReservationStatus.CANCELLED),
            booking(service, JAN(1), JAN(3), 5, status=ReservationStatus.COMPLETED),
            booking(service, JAN(1), JAN(3), 5, status=ReservationStatus.NO_SHOW),
        ]

        result = calculator.evaluate(service, reservations, JAN(1), JAN(3), 5)

        assert result.is_available
        assert result.available_quantity == 5

    def test_excluded_reservation_is_ignored(self, calculator, service):
        own = booking(service, JAN(1), JAN(3), 5)

        result = calculator.evaluate(service, [own], JAN(1), JAN(3), 5, exclude_reservation_id=own.id)

        assert result.is_available

    def test_adjacent_full_capacity_bookings_fit(self, calculator, service):
        result = calculator.evaluate(service, [booking(service, JAN(1), JAN(3), 5)], JAN(3), JAN(5), 5)

        assert result.is_available

    def test_buffer_after_blocks_same_day_turnaround(self, calculator):
        service = InventoryService(id=uuid4(), inventory_quantity=1, buffer_time_after=24 * 60)
        existing = [booking(service, JAN(1), JAN(3), 1)]

        assert not calculator.evaluate(service, existing, JAN(3), JAN(5), 1).is_available
        assert calculator.evaluate(service, existing, JAN(4), JAN(6), 1).is_available

    def test_buffer_before_of_request_is_honored(self, calculator):
        service = InventoryService(id=uuid4(), inventory_quantity=1, buffer_time_before=24 * 60)
        existing = [booking(service, JAN(5), JAN(7), 1)]

        # Request ends Jan 4; the existing rental needs Jan 4 for preparation
        assert not calculator.evaluate(service, existing, JAN(2), JAN(5), 1).is_available
        assert calculator.evaluate(service, existing, JAN(1), JAN(4), 1).is_available

    def test_conflicts_capped_with_has_more(self, calculator):
        service = InventoryService(id=uuid4(), inventory_quantity=10)
        existing = [booking(service, JAN(1), JAN(2), 2) for _ in range(5)]

        result = calculator.evaluate(service, existing, JAN(1), JAN(2), 1)

        assert not result.is_available
        assert len(result.conflicts) == 3
        assert result.has_more

    def test_exclusive_service_allows_one_rental_at_a_time(self, calculator):
        service = InventoryService(
            id=uuid4(), inventory_quantity=3, allow_simultaneous_bookings=False
        )
        existing = [booking(service, JAN(1), JAN(3), 1)]

        result = calculator.evaluate(service, existing, JAN(2), JAN(4), 1)

        assert not result.is_available
        assert result.available_quantity == 0
        assert calculator.evaluate(service, existing, JAN(3), JAN(4), 1).is_available


class TestCheckAvailability:
    """Store-backed checks."""

    @pytest.mark.asyncio
    async def test_invalid_range_rejected_before_store_access(self):
        gateway = MagicMock()
        gateway.read = AsyncMock()
        calculator = AvailabilityCalculator(gateway)

        with pytest.raises(InvalidRange):
            await calculator.check_availability(uuid4(), JAN(2), JAN(1), 1)

        gateway.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_quantity_rejected_before_store_access(self):
        gateway = MagicMock()
        gateway.read = AsyncMock()
        calculator = AvailabilityCalculator(gateway)

        with pytest.raises(InvalidQuantity):
            await calculator.check_availability(uuid4(), JAN(1), JAN(2), 0)

        gateway.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_service_is_not_found(self, engine):
        with pytest.raises(NotFound):
            await engine.calculator.check_availability(uuid4(), JAN(1), JAN(2), 1)

    @pytest.mark.asyncio
    async def test_quantity_above_capacity(self, engine, make_service):
        service = make_service(inventory_quantity=2)

        with pytest.raises(InvalidQuantity):
            await engine.calculator.check_availability(service.id, JAN(1), JAN(2), 3)

    @pytest.mark.asyncio
    async def test_reads_buffered_neighbours_from_store(self, engine, make_service, memory_db):
        service = make_service(inventory_quantity=1, buffer_time_after=24 * 60)
        existing = booking(service, JAN(1), JAN(3), 1)
        memory_db.reservations[existing.id] = existing

        result = await engine.calculator.check_availability(service.id, JAN(3), JAN(4), 1)

        assert not result.is_available
        assert result.conflicts[0].reservation_id == existing.id
        assert result.checked_start_date == JAN(3)
