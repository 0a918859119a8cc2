"""Unit tests for the reservation store.

Uses in-memory repositories and locks; lock failures are simulated with
mocks in the same way as the Redis lock helper behaves.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rental_inventory.errors import (
    CapacityExceeded,
    InvalidQuantity,
    InvalidRange,
    InvalidState,
    InvalidTransition,
    NotFound,
    StoreUnavailable,
)
from rental_inventory.models.reservation import (
    ReservationFilters,
    ReservationInput,
    ReservationStatus,
    ReservationType,
    ReservationUpdate,
)
from rental_inventory.models.service import InventoryService, RentalPeriodUnit
from rental_inventory.services.reservation_store import ReservationStore

NOW = datetime(2026, 5, 20, 12, 0)


def reservation_input(service, start, end, quantity, type=ReservationType.BOOKING, **extra):
    return ReservationInput(
        service_id=service.id,
        start_date=start,
        end_date=end,
        quantity_reserved=quantity,
        type=type,
        **extra,
    )


class TestCreate:
    """Capacity-checked creation."""

    @pytest.mark.asyncio
    async def test_booking_created_confirmed(self, engine, make_service, memory_db, jun):
        service = make_service()

        created = await engine.store.create(
            reservation_input(service, jun(1), jun(3), 2), now=NOW
        )

        assert created.status == ReservationStatus.CONFIRMED
        assert created.type == ReservationType.BOOKING
        assert created.created_at == NOW
        assert memory_db.reservations[created.id] == created

    @pytest.mark.asyncio
    async def test_soft_hold_pending_with_default_expiry(self, engine, make_service, jun):
        service = make_service()

        hold = await engine.store.create(
            reservation_input(service, jun(1), jun(3), 1, type=ReservationType.SOFT_HOLD),
            now=NOW,
        )

        assert hold.status == ReservationStatus.PENDING
        assert hold.expires_at == NOW + timedelta(seconds=900)

    @pytest.mark.asyncio
    async def test_soft_hold_keeps_explicit_expiry(self, engine, make_service, jun):
        service = make_service()
        expires_at = NOW + timedelta(minutes=5)

        hold = await engine.store.create(
            reservation_input(
                service, jun(1), jun(3), 1, type=ReservationType.SOFT_HOLD, expires_at=expires_at
            ),
            now=NOW,
        )

        assert hold.expires_at == expires_at

    @pytest.mark.asyncio
    async def test_maintenance_created_confirmed(self, engine, make_service, jun):
        service = make_service()

        block = await engine.store.create(
            reservation_input(service, jun(1), jun(2), 5, type=ReservationType.MAINTENANCE)
        )

        assert block.status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_capacity_exceeded_carries_conflicts(self, engine, make_service, memory_db, jun):
        service = make_service(inventory_quantity=5)
        existing = await engine.store.create(reservation_input(service, jun(1), jun(10), 4))

        with pytest.raises(CapacityExceeded) as exc_info:
            await engine.store.create(reservation_input(service, jun(5), jun(12), 2))

        assert exc_info.value.available_quantity == 1
        assert [c.reservation_id for c in exc_info.value.conflicts] == [existing.id]
        assert len(memory_db.reservations) == 1
        assert memory_db.rollbacks >= 1

    @pytest.mark.asyncio
    async def test_unknown_service(self, engine, jun):
        service = InventoryService(id=uuid4(), inventory_quantity=1)

        with pytest.raises(NotFound):
            await engine.store.create(reservation_input(service, jun(1), jun(2), 1))

    @pytest.mark.asyncio
    async def test_quantity_above_capacity(self, engine, make_service, jun):
        service = make_service(inventory_quantity=3)

        with pytest.raises(InvalidQuantity):
            await engine.store.create(reservation_input(service, jun(1), jun(2), 4))

    @pytest.mark.asyncio
    async def test_invalid_input_rejected_before_locking(self, engine, make_service, lock_helper, jun):
        service = make_service()

        with pytest.raises(InvalidRange):
            await engine.store.create(reservation_input(service, jun(2), jun(1), 1))
        with pytest.raises(InvalidQuantity):
            await engine.store.create(reservation_input(service, jun(1), jun(2), 0))

        assert lock_helper.acquired == []

    @pytest.mark.asyncio
    async def test_minimum_rental_period_enforced_for_rentals(self, engine, make_service, jun):
        service = make_service(rental_period_unit=RentalPeriodUnit.DAY, minimum_rental_period=2)

        with pytest.raises(InvalidRange):
            await engine.store.create(reservation_input(service, jun(1), jun(2), 1))
        with pytest.raises(InvalidRange):
            await engine.store.create(
                reservation_input(service, jun(1), jun(2), 1, type=ReservationType.SOFT_HOLD)
            )

        booked = await engine.store.create(reservation_input(service, jun(1), jun(3), 1))
        assert booked.end_date - booked.start_date == timedelta(days=2)

    @pytest.mark.asyncio
    async def test_minimum_rental_period_not_applied_to_blocks(self, engine, make_service, jun):
        service = make_service(rental_period_unit=RentalPeriodUnit.WEEK, minimum_rental_period=1)

        block = await engine.store.create(
            reservation_input(service, jun(1, 9), jun(1, 10), 1, type=ReservationType.BLOCKED)
        )

        assert block.type == ReservationType.BLOCKED


class TestLocking:
    """Lock acquisition failures surface as StoreUnavailable."""

    def store_with_lock(self, engine, lock_helper):
        return ReservationStore(engine.gateway, lock_helper, engine.calculator)

    @pytest.mark.asyncio
    async def test_lock_timeout(self, engine, make_service, memory_db, jun):
        service = make_service()
        lock_helper = MagicMock()
        lock_helper.acquire_service_lock.return_value.__aenter__ = AsyncMock(return_value=False)
        lock_helper.acquire_service_lock.return_value.__aexit__ = AsyncMock(return_value=None)
        store = self.store_with_lock(engine, lock_helper)

        with pytest.raises(StoreUnavailable):
            await store.create(reservation_input(service, jun(1), jun(2), 1))

        lock_helper.acquire_service_lock.assert_called_once_with(service.id)
        assert memory_db.reservations == {}

    @pytest.mark.asyncio
    async def test_redis_failure(self, engine, make_service, jun):
        service = make_service()
        lock_helper = MagicMock()
        lock_helper.acquire_service_lock.return_value.__aenter__ = AsyncMock(
            side_effect=RedisConnectionError("connection refused")
        )
        lock_helper.acquire_service_lock.return_value.__aexit__ = AsyncMock(return_value=None)
        store = self.store_with_lock(engine, lock_helper)

        with pytest.raises(StoreUnavailable):
            await store.create(reservation_input(service, jun(1), jun(2), 1))

    @pytest.mark.asyncio
    async def test_store_failure_during_write(self, engine, make_service, memory_db, jun):
        service = make_service()
        memory_db.fail_with = OSError("connection reset")

        with pytest.raises(StoreUnavailable):
            await engine.store.create(reservation_input(service, jun(1), jun(2), 1))


class TestUpdate:
    """Edits of dates, quantity and notes."""

    @pytest.mark.asyncio
    async def test_update_excludes_own_footprint(self, engine, make_service, jun):
        service = make_service(inventory_quantity=5)
        booking = await engine.store.create(reservation_input(service, jun(1), jun(5), 5))

        updated = await engine.store.update(
            booking.id,
            ReservationUpdate(start_date=jun(2), end_date=jun(6), quantity_reserved=5, notes="moved"),
            now=NOW,
        )

        assert updated.start_date == jun(2)
        assert updated.notes == "moved"
        assert updated.updated_at == NOW
        assert updated.status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_update_over_capacity_keeps_original(self, engine, make_service, memory_db, jun):
        service = make_service(inventory_quantity=5)
        first = await engine.store.create(reservation_input(service, jun(1), jun(5), 3))
        await engine.store.create(reservation_input(service, jun(1), jun(5), 2))

        with pytest.raises(CapacityExceeded):
            await engine.store.update(
                first.id,
                ReservationUpdate(start_date=jun(1), end_date=jun(5), quantity_reserved=4),
            )

        assert memory_db.reservations[first.id].quantity_reserved == 3

    @pytest.mark.asyncio
    async def test_update_terminal_reservation_rejected(self, engine, make_service, jun):
        service = make_service()
        booking = await engine.store.create(reservation_input(service, jun(1), jun(2), 1))
        await engine.store.cancel(booking.id)

        with pytest.raises(InvalidState):
            await engine.store.update(
                booking.id,
                ReservationUpdate(start_date=jun(1), end_date=jun(3), quantity_reserved=1),
            )

    @pytest.mark.asyncio
    async def test_update_in_use_rejected(self, engine, make_service, jun):
        service = make_service()
        booking = await engine.store.create(reservation_input(service, jun(1), jun(2), 1))
        await engine.store.set_status(booking.id, ReservationStatus.IN_USE)

        with pytest.raises(InvalidState):
            await engine.store.update(
                booking.id,
                ReservationUpdate(start_date=jun(1), end_date=jun(3), quantity_reserved=1),
            )

    @pytest.mark.asyncio
    async def test_update_unknown_reservation(self, engine, jun):
        with pytest.raises(NotFound):
            await engine.store.update(
                uuid4(), ReservationUpdate(start_date=jun(1), end_date=jun(2), quantity_reserved=1)
            )


class TestSetStatus:
    """Status transitions."""

    @pytest.mark.asyncio
    async def test_confirm_pending_hold(self, engine, make_service, jun):
        service = make_service()
        hold = await engine.store.create(
            reservation_input(service, jun(1), jun(2), 1, type=ReservationType.SOFT_HOLD), now=NOW
        )

        confirmed = await engine.store.set_status(
            hold.id, ReservationStatus.CONFIRMED, now=NOW + timedelta(minutes=1)
        )

        assert confirmed.status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_disallowed_edge(self, engine, make_service, jun):
        service = make_service()
        booking = await engine.store.create(reservation_input(service, jun(1), jun(2), 1))

        with pytest.raises(InvalidTransition) as exc_info:
            await engine.store.set_status(booking.id, ReservationStatus.PENDING)

        assert exc_info.value.current == "Confirmed"
        assert exc_info.value.requested == "Pending"

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, engine, make_service, jun):
        service = make_service()
        booking = await engine.store.create(reservation_input(service, jun(1), jun(2), 1))

        unchanged = await engine.store.set_status(booking.id, ReservationStatus.CONFIRMED)

        assert unchanged == booking

    @pytest.mark.asyncio
    async def test_terminal_to_anything_rejected(self, engine, make_service, jun):
        service = make_service()
        booking = await engine.store.create(reservation_input(service, jun(1), jun(2), 1))
        await engine.store.cancel(booking.id)

        with pytest.raises(InvalidTransition):
            await engine.store.set_status(booking.id, ReservationStatus.CONFIRMED)

    @pytest.mark.asyncio
    async def test_confirming_expired_hold_rejected(self, engine, make_service, jun):
        service = make_service()
        hold = await engine.store.create(
            reservation_input(service, jun(1), jun(2), 1, type=ReservationType.SOFT_HOLD), now=NOW
        )

        with pytest.raises(InvalidState):
            await engine.store.set_status(
                hold.id, ReservationStatus.CONFIRMED, now=NOW + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_cancel_releases_capacity(self, engine, make_service, jun):
        service = make_service(inventory_quantity=2)
        booking = await engine.store.create(reservation_input(service, jun(1), jun(3), 2))

        cancelled = await engine.store.cancel(booking.id, reason="customer request", now=NOW)
        result = await engine.calculator.check_availability(service.id, jun(1), jun(3), 2)

        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.cancelled_at == NOW
        assert cancelled.cancellation_reason == "customer request"
        assert result.is_available

    @pytest.mark.asyncio
    async def test_unknown_reservation(self, engine):
        with pytest.raises(NotFound):
            await engine.store.set_status(uuid4(), ReservationStatus.CANCELLED)


class TestExpireSoftHolds:
    """Expiry sweep."""

    @pytest.mark.asyncio
    async def test_expires_only_lapsed_pending_holds(self, engine, make_service, jun):
        service = make_service()
        lapsed = await engine.store.create(
            reservation_input(
                service, jun(1), jun(2), 1,
                type=ReservationType.SOFT_HOLD, expires_at=NOW - timedelta(seconds=1),
            ),
            now=NOW - timedelta(minutes=10),
        )
        live = await engine.store.create(
            reservation_input(
                service, jun(1), jun(2), 1,
                type=ReservationType.SOFT_HOLD, expires_at=NOW + timedelta(minutes=5),
            ),
            now=NOW - timedelta(minutes=10),
        )

        result = await engine.store.expire_soft_holds(NOW)

        assert result == {"expired": 1, "failed": 0}
        assert (await engine.store.get(lapsed.id)).status == ReservationStatus.CANCELLED
        assert (await engine.store.get(live.id)).status == ReservationStatus.PENDING

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, engine, make_service, jun):
        service = make_service()
        await engine.store.create(
            reservation_input(
                service, jun(1), jun(2), 1,
                type=ReservationType.SOFT_HOLD, expires_at=NOW - timedelta(seconds=1),
            ),
            now=NOW - timedelta(minutes=10),
        )

        assert (await engine.store.expire_soft_holds(NOW))["expired"] == 1
        assert (await engine.store.expire_soft_holds(NOW))["expired"] == 0

    @pytest.mark.asyncio
    async def test_failed_hold_counted_and_sweep_continues(self, engine, make_service, lock_helper, jun):
        ok_service = make_service()
        busy_service = make_service()
        for service in (busy_service, ok_service):
            await engine.store.create(
                reservation_input(
                    service, jun(1), jun(2), 1,
                    type=ReservationType.SOFT_HOLD, expires_at=NOW - timedelta(seconds=1),
                ),
                now=NOW - timedelta(minutes=10),
            )

        lock_helper.wait_timeout_seconds = 0.01
        async with lock_helper.acquire_service_lock(busy_service.id):
            result = await engine.store.expire_soft_holds(NOW)

        assert result == {"expired": 1, "failed": 1}

    @pytest.mark.asyncio
    async def test_sweep_pages_through_every_batch(self, engine, make_service, memory_db, jun):
        service = make_service(inventory_quantity=10)
        for minutes in range(7):
            await engine.store.create(
                reservation_input(
                    service, jun(1), jun(2), 1,
                    type=ReservationType.SOFT_HOLD,
                    expires_at=NOW - timedelta(minutes=minutes + 1),
                ),
                now=NOW - timedelta(minutes=30),
            )
        engine.store.expiry_batch_size = 3

        result = await engine.store.expire_soft_holds(NOW)

        assert result == {"expired": 7, "failed": 0}
        assert all(
            r.status == ReservationStatus.CANCELLED for r in memory_db.reservations.values()
        )

    @pytest.mark.asyncio
    async def test_full_batch_of_failures_ends_sweep(self, engine, make_service, lock_helper, jun):
        service = make_service()
        await engine.store.create(
            reservation_input(
                service, jun(1), jun(2), 1,
                type=ReservationType.SOFT_HOLD, expires_at=NOW - timedelta(seconds=1),
            ),
            now=NOW - timedelta(minutes=10),
        )
        engine.store.expiry_batch_size = 1

        lock_helper.wait_timeout_seconds = 0.01
        async with lock_helper.acquire_service_lock(service.id):
            result = await engine.store.expire_soft_holds(NOW)

        assert result == {"expired": 0, "failed": 1}


class TestReads:
    """Lookups and listings."""

    @pytest.mark.asyncio
    async def test_query_overlapping_filters_and_orders(self, engine, make_service, jun):
        service = make_service(inventory_quantity=10)
        later = await engine.store.create(reservation_input(service, jun(5), jun(8), 1))
        earlier = await engine.store.create(reservation_input(service, jun(1), jun(6), 1))
        cancelled = await engine.store.create(reservation_input(service, jun(2), jun(4), 1))
        await engine.store.cancel(cancelled.id)
        await engine.store.create(reservation_input(service, jun(8), jun(9), 1))

        everything = await engine.store.query_overlapping(service.id, jun(3), jun(8))
        active = await engine.store.query_overlapping(
            service.id, jun(3), jun(8), statuses=[ReservationStatus.CONFIRMED]
        )

        assert [r.id for r in everything] == [earlier.id, cancelled.id, later.id]
        assert [r.id for r in active] == [earlier.id, later.id]

    @pytest.mark.asyncio
    async def test_get_unknown(self, engine):
        with pytest.raises(NotFound):
            await engine.store.get(uuid4())

    @pytest.mark.asyncio
    async def test_list_reservations_paginates(self, engine, make_service, jun):
        service = make_service(inventory_quantity=10)
        for day in range(1, 6):
            await engine.store.create(reservation_input(service, jun(day), jun(day + 1), 1))

        page = await engine.store.list_reservations(
            ReservationFilters(service_id=service.id, page=2, page_size=2)
        )

        assert page.total_count == 5
        assert page.total_pages == 3
        assert [item.start_date for item in page.items] == [jun(3), jun(2)]

    @pytest.mark.asyncio
    async def test_list_can_hide_expired_holds(self, engine, make_service, jun):
        service = make_service()
        await engine.store.create(
            reservation_input(
                service, jun(1), jun(2), 1,
                type=ReservationType.SOFT_HOLD, expires_at=NOW - timedelta(seconds=1),
            ),
            now=NOW - timedelta(minutes=10),
        )
        await engine.store.create(reservation_input(service, jun(3), jun(4), 1))

        shown = await engine.store.list_reservations(ReservationFilters(), now=NOW)
        hidden = await engine.store.list_reservations(
            ReservationFilters(include_expired=False), now=NOW
        )

        assert shown.total_count == 2
        assert [item.is_expired for item in shown.items] == [False, True]
        assert hidden.total_count == 1

    @pytest.mark.asyncio
    async def test_empty_listing(self, engine):
        page = await engine.store.list_reservations(ReservationFilters())

        assert page.items == []
        assert page.total_pages == 0


class TestSyncService:
    """Catalog sync."""

    @pytest.mark.asyncio
    async def test_sync_creates_then_replaces(self, engine):
        service = InventoryService(id=uuid4(), name="Canoe", inventory_quantity=2)

        await engine.store.sync_service(service)
        await engine.store.sync_service(service.model_copy(update={"inventory_quantity": 4}))

        assert (await engine.store.get_service(service.id)).capacity == 4

    @pytest.mark.asyncio
    async def test_get_unknown_service(self, engine):
        with pytest.raises(NotFound):
            await engine.store.get_service(uuid4())
