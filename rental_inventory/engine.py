"""Wiring of the availability and reservation engine.

Builds the store, calculators and lifecycle manager on top of an injected
database and lock helper. Nothing here is global: the HTTP app keeps one
engine on its state, tests build their own over in-memory storage.
"""

from dataclasses import dataclass
from typing import Any

from rental_inventory.config.settings import Settings
from rental_inventory.services.availability_calculator import AvailabilityCalculator
from rental_inventory.services.calendar_aggregator import CalendarAggregator
from rental_inventory.services.expiration_job import SoftHoldExpirationJob
from rental_inventory.services.reservation_lifecycle import ReservationLifecycleManager
from rental_inventory.services.reservation_store import ReservationStore
from rental_inventory.services.scheduler import SchedulerService
from rental_inventory.storage.gateway import StoreGateway
from rental_inventory.storage.postgres_reservation_repo import PostgresReservationRepository
from rental_inventory.storage.postgres_service_repo import PostgresServiceRepository


@dataclass
class InventoryEngine:
    """Engine components sharing one database and lock helper."""

    settings: Settings
    db: Any
    lock_helper: Any
    gateway: StoreGateway
    calculator: AvailabilityCalculator
    calendar: CalendarAggregator
    store: ReservationStore
    lifecycle: ReservationLifecycleManager
    expiration_job: SoftHoldExpirationJob
    scheduler: SchedulerService

    @classmethod
    def build(
        cls,
        settings: Settings,
        db: Any,
        lock_helper: Any,
        service_repo_cls: type = PostgresServiceRepository,
        reservation_repo_cls: type = PostgresReservationRepository,
    ) -> "InventoryEngine":
        """
        Assemble the engine.

        Args:
            settings: Application settings (timeouts, limits, TTLs)
            db: Database exposing an async session() context manager
            lock_helper: Provider of acquire_service_lock()
            service_repo_cls: Repository class for rental services
            reservation_repo_cls: Repository class for reservations
        """
        gateway = StoreGateway(
            db,
            timeout_seconds=settings.store_timeout_seconds,
            service_repo_cls=service_repo_cls,
            reservation_repo_cls=reservation_repo_cls,
        )
        calculator = AvailabilityCalculator(gateway, conflict_limit=settings.conflict_limit)
        store = ReservationStore(
            gateway,
            lock_helper,
            calculator,
            soft_hold_ttl_seconds=settings.soft_hold_ttl_seconds,
            expiry_batch_size=settings.expiry_batch_size,
        )
        expiration_job = SoftHoldExpirationJob(store)

        return cls(
            settings=settings,
            db=db,
            lock_helper=lock_helper,
            gateway=gateway,
            calculator=calculator,
            calendar=CalendarAggregator(gateway, max_slots=settings.max_calendar_slots),
            store=store,
            lifecycle=ReservationLifecycleManager(store),
            expiration_job=expiration_job,
            scheduler=SchedulerService(
                expiration_job, interval_seconds=settings.expiration_check_interval_seconds
            ),
        )
