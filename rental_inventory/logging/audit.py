"""Structured audit logging for reservation changes.

Every accepted or rejected mutation of rental inventory leaves an
audit_event record so staff actions and automated sweeps can be traced.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from rental_inventory.logging import get_logger

logger = get_logger(__name__)


class AuditEventType(str, Enum):
    """Types of auditable events."""

    # Reservation lifecycle
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_UPDATED = "reservation_updated"
    RESERVATION_STATUS_CHANGED = "reservation_status_changed"
    RESERVATION_CANCELLED = "reservation_cancelled"
    SOFT_HOLD_PLACED = "soft_hold_placed"
    SOFT_HOLD_EXPIRED = "soft_hold_expired"
    BOOKING_CONFIRMED = "booking_confirmed"

    # Inventory
    INVENTORY_BLOCKED = "inventory_blocked"
    CAPACITY_REJECTED = "capacity_rejected"
    SERVICE_SYNCED = "service_synced"


class AuditLogger:
    """Centralized audit logging service."""

    @staticmethod
    def log_event(
        event_type: AuditEventType,
        actor_id: Optional[str],
        resource_type: str,
        resource_id: UUID | str,
        action: str,
        success: bool = True,
        metadata: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """
        Log an auditable event with structured context.

        Args:
            event_type: Type of audit event
            actor_id: Staff user, API key or "system" performing the action
            resource_type: Type of resource (reservation, service)
            resource_id: ID of the affected resource
            action: Human-readable action description
            success: Whether the action succeeded
            metadata: Additional context (dates, quantities, statuses)
            error: Error message if action failed
        """
        audit_entry = {
            "event_type": event_type.value,
            "actor_id": actor_id or "system",
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "action": action,
            "success": success,
            "timestamp": datetime.utcnow().isoformat(),
            "metadata": metadata or {},
        }

        if error:
            audit_entry["error"] = error

        logger.info(
            "audit_event",
            **audit_entry,
        )

    @staticmethod
    def log_reservation_created(
        actor_id: Optional[str],
        reservation_id: UUID,
        service_id: UUID,
        reservation_type: str,
        quantity: int,
        start_date: datetime,
        end_date: datetime,
    ) -> None:
        """Log reservation creation."""
        event_type = (
            AuditEventType.SOFT_HOLD_PLACED
            if reservation_type == "SoftHold"
            else AuditEventType.RESERVATION_CREATED
        )
        AuditLogger.log_event(
            event_type=event_type,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action=f"Created {reservation_type} reservation",
            metadata={
                "service_id": str(service_id),
                "type": reservation_type,
                "quantity": quantity,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )

    @staticmethod
    def log_reservation_updated(
        actor_id: Optional[str],
        reservation_id: UUID,
        changes: dict[str, Any],
    ) -> None:
        """Log reservation edits."""
        AuditLogger.log_event(
            event_type=AuditEventType.RESERVATION_UPDATED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Updated reservation",
            metadata={"changes": changes},
        )

    @staticmethod
    def log_status_changed(
        actor_id: Optional[str],
        reservation_id: UUID,
        previous_status: str,
        new_status: str,
    ) -> None:
        """Log a status transition."""
        event_type = (
            AuditEventType.RESERVATION_CANCELLED
            if new_status == "Cancelled"
            else AuditEventType.RESERVATION_STATUS_CHANGED
        )
        AuditLogger.log_event(
            event_type=event_type,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action=f"Status {previous_status} -> {new_status}",
            metadata={"previous_status": previous_status, "new_status": new_status},
        )

    @staticmethod
    def log_booking_confirmed(
        actor_id: Optional[str],
        reservation_id: UUID,
        booking_id: UUID,
        replayed: bool,
    ) -> None:
        """Log booking confirmation, including idempotent replays."""
        AuditLogger.log_event(
            event_type=AuditEventType.BOOKING_CONFIRMED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Booking confirmed" if not replayed else "Booking confirmation replayed",
            metadata={"booking_id": str(booking_id), "replayed": replayed},
        )

    @staticmethod
    def log_soft_hold_expired(reservation_id: UUID, expires_at: Optional[datetime]) -> None:
        """Log automatic soft hold expiry."""
        AuditLogger.log_event(
            event_type=AuditEventType.SOFT_HOLD_EXPIRED,
            actor_id=None,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Soft hold expired",
            metadata={"expires_at": expires_at.isoformat() if expires_at else None},
        )

    @staticmethod
    def log_inventory_blocked(
        actor_id: Optional[str],
        reservation_id: UUID,
        service_id: UUID,
        quantity: int,
        reason: Optional[str],
    ) -> None:
        """Log maintenance or manual blocks."""
        AuditLogger.log_event(
            event_type=AuditEventType.INVENTORY_BLOCKED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Blocked inventory",
            metadata={
                "service_id": str(service_id),
                "quantity": quantity,
                "reason": reason,
            },
        )

    @staticmethod
    def log_capacity_rejected(
        actor_id: Optional[str],
        service_id: UUID,
        requested: int,
        available: int,
        conflict_count: int,
    ) -> None:
        """Log a request rejected for lack of capacity."""
        AuditLogger.log_event(
            event_type=AuditEventType.CAPACITY_REJECTED,
            actor_id=actor_id,
            resource_type="service",
            resource_id=service_id,
            action="Reservation rejected: capacity exceeded",
            success=False,
            metadata={
                "requested": requested,
                "available": available,
                "conflicts": conflict_count,
            },
        )

    @staticmethod
    def log_service_synced(actor_id: Optional[str], service_id: UUID, capacity: int) -> None:
        """Log a catalog sync of a rental service."""
        AuditLogger.log_event(
            event_type=AuditEventType.SERVICE_SYNCED,
            actor_id=actor_id,
            resource_type="service",
            resource_id=service_id,
            action="Synced service from catalog",
            metadata={"capacity": capacity},
        )
