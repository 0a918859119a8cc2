"""Error taxonomy for the availability and reservation engine.

Validation errors (InvalidRange, InvalidQuantity) are raised before any
store access. CapacityExceeded is a business outcome and always carries the
conflicting reservations so callers can offer alternatives.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from rental_inventory.models.availability import ConflictingReservation


class InventoryError(Exception):
    """Base class for all engine errors."""

    code = "inventory_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable error body."""
        return {"error": self.code, "message": self.message}


class InvalidRange(InventoryError):
    """Zero-length, inverted or oversized date range."""

    code = "invalid_range"


class InvalidQuantity(InventoryError):
    """Quantity is not a positive integer within service capacity."""

    code = "invalid_quantity"


class CapacityExceeded(InventoryError):
    """Requested quantity does not fit alongside existing reservations."""

    code = "capacity_exceeded"

    def __init__(
        self,
        message: str,
        conflicts: Optional[list["ConflictingReservation"]] = None,
        available_quantity: int = 0,
        has_more: bool = False,
    ):
        super().__init__(message)
        self.conflicts = conflicts or []
        self.available_quantity = available_quantity
        self.has_more = has_more

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["availableQuantity"] = self.available_quantity
        body["hasMore"] = self.has_more
        body["conflicts"] = [
            conflict.model_dump(mode="json", by_alias=True) for conflict in self.conflicts
        ]
        return body


class InvalidState(InventoryError):
    """Mutation attempted on a reservation that is locked or terminal."""

    code = "invalid_state"


class InvalidTransition(InventoryError):
    """Status change not allowed by the reservation state machine."""

    code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot transition reservation from {current} to {requested}")
        self.current = current
        self.requested = requested


class NotFound(InventoryError):
    """Unknown service or reservation id."""

    code = "not_found"


class StoreUnavailable(InventoryError):
    """Backing store or lock service failed or timed out. Retryable."""

    code = "store_unavailable"
