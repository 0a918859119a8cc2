"""Handlers package - HTTP endpoints for the vendor dashboard and checkout."""

from typing import Any, Optional

from rental_inventory.errors import (
    CapacityExceeded,
    InvalidQuantity,
    InvalidRange,
    InvalidState,
    InvalidTransition,
    InventoryError,
    NotFound,
    StoreUnavailable,
)

# HTTP status per engine error
ERROR_STATUS_CODES: dict[type[InventoryError], int] = {
    InvalidRange: 400,
    InvalidQuantity: 400,
    CapacityExceeded: 409,
    InvalidState: 409,
    InvalidTransition: 409,
    NotFound: 404,
    StoreUnavailable: 503,
}


def status_code_for(error: InventoryError) -> int:
    """Map an engine error to its HTTP status; unknown subclasses are 500."""
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 500


def format_error_body(
    code: str, message: str, details: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """
    Format error bodies following the pattern: {error, message, ...details}.

    Args:
        code: Stable machine-readable error code
        message: Human-readable description of what went wrong
        details: Extra fields (conflicts, validation issues)

    Returns:
        JSON-serializable error body

    Example:
        >>> format_error_body("not_found", "Reservation not found")
        {"error": "not_found", "message": "Reservation not found"}
    """
    body: dict[str, Any] = {"error": code, "message": message}
    if details:
        body.update(details)
    return body


# Common error templates
ERROR_TEMPLATES = {
    "validation_failed": lambda issues: format_error_body(
        "validation_error",
        "Request body or query is invalid.",
        {"issues": issues},
    ),
    "internal_error": lambda: format_error_body(
        "internal_error",
        "Unexpected error. Please try again later.",
    ),
}
