"""Request-scoped dependencies for the HTTP API."""

from typing import Optional

from fastapi import Header, Request

from rental_inventory.engine import InventoryEngine


def get_engine(request: Request) -> InventoryEngine:
    """Engine attached to the running application."""
    return request.app.state.engine


def get_actor_id(x_actor_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Staff user or calling system, recorded in audit events."""
    return x_actor_id
