"""System handlers (health)."""
