"""Storage package - PostgreSQL repositories and Redis locks."""
