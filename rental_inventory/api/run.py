"""HTTP API entry point."""

import uvicorn

from rental_inventory.api.app import create_app
from rental_inventory.config import load_settings


def main() -> None:
    """Serve the API with uvicorn."""
    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
