"""FastAPI application for the rental inventory engine."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rental_inventory.config import Settings, load_settings
from rental_inventory.engine import InventoryEngine
from rental_inventory.errors import InventoryError
from rental_inventory.handlers import ERROR_TEMPLATES, status_code_for
from rental_inventory.handlers.inventory import inventory_router
from rental_inventory.handlers.system.health import router as health_router
from rental_inventory.logging import get_logger, setup_logging
from rental_inventory.storage.database import Database
from rental_inventory.storage.redis_locks import RedisLockHelper

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect storage and run the expiration scheduler for the app's lifetime.

    An engine injected through create_app() is used as-is; its owner
    manages connections and background work.
    """
    if app.state.engine is not None:
        yield
        return

    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("api_starting", app_name=settings.app_name, environment=settings.environment)

    db = Database(settings)
    await db.connect()

    lock_helper = RedisLockHelper(
        settings.redis_url,
        ttl_seconds=settings.redis_lock_ttl_seconds,
        wait_timeout_seconds=settings.lock_wait_timeout_seconds,
    )
    await lock_helper.connect()

    engine = InventoryEngine.build(settings, db, lock_helper)
    app.state.engine = engine

    scheduler_task = asyncio.create_task(engine.scheduler.start())

    try:
        yield
    finally:
        logger.info("api_shutting_down")
        await engine.scheduler.stop()
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass
        await lock_helper.disconnect()
        await db.disconnect()
        app.state.engine = None


async def handle_inventory_error(request: Request, exc: InventoryError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info(
        "request_rejected",
        path=request.url.path,
        method=request.method,
        error_code=exc.code,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=ERROR_TEMPLATES["validation_failed"](issues))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(status_code=500, content=ERROR_TEMPLATES["internal_error"]())


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[InventoryEngine] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (loaded from environment when omitted)
        engine: Pre-built engine; when given, the app does not manage storage

    Returns:
        Configured FastAPI app
    """
    if settings is None:
        settings = engine.settings if engine is not None else load_settings()

    app = FastAPI(
        title="Rental Inventory Engine",
        description="Availability, calendar and reservation lifecycle for rental services",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine

    app.add_exception_handler(InventoryError, handle_inventory_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router)
    app.include_router(inventory_router)

    return app
