"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
service wiring. Services are built once per process in the lifespan hook and
injected through ``app.state``; tests pass a prebuilt container instead.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import FastAPI

from courier.api.routes import admin_queue_router, health_router
from courier.core.config import settings
from courier.core.container import Container, build_container
from courier.core.exception_handlers import setup_exception_handlers
from courier.core.logging import configure_logging
from courier.core.middleware import request_id_middleware
from courier.core.openapi import apply_openapi_customizations
from courier.tasks.queue_worker import run_queue_worker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container()

    worker: asyncio.Task | None = None
    stop_event = asyncio.Event()
    if settings.queue.worker_enabled:
        worker = asyncio.create_task(
            run_queue_worker(
                app.state.container.email_queue,
                settings.queue.worker_interval_seconds,
                stop_event,
            )
        )
    try:
        yield
    finally:
        stop_event.set()
        if worker is not None:
            with suppress(asyncio.CancelledError):
                await worker


def create_app(container: Container | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        container: Prebuilt services. When omitted they are built from
            settings at startup.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Courier",
        description=(
            "Reliability services for transactional email: a durable retrying "
            "delivery queue and a fixed-window admission limiter with an "
            "in-process fallback."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(admin_queue_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
