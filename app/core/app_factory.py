from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, collaborators, middleware, handlers,
routers) to improve testability and separation of concerns compared to a
monolithic main.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import health_router, weather_router
from app.core.config import Settings, settings
from app.core.dependencies import build_container
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    container = app.state.container
    await container.store.check_compatibility()
    logger.info(
        "app.startup",
        extra={
            "cache_backend": container.store.backend_name,
            "rate_limit_enabled": container.limiter is not None,
        },
    )
    try:
        yield
    finally:
        await container.aclose()
        logger.info("app.shutdown")


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Optional settings override; defaults to the global settings.

    Returns:
        Configured FastAPI app with collaborators, middleware, handlers,
        routers and docs.
    """
    cfg = cfg or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Weather API",
        description=(
            "Current weather for a named location, backed by the Visual Crossing "
            "timeline API. Responses are cached per normalized location "
            "(fromCache tells whether the provider was called) and callers are "
            "rate limited per X-Forwarded-For identity."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        debug=cfg.app.debug,
        lifespan=_lifespan,
    )

    # Collaborators are built once per app and injected into routes
    app.state.container = build_container(cfg)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(
        app, include_rate_limit_headers=cfg.app.rate_limit_include_headers
    )

    # Routers
    app.include_router(weather_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
