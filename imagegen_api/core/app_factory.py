"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) to
improve testability and separation of concerns compared to a monolithic main.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from imagegen_api.api.routes import health_router, images_router
from imagegen_api.core.config import settings
from imagegen_api.core.exception_handlers import setup_exception_handlers
from imagegen_api.core.logging import configure_logging
from imagegen_api.core.middleware import request_id_middleware
from imagegen_api.core.rate_limit import close_store

TAGS_METADATA = [
    {
        "name": "Images",
        "description": (
            "Image generation and prompt suggestions. Throttled per caller "
            "(X-Fingerprint header, else first X-Forwarded-For address); image "
            "generation is also metered against a daily budget."
        ),
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_store()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Image Generation API",
        description=(
            "Generates AI images from text prompts. Requests are throttled with "
            "a sliding window per caller and image generations are limited by a "
            "daily budget, both enforced through a shared Redis store."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(images_router, prefix="/v1")
    app.include_router(health_router)

    return app
