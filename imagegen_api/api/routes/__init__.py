from __future__ import annotations

from imagegen_api.api.routes.health import router as health_router
from imagegen_api.api.routes.images import router as images_router

__all__ = ["health_router", "images_router"]
