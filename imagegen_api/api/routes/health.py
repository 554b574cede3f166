from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from imagegen_api.adapters.store.base import AbstractKeyValueStore, StoreError
from imagegen_api.core.rate_limit import get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the API is operational.
    Used by load balancers and monitoring systems to determine service health.
    """

    return {"status": "ok"}


@router.get("/health/store")
async def store_health_check(
    store: Annotated[AbstractKeyValueStore, Depends(get_store)],
) -> JSONResponse:
    """Readiness check for the shared limiter store.

    Returns 503 when the store cannot be reached, since throttled endpoints
    would answer 500 in that state.
    """

    try:
        await store.ping()
    except StoreError as exc:
        logger.error("health.store_unavailable", extra={"error_msg": str(exc)})
        return JSONResponse(status_code=503, content={"status": "unavailable"})

    return JSONResponse(status_code=200, content={"status": "ok"})
