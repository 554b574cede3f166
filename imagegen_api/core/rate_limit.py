"""Throttling and usage metering dependencies for FastAPI routes.

This module wires the store-backed limiters into the HTTP layer.

Request flow for a guarded operation:
1. Sliding-window throttle. Rejection → 429; store failure → 500 (fail
   closed, admission cannot be verified).
2. Daily usage quota. At limit → 429 with a message based on time to reset;
   store failure → treated as not at limit (fail open).
3. The guarded operation runs.
4. Only after it succeeded, the usage counter is advanced (background task).

Limiter and quota outcomes are converted to AppError subclasses here, so they
never reach the handlers as generic failures.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends

from imagegen_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitResult,
    StoreUnavailableError,
)
from imagegen_api.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from imagegen_api.adapters.rate_limit.usage_quota import (
    QuotaStatus,
    UsageQuotaTracker,
    quota_exhausted_message,
)
from imagegen_api.adapters.store.base import AbstractKeyValueStore
from imagegen_api.adapters.store.factory import create_store
from imagegen_api.core.config import settings
from imagegen_api.core.errors import (
    QuotaExhaustedAppError,
    StoreUnavailableAppError,
    ThrottledAppError,
)
from imagegen_api.core.identity import get_client_identifier, hash_identifier

logger = logging.getLogger(__name__)

THROTTLED_MESSAGE = "You are sending requests too quickly. Please wait a moment."


_store: AbstractKeyValueStore | None = None


async def get_store() -> AbstractKeyValueStore:
    """Return the process-wide store client.

    The client (and its connection pool) is built lazily on first use and
    reused across requests. It holds no limiter state. As a coroutine it runs
    on the event loop, never in the threadpool, so only one client is built.
    """

    global _store

    if _store is None:
        _store = create_store()
    return _store


async def close_store() -> None:
    """Close the process-wide store client, if one was created."""

    global _store

    if _store is not None:
        await _store.close()
        _store = None


def get_rate_limiter(
    store: Annotated[AbstractKeyValueStore, Depends(get_store)],
) -> AbstractRateLimiter:
    """Build the sliding-window limiter from settings."""

    return SlidingWindowRateLimiter(
        store,
        limit=settings.app.rate_limit_requests,
        window_seconds=settings.app.rate_limit_window_seconds,
        prefix=settings.app.rate_limit_prefix,
    )


def get_usage_tracker(
    store: Annotated[AbstractKeyValueStore, Depends(get_store)],
) -> UsageQuotaTracker:
    """Build the usage quota tracker from settings."""

    return UsageQuotaTracker(
        store,
        limit=settings.app.usage_daily_limit,
        ttl_seconds=settings.app.usage_ttl_seconds,
        prefix=settings.app.usage_limit_prefix,
    )


async def check_rate_limit(identifier: str, limiter: AbstractRateLimiter) -> RateLimitResult:
    """Consume one request from the identifier's rolling window.

    Args:
        identifier: Caller identifier.
        limiter: Limiter to consult.

    Returns:
        RateLimitResult for an admitted request.

    Raises:
        ThrottledAppError: The identifier exceeded the window quota.
        StoreUnavailableAppError: The store failed; admission is unknown.
    """

    identifier_hash = hash_identifier(identifier)

    try:
        result = await limiter.consume(identifier)
    except StoreUnavailableError as exc:
        logger.error(
            "rate_limit.store_unavailable",
            extra={
                "identifier_hash": identifier_hash,
                "error_msg": str(exc),
            },
        )
        raise StoreUnavailableAppError(
            code="rate_limiter_unavailable",
            message="Internal Server Error.",
        ) from exc

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identifier_hash": identifier_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identifier_hash": identifier_hash,
            "limit": result.limit,
            "remaining": result.remaining,
            "retry_after_s": result.retry_after_seconds,
        },
    )
    raise ThrottledAppError(
        code="rate_limit_exceeded",
        message=THROTTLED_MESSAGE,
        details={
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after": result.retry_after_seconds or 0,
        },
    )


async def check_usage(identifier: str, tracker: UsageQuotaTracker) -> QuotaStatus:
    """Refuse the request when the identifier's usage budget is exhausted.

    Raises:
        QuotaExhaustedAppError: Usage is at or above the budget.
    """

    status = await tracker.check_status(identifier)
    if not status.at_limit:
        return status

    logger.warning(
        "usage.limit_exceeded",
        extra={
            "identifier_hash": hash_identifier(identifier),
            "usage": status.usage,
            "limit": status.limit,
            "ttl_s": status.seconds_to_reset,
        },
    )
    raise QuotaExhaustedAppError(
        code="usage_limit_exceeded",
        message=quota_exhausted_message(
            status.seconds_to_reset,
            reset_soon_seconds=settings.app.usage_reset_soon_seconds,
        ),
        details={"limit": status.limit, "seconds_to_reset": status.seconds_to_reset},
    )


async def record_usage(identifier: str, tracker: UsageQuotaTracker) -> None:
    """Advance the usage counter. Call strictly after the operation succeeded."""

    await tracker.increment(identifier)


async def enforce_rate_limit(
    identifier: Annotated[str, Depends(get_client_identifier)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> str:
    """FastAPI dependency applying the request throttle.

    Returns:
        The caller identifier, for handlers that need it.
    """

    if settings.app.rate_limit_enabled:
        await check_rate_limit(identifier, limiter)
    return identifier


async def enforce_generation_limits(
    identifier: Annotated[str, Depends(enforce_rate_limit)],
    tracker: Annotated[UsageQuotaTracker, Depends(get_usage_tracker)],
) -> str:
    """FastAPI dependency for the expensive generation endpoint.

    Runs the throttle first (via ``enforce_rate_limit``), then the usage quota.
    """

    if settings.app.usage_limit_enabled:
        await check_usage(identifier, tracker)
    return identifier
