"""Domain errors raised by services and dependencies.

Each subclass carries the HTTP status it maps to, so the global handler never
has to know about individual error types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured context returned to clients under ``error.details``."""

    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    seconds_to_reset: int | None


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Message shown to the end user.
        details: Optional structured details.
    """

    status_code: ClassVar[int] = 400

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Input or configuration was rejected."""


class GenerationAppError(AppError):
    """The image or suggestion provider failed."""

    status_code = 500


class ThrottledAppError(AppError):
    """The caller exceeded the sliding-window request limit."""

    status_code = 429


class QuotaExhaustedAppError(AppError):
    """The caller used up the daily generation budget."""

    status_code = 429


class StoreUnavailableAppError(AppError):
    """Throttling could not be verified because the store failed."""

    status_code = 500
