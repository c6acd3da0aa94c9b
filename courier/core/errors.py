"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from courier.adapters.rate_limit.base import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    item_id: str
    operation: str
    limiter: str
    window: str
    provider: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class PersistenceError(AppError):
    """Raised when the durable queue store rejects a read or write."""


class DispatchError(AppError):
    """Raised when the mail transport fails to deliver a message."""


class ConfigurationError(AppError):
    """Raised for malformed limiter windows or transport configuration."""


class LimiterUnavailable(AppError):
    """Raised when the primary counter store cannot be reached."""


class RateLimitExceeded(AppError):
    """Raised by the HTTP layer when an admission check is denied."""

    def __init__(self, result: RateLimitResult, *, limiter: str) -> None:
        super().__init__(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Please try again later.",
            details={"limiter": limiter},
        )
        self.result = result
