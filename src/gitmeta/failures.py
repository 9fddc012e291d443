"""Closed set of export failures.

Inside the pipeline failures are exceptions (RateLimitExceeded,
RequestFailure, ValidationFailure). At the caller boundary they are folded
into one ExportFailure value whose ``kind`` is one of exactly three
FailureKind members, so presentation code can branch exhaustively.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gitmeta.connectors.github.client import RateLimitExceeded, RequestFailure
from gitmeta.repo import ValidationFailure

__all__ = ["ExportFailure", "FailureKind", "to_failure", "to_rate_limit"]


class FailureKind(str, Enum):
    """Why an export did not produce a snapshot."""

    RATE_LIMIT = "rate_limit"
    REQUEST = "request"
    VALIDATION = "validation"


@dataclass(frozen=True)
class ExportFailure:
    """A failed export, with enough detail to render without another request.

    Attributes:
        kind: Failure category
        message: Human-readable message
        reset_at: Rate-limit reset in epoch milliseconds (RATE_LIMIT only)
        status: HTTP status (REQUEST only, None for transport errors)
        url: Request URL (REQUEST only)
        reason: Validation reason code (VALIDATION only)
    """

    kind: FailureKind
    message: str
    reset_at: int | None = None
    status: int | None = None
    url: str | None = None
    reason: str | None = None


def to_failure(error: BaseException) -> ExportFailure:
    """Fold a pipeline exception into an ExportFailure.

    Raises:
        TypeError: For exceptions outside the three known kinds
    """
    if isinstance(error, RateLimitExceeded):
        return ExportFailure(
            kind=FailureKind.RATE_LIMIT, message=error.message, reset_at=error.reset_at
        )
    if isinstance(error, RequestFailure):
        return ExportFailure(
            kind=FailureKind.REQUEST,
            message=error.message,
            status=error.status,
            url=error.url,
        )
    if isinstance(error, ValidationFailure):
        return ExportFailure(
            kind=FailureKind.VALIDATION, message=error.message, reason=error.reason
        )
    raise TypeError(f"Not an export failure: {type(error).__name__}")


def to_rate_limit(value: Any) -> RateLimitExceeded | None:
    """Recover a RateLimitExceeded from whatever a caller is holding.

    Accepts a RateLimitExceeded (returned as is), a rate-limit ExportFailure,
    or a tagged mapping ``{"_tag": "RateLimit", "message": ..., "resetAt": ...}``.
    Anything else yields None.
    """
    if isinstance(value, RateLimitExceeded):
        return value
    if isinstance(value, ExportFailure):
        if value.kind is FailureKind.RATE_LIMIT:
            return RateLimitExceeded(value.message, value.reset_at)
        return None
    if isinstance(value, Mapping) and value.get("_tag") == "RateLimit":
        message = value.get("message")
        reset_at = value.get("resetAt")
        if not isinstance(message, str):
            return None
        if reset_at is not None and (
            isinstance(reset_at, bool) or not isinstance(reset_at, int)
        ):
            return None
        return RateLimitExceeded(message, reset_at)
    return None
