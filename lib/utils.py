# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any
from uuid import UUID, uuid4


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Handles both string and UUID objects, ensuring consistent string output.

    Example:
        post_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        post_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


def new_id() -> str:
    """Generate a new row id."""
    return str(uuid4())


# =============================================================================
# Time Utilities
# =============================================================================
# All timestamps are stored as timezone-aware UTC ISO 8601 strings so that
# lexical and chronological ordering agree.

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def iso_in(**delta: float) -> str:
    """
    ISO timestamp relative to now.

    Example:
        expires_at = iso_in(days=14)
    """
    return (utc_now() + timedelta(**delta)).isoformat()


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """
    Parse a stored timestamp.

    Naive values are assumed to be UTC. Accepts the trailing "Z" that
    PostgREST sometimes returns.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_past(value: str | datetime | None) -> bool:
    """True when the timestamp is set and already elapsed."""
    parsed = parse_timestamp(value)
    return parsed is not None and parsed <= utc_now()


# =============================================================================
# Query Utilities
# =============================================================================

def like_pattern(term: str) -> str:
    """
    Substring pattern for ilike filters.

    Strips characters that would break a PostgREST or_() filter string.
    """
    cleaned = re.sub(r"[%,()]", " ", term).strip()
    return f"%{cleaned}%"


# =============================================================================
# Money Utilities
# =============================================================================

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Convert a stored numeric to a Decimal rounded to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def money_out(value: Decimal) -> float:
    """Convert a Decimal amount to the float sent to PostgREST."""
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


# =============================================================================
# Base Error Class
# =============================================================================

class ApplicationError(Exception):
    """
    Base error class for application-specific errors.

    Provides actionable error messages following the principle:
    "Errors should tell HOW to fix, not just WHAT failed."

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        details: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "details": self.details,
        }
