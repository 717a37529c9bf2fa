# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
#
# Services raise the domain-neutral classes below (NotFoundError,
# PermissionDeniedError, ...); the handlers at the bottom turn them into
# structured JSON responses.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from lib.utils import ApplicationError


class AgoraException(ApplicationError):
    """
    Base exception for the Agora API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "AGORA_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)
        self.status_code = status_code
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Generic Exceptions
# =============================================================================

class NotFoundError(AgoraException):
    """Raised when a resource doesn't exist (or the caller may not see it)."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {resource.lower()} id is correct and it hasn't been deleted",
            details={"id": str(resource_id)}
        )


class PermissionDeniedError(AgoraException):
    """Raised when the caller is authenticated but not allowed to act."""

    def __init__(
        self,
        message: str,
        code: str = "FORBIDDEN",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=403,
            suggestion=suggestion,
            details=details,
        )


class AuthenticationError(AgoraException):
    """Raised when credentials or tokens are missing or invalid."""

    def __init__(
        self,
        message: str,
        code: str = "UNAUTHORIZED",
        suggestion: str | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=401,
            suggestion=suggestion,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ConflictError(AgoraException):
    """Raised when a uniqueness rule or a one-at-a-time rule is violated."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            suggestion=suggestion,
            details=details,
        )


class BusinessRuleError(AgoraException):
    """Raised when a request is well-formed but breaks a business rule."""

    def __init__(
        self,
        message: str,
        code: str = "BUSINESS_RULE_VIOLATION",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            suggestion=suggestion,
            details=details,
        )


class RateLimitExceededError(AgoraException):
    """Raised when a client exceeds a rate limit."""

    def __init__(self, retry_after: int):
        super().__init__(
            message="Too many attempts",
            code="RATE_LIMITED",
            status_code=429,
            suggestion=f"Wait {retry_after} seconds before trying again",
            details={"retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def agora_exception_handler(
    request: Request,
    exc: AgoraException
) -> JSONResponse:
    """
    Convert AgoraException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": jsonable_encoder(exc.errors()),
        }
    )
