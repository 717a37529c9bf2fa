# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared request data.
# These are injected into route handlers using Depends().
# =============================================================================

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request


@dataclass(frozen=True)
class ClientInfo:
    """Where a request came from, recorded on sessions and login history."""
    ip_address: str | None
    user_agent: str | None


def get_client_info(request: Request) -> ClientInfo:
    """
    Get the caller's address and user agent.

    Honours the first X-Forwarded-For hop when running behind a proxy.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None

    return ClientInfo(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )


# Type alias for dependency injection
ClientInfoDep = Annotated[ClientInfo, Depends(get_client_info)]
