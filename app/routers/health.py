# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# /health        - process is up, reports version and environment
# /health/ready  - database and Redis answer; 503 with per-check detail if not
# /health/live   - process can serve a request at all
# =============================================================================

import logging
from typing import Callable

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from app.config import settings
from lib.redis_client import RedisClient
from lib.supabase_client import SupabaseClient
from lib.utils import utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    version: str


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]
    timestamp: str


class LivenessResponse(BaseModel):
    status: str
    timestamp: str


def _redis_answers() -> None:
    if not RedisClient.ping():
        raise ConnectionError("no PONG")


# Dependencies the API can't serve requests without
READINESS_CHECKS: dict[str, Callable[[], None]] = {
    "database": SupabaseClient.ping,
    "redis": _redis_answers,
}


def _probe(name: str, check: Callable[[], None]) -> str:
    try:
        check()
        return "healthy"
    except Exception as e:
        logger.warning(f"Readiness check '{name}' failed: {e}")
        return f"unhealthy: {str(e)[:50]}"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        timestamp=utc_now_iso(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(response: Response):
    """
    Readiness check endpoint.

    Load balancers should stop routing traffic here while any check is
    unhealthy; the response is 503 in that case.
    """
    checks = {name: _probe(name, check) for name, check in READINESS_CHECKS.items()}
    ready = all(result == "healthy" for result in checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        timestamp=utc_now_iso(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    return LivenessResponse(status="alive", timestamp=utc_now_iso())
