# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Agora API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
#   python -m app.main            # host/port from API_HOST / API_PORT
# =============================================================================

import asyncio
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.websocket import websocket_manager, WEBSOCKET_CHANNEL
from app.websocket.broadcast import EVENT_SESSIONS_REVOKED
from app.exceptions import (
    AgoraException,
    agora_exception_handler,
    validation_exception_handler,
)
from app.routers import (
    catalog,
    communities,
    health,
    moderation,
    notifications,
    orders,
    posts,
    todos,
    users,
)
from app.routers.health import API_VERSION
from app.auth import routes as auth_routes
from app.websocket import routes as websocket_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Global flag for Redis listener task
_redis_listener_task = None
_shutdown_event = None


async def redis_pubsub_listener():
    """
    Background task that listens to Redis pub/sub and broadcasts to WebSockets.

    Notifications can be created in any API process or Celery worker; this
    listener delivers them to the sockets connected to this process, and
    closes sockets whose session was revoked elsewhere.
    """
    import redis.asyncio as aioredis

    logger.info("Starting Redis pub/sub listener for WebSocket broadcasts")

    redis_client = None
    pubsub = None
    try:
        redis_client = aioredis.from_url(settings.REDIS_URL)
        pubsub = redis_client.pubsub()
        await pubsub.subscribe(WEBSOCKET_CHANNEL)

        async for message in pubsub.listen():
            if _shutdown_event and _shutdown_event.is_set():
                break

            if message["type"] == "message":
                try:
                    data = json.loads(message["data"])
                    user_id = data.pop("user_id", None)

                    if not user_id:
                        continue
                    if data.get("type") == EVENT_SESSIONS_REVOKED:
                        await websocket_manager.close_sessions(user_id, data.get("session_ids"))
                    else:
                        await websocket_manager.broadcast(user_id, data)

                except json.JSONDecodeError as e:
                    logger.warning(f"Invalid JSON in Redis message: {e}")
                except Exception as e:
                    logger.error(f"Error processing Redis message: {e}")

    except asyncio.CancelledError:
        logger.info("Redis pub/sub listener cancelled")
    except Exception as e:
        logger.error(f"Redis pub/sub listener error: {e}")
    finally:
        try:
            if pubsub is not None:
                await pubsub.unsubscribe(WEBSOCKET_CHANNEL)
            if redis_client is not None:
                await redis_client.close()
        except Exception as e:
            logger.debug(f"Error closing Redis listener: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: log configuration, start the notification listener
    - Shutdown: stop background tasks
    """
    global _redis_listener_task, _shutdown_event

    # Startup
    logger.info(f"Starting Agora API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    _shutdown_event = asyncio.Event()
    _redis_listener_task = asyncio.create_task(redis_pubsub_listener())

    yield

    # Shutdown
    logger.info("Shutting down Agora API")

    if _shutdown_event:
        _shutdown_event.set()
    if _redis_listener_task:
        _redis_listener_task.cancel()
        try:
            await _redis_listener_task
        except asyncio.CancelledError:
            pass


# Create FastAPI application
app = FastAPI(
    title="Agora API",
    description="""
## Community, Moderation and Marketplace API

One account works across three areas:

| Area | What it offers |
|------|----------------|
| **Todos** | Personal task lists with priorities and due dates |
| **Communities** | Communities, posts, threaded comments and votes |
| **Moderation** | Reports, moderation actions, suspensions, bans and appeals |
| **Marketplace** | Catalog, cart, per-seller checkout, order fulfilment and refunds |

### Authentication

1. `POST /api/v1/auth/register` or `POST /api/v1/auth/login` returns an
   access token and a refresh token
2. Send `Authorization: Bearer <access>` on every request
3. `POST /api/v1/auth/refresh` rotates the pair before the access token expires

Notifications are pushed live over `ws://.../ws/notifications?token=<access>`.
""",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Registration, login, tokens, sessions and passwords"},
        {"name": "Users", "description": "Public profiles and user administration"},
        {"name": "Todos", "description": "Personal todo lists"},
        {"name": "Communities", "description": "Communities, membership and moderators"},
        {"name": "Posts", "description": "Posts, comments and votes"},
        {"name": "Moderation", "description": "Reports, moderation actions and appeals"},
        {"name": "Notifications", "description": "Notification inbox"},
        {"name": "Catalog", "description": "Categories and products"},
        {"name": "Orders", "description": "Cart, checkout, orders and refunds"},
        {"name": "WebSocket", "description": "Real-time notifications"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(AgoraException)
async def handle_agora_exception(request: Request, exc: AgoraException):
    """Handle custom Agora exceptions."""
    return await agora_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError):
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

API_PREFIX = "/api/v1"

app.include_router(auth_routes.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])
app.include_router(users.router, prefix=API_PREFIX, tags=["Users"])
app.include_router(todos.router, prefix=f"{API_PREFIX}/todos", tags=["Todos"])
app.include_router(communities.router, prefix=f"{API_PREFIX}/communities", tags=["Communities"])
app.include_router(posts.router, prefix=f"{API_PREFIX}/posts", tags=["Posts"])
app.include_router(posts.comments_router, prefix=f"{API_PREFIX}/comments", tags=["Posts"])
app.include_router(moderation.router, prefix=f"{API_PREFIX}/moderation", tags=["Moderation"])
app.include_router(notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["Notifications"])
app.include_router(catalog.categories_router, prefix=f"{API_PREFIX}/categories", tags=["Catalog"])
app.include_router(catalog.router, prefix=f"{API_PREFIX}/products", tags=["Catalog"])
app.include_router(catalog.reviews_router, prefix=f"{API_PREFIX}/reviews", tags=["Catalog"])
app.include_router(orders.cart_router, prefix=f"{API_PREFIX}/cart", tags=["Orders"])
app.include_router(orders.router, prefix=f"{API_PREFIX}/orders", tags=["Orders"])
app.include_router(orders.refunds_router, prefix=f"{API_PREFIX}/refunds", tags=["Orders"])

# WebSocket endpoints (Real-time updates)
app.include_router(websocket_routes.router, tags=["WebSocket"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Agora API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development,
    )
