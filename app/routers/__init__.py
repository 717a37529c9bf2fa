# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - users.py: Public profiles and user administration
# - todos.py: Personal todo lists
# - communities.py: Communities, membership, moderators, community posts
# - posts.py: Posts, comments and votes
# - moderation.py: Reports, moderation actions and appeals
# - notifications.py: Notification inbox
# - catalog.py: Categories, products and product reviews
# - orders.py: Cart, checkout, orders and refunds
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import users
from . import todos
from . import communities
from . import posts
from . import moderation
from . import notifications
from . import catalog
from . import orders

__all__ = [
    "health",
    "users",
    "todos",
    "communities",
    "posts",
    "moderation",
    "notifications",
    "catalog",
    "orders",
]
