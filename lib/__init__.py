# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - redis_client.py: Shared Redis connection
# - rate_limiter.py: Fixed window rate limiting on Redis
# - pagination.py: Page requests and the paged response envelope
# - utils.py: Shared utilities (ids, timestamps, money, base error)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.pagination import Page, PageRequest, Pagination, build_page, paginate_query
from lib.utils import ApplicationError, normalize_uuid

__all__ = [
    # Pagination
    "Page",
    "PageRequest",
    "Pagination",
    "build_page",
    "paginate_query",
    # Utils
    "ApplicationError",
    "normalize_uuid",
]
