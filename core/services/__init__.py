# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .session_service import SessionService
from .user_service import UserService
from .auth_service import AuthService
from .todo_service import TodoService
from .notification_service import NotificationService
from .community_service import CommunityService
from .post_service import PostService
from .comment_service import CommentService
from .vote_service import VoteService
from .report_service import ReportService
from .moderation_service import ModerationService
from .appeal_service import AppealService
from .catalog_service import CatalogService
from .cart_service import CartService
from .order_service import OrderService
from .refund_service import RefundService
from .review_service import ReviewService

__all__ = [
    "SessionService",
    "UserService",
    "AuthService",
    "TodoService",
    "NotificationService",
    "CommunityService",
    "PostService",
    "CommentService",
    "VoteService",
    "ReportService",
    "ModerationService",
    "AppealService",
    "CatalogService",
    "CartService",
    "OrderService",
    "RefundService",
    "ReviewService",
]
