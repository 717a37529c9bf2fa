# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - user.py: Accounts, roles and profiles
# - todo.py: Personal todo items
# - community.py: Communities, posts, comments and votes
# - moderation.py: Reports, moderation actions and appeals
# - notification.py: In-app notifications
# - commerce.py: Catalog, cart, orders and refunds
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# User Models
# -----------------------------------------------------------------------------
from .user import (
    AdminUserUpdate,
    AuthUser,
    LoginHistoryQuery,
    PublicUserResponse,
    UserResponse,
    UserRole,
    UserSearchQuery,
    UserStatus,
    UserUpdate,
)

# -----------------------------------------------------------------------------
# Todo Models
# -----------------------------------------------------------------------------
from .todo import (
    TodoCreate,
    TodoPriority,
    TodoQuery,
    TodoResponse,
    TodoUpdate,
)

# -----------------------------------------------------------------------------
# Community Models
# -----------------------------------------------------------------------------
from .community import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    CommunityCreate,
    CommunityModeratorResponse,
    CommunityQuery,
    CommunityResponse,
    CommunityUpdate,
    MembershipResponse,
    ModeratorAdd,
    PostCreate,
    PostEditResponse,
    PostQuery,
    PostResponse,
    PostSort,
    PostUpdate,
    VoteRequest,
    VoteResponse,
    VoteTarget,
)

# -----------------------------------------------------------------------------
# Moderation Models
# -----------------------------------------------------------------------------
from .moderation import (
    AppealCreate,
    AppealDecision,
    AppealQuery,
    AppealResponse,
    AppealStatus,
    AppealUpdate,
    ModerationActionCreate,
    ModerationActionQuery,
    ModerationActionResponse,
    ModerationActionType,
    ReportCategory,
    ReportCreate,
    ReportQuery,
    ReportResponse,
    ReportStatus,
    ReportStatusUpdate,
)

# -----------------------------------------------------------------------------
# Notification Models
# -----------------------------------------------------------------------------
from .notification import (
    NotificationQuery,
    NotificationResponse,
    NotificationType,
)

# -----------------------------------------------------------------------------
# Commerce Models
# -----------------------------------------------------------------------------
from .commerce import (
    CartItemAdd,
    CartItemUpdate,
    CartResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CheckoutRequest,
    CheckoutResponse,
    OrderDetailResponse,
    OrderQuery,
    OrderResponse,
    OrderStatus,
    OrderStatusUpdate,
    ProductCreate,
    ProductQuery,
    ProductResponse,
    ProductUpdate,
    RefundCreate,
    RefundDecision,
    RefundQuery,
    RefundResponse,
    RefundStatus,
    ReviewCreate,
    ReviewQuery,
    ReviewResponse,
    ReviewUpdate,
    ReviewVote,
    SellerResponse,
    ShippingAddress,
    ShippingMethod,
    StockAdjustment,
)

# -----------------------------------------------------------------------------
# __all__ - Explicit public API
# -----------------------------------------------------------------------------
__all__ = [
    # User
    "AdminUserUpdate",
    "AuthUser",
    "LoginHistoryQuery",
    "PublicUserResponse",
    "UserResponse",
    "UserRole",
    "UserSearchQuery",
    "UserStatus",
    "UserUpdate",
    # Todo
    "TodoCreate",
    "TodoPriority",
    "TodoQuery",
    "TodoResponse",
    "TodoUpdate",
    # Community
    "CommentCreate",
    "CommentResponse",
    "CommentUpdate",
    "CommunityCreate",
    "CommunityModeratorResponse",
    "CommunityQuery",
    "CommunityResponse",
    "CommunityUpdate",
    "MembershipResponse",
    "ModeratorAdd",
    "PostCreate",
    "PostEditResponse",
    "PostQuery",
    "PostResponse",
    "PostSort",
    "PostUpdate",
    "VoteRequest",
    "VoteResponse",
    "VoteTarget",
    # Moderation
    "AppealCreate",
    "AppealDecision",
    "AppealQuery",
    "AppealResponse",
    "AppealStatus",
    "AppealUpdate",
    "ModerationActionCreate",
    "ModerationActionQuery",
    "ModerationActionResponse",
    "ModerationActionType",
    "ReportCategory",
    "ReportCreate",
    "ReportQuery",
    "ReportResponse",
    "ReportStatus",
    "ReportStatusUpdate",
    # Notification
    "NotificationQuery",
    "NotificationResponse",
    "NotificationType",
    # Commerce
    "CartItemAdd",
    "CartItemUpdate",
    "CartResponse",
    "CategoryCreate",
    "CategoryResponse",
    "CategoryUpdate",
    "CheckoutRequest",
    "CheckoutResponse",
    "OrderDetailResponse",
    "OrderQuery",
    "OrderResponse",
    "OrderStatus",
    "OrderStatusUpdate",
    "ProductCreate",
    "ProductQuery",
    "ProductResponse",
    "ProductUpdate",
    "RefundCreate",
    "RefundDecision",
    "RefundQuery",
    "RefundResponse",
    "RefundStatus",
    "ReviewCreate",
    "ReviewQuery",
    "ReviewResponse",
    "ReviewUpdate",
    "ReviewVote",
    "SellerResponse",
    "ShippingAddress",
    "ShippingMethod",
    "StockAdjustment",
]
