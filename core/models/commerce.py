# =============================================================================
# core/models/commerce.py - Catalog, Cart, Order and Refund Schemas
# =============================================================================
# These models define the API contract of the shopping mall:
# - Categories (hierarchical) and products listed by sellers
# - A per-customer cart
# - Orders created at checkout, one per seller, sharing a checkout_id
# - Refund requests against shipped or delivered orders
# - Product reviews from verified buyers, with helpfulness votes and a
#   seller response
#
# Money is exchanged as JSON numbers with two decimals and computed with
# Decimal inside the services.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from lib.pagination import PageRequest


# =============================================================================
# Categories
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(
        ...,
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
        description="Lowercase words joined by hyphens",
    )
    description: str | None = Field(default=None, max_length=1000)
    parent_id: UUID | None = None
    display_order: int = Field(default=0, ge=0)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str | None = Field(default=None, max_length=1000)
    parent_id: UUID | None = None
    display_order: int | None = Field(default=None, ge=0)


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    parent_id: UUID | None = None
    display_order: int = 0
    created_at: datetime
    updated_at: datetime | None = None


# =============================================================================
# Products
# =============================================================================

class ProductCreate(BaseModel):
    """
    Example:
        {"name": "Mechanical Keyboard", "price": 89.99, "stock": 25, "category_id": "..."}
    """
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: float = Field(..., gt=0, le=1_000_000)
    stock: int = Field(default=0, ge=0)
    category_id: UUID
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: float | None = Field(default=None, gt=0, le=1_000_000)
    category_id: UUID | None = None
    is_active: bool | None = None


class StockAdjustment(BaseModel):
    """Relative stock change; the result may not go below zero."""
    delta: int
    reason: str | None = Field(default=None, max_length=200)


class ProductResponse(BaseModel):
    id: UUID
    seller_id: UUID
    category_id: UUID
    name: str
    description: str | None = None
    price: float
    stock: int
    is_active: bool
    rating_average: float | None = None
    review_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None


class ProductQuery(PageRequest):
    category_id: UUID | None = None
    seller_id: UUID | None = None
    search: str | None = Field(default=None, max_length=200)
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    sort: Literal["created_at", "price", "name"] = "created_at"
    order: Literal["asc", "desc"] = "desc"


# =============================================================================
# Cart
# =============================================================================

MAX_CART_QUANTITY = 99


class CartItemAdd(BaseModel):
    product_id: UUID
    quantity: int = Field(default=1, ge=1, le=MAX_CART_QUANTITY)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=MAX_CART_QUANTITY)


class CartLine(BaseModel):
    id: UUID
    product_id: UUID
    product_name: str
    seller_id: UUID | None = None
    unit_price: float
    quantity: int
    line_total: float
    is_available: bool


class CartResponse(BaseModel):
    id: UUID
    items: list[CartLine] = Field(default_factory=list)
    item_count: int = 0
    subtotal: float = 0.0


# =============================================================================
# Orders
# =============================================================================

class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    FREE_SHIPPING = "free_shipping"


SHIPPING_COSTS = {
    ShippingMethod.STANDARD.value: "5.99",
    ShippingMethod.EXPRESS.value: "15.99",
    ShippingMethod.OVERNIGHT.value: "29.99",
    ShippingMethod.FREE_SHIPPING.value: "0.00",
}


class OrderStatus(str, Enum):
    """
    Flow: payment_confirmed -> processing -> shipped -> delivered
    cancelled is reachable before shipping; refunded after a full refund.
    """
    PAYMENT_CONFIRMED = "payment_confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ShippingAddress(BaseModel):
    recipient_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=3, max_length=30)
    line1: str = Field(..., min_length=1, max_length=200)
    line2: str | None = Field(default=None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state_province: str | None = Field(default=None, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2")


class CheckoutRequest(BaseModel):
    shipping_method: ShippingMethod
    shipping_address: ShippingAddress


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    reason: str | None = Field(default=None, max_length=500)


class OrderItemResponse(BaseModel):
    id: UUID
    product_id: UUID
    product_name: str
    unit_price: float
    quantity: int
    line_total: float


class OrderStatusHistoryEntry(BaseModel):
    id: UUID
    previous_status: OrderStatus | None = None
    new_status: OrderStatus
    changed_by: UUID | None = None
    reason: str | None = None
    created_at: datetime


class OrderResponse(BaseModel):
    id: UUID
    order_number: str
    checkout_id: UUID
    customer_id: UUID
    seller_id: UUID
    status: OrderStatus
    shipping_method: ShippingMethod
    shipping_cost: float
    subtotal: float
    tax_amount: float
    total_amount: float
    refunded_amount: float = 0.0
    currency: str = "USD"
    shipping_address: ShippingAddress
    created_at: datetime
    updated_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderDetailResponse(OrderResponse):
    items: list[OrderItemResponse] = Field(default_factory=list)
    history: list[OrderStatusHistoryEntry] = Field(default_factory=list)


class CheckoutResponse(BaseModel):
    checkout_id: UUID
    orders: list[OrderResponse]
    total_amount: float
    message: str


class OrderQuery(PageRequest):
    status: OrderStatus | None = None
    as_seller: bool = Field(default=False, description="List orders you fulfil instead of orders you placed")


# =============================================================================
# Refunds
# =============================================================================

class RefundStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class RefundCreate(BaseModel):
    amount: float = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=2000)


class RefundDecision(BaseModel):
    status: Literal["approved", "rejected"]
    review_note: str | None = Field(default=None, max_length=2000)


class RefundResponse(BaseModel):
    id: UUID
    order_id: UUID
    customer_id: UUID
    amount: float
    reason: str
    status: RefundStatus
    reviewer_id: UUID | None = None
    review_note: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    reviewed_at: datetime | None = None


class RefundQuery(PageRequest):
    status: RefundStatus | None = None
    as_seller: bool = Field(default=False, description="List refunds requested on orders you fulfil")


# =============================================================================
# Reviews
# =============================================================================

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="1 to 5 stars")
    title: str = Field(..., min_length=1, max_length=200)
    body: str | None = Field(default=None, max_length=5000)


class ReviewUpdate(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, min_length=1, max_length=200)
    body: str | None = Field(default=None, max_length=5000)


class ReviewVote(BaseModel):
    helpful: bool


class SellerResponse(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)


class ReviewResponse(BaseModel):
    id: UUID
    product_id: UUID
    customer_id: UUID
    order_id: UUID
    rating: int
    title: str
    body: str | None = None
    helpful_count: int = 0
    unhelpful_count: int = 0
    seller_response: str | None = None
    seller_response_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ReviewQuery(PageRequest):
    rating: int | None = Field(default=None, ge=1, le=5)
    has_response: bool | None = Field(default=None, description="Only reviews the seller did (or did not) answer")
    sort: Literal["created_at", "rating", "helpful_count"] = "created_at"
    order: Literal["asc", "desc"] = "desc"
