# =============================================================================
# app/routers/orders.py - Cart, Checkout, Orders and Refunds
# =============================================================================
#   /cart      the caller's cart
#   /orders    checkout, order history, fulfilment and refund requests
#   /refunds   refund review
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, get_current_user
from core.models.commerce import (
    CartItemAdd,
    CartItemUpdate,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderDetailResponse,
    OrderQuery,
    OrderResponse,
    OrderStatusUpdate,
    RefundCreate,
    RefundDecision,
    RefundQuery,
    RefundResponse,
)
from core.services.cart_service import CartService
from core.services.order_service import OrderService
from core.services.refund_service import RefundService
from lib.pagination import Page, build_page

cart_router = APIRouter()
router = APIRouter()
refunds_router = APIRouter()

OrderId = Annotated[UUID, Path(description="Order UUID")]
RefundId = Annotated[UUID, Path(description="Refund UUID")]


# =============================================================================
# Cart
# =============================================================================

@cart_router.get("", response_model=CartResponse)
async def view_cart(user: AuthUser = Depends(get_current_user)):
    """Lines priced at current product prices; unavailable lines are flagged."""
    return CartService.view_cart(user.id)


@cart_router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_cart_item(body: CartItemAdd, user: AuthUser = Depends(get_current_user)):
    return CartService.add_item(user, body)


@cart_router.patch("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: Annotated[UUID, Path(description="Cart item UUID")],
    body: CartItemUpdate,
    user: AuthUser = Depends(get_current_user),
):
    return CartService.update_item(user, item_id, body)


@cart_router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: Annotated[UUID, Path(description="Cart item UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return CartService.remove_item(user, item_id)


@cart_router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(user: AuthUser = Depends(get_current_user)):
    CartService.clear_cart(user.id)


# =============================================================================
# Orders
# =============================================================================

@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(body: CheckoutRequest, user: AuthUser = Depends(get_current_user)):
    """
    Turn the cart into one order per seller.

    Prices are frozen into the order items, stock is decremented and the
    cart is emptied.
    """
    return OrderService.checkout(user, body)


@router.get("", response_model=Page[OrderResponse])
async def list_orders(
    query: Annotated[OrderQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    """Orders the caller placed, or with as_seller=true the ones they fulfil."""
    rows, total = OrderService.list_orders(user, query)
    return build_page(rows, total, query)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: OrderId, user: AuthUser = Depends(get_current_user)):
    return OrderService.get_order_detail(user, order_id)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: OrderId,
    body: OrderStatusUpdate,
    user: AuthUser = Depends(get_current_user),
):
    """
    Advance an order.

    Sellers confirm, ship and deliver; customers may cancel until the
    order ships.
    """
    return OrderService.update_status(user, order_id, body)


@router.post("/{order_id}/refunds", response_model=RefundResponse, status_code=status.HTTP_201_CREATED)
async def request_refund(order_id: OrderId, body: RefundCreate, user: AuthUser = Depends(get_current_user)):
    return RefundService.request_refund(user, order_id, body)


@router.get("/{order_id}/refunds", response_model=list[RefundResponse])
async def list_order_refunds(order_id: OrderId, user: AuthUser = Depends(get_current_user)):
    return RefundService.list_order_refunds(user, order_id)


# =============================================================================
# Refunds
# =============================================================================

@refunds_router.get("", response_model=Page[RefundResponse])
async def list_refunds(
    query: Annotated[RefundQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    rows, total = RefundService.list_refunds(user, query)
    return build_page(rows, total, query)


@refunds_router.get("/{refund_id}", response_model=RefundResponse)
async def get_refund(refund_id: RefundId, user: AuthUser = Depends(get_current_user)):
    return RefundService.get_refund(user, refund_id)


@refunds_router.post("/{refund_id}/decision", response_model=RefundResponse)
async def decide_refund(refund_id: RefundId, body: RefundDecision, user: AuthUser = Depends(get_current_user)):
    """The order's seller or an admin approves or rejects."""
    return RefundService.decide(user, refund_id, body)


@refunds_router.post("/{refund_id}/cancel", response_model=RefundResponse)
async def cancel_refund(refund_id: RefundId, user: AuthUser = Depends(get_current_user)):
    return RefundService.cancel_refund(user, refund_id)
