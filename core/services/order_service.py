# =============================================================================
# core/services/order_service.py - Checkout and Orders
# =============================================================================
# Checkout turns the cart into one order per seller, all sharing a
# checkout_id. Each order snapshots product names, unit prices and the
# shipping address, so later catalog edits never change a placed order.
#
# Status flow:
#
#   payment_confirmed -> processing -> shipped -> delivered
#          |                  |
#          +--> cancelled <---+
#
#   shipped | delivered -> refunded   (set by RefundService only)
#
# Every transition writes an order_status_history row.
# =============================================================================

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from core.models.commerce import (
    SHIPPING_COSTS,
    CheckoutRequest,
    OrderQuery,
    OrderStatus,
    OrderStatusUpdate,
)
from core.models.notification import NotificationType
from core.models.user import AuthUser
from core.services.cart_service import CartService
from core.services.catalog_service import CatalogService
from core.services.notification_service import NotificationService
from core.services.user_service import UserService
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import money_out, new_id, normalize_uuid, to_money, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
ITEMS_TABLE = "order_items"
HISTORY_TABLE = "order_status_history"

# Valid transitions through this service
TRANSITIONS = {
    OrderStatus.PAYMENT_CONFIRMED.value: {OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value},
    OrderStatus.PROCESSING.value: {OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value},
    OrderStatus.SHIPPED.value: {OrderStatus.DELIVERED.value},
    OrderStatus.DELIVERED.value: set(),
    OrderStatus.CANCELLED.value: set(),
    OrderStatus.REFUNDED.value: set(),
}

# The one step a seller may take from each status
NEXT_STATUS = {
    OrderStatus.PAYMENT_CONFIRMED.value: OrderStatus.PROCESSING.value,
    OrderStatus.PROCESSING.value: OrderStatus.SHIPPED.value,
    OrderStatus.SHIPPED.value: OrderStatus.DELIVERED.value,
}

STATUS_TIMESTAMPS = {
    OrderStatus.SHIPPED.value: "shipped_at",
    OrderStatus.DELIVERED.value: "delivered_at",
    OrderStatus.CANCELLED.value: "cancelled_at",
}


def next_order_number() -> str:
    """ORD-YYYYMMDD-NNNNNN, numbered per UTC day."""
    prefix = f"ORD-{utc_now():%Y%m%d}-"
    response = (
        SupabaseClient.get_client()
        .table(ORDERS_TABLE)
        .select("id", count="exact")
        .like("order_number", f"{prefix}%")
        .execute()
    )
    return f"{prefix}{(response.count or 0) + 1:06d}"


class OrderService:
    """Service for checkout and orders."""

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    @staticmethod
    def checkout(actor: AuthUser, request: CheckoutRequest) -> dict[str, Any]:
        """
        Place orders for everything in the caller's cart.

        Raises:
            BusinessRuleError: EMPTY_CART, PRODUCT_UNAVAILABLE,
                INSUFFICIENT_STOCK, ORDER_BELOW_MINIMUM
        """
        UserService.ensure_can_participate(actor.id)
        _, lines = CartService.get_lines(actor.id)
        if not lines:
            raise BusinessRuleError(
                message="Your cart is empty",
                code="EMPTY_CART",
                suggestion="Add products with POST /api/v1/cart/items",
            )

        by_seller: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for line in lines:
            product = line["product"]
            if not product or not product.get("is_active") or product.get("deleted_at"):
                raise BusinessRuleError(
                    message="A product in your cart is no longer available",
                    code="PRODUCT_UNAVAILABLE",
                    details={"product_id": line["product_id"]},
                )
            if product["stock"] < line["quantity"]:
                raise BusinessRuleError(
                    message=f"Only {product['stock']} of '{product['name']}' in stock",
                    code="INSUFFICIENT_STOCK",
                    details={"product_id": product["id"], "available": product["stock"]},
                )
            by_seller[product["seller_id"]].append(line)

        shipping_cost = to_money(SHIPPING_COSTS[request.shipping_method.value])
        tax_rate = Decimal(str(settings.TAX_RATE))

        drafts = []
        grand_total = Decimal("0")
        for seller_id, seller_lines in by_seller.items():
            subtotal = sum(
                (to_money(line["product"]["price"]) * line["quantity"] for line in seller_lines),
                Decimal("0"),
            )
            tax = to_money(subtotal * tax_rate)
            total = to_money(subtotal + tax + shipping_cost)
            grand_total += total
            drafts.append((seller_id, seller_lines, subtotal, tax, total))

        minimum = to_money(settings.MIN_ORDER_TOTAL)
        if grand_total < minimum:
            raise BusinessRuleError(
                message=f"Order total must be at least {minimum}",
                code="ORDER_BELOW_MINIMUM",
                details={"total": money_out(grand_total), "minimum": money_out(minimum)},
            )

        checkout_id = new_id()
        address = request.shipping_address.model_dump()
        orders = []

        for seller_id, seller_lines, subtotal, tax, total in drafts:
            now = utc_now_iso()
            order = SupabaseClient.insert_row(ORDERS_TABLE, {
                "id": new_id(),
                "order_number": next_order_number(),
                "checkout_id": checkout_id,
                "customer_id": str(actor.id),
                "seller_id": seller_id,
                "status": OrderStatus.PAYMENT_CONFIRMED.value,
                "shipping_method": request.shipping_method.value,
                "shipping_cost": money_out(shipping_cost),
                "subtotal": money_out(subtotal),
                "tax_amount": money_out(tax),
                "total_amount": money_out(total),
                "refunded_amount": 0.0,
                "currency": "USD",
                "shipping_address": address,
                "created_at": now,
                "updated_at": now,
                "shipped_at": None,
                "delivered_at": None,
                "cancelled_at": None,
            })

            for line in seller_lines:
                product = line["product"]
                unit_price = to_money(product["price"])
                SupabaseClient.insert_row(ITEMS_TABLE, {
                    "id": new_id(),
                    "order_id": order["id"],
                    "product_id": product["id"],
                    "product_name": product["name"],
                    "unit_price": money_out(unit_price),
                    "quantity": line["quantity"],
                    "line_total": money_out(unit_price * line["quantity"]),
                })
                CatalogService.set_stock(product["id"], product["stock"] - line["quantity"])

            OrderService._record_transition(order, None, OrderStatus.PAYMENT_CONFIRMED.value, actor.id)
            NotificationService.notify(
                seller_id,
                NotificationType.ORDER_STATUS,
                title=f"New order {order['order_number']}",
                reference_type="order",
                reference_id=order["id"],
            )
            orders.append(order)

        CartService.clear_cart(actor.id)
        logger.info(f"User {actor.id} checked out {len(orders)} orders (checkout {checkout_id})")

        return {
            "checkout_id": checkout_id,
            "orders": orders,
            "total_amount": money_out(grand_total),
            "message": f"Placed {len(orders)} order(s)",
        }

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def get_order(actor: AuthUser, order_id: UUID | str) -> dict[str, Any]:
        """
        Visible to the customer, the seller and admins.

        Raises:
            NotFoundError: For anyone else
        """
        order = SupabaseClient.fetch_one(ORDERS_TABLE, id=normalize_uuid(order_id))
        if not order:
            raise NotFoundError("Order", order_id)
        if not actor.is_admin and str(actor.id) not in (order["customer_id"], order["seller_id"]):
            raise NotFoundError("Order", order_id)
        return order

    @staticmethod
    def get_order_detail(actor: AuthUser, order_id: UUID | str) -> dict[str, Any]:
        order = OrderService.get_order(actor, order_id)
        items = SupabaseClient.fetch_all(ITEMS_TABLE, order_by=None, order_id=order["id"])
        history = SupabaseClient.fetch_all(HISTORY_TABLE, order_id=order["id"])
        return {**order, "items": items, "history": history}

    @staticmethod
    def list_orders(actor: AuthUser, query: OrderQuery) -> tuple[list[dict[str, Any]], int]:
        """Orders the caller placed, or with as_seller the orders they fulfil."""
        column = "seller_id" if query.as_seller else "customer_id"
        builder = (
            SupabaseClient.get_client()
            .table(ORDERS_TABLE)
            .select("*", count="exact")
            .eq(column, str(actor.id))
        )
        if query.status:
            builder = builder.eq("status", query.status.value)
        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @staticmethod
    def update_status(actor: AuthUser, order_id: UUID | str, update: OrderStatusUpdate) -> dict[str, Any]:
        """
        Move an order to a new status.

        - customers may cancel before shipping
        - sellers advance their orders one step at a time
        - admins may make any valid transition

        Raises:
            BusinessRuleError: INVALID_TRANSITION
            PermissionDeniedError: FORBIDDEN_TRANSITION
        """
        order = OrderService.get_order(actor, order_id)
        current = order["status"]
        target = update.status.value

        if target not in TRANSITIONS.get(current, set()):
            raise BusinessRuleError(
                message=f"Cannot move an order from {current} to {target}",
                code="INVALID_TRANSITION",
            )

        is_customer = order["customer_id"] == str(actor.id)
        is_seller = order["seller_id"] == str(actor.id)
        allowed = (
            actor.is_admin
            or (is_seller and NEXT_STATUS.get(current) == target)
            or (is_customer and target == OrderStatus.CANCELLED.value)
        )
        if not allowed:
            raise PermissionDeniedError(
                message=f"You cannot move this order to {target}",
                code="FORBIDDEN_TRANSITION",
            )

        now = utc_now_iso()
        data: dict[str, Any] = {"status": target, "updated_at": now}
        if target in STATUS_TIMESTAMPS:
            data[STATUS_TIMESTAMPS[target]] = now

        if target == OrderStatus.CANCELLED.value:
            OrderService._restore_stock(order["id"])

        updated = SupabaseClient.update_row(ORDERS_TABLE, order["id"], data)
        OrderService._record_transition(order, current, target, actor.id, update.reason)
        logger.info(f"User {actor.id} moved order {order['id']} from {current} to {target}")

        if not is_customer:
            NotificationService.notify(
                order["customer_id"],
                NotificationType.ORDER_STATUS,
                title=f"Order {order['order_number']} is now {target.replace('_', ' ')}",
                body=update.reason,
                reference_type="order",
                reference_id=order["id"],
            )
        return updated

    @staticmethod
    def mark_refunded(order: dict[str, Any], actor_id: UUID | str) -> dict[str, Any]:
        """Final transition once refunds cover the whole order."""
        updated = SupabaseClient.update_row(ORDERS_TABLE, order["id"], {
            "status": OrderStatus.REFUNDED.value,
            "updated_at": utc_now_iso(),
        })
        OrderService._record_transition(order, order["status"], OrderStatus.REFUNDED.value, actor_id, "Fully refunded")
        return updated

    @staticmethod
    def _restore_stock(order_id: str) -> None:
        for item in SupabaseClient.fetch_all(ITEMS_TABLE, order_by=None, order_id=order_id):
            product = SupabaseClient.fetch_by_id("products", item["product_id"], include_deleted=True)
            if product:
                CatalogService.set_stock(product["id"], product["stock"] + item["quantity"])

    @staticmethod
    def _record_transition(
        order: dict[str, Any],
        previous: str | None,
        new: str,
        actor_id: UUID | str | None,
        reason: str | None = None,
    ) -> None:
        SupabaseClient.insert_row(HISTORY_TABLE, {
            "id": new_id(),
            "order_id": order["id"],
            "previous_status": previous,
            "new_status": new,
            "changed_by": normalize_uuid(actor_id) if actor_id else None,
            "reason": reason,
            "created_at": utc_now_iso(),
        })
