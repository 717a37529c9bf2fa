# =============================================================================
# core/services/cart_service.py - Shopping Cart
# =============================================================================
# One cart per customer, created on first use. Cart lines reference live
# products; prices are read at view time and frozen only at checkout.
# =============================================================================

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.exceptions import BusinessRuleError, NotFoundError
from core.models.commerce import MAX_CART_QUANTITY, CartItemAdd, CartItemUpdate
from core.models.user import AuthUser
from core.services.catalog_service import CatalogService
from lib.supabase_client import SupabaseClient
from lib.utils import money_out, new_id, normalize_uuid, to_money, utc_now_iso

logger = logging.getLogger(__name__)

CARTS_TABLE = "carts"
ITEMS_TABLE = "cart_items"


def _check_quantity(product: dict[str, Any], quantity: int) -> None:
    if quantity > MAX_CART_QUANTITY:
        raise BusinessRuleError(
            message=f"At most {MAX_CART_QUANTITY} of one product per order",
            code="QUANTITY_LIMIT",
        )
    if quantity > product["stock"]:
        raise BusinessRuleError(
            message=f"Only {product['stock']} of '{product['name']}' in stock",
            code="INSUFFICIENT_STOCK",
            details={"product_id": product["id"], "available": product["stock"]},
        )


class CartService:
    """Service for carts."""

    @staticmethod
    def get_or_create_cart(user_id: UUID | str) -> dict[str, Any]:
        cart = SupabaseClient.fetch_one(CARTS_TABLE, customer_id=normalize_uuid(user_id))
        if cart:
            return cart

        now = utc_now_iso()
        cart = SupabaseClient.insert_row(CARTS_TABLE, {
            "id": new_id(),
            "customer_id": normalize_uuid(user_id),
            "created_at": now,
            "updated_at": now,
        })
        logger.debug(f"Created cart {cart['id']} for user {user_id}")
        return cart

    @staticmethod
    def get_lines(user_id: UUID | str) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """
        Cart items joined with their products.

        Returns:
            Tuple of (cart, lines); each line is the item row plus "product"
            (None when the product was deleted)
        """
        cart = CartService.get_or_create_cart(user_id)
        items = SupabaseClient.fetch_all(ITEMS_TABLE, cart_id=cart["id"])
        lines = []
        for item in items:
            product = SupabaseClient.fetch_by_id("products", item["product_id"], include_deleted=True)
            lines.append({**item, "product": product})
        return cart, lines

    @staticmethod
    def view_cart(user_id: UUID | str) -> dict[str, Any]:
        """
        The cart with per-line and total amounts.

        Lines whose product is gone, inactive or short on stock are flagged
        is_available=False and left out of the subtotal.
        """
        cart, lines = CartService.get_lines(user_id)

        rendered = []
        subtotal = Decimal("0")
        item_count = 0
        for line in lines:
            product = line["product"] or {}
            unit_price = to_money(product.get("price", 0))
            line_total = unit_price * line["quantity"]
            available = bool(
                product
                and product.get("is_active")
                and not product.get("deleted_at")
                and product.get("stock", 0) >= line["quantity"]
            )
            if available:
                subtotal += line_total
                item_count += line["quantity"]
            rendered.append({
                "id": line["id"],
                "product_id": line["product_id"],
                "product_name": product.get("name", "Unavailable product"),
                "seller_id": product.get("seller_id"),
                "unit_price": money_out(unit_price),
                "quantity": line["quantity"],
                "line_total": money_out(line_total),
                "is_available": available,
            })

        return {
            "id": cart["id"],
            "items": rendered,
            "item_count": item_count,
            "subtotal": money_out(subtotal),
        }

    @staticmethod
    def add_item(actor: AuthUser, item: CartItemAdd) -> dict[str, Any]:
        """
        Add a product, merging with an existing line.

        Raises:
            BusinessRuleError: OWN_PRODUCT, QUANTITY_LIMIT, INSUFFICIENT_STOCK
        """
        product = CatalogService.get_product(item.product_id)
        if product["seller_id"] == str(actor.id):
            raise BusinessRuleError(message="You cannot buy your own product", code="OWN_PRODUCT")

        cart = CartService.get_or_create_cart(actor.id)
        existing = SupabaseClient.fetch_one(ITEMS_TABLE, cart_id=cart["id"], product_id=product["id"])
        quantity = item.quantity + (existing["quantity"] if existing else 0)
        _check_quantity(product, quantity)

        now = utc_now_iso()
        if existing:
            SupabaseClient.update_row(ITEMS_TABLE, existing["id"], {"quantity": quantity, "updated_at": now})
        else:
            SupabaseClient.insert_row(ITEMS_TABLE, {
                "id": new_id(),
                "cart_id": cart["id"],
                "product_id": product["id"],
                "quantity": quantity,
                "created_at": now,
                "updated_at": now,
            })
        return CartService.view_cart(actor.id)

    @staticmethod
    def _get_item(actor: AuthUser, item_id: UUID | str) -> dict[str, Any]:
        cart = CartService.get_or_create_cart(actor.id)
        item = SupabaseClient.fetch_one(ITEMS_TABLE, id=normalize_uuid(item_id))
        if not item or item["cart_id"] != cart["id"]:
            raise NotFoundError("Cart item", item_id)
        return item

    @staticmethod
    def update_item(actor: AuthUser, item_id: UUID | str, update: CartItemUpdate) -> dict[str, Any]:
        item = CartService._get_item(actor, item_id)
        product = CatalogService.get_product(item["product_id"])
        _check_quantity(product, update.quantity)

        SupabaseClient.update_row(ITEMS_TABLE, item["id"], {
            "quantity": update.quantity,
            "updated_at": utc_now_iso(),
        })
        return CartService.view_cart(actor.id)

    @staticmethod
    def remove_item(actor: AuthUser, item_id: UUID | str) -> dict[str, Any]:
        item = CartService._get_item(actor, item_id)
        SupabaseClient.delete_rows(ITEMS_TABLE, id=item["id"])
        return CartService.view_cart(actor.id)

    @staticmethod
    def clear_cart(user_id: UUID | str) -> None:
        cart = CartService.get_or_create_cart(user_id)
        SupabaseClient.delete_rows(ITEMS_TABLE, cart_id=cart["id"])
