# =============================================================================
# core/services/catalog_service.py - Categories and Products
# =============================================================================
# Categories form a tree (parent_id) managed by admins. Products are listed
# by sellers; only active, non-deleted products are visible to shoppers.
# Prices are rounded to cents with Decimal before they are stored.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.commerce import (
    CategoryCreate,
    CategoryUpdate,
    ProductCreate,
    ProductQuery,
    ProductUpdate,
    StockAdjustment,
)
from core.models.user import AuthUser
from lib.pagination import PageRequest, paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import like_pattern, money_out, new_id, normalize_uuid, to_money, utc_now_iso

logger = logging.getLogger(__name__)

CATEGORIES_TABLE = "categories"
PRODUCTS_TABLE = "products"


class CatalogService:
    """Service for the product catalog."""

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @staticmethod
    def get_category(category_id: UUID | str) -> dict[str, Any]:
        category = SupabaseClient.fetch_by_id(CATEGORIES_TABLE, category_id)
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    @staticmethod
    def list_categories(parent_id: UUID | str | None = None) -> list[dict[str, Any]]:
        """Categories ordered by display_order, optionally one level of the tree."""
        builder = (
            SupabaseClient.get_client()
            .table(CATEGORIES_TABLE)
            .select("*")
            .is_("deleted_at", "null")
        )
        if parent_id:
            builder = builder.eq("parent_id", normalize_uuid(parent_id))
        response = builder.order("display_order").order("name").execute()
        return response.data or []

    @staticmethod
    def _check_slug(slug: str, exclude_id: str | None = None) -> None:
        existing = SupabaseClient.fetch_one(CATEGORIES_TABLE, slug=slug)
        if existing and existing["id"] != exclude_id:
            raise ConflictError(message=f"Category slug '{slug}' is taken", code="SLUG_TAKEN")

    @staticmethod
    def _check_parent(parent_id: str, category_id: str | None = None) -> None:
        """Parent must exist and must not be the category or one of its descendants."""
        node = CatalogService.get_category(parent_id)
        seen = set()
        while node:
            if node["id"] == category_id:
                raise BusinessRuleError(
                    message="A category cannot be nested inside itself",
                    code="INVALID_PARENT",
                )
            if node["id"] in seen:
                break
            seen.add(node["id"])
            node = SupabaseClient.fetch_by_id(CATEGORIES_TABLE, node["parent_id"]) if node.get("parent_id") else None

    @staticmethod
    def create_category(category: CategoryCreate) -> dict[str, Any]:
        CatalogService._check_slug(category.slug)
        if category.parent_id:
            CatalogService._check_parent(str(category.parent_id))

        now = utc_now_iso()
        row = SupabaseClient.insert_row(CATEGORIES_TABLE, {
            "id": new_id(),
            **category.model_dump(mode="json"),
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        logger.info(f"Created category {row['id']} ({category.slug})")
        return row

    @staticmethod
    def update_category(category_id: UUID | str, update: CategoryUpdate) -> dict[str, Any]:
        category = CatalogService.get_category(category_id)
        data = update.model_dump(exclude_unset=True, mode="json")

        if data.get("slug"):
            CatalogService._check_slug(data["slug"], exclude_id=category["id"])
        if data.get("parent_id"):
            CatalogService._check_parent(data["parent_id"], category_id=category["id"])
        data = {k: v for k, v in data.items() if v is not None or k == "parent_id"}

        if not data:
            return category
        data["updated_at"] = utc_now_iso()
        return SupabaseClient.update_row(CATEGORIES_TABLE, category_id, data)

    @staticmethod
    def delete_category(category_id: UUID | str) -> None:
        """
        Soft delete an empty category.

        Raises:
            ConflictError: CATEGORY_IN_USE if it still has products or children
        """
        category = CatalogService.get_category(category_id)

        products = SupabaseClient.count_rows(
            PRODUCTS_TABLE, category_id=category["id"], is_active=True, deleted_at=None,
        )
        children = SupabaseClient.count_rows(CATEGORIES_TABLE, parent_id=category["id"], deleted_at=None)
        if products or children:
            raise ConflictError(
                message="Category still has active products or subcategories",
                code="CATEGORY_IN_USE",
                details={"products": products, "subcategories": children},
            )

        now = utc_now_iso()
        SupabaseClient.update_row(CATEGORIES_TABLE, category_id, {"deleted_at": now, "updated_at": now})
        logger.info(f"Deleted category {category_id}")

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    @staticmethod
    def get_product(product_id: UUID | str, viewer: AuthUser | None = None) -> dict[str, Any]:
        """Inactive products are only visible to their seller and admins."""
        product = SupabaseClient.fetch_by_id(PRODUCTS_TABLE, product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        if not product["is_active"] and not (
            viewer and (viewer.is_admin or product["seller_id"] == str(viewer.id))
        ):
            raise NotFoundError("Product", product_id)
        return product

    @staticmethod
    def _get_owned_product(actor: AuthUser, product_id: UUID | str) -> dict[str, Any]:
        product = SupabaseClient.fetch_by_id(PRODUCTS_TABLE, product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        if product["seller_id"] != str(actor.id) and not actor.is_admin:
            raise PermissionDeniedError(
                message="Only the seller can manage this product",
                code="NOT_PRODUCT_OWNER",
            )
        return product

    @staticmethod
    def create_product(actor: AuthUser, product: ProductCreate) -> dict[str, Any]:
        CatalogService.get_category(product.category_id)

        now = utc_now_iso()
        row = SupabaseClient.insert_row(PRODUCTS_TABLE, {
            "id": new_id(),
            "seller_id": str(actor.id),
            "category_id": str(product.category_id),
            "name": product.name,
            "description": product.description,
            "price": money_out(to_money(product.price)),
            "stock": product.stock,
            "is_active": product.is_active,
            "rating_average": None,
            "review_count": 0,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        logger.info(f"Seller {actor.id} listed product {row['id']}")
        return row

    @staticmethod
    def update_product(actor: AuthUser, product_id: UUID | str, update: ProductUpdate) -> dict[str, Any]:
        product = CatalogService._get_owned_product(actor, product_id)

        data = update.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        if "category_id" in data:
            CatalogService.get_category(data["category_id"])
        if "price" in data:
            data["price"] = money_out(to_money(data["price"]))
        if not data:
            return product

        data["updated_at"] = utc_now_iso()
        return SupabaseClient.update_row(PRODUCTS_TABLE, product_id, data)

    @staticmethod
    def delete_product(actor: AuthUser, product_id: UUID | str) -> None:
        """Soft delete; past orders keep their snapshot of the product."""
        CatalogService._get_owned_product(actor, product_id)
        now = utc_now_iso()
        SupabaseClient.update_row(PRODUCTS_TABLE, product_id, {
            "is_active": False,
            "deleted_at": now,
            "updated_at": now,
        })
        logger.info(f"User {actor.id} deleted product {product_id}")

    @staticmethod
    def adjust_stock(actor: AuthUser, product_id: UUID | str, adjustment: StockAdjustment) -> dict[str, Any]:
        """
        Raises:
            BusinessRuleError: INSUFFICIENT_STOCK if stock would go negative
        """
        product = CatalogService._get_owned_product(actor, product_id)
        new_stock = product["stock"] + adjustment.delta
        if new_stock < 0:
            raise BusinessRuleError(
                message=f"Stock cannot go below zero (current {product['stock']})",
                code="INSUFFICIENT_STOCK",
            )

        logger.info(
            f"Stock of {product_id} adjusted by {adjustment.delta} to {new_stock}"
            + (f": {adjustment.reason}" if adjustment.reason else "")
        )
        return SupabaseClient.update_row(PRODUCTS_TABLE, product_id, {
            "stock": new_stock,
            "updated_at": utc_now_iso(),
        })

    @staticmethod
    def list_products(query: ProductQuery) -> tuple[list[dict[str, Any]], int]:
        builder = (
            SupabaseClient.get_client()
            .table(PRODUCTS_TABLE)
            .select("*", count="exact")
            .eq("is_active", True)
            .is_("deleted_at", "null")
        )

        if query.category_id:
            builder = builder.eq("category_id", str(query.category_id))
        if query.seller_id:
            builder = builder.eq("seller_id", str(query.seller_id))
        if query.search:
            builder = builder.ilike("name", like_pattern(query.search))
        if query.min_price is not None:
            builder = builder.gte("price", query.min_price)
        if query.max_price is not None:
            builder = builder.lte("price", query.max_price)

        builder = builder.order(query.sort, desc=query.order == "desc")
        return paginate_query(builder, query)

    @staticmethod
    def list_seller_products(actor: AuthUser, page: PageRequest) -> tuple[list[dict[str, Any]], int]:
        """All of a seller's live listings, active or not."""
        builder = (
            SupabaseClient.get_client()
            .table(PRODUCTS_TABLE)
            .select("*", count="exact")
            .eq("seller_id", str(actor.id))
            .is_("deleted_at", "null")
            .order("created_at", desc=True)
        )
        return paginate_query(builder, page)

    @staticmethod
    def set_stock(product_id: UUID | str, stock: int) -> None:
        """Used by checkout and cancellation."""
        SupabaseClient.update_row(PRODUCTS_TABLE, product_id, {
            "stock": stock,
            "updated_at": utc_now_iso(),
        })
