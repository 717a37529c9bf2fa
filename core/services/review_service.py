# =============================================================================
# core/services/review_service.py - Product Reviews
# =============================================================================
# Customers review products they received: the review is tied to one of
# their delivered orders containing the product. One live review per
# customer and product, editable for REVIEW_EDIT_WINDOW_DAYS.
#
# Other users vote reviews helpful or not (one vote each, changeable) and
# the product's seller may answer each review once, editing the answer
# afterwards. products.rating_average and review_count follow every
# create, edit and delete.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.commerce import (
    OrderStatus,
    ReviewCreate,
    ReviewQuery,
    ReviewUpdate,
    ReviewVote,
    SellerResponse,
)
from core.models.notification import NotificationType
from core.models.user import AuthUser
from core.services.catalog_service import PRODUCTS_TABLE, CatalogService
from core.services.notification_service import NotificationService
from core.services.user_service import UserService
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import new_id, parse_timestamp, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "product_reviews"
VOTES_TABLE = "review_votes"


class ReviewService:
    """Service for product reviews."""

    @staticmethod
    def _purchase_order_id(customer_id: str, product_id: str) -> str | None:
        """Most recent delivered order of the customer that contains the product."""
        orders = SupabaseClient.fetch_all(
            "orders",
            desc=True,
            customer_id=customer_id,
            status=OrderStatus.DELIVERED.value,
        )
        for order in orders:
            if SupabaseClient.fetch_one("order_items", order_id=order["id"], product_id=product_id):
                return order["id"]
        return None

    @staticmethod
    def _refresh_rating(product_id: str) -> None:
        ratings = [row["rating"] for row in SupabaseClient.fetch_all(TABLE, product_id=product_id, deleted_at=None)]
        SupabaseClient.update_row(PRODUCTS_TABLE, product_id, {
            "rating_average": round(sum(ratings) / len(ratings), 2) if ratings else None,
            "review_count": len(ratings),
        })

    @staticmethod
    def get_review(review_id: UUID | str) -> dict[str, Any]:
        review = SupabaseClient.fetch_by_id(TABLE, review_id)
        if not review:
            raise NotFoundError("Review", review_id)
        return review

    @staticmethod
    def _get_own_review(actor: AuthUser, review_id: UUID | str) -> dict[str, Any]:
        review = ReviewService.get_review(review_id)
        if review["customer_id"] != str(actor.id):
            raise PermissionDeniedError(
                message="Only the author can change this review",
                code="NOT_REVIEW_AUTHOR",
            )
        return review

    @staticmethod
    def create_review(actor: AuthUser, product_id: UUID | str, review: ReviewCreate) -> dict[str, Any]:
        """
        Review a product the caller bought and received.

        Raises:
            NotFoundError: Unknown or hidden product
            PermissionDeniedError: NOT_VERIFIED_PURCHASE, or the caller may
                not post content
            ConflictError: REVIEW_EXISTS
        """
        product = CatalogService.get_product(product_id, actor)
        UserService.ensure_can_participate(actor.id)

        order_id = ReviewService._purchase_order_id(str(actor.id), product["id"])
        if not order_id:
            raise PermissionDeniedError(
                message="Only customers who received this product can review it",
                code="NOT_VERIFIED_PURCHASE",
            )

        if SupabaseClient.fetch_one(TABLE, product_id=product["id"], customer_id=str(actor.id), deleted_at=None):
            raise ConflictError(
                message="You already reviewed this product",
                code="REVIEW_EXISTS",
                suggestion="Edit your existing review instead",
            )

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "product_id": product["id"],
            "customer_id": str(actor.id),
            "order_id": order_id,
            "rating": review.rating,
            "title": review.title,
            "body": review.body,
            "helpful_count": 0,
            "unhelpful_count": 0,
            "seller_response": None,
            "seller_response_at": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        ReviewService._refresh_rating(product["id"])

        logger.info(f"User {actor.id} reviewed product {product['id']} ({review.rating} stars)")
        return row

    @staticmethod
    def update_review(actor: AuthUser, review_id: UUID | str, update: ReviewUpdate) -> dict[str, Any]:
        """
        Raises:
            PermissionDeniedError: NOT_REVIEW_AUTHOR
            BusinessRuleError: REVIEW_EDIT_WINDOW_CLOSED
        """
        review = ReviewService._get_own_review(actor, review_id)

        deadline = parse_timestamp(review["created_at"]) + timedelta(days=settings.REVIEW_EDIT_WINDOW_DAYS)
        if utc_now() > deadline:
            raise BusinessRuleError(
                message=f"Reviews can only be edited within {settings.REVIEW_EDIT_WINDOW_DAYS} days",
                code="REVIEW_EDIT_WINDOW_CLOSED",
            )

        data = update.model_dump(exclude_unset=True, exclude_none=True)
        if not data:
            return review

        data["updated_at"] = utc_now_iso()
        row = SupabaseClient.update_row(TABLE, review["id"], data)
        if "rating" in data:
            ReviewService._refresh_rating(review["product_id"])
        return row

    @staticmethod
    def delete_review(actor: AuthUser, review_id: UUID | str) -> None:
        """Soft delete by the author or an admin; the customer may then review again."""
        review = ReviewService.get_review(review_id)
        if review["customer_id"] != str(actor.id) and not actor.is_admin:
            raise PermissionDeniedError(
                message="Only the author can delete this review",
                code="NOT_REVIEW_AUTHOR",
            )

        now = utc_now_iso()
        SupabaseClient.update_row(TABLE, review["id"], {"deleted_at": now, "updated_at": now})
        ReviewService._refresh_rating(review["product_id"])
        logger.info(f"User {actor.id} deleted review {review['id']}")

    @staticmethod
    def list_reviews(product_id: UUID | str, query: ReviewQuery) -> tuple[list[dict[str, Any]], int]:
        product = CatalogService.get_product(product_id)
        builder = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*", count="exact")
            .eq("product_id", product["id"])
            .is_("deleted_at", "null")
        )

        if query.rating:
            builder = builder.eq("rating", query.rating)
        if query.has_response is True:
            builder = builder.not_.is_("seller_response", "null")
        elif query.has_response is False:
            builder = builder.is_("seller_response", "null")

        builder = builder.order(query.sort, desc=query.order == "desc")
        return paginate_query(builder, query)

    @staticmethod
    def vote(actor: AuthUser, review_id: UUID | str, vote: ReviewVote) -> dict[str, Any]:
        """
        Mark a review helpful or unhelpful; voting again replaces the vote.

        Raises:
            BusinessRuleError: SELF_VOTE
        """
        review = ReviewService.get_review(review_id)
        if review["customer_id"] == str(actor.id):
            raise BusinessRuleError(message="You cannot vote on your own review", code="SELF_VOTE")

        existing = SupabaseClient.fetch_one(VOTES_TABLE, review_id=review["id"], user_id=str(actor.id))
        if existing and existing["is_helpful"] == vote.helpful:
            return review

        helpful = review.get("helpful_count") or 0
        unhelpful = review.get("unhelpful_count") or 0
        now = utc_now_iso()

        if existing:
            SupabaseClient.update_row(VOTES_TABLE, existing["id"], {"is_helpful": vote.helpful, "updated_at": now})
            if vote.helpful:
                unhelpful -= 1
            else:
                helpful -= 1
        else:
            SupabaseClient.insert_row(VOTES_TABLE, {
                "id": new_id(),
                "review_id": review["id"],
                "user_id": str(actor.id),
                "is_helpful": vote.helpful,
                "created_at": now,
                "updated_at": now,
            })

        if vote.helpful:
            helpful += 1
        else:
            unhelpful += 1

        return SupabaseClient.update_row(TABLE, review["id"], {
            "helpful_count": helpful,
            "unhelpful_count": unhelpful,
        })

    @staticmethod
    def respond(actor: AuthUser, review_id: UUID | str, response: SellerResponse) -> dict[str, Any]:
        """
        Answer a review as the product's seller.

        Raises:
            PermissionDeniedError: NOT_PRODUCT_SELLER
        """
        review = ReviewService.get_review(review_id)
        product = SupabaseClient.fetch_one(PRODUCTS_TABLE, id=review["product_id"])
        if not product or product["seller_id"] != str(actor.id):
            raise PermissionDeniedError(
                message="Only the product's seller can answer its reviews",
                code="NOT_PRODUCT_SELLER",
            )

        first_answer = review.get("seller_response") is None
        now = utc_now_iso()
        row = SupabaseClient.update_row(TABLE, review["id"], {
            "seller_response": response.body,
            "seller_response_at": now,
            "updated_at": now,
        })

        if first_answer:
            NotificationService.notify(
                review["customer_id"],
                NotificationType.REVIEW_RESPONSE,
                title=f"The seller answered your review of {product['name']}",
                body=response.body,
                reference_type="review",
                reference_id=review["id"],
            )
        logger.info(f"Seller {actor.id} answered review {review['id']}")
        return row

