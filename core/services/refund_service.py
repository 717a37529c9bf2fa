# =============================================================================
# core/services/refund_service.py - Refund Requests
# =============================================================================
# A customer asks for (part of) an order's money back after it shipped. The
# order's seller or an admin approves or rejects. Approved amounts
# accumulate in orders.refunded_amount; once they cover the whole order it
# becomes refunded.
#
#   pending -> approved | rejected | cancelled
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.commerce import OrderStatus, RefundCreate, RefundDecision, RefundQuery, RefundStatus
from core.models.notification import NotificationType
from core.models.user import AuthUser
from core.services.notification_service import NotificationService
from core.services.order_service import OrderService
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import money_out, new_id, normalize_uuid, parse_timestamp, to_money, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "refunds"

REFUNDABLE_STATUSES = (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value)


class RefundService:
    """Service for refunds."""

    @staticmethod
    def request_refund(actor: AuthUser, order_id: UUID | str, refund: RefundCreate) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the caller didn't place the order
            BusinessRuleError: NOT_REFUNDABLE, REFUND_WINDOW_CLOSED,
                REFUND_EXCEEDS_BALANCE
            ConflictError: REFUND_PENDING
        """
        order = OrderService.get_order(actor, order_id)
        if order["customer_id"] != str(actor.id):
            raise NotFoundError("Order", order_id)

        if order["status"] not in REFUNDABLE_STATUSES:
            raise BusinessRuleError(
                message=f"Orders that are {order['status']} cannot be refunded",
                code="NOT_REFUNDABLE",
                suggestion="Cancel the order instead if it has not shipped",
            )

        if order["status"] == OrderStatus.DELIVERED.value and order.get("delivered_at"):
            deadline = parse_timestamp(order["delivered_at"]) + timedelta(days=settings.REFUND_WINDOW_DAYS)
            if utc_now() > deadline:
                raise BusinessRuleError(
                    message=f"Refunds must be requested within {settings.REFUND_WINDOW_DAYS} days of delivery",
                    code="REFUND_WINDOW_CLOSED",
                )

        if SupabaseClient.fetch_one(TABLE, order_id=order["id"], status=RefundStatus.PENDING.value):
            raise ConflictError(
                message="This order already has a pending refund",
                code="REFUND_PENDING",
            )

        amount = to_money(refund.amount)
        balance = to_money(order["total_amount"]) - to_money(order.get("refunded_amount") or 0)
        if amount > balance:
            raise BusinessRuleError(
                message=f"Refund exceeds the refundable balance of {balance}",
                code="REFUND_EXCEEDS_BALANCE",
                details={"refundable": money_out(balance)},
            )

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "order_id": order["id"],
            "customer_id": str(actor.id),
            "amount": money_out(amount),
            "reason": refund.reason,
            "status": RefundStatus.PENDING.value,
            "reviewer_id": None,
            "review_note": None,
            "created_at": now,
            "updated_at": now,
            "reviewed_at": None,
        })
        logger.info(f"User {actor.id} requested refund {row['id']} of {amount} on order {order['id']}")

        NotificationService.notify(
            order["seller_id"],
            NotificationType.REFUND_STATUS,
            title=f"Refund requested on order {order['order_number']}",
            body=refund.reason,
            reference_type="refund",
            reference_id=row["id"],
        )
        return row

    @staticmethod
    def _get_refund(refund_id: UUID | str) -> dict[str, Any]:
        refund = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(refund_id))
        if not refund:
            raise NotFoundError("Refund", refund_id)
        return refund

    @staticmethod
    def get_refund(actor: AuthUser, refund_id: UUID | str) -> dict[str, Any]:
        refund = RefundService._get_refund(refund_id)
        OrderService.get_order(actor, refund["order_id"])
        return refund

    @staticmethod
    def list_refunds(actor: AuthUser, query: RefundQuery) -> tuple[list[dict[str, Any]], int]:
        """
        Admins see every refund; customers their own.

        With as_seller the caller gets the refunds requested on orders they
        fulfil, which is the seller's review queue.
        """
        builder = SupabaseClient.get_client().table(TABLE).select("*", count="exact")
        if query.as_seller:
            order_ids = [order["id"] for order in SupabaseClient.fetch_all("orders", seller_id=str(actor.id))]
            if not order_ids:
                return [], 0
            builder = builder.in_("order_id", order_ids)
        elif not actor.is_admin:
            builder = builder.eq("customer_id", str(actor.id))
        if query.status:
            builder = builder.eq("status", query.status.value)
        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    @staticmethod
    def list_order_refunds(actor: AuthUser, order_id: UUID | str) -> list[dict[str, Any]]:
        order = OrderService.get_order(actor, order_id)
        return SupabaseClient.fetch_all(TABLE, order_id=order["id"])

    @staticmethod
    def decide(actor: AuthUser, refund_id: UUID | str, decision: RefundDecision) -> dict[str, Any]:
        """
        Approve or reject a pending refund.

        Raises:
            PermissionDeniedError: NOT_ORDER_SELLER
            BusinessRuleError: REFUND_NOT_PENDING, REFUND_EXCEEDS_BALANCE
        """
        refund = RefundService._get_refund(refund_id)
        order = OrderService.get_order(actor, refund["order_id"])
        if order["seller_id"] != str(actor.id) and not actor.is_admin:
            raise PermissionDeniedError(
                message="Only the seller or an admin can decide refunds",
                code="NOT_ORDER_SELLER",
            )
        if refund["status"] != RefundStatus.PENDING.value:
            raise BusinessRuleError(
                message=f"Refund is already {refund['status']}",
                code="REFUND_NOT_PENDING",
            )

        now = utc_now_iso()
        if decision.status == RefundStatus.APPROVED.value:
            total = to_money(order["total_amount"])
            refunded = to_money(order.get("refunded_amount") or 0) + to_money(refund["amount"])
            if refunded > total:
                raise BusinessRuleError(
                    message="Refund exceeds the refundable balance",
                    code="REFUND_EXCEEDS_BALANCE",
                )
            order = SupabaseClient.update_row("orders", order["id"], {
                "refunded_amount": money_out(refunded),
                "updated_at": now,
            })
            if refunded == total:
                OrderService.mark_refunded(order, actor.id)

        updated = SupabaseClient.update_row(TABLE, refund["id"], {
            "status": decision.status,
            "reviewer_id": str(actor.id),
            "review_note": decision.review_note,
            "reviewed_at": now,
            "updated_at": now,
        })
        logger.info(f"User {actor.id} {decision.status} refund {refund['id']}")

        NotificationService.notify(
            refund["customer_id"],
            NotificationType.REFUND_STATUS,
            title=f"Your refund request was {decision.status}",
            body=decision.review_note,
            reference_type="refund",
            reference_id=refund["id"],
        )
        return updated

    @staticmethod
    def cancel_refund(actor: AuthUser, refund_id: UUID | str) -> dict[str, Any]:
        refund = RefundService._get_refund(refund_id)
        if refund["customer_id"] != str(actor.id):
            raise NotFoundError("Refund", refund_id)
        if refund["status"] != RefundStatus.PENDING.value:
            raise BusinessRuleError(
                message=f"Refund is already {refund['status']}",
                code="REFUND_NOT_PENDING",
            )
        return SupabaseClient.update_row(TABLE, refund["id"], {
            "status": RefundStatus.CANCELLED.value,
            "updated_at": utc_now_iso(),
        })
