# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides the row-level helpers every service builds on:
# - fetch_by_id / fetch_one for single-row lookups
# - insert_row / update_row / delete_rows for writes
# - count_rows for cheap existence and limit checks
#
# Services that need filtering, ordering or pagination use the raw query
# builder returned by get_client() directly.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   user = SupabaseClient.fetch_by_id("users", user_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        # Fetch a post unless it was soft deleted
        post = SupabaseClient.fetch_by_id("posts", post_id)

        # Fetch the user registered with an email
        user = SupabaseClient.fetch_one("users", email="ada@example.com")
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        Authorization is enforced by the service layer instead.

        Returns:
            Client: Supabase client instance

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_by_id(
        cls,
        table: str,
        row_id: str | UUID,
        include_deleted: bool = False,
    ) -> dict[str, Any] | None:
        """
        Fetch a single row by primary key.

        Args:
            table: Table name
            row_id: Row UUID
            include_deleted: Return soft-deleted rows too (tables with deleted_at)

        Returns:
            Row dict, or None if not found
        """
        filters: dict[str, Any] = {"id": cls._normalize_uuid(row_id)}
        if not include_deleted:
            filters["deleted_at"] = None
        return cls.fetch_one(table, **filters)

    @classmethod
    def fetch_one(cls, table: str, **filters: Any) -> dict[str, Any] | None:
        """
        Fetch the first row matching equality filters.

        A filter value of None matches SQL NULL.

        Example:
            SupabaseClient.fetch_one("votes", user_id=uid, target_id=pid)
        """
        client = cls.get_client()

        try:
            query = client.table(table).select("*")
            query = cls._apply_filters(query, filters)
            response = query.limit(1).execute()
            return response.data[0] if response.data else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                details={"table": table, "filters": {k: str(v) for k, v in filters.items()}}
            )

    @classmethod
    def fetch_all(
        cls,
        table: str,
        order_by: str | None = "created_at",
        desc: bool = False,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """Fetch every row matching equality filters."""
        client = cls.get_client()

        try:
            query = client.table(table).select("*")
            query = cls._apply_filters(query, filters)
            if order_by:
                query = query.order(order_by, desc=desc)
            response = query.execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                details={"table": table}
            )

    @classmethod
    def count_rows(cls, table: str, **filters: Any) -> int:
        """Count rows matching equality filters."""
        client = cls.get_client()

        try:
            query = client.table(table).select("id", count="exact")
            query = cls._apply_filters(query, filters)
            response = query.execute()
            return response.count or 0

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to count rows in {table}: {e}",
                code="COUNT_FAILED",
                details={"table": table}
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @classmethod
    def insert_row(cls, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a row and return it as stored.

        Raises:
            SupabaseClientError: If insert fails or returns nothing
        """
        client = cls.get_client()

        try:
            response = client.table(table).insert(data).execute()

            if response.data:
                return response.data[0]
            raise SupabaseClientError(
                message="Insert returned no data",
                code="INSERT_NO_DATA",
                details={"table": table}
            )

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert into {table}: {e}",
                code="INSERT_FAILED",
                details={"table": table}
            )

    @classmethod
    def update_row(
        cls,
        table: str,
        row_id: str | UUID,
        data: dict[str, Any],
    ) -> dict[str, Any] | None:
        """
        Update a row by primary key.

        Returns:
            Updated row dict, or None if no row matched
        """
        client = cls.get_client()
        row_id_str = cls._normalize_uuid(row_id)

        try:
            response = (
                client.table(table)
                .update(data)
                .eq("id", row_id_str)
                .execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update {table}: {e}",
                code="UPDATE_FAILED",
                details={"table": table, "id": row_id_str}
            )

    @classmethod
    def update_where(cls, table: str, data: dict[str, Any], **filters: Any) -> list[dict[str, Any]]:
        """Update every row matching equality filters."""
        client = cls.get_client()

        try:
            query = client.table(table).update(data)
            query = cls._apply_filters(query, filters)
            response = query.execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update {table}: {e}",
                code="UPDATE_FAILED",
                details={"table": table}
            )

    @classmethod
    def delete_rows(cls, table: str, **filters: Any) -> list[dict[str, Any]]:
        """
        Hard delete rows matching equality filters.

        Only used for join tables (votes, memberships, cart items). Content
        tables are soft deleted through update_row().
        """
        if not filters:
            raise SupabaseClientError(
                message="Refusing to delete without filters",
                code="UNSAFE_DELETE",
                details={"table": table}
            )

        client = cls.get_client()

        try:
            query = client.table(table).delete()
            query = cls._apply_filters(query, filters)
            response = query.execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete from {table}: {e}",
                code="DELETE_FAILED",
                details={"table": table}
            )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @classmethod
    def _apply_filters(cls, query: Any, filters: dict[str, Any]) -> Any:
        """Apply equality filters, mapping None to IS NULL."""
        for column, value in filters.items():
            if value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, cls._normalize_uuid(value))
        return query

    @classmethod
    def ping(cls) -> None:
        """Run a trivial query. Raises if the database is unreachable."""
        cls.get_client().table("users").select("id").limit(1).execute()
