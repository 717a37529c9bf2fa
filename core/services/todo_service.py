# =============================================================================
# core/services/todo_service.py - Personal Todos
# =============================================================================
# Todos are private: every lookup is scoped to the owner, and a todo owned by
# someone else is reported as not found.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError
from core.models.todo import PRIORITY_RANK, TodoCreate, TodoQuery, TodoUpdate
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import like_pattern, new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "todos"


class TodoService:
    """Service for todo items."""

    @staticmethod
    def create_todo(user_id: UUID | str, todo: TodoCreate) -> dict[str, Any]:
        now = utc_now_iso()
        data = todo.model_dump(mode="json")
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "user_id": normalize_uuid(user_id),
            **data,
            "priority_rank": PRIORITY_RANK[data["priority"]],
            "is_completed": False,
            "completed_at": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        logger.info(f"Created todo {row['id']} for user {user_id}")
        return row

    @staticmethod
    def get_todo(todo_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        """
        Get a todo owned by a user.

        Raises:
            NotFoundError: If the todo doesn't exist, is deleted, or belongs
                to someone else
        """
        todo = SupabaseClient.fetch_by_id(TABLE, todo_id)
        if not todo or todo["user_id"] != normalize_uuid(user_id):
            raise NotFoundError("Todo", todo_id)
        return todo

    @staticmethod
    def update_todo(todo_id: UUID | str, user_id: UUID | str, update: TodoUpdate) -> dict[str, Any]:
        """
        Partially update a todo.

        Completing a todo stamps completed_at; reopening it clears it.
        """
        todo = TodoService.get_todo(todo_id, user_id)

        data = update.model_dump(exclude_unset=True, mode="json")
        if "priority" in data:
            if data["priority"] is None:
                data.pop("priority")
            else:
                data["priority_rank"] = PRIORITY_RANK[data["priority"]]
        if data.get("title", "") is None:
            data.pop("title")

        if "is_completed" in data:
            completed = bool(data["is_completed"])
            data["is_completed"] = completed
            if completed and not todo["is_completed"]:
                data["completed_at"] = utc_now_iso()
            elif not completed:
                data["completed_at"] = None

        if not data:
            return todo

        data["updated_at"] = utc_now_iso()
        return SupabaseClient.update_row(TABLE, todo_id, data)

    @staticmethod
    def delete_todo(todo_id: UUID | str, user_id: UUID | str) -> None:
        TodoService.get_todo(todo_id, user_id)
        now = utc_now_iso()
        SupabaseClient.update_row(TABLE, todo_id, {"deleted_at": now, "updated_at": now})
        logger.info(f"Deleted todo {todo_id}")

    @staticmethod
    def list_todos(user_id: UUID | str, query: TodoQuery) -> tuple[list[dict[str, Any]], int]:
        """
        List a user's todos.

        Priority sorts by rank (Low < Medium < High), not alphabetically.
        """
        client = SupabaseClient.get_client()
        builder = (
            client.table(TABLE)
            .select("*", count="exact")
            .eq("user_id", normalize_uuid(user_id))
            .is_("deleted_at", "null")
        )

        if query.search:
            builder = builder.ilike("title", like_pattern(query.search))
        if query.is_completed is not None:
            builder = builder.eq("is_completed", query.is_completed)
        if query.priority:
            builder = builder.eq("priority", query.priority.value)

        sort_column = "priority_rank" if query.sort == "priority" else query.sort
        builder = builder.order(sort_column, desc=query.order == "desc")
        if sort_column != "created_at":
            builder = builder.order("created_at", desc=True)

        return paginate_query(builder, query)
