# =============================================================================
# core/models/todo.py - Todo Schemas
# =============================================================================
# A todo belongs to exactly one user and is invisible to everyone else.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from lib.pagination import PageRequest


class TodoPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# Sort rank for priority ordering (High first when descending)
PRIORITY_RANK = {TodoPriority.LOW.value: 0, TodoPriority.MEDIUM.value: 1, TodoPriority.HIGH.value: 2}


class TodoCreate(BaseModel):
    """
    Example:
        {"title": "Prepare quarterly budget report", "priority": "High"}
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    priority: TodoPriority = TodoPriority.MEDIUM
    due_date: datetime | None = None


class TodoUpdate(BaseModel):
    """Partial update. Setting is_completed stamps or clears completed_at."""
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    priority: TodoPriority | None = None
    is_completed: bool | None = None
    due_date: datetime | None = None


class TodoResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    priority: TodoPriority
    is_completed: bool
    completed_at: datetime | None = None
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TodoQuery(PageRequest):
    """Search, filters and ordering for GET /todos."""
    search: str | None = Field(default=None, max_length=200, description="Case-insensitive title substring")
    is_completed: bool | None = None
    priority: TodoPriority | None = None
    sort: Literal["created_at", "due_date", "priority", "title"] = "created_at"
    order: Literal["asc", "desc"] = "desc"
