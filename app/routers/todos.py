# =============================================================================
# app/routers/todos.py - Personal Todo Endpoints
# =============================================================================
# Every todo belongs to the caller; other users' todos answer 404.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, get_current_user
from core.models.todo import TodoCreate, TodoQuery, TodoResponse, TodoUpdate
from core.services.todo_service import TodoService
from lib.pagination import Page, build_page

router = APIRouter()


@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(body: TodoCreate, user: AuthUser = Depends(get_current_user)):
    return TodoService.create_todo(user.id, body)


@router.get("", response_model=Page[TodoResponse])
async def list_todos(
    query: Annotated[TodoQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    """
    List the caller's todos.

    Supports title search, is_completed and priority filters, and sorting
    by created_at, due_date, priority or title.
    """
    rows, total = TodoService.list_todos(user.id, query)
    return build_page(rows, total, query)


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: Annotated[UUID, Path(description="Todo UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return TodoService.get_todo(todo_id, user.id)


@router.patch("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: Annotated[UUID, Path(description="Todo UUID")],
    body: TodoUpdate,
    user: AuthUser = Depends(get_current_user),
):
    return TodoService.update_todo(todo_id, user.id, body)


@router.delete("/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(
    todo_id: Annotated[UUID, Path(description="Todo UUID")],
    user: AuthUser = Depends(get_current_user),
):
    TodoService.delete_todo(todo_id, user.id)
