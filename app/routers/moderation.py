# =============================================================================
# app/routers/moderation.py - Reports, Moderation Actions and Appeals
# =============================================================================
# Members report content; moderators triage reports and act on content and
# accounts; targeted members appeal; administrators decide appeals.
#
# Which actions a caller may take depends on the community being
# moderated, so the fine-grained checks live in the services.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, get_current_user, require_admin
from core.models.moderation import (
    AppealCreate,
    AppealDecision,
    AppealQuery,
    AppealResponse,
    AppealUpdate,
    ModerationActionCreate,
    ModerationActionQuery,
    ModerationActionResponse,
    ReportCreate,
    ReportQuery,
    ReportResponse,
    ReportStatusUpdate,
)
from core.services.appeal_service import AppealService
from core.services.moderation_service import ModerationService
from core.services.report_service import ReportService
from lib.pagination import Page, PageRequest, build_page

router = APIRouter()


# =============================================================================
# Reports
# =============================================================================

@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(body: ReportCreate, user: AuthUser = Depends(get_current_user)):
    """
    Report a post or comment.

    Raises:
        400: SELF_REPORT
        409: DUPLICATE_REPORT while your earlier report is still open
    """
    return ReportService.create_report(user, body)


@router.get("/reports", response_model=Page[ReportResponse])
async def list_reports(
    query: Annotated[ReportQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    """Moderation queue; community moderators only see their communities."""
    rows, total = ReportService.list_reports(user, query)
    return build_page(rows, total, query)


@router.get("/reports/mine", response_model=Page[ReportResponse])
async def list_my_reports(
    page: Annotated[PageRequest, Query()],
    user: AuthUser = Depends(get_current_user),
):
    rows, total = ReportService.list_my_reports(user, page)
    return build_page(rows, total, page)


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: Annotated[UUID, Path(description="Report UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return ReportService.get_report(user, report_id)


@router.patch("/reports/{report_id}", response_model=ReportResponse)
async def update_report_status(
    report_id: Annotated[UUID, Path(description="Report UUID")],
    body: ReportStatusUpdate,
    user: AuthUser = Depends(get_current_user),
):
    """Move a report through pending -> under_review -> resolved | dismissed."""
    return ReportService.update_status(user, report_id, body)


# =============================================================================
# Moderation Actions
# =============================================================================

@router.post("/actions", response_model=ModerationActionResponse, status_code=status.HTTP_201_CREATED)
async def create_action(body: ModerationActionCreate, user: AuthUser = Depends(get_current_user)):
    """
    Remove or restore content, warn, suspend, ban or lift a suspension.

    Content actions need moderator rights in the content's community.
    Suspensions need a platform moderator or admin; bans need an admin.
    """
    return ModerationService.create_action(user, body)


@router.get("/actions", response_model=Page[ModerationActionResponse])
async def list_actions(
    query: Annotated[ModerationActionQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    """Staff see every action; community moderators see their communities."""
    rows, total = ModerationService.list_actions(user, query)
    return build_page(rows, total, query)


@router.get("/actions/mine", response_model=Page[ModerationActionResponse])
async def list_actions_against_me(
    page: Annotated[PageRequest, Query()],
    user: AuthUser = Depends(get_current_user),
):
    """Actions taken against the caller, the ones they may appeal."""
    rows, total = ModerationService.list_actions_against(user.id, page)
    return build_page(rows, total, page)


@router.get("/actions/{action_id}", response_model=ModerationActionResponse)
async def get_action(
    action_id: Annotated[UUID, Path(description="Moderation action UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return ModerationService.get_action(user, action_id)


# =============================================================================
# Appeals
# =============================================================================

@router.post("/appeals", response_model=AppealResponse, status_code=status.HTTP_201_CREATED)
async def create_appeal(body: AppealCreate, user: AuthUser = Depends(get_current_user)):
    """
    Appeal an action taken against you.

    Open to appealably banned accounts, which can still log in.
    """
    return AppealService.create_appeal(user, body)


@router.get("/appeals", response_model=Page[AppealResponse])
async def list_appeals(
    query: Annotated[AppealQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    rows, total = AppealService.list_appeals(user, query)
    return build_page(rows, total, query)


@router.get("/appeals/{appeal_id}", response_model=AppealResponse)
async def get_appeal(
    appeal_id: Annotated[UUID, Path(description="Appeal UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return AppealService.get_appeal(user, appeal_id)


@router.patch("/appeals/{appeal_id}", response_model=AppealResponse)
async def update_appeal(
    appeal_id: Annotated[UUID, Path(description="Appeal UUID")],
    body: AppealUpdate,
    user: AuthUser = Depends(get_current_user),
):
    """Edit your appeal while it is pending."""
    return AppealService.update_appeal(user, appeal_id, body)


@router.post("/appeals/{appeal_id}/withdraw", response_model=AppealResponse)
async def withdraw_appeal(
    appeal_id: Annotated[UUID, Path(description="Appeal UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return AppealService.withdraw_appeal(user, appeal_id)


@router.post("/appeals/{appeal_id}/decision", response_model=AppealResponse)
async def decide_appeal(
    appeal_id: Annotated[UUID, Path(description="Appeal UUID")],
    body: AppealDecision,
    admin: AuthUser = Depends(require_admin),
):
    """Uphold or overturn. Overturning reverses the action's effect."""
    return AppealService.decide(admin, appeal_id, body)
