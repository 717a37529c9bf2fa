# =============================================================================
# core/models/moderation.py - Reports, Moderation Actions and Appeals
# =============================================================================
# Content reports feed the moderation queue. Moderators act on users and
# content; every action can be appealed once by the user it targeted.
#
# Report flow:  pending -> under_review -> resolved | dismissed
# Appeal flow:  pending_review -> upheld | overturned | withdrawn
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.community import VoteTarget
from lib.pagination import PageRequest


# =============================================================================
# Reports
# =============================================================================

class ReportCategory(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    MISINFORMATION = "misinformation"
    OFF_TOPIC = "off_topic"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


OPEN_REPORT_STATUSES = (ReportStatus.PENDING.value, ReportStatus.UNDER_REVIEW.value)


class ReportCreate(BaseModel):
    target_type: VoteTarget
    target_id: UUID
    category: ReportCategory
    description: str | None = Field(default=None, max_length=2000)


class ReportStatusUpdate(BaseModel):
    """
    Move a report through the queue.

    Dismissals must carry a resolution_note explaining why.
    """
    status: ReportStatus
    resolution_note: str | None = Field(default=None, max_length=2000)


class ReportResponse(BaseModel):
    id: UUID
    reporter_id: UUID
    target_type: VoteTarget
    target_id: UUID
    target_user_id: UUID
    community_id: UUID
    category: ReportCategory
    description: str | None = None
    status: ReportStatus
    reviewer_id: UUID | None = None
    resolution_note: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    resolved_at: datetime | None = None


class ReportQuery(PageRequest):
    status: ReportStatus | None = None
    category: ReportCategory | None = None
    target_type: VoteTarget | None = None
    community_id: UUID | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


# =============================================================================
# Moderation Actions
# =============================================================================

class ModerationActionType(str, Enum):
    REMOVE_CONTENT = "remove_content"
    RESTORE_CONTENT = "restore_content"
    WARN = "warn"
    SUSPEND = "suspend"
    BAN = "ban"
    LIFT_SUSPENSION = "lift_suspension"


CONTENT_ACTIONS = frozenset({
    ModerationActionType.REMOVE_CONTENT.value,
    ModerationActionType.RESTORE_CONTENT.value,
})

APPEALABLE_ACTIONS = frozenset({
    ModerationActionType.REMOVE_CONTENT.value,
    ModerationActionType.WARN.value,
    ModerationActionType.SUSPEND.value,
    ModerationActionType.BAN.value,
})


class ModerationActionCreate(BaseModel):
    """
    Examples:
        {"action_type": "remove_content", "target_type": "post", "target_id": "...", "reason": "spam"}
        {"action_type": "suspend", "target_user_id": "...", "duration_days": 7, "reason": "..."}
    """
    action_type: ModerationActionType
    reason: str = Field(..., min_length=1, max_length=2000)
    target_user_id: UUID | None = Field(default=None, description="Required for user actions")
    target_type: VoteTarget | None = Field(default=None, description="Required for content actions")
    target_id: UUID | None = None
    duration_days: int | None = Field(default=None, ge=1, description="Suspension length")
    is_appealable: bool = Field(default=True, description="Bans only")
    report_id: UUID | None = Field(default=None, description="Report this action resolves")


class ModerationActionResponse(BaseModel):
    id: UUID
    moderator_id: UUID
    target_user_id: UUID
    action_type: ModerationActionType
    target_type: VoteTarget | None = None
    target_id: UUID | None = None
    community_id: UUID | None = None
    report_id: UUID | None = None
    reason: str
    duration_days: int | None = None
    expires_at: datetime | None = None
    is_appealable: bool = True
    is_reversed: bool = False
    created_at: datetime


class ModerationActionQuery(PageRequest):
    action_type: ModerationActionType | None = None
    target_user_id: UUID | None = None
    moderator_id: UUID | None = None


# =============================================================================
# Appeals
# =============================================================================

class AppealStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    UPHELD = "upheld"
    OVERTURNED = "overturned"
    WITHDRAWN = "withdrawn"


class AppealCreate(BaseModel):
    moderation_action_id: UUID
    explanation: str = Field(..., min_length=10, max_length=5000)
    additional_evidence: str | None = Field(default=None, max_length=5000)


class AppealUpdate(BaseModel):
    explanation: str | None = Field(default=None, min_length=10, max_length=5000)
    additional_evidence: str | None = Field(default=None, max_length=5000)


class AppealDecision(BaseModel):
    decision: AppealStatus = Field(..., description="upheld or overturned")
    decision_reasoning: str = Field(..., min_length=1, max_length=5000)


class AppealResponse(BaseModel):
    id: UUID
    appellant_id: UUID
    moderation_action_id: UUID
    explanation: str
    additional_evidence: str | None = None
    status: AppealStatus
    reviewer_id: UUID | None = None
    decision_reasoning: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    reviewed_at: datetime | None = None


class AppealQuery(PageRequest):
    status: AppealStatus | None = None
