from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from wallnest.models import CustomModel
from wallnest.reports.constants import MAX_DESCRIPTION_LENGTH, MAX_REVIEW_NOTE_LENGTH
from wallnest.reports.models import ReportReason, ReportStatus, ReportTargetType
from wallnest.users.schemas import UserBrief


class ReportCreate(CustomModel):
    target_type: ReportTargetType
    target_id: int = Field(..., ge=1)
    reason: ReportReason
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class ReportUpdate(CustomModel):
    """Admin review; status is inferred from review_note when omitted"""
    status: Optional[ReportStatus] = None
    review_note: Optional[str] = Field(None, max_length=MAX_REVIEW_NOTE_LENGTH)


class ReportFilters(CustomModel):
    target_type: Optional[ReportTargetType] = None
    reason: Optional[ReportReason] = None
    status: Optional[ReportStatus] = None
    user_id: Optional[int] = None


class ReportResponse(CustomModel):
    id: int
    user_id: int
    user: Optional[UserBrief] = None
    target_type: str
    target_id: int
    reason: str
    description: Optional[str] = None
    status: str
    reviewed_by: Optional[int] = None
    reviewer: Optional[UserBrief] = None
    review_note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CanReportResponse(CustomModel):
    can_report: bool
    reason: Optional[str] = None


class ReasonOption(CustomModel):
    value: ReportReason
    label: str
    description: str


class ReportStats(CustomModel):
    total: int
    pending: int
    reviewing: int
    resolved: int
    dismissed: int
    by_reason: Dict[str, int] = Field(default_factory=dict)
    by_target_type: Dict[str, int] = Field(default_factory=dict)
