from typing import Optional

from fastapi import Query

from wallnest.reports.models import ReportReason, ReportStatus, ReportTargetType
from wallnest.reports.schemas import ReportFilters
from wallnest.reports.service import ReportService


def get_report_service() -> ReportService:
    return ReportService()


def get_report_filters(
    target_type: Optional[ReportTargetType] = Query(None),
    reason: Optional[ReportReason] = Query(None),
    status: Optional[ReportStatus] = Query(None),
    user_id: Optional[int] = Query(None, ge=1, description="Reporter"),
) -> ReportFilters:
    return ReportFilters(target_type=target_type, reason=reason, status=status, user_id=user_id)
