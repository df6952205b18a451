from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import get_current_active_user
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.reports.constants import REPORT_CREATED
from wallnest.reports.dependencies import get_report_service
from wallnest.reports.models import ReportTargetType
from wallnest.reports.schemas import CanReportResponse, ReasonOption, ReportCreate, ReportResponse
from wallnest.reports.service import ReportService
from wallnest.users.models import User

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/reasons", response_model=ApiResponse[List[ReasonOption]])
async def report_reasons(service: ReportService = Depends(get_report_service)):
    """Reasons a user can pick from when reporting"""
    return ok(service.get_reasons())


@router.post("/", response_model=ApiResponse[ReportResponse], status_code=status.HTTP_201_CREATED)
async def create_report(
    data: ReportCreate,
    current_user: User = Depends(get_current_active_user),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Report a post or a comment

    A user can report the same target only once (409 on repeat).
    """
    report = await service.create(data, current_user, db)
    return ok(ReportResponse.model_validate(report), REPORT_CREATED)


@router.get("/me", response_model=ApiResponse[List[ReportResponse]])
async def my_reports(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.get_user_reports(current_user.id, db, pagination.page, pagination.limit)
    return paginated([ReportResponse.model_validate(r) for r in items], total, pagination.page, pagination.limit)


@router.get("/check/{target_type}/{target_id}", response_model=ApiResponse[CanReportResponse])
async def check_can_report(
    target_type: ReportTargetType,
    target_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.check_can_report(current_user.id, target_type, target_id, db))
