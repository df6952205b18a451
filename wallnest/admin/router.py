"""
Admin endpoints: dashboard, users, wallpapers and reports.
Every route requires an administrator.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.admin.constants import DEFAULT_ACTIVITY_LIMIT
from wallnest.admin.dependencies import get_dashboard_service
from wallnest.admin.schemas import DashboardStats, RecentActivityItem, UserStatusUpdate
from wallnest.admin.service import DashboardService
from wallnest.auth.dependencies import require_admin
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.reports.constants import REPORT_UPDATED
from wallnest.reports.dependencies import get_report_filters, get_report_service
from wallnest.reports.schemas import ReportFilters, ReportResponse, ReportStats, ReportUpdate
from wallnest.reports.service import ReportService
from wallnest.tags.schemas import WallpaperTagsUpdate
from wallnest.users.dependencies import get_users_service
from wallnest.users.models import User, UserRole
from wallnest.users.schemas import AdminUserCreate, AdminUserUpdate, UserResetPassword, UserResponse
from wallnest.users.service import UsersService
from wallnest.wallpapers.constants import DEFAULT_SORT_FIELD, WALLPAPER_DELETED, WALLPAPER_UPDATED
from wallnest.wallpapers.dependencies import get_wallpaper_filters, get_wallpaper_service
from wallnest.wallpapers.schemas import AdminWallpaperUpdate, WallpaperFilters, WallpaperResponse
from wallnest.wallpapers.service import WallpaperService

router = APIRouter(prefix="/admin", tags=["Admin"])


# Dashboard

@router.get("/dashboard/stats", response_model=ApiResponse[DashboardStats])
async def dashboard_stats(
    admin: User = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
    db: AsyncSession = Depends(get_db)
):
    """Site totals plus this month's new wallpapers and posts"""
    return ok(await service.get_stats(admin, db))


@router.get("/dashboard/activity", response_model=ApiResponse[List[RecentActivityItem]])
async def dashboard_activity(
    limit: int = Query(DEFAULT_ACTIVITY_LIMIT, description="Clamped to 1-20"),
    admin: User = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
    db: AsyncSession = Depends(get_db)
):
    """Most recent reports"""
    return ok(await service.get_recent_activity(admin, db, limit))


# Users

@router.get("/users", response_model=ApiResponse[List[UserResponse]])
async def list_users(
    search: Optional[str] = Query(None, description="Substring of username, e-mail or full name"),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.list_users(
        admin, db,
        search=search,
        role=role,
        is_active=is_active,
        page=pagination.page,
        limit=pagination.limit,
    )
    return paginated([UserResponse.model_validate(u) for u in items], total, pagination.page, pagination.limit)


@router.get("/users/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(UserResponse.model_validate(await service.get_user(user_id, db)))


@router.post("/users", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    data: AdminUserCreate,
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    user = await service.create_user(data, admin, db)
    return ok(UserResponse.model_validate(user), "User created")


@router.patch("/users/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: int,
    data: AdminUserUpdate,
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    user = await service.admin_update_user(user_id, data, admin, db)
    return ok(UserResponse.model_validate(user), "User updated")


@router.patch("/users/{user_id}/status", response_model=ApiResponse[UserResponse])
async def set_user_status(
    user_id: int,
    data: UserStatusUpdate,
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    """Enable or disable an account"""
    user = await service.admin_update_user(user_id, AdminUserUpdate(is_active=data.is_active), admin, db)
    return ok(UserResponse.model_validate(user), "User status updated")


@router.put("/users/{user_id}/password", response_model=ApiResponse[None])
async def reset_user_password(
    user_id: int,
    data: UserResetPassword,
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    await service.reset_user_password(user_id, data, admin, db)
    return ok(message="Password reset")


@router.delete("/users/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    """Delete an account together with its wallpapers, posts, comments and reports"""
    await service.delete_user(user_id, admin, db)
    return ok(message="User deleted")


# Wallpapers

@router.get("/wallpapers", response_model=ApiResponse[List[WallpaperResponse]])
async def list_wallpapers(
    status_filter: Optional[int] = Query(None, alias="status", ge=0, le=1, description="0 pending, 1 approved"),
    filters: WallpaperFilters = Depends(get_wallpaper_filters),
    pagination: PaginationParams = Depends(),
    sort_by: str = Query(DEFAULT_SORT_FIELD),
    sort_order: str = Query("desc", pattern="^(asc|desc|ASC|DESC)$"),
    admin: User = Depends(require_admin),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """All wallpapers regardless of review status"""
    items, total = await service.find_all(
        filters, db,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by,
        sort_order=sort_order,
        include_unapproved=True,
        status=status_filter,
    )
    return paginated([WallpaperResponse.model_validate(w) for w in items], total, pagination.page, pagination.limit)


@router.get("/wallpapers/{wallpaper_id}", response_model=ApiResponse[WallpaperResponse])
async def get_wallpaper(
    wallpaper_id: int,
    admin: User = Depends(require_admin),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(WallpaperResponse.model_validate(await service.get_wallpaper(wallpaper_id, db)))


@router.patch("/wallpapers/{wallpaper_id}", response_model=ApiResponse[WallpaperResponse])
async def update_wallpaper(
    wallpaper_id: int,
    data: AdminWallpaperUpdate,
    admin: User = Depends(require_admin),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """Edit metadata, approve/unapprove (status) or feature a wallpaper"""
    wallpaper = await service.admin_update(wallpaper_id, data, db)
    return ok(WallpaperResponse.model_validate(wallpaper), WALLPAPER_UPDATED)


@router.patch("/wallpapers/{wallpaper_id}/tags", response_model=ApiResponse[WallpaperResponse])
async def update_wallpaper_tags(
    wallpaper_id: int,
    data: WallpaperTagsUpdate,
    admin: User = Depends(require_admin),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    wallpaper = await service.update_tags(wallpaper_id, data.tags, db)
    return ok(WallpaperResponse.model_validate(wallpaper), WALLPAPER_UPDATED)


@router.delete("/wallpapers/{wallpaper_id}", response_model=ApiResponse[None])
async def delete_wallpaper(
    wallpaper_id: int,
    admin: User = Depends(require_admin),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    await service.delete(wallpaper_id, admin, db)
    return ok(message=WALLPAPER_DELETED)


# Reports

@router.get("/reports", response_model=ApiResponse[List[ReportResponse]])
async def list_reports(
    filters: ReportFilters = Depends(get_report_filters),
    pagination: PaginationParams = Depends(),
    admin: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.list_reports(filters, admin, db, pagination.page, pagination.limit)
    return paginated([ReportResponse.model_validate(r) for r in items], total, pagination.page, pagination.limit)


@router.get("/reports/stats", response_model=ApiResponse[ReportStats])
async def report_stats(
    admin: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.get_stats(admin, db))


@router.get("/reports/{report_id}", response_model=ApiResponse[ReportResponse])
async def get_report(
    report_id: int,
    admin: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(ReportResponse.model_validate(await service.get_report(report_id, db)))


@router.put("/reports/{report_id}/status", response_model=ApiResponse[ReportResponse])
async def update_report_status(
    report_id: int,
    data: ReportUpdate,
    admin: User = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Review a report

    - **status**: reviewing, resolved or dismissed; when omitted a **review_note**
      resolves the report and no note marks it as reviewing
    - Resolved and dismissed reports cannot be changed again (403)
    """
    report = await service.update_status(report_id, data, admin, db)
    return ok(ReportResponse.model_validate(report), REPORT_UPDATED)
