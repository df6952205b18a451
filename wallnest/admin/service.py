"""
Read-only aggregates for the admin dashboard
"""
from datetime import datetime
from typing import List, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wallnest.admin.constants import DEFAULT_ACTIVITY_LIMIT, MAX_ACTIVITY_LIMIT
from wallnest.admin.schemas import DashboardStats, RecentActivityItem
from wallnest.permissions import Action, ensure_allowed
from wallnest.posts.models import Post, PostStatus
from wallnest.reports.models import Report, ReportStatus
from wallnest.users.models import User
from wallnest.wallpapers.models import Wallpaper, WallpaperStatus


def current_month_range(now: datetime = None) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar month containing `now` (UTC)."""
    now = now or datetime.now(ZoneInfo("UTC"))
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class DashboardService:
    async def _count(self, db: AsyncSession, column, *conditions) -> int:
        return (await db.execute(select(func.count(column)).where(*conditions))).scalar_one()

    async def get_stats(self, current_user: User, db: AsyncSession) -> DashboardStats:
        ensure_allowed(current_user, Action.DASHBOARD_VIEW)
        start, end = current_month_range()
        published = Post.status == PostStatus.PUBLISHED.value

        return DashboardStats(
            total_users=await self._count(db, User.id),
            active_users=await self._count(db, User.id, User.is_active.is_(True)),
            total_wallpapers=await self._count(db, Wallpaper.id),
            new_wallpapers_this_month=await self._count(
                db, Wallpaper.id,
                Wallpaper.status == WallpaperStatus.APPROVED.value,
                Wallpaper.created_at >= start,
                Wallpaper.created_at < end,
            ),
            total_posts=await self._count(db, Post.id, published),
            new_posts_this_month=await self._count(
                db, Post.id, published, Post.created_at >= start, Post.created_at < end,
            ),
            total_reports=await self._count(db, Report.id),
            pending_reports=await self._count(db, Report.id, Report.status == ReportStatus.PENDING.value),
        )

    async def get_recent_activity(
        self,
        current_user: User,
        db: AsyncSession,
        limit: int = DEFAULT_ACTIVITY_LIMIT,
    ) -> List[RecentActivityItem]:
        """Latest reports with their reporter; limit is clamped to 1..20."""
        ensure_allowed(current_user, Action.DASHBOARD_VIEW)
        limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))
        result = await db.execute(
            select(Report)
            .options(selectinload(Report.user))
            .order_by(desc(Report.created_at), desc(Report.id))
            .limit(limit)
        )
        return [
            RecentActivityItem(
                id=report.id,
                reason=report.reason,
                status=report.status,
                created_at=report.created_at,
                reporter_id=report.user_id,
                reporter_username=report.user.username if report.user else None,
            )
            for report in result.scalars().all()
        ]
