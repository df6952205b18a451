from datetime import datetime
from typing import Optional

from pydantic import Field

from wallnest.models import CustomModel


class DashboardStats(CustomModel):
    total_users: int
    active_users: int
    total_wallpapers: int
    new_wallpapers_this_month: int
    total_posts: int
    new_posts_this_month: int
    total_reports: int
    pending_reports: int


class RecentActivityItem(CustomModel):
    id: int
    reason: str
    status: str
    created_at: Optional[datetime] = None
    reporter_id: int
    reporter_username: Optional[str] = None


class UserStatusUpdate(CustomModel):
    is_active: bool = Field(..., description="false disables the account")
