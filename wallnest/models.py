from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from zoneinfo import ZoneInfo

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict

from wallnest.pagination import PaginationMeta, build_pagination

T = TypeVar("T")


def datetime_to_gmt_str(dt: datetime) -> str:
    """Convert datetime to GMT string format"""
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.strftime("%Y-%m-%dT%H:%M:%S%z")


class CustomModel(BaseModel):
    """Custom base model with global configurations"""
    model_config = ConfigDict(
        json_encoders={datetime: datetime_to_gmt_str},
        populate_by_name=True,
        from_attributes=True,
    )

    def serializable_dict(self, **kwargs) -> Dict[str, Any]:
        """Return a dict which contains only serializable fields."""
        default_dict = self.model_dump()
        return jsonable_encoder(default_dict)


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint: {success, message?, data, pagination?}"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    pagination: Optional[PaginationMeta] = None


def ok(data: Any = None, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(success=True, message=message, data=data)


def paginated(items: List[Any], total: int, page: int, limit: int, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(
        success=True,
        message=message,
        data=items,
        pagination=build_pagination(page, limit, total),
    )


# Import all SQLAlchemy models to ensure they are registered with Base.metadata
# This is needed for Alembic to detect all models
from wallnest.users.models import UserRole, User  # noqa: E402,F401
from wallnest.tags.models import Tag, WallpaperTag  # noqa: E402,F401
from wallnest.wallpapers.models import Wallpaper, UserLike, UserFavorite, ViewHistory  # noqa: E402,F401
from wallnest.posts.models import Post, PostLike  # noqa: E402,F401
from wallnest.comments.models import Comment, CommentLike  # noqa: E402,F401
from wallnest.reports.models import Report  # noqa: E402,F401
