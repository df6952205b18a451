from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from wallnest.models import CustomModel
from wallnest.tags.constants import MAX_TAGS_PER_WALLPAPER
from wallnest.tags.schemas import TagBrief
from wallnest.users.schemas import UserBrief
from wallnest.utils.text import collapse_whitespace, split_csv
from wallnest.wallpapers.constants import MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH, MIN_TITLE_LENGTH
from wallnest.wallpapers.models import WallpaperCategory

TITLE_DESCRIPTION = "Wallpaper title"


class UploadedImage(CustomModel):
    """What the upload handler hands to the wallpaper service"""
    file_url: str
    thumbnail_url: Optional[str] = None
    file_size: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    format: str
    aspect_ratio: Decimal


class WallpaperMetadata(CustomModel):
    title: str = Field(..., min_length=MIN_TITLE_LENGTH, max_length=MAX_TITLE_LENGTH, description=TITLE_DESCRIPTION)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    category: WallpaperCategory = WallpaperCategory.GENERAL
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS_PER_WALLPAPER)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = collapse_whitespace(v)
        if not v:
            raise ValueError("Title must not be blank")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v):
        # Multipart forms send tags as one comma separated field
        if isinstance(v, str):
            return split_csv(v)
        if isinstance(v, list) and len(v) == 1 and isinstance(v[0], str) and "," in v[0]:
            return split_csv(v[0])
        return v


class WallpaperUpdate(CustomModel):
    title: Optional[str] = Field(None, min_length=MIN_TITLE_LENGTH, max_length=MAX_TITLE_LENGTH, description=TITLE_DESCRIPTION)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    category: Optional[WallpaperCategory] = None
    tags: Optional[List[str]] = Field(None, max_length=MAX_TAGS_PER_WALLPAPER, description="Replaces the whole tag set when given")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        v = collapse_whitespace(v)
        if not v:
            raise ValueError("Title must not be blank")
        return v


class AdminWallpaperUpdate(WallpaperUpdate):
    status: Optional[int] = Field(None, ge=0, le=1, description="0 = pending review, 1 = approved")
    is_featured: Optional[bool] = None


class WallpaperFilters(CustomModel):
    category: Optional[WallpaperCategory] = None
    min_width: Optional[int] = Field(None, ge=0)
    max_width: Optional[int] = Field(None, ge=0)
    min_height: Optional[int] = Field(None, ge=0)
    max_height: Optional[int] = Field(None, ge=0)
    aspect_ratio: Optional[Decimal] = Field(None, gt=0)
    format: Optional[str] = None
    min_file_size: Optional[int] = Field(None, ge=0)
    max_file_size: Optional[int] = Field(None, ge=0)
    search: Optional[str] = None
    tags: List[str] = Field(default_factory=list, description="Wallpaper must carry all of these tags")
    tag_keyword: Optional[str] = Field(None, description="Substring of any tag name")
    uploader_id: Optional[int] = None


class WallpaperResponse(CustomModel):
    id: int
    title: str
    description: Optional[str] = None
    file_url: str
    thumbnail_url: Optional[str] = None
    file_size: int
    width: int
    height: int
    format: str
    aspect_ratio: Optional[Decimal] = None
    category: str
    status: int
    is_featured: bool = False
    uploader_id: int
    uploader: Optional[UserBrief] = None
    view_count: int
    like_count: int
    favorite_count: int
    tags: List[TagBrief] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WallpaperDetailResponse(WallpaperResponse):
    is_liked: bool = False
    is_favorited: bool = False


class LikeStatus(CustomModel):
    is_liked: bool
    like_count: int = Field(..., ge=0)


class FavoriteStatus(CustomModel):
    is_favorited: bool
    favorite_count: int = Field(..., ge=0)


class InteractionStatus(CustomModel):
    is_liked: bool
    is_favorited: bool


class ViewHistoryItem(CustomModel):
    viewed_at: datetime
    wallpaper: WallpaperResponse
