from datetime import datetime
from typing import List, Optional

from pydantic import Field

from wallnest.models import CustomModel
from wallnest.tags.constants import MAX_TAG_LENGTH, MAX_TAGS_PER_WALLPAPER


class TagResponse(CustomModel):
    id: int
    name: str
    slug: str
    usage_count: int = Field(..., ge=0, description="Number of wallpapers carrying this tag")
    created_at: Optional[datetime] = None


class TagBrief(CustomModel):
    id: int
    name: str
    slug: str


class TagCreate(CustomModel):
    name: str = Field(..., min_length=1, max_length=MAX_TAG_LENGTH, description="Tag name")


class TagUpdate(TagCreate):
    pass


class WallpaperTagsUpdate(CustomModel):
    """Full replacement of a wallpaper's tag set"""
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS_PER_WALLPAPER)
