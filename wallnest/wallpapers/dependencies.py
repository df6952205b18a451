from decimal import Decimal
from typing import Optional

from fastapi import Form, Query
from pydantic import ValidationError

from wallnest.exceptions import ValidationException
from wallnest.storage import ImageUploadService
from wallnest.tags.utils import dedupe_tag_names
from wallnest.utils.text import split_csv
from wallnest.wallpapers.models import WallpaperCategory
from wallnest.wallpapers.schemas import WallpaperFilters, WallpaperMetadata
from wallnest.wallpapers.service import WallpaperService


def get_wallpaper_service() -> WallpaperService:
    return WallpaperService()


def get_upload_service() -> ImageUploadService:
    return ImageUploadService()


def first_error_message(error: ValidationError) -> str:
    err = error.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else err.get("msg", "Invalid input")


def get_wallpaper_filters(
    category: Optional[WallpaperCategory] = Query(None),
    min_width: Optional[int] = Query(None, ge=0),
    max_width: Optional[int] = Query(None, ge=0),
    min_height: Optional[int] = Query(None, ge=0),
    max_height: Optional[int] = Query(None, ge=0),
    aspect_ratio: Optional[Decimal] = Query(None, gt=0),
    format: Optional[str] = Query(None, description="jpeg, png, webp or gif"),
    min_file_size: Optional[int] = Query(None, ge=0),
    max_file_size: Optional[int] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="Substring of title or description"),
    tags: Optional[str] = Query(None, description="Comma separated; all must match"),
    tag_keyword: Optional[str] = Query(None, description="Substring of any tag name"),
) -> WallpaperFilters:
    return WallpaperFilters(
        category=category,
        min_width=min_width,
        max_width=max_width,
        min_height=min_height,
        max_height=max_height,
        aspect_ratio=aspect_ratio,
        format=format,
        min_file_size=min_file_size,
        max_file_size=max_file_size,
        search=search,
        tags=split_csv(tags),
        tag_keyword=tag_keyword,
    )


def get_wallpaper_metadata(
    title: str = Form(...),
    description: Optional[str] = Form(None),
    category: WallpaperCategory = Form(WallpaperCategory.GENERAL),
    tags: Optional[str] = Form(None, description="Comma separated tag names"),
) -> WallpaperMetadata:
    """Validate the form fields of an upload before the file is stored."""
    try:
        metadata = WallpaperMetadata(
            title=title,
            description=description,
            category=category,
            tags=split_csv(tags),
        )
    except ValidationError as e:
        raise ValidationException(first_error_message(e))
    dedupe_tag_names(metadata.tags)
    return metadata
