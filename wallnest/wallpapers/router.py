from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import get_current_active_user, get_current_user_optional
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.storage import ImageUploadService
from wallnest.tags.dependencies import get_tag_service
from wallnest.tags.schemas import WallpaperTagsUpdate
from wallnest.tags.service import TagService
from wallnest.users.models import User
from wallnest.wallpapers.constants import (
    DEFAULT_POPULAR_LIMIT,
    DEFAULT_SORT_FIELD,
    WALLPAPER_CREATED,
    WALLPAPER_DELETED,
    WALLPAPER_UPDATED,
)
from wallnest.wallpapers.dependencies import (
    get_upload_service,
    get_wallpaper_filters,
    get_wallpaper_metadata,
    get_wallpaper_service,
)
from wallnest.wallpapers.schemas import (
    FavoriteStatus,
    InteractionStatus,
    LikeStatus,
    WallpaperDetailResponse,
    WallpaperFilters,
    WallpaperMetadata,
    WallpaperResponse,
    WallpaperUpdate,
)
from wallnest.wallpapers.service import WallpaperService

router = APIRouter(prefix="/wallpapers", tags=["Wallpapers"])


def _serialize(wallpapers) -> List[WallpaperResponse]:
    return [WallpaperResponse.model_validate(w) for w in wallpapers]


@router.get("/", response_model=ApiResponse[List[WallpaperResponse]])
async def list_wallpapers(
    filters: WallpaperFilters = Depends(get_wallpaper_filters),
    pagination: PaginationParams = Depends(),
    sort_by: str = Query(DEFAULT_SORT_FIELD, description="Column name, 'popular' or 'random'"),
    sort_order: str = Query("desc", pattern="^(asc|desc|ASC|DESC)$"),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Browse approved wallpapers

    - Filters: category, width/height ranges, aspect_ratio, format, file size range,
      search (title/description), tags (all must match), tag_keyword
    - **sort_by**: any listed column, `popular` or `random`; unknown values sort by created_at
    """
    items, total = await service.find_all(
        filters, db,
        page=pagination.page,
        limit=pagination.limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return paginated(_serialize(items), total, pagination.page, pagination.limit)


@router.get("/popular", response_model=ApiResponse[List[WallpaperResponse]])
async def popular_wallpapers(
    limit: int = Query(DEFAULT_POPULAR_LIMIT, ge=1, le=50),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(_serialize(await service.get_popular(db, limit)))


@router.get("/user/{user_id}", response_model=ApiResponse[List[WallpaperResponse]])
async def wallpapers_by_uploader(
    user_id: int,
    pagination: PaginationParams = Depends(),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.find_all(
        WallpaperFilters(uploader_id=user_id), db,
        page=pagination.page,
        limit=pagination.limit,
    )
    return paginated(_serialize(items), total, pagination.page, pagination.limit)


@router.get("/{wallpaper_id}", response_model=ApiResponse[WallpaperDetailResponse])
async def get_wallpaper(
    wallpaper_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """Wallpaper detail; counts a view and records it in the viewer's history"""
    await service.get_wallpaper(wallpaper_id, db, approved_only=True)
    await service.record_view(wallpaper_id, current_user.id if current_user else None, db)
    wallpaper = await service.get_wallpaper(wallpaper_id, db)

    detail = WallpaperDetailResponse.model_validate(wallpaper)
    if current_user:
        interaction = await service.get_interaction_status(wallpaper_id, current_user.id, db)
        detail.is_liked = interaction.is_liked
        detail.is_favorited = interaction.is_favorited
    return ok(detail)


@router.post("/", response_model=ApiResponse[WallpaperResponse], status_code=status.HTTP_201_CREATED)
async def upload_wallpaper(
    file: UploadFile = File(...),
    metadata: WallpaperMetadata = Depends(get_wallpaper_metadata),
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    tag_service: TagService = Depends(get_tag_service),
    uploads: ImageUploadService = Depends(get_upload_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Upload a wallpaper (multipart form)

    - **file**: JPEG, PNG, WebP or GIF, up to 50 MB
    - **title**: 1-100 characters
    - **description**: up to 500 characters
    - **category**: general, anime or people
    - **tags**: comma separated tag names
    """
    upload = await uploads.save_wallpaper(file, current_user.id)
    try:
        wallpaper = await service.create(metadata, upload, current_user.id, db)
    except Exception:
        uploads.delete_files(upload.file_url, upload.thumbnail_url)
        raise

    if metadata.tags:
        await tag_service.attach_tags(wallpaper.id, metadata.tags, db)
        wallpaper = await service.get_wallpaper(wallpaper.id, db)
    return ok(WallpaperResponse.model_validate(wallpaper), WALLPAPER_CREATED)


@router.put("/{wallpaper_id}", response_model=ApiResponse[WallpaperResponse])
async def update_wallpaper(
    wallpaper_id: int,
    data: WallpaperUpdate,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """Update a wallpaper; only its uploader (or an admin) may do this"""
    wallpaper = await service.update(wallpaper_id, data, current_user, db)
    return ok(WallpaperResponse.model_validate(wallpaper), WALLPAPER_UPDATED)


@router.put("/{wallpaper_id}/tags", response_model=ApiResponse[WallpaperResponse])
async def replace_wallpaper_tags(
    wallpaper_id: int,
    data: WallpaperTagsUpdate,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """Replace the full tag set of a wallpaper"""
    wallpaper = await service.update(wallpaper_id, WallpaperUpdate(tags=data.tags), current_user, db)
    return ok(WallpaperResponse.model_validate(wallpaper), WALLPAPER_UPDATED)


@router.delete("/{wallpaper_id}", response_model=ApiResponse[None])
async def delete_wallpaper(
    wallpaper_id: int,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    await service.delete(wallpaper_id, current_user, db)
    return ok(message=WALLPAPER_DELETED)


@router.get("/{wallpaper_id}/status", response_model=ApiResponse[InteractionStatus])
async def interaction_status(
    wallpaper_id: int,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """Whether the current user has liked / favorited the wallpaper"""
    await service.get_wallpaper(wallpaper_id, db)
    return ok(await service.get_interaction_status(wallpaper_id, current_user.id, db))


@router.post("/{wallpaper_id}/like", response_model=ApiResponse[LikeStatus])
async def like_wallpaper(
    wallpaper_id: int,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.like(wallpaper_id, current_user.id, db))


@router.delete("/{wallpaper_id}/like", response_model=ApiResponse[LikeStatus])
async def unlike_wallpaper(
    wallpaper_id: int,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.unlike(wallpaper_id, current_user.id, db))


@router.post("/{wallpaper_id}/favorite", response_model=ApiResponse[FavoriteStatus])
async def favorite_wallpaper(
    wallpaper_id: int,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.favorite(wallpaper_id, current_user.id, db))


@router.delete("/{wallpaper_id}/favorite", response_model=ApiResponse[FavoriteStatus])
async def unfavorite_wallpaper(
    wallpaper_id: int,
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.unfavorite(wallpaper_id, current_user.id, db))
