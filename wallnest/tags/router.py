from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import require_admin
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.tags.constants import DEFAULT_SEARCH_LIMIT, DEFAULT_SORT_FIELD
from wallnest.tags.dependencies import get_tag_service
from wallnest.tags.schemas import TagCreate, TagResponse, TagUpdate
from wallnest.tags.service import TagService
from wallnest.users.models import User

router = APIRouter(prefix="/tags", tags=["Tags"])


def _serialize(tags) -> List[TagResponse]:
    return [TagResponse.model_validate(t) for t in tags]


@router.get("/", response_model=ApiResponse[List[TagResponse]])
async def list_tags(
    keyword: Optional[str] = Query(None),
    sort_by: str = Query(DEFAULT_SORT_FIELD, description="usage_count, name or created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc|ASC|DESC)$"),
    pagination: PaginationParams = Depends(),
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.list_tags(
        db,
        keyword=keyword,
        sort_by=sort_by,
        sort_order=sort_order,
        page=pagination.page,
        limit=pagination.limit,
    )
    return paginated(_serialize(items), total, pagination.page, pagination.limit)


@router.get("/search", response_model=ApiResponse[List[TagResponse]])
async def search_tags(
    q: str = Query("", description="Substring of the tag name"),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, le=50),
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    """Autocomplete: matching tags, most used first"""
    return ok(_serialize(await service.search_tags(q, db, limit)))


@router.get("/popular", response_model=ApiResponse[List[TagResponse]])
async def popular_tags(
    limit: int = Query(20, ge=1, le=100),
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(_serialize(await service.get_popular_tags(db, limit)))


@router.get("/wallpaper/{wallpaper_id}", response_model=ApiResponse[List[TagResponse]])
async def tags_of_wallpaper(
    wallpaper_id: int,
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(_serialize(await service.get_tags_by_wallpaper(wallpaper_id, db)))


@router.get("/{tag_id}", response_model=ApiResponse[TagResponse])
async def get_tag(
    tag_id: int,
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(TagResponse.model_validate(await service.get_tag(tag_id, db)))


@router.post("/", response_model=ApiResponse[TagResponse], status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    admin: User = Depends(require_admin),
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    """Create a tag (returns the existing one when the slug is taken). Admin only."""
    return ok(TagResponse.model_validate(await service.create_tag(data.name, admin, db)), "Tag saved")


@router.put("/{tag_id}", response_model=ApiResponse[TagResponse])
async def update_tag(
    tag_id: int,
    data: TagUpdate,
    admin: User = Depends(require_admin),
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(TagResponse.model_validate(await service.update_tag(tag_id, data.name, admin, db)), "Tag updated")


@router.delete("/{tag_id}", response_model=ApiResponse[None])
async def delete_tag(
    tag_id: int,
    admin: User = Depends(require_admin),
    service: TagService = Depends(get_tag_service),
    db: AsyncSession = Depends(get_db)
):
    await service.delete_tag(tag_id, admin, db)
    return ok(message="Tag deleted")
