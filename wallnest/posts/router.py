from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import get_current_active_user, get_current_user_optional
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.posts.constants import (
    DEFAULT_FEED_LIMIT,
    DEFAULT_SORT_FIELD,
    POST_CREATED_SUCCESSFULLY,
    POST_DELETED_SUCCESSFULLY,
    POST_UPDATED_SUCCESSFULLY,
)
from wallnest.posts.dependencies import PostFilters, get_post_service
from wallnest.posts.schemas import PostCreate, PostLikeResponse, PostResponse, PostUpdate
from wallnest.posts.service import PostService
from wallnest.users.models import User

router = APIRouter(prefix="/posts", tags=["Posts"])


async def _serialize(posts, current_user: Optional[User], service: PostService, db: AsyncSession) -> List[PostResponse]:
    liked = set()
    if current_user:
        liked = await service.liked_post_ids([p.id for p in posts], current_user.id, db)
    items = []
    for post in posts:
        item = PostResponse.model_validate(post)
        if current_user:
            item.is_liked = post.id in liked
        items.append(item)
    return items


@router.get("/", response_model=ApiResponse[List[PostResponse]])
async def list_posts(
    filters: PostFilters = Depends(),
    pagination: PaginationParams = Depends(),
    sort_by: str = Query(DEFAULT_SORT_FIELD, description="Column name or 'popular'"),
    sort_order: str = Query("desc", pattern="^(asc|desc|ASC|DESC)$"),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Published posts, pinned first

    - **search**: substring of title, content or summary
    - **tags**: comma separated, all must be present
    - **sort_by**: created_at, updated_at, view_count, like_count, comment_count or popular
    """
    items, total = await service.find_all(
        db,
        search=filters.search,
        category=filters.category,
        author_id=filters.author_id,
        tags=filters.tags,
        sort_by=sort_by,
        sort_order=sort_order,
        page=pagination.page,
        limit=pagination.limit,
    )
    return paginated(await _serialize(items, current_user, service, db), total, pagination.page, pagination.limit)


@router.get("/popular", response_model=ApiResponse[List[PostResponse]])
async def popular_posts(
    limit: int = Query(DEFAULT_FEED_LIMIT, ge=1, le=50),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await _serialize(await service.get_popular(db, limit), current_user, service, db))


@router.get("/latest", response_model=ApiResponse[List[PostResponse]])
async def latest_posts(
    limit: int = Query(DEFAULT_FEED_LIMIT, ge=1, le=50),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await _serialize(await service.get_latest(db, limit), current_user, service, db))


@router.get("/user/{user_id}", response_model=ApiResponse[List[PostResponse]])
async def posts_by_author(
    user_id: int,
    pagination: PaginationParams = Depends(),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    """Posts of one author; the author also sees their drafts"""
    own = current_user is not None and current_user.id == user_id
    items, total = await service.get_user_posts(
        user_id, db,
        include_unpublished=own,
        page=pagination.page,
        limit=pagination.limit,
    )
    return paginated(await _serialize(items, current_user, service, db), total, pagination.page, pagination.limit)


@router.get("/{post_id}", response_model=ApiResponse[PostResponse])
async def get_post(
    post_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    """Post detail; every read counts one view"""
    post = await service.get_post_detail(post_id, current_user, db)
    return ok((await _serialize([post], current_user, service, db))[0])


@router.post("/", response_model=ApiResponse[PostResponse], status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_active_user),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a post

    - **title**: 1-200 characters
    - **category**: tech_discussion, experience_sharing, q_a or resource_sharing
    - **status**: draft or published (default)
    - **tags**: up to 10 free-form names
    """
    post = await service.create(data, current_user, db)
    return ok(PostResponse.model_validate(post), POST_CREATED_SUCCESSFULLY)


@router.put("/{post_id}", response_model=ApiResponse[PostResponse])
async def update_post(
    post_id: int,
    data: PostUpdate,
    current_user: User = Depends(get_current_active_user),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    """Update a post; only its author may do this"""
    post = await service.update(post_id, data, current_user, db)
    return ok(PostResponse.model_validate(post), POST_UPDATED_SUCCESSFULLY)


@router.delete("/{post_id}", response_model=ApiResponse[None])
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_active_user),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    """Delete a post together with its comments and likes"""
    await service.delete(post_id, current_user, db)
    return ok(message=POST_DELETED_SUCCESSFULLY)


@router.post("/{post_id}/like", response_model=ApiResponse[PostLikeResponse])
async def like_post(
    post_id: int,
    current_user: User = Depends(get_current_active_user),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.like(post_id, current_user.id, db))


@router.delete("/{post_id}/like", response_model=ApiResponse[PostLikeResponse])
async def unlike_post(
    post_id: int,
    current_user: User = Depends(get_current_active_user),
    service: PostService = Depends(get_post_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.unlike(post_id, current_user.id, db))
