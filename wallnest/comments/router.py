from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import get_current_active_user, get_current_user_optional
from wallnest.comments.constants import (
    COMMENT_CREATED,
    COMMENT_DELETED,
    COMMENT_UPDATED,
    DEFAULT_LATEST_LIMIT,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
)
from wallnest.comments.dependencies import get_comment_service
from wallnest.comments.schemas import CommentCreate, CommentLikeStatus, CommentResponse, CommentStats, CommentUpdate
from wallnest.comments.service import CommentService
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.users.models import User

router = APIRouter(prefix="/comments", tags=["Comments"])


async def _serialize(comments, current_user: Optional[User], service: CommentService, db: AsyncSession) -> List[CommentResponse]:
    liked = set()
    if current_user:
        liked = await service.liked_comment_ids([c.id for c in comments], current_user.id, db)
    items = []
    for comment in comments:
        item = CommentResponse.model_validate(comment)
        if current_user:
            item.is_liked = comment.id in liked
        items.append(item)
    return items


@router.get("/post/{post_id}", response_model=ApiResponse[List[CommentResponse]])
async def list_post_comments(
    post_id: int,
    parent_id: Optional[int] = Query(None, description="List replies of this comment instead of top-level comments"),
    sort_by: str = Query(DEFAULT_SORT_FIELD, description="created_at, updated_at or like_count"),
    sort_order: str = Query(DEFAULT_SORT_ORDER, pattern="^(asc|desc|ASC|DESC)$"),
    pagination: PaginationParams = Depends(),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    """One level of the comment tree of a post, oldest first by default"""
    items, total = await service.list_for_post(
        post_id, db,
        parent_id=parent_id,
        sort_by=sort_by,
        sort_order=sort_order,
        page=pagination.page,
        limit=pagination.limit,
    )
    return paginated(await _serialize(items, current_user, service, db), total, pagination.page, pagination.limit)


@router.get("/post/{post_id}/stats", response_model=ApiResponse[CommentStats])
async def post_comment_stats(
    post_id: int,
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    return ok(await service.get_stats(post_id, db))


@router.get("/latest", response_model=ApiResponse[List[CommentResponse]])
async def latest_comments(
    limit: int = Query(DEFAULT_LATEST_LIMIT, ge=1, le=50),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    return ok([CommentResponse.model_validate(c) for c in await service.get_latest(db, limit)])


@router.get("/me", response_model=ApiResponse[List[CommentResponse]])
async def my_comments(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.get_user_comments(current_user.id, db, pagination.page, pagination.limit)
    return paginated(await _serialize(items, current_user, service, db), total, pagination.page, pagination.limit)


@router.get("/me/liked", response_model=ApiResponse[List[CommentResponse]])
async def my_liked_comments(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.get_user_liked_comments(current_user.id, db, pagination.page, pagination.limit)
    return paginated(await _serialize(items, current_user, service, db), total, pagination.page, pagination.limit)


@router.get("/{comment_id}", response_model=ApiResponse[CommentResponse])
async def get_comment(
    comment_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    comment = await service.get_comment(comment_id, db)
    return ok((await _serialize([comment], current_user, service, db))[0])


@router.get("/{comment_id}/replies", response_model=ApiResponse[List[CommentResponse]])
async def comment_replies(
    comment_id: int,
    pagination: PaginationParams = Depends(),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.get_replies(comment_id, db, pagination.page, pagination.limit)
    return paginated(await _serialize(items, current_user, service, db), total, pagination.page, pagination.limit)


@router.post("/", response_model=ApiResponse[CommentResponse], status_code=status.HTTP_201_CREATED)
async def create_comment(
    data: CommentCreate,
    current_user: User = Depends(get_current_active_user),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Comment on a post, or reply to a comment with **parent_id**

    The parent must belong to the same post.
    """
    comment = await service.create(data, current_user, db)
    return ok(CommentResponse.model_validate(comment), COMMENT_CREATED)


@router.put("/{comment_id}", response_model=ApiResponse[CommentResponse])
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    current_user: User = Depends(get_current_active_user),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    comment = await service.update(comment_id, data.content, current_user, db)
    return ok(CommentResponse.model_validate(comment), COMMENT_UPDATED)


@router.delete("/{comment_id}", response_model=ApiResponse[None])
async def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_active_user),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    """Delete a comment and every reply below it"""
    await service.delete(comment_id, current_user, db)
    return ok(message=COMMENT_DELETED)


@router.post("/{comment_id}/like", response_model=ApiResponse[CommentLikeStatus])
async def toggle_comment_like(
    comment_id: int,
    current_user: User = Depends(get_current_active_user),
    service: CommentService = Depends(get_comment_service),
    db: AsyncSession = Depends(get_db)
):
    """Like the comment, or undo an existing like"""
    return ok(await service.toggle_like(comment_id, current_user.id, db))
