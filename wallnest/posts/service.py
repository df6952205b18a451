"""
Service layer for Posts module.

Post tags are a free-form comma separated string on the post row and are
not linked to the wallpaper tag registry.
"""
import logging
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import asc, delete, desc, func, literal, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wallnest import counters
from wallnest.comments.models import Comment, CommentLike
from wallnest.pagination import get_offset
from wallnest.permissions import Action, ensure_allowed
from wallnest.posts.constants import (
    DEFAULT_FEED_LIMIT,
    DEFAULT_SORT_FIELD,
    ONLY_AUTHOR_CAN_DELETE,
    ONLY_AUTHOR_CAN_EDIT,
    SORT_FIELDS,
    SORT_POPULAR,
)
from wallnest.posts.exceptions import PostNotFoundException
from wallnest.posts.models import Post, PostCategory, PostLike, PostStatus
from wallnest.posts.schemas import PostCreate, PostLikeResponse, PostUpdate
from wallnest.posts.utils import normalize_post_tags, sanitize_content, sanitize_title, truncate_content
from wallnest.users.models import User
from wallnest.utils.text import LIKE_ESCAPE, contains_pattern, escape_like

logger = logging.getLogger(__name__)


def _with_author(query):
    return query.options(selectinload(Post.author)).execution_options(populate_existing=True)


def csv_contains(column, value: str):
    """Portable FIND_IN_SET: `,<column>,` contains `,<value>,`."""
    wrapped = literal(",") + func.coalesce(column, "") + literal(",")
    return wrapped.ilike(f"%,{escape_like(value)},%", escape=LIKE_ESCAPE)


class PostService:
    # Reads

    async def get_post(self, post_id: int, db: AsyncSession, published_only: bool = False) -> Post:
        """
        Load a post with its author.

        Raises:
            PostNotFoundException: no such post (or not published when published_only)
        """
        query = select(Post).where(Post.id == post_id)
        if published_only:
            query = query.where(Post.status == PostStatus.PUBLISHED.value)
        result = await db.execute(_with_author(query))
        post = result.scalar_one_or_none()
        if not post:
            raise PostNotFoundException()
        return post

    async def get_post_detail(
        self,
        post_id: int,
        current_user: Optional[User],
        db: AsyncSession,
        increment_view: bool = True,
    ) -> Post:
        """
        Post detail for readers. Unpublished posts are only visible to their
        author. Each read counts one view unless `increment_view` is False.
        """
        post = await self.get_post(post_id, db)
        is_author = current_user is not None and post.author_id == current_user.id
        if post.status != PostStatus.PUBLISHED.value and not is_author:
            raise PostNotFoundException()

        if increment_view:
            try:
                await counters.increment(db, Post, post_id, "view_count")
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            post = await self.get_post(post_id, db)
        return post

    async def find_all(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        category: Optional[PostCategory] = None,
        author_id: Optional[int] = None,
        tags: Optional[Iterable[str]] = None,
        status: Optional[PostStatus] = PostStatus.PUBLISHED,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Post], int]:
        """
        Filtered, sorted, offset-paginated post listing.

        `tags` requires every named tag to appear in the post's tag list.
        Pinned posts come first. `popular` orders by views, then likes.
        Passing `status=None` lists every status.

        Returns:
            (items, total)
        """
        conditions = []
        if status is not None:
            conditions.append(Post.status == PostStatus(status).value)
        if category is not None:
            conditions.append(Post.category == PostCategory(category).value)
        if author_id is not None:
            conditions.append(Post.author_id == author_id)
        if search and search.strip():
            pattern = contains_pattern(search.strip())
            conditions.append(or_(
                Post.title.ilike(pattern, escape=LIKE_ESCAPE),
                Post.content.ilike(pattern, escape=LIKE_ESCAPE),
                Post.summary.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        for tag in tags or ():
            if tag and tag.strip():
                conditions.append(csv_contains(Post.tags, tag.strip()))

        total = (await db.execute(
            select(func.count(Post.id)).where(*conditions)
        )).scalar_one()

        direction = asc if sort_order.lower() == "asc" else desc
        if sort_by == SORT_POPULAR:
            ordering = [desc(Post.view_count), desc(Post.like_count), desc(Post.id)]
        else:
            if sort_by not in SORT_FIELDS:
                sort_by = DEFAULT_SORT_FIELD
            ordering = [direction(getattr(Post, sort_by)), direction(Post.id)]

        result = await db.execute(_with_author(
            select(Post)
            .where(*conditions)
            .order_by(desc(Post.is_pinned), *ordering)
            .offset(get_offset(page, limit))
            .limit(limit)
        ))
        return list(result.scalars().all()), total

    async def get_popular(self, db: AsyncSession, limit: int = DEFAULT_FEED_LIMIT) -> List[Post]:
        result = await db.execute(_with_author(
            select(Post)
            .where(Post.status == PostStatus.PUBLISHED.value)
            .order_by(desc(Post.view_count), desc(Post.like_count), desc(Post.id))
            .limit(limit)
        ))
        return list(result.scalars().all())

    async def get_latest(self, db: AsyncSession, limit: int = DEFAULT_FEED_LIMIT) -> List[Post]:
        result = await db.execute(_with_author(
            select(Post)
            .where(Post.status == PostStatus.PUBLISHED.value)
            .order_by(desc(Post.created_at), desc(Post.id))
            .limit(limit)
        ))
        return list(result.scalars().all())

    async def get_user_posts(
        self,
        user_id: int,
        db: AsyncSession,
        include_unpublished: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Post], int]:
        return await self.find_all(
            db,
            author_id=user_id,
            status=None if include_unpublished else PostStatus.PUBLISHED,
            page=page,
            limit=limit,
        )

    async def has_liked(self, post_id: int, user_id: int, db: AsyncSession) -> bool:
        result = await db.execute(
            select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def liked_post_ids(self, post_ids: Iterable[int], user_id: int, db: AsyncSession) -> Set[int]:
        """Subset of `post_ids` the user has liked, in one query."""
        ids = list(post_ids)
        if not ids:
            return set()
        result = await db.execute(
            select(PostLike.post_id).where(PostLike.user_id == user_id, PostLike.post_id.in_(ids))
        )
        return set(result.scalars().all())

    # Writes

    async def create(self, data: PostCreate, current_user: User, db: AsyncSession) -> Post:
        content = sanitize_content(data.content)
        post = Post(
            title=sanitize_title(data.title),
            content=content,
            summary=data.summary or truncate_content(content),
            thumbnail_url=data.thumbnail_url,
            category=PostCategory(data.category).value,
            status=PostStatus(data.status).value,
            tags=normalize_post_tags(data.tags),
            author_id=current_user.id,
        )
        try:
            db.add(post)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s created post %s", current_user.id, post.id)
        return await self.get_post(post.id, db)

    async def update(self, post_id: int, data: PostUpdate, current_user: User, db: AsyncSession) -> Post:
        """
        Partial update by the author.

        Raises:
            PostNotFoundException: unknown post
            ForbiddenException: caller is not the author
        """
        post = await self.get_post(post_id, db)
        ensure_allowed(current_user, Action.POST_UPDATE, post, ONLY_AUTHOR_CAN_EDIT)

        changes = data.model_dump(exclude_unset=True)
        try:
            for field, value in changes.items():
                if value is None and field in ("title", "content", "category", "status"):
                    continue
                if field == "title":
                    value = sanitize_title(value)
                elif field == "content":
                    value = sanitize_content(value)
                elif field == "tags":
                    value = normalize_post_tags(value)
                elif field == "category":
                    value = PostCategory(value).value
                elif field == "status":
                    value = PostStatus(value).value
                setattr(post, field, value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Post %s updated by user %s", post_id, current_user.id)
        return await self.get_post(post_id, db)

    async def remove_cascade(self, post_id: int, db: AsyncSession) -> None:
        """
        Delete a post with its comments and likes, without committing.
        """
        comment_ids = select(Comment.id).where(Comment.post_id == post_id).scalar_subquery()
        await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
        # Replies before top-level comments
        await db.execute(delete(Comment).where(Comment.post_id == post_id, Comment.parent_id.is_not(None)))
        await db.execute(delete(Comment).where(Comment.post_id == post_id))
        await db.execute(delete(PostLike).where(PostLike.post_id == post_id))
        deleted = await db.execute(delete(Post).where(Post.id == post_id))
        if not deleted.rowcount:
            raise PostNotFoundException()

    async def delete(self, post_id: int, current_user: User, db: AsyncSession) -> None:
        """
        Delete a post and everything attached to it in one transaction.

        Raises:
            PostNotFoundException: unknown post
            ForbiddenException: caller is not the author
        """
        post = await self.get_post(post_id, db)
        ensure_allowed(current_user, Action.POST_DELETE, post, ONLY_AUTHOR_CAN_DELETE)
        try:
            await self.remove_cascade(post_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Post %s deleted by user %s", post_id, current_user.id)

    # Likes

    async def _like_count(self, post_id: int, db: AsyncSession) -> int:
        result = await db.execute(select(Post.like_count).where(Post.id == post_id))
        return result.scalar_one()

    async def like(self, post_id: int, user_id: int, db: AsyncSession) -> PostLikeResponse:
        """Like a published post; liking twice is a no-op."""
        await self.get_post(post_id, db, published_only=True)
        try:
            try:
                async with db.begin_nested():
                    db.add(PostLike(user_id=user_id, post_id=post_id))
            except IntegrityError:
                logger.debug("User %s already liked post %s", user_id, post_id)
            else:
                await counters.increment(db, Post, post_id, "like_count")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PostLikeResponse(post_id=post_id, is_liked=True, like_count=await self._like_count(post_id, db))

    async def unlike(self, post_id: int, user_id: int, db: AsyncSession) -> PostLikeResponse:
        """Remove a like; a no-op if the user had not liked the post."""
        await self.get_post(post_id, db)
        try:
            result = await db.execute(
                delete(PostLike).where(PostLike.user_id == user_id, PostLike.post_id == post_id)
            )
            if result.rowcount:
                await counters.decrement(db, Post, post_id, "like_count")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PostLikeResponse(post_id=post_id, is_liked=False, like_count=await self._like_count(post_id, db))

    # Account clean-up

    async def remove_user_activity(self, user_id: int, db: AsyncSession) -> None:
        """Delete a user's posts and post likes without committing, keeping like counts right."""
        own_ids = (await db.execute(select(Post.id).where(Post.author_id == user_id))).scalars().all()
        for post_id in own_ids:
            await self.remove_cascade(post_id, db)

        liked_ids = (await db.execute(
            select(PostLike.post_id).where(PostLike.user_id == user_id)
        )).scalars().all()
        await db.execute(delete(PostLike).where(PostLike.user_id == user_id))
        for post_id in liked_ids:
            await counters.decrement(db, Post, post_id, "like_count")
