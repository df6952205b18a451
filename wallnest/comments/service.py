"""
Service layer for Comments module.

Comments form a tree per post through `parent_id`. Two counters are kept
in step with the tree: `posts.comment_count` counts every comment node of
the post, `comments.reply_count` counts the direct children of a comment.
"""
import logging
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import asc, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wallnest import counters
from wallnest.comments.constants import (
    DEFAULT_LATEST_LIMIT,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    ONLY_AUTHOR_CAN_DELETE,
    ONLY_AUTHOR_CAN_EDIT,
    SORT_FIELDS,
)
from wallnest.comments.exceptions import (
    CommentNotFoundException,
    ParentCommentNotFoundException,
    ParentPostMismatchException,
)
from wallnest.comments.models import Comment, CommentLike
from wallnest.comments.schemas import CommentCreate, CommentLikeStatus, CommentStats
from wallnest.pagination import get_offset
from wallnest.permissions import Action, ensure_allowed
from wallnest.posts.exceptions import PostNotFoundException
from wallnest.posts.models import Post
from wallnest.users.models import User

logger = logging.getLogger(__name__)


def _with_author(query):
    return query.options(selectinload(Comment.author)).execution_options(populate_existing=True)


class CommentService:
    # Reads

    async def get_comment(self, comment_id: int, db: AsyncSession) -> Comment:
        result = await db.execute(_with_author(select(Comment).where(Comment.id == comment_id)))
        comment = result.scalar_one_or_none()
        if not comment:
            raise CommentNotFoundException()
        return comment

    async def _ensure_post(self, post_id: int, db: AsyncSession) -> None:
        result = await db.execute(select(Post.id).where(Post.id == post_id))
        if result.scalar_one_or_none() is None:
            raise PostNotFoundException()

    async def _page(self, conditions, db: AsyncSession, ordering, page: int, limit: int, join=None) -> Tuple[List[Comment], int]:
        count_query = select(func.count(Comment.id))
        query = select(Comment)
        if join is not None:
            count_query = count_query.join(*join)
            query = query.join(*join)
        total = (await db.execute(count_query.where(*conditions))).scalar_one()
        result = await db.execute(_with_author(
            query.where(*conditions)
            .order_by(*ordering)
            .offset(get_offset(page, limit))
            .limit(limit)
        ))
        return list(result.scalars().all()), total

    async def list_for_post(
        self,
        post_id: int,
        db: AsyncSession,
        parent_id: Optional[int] = None,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = DEFAULT_SORT_ORDER,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Comment], int]:
        """
        One level of a post's comment tree.

        Top-level comments when `parent_id` is None, otherwise the direct
        replies of that comment. Oldest first unless told otherwise.

        Returns:
            (items, total)
        """
        await self._ensure_post(post_id, db)
        conditions = [Comment.post_id == post_id]
        if parent_id is None:
            conditions.append(Comment.parent_id.is_(None))
        else:
            conditions.append(Comment.parent_id == parent_id)

        if sort_by not in SORT_FIELDS:
            sort_by = DEFAULT_SORT_FIELD
        direction = desc if sort_order.lower() == "desc" else asc
        ordering = [direction(getattr(Comment, sort_by)), direction(Comment.id)]
        return await self._page(conditions, db, ordering, page, limit)

    async def get_replies(self, parent_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Comment], int]:
        parent = await self.get_comment(parent_id, db)
        return await self.list_for_post(parent.post_id, db, parent_id=parent_id, page=page, limit=limit)

    async def get_user_comments(self, user_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Comment], int]:
        return await self._page(
            [Comment.author_id == user_id], db,
            [desc(Comment.created_at), desc(Comment.id)],
            page, limit,
        )

    async def get_user_liked_comments(self, user_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Comment], int]:
        return await self._page(
            [CommentLike.user_id == user_id], db,
            [desc(CommentLike.created_at), desc(CommentLike.id)],
            page, limit,
            join=(CommentLike, CommentLike.comment_id == Comment.id),
        )

    async def get_stats(self, post_id: int, db: AsyncSession) -> CommentStats:
        await self._ensure_post(post_id, db)
        total = (await db.execute(
            select(func.count(Comment.id)).where(Comment.post_id == post_id)
        )).scalar_one()
        top_level = (await db.execute(
            select(func.count(Comment.id)).where(Comment.post_id == post_id, Comment.parent_id.is_(None))
        )).scalar_one()
        return CommentStats(total_comments=total, top_level_comments=top_level)

    async def get_latest(self, db: AsyncSession, limit: int = DEFAULT_LATEST_LIMIT) -> List[Comment]:
        result = await db.execute(_with_author(
            select(Comment).order_by(desc(Comment.created_at), desc(Comment.id)).limit(limit)
        ))
        return list(result.scalars().all())

    async def is_liked_by_user(self, comment_id: int, user_id: int, db: AsyncSession) -> bool:
        result = await db.execute(
            select(CommentLike.id).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def liked_comment_ids(self, comment_ids: Iterable[int], user_id: int, db: AsyncSession) -> Set[int]:
        ids = list(comment_ids)
        if not ids:
            return set()
        result = await db.execute(
            select(CommentLike.comment_id).where(CommentLike.user_id == user_id, CommentLike.comment_id.in_(ids))
        )
        return set(result.scalars().all())

    # Writes

    async def create(self, data: CommentCreate, current_user: User, db: AsyncSession) -> Comment:
        """
        Add a comment or a reply.

        Raises:
            PostNotFoundException: unknown post
            ParentCommentNotFoundException: unknown parent comment
            ParentPostMismatchException: the parent belongs to another post
        """
        await self._ensure_post(data.post_id, db)
        if data.parent_id is not None:
            result = await db.execute(select(Comment.post_id).where(Comment.id == data.parent_id))
            parent_post_id = result.scalar_one_or_none()
            if parent_post_id is None:
                raise ParentCommentNotFoundException()
            if parent_post_id != data.post_id:
                raise ParentPostMismatchException()

        comment = Comment(
            content=data.content,
            post_id=data.post_id,
            author_id=current_user.id,
            parent_id=data.parent_id,
        )
        try:
            db.add(comment)
            await db.flush()
            await counters.increment(db, Post, data.post_id, "comment_count")
            await db.execute(
                update(Post)
                .where(Post.id == data.post_id)
                .values(last_comment_at=func.now(), updated_at=Post.updated_at)
                .execution_options(synchronize_session=False)
            )
            if data.parent_id is not None:
                await counters.increment(db, Comment, data.parent_id, "reply_count")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s commented %s on post %s", current_user.id, comment.id, data.post_id)
        return await self.get_comment(comment.id, db)

    async def update(self, comment_id: int, content: str, current_user: User, db: AsyncSession) -> Comment:
        comment = await self.get_comment(comment_id, db)
        ensure_allowed(current_user, Action.COMMENT_UPDATE, comment, ONLY_AUTHOR_CAN_EDIT)
        try:
            comment.content = content
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return await self.get_comment(comment_id, db)

    async def _collect_subtree(self, root_id: int, db: AsyncSession) -> List[List[int]]:
        """Comment ids of the subtree rooted at `root_id`, level by level (root first)."""
        levels = [[root_id]]
        frontier = [root_id]
        while frontier:
            result = await db.execute(select(Comment.id).where(Comment.parent_id.in_(frontier)))
            frontier = list(result.scalars().all())
            if frontier:
                levels.append(frontier)
        return levels

    async def remove_subtree(self, comment_id: int, db: AsyncSession) -> int:
        """
        Delete a comment and all of its descendants without committing.

        Children go before parents. The post's comment_count drops by the
        number of removed nodes; the parent's reply_count drops by one.

        Returns:
            Number of comments removed
        """
        result = await db.execute(
            select(Comment.post_id, Comment.parent_id).where(Comment.id == comment_id)
        )
        row = result.one_or_none()
        if row is None:
            raise CommentNotFoundException()

        levels = await self._collect_subtree(comment_id, db)
        all_ids = [cid for level in levels for cid in level]

        await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(all_ids)))
        for level in reversed(levels):
            await db.execute(delete(Comment).where(Comment.id.in_(level)))

        await counters.decrement(db, Post, row.post_id, "comment_count", len(all_ids))
        if row.parent_id is not None:
            await counters.decrement(db, Comment, row.parent_id, "reply_count")
        return len(all_ids)

    async def delete(self, comment_id: int, current_user: User, db: AsyncSession) -> int:
        """
        Delete a comment with its whole reply subtree in one transaction.

        Raises:
            CommentNotFoundException: unknown comment
            ForbiddenException: caller is not the author
        """
        comment = await self.get_comment(comment_id, db)
        ensure_allowed(current_user, Action.COMMENT_DELETE, comment, ONLY_AUTHOR_CAN_DELETE)
        try:
            removed = await self.remove_subtree(comment_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s deleted comment %s (%s nodes)", current_user.id, comment_id, removed)
        return removed

    async def toggle_like(self, comment_id: int, user_id: int, db: AsyncSession) -> CommentLikeStatus:
        """Like the comment, or remove the like if the user already liked it."""
        result = await db.execute(select(Comment.id).where(Comment.id == comment_id))
        if result.scalar_one_or_none() is None:
            raise CommentNotFoundException()
        try:
            removed = await db.execute(
                delete(CommentLike).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
            )
            if removed.rowcount:
                is_liked = False
                await counters.decrement(db, Comment, comment_id, "like_count")
            else:
                is_liked = True
                try:
                    async with db.begin_nested():
                        db.add(CommentLike(user_id=user_id, comment_id=comment_id))
                except IntegrityError:
                    logger.debug("User %s already liked comment %s", user_id, comment_id)
                else:
                    await counters.increment(db, Comment, comment_id, "like_count")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        like_count = (await db.execute(
            select(Comment.like_count).where(Comment.id == comment_id)
        )).scalar_one()
        return CommentLikeStatus(is_liked=is_liked, like_count=like_count)

    # Account clean-up

    async def remove_user_activity(self, user_id: int, db: AsyncSession) -> None:
        """Remove a user's comment likes and comment subtrees without committing."""
        liked_ids = (await db.execute(
            select(CommentLike.comment_id).where(CommentLike.user_id == user_id)
        )).scalars().all()
        await db.execute(delete(CommentLike).where(CommentLike.user_id == user_id))
        for comment_id in liked_ids:
            await counters.decrement(db, Comment, comment_id, "like_count")

        own_ids = (await db.execute(
            select(Comment.id).where(Comment.author_id == user_id).order_by(Comment.id)
        )).scalars().all()
        for comment_id in own_ids:
            still_there = (await db.execute(select(Comment.id).where(Comment.id == comment_id))).scalar_one_or_none()
            # Already gone as part of an earlier subtree
            if still_there is not None:
                await self.remove_subtree(comment_id, db)
