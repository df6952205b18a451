"""
Tests for CommentService: threaded replies, the counters they maintain on
posts and parents, recursive deletion and like toggling.
"""
import pytest
from sqlalchemy import func, select

from wallnest.comments.exceptions import (
    CommentNotFoundException,
    ParentCommentNotFoundException,
    ParentPostMismatchException,
)
from wallnest.comments.models import Comment, CommentLike
from wallnest.comments.schemas import CommentCreate
from wallnest.comments.service import CommentService
from wallnest.exceptions import ForbiddenException
from wallnest.posts.exceptions import PostNotFoundException
from wallnest.posts.models import Post


async def post_counter(db, post_id):
    return (await db.execute(select(Post.comment_count).where(Post.id == post_id))).scalar_one()


async def reply_counter(db, comment_id):
    return (await db.execute(select(Comment.reply_count).where(Comment.id == comment_id))).scalar_one()


async def build_chain(db, post, author):
    """A -> B -> C on one post"""
    service = CommentService()
    a = await service.create(CommentCreate(content="A", post_id=post.id), author, db)
    b = await service.create(CommentCreate(content="B", post_id=post.id, parent_id=a.id), author, db)
    c = await service.create(CommentCreate(content="C", post_id=post.id, parent_id=b.id), author, db)
    return a, b, c


# ── create ────────────────────────────────────────────────────────────────────

class TestCreate:
    async def test_chain_counters(self, db, user, make_post):
        post = await make_post(user)
        a, b, c = await build_chain(db, post, user)
        assert await post_counter(db, post.id) == 3
        assert await reply_counter(db, a.id) == 1
        assert await reply_counter(db, b.id) == 1
        assert await reply_counter(db, c.id) == 0

    async def test_sets_last_comment_at(self, db, user, make_post):
        post = await make_post(user)
        await CommentService().create(CommentCreate(content="hi", post_id=post.id), user, db)
        last = (await db.execute(select(Post.last_comment_at).where(Post.id == post.id))).scalar_one()
        assert last is not None

    async def test_parent_on_other_post_is_forbidden(self, db, user, make_post):
        first = await make_post(user, title="First")
        second = await make_post(user, title="Second")
        service = CommentService()
        parent = await service.create(CommentCreate(content="p", post_id=first.id), user, db)
        with pytest.raises(ParentPostMismatchException) as exc:
            await service.create(CommentCreate(content="x", post_id=second.id, parent_id=parent.id), user, db)
        assert exc.value.status_code == 403
        assert await post_counter(db, second.id) == 0

    async def test_unknown_parent(self, db, user, make_post):
        post = await make_post(user)
        with pytest.raises(ParentCommentNotFoundException):
            await CommentService().create(CommentCreate(content="x", post_id=post.id, parent_id=999), user, db)

    async def test_unknown_post(self, db, user):
        with pytest.raises(PostNotFoundException):
            await CommentService().create(CommentCreate(content="x", post_id=999), user, db)

    def test_blank_content_rejected(self):
        with pytest.raises(ValueError):
            CommentCreate(content="   ", post_id=1)


# ── listing ───────────────────────────────────────────────────────────────────

class TestListing:
    async def test_top_level_then_replies(self, db, user, make_post):
        post = await make_post(user)
        a, b, _ = await build_chain(db, post, user)
        service = CommentService()
        top, top_total = await service.list_for_post(post.id, db)
        assert [c.id for c in top] == [a.id] and top_total == 1
        replies, _ = await service.get_replies(a.id, db)
        assert [c.id for c in replies] == [b.id]

    async def test_oldest_first_by_default(self, db, user, make_post):
        post = await make_post(user)
        service = CommentService()
        first = await service.create(CommentCreate(content="1", post_id=post.id), user, db)
        second = await service.create(CommentCreate(content="2", post_id=post.id), user, db)
        items, _ = await service.list_for_post(post.id, db)
        assert [c.id for c in items] == [first.id, second.id]

    async def test_stats(self, db, user, make_post):
        post = await make_post(user)
        await build_chain(db, post, user)
        stats = await CommentService().get_stats(post.id, db)
        assert stats.total_comments == 3
        assert stats.top_level_comments == 1


# ── delete ────────────────────────────────────────────────────────────────────

class TestDelete:
    async def test_deleting_root_removes_subtree(self, db, user, other_user, make_post):
        post = await make_post(user)
        a, b, c = await build_chain(db, post, user)
        await CommentService().toggle_like(c.id, other_user.id, db)

        removed = await CommentService().delete(a.id, user, db)

        assert removed == 3
        assert (await db.execute(select(func.count(Comment.id)))).scalar_one() == 0
        assert (await db.execute(select(func.count(CommentLike.id)))).scalar_one() == 0
        assert await post_counter(db, post.id) == 0

    async def test_deleting_middle_keeps_root(self, db, user, make_post):
        post = await make_post(user)
        a, b, c = await build_chain(db, post, user)
        assert await CommentService().delete(b.id, user, db) == 2
        assert await post_counter(db, post.id) == 1
        assert await reply_counter(db, a.id) == 0

    async def test_only_author_can_delete(self, db, user, other_user, make_post):
        post = await make_post(user)
        comment = await CommentService().create(CommentCreate(content="mine", post_id=post.id), user, db)
        with pytest.raises(ForbiddenException):
            await CommentService().delete(comment.id, other_user, db)

    async def test_only_author_can_edit(self, db, user, other_user, make_post):
        post = await make_post(user)
        service = CommentService()
        comment = await service.create(CommentCreate(content="mine", post_id=post.id), user, db)
        with pytest.raises(ForbiddenException):
            await service.update(comment.id, "theirs", other_user, db)
        assert (await service.update(comment.id, "edited", user, db)).content == "edited"


# ── likes ─────────────────────────────────────────────────────────────────────

class TestToggleLike:
    async def test_toggle_on_and_off(self, db, user, other_user, make_post):
        post = await make_post(user)
        service = CommentService()
        comment = await service.create(CommentCreate(content="c", post_id=post.id), user, db)

        on = await service.toggle_like(comment.id, other_user.id, db)
        assert on.is_liked and on.like_count == 1
        assert await service.is_liked_by_user(comment.id, other_user.id, db)

        off = await service.toggle_like(comment.id, other_user.id, db)
        assert not off.is_liked and off.like_count == 0

    async def test_unknown_comment(self, db, user):
        with pytest.raises(CommentNotFoundException):
            await CommentService().toggle_like(5, user.id, db)

    async def test_liked_comments_listing(self, db, user, other_user, make_post):
        post = await make_post(user)
        service = CommentService()
        comment = await service.create(CommentCreate(content="c", post_id=post.id), user, db)
        await service.toggle_like(comment.id, other_user.id, db)
        items, total = await service.get_user_liked_comments(other_user.id, db)
        assert total == 1 and items[0].id == comment.id
