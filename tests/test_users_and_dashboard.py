"""
Tests for account administration (UsersService) and the admin dashboard.
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from wallnest.admin.service import DashboardService, current_month_range
from wallnest.auth.service import AuthService
from wallnest.comments.models import Comment
from wallnest.comments.schemas import CommentCreate
from wallnest.comments.service import CommentService
from wallnest.exceptions import ForbiddenException, ValidationException
from wallnest.posts.models import Post, PostStatus
from wallnest.posts.service import PostService
from wallnest.reports.models import Report
from wallnest.reports.schemas import ReportCreate
from wallnest.reports.service import ReportService
from wallnest.users.exceptions import UserAlreadyExistsException, UserNotFoundException
from wallnest.users.models import User, UserRole
from wallnest.users.schemas import AdminUserCreate, AdminUserUpdate, PasswordChange, UserProfileUpdate
from wallnest.users.service import UsersService
from wallnest.wallpapers.models import Wallpaper


async def scalar(db, query):
    return (await db.execute(query)).scalar_one()


# ── profile ───────────────────────────────────────────────────────────────────

class TestProfile:
    async def test_update_profile(self, db, user):
        updated = await UsersService().update_profile(user, UserProfileUpdate(full_name="Alice A.", bio="hi"), db)
        assert updated.full_name == "Alice A."
        assert updated.bio == "hi"

    async def test_username_taken(self, db, user, other_user):
        with pytest.raises(UserAlreadyExistsException):
            await UsersService().update_profile(user, UserProfileUpdate(username="bob"), db)

    async def test_change_password_checks_current(self, db, make_user):
        auth = AuthService()
        user = await make_user("carol", password_hash=auth.get_password_hash("secret1"))
        service = UsersService(auth_service=auth)
        with pytest.raises(ValidationException):
            await service.change_password(user, PasswordChange(current_password="wrong", new_password="secret2"), db)
        await service.change_password(user, PasswordChange(current_password="secret1", new_password="secret2"), db)
        assert await auth.authenticate_user("carol", "secret2", db) is not None

    async def test_disabled_profile_is_hidden(self, db, make_user):
        ghost = await make_user("ghost", is_active=False)
        with pytest.raises(UserNotFoundException):
            await UsersService().get_public_user(ghost.id, db)


# ── administration ────────────────────────────────────────────────────────────

class TestAdministration:
    async def test_regular_user_cannot_list(self, db, user):
        with pytest.raises(ForbiddenException):
            await UsersService().list_users(user, db)

    async def test_list_filters(self, db, user, other_user, admin):
        items, total = await UsersService().list_users(admin, db, role=UserRole.USER, search="ali")
        assert total == 1
        assert items[0].username == "alice"

    async def test_create_user_with_role(self, db, admin):
        created = await UsersService().create_user(
            AdminUserCreate(username="mod", password="secret1", role=UserRole.ADMIN), admin, db
        )
        assert created.role == UserRole.ADMIN
        assert created.is_active

    async def test_admin_cannot_demote_self(self, db, admin):
        with pytest.raises(ValidationException):
            await UsersService().admin_update_user(admin.id, AdminUserUpdate(role=UserRole.USER), admin, db)

    async def test_disable_account(self, db, user, admin):
        updated = await UsersService().admin_update_user(user.id, AdminUserUpdate(is_active=False), admin, db)
        assert not updated.is_active

    async def test_admin_cannot_delete_self(self, db, admin):
        with pytest.raises(ValidationException):
            await UsersService().delete_user(admin.id, admin, db)

    async def test_delete_user_cascades_and_fixes_counters(
        self, db, user, other_user, admin, make_post, make_wallpaper, wallpaper_service
    ):
        service = UsersService(wallpaper_service=wallpaper_service)
        comments = CommentService()
        posts = PostService()

        # alice's own content, touched by bob
        wallpaper = await make_wallpaper(user, tags=["ocean"])
        await wallpaper_service.like(wallpaper.id, other_user.id, db)
        own_post = await make_post(user, title="Alice's")
        await comments.create(CommentCreate(content="bob here", post_id=own_post.id), other_user, db)

        # alice's activity on bob's content
        bob_post = await make_post(other_user, title="Bob's")
        bob_wallpaper = await make_wallpaper(other_user, title="Bob")
        await posts.like(bob_post.id, user.id, db)
        await wallpaper_service.like(bob_wallpaper.id, user.id, db)
        top = await comments.create(CommentCreate(content="bob top", post_id=bob_post.id), other_user, db)
        await comments.create(CommentCreate(content="alice reply", post_id=bob_post.id, parent_id=top.id), user, db)
        await comments.toggle_like(top.id, user.id, db)
        await ReportService().create(ReportCreate(target_type="post", target_id=bob_post.id, reason="spam"), user, db)

        await service.delete_user(user.id, admin, db)

        assert await scalar(db, select(func.count(User.id)).where(User.id == user.id)) == 0
        assert await scalar(db, select(func.count(Wallpaper.id)).where(Wallpaper.uploader_id == user.id)) == 0
        assert await scalar(db, select(func.count(Post.id)).where(Post.author_id == user.id)) == 0
        assert await scalar(db, select(func.count(Report.id))) == 0
        assert await scalar(db, select(Post.like_count).where(Post.id == bob_post.id)) == 0
        assert await scalar(db, select(Post.comment_count).where(Post.id == bob_post.id)) == 1
        assert await scalar(db, select(Comment.reply_count).where(Comment.id == top.id)) == 0
        assert await scalar(db, select(Comment.like_count).where(Comment.id == top.id)) == 0
        assert await scalar(db, select(Wallpaper.like_count).where(Wallpaper.id == bob_wallpaper.id)) == 0


# ── dashboard ─────────────────────────────────────────────────────────────────

class TestDashboard:
    def test_month_range_rolls_over_december(self):
        start, end = current_month_range(datetime(2026, 12, 15, 8, 30, tzinfo=timezone.utc))
        assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)

    async def test_stats(self, db, user, other_user, admin, make_post, make_wallpaper):
        await make_wallpaper(user)
        await make_post(user)
        await make_post(user, title="Draft", status=PostStatus.DRAFT)

        stats = await DashboardService().get_stats(admin, db)
        assert stats.total_users == 3
        assert stats.active_users == 3
        assert stats.total_wallpapers == 1
        assert stats.new_wallpapers_this_month == 1
        assert stats.total_posts == 1
        assert stats.new_posts_this_month == 1
        assert stats.pending_reports == 0

    async def test_stats_need_admin(self, db, user):
        with pytest.raises(ForbiddenException):
            await DashboardService().get_stats(user, db)

    @pytest.mark.parametrize("requested, expected", [(0, 1), (-5, 1), (3, 3), (500, 20)])
    async def test_activity_limit_is_clamped(self, db, user, admin, make_user, make_post, requested, expected):
        service = ReportService()
        reporters = [await make_user() for _ in range(21)]
        post = await make_post(user)
        for reporter in reporters:
            await service.create(ReportCreate(target_type="post", target_id=post.id, reason="spam"), reporter, db)

        activity = await DashboardService().get_recent_activity(admin, db, limit=requested)
        assert len(activity) == expected
        assert activity[0].reporter_username is not None
