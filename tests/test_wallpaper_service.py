"""
Tests for WallpaperService: listing filters, idempotent likes and favorites,
view history, ownership checks and the delete cascade.
"""
from datetime import datetime

import pytest
from sqlalchemy import func, select, update

from wallnest.exceptions import ForbiddenException
from wallnest.tags.models import Tag, WallpaperTag
from wallnest.wallpapers.exceptions import WallpaperNotFoundException
from wallnest.wallpapers.models import UserFavorite, UserLike, ViewHistory, Wallpaper, WallpaperStatus
from wallnest.wallpapers.schemas import (
    AdminWallpaperUpdate,
    UploadedImage,
    WallpaperFilters,
    WallpaperMetadata,
    WallpaperUpdate,
)


async def count(db, column, *conditions):
    return (await db.execute(select(func.count(column)).where(*conditions))).scalar_one()


async def counter(db, wallpaper_id, field):
    return (await db.execute(select(getattr(Wallpaper, field)).where(Wallpaper.id == wallpaper_id))).scalar_one()


# ── likes and favorites ───────────────────────────────────────────────────────

class TestLikes:
    async def test_like_twice_counts_once(self, db, user, other_user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        first = await wallpaper_service.like(wallpaper.id, other_user.id, db)
        second = await wallpaper_service.like(wallpaper.id, other_user.id, db)
        assert first.like_count == 1
        assert second.is_liked and second.like_count == 1
        assert await count(db, UserLike.id, UserLike.wallpaper_id == wallpaper.id) == 1

    async def test_unlike_without_like_is_noop(self, db, user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        status = await wallpaper_service.unlike(wallpaper.id, user.id, db)
        assert not status.is_liked
        assert status.like_count == 0

    async def test_like_then_unlike(self, db, user, other_user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        await wallpaper_service.like(wallpaper.id, user.id, db)
        await wallpaper_service.like(wallpaper.id, other_user.id, db)
        status = await wallpaper_service.unlike(wallpaper.id, user.id, db)
        assert status.like_count == 1

    async def test_favorite_is_independent_of_like(self, db, user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        await wallpaper_service.favorite(wallpaper.id, user.id, db)
        await wallpaper_service.favorite(wallpaper.id, user.id, db)
        status = await wallpaper_service.get_interaction_status(wallpaper.id, user.id, db)
        assert status.is_favorited and not status.is_liked
        assert await counter(db, wallpaper.id, "favorite_count") == 1

    async def test_like_unknown_wallpaper(self, db, user, wallpaper_service):
        with pytest.raises(WallpaperNotFoundException):
            await wallpaper_service.like(404, user.id, db)

    async def test_user_likes_listing(self, db, user, other_user, make_wallpaper, wallpaper_service):
        a = await make_wallpaper(user, title="A")
        await make_wallpaper(user, title="B")
        await wallpaper_service.like(a.id, other_user.id, db)
        items, total = await wallpaper_service.get_user_likes(other_user.id, db)
        assert total == 1
        assert [w.id for w in items] == [a.id]


# ── views ─────────────────────────────────────────────────────────────────────

class TestViews:
    async def test_anonymous_view_counts_without_history(self, db, user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        await wallpaper_service.record_view(wallpaper.id, None, db)
        assert await counter(db, wallpaper.id, "view_count") == 1
        assert await count(db, ViewHistory.id) == 0

    async def test_repeat_views_keep_one_history_row(self, db, user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        await wallpaper_service.record_view(wallpaper.id, user.id, db)
        await wallpaper_service.record_view(wallpaper.id, user.id, db)
        assert await counter(db, wallpaper.id, "view_count") == 2
        assert await count(db, ViewHistory.id, ViewHistory.user_id == user.id) == 1

    async def test_clear_history(self, db, user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        await wallpaper_service.record_view(wallpaper.id, user.id, db)
        assert await wallpaper_service.clear_view_history(user.id, db) == 1
        items, total = await wallpaper_service.get_view_history(user.id, db)
        assert total == 0 and items == []

    async def test_prune_old_history(self, db, user, make_wallpaper, wallpaper_service):
        old = await make_wallpaper(user, title="Old")
        recent = await make_wallpaper(user, title="Recent")
        await wallpaper_service.record_view(old.id, user.id, db)
        await wallpaper_service.record_view(recent.id, user.id, db)
        await db.execute(
            update(ViewHistory).where(ViewHistory.wallpaper_id == old.id).values(viewed_at=datetime(2020, 1, 1))
        )
        await db.commit()

        assert await wallpaper_service.cleanup_view_history(db, days=30) == 1
        remaining = (await db.execute(select(ViewHistory.wallpaper_id))).scalars().all()
        assert remaining == [recent.id]

    async def test_view_unknown_wallpaper(self, db, wallpaper_service):
        with pytest.raises(WallpaperNotFoundException):
            await wallpaper_service.record_view(12345, None, db)


# ── listing ───────────────────────────────────────────────────────────────────

class TestFindAll:
    async def test_tags_filter_requires_all(self, db, user, make_wallpaper, wallpaper_service):
        both = await make_wallpaper(user, title="Both", tags=["ocean", "sunset"])
        await make_wallpaper(user, title="Ocean only", tags=["ocean"])
        items, total = await wallpaper_service.find_all(WallpaperFilters(tags=["Ocean", "sunset"]), db)
        assert total == 1
        assert items[0].id == both.id

    async def test_tag_keyword_matches_substring(self, db, user, make_wallpaper, wallpaper_service):
        await make_wallpaper(user, title="Sun", tags=["sunset"])
        await make_wallpaper(user, title="Tree", tags=["forest"])
        items, total = await wallpaper_service.find_all(WallpaperFilters(tag_keyword="SUN"), db)
        assert [w.title for w in items] == ["Sun"]

    async def test_dimension_filters(self, db, user, make_wallpaper, wallpaper_service):
        await make_wallpaper(user, title="Phone", width=1080, height=1920)
        await make_wallpaper(user, title="Desktop", width=3840, height=2160)
        items, _ = await wallpaper_service.find_all(WallpaperFilters(min_width=2000), db)
        assert [w.title for w in items] == ["Desktop"]

    async def test_search_escapes_wildcards(self, db, user, make_wallpaper, wallpaper_service):
        await make_wallpaper(user, title="100% blue")
        await make_wallpaper(user, title="1000 blue")
        items, total = await wallpaper_service.find_all(WallpaperFilters(search="0%"), db)
        assert [w.title for w in items] == ["100% blue"]

    async def test_unapproved_hidden_from_public_listing(self, db, user, make_wallpaper, wallpaper_service):
        hidden = await make_wallpaper(user, title="Hidden")
        await wallpaper_service.admin_update(hidden.id, AdminWallpaperUpdate(status=WallpaperStatus.PENDING.value), db)
        _, public_total = await wallpaper_service.find_all(WallpaperFilters(), db)
        _, admin_total = await wallpaper_service.find_all(WallpaperFilters(), db, include_unapproved=True)
        assert public_total == 0
        assert admin_total == 1

    async def test_sort_by_like_count(self, db, user, other_user, make_wallpaper, wallpaper_service):
        quiet = await make_wallpaper(user, title="Quiet")
        loved = await make_wallpaper(user, title="Loved")
        await wallpaper_service.like(loved.id, other_user.id, db)
        items, _ = await wallpaper_service.find_all(WallpaperFilters(), db, sort_by="like_count")
        assert [w.id for w in items] == [loved.id, quiet.id]

    async def test_unknown_sort_field_falls_back(self, db, user, make_wallpaper, wallpaper_service):
        await make_wallpaper(user)
        items, total = await wallpaper_service.find_all(WallpaperFilters(), db, sort_by="; drop table")
        assert total == 1 and len(items) == 1

    async def test_pagination(self, db, user, make_wallpaper, wallpaper_service):
        for i in range(5):
            await make_wallpaper(user, title=f"W{i}")
        items, total = await wallpaper_service.find_all(WallpaperFilters(), db, page=2, limit=2)
        assert total == 5
        assert len(items) == 2


# ── update and delete ─────────────────────────────────────────────────────────

class TestUpdateAndDelete:
    async def test_stranger_cannot_update(self, db, user, other_user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        with pytest.raises(ForbiddenException):
            await wallpaper_service.update(wallpaper.id, WallpaperUpdate(title="Mine now"), other_user, db)

    async def test_admin_can_update_and_retag(self, db, user, admin, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user, tags=["ocean"])
        updated = await wallpaper_service.update(
            wallpaper.id, WallpaperUpdate(title="  Calm   sea ", tags=["sea"]), admin, db
        )
        assert updated.title == "Calm sea"
        assert [t.slug for t in updated.tags] == ["sea"]

    async def test_delete_cascades_and_decrements_tags(self, db, user, other_user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user, tags=["ocean", "beach"])
        await make_wallpaper(user, title="Keeper", tags=["ocean"])
        await wallpaper_service.like(wallpaper.id, other_user.id, db)
        await wallpaper_service.favorite(wallpaper.id, other_user.id, db)
        await wallpaper_service.record_view(wallpaper.id, other_user.id, db)

        await wallpaper_service.delete(wallpaper.id, user, db)

        assert await count(db, Wallpaper.id, Wallpaper.id == wallpaper.id) == 0
        assert await count(db, WallpaperTag.tag_id, WallpaperTag.wallpaper_id == wallpaper.id) == 0
        assert await count(db, UserLike.id) == 0
        assert await count(db, UserFavorite.id) == 0
        assert await count(db, ViewHistory.id) == 0
        usage = dict((await db.execute(select(Tag.slug, Tag.usage_count))).all())
        assert usage == {"ocean": 1, "beach": 0}

    async def test_stranger_cannot_delete(self, db, user, other_user, make_wallpaper, wallpaper_service):
        wallpaper = await make_wallpaper(user)
        with pytest.raises(ForbiddenException):
            await wallpaper_service.delete(wallpaper.id, other_user, db)

    async def test_delete_removes_stored_files(self, db, user, wallpaper_service, tmp_path):
        backend = wallpaper_service.uploads.backend
        file_url = backend.save(b"image", f"wallpapers/{user.id}/a.jpg", "image/jpeg")
        wallpaper = await wallpaper_service.create(
            WallpaperMetadata(title="Stored"),
            UploadedImage(file_url=file_url, file_size=5, width=2, height=1, format="jpeg", aspect_ratio=2),
            user.id,
            db,
        )
        await wallpaper_service.delete(wallpaper.id, user, db)
        assert not (tmp_path / "uploads" / "wallpapers" / str(user.id) / "a.jpg").exists()
