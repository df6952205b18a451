"""
Tests for TagService: slug de-duplication, usage counters when a wallpaper's
tag set is replaced, and admin management.
"""
import pytest
from sqlalchemy import func, select

from wallnest.exceptions import ForbiddenException
from wallnest.tags.exceptions import InvalidTagNameException, TagAlreadyExistsException
from wallnest.tags.models import Tag, WallpaperTag
from wallnest.tags.service import TagService
from wallnest.wallpapers.exceptions import WallpaperNotFoundException


async def usage(db, slug):
    return (await db.execute(select(Tag.usage_count).where(Tag.slug == slug))).scalar_one_or_none()


async def slugs_of(db, wallpaper_id):
    result = await db.execute(
        select(Tag.slug)
        .join(WallpaperTag, WallpaperTag.tag_id == Tag.id)
        .where(WallpaperTag.wallpaper_id == wallpaper_id)
        .order_by(Tag.slug)
    )
    return list(result.scalars().all())


# ── find_or_create ────────────────────────────────────────────────────────────

class TestFindOrCreate:
    async def test_creates_with_zero_usage(self, db):
        tag = await TagService().find_or_create("  Night Sky ", db)
        await db.commit()
        assert tag.name == "Night Sky"
        assert tag.slug == "night-sky"
        assert await usage(db, "night-sky") == 0

    async def test_same_slug_returns_existing_tag(self, db):
        service = TagService()
        first = await service.find_or_create("Ocean", db)
        second = await service.find_or_create("OCEAN", db)
        assert first.id == second.id
        assert second.name == "Ocean"

    async def test_concurrent_insert_resolves_to_winning_row(self, db, session_factory):
        async with session_factory() as other:
            winner = Tag(name="Ocean", slug="ocean", usage_count=0)
            other.add(winner)
            await other.commit()

        service = TagService()
        lookup = service.get_by_slug
        misses = []

        async def stale_lookup(slug, session):
            # the first lookup runs before the other request commits
            if not misses:
                misses.append(slug)
                return None
            return await lookup(slug, session)

        service.get_by_slug = stale_lookup
        tag = await service.find_or_create("OCEAN", db)

        assert misses == ["ocean"]
        assert tag.id == winner.id
        assert tag.name == "Ocean"
        assert (await db.execute(select(func.count(Tag.id)))).scalar_one() == 1

    async def test_rejects_long_names(self, db):
        with pytest.raises(InvalidTagNameException):
            await TagService().find_or_create("x" * 51, db)


# ── set_wallpaper_tags ────────────────────────────────────────────────────────

class TestSetWallpaperTags:
    async def test_replacing_tags_moves_usage(self, db, user, make_wallpaper):
        service = TagService()
        wallpaper = await make_wallpaper(user)

        await service.set_wallpaper_tags(wallpaper.id, ["sunset", "ocean"], db)
        assert await usage(db, "sunset") == 1
        assert await usage(db, "ocean") == 1

        await service.set_wallpaper_tags(wallpaper.id, ["ocean", "beach"], db)
        assert await slugs_of(db, wallpaper.id) == ["beach", "ocean"]
        assert await usage(db, "sunset") == 0
        assert await usage(db, "ocean") == 1
        assert await usage(db, "beach") == 1

    async def test_duplicate_names_count_once(self, db, user, make_wallpaper):
        wallpaper = await make_wallpaper(user)
        tags = await TagService().set_wallpaper_tags(wallpaper.id, ["Ocean", "ocean", " OCEAN "], db)
        assert [t.slug for t in tags] == ["ocean"]
        assert await usage(db, "ocean") == 1

    async def test_empty_list_clears_tags(self, db, user, make_wallpaper):
        wallpaper = await make_wallpaper(user, tags=["forest"])
        await TagService().set_wallpaper_tags(wallpaper.id, [], db)
        assert await slugs_of(db, wallpaper.id) == []
        assert await usage(db, "forest") == 0

    async def test_invalid_name_writes_nothing(self, db, user, make_wallpaper):
        wallpaper = await make_wallpaper(user, tags=["forest"])
        with pytest.raises(InvalidTagNameException):
            await TagService().set_wallpaper_tags(wallpaper.id, ["lake", ""], db)
        assert await slugs_of(db, wallpaper.id) == ["forest"]
        assert await usage(db, "lake") is None

    async def test_unknown_wallpaper(self, db):
        with pytest.raises(WallpaperNotFoundException):
            await TagService().set_wallpaper_tags(999, ["ocean"], db)

    async def test_shared_tag_counts_every_wallpaper(self, db, user, make_wallpaper):
        await make_wallpaper(user, title="One", tags=["ocean"])
        await make_wallpaper(user, title="Two", tags=["Ocean"])
        assert await usage(db, "ocean") == 2


# ── reads ─────────────────────────────────────────────────────────────────────

class TestTagReads:
    async def test_search_matches_substring(self, db):
        service = TagService()
        for name in ("sunset", "sunrise", "forest"):
            await service.find_or_create(name, db)
        await db.commit()
        found = await service.search_tags("sun", db)
        assert sorted(t.slug for t in found) == ["sunrise", "sunset"]

    async def test_popular_orders_by_usage(self, db, user, make_wallpaper):
        await make_wallpaper(user, title="One", tags=["ocean", "beach"])
        await make_wallpaper(user, title="Two", tags=["ocean"])
        popular = await TagService().get_popular_tags(db, limit=1)
        assert [t.slug for t in popular] == ["ocean"]


# ── admin management ──────────────────────────────────────────────────────────

class TestTagManagement:
    async def test_regular_user_cannot_create(self, db, user):
        with pytest.raises(ForbiddenException):
            await TagService().create_tag("ocean", user, db)

    async def test_rename_recomputes_slug(self, db, admin):
        service = TagService()
        tag = await service.create_tag("Sea", admin, db)
        renamed = await service.update_tag(tag.id, "Deep Sea", admin, db)
        assert renamed.slug == "deep-sea"

    async def test_rename_onto_existing_slug_conflicts(self, db, admin):
        service = TagService()
        await service.create_tag("Ocean", admin, db)
        sea = await service.create_tag("Sea", admin, db)
        with pytest.raises(TagAlreadyExistsException):
            await service.update_tag(sea.id, "ocean", admin, db)

    async def test_delete_removes_links(self, db, admin, user, make_wallpaper):
        wallpaper = await make_wallpaper(user, tags=["ocean"])
        service = TagService()
        tag = await service.get_by_slug("ocean", db)
        await service.delete_tag(tag.id, admin, db)
        assert await slugs_of(db, wallpaper.id) == []
        assert await usage(db, "ocean") is None
