"""
Service layer for Tags module.

Invariant maintained here: `Tag.usage_count` equals the number of
`wallpaper_tags` rows referencing the tag. Join rows are only ever created
through `_attach` and removed through `_detach` (or the wallpaper delete
cascade in WallpaperService), each of which moves the counter in the same
transaction.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import asc, delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest import counters
from wallnest.pagination import get_offset
from wallnest.permissions import Action, ensure_allowed
from wallnest.tags.constants import DEFAULT_SORT_FIELD, SORT_FIELDS
from wallnest.tags.exceptions import TagAlreadyExistsException, TagNotFoundException
from wallnest.tags.models import Tag, WallpaperTag
from wallnest.tags.utils import dedupe_tag_names, make_slug, normalize_tag_name
from wallnest.users.models import User
from wallnest.utils.text import LIKE_ESCAPE, contains_pattern
from wallnest.wallpapers.exceptions import WallpaperNotFoundException
from wallnest.wallpapers.models import Wallpaper

logger = logging.getLogger(__name__)


class TagService:

    # Lookups

    async def get_tag(self, tag_id: int, db: AsyncSession) -> Tag:
        result = await db.execute(
            select(Tag).where(Tag.id == tag_id).execution_options(populate_existing=True)
        )
        tag = result.scalar_one_or_none()
        if not tag:
            raise TagNotFoundException()
        return tag

    async def get_by_slug(self, slug: str, db: AsyncSession) -> Optional[Tag]:
        result = await db.execute(
            select(Tag).where(Tag.slug == slug).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_tags_by_wallpaper(self, wallpaper_id: int, db: AsyncSession) -> List[Tag]:
        result = await db.execute(
            select(Tag)
            .join(WallpaperTag, WallpaperTag.tag_id == Tag.id)
            .where(WallpaperTag.wallpaper_id == wallpaper_id)
            .order_by(Tag.name)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def search_tags(self, keyword: str, db: AsyncSession, limit: int = 10) -> List[Tag]:
        """Tags whose name contains `keyword`, most used first"""
        query = select(Tag)
        if keyword and keyword.strip():
            query = query.where(Tag.name.ilike(contains_pattern(keyword.strip()), escape=LIKE_ESCAPE))
        result = await db.execute(
            query.order_by(desc(Tag.usage_count), Tag.name).limit(limit)
        )
        return list(result.scalars().all())

    async def get_popular_tags(self, db: AsyncSession, limit: int = 20) -> List[Tag]:
        result = await db.execute(
            select(Tag)
            .where(Tag.usage_count > 0)
            .order_by(desc(Tag.usage_count), Tag.name)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_tags(
        self,
        db: AsyncSession,
        keyword: Optional[str] = None,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Tag], int]:
        query = select(Tag)
        if keyword and keyword.strip():
            query = query.where(Tag.name.ilike(contains_pattern(keyword.strip()), escape=LIKE_ESCAPE))

        total = (await db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar_one()

        if sort_by not in SORT_FIELDS:
            sort_by = DEFAULT_SORT_FIELD
        column = getattr(Tag, sort_by)
        ordering = asc(column) if sort_order.lower() == "asc" else desc(column)
        result = await db.execute(
            query.order_by(ordering, Tag.id).offset(get_offset(page, limit)).limit(limit)
        )
        return list(result.scalars().all()), total

    # Registry operations (run inside the caller's transaction)

    async def find_or_create(self, name: str, db: AsyncSession) -> Tag:
        """
        Return the tag whose slug matches `name`, creating it if missing.

        An existing tag is returned unchanged. Two requests racing to create
        the same slug are resolved by the unique constraint: the loser's
        SAVEPOINT is rolled back and the winner's row is read instead.

        Raises:
            InvalidTagNameException: name is not 1-50 characters after trimming
        """
        name = normalize_tag_name(name)
        slug = make_slug(name)

        tag = await self.get_by_slug(slug, db)
        if tag:
            return tag

        try:
            async with db.begin_nested():
                tag = Tag(name=name, slug=slug, usage_count=0)
                db.add(tag)
        except IntegrityError:
            logger.info("Tag '%s' created concurrently, reusing existing row", slug)
            tag = await self.get_by_slug(slug, db)
            if tag is None:
                raise
            return tag

        logger.info("Created tag '%s' (id=%s)", tag.name, tag.id)
        return tag

    async def increment_usage(self, tag_id: int, db: AsyncSession) -> None:
        await counters.increment(db, Tag, tag_id, "usage_count")

    async def decrement_usage(self, tag_id: int, db: AsyncSession) -> None:
        await counters.decrement(db, Tag, tag_id, "usage_count")

    async def _attach(self, wallpaper_id: int, tag: Tag, db: AsyncSession) -> bool:
        """Insert the join row and bump usage; False if it already existed."""
        try:
            async with db.begin_nested():
                db.add(WallpaperTag(wallpaper_id=wallpaper_id, tag_id=tag.id))
        except IntegrityError:
            return False
        await self.increment_usage(tag.id, db)
        return True

    async def _detach(self, wallpaper_id: int, tag_id: int, db: AsyncSession) -> bool:
        result = await db.execute(
            delete(WallpaperTag).where(
                WallpaperTag.wallpaper_id == wallpaper_id,
                WallpaperTag.tag_id == tag_id,
            )
        )
        if result.rowcount:
            await self.decrement_usage(tag_id, db)
            return True
        return False

    async def apply_wallpaper_tags(self, wallpaper_id: int, names: Sequence[str], db: AsyncSession) -> List[Tag]:
        """
        Replace a wallpaper's tag set without committing.

        Input names are trimmed and de-duplicated by slug first, so a name
        given twice is attached (and counted) once. Dropped tags lose their
        join row and one usage; new tags are found or created, joined and
        gain one usage. Tags kept in both sets are untouched.
        """
        wanted = {make_slug(name): name for name in dedupe_tag_names(names)}
        current = {tag.slug: tag for tag in await self.get_tags_by_wallpaper(wallpaper_id, db)}

        for slug, tag in current.items():
            if slug not in wanted:
                await self._detach(wallpaper_id, tag.id, db)

        for slug, name in wanted.items():
            if slug in current:
                continue
            tag = await self.find_or_create(name, db)
            await self._attach(wallpaper_id, tag, db)

        return await self.get_tags_by_wallpaper(wallpaper_id, db)

    async def add_wallpaper_tags(self, wallpaper_id: int, names: Sequence[str], db: AsyncSession) -> List[Tag]:
        """Attach tags a wallpaper does not carry yet, without committing."""
        for name in dedupe_tag_names(names):
            tag = await self.find_or_create(name, db)
            await self._attach(wallpaper_id, tag, db)
        return await self.get_tags_by_wallpaper(wallpaper_id, db)

    # Transactional entry points

    async def _ensure_wallpaper(self, wallpaper_id: int, db: AsyncSession) -> None:
        result = await db.execute(select(Wallpaper.id).where(Wallpaper.id == wallpaper_id))
        if result.scalar_one_or_none() is None:
            raise WallpaperNotFoundException()

    async def set_wallpaper_tags(self, wallpaper_id: int, names: Sequence[str], db: AsyncSession) -> List[Tag]:
        """
        Replace the full tag set of a wallpaper in one transaction.

        Raises:
            InvalidTagNameException: a name is not 1-50 characters (nothing is written)
            WallpaperNotFoundException: the wallpaper does not exist
        """
        dedupe_tag_names(names)
        await self._ensure_wallpaper(wallpaper_id, db)
        try:
            await self.apply_wallpaper_tags(wallpaper_id, names, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Set tags of wallpaper %s to %s", wallpaper_id, list(names))
        return await self.get_tags_by_wallpaper(wallpaper_id, db)

    async def attach_tags(self, wallpaper_id: int, names: Sequence[str], db: AsyncSession) -> List[Tag]:
        """Additively attach tags to a wallpaper in one transaction."""
        dedupe_tag_names(names)
        await self._ensure_wallpaper(wallpaper_id, db)
        try:
            await self.add_wallpaper_tags(wallpaper_id, names, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return await self.get_tags_by_wallpaper(wallpaper_id, db)

    # Admin management

    async def create_tag(self, name: str, current_user: User, db: AsyncSession) -> Tag:
        ensure_allowed(current_user, Action.TAG_MANAGE)
        try:
            tag = await self.find_or_create(name, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return await self.get_tag(tag.id, db)

    async def update_tag(self, tag_id: int, name: str, current_user: User, db: AsyncSession) -> Tag:
        """
        Rename a tag and recompute its slug.

        Raises:
            TagNotFoundException: unknown tag
            TagAlreadyExistsException: another tag already owns the new slug
        """
        ensure_allowed(current_user, Action.TAG_MANAGE)
        tag = await self.get_tag(tag_id, db)
        name = normalize_tag_name(name)
        slug = make_slug(name)

        existing = await self.get_by_slug(slug, db)
        if existing and existing.id != tag.id:
            raise TagAlreadyExistsException()

        try:
            tag.name = name
            tag.slug = slug
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise TagAlreadyExistsException()
        except Exception:
            await db.rollback()
            raise
        logger.info("Renamed tag %s to '%s'", tag_id, name)
        return await self.get_tag(tag_id, db)

    async def delete_tag(self, tag_id: int, current_user: User, db: AsyncSession) -> None:
        """Delete a tag and its join rows. Wallpapers are not otherwise touched."""
        ensure_allowed(current_user, Action.TAG_MANAGE)
        await self.get_tag(tag_id, db)
        try:
            await db.execute(delete(WallpaperTag).where(WallpaperTag.tag_id == tag_id))
            await db.execute(delete(Tag).where(Tag.id == tag_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Deleted tag %s", tag_id)
