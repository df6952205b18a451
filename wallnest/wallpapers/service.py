"""
Service layer for Wallpapers module.

Like and favorite rows are guarded by (user_id, wallpaper_id) unique
constraints. Inserting inside a SAVEPOINT and treating an IntegrityError as
"already there" makes `like`/`favorite` idempotent, and deleting with a
row count check does the same for `unlike`/`unfavorite`. Counters only move
when a row was actually inserted or removed.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import asc, delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wallnest import counters
from wallnest.pagination import get_offset
from wallnest.permissions import Action, ensure_allowed
from wallnest.storage import ImageUploadService
from wallnest.tags.models import Tag, WallpaperTag
from wallnest.tags.service import TagService
from wallnest.tags.utils import make_slug
from wallnest.users.models import User
from wallnest.utils.text import LIKE_ESCAPE, contains_pattern
from wallnest.wallpapers.constants import (
    DEFAULT_POPULAR_LIMIT,
    DEFAULT_SORT_FIELD,
    ONLY_UPLOADER_CAN_DELETE,
    ONLY_UPLOADER_CAN_EDIT,
    SORT_FIELDS,
    SORT_POPULAR,
    SORT_RANDOM,
    VIEW_HISTORY_RETENTION_DAYS,
)
from wallnest.wallpapers.exceptions import WallpaperNotFoundException
from wallnest.wallpapers.models import (
    UserFavorite,
    UserLike,
    ViewHistory,
    Wallpaper,
    WallpaperCategory,
    WallpaperStatus,
)
from wallnest.wallpapers.schemas import (
    AdminWallpaperUpdate,
    FavoriteStatus,
    InteractionStatus,
    LikeStatus,
    UploadedImage,
    WallpaperFilters,
    WallpaperMetadata,
    WallpaperUpdate,
)

logger = logging.getLogger(__name__)


def _with_relations(query):
    return query.options(
        selectinload(Wallpaper.tags),
        selectinload(Wallpaper.uploader),
    ).execution_options(populate_existing=True)


class WallpaperService:
    def __init__(self, uploads: Optional[ImageUploadService] = None, tag_service: Optional[TagService] = None):
        self.uploads = uploads or ImageUploadService()
        self.tag_service = tag_service or TagService()

    # Reads

    async def get_wallpaper(self, wallpaper_id: int, db: AsyncSession, approved_only: bool = False) -> Wallpaper:
        """
        Load a wallpaper with its tags and uploader.

        Raises:
            WallpaperNotFoundException: no such wallpaper (or not approved when approved_only)
        """
        query = select(Wallpaper).where(Wallpaper.id == wallpaper_id)
        if approved_only:
            query = query.where(Wallpaper.status == WallpaperStatus.APPROVED.value)
        result = await db.execute(_with_relations(query))
        wallpaper = result.scalar_one_or_none()
        if not wallpaper:
            raise WallpaperNotFoundException()
        return wallpaper

    async def _ensure_exists(self, wallpaper_id: int, db: AsyncSession) -> None:
        result = await db.execute(select(Wallpaper.id).where(Wallpaper.id == wallpaper_id))
        if result.scalar_one_or_none() is None:
            raise WallpaperNotFoundException()

    async def _counter(self, wallpaper_id: int, field: str, db: AsyncSession) -> int:
        result = await db.execute(select(getattr(Wallpaper, field)).where(Wallpaper.id == wallpaper_id))
        return result.scalar_one()

    async def get_interaction_status(self, wallpaper_id: int, user_id: int, db: AsyncSession) -> InteractionStatus:
        liked = await db.execute(
            select(UserLike.id).where(UserLike.wallpaper_id == wallpaper_id, UserLike.user_id == user_id)
        )
        favorited = await db.execute(
            select(UserFavorite.id).where(UserFavorite.wallpaper_id == wallpaper_id, UserFavorite.user_id == user_id)
        )
        return InteractionStatus(
            is_liked=liked.scalar_one_or_none() is not None,
            is_favorited=favorited.scalar_one_or_none() is not None,
        )

    async def find_all(
        self,
        filters: WallpaperFilters,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = "desc",
        include_unapproved: bool = False,
        status: Optional[int] = None,
    ) -> Tuple[List[Wallpaper], int]:
        """
        Filtered, sorted, offset-paginated wallpaper listing.

        Only approved wallpapers are returned unless `include_unapproved`
        (admin listing). `tags` requires every named tag to be present;
        `tag_keyword` matches any tag whose name contains the keyword.
        Unknown `sort_by` values fall back to creation time.

        Returns:
            (items, total)
        """
        conditions = []
        if status is not None:
            conditions.append(Wallpaper.status == status)
        elif not include_unapproved:
            conditions.append(Wallpaper.status == WallpaperStatus.APPROVED.value)

        if filters.category:
            conditions.append(Wallpaper.category == filters.category.value)
        if filters.min_width is not None:
            conditions.append(Wallpaper.width >= filters.min_width)
        if filters.max_width is not None:
            conditions.append(Wallpaper.width <= filters.max_width)
        if filters.min_height is not None:
            conditions.append(Wallpaper.height >= filters.min_height)
        if filters.max_height is not None:
            conditions.append(Wallpaper.height <= filters.max_height)
        if filters.aspect_ratio is not None:
            conditions.append(Wallpaper.aspect_ratio == filters.aspect_ratio)
        if filters.format:
            conditions.append(func.lower(Wallpaper.format) == filters.format.strip().lower())
        if filters.min_file_size is not None:
            conditions.append(Wallpaper.file_size >= filters.min_file_size)
        if filters.max_file_size is not None:
            conditions.append(Wallpaper.file_size <= filters.max_file_size)
        if filters.uploader_id is not None:
            conditions.append(Wallpaper.uploader_id == filters.uploader_id)
        if filters.search and filters.search.strip():
            pattern = contains_pattern(filters.search.strip())
            conditions.append(or_(
                Wallpaper.title.ilike(pattern, escape=LIKE_ESCAPE),
                Wallpaper.description.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        for slug in {make_slug(name) for name in filters.tags if name and name.strip()}:
            conditions.append(Wallpaper.id.in_(
                select(WallpaperTag.wallpaper_id)
                .join(Tag, Tag.id == WallpaperTag.tag_id)
                .where(Tag.slug == slug)
            ))
        if filters.tag_keyword and filters.tag_keyword.strip():
            conditions.append(Wallpaper.id.in_(
                select(WallpaperTag.wallpaper_id)
                .join(Tag, Tag.id == WallpaperTag.tag_id)
                .where(Tag.name.ilike(contains_pattern(filters.tag_keyword.strip()), escape=LIKE_ESCAPE))
            ))

        total = (await db.execute(
            select(func.count(Wallpaper.id)).where(*conditions)
        )).scalar_one()

        direction = asc if sort_order.lower() == "asc" else desc
        if sort_by == SORT_POPULAR:
            ordering = [desc(Wallpaper.view_count), desc(Wallpaper.id)]
        elif sort_by == SORT_RANDOM:
            ordering = [func.random()]
        else:
            if sort_by not in SORT_FIELDS:
                sort_by = DEFAULT_SORT_FIELD
            ordering = [direction(getattr(Wallpaper, sort_by)), direction(Wallpaper.id)]

        result = await db.execute(_with_relations(
            select(Wallpaper)
            .where(*conditions)
            .order_by(*ordering)
            .offset(get_offset(page, limit))
            .limit(limit)
        ))
        return list(result.scalars().all()), total

    async def get_popular(self, db: AsyncSession, limit: int = DEFAULT_POPULAR_LIMIT) -> List[Wallpaper]:
        result = await db.execute(_with_relations(
            select(Wallpaper)
            .where(Wallpaper.status == WallpaperStatus.APPROVED.value)
            .order_by(desc(Wallpaper.like_count), desc(Wallpaper.view_count), desc(Wallpaper.id))
            .limit(limit)
        ))
        return list(result.scalars().all())

    async def _list_through(self, link_model, user_id: int, db: AsyncSession, page: int, limit: int) -> Tuple[List[Wallpaper], int]:
        total = (await db.execute(
            select(func.count(link_model.id)).where(link_model.user_id == user_id)
        )).scalar_one()
        result = await db.execute(_with_relations(
            select(Wallpaper)
            .join(link_model, link_model.wallpaper_id == Wallpaper.id)
            .where(link_model.user_id == user_id)
            .order_by(desc(link_model.created_at), desc(link_model.id))
            .offset(get_offset(page, limit))
            .limit(limit)
        ))
        return list(result.scalars().all()), total

    async def get_user_likes(self, user_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Wallpaper], int]:
        return await self._list_through(UserLike, user_id, db, page, limit)

    async def get_user_favorites(self, user_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Wallpaper], int]:
        return await self._list_through(UserFavorite, user_id, db, page, limit)

    async def get_view_history(self, user_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[ViewHistory], int]:
        total = (await db.execute(
            select(func.count(ViewHistory.id)).where(ViewHistory.user_id == user_id)
        )).scalar_one()
        result = await db.execute(
            select(ViewHistory)
            .where(ViewHistory.user_id == user_id)
            .options(
                selectinload(ViewHistory.wallpaper).selectinload(Wallpaper.tags),
                selectinload(ViewHistory.wallpaper).selectinload(Wallpaper.uploader),
            )
            .order_by(desc(ViewHistory.viewed_at), desc(ViewHistory.id))
            .offset(get_offset(page, limit))
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    # Writes

    async def create(self, metadata: WallpaperMetadata, upload: UploadedImage, uploader_id: int, db: AsyncSession) -> Wallpaper:
        """
        Persist a wallpaper row for an already stored upload.

        Tags are not attached here; callers follow up with
        TagService.attach_tags once the row exists.
        """
        wallpaper = Wallpaper(
            title=metadata.title,
            description=metadata.description,
            category=metadata.category.value,
            file_url=upload.file_url,
            thumbnail_url=upload.thumbnail_url,
            file_size=upload.file_size,
            width=upload.width,
            height=upload.height,
            format=upload.format,
            aspect_ratio=upload.aspect_ratio,
            uploader_id=uploader_id,
            status=WallpaperStatus.APPROVED.value,
        )
        try:
            db.add(wallpaper)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s uploaded wallpaper %s", uploader_id, wallpaper.id)
        return await self.get_wallpaper(wallpaper.id, db)

    async def record_view(self, wallpaper_id: int, user_id: Optional[int], db: AsyncSession) -> None:
        """Count one view and, for signed-in users, refresh their history entry."""
        try:
            updated = await counters.increment(db, Wallpaper, wallpaper_id, "view_count")
            if not updated:
                raise WallpaperNotFoundException()
            if user_id is not None:
                await self._touch_history(wallpaper_id, user_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def _touch_history(self, wallpaper_id: int, user_id: int, db: AsyncSession) -> None:
        result = await db.execute(
            update(ViewHistory)
            .where(ViewHistory.user_id == user_id, ViewHistory.wallpaper_id == wallpaper_id)
            .values(viewed_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return
        try:
            async with db.begin_nested():
                db.add(ViewHistory(user_id=user_id, wallpaper_id=wallpaper_id))
        except IntegrityError:
            # A parallel request inserted the same (user, wallpaper) row
            logger.debug("View history row for %s/%s already exists", user_id, wallpaper_id)

    async def _apply_changes(self, wallpaper: Wallpaper, data: WallpaperUpdate, db: AsyncSession) -> None:
        changes = data.model_dump(exclude_unset=True, exclude={"tags"})
        for field, value in changes.items():
            if value is None and field != "description":
                continue
            if field == "category":
                value = WallpaperCategory(value).value
            setattr(wallpaper, field, value)
        if data.tags is not None:
            await self.tag_service.apply_wallpaper_tags(wallpaper.id, data.tags, db)

    async def update(self, wallpaper_id: int, data: WallpaperUpdate, current_user: User, db: AsyncSession) -> Wallpaper:
        """
        Update title/description/category and optionally replace the tag set.

        Raises:
            WallpaperNotFoundException: unknown wallpaper
            ForbiddenException: caller is neither the uploader nor an admin
        """
        wallpaper = await self.get_wallpaper(wallpaper_id, db)
        ensure_allowed(current_user, Action.WALLPAPER_UPDATE, wallpaper, ONLY_UPLOADER_CAN_EDIT)
        try:
            await self._apply_changes(wallpaper, data, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Wallpaper %s updated by user %s", wallpaper_id, current_user.id)
        return await self.get_wallpaper(wallpaper_id, db)

    async def admin_update(self, wallpaper_id: int, data: AdminWallpaperUpdate, db: AsyncSession) -> Wallpaper:
        wallpaper = await self.get_wallpaper(wallpaper_id, db)
        try:
            await self._apply_changes(wallpaper, data, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return await self.get_wallpaper(wallpaper_id, db)

    async def update_tags(self, wallpaper_id: int, names: Sequence[str], db: AsyncSession) -> Wallpaper:
        await self.tag_service.set_wallpaper_tags(wallpaper_id, names, db)
        return await self.get_wallpaper(wallpaper_id, db)

    async def remove_cascade(self, wallpaper_id: int, db: AsyncSession) -> List[str]:
        """
        Delete a wallpaper and everything hanging off it, without committing.

        Order: tag links, likes, favorites, view history, the wallpaper row,
        then one usage decrement for every tag that was attached. Foreign key
        cascades are not relied upon.

        Returns:
            The stored file URLs that belonged to the wallpaper
        """
        result = await db.execute(
            select(Wallpaper.file_url, Wallpaper.thumbnail_url).where(Wallpaper.id == wallpaper_id)
        )
        row = result.one_or_none()
        if row is None:
            raise WallpaperNotFoundException()

        tag_ids = list((await db.execute(
            select(WallpaperTag.tag_id).where(WallpaperTag.wallpaper_id == wallpaper_id)
        )).scalars().all())

        await db.execute(delete(WallpaperTag).where(WallpaperTag.wallpaper_id == wallpaper_id))
        await db.execute(delete(UserLike).where(UserLike.wallpaper_id == wallpaper_id))
        await db.execute(delete(UserFavorite).where(UserFavorite.wallpaper_id == wallpaper_id))
        await db.execute(delete(ViewHistory).where(ViewHistory.wallpaper_id == wallpaper_id))
        deleted = await db.execute(delete(Wallpaper).where(Wallpaper.id == wallpaper_id))
        if not deleted.rowcount:
            raise WallpaperNotFoundException()

        for tag_id in tag_ids:
            await self.tag_service.decrement_usage(tag_id, db)

        return [url for url in (row.file_url, row.thumbnail_url) if url]

    async def delete(self, wallpaper_id: int, current_user: User, db: AsyncSession) -> None:
        """
        Delete a wallpaper in one transaction, then remove its stored files.

        Raises:
            WallpaperNotFoundException: unknown wallpaper
            ForbiddenException: caller is neither the uploader nor an admin
        """
        wallpaper = await self.get_wallpaper(wallpaper_id, db)
        ensure_allowed(current_user, Action.WALLPAPER_DELETE, wallpaper, ONLY_UPLOADER_CAN_DELETE)
        await self.admin_delete(wallpaper_id, db)
        logger.info("Wallpaper %s deleted by user %s", wallpaper_id, current_user.id)

    async def admin_delete(self, wallpaper_id: int, db: AsyncSession) -> None:
        try:
            urls = await self.remove_cascade(wallpaper_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self.uploads.delete_files(*urls)

    # Likes and favorites

    async def _add_link(self, link_model, counter: str, wallpaper_id: int, user_id: int, db: AsyncSession) -> bool:
        await self._ensure_exists(wallpaper_id, db)
        try:
            try:
                async with db.begin_nested():
                    db.add(link_model(user_id=user_id, wallpaper_id=wallpaper_id))
            except IntegrityError:
                created = False
            else:
                created = True
                await counters.increment(db, Wallpaper, wallpaper_id, counter)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return created

    async def _remove_link(self, link_model, counter: str, wallpaper_id: int, user_id: int, db: AsyncSession) -> bool:
        await self._ensure_exists(wallpaper_id, db)
        try:
            result = await db.execute(
                delete(link_model).where(link_model.user_id == user_id, link_model.wallpaper_id == wallpaper_id)
            )
            removed = bool(result.rowcount)
            if removed:
                await counters.decrement(db, Wallpaper, wallpaper_id, counter)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return removed

    async def like(self, wallpaper_id: int, user_id: int, db: AsyncSession) -> LikeStatus:
        """Like a wallpaper; liking twice is a no-op."""
        if await self._add_link(UserLike, "like_count", wallpaper_id, user_id, db):
            logger.info("User %s liked wallpaper %s", user_id, wallpaper_id)
        return LikeStatus(is_liked=True, like_count=await self._counter(wallpaper_id, "like_count", db))

    async def unlike(self, wallpaper_id: int, user_id: int, db: AsyncSession) -> LikeStatus:
        """Remove a like; a no-op if the user had not liked the wallpaper."""
        await self._remove_link(UserLike, "like_count", wallpaper_id, user_id, db)
        return LikeStatus(is_liked=False, like_count=await self._counter(wallpaper_id, "like_count", db))

    async def favorite(self, wallpaper_id: int, user_id: int, db: AsyncSession) -> FavoriteStatus:
        await self._add_link(UserFavorite, "favorite_count", wallpaper_id, user_id, db)
        return FavoriteStatus(is_favorited=True, favorite_count=await self._counter(wallpaper_id, "favorite_count", db))

    async def unfavorite(self, wallpaper_id: int, user_id: int, db: AsyncSession) -> FavoriteStatus:
        await self._remove_link(UserFavorite, "favorite_count", wallpaper_id, user_id, db)
        return FavoriteStatus(is_favorited=False, favorite_count=await self._counter(wallpaper_id, "favorite_count", db))

    # Account clean-up

    async def remove_user_activity(self, user_id: int, db: AsyncSession) -> List[str]:
        """
        Remove a user's uploads, likes, favorites and history without committing,
        keeping every counter consistent. Returns the stored file URLs to delete.
        """
        urls: List[str] = []
        own_ids = (await db.execute(
            select(Wallpaper.id).where(Wallpaper.uploader_id == user_id)
        )).scalars().all()
        for wallpaper_id in own_ids:
            urls.extend(await self.remove_cascade(wallpaper_id, db))

        for link_model, counter in ((UserLike, "like_count"), (UserFavorite, "favorite_count")):
            wallpaper_ids = (await db.execute(
                select(link_model.wallpaper_id).where(link_model.user_id == user_id)
            )).scalars().all()
            await db.execute(delete(link_model).where(link_model.user_id == user_id))
            for wallpaper_id in wallpaper_ids:
                await counters.decrement(db, Wallpaper, wallpaper_id, counter)

        await db.execute(delete(ViewHistory).where(ViewHistory.user_id == user_id))
        return urls

    async def clear_view_history(self, user_id: int, db: AsyncSession) -> int:
        try:
            result = await db.execute(delete(ViewHistory).where(ViewHistory.user_id == user_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return result.rowcount

    async def cleanup_view_history(self, db: AsyncSession, days: int = VIEW_HISTORY_RETENTION_DAYS) -> int:
        """Delete history rows older than `days` days."""
        cutoff = datetime.now(ZoneInfo("UTC")) - timedelta(days=days)
        try:
            result = await db.execute(delete(ViewHistory).where(ViewHistory.viewed_at < cutoff))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Removed %s view history rows older than %s days", result.rowcount, days)
        return result.rowcount
