#!/usr/bin/env python3
"""
Recompute every denormalized counter from the rows it summarizes.

    tags.usage_count         <- wallpaper_tags
    wallpapers.like_count    <- user_likes
    wallpapers.favorite_count <- user_favorites
    posts.like_count         <- post_likes
    posts.comment_count      <- comments
    comments.like_count      <- comment_likes
    comments.reply_count     <- direct replies

View counts have no source rows and are left alone.

Usage:
    python scripts/recount_counters.py [--dry-run]
"""
import argparse
import asyncio
import logging
import os
import sys

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import wallnest.models  # noqa: E402,F401

from sqlalchemy import func, select, update  # noqa: E402
from sqlalchemy.orm import aliased  # noqa: E402

from wallnest.comments.models import Comment, CommentLike  # noqa: E402
from wallnest.database import AsyncSessionLocal, engine  # noqa: E402
from wallnest.posts.models import Post, PostLike  # noqa: E402
from wallnest.tags.models import Tag, WallpaperTag  # noqa: E402
from wallnest.wallpapers.models import UserFavorite, UserLike, Wallpaper  # noqa: E402

logger = logging.getLogger("recount_counters")

Reply = aliased(Comment)

# (target model, counter column, scalar subquery computing the true value)
COUNTERS = [
    (Tag, "usage_count",
     select(func.count()).where(WallpaperTag.tag_id == Tag.id).scalar_subquery()),
    (Wallpaper, "like_count",
     select(func.count()).where(UserLike.wallpaper_id == Wallpaper.id).scalar_subquery()),
    (Wallpaper, "favorite_count",
     select(func.count()).where(UserFavorite.wallpaper_id == Wallpaper.id).scalar_subquery()),
    (Post, "like_count",
     select(func.count()).where(PostLike.post_id == Post.id).scalar_subquery()),
    (Post, "comment_count",
     select(func.count()).where(Comment.post_id == Post.id).scalar_subquery()),
    (Comment, "like_count",
     select(func.count()).where(CommentLike.comment_id == Comment.id).scalar_subquery()),
    (Comment, "reply_count",
     select(func.count()).where(Reply.parent_id == Comment.id).scalar_subquery()),
]


async def recount(dry_run: bool = False) -> dict:
    """Fix drifted counters; returns {"table.column": rows_fixed}"""
    fixed = {}
    async with AsyncSessionLocal() as session:
        try:
            for model, field, truth in COUNTERS:
                column = getattr(model, field)
                values = {field: truth}
                if hasattr(model, "updated_at"):
                    values["updated_at"] = model.updated_at
                statement = (
                    update(model)
                    .where(column != truth)
                    .values(values)
                    .execution_options(synchronize_session=False)
                )
                result = await session.execute(statement)
                fixed[f"{model.__tablename__}.{field}"] = result.rowcount
                logger.info("%s.%s: %s rows corrected", model.__tablename__, field, result.rowcount)
            if dry_run:
                await session.rollback()
            else:
                await session.commit()
        except Exception:
            await session.rollback()
            raise
    return fixed


async def main(dry_run: bool) -> None:
    try:
        fixed = await recount(dry_run)
    finally:
        await engine.dispose()
    total = sum(fixed.values())
    suffix = " (dry run, nothing written)" if dry_run else ""
    print(f"{total} counter values corrected{suffix}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    parser = argparse.ArgumentParser(description="Recompute denormalized counters")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without saving")
    asyncio.run(main(parser.parse_args().dry_run))
