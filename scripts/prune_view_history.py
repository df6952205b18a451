#!/usr/bin/env python3
"""
Delete wallpaper view history older than the retention window.

Usage:
    python scripts/prune_view_history.py [--days 30]
"""
import argparse
import asyncio
import logging
import os
import sys

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import wallnest.models  # noqa: E402,F401

from wallnest.database import AsyncSessionLocal, engine  # noqa: E402
from wallnest.wallpapers.constants import VIEW_HISTORY_RETENTION_DAYS  # noqa: E402
from wallnest.wallpapers.service import WallpaperService  # noqa: E402


async def main(days: int) -> None:
    try:
        async with AsyncSessionLocal() as session:
            removed = await WallpaperService().cleanup_view_history(session, days=days)
    finally:
        await engine.dispose()
    print(f"{removed} view history rows removed")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    parser = argparse.ArgumentParser(description="Prune old wallpaper view history")
    parser.add_argument("--days", type=int, default=VIEW_HISTORY_RETENTION_DAYS)
    args = parser.parse_args()
    if args.days < 1:
        parser.error("--days must be at least 1")
    asyncio.run(main(args.days))
