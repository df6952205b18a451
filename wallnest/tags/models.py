from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from wallnest.database import Base
from wallnest.orm_mixins import CreatedAtMixin


class Tag(Base, CreatedAtMixin):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    slug = Column(String(50), unique=True, index=True, nullable=False)
    # Number of wallpaper_tags rows pointing at this tag
    usage_count = Column(Integer, default=0, server_default="0", nullable=False)

    __table_args__ = (
        CheckConstraint("usage_count >= 0", name="usage_count_non_negative"),
    )


class WallpaperTag(Base):
    __tablename__ = "wallpaper_tags"

    wallpaper_id = Column(Integer, ForeignKey("wallpapers.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
