import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from wallnest.database import Base
from wallnest.orm_mixins import CreatedAtMixin, TimestampMixin


class WallpaperCategory(str, enum.Enum):
    GENERAL = "general"
    ANIME = "anime"
    PEOPLE = "people"


class WallpaperStatus(int, enum.Enum):
    PENDING = 0
    APPROVED = 1


class Wallpaper(Base, TimestampMixin):
    __tablename__ = "wallpapers"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    file_url = Column(String(500), nullable=False)
    thumbnail_url = Column(String(500), nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    format = Column(String(10), nullable=False)
    aspect_ratio = Column(Numeric(6, 2), nullable=True)
    category = Column(String(20), nullable=False, default=WallpaperCategory.GENERAL.value, index=True)
    status = Column(Integer, nullable=False, default=WallpaperStatus.APPROVED.value, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    uploader_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Denormalized counters
    view_count = Column(Integer, nullable=False, default=0, server_default="0")
    like_count = Column(Integer, nullable=False, default=0, server_default="0")
    favorite_count = Column(Integer, nullable=False, default=0, server_default="0")

    # Relationships
    uploader = relationship("User", back_populates="wallpapers")
    tags = relationship("Tag", secondary="wallpaper_tags", viewonly=True, order_by="Tag.name")


class UserLike(Base, CreatedAtMixin):
    __tablename__ = "user_likes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    wallpaper_id = Column(Integer, ForeignKey("wallpapers.id", ondelete="CASCADE"), nullable=False, index=True)

    wallpaper = relationship("Wallpaper")

    # One like per user per wallpaper
    __table_args__ = (UniqueConstraint("user_id", "wallpaper_id", name="uq_user_likes_user_wallpaper"),)


class UserFavorite(Base, CreatedAtMixin):
    __tablename__ = "user_favorites"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    wallpaper_id = Column(Integer, ForeignKey("wallpapers.id", ondelete="CASCADE"), nullable=False, index=True)

    wallpaper = relationship("Wallpaper")

    __table_args__ = (UniqueConstraint("user_id", "wallpaper_id", name="uq_user_favorites_user_wallpaper"),)


class ViewHistory(Base):
    __tablename__ = "view_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    wallpaper_id = Column(Integer, ForeignKey("wallpapers.id", ondelete="CASCADE"), nullable=False, index=True)
    viewed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    wallpaper = relationship("Wallpaper")

    __table_args__ = (UniqueConstraint("user_id", "wallpaper_id", name="uq_view_history_user_wallpaper"),)
