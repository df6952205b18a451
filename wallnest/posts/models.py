import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from wallnest.database import Base
from wallnest.orm_mixins import CreatedAtMixin, TimestampMixin


class PostCategory(str, enum.Enum):
    TECH_DISCUSSION = "tech_discussion"
    EXPERIENCE_SHARING = "experience_sharing"
    Q_A = "q_a"
    RESOURCE_SHARING = "resource_sharing"


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    MODERATED = "moderated"
    HIDDEN = "hidden"


class Post(Base, TimestampMixin):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(String(500), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    category = Column(String(30), nullable=False, default=PostCategory.TECH_DISCUSSION.value, index=True)
    status = Column(String(20), nullable=False, default=PostStatus.PUBLISHED.value, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Comma separated tag names, not linked to the tags table
    tags = Column(String(500), nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_featured = Column(Boolean, nullable=False, default=False)

    view_count = Column(Integer, nullable=False, default=0, server_default="0")
    like_count = Column(Integer, nullable=False, default=0, server_default="0")
    comment_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_comment_at = Column(DateTime(timezone=True), nullable=True)

    # Relationship
    author = relationship("User", back_populates="posts")


class PostLike(Base, CreatedAtMixin):
    __tablename__ = "post_likes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)

    # One like per user per post
    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_post_likes_user_post"),)
