from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from wallnest.models import CustomModel
from wallnest.posts.constants import MAX_CONTENT_LENGTH, MAX_SUMMARY_LENGTH, MAX_TAGS, MAX_TITLE_LENGTH, MIN_TITLE_LENGTH
from wallnest.posts.models import PostCategory, PostStatus
from wallnest.users.schemas import UserBrief
from wallnest.utils.text import split_csv

# Constants for field descriptions
TITLE_DESCRIPTION = "Post title"
CONTENT_DESCRIPTION = "Post body"
TAGS_DESCRIPTION = "Free-form tag names"


class PostBase(CustomModel):
    title: str = Field(..., min_length=MIN_TITLE_LENGTH, max_length=MAX_TITLE_LENGTH, description=TITLE_DESCRIPTION)
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH, description=CONTENT_DESCRIPTION)
    summary: Optional[str] = Field(None, max_length=MAX_SUMMARY_LENGTH)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    category: PostCategory = PostCategory.TECH_DISCUSSION
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS, description=TAGS_DESCRIPTION)

    @field_validator('title', 'content')
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Must not be blank')
        return v.strip()


class PostCreate(PostBase):
    """Payload for a new post"""
    status: PostStatus = Field(PostStatus.PUBLISHED, description="draft or published")

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v not in (PostStatus.DRAFT, PostStatus.PUBLISHED):
            raise ValueError('Authors may only create draft or published posts')
        return v


class PostUpdate(CustomModel):
    """Partial update of a post"""
    title: Optional[str] = Field(None, min_length=MIN_TITLE_LENGTH, max_length=MAX_TITLE_LENGTH, description=TITLE_DESCRIPTION)
    content: Optional[str] = Field(None, min_length=1, max_length=MAX_CONTENT_LENGTH, description=CONTENT_DESCRIPTION)
    summary: Optional[str] = Field(None, max_length=MAX_SUMMARY_LENGTH)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    category: Optional[PostCategory] = None
    status: Optional[PostStatus] = None
    tags: Optional[List[str]] = Field(None, max_length=MAX_TAGS, description=TAGS_DESCRIPTION)

    @field_validator('title', 'content')
    @classmethod
    def validate_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Must not be blank')
        return v.strip() if v else v


class PostResponse(CustomModel):
    id: int
    title: str
    content: str
    summary: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category: str
    status: str
    tags: List[str] = Field(default_factory=list)
    author_id: int
    author: Optional[UserBrief] = None
    is_pinned: bool = False
    is_featured: bool = False
    view_count: int
    like_count: int
    comment_count: int
    last_comment_at: Optional[datetime] = None
    is_liked: Optional[bool] = Field(None, description="Whether the current user liked this post")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('tags', mode='before')
    @classmethod
    def split_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return split_csv(v)
        return v


class PostLikeResponse(CustomModel):
    post_id: int
    is_liked: bool
    like_count: int = Field(..., ge=0)
