from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from wallnest.comments.constants import MAX_CONTENT_LENGTH
from wallnest.models import CustomModel
from wallnest.users.schemas import UserBrief


class CommentCreate(CustomModel):
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    post_id: int = Field(..., ge=1)
    parent_id: Optional[int] = Field(None, ge=1, description="Comment being replied to")

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Comment must not be blank')
        return v.strip()


class CommentUpdate(CustomModel):
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Comment must not be blank')
        return v.strip()


class CommentResponse(CustomModel):
    id: int
    content: str
    post_id: int
    author_id: int
    parent_id: Optional[int] = None
    author: Optional[UserBrief] = None
    like_count: int
    reply_count: int
    is_liked: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommentLikeStatus(CustomModel):
    is_liked: bool
    like_count: int = Field(..., ge=0)


class CommentStats(CustomModel):
    total_comments: int
    top_level_comments: int
