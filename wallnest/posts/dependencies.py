from typing import Optional

from fastapi import Query

from wallnest.posts.models import PostCategory
from wallnest.posts.service import PostService
from wallnest.utils.text import split_csv


def get_post_service() -> PostService:
    return PostService()


class PostFilters:
    """Query string filters of the post listing"""

    def __init__(
        self,
        search: Optional[str] = Query(None, description="Substring of title, content or summary"),
        category: Optional[PostCategory] = Query(None),
        author_id: Optional[int] = Query(None, ge=1),
        tags: Optional[str] = Query(None, description="Comma separated; every tag must be present"),
    ):
        self.search = search
        self.category = category
        self.author_id = author_id
        self.tags = split_csv(tags)
