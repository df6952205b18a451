from wallnest.exceptions import NotFoundException
from wallnest.posts.constants import POST_NOT_FOUND


class PostNotFoundException(NotFoundException):
    def __init__(self, detail: str = POST_NOT_FOUND):
        super().__init__(detail=detail)
