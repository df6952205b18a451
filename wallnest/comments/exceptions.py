from wallnest.comments.constants import COMMENT_NOT_FOUND, PARENT_COMMENT_NOT_FOUND, PARENT_ON_OTHER_POST
from wallnest.exceptions import ForbiddenException, NotFoundException


class CommentNotFoundException(NotFoundException):
    def __init__(self, detail: str = COMMENT_NOT_FOUND):
        super().__init__(detail=detail)


class ParentCommentNotFoundException(NotFoundException):
    def __init__(self):
        super().__init__(detail=PARENT_COMMENT_NOT_FOUND)


class ParentPostMismatchException(ForbiddenException):
    """A reply must stay on the same post as the comment it answers"""

    def __init__(self):
        super().__init__(detail=PARENT_ON_OTHER_POST)
