from wallnest.exceptions import ConflictException, NotFoundException, ValidationException
from wallnest.tags.constants import TAG_ALREADY_EXISTS, TAG_NAME_INVALID, TAG_NOT_FOUND


class TagNotFoundException(NotFoundException):
    def __init__(self, detail: str = TAG_NOT_FOUND):
        super().__init__(detail=detail)


class InvalidTagNameException(ValidationException):
    def __init__(self, detail: str = TAG_NAME_INVALID):
        super().__init__(detail=detail)


class TagAlreadyExistsException(ConflictException):
    def __init__(self, detail: str = TAG_ALREADY_EXISTS):
        super().__init__(detail=detail)
