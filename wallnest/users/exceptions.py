"""
Exceptions for Users module
"""
from wallnest.exceptions import ConflictException, NotFoundException


class UserNotFoundException(NotFoundException):
    def __init__(self, user_id: int = None):
        detail = f"User {user_id} not found" if user_id is not None else "User not found"
        super().__init__(detail=detail)


class UserAlreadyExistsException(ConflictException):
    def __init__(self, detail: str = "User already exists"):
        super().__init__(detail=detail)
