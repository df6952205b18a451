import re
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from wallnest.models import CustomModel
from wallnest.users.models import UserRole

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def _check_username(value: str) -> str:
    value = value.strip()
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username may only contain letters, digits and underscores")
    return value


class UserBase(CustomModel):
    username: str = Field(..., min_length=3, max_length=50, description="Login name")
    email: Optional[EmailStr] = Field(None, description="E-mail address")
    full_name: Optional[str] = Field(None, max_length=100, description="Display name")


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=72, description="Password (6-72 characters)")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        return _check_username(v)


class UserProfileUpdate(CustomModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=1000)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        return _check_username(v) if v is not None else v


class AdminUserUpdate(CustomModel):
    """Fields an administrator may change on any account"""
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    full_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)


class UserBrief(CustomModel):
    """Nested author/uploader object"""
    id: int
    username: str
    avatar_url: Optional[str] = None


class UserPublic(UserBrief):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None


class UserResponse(UserPublic):
    email: Optional[str] = None
    role: UserRole
    is_active: bool
    updated_at: Optional[datetime] = None


class PasswordChange(CustomModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=72)


class UserResetPassword(CustomModel):
    """Admin sets a new password for an account"""
    new_password: str = Field(..., min_length=6, max_length=72)


class AdminUserCreate(UserCreate):
    role: UserRole = UserRole.USER
