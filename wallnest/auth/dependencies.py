from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.exceptions import AdminRequiredException, InactiveUserException, TokenNotValidException
from wallnest.auth.service import AuthService
from wallnest.config import settings
from wallnest.database import get_db
from wallnest.exceptions import UnauthorizedException
from wallnest.permissions import is_admin
from wallnest.users.models import User


def get_auth_service() -> AuthService:
    """Get AuthService instance"""
    return AuthService()


def extract_token(request: Request) -> Optional[str]:
    """Read the access token from the cookie (preferred) or the Authorization header"""
    token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1].strip()
    return token or None


def get_token_from_cookie_or_header(request: Request) -> str:
    token = extract_token(request)
    if not token:
        raise UnauthorizedException("Authentication token is missing")
    return token


async def resolve_user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    """Decode JWT and resolve to a User or return None if invalid."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
    except JWTError:
        return None

    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    token: str = Depends(get_token_from_cookie_or_header),
    db: AsyncSession = Depends(get_db)
) -> User:
    user = await resolve_user_from_token(token, db)
    if user is None:
        raise TokenNotValidException()
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise InactiveUserException()
    return current_user


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """
    Get current user optionally - returns User if authenticated, None if not
    """
    token = extract_token(request)
    if not token:
        return None
    user = await resolve_user_from_token(token, db)
    if user is None or not user.is_active:
        return None
    return user


async def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    if not is_admin(current_user):
        raise AdminRequiredException()
    return current_user
