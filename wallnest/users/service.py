"""
Service layer for Users management
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.service import AuthService
from wallnest.comments.service import CommentService
from wallnest.exceptions import ValidationException
from wallnest.pagination import get_offset
from wallnest.permissions import Action, ensure_allowed
from wallnest.posts.service import PostService
from wallnest.reports.models import Report
from wallnest.users.exceptions import UserAlreadyExistsException, UserNotFoundException
from wallnest.users.models import User, UserRole
from wallnest.users.schemas import AdminUserCreate, AdminUserUpdate, PasswordChange, UserProfileUpdate, UserResetPassword
from wallnest.utils.text import LIKE_ESCAPE, contains_pattern
from wallnest.wallpapers.service import WallpaperService

logger = logging.getLogger(__name__)


class UsersService:
    def __init__(
        self,
        auth_service: Optional[AuthService] = None,
        wallpaper_service: Optional[WallpaperService] = None,
        post_service: Optional[PostService] = None,
        comment_service: Optional[CommentService] = None,
    ):
        self.auth_service = auth_service or AuthService()
        self.wallpaper_service = wallpaper_service or WallpaperService()
        self.post_service = post_service or PostService()
        self.comment_service = comment_service or CommentService()

    async def get_user(self, user_id: int, db: AsyncSession) -> User:
        result = await db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundException(user_id)
        return user

    async def get_public_user(self, user_id: int, db: AsyncSession) -> User:
        """Public profile; disabled accounts are hidden"""
        user = await self.get_user(user_id, db)
        if not user.is_active:
            raise UserNotFoundException(user_id)
        return user

    async def _ensure_unique(self, db: AsyncSession, user_id: int, username: Optional[str], email: Optional[str]) -> None:
        if username is not None:
            result = await db.execute(select(User.id).where(User.username == username, User.id != user_id))
            if result.scalar_one_or_none() is not None:
                raise UserAlreadyExistsException("Username is already taken")
        if email is not None:
            result = await db.execute(select(User.id).where(User.email == email, User.id != user_id))
            if result.scalar_one_or_none() is not None:
                raise UserAlreadyExistsException("Email is already in use")

    async def update_profile(self, current_user: User, data: UserProfileUpdate, db: AsyncSession) -> User:
        """
        Update the caller's own profile.

        Raises:
            UserAlreadyExistsException: the new username or e-mail belongs to someone else
        """
        changes = data.model_dump(exclude_unset=True)
        await self._ensure_unique(db, current_user.id, changes.get("username"), changes.get("email"))

        user = await self.get_user(current_user.id, db)
        try:
            for field, value in changes.items():
                if value is None and field == "username":
                    continue
                setattr(user, field, value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s updated their profile", user.id)
        return await self.get_user(user.id, db)

    async def change_password(self, current_user: User, data: PasswordChange, db: AsyncSession) -> None:
        user = await self.get_user(current_user.id, db)
        if not self.auth_service.verify_password(data.current_password, user.hashed_password):
            raise ValidationException("Current password is incorrect")
        try:
            user.hashed_password = self.auth_service.get_password_hash(data.new_password)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s changed their password", user.id)

    # Administration

    async def list_users(
        self,
        current_user: User,
        db: AsyncSession,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        ensure_allowed(current_user, Action.USER_MANAGE)
        conditions = []
        if search and search.strip():
            pattern = contains_pattern(search.strip())
            conditions.append(or_(
                User.username.ilike(pattern, escape=LIKE_ESCAPE),
                User.email.ilike(pattern, escape=LIKE_ESCAPE),
                User.full_name.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        if role is not None:
            conditions.append(User.role == role)
        if is_active is not None:
            conditions.append(User.is_active == is_active)

        total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar_one()
        result = await db.execute(
            select(User)
            .where(*conditions)
            .order_by(desc(User.created_at), desc(User.id))
            .offset(get_offset(page, limit))
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def create_user(self, data: AdminUserCreate, current_user: User, db: AsyncSession) -> User:
        """Create an account with any role"""
        ensure_allowed(current_user, Action.USER_MANAGE)
        await self._ensure_unique(db, 0, data.username, data.email)
        user = User(
            username=data.username,
            email=data.email,
            full_name=data.full_name,
            hashed_password=self.auth_service.get_password_hash(data.password),
            role=data.role,
            is_active=True,
        )
        try:
            db.add(user)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s created user %s with role %s", current_user.id, user.id, data.role.value)
        return await self.get_user(user.id, db)

    async def admin_update_user(self, user_id: int, data: AdminUserUpdate, current_user: User, db: AsyncSession) -> User:
        """
        Change role, activation or profile fields of any account.

        Raises:
            ValidationException: an admin tried to demote or disable themselves
        """
        ensure_allowed(current_user, Action.USER_MANAGE)
        user = await self.get_user(user_id, db)
        changes = data.model_dump(exclude_unset=True)
        if user.id == current_user.id and (
            changes.get("is_active") is False
            or changes.get("role") not in (None, UserRole.ADMIN)
        ):
            raise ValidationException("You cannot demote or disable your own account")

        try:
            for field, value in changes.items():
                if value is None and field in ("role", "is_active"):
                    continue
                setattr(user, field, value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s updated user %s: %s", current_user.id, user_id, sorted(changes))
        return await self.get_user(user_id, db)

    async def reset_user_password(self, user_id: int, data: UserResetPassword, current_user: User, db: AsyncSession) -> None:
        ensure_allowed(current_user, Action.USER_MANAGE)
        user = await self.get_user(user_id, db)
        try:
            user.hashed_password = self.auth_service.get_password_hash(data.new_password)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s reset the password of user %s", current_user.id, user_id)

    async def delete_user(self, user_id: int, current_user: User, db: AsyncSession) -> None:
        """
        Permanently delete an account and everything it owns in one
        transaction: comments, posts, wallpapers, likes, favorites, history
        and reports. Counters on other users' content are adjusted.
        """
        ensure_allowed(current_user, Action.USER_MANAGE)
        if user_id == current_user.id:
            raise ValidationException("You cannot delete your own account")
        await self.get_user(user_id, db)

        try:
            await self.comment_service.remove_user_activity(user_id, db)
            await self.post_service.remove_user_activity(user_id, db)
            urls = await self.wallpaper_service.remove_user_activity(user_id, db)
            await db.execute(delete(Report).where(Report.user_id == user_id))
            await db.execute(delete(User).where(User.id == user_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self.wallpaper_service.uploads.delete_files(*urls)
        logger.info("Admin %s deleted user %s", current_user.id, user_id)
