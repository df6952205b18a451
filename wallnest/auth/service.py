"""
Service layer for Auth module with instance methods
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.exceptions import InactiveUserException, InvalidCredentialsException
from wallnest.auth.schemas import Token, UserCreate
from wallnest.config import settings
from wallnest.users.exceptions import UserAlreadyExistsException
from wallnest.users.models import User, UserRole
from wallnest.users.schemas import UserResponse

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthService:

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        if not hashed_password:
            return False
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return pwd_context.hash(password)

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(ZoneInfo("UTC")) + expires_delta
        else:
            expire = datetime.now(
                ZoneInfo("UTC")) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    async def register_user(self, user_data: UserCreate, db: AsyncSession) -> User:
        """Register a new user

        Raises:
            UserAlreadyExistsException: username or e-mail already taken
        """
        result = await db.execute(
            select(User).where(User.username == user_data.username)
        )
        if result.scalar_one_or_none():
            raise UserAlreadyExistsException("Username is already taken")

        if user_data.email:
            result = await db.execute(
                select(User).where(User.email == user_data.email)
            )
            if result.scalar_one_or_none():
                raise UserAlreadyExistsException("Email is already in use")

        db_user = User(
            username=user_data.username,
            email=user_data.email,
            full_name=user_data.full_name,
            hashed_password=self.get_password_hash(user_data.password),
            role=UserRole.USER,
            is_active=True,
        )

        try:
            db.add(db_user)
            await db.commit()
            await db.refresh(db_user)
        except Exception:
            await db.rollback()
            raise

        logger.info("Registered user %s (id=%s)", db_user.username, db_user.id)
        return db_user

    async def authenticate_user(self, username: str, password: str, db: AsyncSession) -> Optional[User]:
        """Authenticate user with username (or e-mail) and password"""
        result = await db.execute(
            select(User).where(or_(User.username == username, User.email == username))
        )
        user = result.scalars().first()
        if not user:
            return None
        if not self.verify_password(password, user.hashed_password):
            return None
        return user

    async def login(self, username: str, password: str, db: AsyncSession) -> Token:
        """Login user and return an access token"""
        user = await self.authenticate_user(username, password, db)
        if not user:
            raise InvalidCredentialsException()
        if not user.is_active:
            raise InactiveUserException()

        access_token = self.create_access_token(
            data={"sub": str(user.id), "username": user.username, "role": user.role.value},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        logger.info("User %s logged in", user.username)

        return Token(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # seconds
            user=UserResponse.model_validate(user),
        )
