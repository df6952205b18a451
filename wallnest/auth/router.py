"""
Router for Auth module with DI pattern
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import get_auth_service, get_current_active_user
from wallnest.auth.schemas import LoginRequest, Token, UserCreate
from wallnest.auth.service import AuthService
from wallnest.config import settings
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok
from wallnest.users.models import User
from wallnest.users.schemas import UserResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db)
):
    """Register a new user"""
    user = await service.register_user(user_data, db)
    return ok(UserResponse.model_validate(user), "Registration successful")


@router.post("/login", response_model=ApiResponse[Token])
async def login(
    response: Response,
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db)
):
    """Login user and return access token (also set as an HttpOnly cookie)"""
    token_data = await service.login(login_data.username, login_data.password, db)

    response.set_cookie(
        key=settings.ACCESS_TOKEN_COOKIE_NAME,
        value=token_data.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=settings.COOKIE_HTTPONLY,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE
    )
    return ok(token_data, "Login successful")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(response: Response):
    """Clear the access token cookie"""
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE_NAME)
    return ok(message="Logged out")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def read_me(current_user: User = Depends(get_current_active_user)):
    return ok(UserResponse.model_validate(current_user))
