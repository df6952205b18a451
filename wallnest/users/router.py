"""
Router for Users module
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wallnest.auth.dependencies import get_current_active_user
from wallnest.database import get_db
from wallnest.models import ApiResponse, ok, paginated
from wallnest.pagination import PaginationParams
from wallnest.users.dependencies import get_users_service
from wallnest.users.models import User
from wallnest.users.schemas import PasswordChange, UserProfileUpdate, UserPublic, UserResponse
from wallnest.users.service import UsersService
from wallnest.wallpapers.dependencies import get_wallpaper_service
from wallnest.wallpapers.schemas import ViewHistoryItem, WallpaperResponse
from wallnest.wallpapers.service import WallpaperService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=ApiResponse[UserResponse])
async def read_my_profile(current_user: User = Depends(get_current_active_user)):
    return ok(UserResponse.model_validate(current_user))


@router.put("/me", response_model=ApiResponse[UserResponse])
async def update_my_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Update your profile

    - **username** and **email** must not belong to another account
    """
    user = await service.update_profile(current_user, data, db)
    return ok(UserResponse.model_validate(user), "Profile updated")


@router.put("/me/password", response_model=ApiResponse[None])
async def change_my_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_active_user),
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    await service.change_password(current_user, data, db)
    return ok(message="Password changed")


@router.get("/me/likes", response_model=ApiResponse[List[WallpaperResponse]])
async def my_liked_wallpapers(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.get_user_likes(current_user.id, db, pagination.page, pagination.limit)
    return paginated([WallpaperResponse.model_validate(w) for w in items], total, pagination.page, pagination.limit)


@router.get("/me/favorites", response_model=ApiResponse[List[WallpaperResponse]])
async def my_favorite_wallpapers(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    items, total = await service.get_user_favorites(current_user.id, db, pagination.page, pagination.limit)
    return paginated([WallpaperResponse.model_validate(w) for w in items], total, pagination.page, pagination.limit)


@router.get("/me/history", response_model=ApiResponse[List[ViewHistoryItem]])
async def my_view_history(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    """Recently viewed wallpapers, newest first"""
    items, total = await service.get_view_history(current_user.id, db, pagination.page, pagination.limit)
    return paginated([ViewHistoryItem.model_validate(h) for h in items], total, pagination.page, pagination.limit)


@router.delete("/me/history", response_model=ApiResponse[None])
async def clear_my_view_history(
    current_user: User = Depends(get_current_active_user),
    service: WallpaperService = Depends(get_wallpaper_service),
    db: AsyncSession = Depends(get_db)
):
    removed = await service.clear_view_history(current_user.id, db)
    return ok(message=f"Removed {removed} history entries")


@router.get("/{user_id}", response_model=ApiResponse[UserPublic])
async def get_user_profile(
    user_id: int,
    service: UsersService = Depends(get_users_service),
    db: AsyncSession = Depends(get_db)
):
    """Public profile of an active user"""
    return ok(UserPublic.model_validate(await service.get_public_user(user_id, db)))
