"""
Admin Router for the Liar Game API

Kullanici yonetimi: listeleme, tier/rol degistirme, soft delete ve geri alma.
Tum endpoint'ler ADMIN rolu gerektirir.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from liar_game.database import get_db
from liar_game.exceptions import PermissionDeniedException
from liar_game.routers.auth import RequireAccess, get_principal
from liar_game.schemas.auth import Principal, RoleUpdate, TierUpdate, UserResponse
from liar_game.services.auth_service import AuthService
from liar_game.utils.access_control import ADMIN_ONLY
from liar_game.utils.rate_limit import RateLimit, RateLimitConfig
from liar_game.utils.logging_config import auth_logger

ADMIN_LIMIT = RateLimitConfig(window_seconds=60, max_requests=30)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[
        Depends(get_principal),
        Depends(RequireAccess(ADMIN_ONLY)),
        Depends(RateLimit("admin", ADMIN_LIMIT)),
    ],
)

AdminPrincipal = Annotated[Principal, Depends(RequireAccess(ADMIN_ONLY))]


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    include_withdrawn: bool = True
):
    """Admin: Tum kullanicilari listele"""
    auth_service = AuthService(db)
    return await auth_service.get_all_users(include_withdrawn)


@router.patch("/users/{user_id}/tier", response_model=UserResponse)
async def update_user_tier(
    user_id: int,
    data: TierUpdate,
    admin: AdminPrincipal,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Raises:
        NotFoundException: kullanici yoksa
    """
    auth_service = AuthService(db)
    user = await auth_service.update_tier(user_id, data.tier)
    auth_logger.info("Admin changed user tier", extra={"admin_id": admin.id, "user_id": user_id})
    return user


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    data: RoleUpdate,
    admin: AdminPrincipal,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Raises:
        PermissionDeniedException: kendi rolunu degistirmeye calisiyorsa
        NotFoundException: kullanici yoksa
    """
    if admin.user_id == user_id:
        raise PermissionDeniedException("You cannot change your own role")

    auth_service = AuthService(db)
    user = await auth_service.update_role(user_id, data.role)
    auth_logger.info("Admin changed user role", extra={"admin_id": admin.id, "user_id": user_id})
    return user


@router.delete("/users/{user_id}", response_model=UserResponse)
async def withdraw_user(
    user_id: int,
    admin: AdminPrincipal,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Admin: Kullaniciyi soft delete et.

    Raises:
        PermissionDeniedException: kendini silmeye calisiyorsa
        NotFoundException: kullanici yoksa
    """
    if admin.user_id == user_id:
        raise PermissionDeniedException("You cannot withdraw your own account")

    auth_service = AuthService(db)
    user = await auth_service.withdraw_user(user_id)
    auth_logger.info("Admin withdrew user", extra={"admin_id": admin.id, "user_id": user_id})
    return user


@router.post("/users/{user_id}/restore", response_model=UserResponse)
async def restore_user(
    user_id: int,
    admin: AdminPrincipal,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Admin: Silinmis hesabi geri al"""
    auth_service = AuthService(db)
    user = await auth_service.restore_user(user_id)
    auth_logger.info("Admin restored user", extra={"admin_id": admin.id, "user_id": user_id})
    return user
