"""
Authentication Router for the Liar Game API

Bu modul, istek basina kimlik cozumleme (principal), route bazli erisim
kontrolu dependency'si, hesap endpoint'leri ve identity provider'in
access-token hook'unu icerir.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from liar_game.config import settings
from liar_game.database import get_db
from liar_game.exceptions import (
    AuthenticationRequiredException,
    InvalidWebhookSignatureException,
    ValidationFailedException,
)
from liar_game.schemas.auth import AuthHookPayload, AuthHookResponse, Principal
from liar_game.services.auth_service import AuthService
from liar_game.utils.access_control import AUTHENTICATED, AccessPolicy, PUBLIC, enforce_policy
from liar_game.utils.rate_limit import RateLimit, RateLimitConfig
from liar_game.utils.security import verify_webhook_signature
from liar_game.utils.logging_config import auth_logger

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
hooks_router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])
security = HTTPBearer(auto_error=False)


async def get_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Principal:
    """
    Istegin principal'ini coz; token yoksa veya gecersizse guest.

    Raises:
        AuthenticationRequiredException: hesap silinmisse
    """
    authorization = None
    if credentials is not None:
        authorization = f"{credentials.scheme} {credentials.credentials}"

    auth_service = AuthService(db)
    principal = await auth_service.resolve_principal(authorization)
    request.state.user = principal
    return principal


class RequireAccess:
    """
    Route bazli erisim kontrolu dependency'si.

        @router.post("", ...)
        async def create(principal: Annotated[Principal, Depends(RequireAccess(MEMBER_ONLY))]): ...

    Raises:
        AuthenticationRequiredException: principal yok veya guest (authenticated policy)
        PermissionDeniedException: rol veya tier yetersiz
    """

    def __init__(self, policy: AccessPolicy = PUBLIC):
        self.policy = policy

    async def __call__(self, principal: Annotated[Principal, Depends(get_principal)]) -> Principal:
        return enforce_policy(principal, self.policy)


async def require_local_user_id(principal: Principal, db: AsyncSession) -> int:
    """
    Yerel kullanici gerektiren islemler icin (oda olusturma, katilma, hesap silme).

    Raises:
        AuthenticationRequiredException: token'da user_id yok veya yerel kayit bulunamadi
    """
    user = None
    if principal.user_id is not None:
        user = await AuthService(db).get_user_by_id(principal.user_id)
    if user is None:
        auth_logger.warning(f"No local user for principal {principal.id} (user_id={principal.user_id})")
        raise AuthenticationRequiredException(
            "No local account is linked to this identity", {"reason": "no_local_user"}
        )
    return user.id


@router.get(
    "/me",
    response_model=Principal,
    dependencies=[Depends(get_principal), Depends(RateLimit("me", RateLimitConfig(60, 60)))],
)
async def get_me(principal: Annotated[Principal, Depends(get_principal)]):
    """Cozulen principal (guest dahil) - 60 istek / dakika"""
    return principal


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_principal), Depends(RateLimit("withdraw", RateLimitConfig(60, 5)))],
)
async def withdraw_me(
    principal: Annotated[Principal, Depends(RequireAccess(AUTHENTICATED))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Hesabi geri alinabilir sekilde sil (soft delete) - 5 istek / dakika"""
    auth_service = AuthService(db)
    await auth_service.withdraw_user(await require_local_user_id(principal, db))
    auth_logger.info("User withdrew own account", extra={"principal_id": principal.id})


@hooks_router.post("/auth/custom-access-token", response_model=AuthHookResponse)
async def custom_access_token_hook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Identity provider access-token hook.

    Raises:
        InvalidWebhookSignatureException: imza gecersiz
        ValidationFailedException: payload bozuk veya e-posta yok
        AccountWithdrawnException: hesap silinmis
    """
    body = await request.body()

    if settings.AUTH_HOOK_SECRET:
        verify_webhook_signature(
            settings.AUTH_HOOK_SECRET,
            request.headers,
            body,
            tolerance_seconds=settings.AUTH_HOOK_TOLERANCE_SECONDS,
        )
    elif settings.DEBUG:
        auth_logger.warning("AUTH_HOOK_SECRET not set, skipping hook signature check (DEBUG)")
    else:
        auth_logger.error("AUTH_HOOK_SECRET not set, refusing access-token hook")
        raise InvalidWebhookSignatureException("Hook secret not configured")

    try:
        payload = AuthHookPayload.model_validate_json(body)
    except ValidationError as e:
        raise ValidationFailedException("payload", "malformed access-token hook payload") from e

    auth_service = AuthService(db)
    claims = await auth_service.handle_access_token_hook(payload)
    return AuthHookResponse(claims=claims)
