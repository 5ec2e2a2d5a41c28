from datetime import datetime
from typing import Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from liar_game.exceptions import (
    AccountWithdrawnException,
    AuthenticationRequiredException,
    NotFoundException,
    ValidationFailedException,
)
from liar_game.models.user import User, Role, Tier
from liar_game.schemas.auth import GUEST_PRINCIPAL, AuthHookPayload, Principal
from liar_game.utils.security import extract_bearer_token, verify_token
from liar_game.utils.logging_config import auth_logger


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower().strip()))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_all_users(self, include_withdrawn: bool = True) -> list[User]:
        query = select(User).order_by(User.created_at.desc(), User.id.desc())
        if not include_withdrawn:
            query = query.where(User.deleted_at.is_(None))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _require_user(self, user_id: int) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundException("User")
        return user

    # ==================== Identity resolution ====================

    async def resolve_principal(self, authorization: str | None) -> Principal:
        """
        Authorization header -> Principal.

        Eksik veya gecersiz token guest principal'a duser. Silinmis (withdrawn)
        yerel hesap ise kapali basarisiz olur.

        Raises:
            AuthenticationRequiredException: token gecerli ama hesap silinmis
        """
        token = extract_bearer_token(authorization)
        if token is None:
            auth_logger.debug("No bearer token, resolving as guest")
            return GUEST_PRINCIPAL

        try:
            principal = verify_token(token)
        except AuthenticationRequiredException as e:
            auth_logger.debug(f"Token verification failed, resolving as guest: {e.details.get('reason', e.message)}")
            return GUEST_PRINCIPAL

        if principal.user_id is not None:
            user = await self.get_user_by_id(principal.user_id)
            if user is not None and user.is_withdrawn:
                auth_logger.warning(f"Withdrawn account presented a valid token: user {user.id}")
                raise AuthenticationRequiredException(
                    "This account has been withdrawn", {"reason": "account_withdrawn"}
                )

        return principal

    # ==================== Access-token hook ====================

    async def handle_access_token_hook(self, payload: AuthHookPayload) -> dict[str, Any]:
        """
        Identity provider token uretirken cagirir: yerel kullaniciyi bul/olustur,
        backend claim'lerini (user_id, user_tier, user_role) ekle.

        Raises:
            ValidationFailedException: e-posta yok
            AccountWithdrawnException: hesap silinmis
        """
        record = payload.record
        email = (record.email if record else None) or payload.claims.get("email")
        if not email:
            raise ValidationFailedException("email", "identity has no email address")
        email = email.lower().strip()

        user = await self.get_user_by_email(email)
        if user is None:
            app_metadata = record.app_metadata if record else payload.claims.get("app_metadata", {})
            user_metadata = record.user_metadata if record else payload.claims.get("user_metadata", {})
            user = User(
                email=email,
                username=user_metadata.get("username") or email.split("@")[0],
                tier=Tier.MEMBER,
                role=Role.USER,
                oauth_provider=app_metadata.get("provider"),
                oauth_id=payload.user_id,
            )
            self.db.add(user)
            auth_logger.info(f"Local user created from identity provider: {email}")
        elif user.is_withdrawn:
            auth_logger.warning(f"Token issue refused for withdrawn account: {email}")
            raise AccountWithdrawnException()
        elif user.oauth_id is None:
            user.oauth_id = payload.user_id

        user.last_login_at = datetime.utcnow()
        await self.db.flush()

        claims = dict(payload.claims)
        claims.update({
            "user_id": user.id,
            "user_tier": user.tier.value,
            "user_role": user.role.value,
        })
        auth_logger.info(f"Access token claims issued for user {user.id}")
        return claims

    # ==================== Account management ====================

    async def withdraw_user(self, user_id: int) -> User:
        """Soft delete: deleted_at set edilir, satir silinmez."""
        user = await self._require_user(user_id)
        if user.deleted_at is None:
            user.deleted_at = datetime.utcnow()
            await self.db.flush()
            auth_logger.warning(f"User withdrawn: {user_id}")
        return user

    async def restore_user(self, user_id: int) -> User:
        user = await self._require_user(user_id)
        if user.deleted_at is not None:
            user.deleted_at = None
            await self.db.flush()
            auth_logger.info(f"User restored: {user_id}")
        return user

    async def update_tier(self, user_id: int, tier: Tier) -> User:
        user = await self._require_user(user_id)
        user.tier = tier
        await self.db.flush()
        auth_logger.info(f"User {user_id} tier set to {tier.value}")
        return user

    async def update_role(self, user_id: int, role: Role) -> User:
        user = await self._require_user(user_id)
        user.role = role
        await self.db.flush()
        auth_logger.info(f"User {user_id} role set to {role.value}")
        return user
