from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field
from liar_game.models.user import Role, Tier

GUEST_ID = "guest"


class Principal(BaseModel):
    """Bir istek icin cozulen kimlik; her istekte yeniden olusturulur, saklanmaz."""
    model_config = ConfigDict(frozen=True)

    id: str
    tier: Tier
    role: Role
    email: str | None = None
    username: str | None = None
    # Yerel kullanici id'si; sadece hook'un ekledigi user_id claim'inden gelir
    user_id: int | None = None

    @property
    def is_guest(self) -> bool:
        return self.id == GUEST_ID


GUEST_PRINCIPAL = Principal(id=GUEST_ID, tier=Tier.GUEST, role=Role.USER, email=None)


class AppMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    provider: str | None = None
    role: str | None = None


class UserMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: str | None = None


class ExternalClaims(BaseModel):
    """
    Normalized claims of an identity-provider access token.

    Precedence used by ``principal_from_claims``:
        id:       user_id > sub
        role:     user_role > app_metadata.role > role (known roles only) > USER
        tier:     user_tier > MEMBER
        username: user_metadata.username > username > email local part
    """
    model_config = ConfigDict(extra="ignore")

    sub: str
    email: str | None = None
    role: str | None = None
    username: str | None = None
    app_metadata: AppMetadata = Field(default_factory=AppMetadata)
    user_metadata: UserMetadata = Field(default_factory=UserMetadata)
    # Custom claims added by the access-token hook
    user_id: int | None = None
    user_tier: Tier | None = None
    user_role: Role | None = None


class AuthHookRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str | None = None
    phone: str | None = None
    app_metadata: dict[str, Any] = Field(default_factory=dict)
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class AuthHookPayload(BaseModel):
    """Access-token hook istegi (identity provider tarafindan gonderilir)"""
    user_id: str
    authentication_method: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)
    record: AuthHookRecord | None = None


class AuthHookResponse(BaseModel):
    claims: dict[str, Any]


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str | None
    tier: Tier
    role: Role
    oauth_provider: str | None
    last_login_at: datetime | None
    created_at: datetime
    deleted_at: datetime | None


class TierUpdate(BaseModel):
    tier: Tier


class RoleUpdate(BaseModel):
    role: Role
