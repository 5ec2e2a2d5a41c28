import base64
import hashlib
import hmac
import time
from datetime import datetime, timedelta
from typing import Any, Mapping
from jose import jwt, JWTError
from pydantic import ValidationError
from liar_game.config import settings
from liar_game.exceptions import AuthenticationRequiredException, InvalidWebhookSignatureException
from liar_game.models.user import Role, Tier
from liar_game.schemas.auth import ExternalClaims, Principal

_KNOWN_ROLES = {role.value for role in Role}


def extract_bearer_token(authorization: str | None) -> str | None:
    """'Bearer <token>' header'indan token'i al; bicim hataliysa None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify signature, expiry, audience and (when configured) issuer.

    Raises:
        AuthenticationRequiredException: token dogrulanamazsa
    """
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
            issuer=settings.JWT_ISSUER or None,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationRequiredException("Invalid or expired token", {"reason": str(e)}) from e


def principal_from_claims(claims: ExternalClaims) -> Principal:
    """Map verified claims to a principal using the documented precedence."""
    principal_id = str(claims.user_id) if claims.user_id is not None else claims.sub

    role = Role.USER
    if claims.user_role is not None:
        role = claims.user_role
    elif claims.app_metadata.role in _KNOWN_ROLES:
        role = Role(claims.app_metadata.role)
    elif claims.role in _KNOWN_ROLES:
        # Provider'in kendi "authenticated"/"anon" degerleri burada elenir
        role = Role(claims.role)

    tier = claims.user_tier if claims.user_tier is not None else Tier.MEMBER

    username = claims.user_metadata.username or claims.username
    if not username and claims.email:
        username = claims.email.split("@")[0]

    return Principal(
        id=principal_id,
        tier=tier,
        role=role,
        email=claims.email,
        username=username or None,
        user_id=claims.user_id,
    )


def verify_token(token: str) -> Principal:
    """
    Token -> Principal. Pure: no database access, no fallback.

    Raises:
        AuthenticationRequiredException: token veya claims gecersizse
    """
    payload = decode_token(token)
    try:
        claims = ExternalClaims.model_validate(payload)
    except ValidationError as e:
        raise AuthenticationRequiredException(
            "Token claims are incomplete", {"reason": "invalid_claims"}
        ) from e
    return principal_from_claims(claims)


def create_access_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Sign a token the way the identity provider does (development and tests).
    """
    to_encode = claims.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=15))
    to_encode.setdefault("aud", settings.JWT_AUDIENCE)
    if settings.JWT_ISSUER:
        to_encode.setdefault("iss", settings.JWT_ISSUER)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ==================== Access-token hook signature ====================

def _webhook_key(secret: str) -> bytes:
    """'whsec_<base64>' bicimindeki secret'i ham anahtara cevir."""
    if secret.startswith("v1,"):
        secret = secret[3:]
    if secret.startswith("whsec_"):
        return base64.b64decode(secret[len("whsec_"):])
    return secret.encode("utf-8")


def sign_webhook(secret: str, webhook_id: str, timestamp: int, body: bytes) -> str:
    signed_content = f"{webhook_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(_webhook_key(secret), signed_content, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(
    secret: str,
    headers: Mapping[str, str],
    body: bytes,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> None:
    """
    Verify a Standard Webhooks signature (webhook-id, webhook-timestamp,
    webhook-signature headers; space separated "v1,<base64>" entries).

    Raises:
        InvalidWebhookSignatureException: imza, baslik veya zaman damgasi gecersizse
    """
    webhook_id = headers.get("webhook-id")
    timestamp_header = headers.get("webhook-timestamp")
    signature_header = headers.get("webhook-signature")
    if not webhook_id or not timestamp_header or not signature_header:
        raise InvalidWebhookSignatureException("Missing webhook headers")

    try:
        timestamp = int(timestamp_header)
    except ValueError as e:
        raise InvalidWebhookSignatureException("Invalid webhook timestamp") from e

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance_seconds:
        raise InvalidWebhookSignatureException("Webhook timestamp outside tolerance")

    expected = sign_webhook(secret, webhook_id, timestamp, body)
    for candidate in signature_header.split(" "):
        if hmac.compare_digest(candidate.strip(), expected):
            return
    raise InvalidWebhookSignatureException("Signature mismatch")
