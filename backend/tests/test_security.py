"""Tests for token verification, claim mapping and hook signatures."""

import time
from datetime import timedelta

import pytest

from liar_game.exceptions import AuthenticationRequiredException, InvalidWebhookSignatureException
from liar_game.models.user import Role, Tier
from liar_game.schemas.auth import ExternalClaims
from liar_game.utils.security import (
    create_access_token,
    extract_bearer_token,
    principal_from_claims,
    sign_webhook,
    verify_token,
    verify_webhook_signature,
)

HOOK_SECRET = "whsec_dGVzdC1ob29rLXNlY3JldC1rZXktMTIzNDU2"


class TestClaimsMapping:
    def test_backend_claims_take_precedence(self):
        claims = ExternalClaims.model_validate({
            "sub": "ext-abc",
            "user_id": 42,
            "user_tier": "premium",
            "user_role": "admin",
            "role": "authenticated",
            "app_metadata": {"role": "user"},
            "email": "alice@example.com",
        })
        principal = principal_from_claims(claims)
        assert principal.id == "42"
        assert principal.user_id == 42
        assert principal.tier == Tier.PREMIUM
        assert principal.role == Role.ADMIN

    def test_fallbacks_without_backend_claims(self):
        claims = ExternalClaims.model_validate({
            "sub": "ext-abc",
            "role": "authenticated",
            "email": "bob@example.com",
        })
        principal = principal_from_claims(claims)
        assert principal.id == "ext-abc"
        assert principal.user_id is None
        assert principal.tier == Tier.MEMBER
        assert principal.role == Role.USER
        assert principal.username == "bob"

    def test_numeric_subject_is_not_a_local_id(self):
        # Provider subject sayisal olsa bile yerel id sadece user_id claim'inden gelir
        principal = principal_from_claims(ExternalClaims.model_validate({"sub": "17", "email": "c@example.com"}))
        assert principal.id == "17"
        assert principal.user_id is None

    def test_app_metadata_role_beats_top_level_role(self):
        claims = ExternalClaims.model_validate({
            "sub": "x",
            "role": "user",
            "app_metadata": {"role": "admin"},
        })
        assert principal_from_claims(claims).role == Role.ADMIN

    def test_known_top_level_role_used(self):
        claims = ExternalClaims.model_validate({"sub": "x", "role": "admin"})
        assert principal_from_claims(claims).role == Role.ADMIN

    def test_username_precedence(self):
        claims = ExternalClaims.model_validate({
            "sub": "x",
            "email": "local@example.com",
            "username": "top",
            "user_metadata": {"username": "meta"},
        })
        assert principal_from_claims(claims).username == "meta"

        claims = ExternalClaims.model_validate({"sub": "x", "email": "local@example.com", "username": "top"})
        assert principal_from_claims(claims).username == "top"


class TestVerifyToken:
    def test_valid_token(self):
        token = create_access_token({"sub": "ext-1", "user_id": 5, "user_tier": "member"})
        principal = verify_token(token)
        assert principal.id == "5"
        assert not principal.is_guest

    def test_expired_token(self):
        token = create_access_token({"sub": "ext-1"}, expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthenticationRequiredException):
            verify_token(token)

    def test_wrong_audience(self):
        token = create_access_token({"sub": "ext-1", "aud": "someone-else"})
        with pytest.raises(AuthenticationRequiredException):
            verify_token(token)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationRequiredException):
            verify_token("not-a-jwt")

    def test_missing_subject(self):
        token = create_access_token({"email": "nosub@example.com"})
        with pytest.raises(AuthenticationRequiredException):
            verify_token(token)

    @pytest.mark.parametrize("header,expected", [
        (None, None),
        ("", None),
        ("Basic abc", None),
        ("Bearer ", None),
        ("Bearer abc.def", "abc.def"),
        ("bearer abc", "abc"),
    ])
    def test_extract_bearer_token(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestWebhookSignature:
    def _headers(self, body: bytes, timestamp: int | None = None, secret: str = HOOK_SECRET) -> dict[str, str]:
        timestamp = timestamp or int(time.time())
        return {
            "webhook-id": "msg_1",
            "webhook-timestamp": str(timestamp),
            "webhook-signature": sign_webhook(secret, "msg_1", timestamp, body),
        }

    def test_valid_signature(self):
        body = b'{"user_id": "abc"}'
        verify_webhook_signature(HOOK_SECRET, self._headers(body), body)

    def test_multiple_signatures_one_valid(self):
        body = b"{}"
        headers = self._headers(body)
        headers["webhook-signature"] = "v1,bogus " + headers["webhook-signature"]
        verify_webhook_signature(HOOK_SECRET, headers, body)

    def test_tampered_body(self):
        headers = self._headers(b'{"user_id": "abc"}')
        with pytest.raises(InvalidWebhookSignatureException):
            verify_webhook_signature(HOOK_SECRET, headers, b'{"user_id": "evil"}')

    def test_wrong_secret(self):
        body = b"{}"
        headers = self._headers(body, secret="whsec_b3RoZXItc2VjcmV0")
        with pytest.raises(InvalidWebhookSignatureException):
            verify_webhook_signature(HOOK_SECRET, headers, body)

    def test_stale_timestamp(self):
        body = b"{}"
        headers = self._headers(body, timestamp=int(time.time()) - 3600)
        with pytest.raises(InvalidWebhookSignatureException):
            verify_webhook_signature(HOOK_SECRET, headers, body)

    def test_missing_headers(self):
        with pytest.raises(InvalidWebhookSignatureException):
            verify_webhook_signature(HOOK_SECRET, {}, b"{}")
