"""Tests for role and tier access checks."""

import itertools

import pytest

from liar_game.exceptions import AuthenticationRequiredException, PermissionDeniedException
from liar_game.models.user import Role, Tier
from liar_game.schemas.auth import GUEST_PRINCIPAL, Principal
from liar_game.utils.access_control import (
    ADMIN_ONLY,
    AUTHENTICATED,
    MEMBER_ONLY,
    PUBLIC,
    AccessPolicy,
    enforce_policy,
    has_required_tier,
    tier_rank,
)


def _principal(tier=Tier.MEMBER, role=Role.USER) -> Principal:
    return Principal(id="7", tier=tier, role=role, email="p@example.com")


class TestTierHierarchy:
    def test_rank_order(self):
        assert tier_rank(Tier.GUEST) < tier_rank(Tier.MEMBER) < tier_rank(Tier.PREMIUM)

    @pytest.mark.parametrize("tier", list(Tier))
    def test_reflexive(self, tier):
        assert has_required_tier(tier, tier)

    @pytest.mark.parametrize("low,high,required", [
        combo for combo in itertools.product(list(Tier), repeat=3)
        if tier_rank(combo[0]) <= tier_rank(combo[1])
    ])
    def test_monotonic(self, low, high, required):
        if has_required_tier(low, required):
            assert has_required_tier(high, required)

    def test_premium_satisfies_member(self):
        assert has_required_tier(Tier.PREMIUM, Tier.MEMBER)
        assert not has_required_tier(Tier.GUEST, Tier.MEMBER)


class TestEnforcePolicy:
    def test_public_allows_guest(self):
        assert enforce_policy(GUEST_PRINCIPAL, PUBLIC) is GUEST_PRINCIPAL

    def test_missing_principal_is_authentication_error(self):
        with pytest.raises(AuthenticationRequiredException):
            enforce_policy(None, PUBLIC)

    def test_guest_on_authenticated_policy(self):
        with pytest.raises(AuthenticationRequiredException):
            enforce_policy(GUEST_PRINCIPAL, AUTHENTICATED)

    def test_guest_on_member_policy_names_tiers(self):
        with pytest.raises(PermissionDeniedException) as exc_info:
            enforce_policy(GUEST_PRINCIPAL, MEMBER_ONLY)
        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"required_tier": "member", "actual": "guest"}

    def test_member_passes_member_policy(self):
        principal = _principal(Tier.MEMBER)
        assert enforce_policy(principal, MEMBER_ONLY) is principal

    def test_user_role_denied_admin_policy(self):
        with pytest.raises(PermissionDeniedException) as exc_info:
            enforce_policy(_principal(Tier.PREMIUM, Role.USER), ADMIN_ONLY)
        assert exc_info.value.details == {"required_roles": ["admin"], "actual": "user"}

    def test_admin_passes_admin_policy(self):
        principal = _principal(Tier.GUEST, Role.ADMIN)
        assert enforce_policy(principal, ADMIN_ONLY) is principal

    def test_role_and_tier_checks_are_independent(self):
        policy = AccessPolicy.build(roles=[Role.ADMIN], min_tier=Tier.PREMIUM)
        with pytest.raises(PermissionDeniedException) as role_failure:
            enforce_policy(_principal(Tier.PREMIUM, Role.USER), policy)
        assert "required_roles" in role_failure.value.details

        with pytest.raises(PermissionDeniedException) as tier_failure:
            enforce_policy(_principal(Tier.MEMBER, Role.ADMIN), policy)
        assert tier_failure.value.details["required_tier"] == "premium"

    def test_empty_policy_allows_everyone(self):
        for tier, role in itertools.product(Tier, Role):
            principal = _principal(tier, role)
            assert enforce_policy(principal, AccessPolicy()) is principal
