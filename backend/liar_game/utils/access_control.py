"""
Role and tier based access control.

Each route carries an explicit ``AccessPolicy``; ``enforce_policy`` evaluates
it against the resolved principal. Role and tier checks are independent and
order-free; a missing principal is an authentication failure, not a
permission failure.
"""
from dataclasses import dataclass, field
from typing import Iterable
from liar_game.exceptions import AuthenticationRequiredException, PermissionDeniedException
from liar_game.models.user import Role, Tier
from liar_game.schemas.auth import Principal
from liar_game.utils.logging_config import access_logger

TIER_HIERARCHY: dict[Tier, int] = {
    Tier.GUEST: 0,
    Tier.MEMBER: 1,
    Tier.PREMIUM: 2,
}


def tier_rank(tier: Tier) -> int:
    return TIER_HIERARCHY[Tier(tier)]


def has_required_tier(tier: Tier, required: Tier) -> bool:
    """
    True if ``tier`` is equal to or above ``required``.

    has_required_tier(Tier.PREMIUM, Tier.MEMBER)  # True
    has_required_tier(Tier.GUEST, Tier.MEMBER)    # False
    """
    return tier_rank(tier) >= tier_rank(required)


@dataclass(frozen=True)
class AccessPolicy:
    """
    Per-route access requirements.

    Attributes:
        roles: kabul edilen roller; bos ise rol kisiti yok
        min_tier: minimum tier; None ise tier kisiti yok
        authenticated: True ise guest principal kabul edilmez
    """
    roles: frozenset[Role] = field(default_factory=frozenset)
    min_tier: Tier | None = None
    authenticated: bool = False

    @classmethod
    def build(
        cls,
        roles: Iterable[Role] = (),
        min_tier: Tier | None = None,
        authenticated: bool = False,
    ) -> "AccessPolicy":
        return cls(roles=frozenset(roles), min_tier=min_tier, authenticated=authenticated)


PUBLIC = AccessPolicy()
AUTHENTICATED = AccessPolicy(authenticated=True)
MEMBER_ONLY = AccessPolicy(min_tier=Tier.MEMBER)
ADMIN_ONLY = AccessPolicy(roles=frozenset({Role.ADMIN}), authenticated=True)


def check_role(principal: Principal, roles: frozenset[Role]) -> None:
    if not roles or principal.role in roles:
        return
    access_logger.warning(
        f"Access denied for {principal.id}: role {principal.role.value} not in "
        f"{sorted(role.value for role in roles)}"
    )
    raise PermissionDeniedException(
        f"Access denied. Required role: {', '.join(sorted(role.value for role in roles))}",
        required_roles=roles,
        actual=principal.role,
    )


def check_tier(principal: Principal, min_tier: Tier | None) -> None:
    if min_tier is None or has_required_tier(principal.tier, min_tier):
        return
    access_logger.warning(
        f"Access denied for {principal.id}: tier {principal.tier.value}, required {min_tier.value}"
    )
    raise PermissionDeniedException(
        f"Access denied. Required minimum tier: {min_tier.value}. Your tier: {principal.tier.value}",
        required_tier=min_tier,
        actual=principal.tier,
    )


def enforce_policy(principal: Principal | None, policy: AccessPolicy) -> Principal:
    """
    Raises:
        AuthenticationRequiredException: principal yoksa (veya policy kimlik istiyor ve guest ise)
        PermissionDeniedException: rol veya tier yetersizse
    """
    if principal is None or (policy.authenticated and principal.is_guest):
        raise AuthenticationRequiredException()

    check_role(principal, policy.roles)
    check_tier(principal, policy.min_tier)

    access_logger.debug(f"Access granted for {principal.id} ({principal.role.value}/{principal.tier.value})")
    return principal
