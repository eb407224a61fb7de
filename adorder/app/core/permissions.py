"""
Capability model.

Endpoints ask for a capability, never for a tier directly; the mapping below is
the single place that decides which tier may do what.
"""

import enum
from typing import Dict, FrozenSet, Optional, Union

from adorder.app.models.enums import UserTier


class Capability(str, enum.Enum):
    """Administrative capabilities."""
    manage_users = "manage_users"
    adjust_balance = "adjust_balance"
    process_cancellations = "process_cancellations"
    view_all_requests = "view_all_requests"
    reply_as_admin = "reply_as_admin"
    view_audit_log = "view_audit_log"


_ADMIN_CAPABILITIES = frozenset(Capability)

TIER_CAPABILITIES: Dict[UserTier, FrozenSet[Capability]] = {
    UserTier.basic: frozenset(),
    UserTier.silver: frozenset(),
    UserTier.gold: frozenset(),
    UserTier.vip: frozenset(),
    UserTier.admin: _ADMIN_CAPABILITIES,
}


def parse_tier(value: Union[str, UserTier, None]) -> Optional[UserTier]:
    """Return the tier for ``value`` or None when it is not a known tier."""
    if isinstance(value, UserTier):
        return value
    try:
        return UserTier(value)
    except ValueError:
        return None


def has_capability(tier: Union[str, UserTier, None], capability: Capability) -> bool:
    """
    Check whether a tier holds a capability.

    Unknown or missing tiers hold nothing.
    """
    resolved = parse_tier(tier)
    if resolved is None:
        return False
    return capability in TIER_CAPABILITIES.get(resolved, frozenset())


def is_admin(current_user: dict) -> bool:
    return parse_tier(current_user.get("tier")) == UserTier.admin
