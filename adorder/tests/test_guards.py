"""
Capability and ownership guard tests.
"""

import pytest

from adorder.app.core.exceptions import InsufficientPermissionsError
from adorder.app.core.guards import OwnershipGuard
from adorder.app.core.permissions import Capability, has_capability, is_admin, parse_tier
from adorder.app.models.enums import UserTier


@pytest.mark.parametrize("tier", ["basic", "silver", "gold", "vip"])
@pytest.mark.parametrize("capability", list(Capability))
def test_customer_tiers_hold_no_capabilities(tier, capability):
    assert not has_capability(tier, capability)


@pytest.mark.parametrize("capability", list(Capability))
def test_admin_holds_every_capability(capability):
    assert has_capability(UserTier.admin, capability)
    assert has_capability("admin", capability)


@pytest.mark.parametrize("value", [None, "", "ADMIN", "superuser"])
def test_unknown_tier(value):
    assert parse_tier(value) is None
    assert not has_capability(value, Capability.manage_users)
    assert not is_admin({"tier": value})


def test_ownership_guard():
    guard = OwnershipGuard()
    owner = {"user_id": 1, "tier": "basic"}
    stranger = {"user_id": 2, "tier": "gold"}
    admin = {"user_id": 3, "tier": "admin"}

    guard.enforce(1, owner, "order")

    with pytest.raises(InsufficientPermissionsError):
        guard.enforce(1, stranger, "order")

    with pytest.raises(InsufficientPermissionsError):
        guard.enforce(1, admin, "order")

    guard.enforce(1, admin, "order item", allow_admin=True)
    assert not guard.check(None, owner)
