"""
Security guards for capability-based and ownership-based access control.

Provides dependencies for protecting endpoints.
"""

from fastapi import Depends
from adorder.app.core.dependencies import get_current_user
from adorder.app.core.exceptions import InsufficientPermissionsError
from adorder.app.core.permissions import Capability, has_capability, is_admin


def require_capability(capability: Capability):
    """
    Dependency factory for capability-based access control.

    Usage:
        @router.patch("/admin/cancellation-requests/{request_id}")
        async def process(current_user: dict = Depends(require_capability(Capability.process_cancellations))):
            ...

    Args:
        capability: Capability the caller's tier must hold

    Returns:
        FastAPI dependency function that validates the caller's tier

    Raises:
        InsufficientPermissionsError (403) if the tier lacks the capability
    """
    async def capability_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not has_capability(current_user.get("tier"), capability):
            raise InsufficientPermissionsError()
        return current_user

    return capability_checker


class OwnershipGuard:
    """
    Ownership guard for user-owned resources.

    Usage:
        ownership_guard = OwnershipGuard()

        @router.get("/orders/{order_id}")
        async def get_order(order_id: int, current_user: dict = Depends(get_current_user), ...):
            order = await load(order_id)
            ownership_guard.enforce(order.user_id, current_user, "order")
    """

    def check(self, resource_owner_id: int, current_user: dict, allow_admin: bool = False) -> bool:
        """Return True when the caller owns the resource (or is an allowed admin)."""
        if allow_admin and is_admin(current_user):
            return True
        return resource_owner_id is not None and resource_owner_id == current_user.get("user_id")

    def enforce(
        self,
        resource_owner_id: int,
        current_user: dict,
        resource_name: str = "resource",
        allow_admin: bool = False
    ):
        """
        Enforce ownership validation, raise 403 if access denied.

        The message stays generic so it does not reveal whose resource it is.

        Raises:
            InsufficientPermissionsError if ownership check fails
        """
        if not self.check(resource_owner_id, current_user, allow_admin):
            raise InsufficientPermissionsError(
                f"Access denied. You do not have permission to access this {resource_name}."
            )
