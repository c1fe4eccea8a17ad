"""
Authorization gate consulted before every state-changing operation.

Checks run in a fixed order and stop at the first denial:

1. coarse role check against the permission store (`isAllowed`)
2. per-role whitelist of target statuses for order status updates
3. staff exclusivity: once a phase is claimed, only the claimant may move it on
4. ownership for customer-initiated actions (cancel, hide, review)

Every denial carries a DenialReason so the log can tell them apart, even
though callers all receive the same Forbidden kind.
"""
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from restaurant.application.permission_service import PermissionService
from restaurant.core.errors import DenialReason, Forbidden
from restaurant.domain.caller import Caller
from restaurant.domain.enums import OrderStatus, Role
from restaurant.domain.models import Order

logger = logging.getLogger(__name__)

# Target statuses each staff role may request. ADMIN is exempt; any role not
# listed may request nothing.
ROLE_TARGET_STATUSES: Dict[Role, FrozenSet[OrderStatus]] = {
    Role.KITCHEN_STAFF: frozenset({OrderStatus.PREPARING, OrderStatus.READY}),
    Role.DELIVERY_STAFF: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}),
    Role.CUSTOMER_SUPPORT: frozenset({OrderStatus.CANCELLED}),
}

# role -> (status during which the claim is exclusive, claim column)
EXCLUSIVE_PHASES: Dict[Role, Tuple[OrderStatus, str]] = {
    Role.KITCHEN_STAFF: (OrderStatus.PREPARING, "kitchen_staff_id"),
    Role.DELIVERY_STAFF: (OrderStatus.OUT_FOR_DELIVERY, "delivery_staff_id"),
}

HANDLED_BY_ANOTHER = "handled by another staff member"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""


ALLOW = Decision(True)


def _deny(caller: Caller, reason: DenialReason, message: str) -> Decision:
    logger.warning(f"⛔ Denied user #{caller.user_id} ({caller.role.value}): {reason.value} - {message}")
    return Decision(False, reason, message)


class AuthorizationGate:
    def __init__(self, permissions: PermissionService):
        self.permissions = permissions

    async def check(self, caller: Caller, resource: str, action: str) -> Decision:
        if await self.permissions.is_allowed(caller.role.value, resource, action):
            return ALLOW
        return _deny(caller, DenialReason.ROLE, f"You don't have permission to {action} {resource}")

    def check_status_change(self, caller: Caller, order: Order, target: OrderStatus) -> Decision:
        if not caller.is_admin:
            allowed_targets = ROLE_TARGET_STATUSES.get(caller.role, frozenset())
            if target not in allowed_targets:
                return _deny(
                    caller,
                    DenialReason.STATUS_WHITELIST,
                    f"{caller.role.value} may not set status to '{target.value}'",
                )

        phase = EXCLUSIVE_PHASES.get(caller.role)
        if phase:
            status, column = phase
            claimant = getattr(order, column)
            if order.status == status.value and claimant is not None and claimant != caller.user_id:
                return _deny(caller, DenialReason.EXCLUSIVITY, f"Order #{order.id} is {HANDLED_BY_ANOTHER}")

        return ALLOW

    def check_ownership(self, caller: Caller, order: Order) -> Decision:
        if order.user_id is not None and order.user_id == caller.user_id:
            return ALLOW
        return _deny(caller, DenialReason.OWNERSHIP, f"Order #{order.id} does not belong to you")

    def check_staff(self, caller: Caller) -> Decision:
        if caller.is_staff:
            return ALLOW
        return _deny(caller, DenialReason.ROLE, "Only staff can moderate reviews")

    # --- Raising helpers ---

    @staticmethod
    def enforce(decision: Decision) -> None:
        if not decision.allowed:
            raise Forbidden(decision.reason, decision.message)

    async def require(self, caller: Caller, resource: str, action: str) -> None:
        self.enforce(await self.check(caller, resource, action))

    def require_status_change(self, caller: Caller, order: Order, target: OrderStatus) -> None:
        self.enforce(self.check_status_change(caller, order, target))

    def require_ownership(self, caller: Caller, order: Order) -> None:
        self.enforce(self.check_ownership(caller, order))

    def require_staff(self, caller: Caller) -> None:
        self.enforce(self.check_staff(caller))
