"""
Order lifecycle.

    pending -> preparing -> ready -> out_for_delivery -> delivered
       |           |          |            |
       +-----------+----------+------------+--> cancelled

`delivered` and `cancelled` are terminal. Staff (support, admin) may cancel
from any non-terminal status; a customer may only cancel while `pending`.

The machine only *plans* a transition: it validates the edge and computes the
column patch plus the guards the repository must check when writing. It never
touches the store itself.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet, Optional

from restaurant.core.errors import Conflict, InvalidRequest
from restaurant.domain.caller import Caller
from restaurant.domain.enums import TERMINAL_STATUSES, OrderStatus
from restaurant.domain.models import Order
from restaurant.infrastructure.database import utcnow

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CUSTOMER_CANCELLABLE_FROM = frozenset({OrderStatus.PENDING})

# The only edge the system itself (no caller) ever drives
SYSTEM_TRANSITIONS = frozenset({(OrderStatus.PREPARING, OrderStatus.READY)})

# target status -> claim column auto-assigned to the caller when still empty
CLAIMS = {
    OrderStatus.PREPARING: "kitchen_staff_id",
    OrderStatus.OUT_FOR_DELIVERY: "delivery_staff_id",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


@dataclass
class Transition:
    order_id: int
    current: OrderStatus
    target: OrderStatus
    patch: Dict[str, Any] = field(default_factory=dict)
    guards: Dict[str, Any] = field(default_factory=dict)


class OrderStateMachine:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def plan(
        self,
        order: Order,
        target: OrderStatus,
        actor: Optional[Caller] = None,
        estimated_time: Optional[int] = None,
        customer_initiated: bool = False,
    ) -> Transition:
        current = OrderStatus(order.status)

        if current in TERMINAL_STATUSES:
            raise Conflict(
                f"Order #{order.id} is already '{current.value}'",
                current=current.value,
                requested=target.value,
            )
        if not can_transition(current, target):
            raise Conflict(
                f"Cannot move order #{order.id} from '{current.value}' to '{target.value}'",
                current=current.value,
                requested=target.value,
            )
        if customer_initiated and target == OrderStatus.CANCELLED and current not in CUSTOMER_CANCELLABLE_FROM:
            raise Conflict(
                "Only pending orders can be cancelled",
                current=current.value,
                requested=target.value,
            )
        if actor is None and (current, target) not in SYSTEM_TRANSITIONS:
            raise Conflict(
                f"System cannot move order #{order.id} from '{current.value}' to '{target.value}'",
                current=current.value,
                requested=target.value,
            )

        transition = Transition(
            order_id=order.id,
            current=current,
            target=target,
            patch={"status": target.value},
            guards={"status": current.value},
        )

        if target == OrderStatus.PREPARING:
            if not estimated_time or estimated_time <= 0:
                raise InvalidRequest("estimatedTime (minutes) is required to start preparing")
            transition.patch["estimated_ready_at"] = self.clock() + timedelta(minutes=estimated_time)

        column = CLAIMS.get(target)
        if column and actor is not None and getattr(order, column) is None:
            transition.patch[column] = actor.user_id
            # claim only lands if nobody got there first
            transition.guards[column] = None

        return transition
