from datetime import timedelta

import pytest

from restaurant.application.order_state_machine import TRANSITIONS, can_transition
from restaurant.core.errors import Conflict, InvalidRequest
from restaurant.domain.caller import Caller
from restaurant.domain.enums import OrderStatus, Role
from restaurant.domain.models import Order

KITCHEN_A = Caller(10, Role.KITCHEN_STAFF)
DRIVER = Caller(30, Role.DELIVERY_STAFF)
SUPPORT = Caller(40, Role.CUSTOMER_SUPPORT)
CUSTOMER = Caller(1, Role.CUSTOMER)


def make_order(status: OrderStatus, **fields) -> Order:
    return Order(id=7, status=status.value, user_id=1, kitchen_staff_id=None, delivery_staff_id=None, **fields)


def test_terminal_states_have_no_exits():
    assert TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
    assert TRANSITIONS[OrderStatus.CANCELLED] == frozenset()


@pytest.mark.parametrize("current,target", [
    (OrderStatus.READY, OrderStatus.PREPARING),
    (OrderStatus.PENDING, OrderStatus.READY),
    (OrderStatus.PREPARING, OrderStatus.DELIVERED),
    (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    (OrderStatus.CANCELLED, OrderStatus.PENDING),
])
def test_illegal_edges_conflict(state_machine, current, target):
    assert not can_transition(current, target)
    with pytest.raises(Conflict) as err:
        state_machine.plan(make_order(current), target, actor=Caller(99, Role.ADMIN), estimated_time=5)
    assert err.value.current == current.value
    assert err.value.requested == target.value


def test_start_preparing_claims_and_schedules(state_machine, clock):
    transition = state_machine.plan(make_order(OrderStatus.PENDING), OrderStatus.PREPARING, actor=KITCHEN_A, estimated_time=20)

    assert transition.patch == {
        "status": "preparing",
        "estimated_ready_at": clock() + timedelta(minutes=20),
        "kitchen_staff_id": KITCHEN_A.user_id,
    }
    assert transition.guards == {"status": "pending", "kitchen_staff_id": None}


@pytest.mark.parametrize("estimated_time", [None, 0, -5])
def test_start_preparing_needs_estimate(state_machine, estimated_time):
    with pytest.raises(InvalidRequest):
        state_machine.plan(make_order(OrderStatus.PENDING), OrderStatus.PREPARING, actor=KITCHEN_A, estimated_time=estimated_time)


def test_ready_keeps_kitchen_claim(state_machine):
    order = make_order(OrderStatus.PREPARING)
    order.kitchen_staff_id = KITCHEN_A.user_id

    transition = state_machine.plan(order, OrderStatus.READY, actor=KITCHEN_A)

    assert transition.patch == {"status": "ready"}
    assert transition.guards == {"status": "preparing"}


def test_pickup_claims_delivery_once(state_machine):
    transition = state_machine.plan(make_order(OrderStatus.READY), OrderStatus.OUT_FOR_DELIVERY, actor=DRIVER)
    assert transition.patch["delivery_staff_id"] == DRIVER.user_id

    already_claimed = make_order(OrderStatus.READY)
    already_claimed.delivery_staff_id = 31
    transition = state_machine.plan(already_claimed, OrderStatus.OUT_FOR_DELIVERY, actor=DRIVER)
    assert "delivery_staff_id" not in transition.patch


def test_customer_cancel_only_while_pending(state_machine):
    state_machine.plan(make_order(OrderStatus.PENDING), OrderStatus.CANCELLED, actor=CUSTOMER, customer_initiated=True)

    with pytest.raises(Conflict):
        state_machine.plan(make_order(OrderStatus.PREPARING), OrderStatus.CANCELLED, actor=CUSTOMER, customer_initiated=True)


@pytest.mark.parametrize("current", [
    OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY,
])
def test_support_cancels_any_open_order(state_machine, current):
    transition = state_machine.plan(make_order(current), OrderStatus.CANCELLED, actor=SUPPORT)
    assert transition.patch == {"status": "cancelled"}


def test_system_only_promotes_preparing_to_ready(state_machine):
    transition = state_machine.plan(make_order(OrderStatus.PREPARING), OrderStatus.READY)
    assert transition.patch == {"status": "ready"}

    with pytest.raises(Conflict):
        state_machine.plan(make_order(OrderStatus.PENDING), OrderStatus.CANCELLED)
