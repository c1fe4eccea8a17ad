import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from restaurant.application.orchestrator import Orchestrator
from restaurant.domain.caller import Caller
from restaurant.domain.enums import OrderStatus
from restaurant.domain.schemas import (
    Message, OrderCreate, OrderMessage, OrderOut, OrderPage, OrderPlaced, StatusUpdate,
)
from restaurant.interfaces.dependencies import get_caller, get_optional_caller, get_orchestrator

router = APIRouter(prefix="/api/orders", tags=["orders"])

SortBy = Literal["date", "total", "status", "id"]
SortOrder = Literal["asc", "desc"]


def _page(orders, total: int, page: int, limit: int) -> OrderPage:
    return OrderPage(
        data=[OrderOut.model_validate(o) for o in orders],
        total=total,
        page=page,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.post("", response_model=OrderPlaced, status_code=201)
async def place_order(
    payload: OrderCreate,
    caller: Optional[Caller] = Depends(get_optional_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.place_order(payload, caller)
    return OrderPlaced(message="Order placed successfully", order_id=order.id)


@router.get("", response_model=OrderPage)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    sort_by: SortBy = Query("date", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    orders, total = await orchestrator.list_orders(
        caller, page=page, limit=limit, status=status, search=search, sort_by=sort_by, sort_order=sort_order
    )
    return _page(orders, total, page, limit)


@router.get("/my-orders", response_model=OrderPage)
async def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: SortBy = Query("date", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    orders, total = await orchestrator.list_my_orders(
        caller, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    return _page(orders, total, page, limit)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    return OrderOut.model_validate(await orchestrator.get_order(caller, order_id))


@router.put("/{order_id}/status", response_model=OrderMessage)
async def update_order_status(
    order_id: int,
    payload: StatusUpdate,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.update_status(caller, order_id, payload.status, payload.estimated_time)
    return OrderMessage(message="Order updated", order=OrderOut.model_validate(order))


@router.put("/{order_id}/cancel", response_model=OrderMessage)
async def cancel_order(
    order_id: int,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.cancel_order(caller, order_id)
    return OrderMessage(message="Order cancelled successfully", order=OrderOut.model_validate(order))


@router.delete("/{order_id}", response_model=Message)
async def delete_order(
    order_id: int,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    # Admins remove the order for good; everyone else only hides their own
    if caller.is_admin:
        await orchestrator.purge_order(caller, order_id)
    else:
        await orchestrator.hide_from_customer(caller, order_id)
    return Message(message="Order deleted successfully")
