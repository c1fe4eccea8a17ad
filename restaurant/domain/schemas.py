"""
Pydantic schemas for the HTTP surface and for notification snapshots.

Wire names are camelCase (estimatedTime, orderId, menuItemIds, ...); Python
attributes stay snake_case. Responses are serialized by alias.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from restaurant.domain.enums import OrderStatus, Role


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Orders ---

class OrderItem(CamelModel):
    menu_item_id: int
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)


class CustomerInfo(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None


class OrderCreate(CamelModel):
    items: List[OrderItem] = Field(..., min_length=1)
    customer: CustomerInfo
    total: float = Field(..., gt=0)


class StatusUpdate(CamelModel):
    status: OrderStatus
    estimated_time: Optional[int] = Field(None, gt=0, description="Minutes until ready, required for 'preparing'")


class ReviewOut(CamelModel):
    id: int
    order_id: int
    user_id: int
    rating: int
    comment: Optional[str] = None
    is_accepted: bool
    tagged_menu_item_ids: List[int] = []
    created_at: datetime


class OrderOut(CamelModel):
    id: int
    status: OrderStatus
    items: List[OrderItem]
    total: float
    customer: CustomerInfo
    user_id: Optional[int] = None
    kitchen_staff_id: Optional[int] = None
    delivery_staff_id: Optional[int] = None
    estimated_ready_at: Optional[datetime] = None
    is_deleted_by_customer: bool = False
    created_at: datetime
    review: Optional[ReviewOut] = None

    @field_validator("total", mode="before")
    @classmethod
    def _decimal_to_float(cls, value):
        return float(value) if isinstance(value, Decimal) else value


class OrderPage(CamelModel):
    data: List[OrderOut]
    total: int
    page: int
    total_pages: int


class OrderPlaced(CamelModel):
    message: str
    order_id: int


def order_snapshot(order) -> dict:
    """Full JSON-safe view of an order, handed to the notifier."""
    return OrderOut.model_validate(order).model_dump(mode="json", by_alias=True)


# --- Reviews ---

class ReviewCreate(CamelModel):
    order_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ReviewAccept(CamelModel):
    menu_item_ids: List[int] = []


# --- Permissions ---

class PermissionIn(CamelModel):
    role: Role
    resource: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    allowed: bool


class PermissionOut(CamelModel):
    id: int
    role: str
    resource: str
    action: str
    allowed: bool


class PermissionsUpdate(CamelModel):
    permissions: List[PermissionIn] = Field(..., min_length=1)


class OrderMessage(CamelModel):
    message: str
    order: OrderOut


class Message(BaseModel):
    message: str
