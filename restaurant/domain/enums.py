from enum import Enum


class OrderStatus(str, Enum):
    """Wire-level status vocabulary. Values must not change."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# An order may only be removed (hard or soft) while it is in one of these
DELETABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED, OrderStatus.DELIVERED})


class Role(str, Enum):
    ADMIN = "ADMIN"
    KITCHEN_STAFF = "KITCHEN_STAFF"
    DELIVERY_STAFF = "DELIVERY_STAFF"
    CUSTOMER_SUPPORT = "CUSTOMER_SUPPORT"
    CUSTOMER = "CUSTOMER"


class EventKind(str, Enum):
    CONFIRMED = "confirmed"
    ADMIN_ALERT = "admin_alert"
    STATUS_CHANGED = "status_changed"
