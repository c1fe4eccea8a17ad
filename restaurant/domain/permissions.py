from restaurant.domain.enums import Role

# --- Resources ---
ORDERS = "orders"
REVIEWS = "reviews"
PERMISSIONS = "permissions"
MENU = "menu"
USERS = "users"
CATEGORIES = "categories"

# --- Actions ---
VIEW = "view"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
CANCEL = "cancel"  # customer-initiated cancellation of an own order
HIDE = "hide"      # customer-side soft delete


def _grant(role: Role, resource: str, *actions: str) -> list[dict]:
    return [{"role": role.value, "resource": resource, "action": a, "allowed": True} for a in actions]


# Seeded at bootstrap. Anything not listed here is denied.
DEFAULT_PERMISSIONS: list[dict] = [
    # ADMIN - full access
    *_grant(Role.ADMIN, ORDERS, VIEW, CREATE, UPDATE, DELETE, CANCEL, HIDE),
    *_grant(Role.ADMIN, REVIEWS, VIEW, CREATE, UPDATE),
    *_grant(Role.ADMIN, MENU, VIEW, CREATE, UPDATE, DELETE),
    *_grant(Role.ADMIN, USERS, VIEW, CREATE, UPDATE, DELETE),
    *_grant(Role.ADMIN, CATEGORIES, VIEW, CREATE, UPDATE, DELETE),
    *_grant(Role.ADMIN, PERMISSIONS, VIEW, UPDATE),

    # KITCHEN_STAFF - view and move orders through the kitchen
    *_grant(Role.KITCHEN_STAFF, ORDERS, VIEW, UPDATE),
    *_grant(Role.KITCHEN_STAFF, MENU, VIEW),

    # DELIVERY_STAFF - pick up ready orders and deliver them
    *_grant(Role.DELIVERY_STAFF, ORDERS, VIEW, UPDATE),

    # CUSTOMER_SUPPORT - view, cancel via status update. orders/delete stays in the
    # seed table for admins to inspect, but purging also requires ADMIN, so it
    # never lets support remove an order.
    *_grant(Role.CUSTOMER_SUPPORT, ORDERS, VIEW, UPDATE, DELETE),
    *_grant(Role.CUSTOMER_SUPPORT, USERS, VIEW),

    # CUSTOMER - own orders and reviews
    *_grant(Role.CUSTOMER, ORDERS, VIEW, CREATE, CANCEL, HIDE),
    *_grant(Role.CUSTOMER, REVIEWS, CREATE),
    *_grant(Role.CUSTOMER, MENU, VIEW),
]
