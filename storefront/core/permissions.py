# storefront/core/permissions.py
"""
Closed role enumeration and the capabilities each role holds.

Routers and the order state machine ask "does this role hold capability X"
instead of comparing role strings.
"""

from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    RIDER = "rider"


class Capability(str, Enum):
    # customer
    MANAGE_CART = "manage_cart"
    CHECKOUT = "checkout"
    VIEW_OWN_ORDERS = "view_own_orders"
    PAY_OWN_ORDER = "pay_own_order"
    CANCEL_OWN_ORDER = "cancel_own_order"

    # admin
    VIEW_ALL_ORDERS = "view_all_orders"
    PROCESS_ORDER = "process_order"
    DISPATCH_ORDER = "dispatch_order"
    CANCEL_ANY_ORDER = "cancel_any_order"

    # rider
    VIEW_ASSIGNED_ORDERS = "view_assigned_orders"
    RECORD_DELIVERY = "record_delivery"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.CUSTOMER: frozenset(
        {
            Capability.MANAGE_CART,
            Capability.CHECKOUT,
            Capability.VIEW_OWN_ORDERS,
            Capability.PAY_OWN_ORDER,
            Capability.CANCEL_OWN_ORDER,
        }
    ),
    Role.ADMIN: frozenset(
        {
            Capability.VIEW_ALL_ORDERS,
            Capability.PROCESS_ORDER,
            Capability.DISPATCH_ORDER,
            Capability.CANCEL_ANY_ORDER,
        }
    ),
    Role.RIDER: frozenset(
        {
            Capability.VIEW_ASSIGNED_ORDERS,
            Capability.RECORD_DELIVERY,
        }
    ),
}

# Capabilities that only apply to orders the caller owns (customer_id)
OWNER_SCOPED: frozenset[Capability] = frozenset(
    {Capability.PAY_OWN_ORDER, Capability.CANCEL_OWN_ORDER}
)

# Capabilities that only apply to orders assigned to the caller (rider_id)
ASSIGNEE_SCOPED: frozenset[Capability] = frozenset({Capability.RECORD_DELIVERY})


def parse_role(raw: str) -> Role | None:
    """Map a stored role string to Role, or None if it is not one we know."""
    try:
        return Role(raw)
    except ValueError:
        return None


def has_capability(role: str | Role, capability: Capability) -> bool:
    parsed = role if isinstance(role, Role) else parse_role(role)
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES[parsed]
