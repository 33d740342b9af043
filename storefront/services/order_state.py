# storefront/services/order_state.py
"""
Order status state machine.

Each legal edge names the capability a caller must hold to take it. The
table is the single source of truth for both "is this move legal" and "who
may make it".
"""

import time
import uuid
from datetime import datetime
from typing import Any

from storefront.core.errors import InvalidTransition, Unauthorized
from storefront.core.permissions import (
    ASSIGNEE_SCOPED,
    OWNER_SCOPED,
    Capability,
    has_capability,
)
from storefront.models.order import Order, OrderStatus
from storefront.models.user import User

S = OrderStatus

TRANSITIONS: dict[OrderStatus, dict[OrderStatus, Capability]] = {
    S.PENDING: {
        S.PAID: Capability.PAY_OWN_ORDER,
        S.CANCELLED: Capability.CANCEL_OWN_ORDER,
    },
    S.PAID: {
        S.PROCESSING: Capability.PROCESS_ORDER,
        S.SHIPPED: Capability.DISPATCH_ORDER,
        S.CANCELLED: Capability.CANCEL_OWN_ORDER,
    },
    S.PROCESSING: {
        S.SHIPPED: Capability.DISPATCH_ORDER,
        S.CANCELLED: Capability.CANCEL_ANY_ORDER,
    },
    S.SHIPPED: {
        S.DELIVERED: Capability.RECORD_DELIVERY,
        S.UNDELIVERED: Capability.RECORD_DELIVERY,
    },
    S.UNDELIVERED: {
        S.SHIPPED: Capability.DISPATCH_ORDER,
    },
    S.DELIVERED: {},
    S.CANCELLED: {},
    S.REFUNDED: {},
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    status for status, edges in TRANSITIONS.items() if not edges
)


def allowed_targets(current: OrderStatus) -> frozenset[OrderStatus]:
    return frozenset(TRANSITIONS[current])


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: OrderStatus, target: OrderStatus) -> Capability:
    """
    Return the capability required for current -> target.

    Raises:
        InvalidTransition: no such edge
    """
    try:
        return TRANSITIONS[current][target]
    except KeyError:
        raise InvalidTransition(current.value, target.value) from None


def authorize_transition(actor: User, order: Order, target: OrderStatus) -> None:
    """
    Check that `actor` may move `order` to `target`.

    Raises:
        InvalidTransition: the move is not in the table
        Unauthorized: the actor lacks the capability, does not own the
            order (customer edges) or is not its rider (delivery edges)
    """
    current = OrderStatus(order.status)
    capability = ensure_transition(current, target)

    if not has_capability(actor.role, capability):
        raise Unauthorized(
            f"Role '{actor.role}' may not move an order from {current.value} to {target.value}",
            capability=capability.value,
        )

    if capability in OWNER_SCOPED and order.customer_id != actor.id:
        raise Unauthorized("Access denied", order_id=order.id)

    if capability in ASSIGNEE_SCOPED and order.rider_id != actor.id:
        raise Unauthorized("Order is not assigned to you", order_id=order.id)


def transition_changes(
    target: OrderStatus,
    now: datetime,
    *,
    rider_id: uuid.UUID | None = None,
    transaction_id: str | None = None,
    reason: str | None = None,
    default_reason: str = "Customer not available",
) -> dict[str, Any]:
    """
    Column values written together with the new status.

      paid        -> paid_at, transaction_id (MOCK-<epoch ms> if not given)
      shipped     -> shipped_at; with a rider also rider_id and assigned_at
      delivered   -> delivered_at
      undelivered -> delivered_at, undelivered_reason
    """
    changes: dict[str, Any] = {"status": target.value, "updated_at": now}

    if target == S.PAID:
        changes["paid_at"] = now
        changes["transaction_id"] = transaction_id or f"MOCK-{int(time.time() * 1000)}"
    elif target == S.SHIPPED:
        changes["shipped_at"] = now
        if rider_id is not None:
            changes["rider_id"] = rider_id
            changes["assigned_at"] = now
    elif target == S.DELIVERED:
        changes["delivered_at"] = now
    elif target == S.UNDELIVERED:
        changes["delivered_at"] = now
        changes["undelivered_reason"] = (reason or "").strip() or default_reason

    return changes
