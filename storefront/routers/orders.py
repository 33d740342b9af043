# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from storefront.core.auth import require_auth, require_capability
from storefront.core.permissions import Capability
from storefront.database import get_session
from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.inventory_repo import InventoryRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import (
    CheckoutRequest,
    OrderRead,
    OrderTrackingRead,
    OrderWithItemsRead,
    PaymentConfirmation,
)
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.inventory_service import InventoryLedger
from storefront.services.order_service import OrderService
from storefront.services.user_service import UserService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
product_repo = ProductRepository()
user_repo = UserRepository()
inventory = InventoryLedger(InventoryRepository())

service = OrderService(order_repo, user_repo, UserService(user_repo), inventory)
checkout_service = CheckoutService(
    order_repo,
    cart_repo,
    product_repo,
    CartService(cart_repo, product_repo),
    inventory,
)


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=201,
)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.CHECKOUT)),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    """
    Create an order from explicit items, or from the cart when `items` is
    omitted.

    Sending the same Idempotency-Key again returns the original order
    instead of creating a second one.
    """
    return checkout_service.checkout(session, current_user, payload, idempotency_key)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.VIEW_OWN_ORDERS)),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated customer's orders (without items), newest first.
    """
    return service.list_for_customer(session, current_user, status, skip, limit)


# Public, declared before /{order_id} so the literal segment wins.
@router.get(
    "/track/{order_number}",
    response_model=OrderTrackingRead,
)
def track_order(
    order_number: str,
    session: Session = Depends(get_session),
):
    """
    Public order tracking by order number. No authentication.
    """
    return service.track(session, order_number)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order with items.

    Visible to the customer who placed it, admins and the assigned rider.
    """
    return service.get_order(session, current_user, order_id)


@router.post(
    "/{order_id}/pay",
    response_model=OrderWithItemsRead,
)
def pay_order(
    order_id: uuid.UUID,
    payload: PaymentConfirmation | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.PAY_OWN_ORDER)),
):
    """
    Simulated payment: pending -> paid.
    """
    transaction_id = payload.transaction_id if payload else None
    return service.mark_paid(session, current_user, order_id, transaction_id)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderWithItemsRead,
)
def cancel_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.CANCEL_OWN_ORDER)),
):
    """
    Cancel an order that is still pending or paid. Stock is restored.
    """
    return service.cancel(session, current_user, order_id)
