# storefront/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_capability
from storefront.core.permissions import Capability
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartSummary,
    CartValidationResult,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)

require_customer = require_capability(Capability.MANAGE_CART)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Get current user's cart summary.

    Auth:
      - Only roles holding MANAGE_CART (customers) can access.
    """
    return service.get_cart(session, current_user.id)


@router.post("/items", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Add a product variant to the current user's cart.

    Returns the updated cart summary.
    """
    return service.add_item(session, current_user.id, payload)


@router.patch("/items/{item_id}", response_model=CartSummary)
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Replace the quantity of a cart line (0 or less removes it).
    """
    return service.update_quantity(session, current_user.id, item_id, payload.quantity)


@router.delete("/items/{item_id}", response_model=CartSummary)
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    return service.remove_item(session, current_user.id, item_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    return service.clear_cart(session, current_user.id)


@router.post("/validate", response_model=CartValidationResult)
def validate_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Re-check every line against the live catalog.

    Removed products, stock shortfalls and price changes are corrected in
    the stored cart and reported as issues.
    """
    return service.validate(session, current_user.id)
