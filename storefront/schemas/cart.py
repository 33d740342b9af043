# storefront/schemas/cart.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel, Field

CartIssueType = Literal["removed", "stock", "price"]


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    product_id: uuid.UUID
    variant_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.

    quantity <= 0 removes the line.
    """

    quantity: int


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including line_total.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: uuid.UUID
    product_name: str | None = None
    color: str | None = None
    size: str | None = None
    quantity: int
    snapshot_price: float
    line_total: float
    added_at: datetime


class CartSummary(SQLModel):
    """
    Full cart response model with derived totals.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    items: list[CartItemRead]
    total_items: int
    total_price: float
    updated_at: datetime


class CartIssue(SQLModel):
    """
    One problem found while validating a cart line against the catalog.
    """

    item_id: uuid.UUID
    type: CartIssueType
    message: str
    available_stock: int | None = None
    old_price: float | None = None
    new_price: float | None = None


class CartValidationResult(SQLModel):
    valid: bool
    issues: list[CartIssue]
    cart: CartSummary
