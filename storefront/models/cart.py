# storefront/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    Shopping cart, one per customer.

    Created lazily on first access and never deleted, only emptied.
    Totals are not stored; they are computed from the items on every read.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        unique=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    Line inside a cart.

    One cart cannot have 2 rows for the same (product, variant): adding the
    same pair again merges quantities into the existing row.

    color / size / snapshot_price are copied from the variant when the line
    is created; they are not live references.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "variant_id", name="uq_cart_items_line"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    variant_id: uuid.UUID = Field(
        foreign_key="product_variants.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    snapshot_price: float = Field(
        description="Price when added to cart (refreshed by validation)",
    )

    product_name: str | None = None
    color: str | None = None
    size: str | None = None

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
