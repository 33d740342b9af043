# storefront/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry.

    The catalog itself is managed elsewhere; the order core only reads
    products and mutates variant stock through the inventory ledger.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = None

    category: str | None = Field(default=None, max_length=50)

    hero_image_url: str | None = Field(
        default=None,
        description="Main image URL, copied into order lines",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product can be bought",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class ProductVariant(SQLModel, table=True):
    """
    A purchasable configuration (color + size) of a product.

    `stock` never goes below zero: the inventory ledger only decrements it
    with a conditional update, and the CHECK constraint backs that up.
    """

    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_variants_stock_non_negative"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    color: str
    size: str

    price: float = Field(
        ge=0,
        description="Unit price",
    )

    sku: str | None = Field(
        default=None,
        unique=True,
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units currently available",
    )

    @property
    def label(self) -> str:
        return f"{self.color} {self.size}"
