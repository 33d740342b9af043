# storefront/models/inventory.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class StockReservation(SQLModel, table=True):
    """
    Stock taken from a variant to back one order line.

    Rows are written in the checkout transaction and closed (released_at)
    when the order is cancelled, so a restock can only ever give back what
    this order actually took, and only once.
    """

    __tablename__ = "stock_reservations"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID
    variant_id: uuid.UUID = Field(index=True)

    quantity: int = Field(gt=0)

    reserved_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    released_at: datetime | None = None
