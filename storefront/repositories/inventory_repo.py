# storefront/repositories/inventory_repo.py
import uuid
from datetime import datetime

from sqlalchemy import update
from sqlmodel import Session, select

from storefront.models.inventory import StockReservation
from storefront.models.product import ProductVariant


class InventoryRepository:
    """
    Atomic stock statements against product_variants, plus the
    stock_reservations ledger.

    Every stock change is a single UPDATE whose WHERE clause carries the
    precondition, so two sessions racing on one variant can never both pass
    the check. Callers look at the returned row count.
    """

    def current_stock(self, session: Session, variant_id: uuid.UUID) -> int | None:
        """Read stock straight from the database (bypasses the identity map)."""
        stmt = select(ProductVariant.stock).where(ProductVariant.id == variant_id)
        return session.exec(stmt).first()

    def decrement_if_available(
        self,
        session: Session,
        variant_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        stmt = (
            update(ProductVariant)
            .where(ProductVariant.id == variant_id, ProductVariant.stock >= quantity)
            .values(stock=ProductVariant.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    def increment(self, session: Session, variant_id: uuid.UUID, quantity: int) -> bool:
        stmt = (
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(stock=ProductVariant.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    # ---- Reservation ledger ----

    def add_reservation(
        self,
        session: Session,
        reservation: StockReservation,
    ) -> StockReservation:
        session.add(reservation)
        session.flush()
        return reservation

    def list_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        only_open: bool = False,
    ) -> list[StockReservation]:
        stmt = select(StockReservation).where(StockReservation.order_id == order_id)
        if only_open:
            stmt = stmt.where(StockReservation.released_at == None)  # noqa: E711
        return list(session.exec(stmt).all())

    def close_reservation(
        self,
        session: Session,
        reservation_id: uuid.UUID,
        released_at: datetime,
    ) -> bool:
        """Mark a reservation released; False if someone already did."""
        stmt = (
            update(StockReservation)
            .where(
                StockReservation.id == reservation_id,
                StockReservation.released_at == None,  # noqa: E711
            )
            .values(released_at=released_at)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1
