# storefront/services/inventory_service.py
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import InsufficientStock, InvalidRequest, NotFound
from storefront.models.inventory import StockReservation
from storefront.repositories.inventory_repo import InventoryRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationLine:
    """What one order line needs from the ledger."""

    product_id: uuid.UUID
    variant_id: uuid.UUID
    quantity: int
    product_name: str | None = None
    variant_label: str | None = None


class InventoryLedger:
    """
    Owns per-variant stock counters.

    Responsibilities:
      - availability checks (read only)
      - atomic compare-and-decrement reservations
      - restocking, exactly once per reservation when tied to an order

    Nothing here commits: the caller decides the transaction boundary, so a
    checkout's reservations land together with its order or not at all.
    """

    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    # ---- Per-variant contract ----

    def check_availability(
        self,
        session: Session,
        variant_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """True iff the variant currently has at least `quantity` in stock."""
        stock = self.repo.current_stock(session, variant_id)
        return stock is not None and stock >= quantity

    def available(self, session: Session, variant_id: uuid.UUID) -> int:
        stock = self.repo.current_stock(session, variant_id)
        if stock is None:
            raise NotFound("Variant", variant_id)
        return stock

    def reserve(
        self,
        session: Session,
        variant_id: uuid.UUID,
        quantity: int,
        product_name: str | None = None,
        variant_label: str | None = None,
    ) -> None:
        """
        Take `quantity` units from the variant in one conditional UPDATE.

        Raises:
            InvalidRequest: quantity is not positive
            NotFound: the variant does not exist
            InsufficientStock: stock < quantity at the moment of the update
        """
        if quantity <= 0:
            raise InvalidRequest("Reservation quantity must be positive", quantity=quantity)

        if self.repo.decrement_if_available(session, variant_id, quantity):
            return

        available = self.available(session, variant_id)
        raise InsufficientStock(
            variant_id=variant_id,
            requested=quantity,
            available=available,
            product_name=product_name,
            variant_label=variant_label,
        )

    def release(self, session: Session, variant_id: uuid.UUID, quantity: int) -> bool:
        """
        Give `quantity` units back to the variant.

        Returns False (and logs) when the variant no longer exists.
        """
        if quantity <= 0:
            raise InvalidRequest("Release quantity must be positive", quantity=quantity)

        restored = self.repo.increment(session, variant_id, quantity)
        if not restored:
            logger.warning(
                "Variant %s no longer exists; %d units not restocked",
                variant_id,
                quantity,
            )
        return restored

    # ---- Order-scoped reservations ----

    def reserve_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        lines: list[ReservationLine],
    ) -> list[StockReservation]:
        """Reserve every line and record it against the order."""
        reservations: list[StockReservation] = []
        for line in lines:
            self.reserve(
                session,
                line.variant_id,
                line.quantity,
                product_name=line.product_name,
                variant_label=line.variant_label,
            )
            reservations.append(
                self.repo.add_reservation(
                    session,
                    StockReservation(
                        order_id=order_id,
                        product_id=line.product_id,
                        variant_id=line.variant_id,
                        quantity=line.quantity,
                    ),
                )
            )
        return reservations

    def release_for_order(self, session: Session, order_id: uuid.UUID) -> int:
        """
        Restock everything the order still holds.

        Each reservation is closed with a conditional update before its stock
        is given back, so a reservation can be released only once even if two
        cancellations race. Returns the number of units restored.
        """
        now = datetime.now(timezone.utc)
        restored_units = 0

        for reservation in self.repo.list_for_order(session, order_id, only_open=True):
            if not self.repo.close_reservation(session, reservation.id, now):
                logger.warning(
                    "Reservation %s of order %s was already released; skipping",
                    reservation.id,
                    order_id,
                )
                continue
            if self.release(session, reservation.variant_id, reservation.quantity):
                restored_units += reservation.quantity

        logger.info("Released %d units held by order %s", restored_units, order_id)
        return restored_units
