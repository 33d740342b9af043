# storefront/repositories/order_repo.py
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, update
from sqlmodel import Session, col, select

from storefront.models.order import Order, OrderItem, OrderStatus


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation and status changes are multi-step
        transactions. The service is responsible for committing.
    """

    # ---- Orders ----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_number(self, session: Session, order_number: str) -> Order | None:
        stmt = select(Order).where(Order.order_number == order_number)
        return session.exec(stmt).first()

    def get_by_idempotency_key(
        self,
        session: Session,
        customer_id: uuid.UUID,
        key: str,
    ) -> Order | None:
        stmt = select(Order).where(
            Order.customer_id == customer_id,
            Order.idempotency_key == key,
        )
        return session.exec(stmt).first()

    def list_for_customer(
        self,
        session: Session,
        customer_id: uuid.UUID,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.customer_id == customer_id)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(col(Order.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_for_rider(
        self,
        session: Session,
        rider_id: uuid.UUID,
        status: str,
        assigned_from: datetime | None = None,
        assigned_to: datetime | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.rider_id == rider_id, Order.status == status)
        if assigned_from is not None:
            stmt = stmt.where(Order.assigned_at >= assigned_from)
        if assigned_to is not None:
            stmt = stmt.where(Order.assigned_at < assigned_to)
        stmt = stmt.order_by(col(Order.assigned_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def _rider_history_filter(
        self,
        rider_id: uuid.UUID,
        statuses: tuple[str, ...],
        delivered_from: datetime | None,
        delivered_to: datetime | None,
    ) -> list[Any]:
        conditions = [Order.rider_id == rider_id, col(Order.status).in_(statuses)]
        if delivered_from is not None:
            conditions.append(Order.delivered_at >= delivered_from)
        if delivered_to is not None:
            conditions.append(Order.delivered_at < delivered_to)
        return conditions

    def list_rider_history(
        self,
        session: Session,
        rider_id: uuid.UUID,
        statuses: tuple[str, ...],
        delivered_from: datetime | None = None,
        delivered_to: datetime | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> list[Order]:
        """Finished deliveries of one rider, most recent outcome first."""
        stmt = (
            select(Order)
            .where(*self._rider_history_filter(rider_id, statuses, delivered_from, delivered_to))
            .order_by(col(Order.delivered_at).desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def rider_history_counts(
        self,
        session: Session,
        rider_id: uuid.UUID,
        statuses: tuple[str, ...],
        delivered_from: datetime | None = None,
        delivered_to: datetime | None = None,
    ) -> dict[str, int]:
        """Per-status counts over the same rows list_rider_history pages through."""
        stmt = (
            select(Order.status, func.count())
            .where(*self._rider_history_filter(rider_id, statuses, delivered_from, delivered_to))
            .group_by(Order.status)
        )
        return {status: int(count) for status, count in session.exec(stmt).all()}

    def list_rider_route(
        self,
        session: Session,
        rider_id: uuid.UUID,
        assigned_from: datetime,
        assigned_to: datetime,
    ) -> list[Order]:
        """Shipped orders assigned in the window, grouped by zip code."""
        stmt = (
            select(Order)
            .where(
                Order.rider_id == rider_id,
                Order.status == OrderStatus.SHIPPED.value,
                Order.assigned_at >= assigned_from,
                Order.assigned_at < assigned_to,
            )
            .order_by(col(Order.zip_code), col(Order.assigned_at))
        )
        return list(session.exec(stmt).all())

    def search(
        self,
        session: Session,
        status: str | None = None,
        rider_id: uuid.UUID | None = None,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
        text: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """Admin listing; every filter is optional and they combine with AND."""
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if rider_id is not None:
            stmt = stmt.where(Order.rider_id == rider_id)
        if created_from is not None:
            stmt = stmt.where(Order.created_at >= created_from)
        if created_to is not None:
            stmt = stmt.where(Order.created_at < created_to)
        if text:
            pattern = f"%{text}%"
            stmt = stmt.where(
                or_(
                    col(Order.order_number).ilike(pattern),
                    col(Order.customer_name).ilike(pattern),
                    col(Order.customer_email).ilike(pattern),
                )
            )
        stmt = stmt.order_by(col(Order.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK / surface unique violations
        session.refresh(order)
        return order

    def apply_transition(
        self,
        session: Session,
        order: Order,
        changes: dict[str, Any],
    ) -> bool:
        """
        Write a status transition only if nobody else moved the order since
        we read it (same status and version). Bumps the version.

        Returns False when the guard failed.
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order.id,
                Order.status == order.status,
                Order.version == order.version,
            )
            .values(version=Order.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
