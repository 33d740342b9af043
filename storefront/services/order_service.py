# storefront/services/order_service.py
import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone

from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.errors import Conflict, NotFound, RiderRequired, Unauthorized
from storefront.core.permissions import Capability, has_capability
from storefront.database import transaction
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import (
    DeliveryUpdate,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderTrackingRead,
    OrderWithItemsRead,
    RiderDeliveryHistory,
    RiderRoute,
)
from storefront.services import order_state
from storefront.services.inventory_service import InventoryLedger
from storefront.services.user_service import UserService

logger = logging.getLogger(__name__)

HISTORY_STATUSES = (OrderStatus.DELIVERED.value, OrderStatus.UNDELIVERED.value)


def build_order_detail(order: Order, items: list[OrderItem]) -> OrderWithItemsRead:
    """
    Compose OrderWithItemsRead from ORM models.
    """
    return OrderWithItemsRead(
        **OrderRead.model_validate(order, from_attributes=True).model_dump(),
        items=[OrderItemRead.model_validate(it, from_attributes=True) for it in items],
    )


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class OrderService:
    """
    Business logic for orders after checkout.

    Responsibilities:
      - read access rules (owner / admin / assigned rider)
      - customer, rider and admin listings
      - every status change, through the order state machine:
          * legal edge + capability + ownership checks
          * rider assignment rules for shipping
          * timestamps written with the status in one guarded update
          * stock released in the same transaction as a cancellation
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        user_repo: UserRepository,
        user_service: UserService,
        inventory: InventoryLedger,
    ):
        self.order_repo = order_repo
        self.user_repo = user_repo
        self.user_service = user_service
        self.inventory = inventory

    # -------- Reads --------

    def _get(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order", order_id)
        return order

    def _detail(self, session: Session, order: Order) -> OrderWithItemsRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        return build_order_detail(order, items)

    def get_order(
        self,
        session: Session,
        actor: User,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order with items.

        Visible to its customer, to admins and to the rider it is assigned to.
        """
        order = self._get(session, order_id)

        if order.customer_id == actor.id:
            return self._detail(session, order)
        if has_capability(actor.role, Capability.VIEW_ALL_ORDERS):
            return self._detail(session, order)
        if (
            has_capability(actor.role, Capability.VIEW_ASSIGNED_ORDERS)
            and order.rider_id == actor.id
        ):
            return self._detail(session, order)

        raise Unauthorized("Access denied", order_id=order_id)

    def list_for_customer(
        self,
        session: Session,
        customer: User,
        status: OrderStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        List the customer's orders (without items), newest first.
        """
        return self.order_repo.list_for_customer(
            session,
            customer.id,
            status=status.value if status else None,
            skip=skip,
            limit=limit,
        )

    def list_for_rider(
        self,
        session: Session,
        rider: User,
        status: OrderStatus | None = None,
        day: date | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        Orders assigned to the rider.

        By default only active deliveries (shipped) are listed. `day` keeps
        orders assigned on that (UTC) day.
        """
        assigned_from = assigned_to = None
        if day is not None:
            assigned_from, assigned_to = day_bounds(day)

        return self.order_repo.list_for_rider(
            session,
            rider.id,
            status=(status or OrderStatus.SHIPPED).value,
            assigned_from=assigned_from,
            assigned_to=assigned_to,
            skip=skip,
            limit=limit,
        )

    def get_assigned_order(
        self,
        session: Session,
        rider: User,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.rider_id != rider.id:
            raise NotFound("Order", order_id)
        return self._detail(session, order)

    def delivery_history(
        self,
        session: Session,
        rider: User,
        start_date: date | None = None,
        end_date: date | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> RiderDeliveryHistory:
        """
        Delivered and undelivered orders of the rider, newest outcome first.

        Date bounds are inclusive UTC days on the delivery outcome time.
        """
        delivered_from = day_bounds(start_date)[0] if start_date else None
        delivered_to = day_bounds(end_date)[1] if end_date else None

        orders = self.order_repo.list_rider_history(
            session,
            rider.id,
            HISTORY_STATUSES,
            delivered_from=delivered_from,
            delivered_to=delivered_to,
            skip=skip,
            limit=limit,
        )
        summary = self.order_repo.rider_history_counts(
            session,
            rider.id,
            HISTORY_STATUSES,
            delivered_from=delivered_from,
            delivered_to=delivered_to,
        )

        return RiderDeliveryHistory(
            orders=[OrderRead.model_validate(o, from_attributes=True) for o in orders],
            summary=summary,
            total=sum(summary.values()),
            skip=skip,
            limit=limit,
        )

    def todays_route(
        self,
        session: Session,
        rider: User,
        now: datetime | None = None,
    ) -> RiderRoute:
        """Shipped orders assigned to the rider today (UTC), by zip code."""
        today = (now or datetime.now(timezone.utc)).date()
        start, end = day_bounds(today)

        orders = self.order_repo.list_rider_route(session, rider.id, start, end)
        return RiderRoute(
            day=today,
            total_orders=len(orders),
            orders=[self._detail(session, o) for o in orders],
        )

    def list_admin(
        self,
        session: Session,
        status: OrderStatus | None = None,
        rider_id: uuid.UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        List all orders (admin only). Date bounds are inclusive days.
        """
        created_from = day_bounds(start_date)[0] if start_date else None
        created_to = day_bounds(end_date)[1] if end_date else None
        text = search.strip() if search else None

        return self.order_repo.search(
            session,
            status=status.value if status else None,
            rider_id=rider_id,
            created_from=created_from,
            created_to=created_to,
            text=text or None,
            skip=skip,
            limit=limit,
        )

    def track(self, session: Session, order_number: str) -> OrderTrackingRead:
        """
        Public, read-only tracking by order number.
        """
        order = self.order_repo.get_by_number(session, order_number)
        if not order:
            raise NotFound("Order", order_number)

        rider_name = None
        if order.rider_id:
            rider = self.user_repo.get_by_id(session, order.rider_id)
            rider_name = rider.name if rider else None

        return OrderTrackingRead(
            order_number=order.order_number,
            status=order.status,
            created_at=order.created_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            rider_name=rider_name,
        )

    # -------- Status changes --------

    def update_status(
        self,
        session: Session,
        actor: User,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderWithItemsRead:
        """
        General status endpoint (admin), with optional rider assignment.

        Edges the admin does not hold a capability for (payment, delivery
        outcome, customer cancellation) are rejected as Unauthorized.
        """
        return self._transition(
            session,
            actor,
            order_id,
            payload.status,
            rider_id=payload.rider_id,
        )

    def mark_paid(
        self,
        session: Session,
        actor: User,
        order_id: uuid.UUID,
        transaction_id: str | None = None,
    ) -> OrderWithItemsRead:
        """Simulated payment by the order's customer: pending -> paid."""
        return self._transition(
            session,
            actor,
            order_id,
            OrderStatus.PAID,
            transaction_id=transaction_id,
        )

    def cancel(
        self,
        session: Session,
        actor: User,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """Customer cancellation (pending | paid -> cancelled), restocks."""
        return self._transition(session, actor, order_id, OrderStatus.CANCELLED)

    def record_delivery(
        self,
        session: Session,
        actor: User,
        order_id: uuid.UUID,
        payload: DeliveryUpdate,
    ) -> OrderWithItemsRead:
        """Assigned rider reports shipped -> delivered | undelivered."""
        return self._transition(
            session,
            actor,
            order_id,
            OrderStatus(payload.status),
            reason=payload.reason,
        )

    def _transition(
        self,
        session: Session,
        actor: User,
        order_id: uuid.UUID,
        target: OrderStatus,
        *,
        rider_id: uuid.UUID | None = None,
        transaction_id: str | None = None,
        reason: str | None = None,
    ) -> OrderWithItemsRead:
        """
        Apply one state machine edge.

        Steps (one transaction):
          1. Load the order (404).
          2. Edge must exist, actor must hold its capability (and own the
             order / be its rider where the edge is scoped).
          3. shipped needs an assignable rider; a rider supplied for any
             other target is still validated.
          4. Guarded update of status + timestamps (Conflict if the order
             moved underneath us).
          5. cancelled -> release the order's reservations.
        """
        settings = get_settings()

        with transaction(session, "update_order_status"):
            order = self._get(session, order_id)
            previous = order.status
            order_state.authorize_transition(actor, order, target)

            if target == OrderStatus.SHIPPED and rider_id is None:
                raise RiderRequired()
            if rider_id is not None:
                self.user_service.get_assignable_rider(session, rider_id)

            changes = order_state.transition_changes(
                target,
                datetime.now(timezone.utc),
                rider_id=rider_id if target == OrderStatus.SHIPPED else None,
                transaction_id=transaction_id,
                reason=reason,
                default_reason=settings.DEFAULT_UNDELIVERED_REASON,
            )

            if not self.order_repo.apply_transition(session, order, changes):
                raise Conflict(
                    "Order was modified concurrently; reload and retry",
                    order_id=order_id,
                )

            if target == OrderStatus.CANCELLED:
                self.inventory.release_for_order(session, order.id)

        session.refresh(order)
        logger.info(
            "Order %s: %s -> %s by %s (%s)",
            order.order_number,
            previous,
            order.status,
            actor.id,
            actor.role,
        )
        return self._detail(session, order)
