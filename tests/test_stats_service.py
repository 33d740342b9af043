"""Tests for dashboard statistics."""

from storefront.core.permissions import Role
from storefront.models.order import OrderStatus
from storefront.schemas.order import CheckoutRequest, DeliveryUpdate, OrderStatusUpdate

from conftest import ADDRESS, CONTACT


def _checkout(session, services, customer, make_variant, price=20.0, quantity=1):
    product, variant = make_variant(price=price, stock=10)
    payload = CheckoutRequest.model_validate(
        {
            "items": [{"product_id": str(product.id), "variant_id": str(variant.id), "quantity": quantity}],
            "shipping_address": ADDRESS,
            "customer_info": CONTACT,
        }
    )
    return services.checkout.checkout(session, customer, payload)


def _ship(session, services, customer, admin, rider, order_id):
    services.orders.mark_paid(session, customer, order_id)
    services.orders.update_status(
        session, admin, order_id, OrderStatusUpdate(status=OrderStatus.SHIPPED, rider_id=rider.id)
    )


class TestAdminDashboard:
    def test_empty(self, session, services):
        stats = services.stats.get_admin_dashboard_stats(session)
        assert stats.total_orders == 0
        assert stats.total_revenue == 0.0
        assert stats.latest_orders == []

    def test_counts_and_revenue(self, session, services, make_user, make_variant):
        customer = make_user()
        first = _checkout(session, services, customer, make_variant, price=20.0)  # 31.60
        second = _checkout(session, services, customer, make_variant, price=50.0)
        third = _checkout(session, services, customer, make_variant, price=30.0)  # 42.40
        services.orders.cancel(session, customer, second.id)
        services.orders.mark_paid(session, customer, first.id)

        stats = services.stats.get_admin_dashboard_stats(session, latest_n_orders=2)

        assert stats.total_orders == 3
        assert stats.pending_orders == 1
        assert stats.delivered_orders == 0
        assert stats.total_revenue == 31.6
        assert third.status == OrderStatus.PENDING
        assert [o.id for o in stats.latest_orders] == [third.id, second.id]
        assert stats.latest_orders[1].status == OrderStatus.CANCELLED

    def test_unpaid_orders_earn_nothing(self, session, services, make_user, make_variant):
        customer = make_user()
        _checkout(session, services, customer, make_variant, price=50.0)

        stats = services.stats.get_admin_dashboard_stats(session)

        assert stats.pending_orders == 1
        assert stats.total_revenue == 0.0

    def test_revenue_follows_the_order_through_delivery(self, session, services, make_user, make_variant):
        customer = make_user()
        admin = make_user(Role.ADMIN)
        rider = make_user(Role.RIDER)
        order = _checkout(session, services, customer, make_variant, price=50.0)  # 64.00

        _ship(session, services, customer, admin, rider, order.id)
        assert services.stats.get_admin_dashboard_stats(session).total_revenue == 64.0

        services.orders.record_delivery(session, rider, order.id, DeliveryUpdate(status="delivered"))
        assert services.stats.get_admin_dashboard_stats(session).total_revenue == 64.0


class TestRiderDashboard:
    def test_counts(self, session, services, make_user, make_variant):
        customer = make_user()
        admin = make_user(Role.ADMIN)
        rider = make_user(Role.RIDER)

        orders = [_checkout(session, services, customer, make_variant) for _ in range(3)]
        for order in orders:
            _ship(session, services, customer, admin, rider, order.id)
        services.orders.record_delivery(
            session, rider, orders[0].id, DeliveryUpdate(status="delivered")
        )
        services.orders.record_delivery(
            session, rider, orders[1].id, DeliveryUpdate(status="undelivered", reason="Gate locked")
        )

        stats = services.stats.get_rider_dashboard_stats(session, rider)

        assert stats.total_deliveries == 3
        assert stats.active_deliveries == 1
        assert stats.completed_deliveries == 1
        assert stats.undelivered == 1
        assert stats.today_deliveries == 1

    def test_rider_roster(self, session, services, make_user, make_variant):
        customer = make_user()
        admin = make_user(Role.ADMIN)
        busy = make_user(Role.RIDER, name="Busy Rider")
        make_user(Role.RIDER, name="Idle Rider")
        make_user(Role.RIDER, name="Retired Rider", is_active=False)

        order = _checkout(session, services, customer, make_variant)
        _ship(session, services, customer, admin, busy, order.id)

        roster = {r.name: r for r in services.stats.list_rider_summaries(session)}

        assert set(roster) == {"Busy Rider", "Idle Rider"}
        assert (roster["Busy Rider"].total_orders, roster["Busy Rider"].active_orders) == (1, 1)
        assert (roster["Idle Rider"].total_orders, roster["Idle Rider"].active_orders) == (0, 0)

    def test_recent_orders_are_latest_assignments(self, session, services, make_user, make_variant):
        customer = make_user()
        admin = make_user(Role.ADMIN)
        rider = make_user(Role.RIDER)
        make_user(Role.RIDER)  # unrelated rider

        orders = [_checkout(session, services, customer, make_variant) for _ in range(6)]
        for order in orders:
            _ship(session, services, customer, admin, rider, order.id)

        stats = services.stats.get_rider_dashboard_stats(session, rider)

        assert [o.id for o in stats.recent_orders] == [o.id for o in reversed(orders[1:])]
        assert stats.recent_orders[0].customer_name == CONTACT["name"]
