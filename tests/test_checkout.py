"""Tests for CheckoutService."""

import re
import threading

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from storefront.core.errors import (
    Conflict,
    InsufficientStock,
    InvalidRequest,
    NotFound,
    StorefrontError,
)
from storefront.models.inventory import StockReservation
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.product import Product, ProductVariant
from storefront.models.user import User
from storefront.schemas.cart import CartItemCreate
from storefront.schemas.order import CheckoutRequest
from storefront.services.checkout_service import merge_requested_items
from storefront.services.inventory_service import InventoryLedger

from conftest import ADDRESS, CONTACT


def _request(items=None, **extra) -> CheckoutRequest:
    data = {"shipping_address": ADDRESS, "customer_info": CONTACT, **extra}
    if items is not None:
        data["items"] = items
    return CheckoutRequest.model_validate(data)


def _line(product, variant, quantity):
    return {"product_id": str(product.id), "variant_id": str(variant.id), "quantity": quantity}


def _stock(session, variant_id):
    return session.exec(select(ProductVariant.stock).where(ProductVariant.id == variant_id)).one()


def _order_count(session):
    return len(session.exec(select(Order)).all())


class TestCheckoutFromCart:
    def test_reference_order(self, session, services, make_user, make_variant):
        """V(stock 5, price 20) x2 from the cart."""
        customer = make_user()
        product, variant = make_variant(price=20.0, stock=5)
        services.cart.add_item(
            session,
            customer.id,
            CartItemCreate(product_id=product.id, variant_id=variant.id, quantity=2),
        )

        order = services.checkout.checkout(session, customer, _request())

        assert order.status == OrderStatus.PENDING
        assert order.subtotal == 40.0
        assert order.tax == 3.2
        assert order.shipping_cost == 10.0
        assert order.total_amount == 53.2
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

        assert len(order.items) == 1
        line = order.items[0]
        assert (line.quantity, line.unit_price, line.subtotal) == (2, 20.0, 40.0)
        assert line.product_image == "https://img.example.com/tee.png"
        assert line.sku == variant.sku

        assert _stock(session, variant.id) == 3
        assert services.cart.get_cart(session, customer.id).items == []

        reservations = session.exec(
            select(StockReservation).where(StockReservation.order_id == order.id)
        ).all()
        assert [(r.variant_id, r.quantity) for r in reservations] == [(variant.id, 2)]

    def test_empty_cart_is_rejected(self, session, services, make_user):
        with pytest.raises(InvalidRequest):
            services.checkout.checkout(session, make_user(), _request())

    def test_stale_cart_stops_checkout(self, session, services, make_user, make_variant):
        customer = make_user()
        product, variant = make_variant(price=20.0, stock=5)
        services.cart.add_item(
            session,
            customer.id,
            CartItemCreate(product_id=product.id, variant_id=variant.id, quantity=1),
        )
        variant.price = 22.0
        session.add(variant)
        session.commit()

        with pytest.raises(Conflict) as exc_info:
            services.checkout.checkout(session, customer, _request())

        assert [i["type"] for i in exc_info.value.details["issues"]] == ["price"]
        assert _order_count(session) == 0
        assert _stock(session, variant.id) == 5

        # The corrected cart goes through on the next attempt.
        order = services.checkout.checkout(session, customer, _request())
        assert order.subtotal == 22.0


class TestCheckoutExplicitItems:
    def test_items_are_priced_from_catalog(self, session, services, make_user, make_variant):
        customer = make_user()
        p1, v1 = make_variant(price=60.0, stock=3)
        p2, v2 = make_variant(price=45.5, stock=3)

        order = services.checkout.checkout(
            session, customer, _request([_line(p1, v1, 1), _line(p2, v2, 1)])
        )

        assert order.subtotal == 105.5
        assert order.shipping_cost == 0.0
        assert order.tax == 8.44
        assert order.total_amount == 113.94
        assert order.subtotal == sum(i.subtotal for i in order.items)

    def test_duplicate_lines_are_merged(self, session, services, make_user, make_variant):
        customer = make_user()
        product, variant = make_variant(stock=5)

        order = services.checkout.checkout(
            session,
            customer,
            _request([_line(product, variant, 1), _line(product, variant, 2)]),
        )

        assert len(order.items) == 1
        assert order.items[0].quantity == 3
        assert _stock(session, variant.id) == 2

    def test_exceeding_stock_creates_nothing(self, session, services, make_user, make_variant):
        customer = make_user()
        p1, v1 = make_variant(stock=5)
        p2, v2 = make_variant(stock=1)

        with pytest.raises(InsufficientStock) as exc_info:
            services.checkout.checkout(
                session, customer, _request([_line(p1, v1, 2), _line(p2, v2, 2)])
            )

        assert exc_info.value.available == 1
        assert _order_count(session) == 0
        assert _stock(session, v1.id) == 5
        assert _stock(session, v2.id) == 1

    def test_inactive_product(self, session, services, make_user, make_variant):
        product, variant = make_variant(is_active=False)
        with pytest.raises(NotFound):
            services.checkout.checkout(session, make_user(), _request([_line(product, variant, 1)]))

    def test_cart_is_cleared_after_explicit_checkout(self, session, services, make_user, make_variant):
        customer = make_user()
        product, variant = make_variant(stock=5)
        services.cart.add_item(
            session,
            customer.id,
            CartItemCreate(product_id=product.id, variant_id=variant.id, quantity=1),
        )

        services.checkout.checkout(session, customer, _request([_line(product, variant, 1)]))

        assert services.cart.get_cart(session, customer.id).items == []
        assert _stock(session, variant.id) == 4

    def test_empty_item_list(self, session, services, make_user):
        with pytest.raises(InvalidRequest):
            services.checkout.checkout(session, make_user(), _request([]))


class TestCheckoutContact:
    def test_missing_shipping_address(self, session, services, make_user, make_variant):
        product, variant = make_variant()
        payload = CheckoutRequest.model_validate(
            {"items": [_line(product, variant, 1)], "customer_info": CONTACT}
        )
        with pytest.raises(InvalidRequest):
            services.checkout.checkout(session, make_user(), payload)

    def test_profile_fills_contact(self, session, services, make_user, make_variant):
        customer = make_user(name="Bob Profile", phone="+1-555-0199")
        product, variant = make_variant()
        payload = CheckoutRequest.model_validate(
            {"items": [_line(product, variant, 1)], "shipping_address": ADDRESS}
        )

        order = services.checkout.checkout(session, customer, payload)

        assert order.customer_name == "Bob Profile"
        assert order.customer_email == customer.email
        assert order.customer_phone == "+1-555-0199"

    def test_incomplete_contact(self, session, services, make_user, make_variant):
        customer = make_user(phone=None)
        product, variant = make_variant()
        payload = CheckoutRequest.model_validate(
            {"items": [_line(product, variant, 1)], "shipping_address": ADDRESS}
        )

        with pytest.raises(InvalidRequest) as exc_info:
            services.checkout.checkout(session, customer, payload)
        assert exc_info.value.details["missing"] == ["phone"]


class TestIdempotency:
    def test_same_key_returns_same_order(self, session, services, make_user, make_variant):
        customer = make_user()
        product, variant = make_variant(stock=5)
        payload = _request([_line(product, variant, 2)])

        first = services.checkout.checkout(session, customer, payload, idempotency_key="k-1")
        second = services.checkout.checkout(session, customer, payload, idempotency_key="k-1")

        assert first.id == second.id
        assert _order_count(session) == 1
        assert _stock(session, variant.id) == 3

    def test_keys_are_per_customer(self, session, services, make_user, make_variant):
        product, variant = make_variant(stock=5)
        payload = _request([_line(product, variant, 1)])

        a = services.checkout.checkout(session, make_user(), payload, idempotency_key="shared")
        b = services.checkout.checkout(session, make_user(), payload, idempotency_key="shared")

        assert a.id != b.id
        assert _stock(session, variant.id) == 3


class TestRace:
    def test_last_unit_sold_once(self, session, services, make_user, make_variant, monkeypatch):
        """
        Both checkouts pass the availability pre-check; the reservation
        inside the order transaction decides.
        """
        monkeypatch.setattr(InventoryLedger, "check_availability", lambda self, s, v, q: True)
        product, variant = make_variant(stock=1)
        payload = _request([_line(product, variant, 1)])

        winner = services.checkout.checkout(session, make_user(), payload)
        with pytest.raises(InsufficientStock):
            services.checkout.checkout(session, make_user(), payload)

        assert winner.status == OrderStatus.PENDING
        assert _order_count(session) == 1
        assert len(session.exec(select(OrderItem)).all()) == 1
        assert _stock(session, variant.id) == 0

    def test_failed_later_line_rolls_back_earlier_reservation(
        self, session, services, make_user, make_variant, monkeypatch
    ):
        """The first line is reserved before the second one runs out."""
        monkeypatch.setattr(InventoryLedger, "check_availability", lambda self, s, v, q: True)
        p1, v1 = make_variant(stock=5)
        p2, v2 = make_variant(stock=1)
        payload = _request([_line(p1, v1, 2), _line(p2, v2, 2)])

        with pytest.raises(InsufficientStock) as exc_info:
            services.checkout.checkout(session, make_user(), payload)

        assert exc_info.value.variant_id == v2.id
        assert _stock(session, v1.id) == 5
        assert _stock(session, v2.id) == 1
        assert _order_count(session) == 0
        assert session.exec(select(StockReservation)).all() == []
        assert session.exec(select(OrderItem)).all() == []

    def test_threads_racing_for_last_unit(self, tmp_path, services):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'checkout-race.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        SQLModel.metadata.create_all(engine)

        with Session(engine) as setup:
            product = Product(name="Last Tee", slug="last-tee")
            setup.add(product)
            setup.flush()
            variant = ProductVariant(product_id=product.id, color="red", size="S", price=20.0, stock=1)
            buyers = [User(email=f"buyer{n}@example.com", name=f"Buyer {n}", phone="+1-555-0100") for n in (1, 2)]
            setup.add(variant)
            setup.add_all(buyers)
            setup.commit()
            payload = _request([_line(product, variant, 1)])
            variant_id = variant.id
            buyer_ids = [b.id for b in buyers]

        barrier = threading.Barrier(2)
        results: list[str] = []
        lock = threading.Lock()

        def buy(buyer_id):
            with Session(engine) as s:
                buyer = s.get(User, buyer_id)
                barrier.wait()
                try:
                    services.checkout.checkout(s, buyer, payload)
                    outcome = "ok"
                except StorefrontError as exc:
                    outcome = exc.kind
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=buy, args=(buyer_id,)) for buyer_id in buyer_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert sorted(results) == ["insufficient_stock", "ok"]
        with Session(engine) as check:
            assert _stock(check, variant_id) == 0
            assert _order_count(check) == 1
            assert len(check.exec(select(StockReservation)).all()) == 1

        engine.dispose()


class TestMergeRequestedItems:
    def test_sums_by_product_and_variant(self, make_variant):
        p1, v1 = make_variant()
        p2, v2 = make_variant()
        payload = _request([_line(p1, v1, 1), _line(p2, v2, 4), _line(p1, v1, 2)])

        merged = merge_requested_items(payload.items)

        assert {(m.variant_id, m.quantity) for m in merged} == {(v1.id, 3), (v2.id, 4)}
