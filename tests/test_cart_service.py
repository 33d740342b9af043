"""Tests for CartService."""

import uuid

import pytest

from storefront.core.errors import InsufficientStock, NotFound
from storefront.schemas.cart import CartItemCreate


def _add(services, session, user, product, variant, quantity=1):
    return services.cart.add_item(
        session,
        user.id,
        CartItemCreate(product_id=product.id, variant_id=variant.id, quantity=quantity),
    )


class TestGetCart:
    def test_empty_cart_created_lazily(self, session, services, make_user):
        user = make_user()
        assert services.cart_repo.get_for_user(session, user.id) is None

        summary = services.cart.get_cart(session, user.id)

        assert summary.items == []
        assert summary.total_items == 0
        assert summary.total_price == 0.0
        assert services.cart_repo.get_for_user(session, user.id).id == summary.id

    def test_same_cart_on_every_call(self, session, services, make_user):
        user = make_user()
        assert services.cart.get_cart(session, user.id).id == services.cart.get_cart(session, user.id).id


class TestAddItem:
    def test_snapshots_variant(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(price=20.0, stock=5, name="Classic Tee", color="white", size="M")

        summary = _add(services, session, user, product, variant, quantity=2)

        assert summary.total_items == 2
        assert summary.total_price == 40.0
        line = summary.items[0]
        assert line.product_name == "Classic Tee"
        assert (line.color, line.size) == ("white", "M")
        assert line.snapshot_price == 20.0
        assert line.line_total == 40.0

    def test_same_variant_merges(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=5)

        _add(services, session, user, product, variant, quantity=2)
        summary = _add(services, session, user, product, variant, quantity=3)

        assert len(summary.items) == 1
        assert summary.items[0].quantity == 5

    def test_merged_quantity_cannot_exceed_stock(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=5)
        _add(services, session, user, product, variant, quantity=4)

        with pytest.raises(InsufficientStock) as exc_info:
            _add(services, session, user, product, variant, quantity=2)

        assert exc_info.value.requested == 6
        assert exc_info.value.available == 5
        assert services.cart.get_cart(session, user.id).items[0].quantity == 4

    def test_inactive_product(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(is_active=False)
        with pytest.raises(NotFound):
            _add(services, session, user, product, variant)

    def test_variant_of_another_product(self, session, services, make_user, make_variant):
        user = make_user()
        product, _ = make_variant()
        _, foreign_variant = make_variant()
        with pytest.raises(NotFound):
            _add(services, session, user, product, foreign_variant)


class TestUpdateRemoveClear:
    def test_update_quantity(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=5)
        item_id = _add(services, session, user, product, variant).items[0].id

        summary = services.cart.update_quantity(session, user.id, item_id, 4)
        assert summary.items[0].quantity == 4

    def test_update_to_zero_removes(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=5)
        item_id = _add(services, session, user, product, variant).items[0].id

        assert services.cart.update_quantity(session, user.id, item_id, 0).items == []

    def test_update_beyond_stock(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=2)
        item_id = _add(services, session, user, product, variant).items[0].id

        with pytest.raises(InsufficientStock):
            services.cart.update_quantity(session, user.id, item_id, 3)

    def test_line_of_another_cart_is_not_found(self, session, services, make_user, make_variant):
        owner, intruder = make_user(), make_user()
        product, variant = make_variant()
        item_id = _add(services, session, owner, product, variant).items[0].id

        with pytest.raises(NotFound):
            services.cart.remove_item(session, intruder.id, item_id)

    def test_remove_missing_item(self, session, services, make_user):
        with pytest.raises(NotFound):
            services.cart.remove_item(session, make_user().id, uuid.uuid4())

    def test_remove_and_clear(self, session, services, make_user, make_variant):
        user = make_user()
        p1, v1 = make_variant()
        p2, v2 = make_variant()
        _add(services, session, user, p1, v1)
        summary = _add(services, session, user, p2, v2)

        summary = services.cart.remove_item(session, user.id, summary.items[0].id)
        assert len(summary.items) == 1

        summary = services.cart.clear_cart(session, user.id)
        assert summary.items == []
        assert summary.total_price == 0.0


class TestValidate:
    def test_clean_cart(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant()
        _add(services, session, user, product, variant)

        result = services.cart.validate(session, user.id)
        assert result.valid
        assert result.issues == []

    def test_price_change_is_reported_once(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(price=20.0, stock=5)
        _add(services, session, user, product, variant)

        variant.price = 25.0
        session.add(variant)
        session.commit()

        result = services.cart.validate(session, user.id)
        assert not result.valid
        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.type == "price"
        assert (issue.old_price, issue.new_price) == (20.0, 25.0)
        assert result.cart.items[0].snapshot_price == 25.0

        rerun = services.cart.validate(session, user.id)
        assert rerun.valid
        assert rerun.issues == []

    def test_stock_shortfall_clamps(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=5)
        _add(services, session, user, product, variant, quantity=4)

        variant.stock = 2
        session.add(variant)
        session.commit()

        result = services.cart.validate(session, user.id)
        assert [i.type for i in result.issues] == ["stock"]
        assert result.issues[0].available_stock == 2
        assert result.cart.items[0].quantity == 2

    def test_sold_out_line_is_dropped(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant(stock=5)
        _add(services, session, user, product, variant, quantity=1)

        variant.stock = 0
        session.add(variant)
        session.commit()

        result = services.cart.validate(session, user.id)
        assert [i.type for i in result.issues] == ["stock"]
        assert result.cart.items == []

    def test_deactivated_product_is_removed(self, session, services, make_user, make_variant):
        user = make_user()
        product, variant = make_variant()
        _add(services, session, user, product, variant)

        product.is_active = False
        session.add(product)
        session.commit()

        result = services.cart.validate(session, user.id)
        assert [i.type for i in result.issues] == ["removed"]
        assert result.cart.items == []
