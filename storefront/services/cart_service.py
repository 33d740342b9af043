# storefront/services/cart_service.py
import uuid

from sqlmodel import Session

from storefront.core.errors import InsufficientStock, NotFound
from storefront.database import transaction
from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product, ProductVariant
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import (
    CartIssue,
    CartItemCreate,
    CartItemRead,
    CartSummary,
    CartValidationResult,
)


def cart_totals(items: list[CartItem]) -> tuple[int, float]:
    """(total_items, total_price) derived from the lines."""
    total_items = sum(it.quantity for it in items)
    total_price = round(sum(it.quantity * it.snapshot_price for it in items), 2)
    return total_items, total_price


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - lazily create the customer's cart
      - validate product existence, active flag and variant ownership
      - enforce quantity <= live stock when lines grow
      - snapshot name / color / size / price from the variant on add
      - re-check every line against the catalog (validate)
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _get_or_create_cart(self, session: Session, user_id: uuid.UUID) -> Cart:
        cart = self.cart_repo.get_for_user(session, user_id)
        if cart is None:
            cart = self.cart_repo.create(session, user_id)
        return cart

    def _get_purchasable(
        self,
        session: Session,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> tuple[Product, ProductVariant]:
        product = self.product_repo.get_by_id(session, product_id)
        if not product or not product.is_active:
            raise NotFound("Product", product_id)

        variant = self.product_repo.get_variant(session, product_id, variant_id)
        if not variant:
            raise NotFound("Variant", variant_id)

        return product, variant

    def _get_line(self, session: Session, cart: Cart, item_id: uuid.UUID) -> CartItem:
        item = self.cart_repo.get_item(session, cart.id, item_id)
        if not item:
            raise NotFound("Cart item", item_id)
        return item

    def _summary(self, session: Session, cart: Cart) -> CartSummary:
        items = self.cart_repo.list_items(session, cart.id)
        total_items, total_price = cart_totals(items)

        return CartSummary(
            id=cart.id,
            user_id=cart.user_id,
            items=[
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    variant_id=it.variant_id,
                    product_name=it.product_name,
                    color=it.color,
                    size=it.size,
                    quantity=it.quantity,
                    snapshot_price=it.snapshot_price,
                    line_total=round(it.quantity * it.snapshot_price, 2),
                    added_at=it.added_at,
                )
                for it in items
            ],
            total_items=total_items,
            total_price=total_price,
            updated_at=cart.updated_at,
        )

    # ---- public operations ----

    def get_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Return the cart summary, creating an empty cart on first access.
        """
        with transaction(session, "get_cart"):
            cart = self._get_or_create_cart(session, user_id)
        return self._summary(session, cart)

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a variant to the user's cart.

        Rules:
          - product must exist and be active, variant must belong to it
          - existing (product, variant) line: quantities are summed
          - merged quantity <= live stock
          - new lines snapshot price / color / size from the variant
        """
        with transaction(session, "add_to_cart"):
            product, variant = self._get_purchasable(
                session, payload.product_id, payload.variant_id
            )
            cart = self._get_or_create_cart(session, user_id)
            existing = self.cart_repo.find_line(
                session, cart.id, payload.product_id, payload.variant_id
            )

            new_qty = payload.quantity + (existing.quantity if existing else 0)
            if new_qty > variant.stock:
                raise InsufficientStock(
                    variant_id=variant.id,
                    requested=new_qty,
                    available=variant.stock,
                    product_name=product.name,
                    variant_label=variant.label,
                )

            if existing:
                existing.quantity = new_qty
                self.cart_repo.save_item(session, existing)
            else:
                self.cart_repo.add_item(
                    session,
                    self.cart_repo.new_line_from_variant(
                        cart_id=cart.id,
                        product=product,
                        variant=variant,
                        quantity=payload.quantity,
                    ),
                )
            self.cart_repo.touch(session, cart)

        return self._summary(session, cart)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
    ) -> CartSummary:
        """
        Replace the quantity of a line.

        quantity <= 0 removes the line. The price snapshot is kept as is.
        """
        with transaction(session, "update_cart_item"):
            cart = self._get_or_create_cart(session, user_id)
            item = self._get_line(session, cart, item_id)

            if quantity <= 0:
                self.cart_repo.delete_item(session, item)
            else:
                stock = self._live_stock(session, item)
                if stock is not None and quantity > stock:
                    raise InsufficientStock(
                        variant_id=item.variant_id,
                        requested=quantity,
                        available=stock,
                        product_name=item.product_name,
                    )
                item.quantity = quantity
                self.cart_repo.save_item(session, item)
            self.cart_repo.touch(session, cart)

        return self._summary(session, cart)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartSummary:
        """
        Remove a line from the cart and return updated summary.
        """
        with transaction(session, "remove_cart_item"):
            cart = self._get_or_create_cart(session, user_id)
            item = self._get_line(session, cart, item_id)
            self.cart_repo.delete_item(session, item)
            self.cart_repo.touch(session, cart)

        return self._summary(session, cart)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        with transaction(session, "clear_cart"):
            cart = self._get_or_create_cart(session, user_id)
            self.cart_repo.clear(session, cart.id)
            self.cart_repo.touch(session, cart)

        return self._summary(session, cart)

    def validate(self, session: Session, user_id: uuid.UUID) -> CartValidationResult:
        """
        Re-check every line against the live catalog.

          - product inactive / deleted, or variant deleted -> "removed",
            line dropped
          - live stock below quantity -> "stock", quantity clamped to the
            stock (line dropped when nothing is left)
          - live price differs from the snapshot -> "price", snapshot
            refreshed

        The cart is only written when at least one issue was found.
        """
        issues: list[CartIssue] = []

        with transaction(session, "validate_cart"):
            cart = self._get_or_create_cart(session, user_id)

            for item in self.cart_repo.list_items(session, cart.id):
                product = self.product_repo.get_by_id(session, item.product_id)
                if not product or not product.is_active:
                    issues.append(
                        CartIssue(
                            item_id=item.id,
                            type="removed",
                            message="Product is no longer available",
                        )
                    )
                    self.cart_repo.delete_item(session, item)
                    continue

                variant = self.product_repo.get_variant(
                    session, item.product_id, item.variant_id
                )
                if not variant:
                    issues.append(
                        CartIssue(
                            item_id=item.id,
                            type="removed",
                            message="Variant is no longer available",
                        )
                    )
                    self.cart_repo.delete_item(session, item)
                    continue

                changed = False

                if variant.stock < item.quantity:
                    issues.append(
                        CartIssue(
                            item_id=item.id,
                            type="stock",
                            message=f"Only {variant.stock} items available",
                            available_stock=variant.stock,
                        )
                    )
                    item.quantity = variant.stock
                    changed = True

                if variant.price != item.snapshot_price:
                    issues.append(
                        CartIssue(
                            item_id=item.id,
                            type="price",
                            message="Price has changed",
                            old_price=item.snapshot_price,
                            new_price=variant.price,
                        )
                    )
                    item.snapshot_price = variant.price
                    changed = True

                if item.quantity <= 0:
                    self.cart_repo.delete_item(session, item)
                elif changed:
                    self.cart_repo.save_item(session, item)

            if issues:
                self.cart_repo.touch(session, cart)

        return CartValidationResult(
            valid=not issues,
            issues=issues,
            cart=self._summary(session, cart),
        )

    def _live_stock(self, session: Session, item: CartItem) -> int | None:
        variant = self.product_repo.get_variant(session, item.product_id, item.variant_id)
        return variant.stock if variant else None
