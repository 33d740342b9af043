# storefront/repositories/cart_repo.py
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product, ProductVariant


class CartRepository:
    """
    Data access layer for carts and cart_items.

    NOTE:
      - No commits here; CartService wraps writes in a transaction.
    """

    # ---- Carts ----

    def get_for_user(self, session: Session, user_id: uuid.UUID) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id)
        return session.exec(stmt).first()

    def create(self, session: Session, user_id: uuid.UUID) -> Cart:
        cart = Cart(user_id=user_id)
        session.add(cart)
        session.flush()
        session.refresh(cart)
        return cart

    def touch(self, session: Session, cart: Cart) -> None:
        cart.updated_at = datetime.now(timezone.utc)
        session.add(cart)

    # ---- Items ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.added_at, CartItem.id)
        )
        return list(session.exec(stmt).all())

    def find_line(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id,
            CartItem.product_id == product_id,
            CartItem.variant_id == variant_id,
        )
        return session.exec(stmt).first()

    def get_item(
        self,
        session: Session,
        cart_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartItem | None:
        item = session.get(CartItem, item_id)
        if item is None or item.cart_id != cart_id:
            return None
        return item

    def add_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def save_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear(self, session: Session, cart_id: uuid.UUID) -> None:
        for row in self.list_items(session, cart_id):
            session.delete(row)
        session.flush()

    def new_line_from_variant(
        self,
        *,
        cart_id: uuid.UUID,
        product: Product,
        variant: ProductVariant,
        quantity: int,
    ) -> CartItem:
        """
        Build a CartItem snapshotting name / color / size / price from the
        live catalog. Business rules (stock, active flag) live in the service.
        """
        return CartItem(
            cart_id=cart_id,
            product_id=product.id,
            variant_id=variant.id,
            quantity=quantity,
            snapshot_price=variant.price,
            product_name=product.name,
            color=variant.color,
            size=variant.size,
        )
