# storefront/services/checkout_service.py
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import (
    Conflict,
    InsufficientStock,
    InvalidRequest,
    NotFound,
)
from storefront.database import transaction
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.product import Product, ProductVariant
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    CheckoutItem,
    CheckoutRequest,
    CustomerInfo,
    OrderWithItemsRead,
    ShippingAddress,
)
from storefront.services.cart_service import CartService
from storefront.services.inventory_service import InventoryLedger, ReservationLine
from storefront.services.order_service import build_order_detail
from storefront.services.pricing import calculate_totals, line_subtotal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricedLine:
    product: Product
    variant: ProductVariant
    quantity: int
    subtotal: float


def generate_order_number(now: datetime | None = None) -> str:
    """ORD-YYYYMMDD-XXXXXX, e.g. ORD-20260101-1A2B3C."""
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def merge_requested_items(items: list[CheckoutItem]) -> list[CheckoutItem]:
    """Collapse repeated (product, variant) pairs, summing quantities."""
    merged: dict[tuple[uuid.UUID, uuid.UUID], int] = {}
    for it in items:
        key = (it.product_id, it.variant_id)
        merged[key] = merged.get(key, 0) + it.quantity
    return [
        CheckoutItem(product_id=product_id, variant_id=variant_id, quantity=qty)
        for (product_id, variant_id), qty in merged.items()
    ]


class CheckoutService:
    """
    Turns requested items (or the customer's cart) into an order.

    Responsibilities:
      - validate the request (items, shipping, contact)
      - price every line from the live catalog, compute totals
      - persist the order, reserve stock and clear the cart as ONE
        transaction: either all of it is committed or none of it
      - make retries safe through an optional idempotency key
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        cart_service: CartService,
        inventory: InventoryLedger,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.cart_service = cart_service
        self.inventory = inventory

    # ---- internal helpers ----

    @staticmethod
    def _contact(customer: User, info: CustomerInfo | None) -> CustomerInfo:
        info = info or CustomerInfo()
        contact = CustomerInfo(
            name=info.name or customer.name,
            email=info.email or customer.email,
            phone=info.phone or customer.phone,
        )
        missing = [field for field in ("name", "email", "phone") if not getattr(contact, field)]
        if missing:
            raise InvalidRequest("Customer contact info is incomplete", missing=missing)
        return contact

    @staticmethod
    def _shipping(address: ShippingAddress | None) -> ShippingAddress:
        if address is None:
            raise InvalidRequest("Shipping address is required")
        return address

    def _items_from_cart(self, session: Session, customer: User) -> list[CheckoutItem]:
        """
        Validate the cart and use its lines.

        Any validation issue stops checkout: the corrected cart has already
        been saved and the customer must review it before retrying.
        """
        result = self.cart_service.validate(session, customer.id)
        if not result.valid:
            raise Conflict(
                "Cart changed since it was last reviewed; review and retry",
                issues=[issue.model_dump() for issue in result.issues],
            )
        return [
            CheckoutItem(
                product_id=line.product_id,
                variant_id=line.variant_id,
                quantity=line.quantity,
            )
            for line in result.cart.items
        ]

    def _price_line(self, session: Session, item: CheckoutItem) -> PricedLine:
        product = self.product_repo.get_by_id(session, item.product_id)
        if not product or not product.is_active:
            raise NotFound("Product", item.product_id)

        variant = self.product_repo.get_variant(session, item.product_id, item.variant_id)
        if not variant:
            raise NotFound("Variant", item.variant_id)

        if not self.inventory.check_availability(session, variant.id, item.quantity):
            raise InsufficientStock(
                variant_id=variant.id,
                requested=item.quantity,
                available=self.inventory.available(session, variant.id),
                product_name=product.name,
                variant_label=variant.label,
            )

        return PricedLine(
            product=product,
            variant=variant,
            quantity=item.quantity,
            subtotal=line_subtotal(variant.price, item.quantity),
        )

    def _replay(
        self,
        session: Session,
        customer: User,
        idempotency_key: str | None,
    ) -> OrderWithItemsRead | None:
        if not idempotency_key:
            return None
        existing = self.order_repo.get_by_idempotency_key(session, customer.id, idempotency_key)
        if existing is None:
            return None
        logger.info(
            "Checkout replay for customer %s (key %s) -> %s",
            customer.id,
            idempotency_key,
            existing.order_number,
        )
        return build_order_detail(
            existing, self.order_repo.list_items_for_order(session, existing.id)
        )

    # ---- public operation ----

    def checkout(
        self,
        session: Session,
        customer: User,
        payload: CheckoutRequest,
        idempotency_key: str | None = None,
    ) -> OrderWithItemsRead:
        """
        Create an order.

        Steps:
          1. Replay: same customer + idempotency key -> the original order.
          2. Validate shipping + contact (profile fills missing contact fields).
          3. Items: explicit list, or the validated cart when omitted.
          4. Resolve + price each line; live stock must cover it.
          5. Totals: subtotal, tax, shipping, total.
          6. One transaction:
               - insert the pending order and its line snapshots
               - reserve stock per line (atomic compare-and-decrement,
                 recorded against the order)
               - clear the cart
             Any failure rolls all of it back.
        """
        replay = self._replay(session, customer, idempotency_key)
        if replay is not None:
            return replay

        address = self._shipping(payload.shipping_address)
        contact = self._contact(customer, payload.customer_info)

        if payload.items is None:
            requested = self._items_from_cart(session, customer)
        else:
            requested = payload.items
        if not requested:
            raise InvalidRequest("Order must have at least one item")

        lines = [self._price_line(session, it) for it in merge_requested_items(requested)]
        totals = calculate_totals(line.subtotal for line in lines)

        try:
            with transaction(session, "checkout"):
                order = self.order_repo.create_order(
                    session,
                    Order(
                        order_number=generate_order_number(),
                        customer_id=customer.id,
                        customer_name=contact.name,
                        customer_email=contact.email,
                        customer_phone=contact.phone,
                        street=address.street,
                        city=address.city,
                        state=address.state,
                        zip_code=address.zip_code,
                        country=address.country,
                        subtotal=totals.subtotal,
                        tax=totals.tax,
                        shipping_cost=totals.shipping_cost,
                        total_amount=totals.total_amount,
                        status=OrderStatus.PENDING.value,
                        payment_method=payload.payment_method.value,
                        notes=payload.notes,
                        idempotency_key=idempotency_key,
                    ),
                )

                items = self.order_repo.create_items(
                    session,
                    [
                        OrderItem(
                            order_id=order.id,
                            product_id=line.product.id,
                            variant_id=line.variant.id,
                            product_name=line.product.name,
                            product_image=line.product.hero_image_url,
                            color=line.variant.color,
                            size=line.variant.size,
                            sku=line.variant.sku,
                            unit_price=line.variant.price,
                            quantity=line.quantity,
                            subtotal=line.subtotal,
                        )
                        for line in lines
                    ],
                )

                self.inventory.reserve_for_order(
                    session,
                    order.id,
                    [
                        ReservationLine(
                            product_id=line.product.id,
                            variant_id=line.variant.id,
                            quantity=line.quantity,
                            product_name=line.product.name,
                            variant_label=line.variant.label,
                        )
                        for line in lines
                    ],
                )

                cart = self.cart_repo.get_for_user(session, customer.id)
                if cart is not None:
                    self.cart_repo.clear(session, cart.id)
                    self.cart_repo.touch(session, cart)
        except Conflict:
            # Two requests with the same key raced; the other one won.
            replay = self._replay(session, customer, idempotency_key)
            if replay is not None:
                return replay
            raise

        logger.info(
            "Order %s created for customer %s: %d line(s), total %.2f",
            order.order_number,
            customer.id,
            len(items),
            totals.total_amount,
        )
        return build_order_detail(order, items)
