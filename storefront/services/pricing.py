# storefront/services/pricing.py
from dataclasses import dataclass
from typing import Iterable

from storefront.core.config import get_settings


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    tax: float
    shipping_cost: float
    total_amount: float


def line_subtotal(unit_price: float, quantity: int) -> float:
    return round(unit_price * quantity, 2)


def calculate_totals(
    line_subtotals: Iterable[float],
    *,
    tax_rate: float | None = None,
    free_shipping_threshold: float | None = None,
    shipping_fee: float | None = None,
) -> OrderTotals:
    """
    Derive order totals from the line subtotals.

      - tax: tax_rate of the subtotal, rounded to cents
      - shipping: free when subtotal is strictly above the threshold,
        flat fee otherwise
      - total: subtotal + tax + shipping

    Rates default to the configured values.
    """
    settings = get_settings()
    if tax_rate is None:
        tax_rate = settings.TAX_RATE
    if free_shipping_threshold is None:
        free_shipping_threshold = settings.FREE_SHIPPING_THRESHOLD
    if shipping_fee is None:
        shipping_fee = settings.SHIPPING_FEE

    subtotal = round(sum(line_subtotals), 2)
    tax = round(subtotal * tax_rate, 2)
    shipping_cost = 0.0 if subtotal > free_shipping_threshold else float(shipping_fee)
    total_amount = round(subtotal + tax + shipping_cost, 2)

    return OrderTotals(
        subtotal=subtotal,
        tax=tax,
        shipping_cost=shipping_cost,
        total_amount=total_amount,
    )
