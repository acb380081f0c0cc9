from dataclasses import dataclass
from decimal import Decimal

from shared.config.settings import DELIVERY_FEE, FREE_DELIVERY_THRESHOLD, TAX_RATE
from shared.money import to_cents

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal


def quote(
    subtotal: Decimal,
    tax_rate: Decimal = TAX_RATE,
    delivery_fee: Decimal = DELIVERY_FEE,
    free_delivery_threshold: Decimal = FREE_DELIVERY_THRESHOLD,
) -> PriceQuote:
    """Tax and delivery for a cart subtotal; delivery is free strictly above the threshold."""
    subtotal = to_cents(subtotal)
    if subtotal <= 0:
        return PriceQuote(ZERO, ZERO, ZERO, ZERO)
    tax = to_cents(subtotal * tax_rate)
    fee = ZERO if subtotal > free_delivery_threshold else to_cents(delivery_fee)
    return PriceQuote(subtotal, tax, fee, subtotal + tax + fee)
