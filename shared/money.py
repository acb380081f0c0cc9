from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

CENT = Decimal("0.01")
TOLERANCE = CENT


def to_cents(value) -> Decimal:
    """Quantises a number to currency precision, rounding half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value) -> Optional[Decimal]:
    """Parses gateway metadata strings; returns None when absent or malformed."""
    if value is None or str(value).strip() == "":
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return to_cents(amount)


def from_minor_units(amount: Optional[int]) -> Decimal:
    return to_cents(Decimal(amount or 0) / 100)


def to_minor_units(amount: Decimal) -> int:
    return int((to_cents(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def amounts_match(a: Decimal, b: Decimal) -> bool:
    return abs(to_cents(a) - to_cents(b)) <= TOLERANCE
