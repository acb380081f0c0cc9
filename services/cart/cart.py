"""
Cart state owned by a single storefront client.

Lives for one browsing session (page load until cleared or reloaded) and
never touches the server; ``to_checkout_request`` produces the body posted
to ``/payments/create-checkout-session``. The storefront client is its only
consumer, so no server route imports this package.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from services.payment_service.schemas import CheckoutItem, CheckoutRequest, DeliveryInfo
from shared.money import to_cents
from .pricing import PriceQuote, quote


@dataclass
class CartLine:
    item_id: str
    name: str
    price: Decimal  # snapshot taken when first added
    quantity: int
    image: Optional[str] = None
    slug: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Cart:
    def __init__(self):
        # Keyed by menu item id; insertion order is display order
        self._lines: dict[str, CartLine] = {}

    def __len__(self):
        return len(self._lines)

    def __contains__(self, item_id) -> bool:
        return str(item_id) in self._lines

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def subtotal(self) -> Decimal:
        return to_cents(sum((line.line_total for line in self._lines.values()), Decimal("0")))

    def quote(self) -> PriceQuote:
        return quote(self.subtotal)

    def add_item(self, menu_item, quantity: int = 1) -> CartLine:
        """Adds a menu item (any object with id, name, price, image) or merges into its line."""
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        item_id = str(menu_item.id)
        line = self._lines.get(item_id)
        if line:
            line.quantity += quantity
            return line

        line = CartLine(
            item_id=item_id,
            name=menu_item.name,
            price=to_cents(menu_item.price),
            quantity=quantity,
            image=getattr(menu_item, "image", None),
            slug=getattr(menu_item, "slug", None),
        )
        self._lines[item_id] = line
        return line

    def remove_item(self, item_id) -> None:
        self._lines.pop(str(item_id), None)

    def update_quantity(self, item_id, quantity: int) -> None:
        """Sets a line's quantity; zero or less removes the line."""
        item_id = str(item_id)
        if quantity <= 0:
            self._lines.pop(item_id, None)
        elif item_id in self._lines:
            self._lines[item_id].quantity = quantity

    def clear(self) -> None:
        self._lines.clear()

    def to_checkout_request(self, delivery_info: DeliveryInfo) -> CheckoutRequest:
        if not self._lines:
            raise ValueError("cart is empty")
        q = self.quote()
        return CheckoutRequest(
            items=[
                CheckoutItem(name=line.name, price=line.price, quantity=line.quantity, image=line.image)
                for line in self._lines.values()
            ],
            delivery_info=delivery_info,
            subtotal=q.subtotal,
            tax=q.tax,
            delivery_fee=q.delivery_fee,
            total=q.total,
        )
