"""
Client side shopping cart.

A Cart is an immutable value: every operation returns a new Cart and leaves
the old one (and its lines) untouched. Totals are derived from the lines on
every read.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from db.models import CartItem, Product


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    name: str
    unit_price: int  # smallest currency unit, snapshot taken when first added
    image_url: str = ""

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> CartLine:
        image_url = product.images[0].get_direct_url() if product.images else ""
        return cls(product.id, quantity, product.name, product.price, image_url)


@dataclass(frozen=True)
class Cart:
    lines: Tuple[CartLine, ...] = ()

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> int:
        return sum(line.line_total for line in self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    def line(self, product_id: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def add(self, item: CartLine) -> Cart:
        """
        Merge item into the cart. An existing line only gains quantity; its
        name, price and image stay as they were when first added.
        """
        quantity = max(int(item.quantity), 1)
        if self.line(item.product_id) is None:
            new_line = replace(
                item, quantity=quantity, unit_price=max(int(item.unit_price), 0)
            )
            return Cart(self.lines + (new_line,))

        return Cart(
            tuple(
                replace(line, quantity=line.quantity + quantity)
                if line.product_id == item.product_id
                else line
                for line in self.lines
            )
        )

    def remove(self, product_id: str) -> Cart:
        if self.line(product_id) is None:
            return self
        return Cart(tuple(line for line in self.lines if line.product_id != product_id))

    def set_quantity(self, product_id: str, quantity: int) -> Cart:
        if self.line(product_id) is None:
            return self
        if quantity <= 0:
            return self.remove(product_id)
        return Cart(
            tuple(
                replace(line, quantity=int(quantity))
                if line.product_id == product_id
                else line
                for line in self.lines
            )
        )

    def clear(self) -> Cart:
        return Cart()

    def to_order_items(self) -> List[CartItem]:
        """The cart as sent to createOrder: product ids and quantities only."""
        return [CartItem(product_id=line.product_id, quantity=line.quantity) for line in self.lines]
