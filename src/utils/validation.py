"""Form checks that run before anything is sent to the backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from db.errors import ValidationError
from db.identity import Identity


@dataclass(frozen=True)
class DeliveryDetails:
    name: str
    phone: str
    address: str


@dataclass(frozen=True)
class ProductForm:
    name: str
    description: str
    price: int
    offer: Optional[str]
    category: str


def validate_checkout(
    name: str, phone: str, address: str, identity: Optional[Identity]
) -> DeliveryDetails:
    name, phone, address = (name or "").strip(), (phone or "").strip(), (address or "").strip()
    if not name or not phone or not address:
        raise ValidationError("Please fill in all fields")
    if identity is None:
        raise ValidationError("Please login to place an order")
    return DeliveryDetails(name=name, phone=phone, address=address)


def parse_price(text: str) -> int:
    """Positive price typed by an admin, rounded to a whole currency amount."""
    try:
        value = float((text or "").strip())
    except ValueError:
        raise ValidationError("Please enter a valid price") from None
    if value != value or value <= 0 or value == float("inf"):
        raise ValidationError("Please enter a valid price")
    return int(round(value))


def validate_product(
    name: str,
    description: str,
    price: str,
    offer: str = "",
    category: str = "",
) -> ProductForm:
    name, description = (name or "").strip(), (description or "").strip()
    if not name or not description or not (price or "").strip():
        raise ValidationError(
            "Please fill in all required fields (Name, Description, Price)"
        )
    return ProductForm(
        name=name,
        description=description,
        price=parse_price(price),
        offer=(offer or "").strip() or None,
        category=(category or "").strip(),
    )


def validate_category(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name cannot be empty")
    return name
