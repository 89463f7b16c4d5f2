# provide dataclass models for records exchanged with the store backend

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from db.blob import ExternalBlob


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: int  # smallest currency unit
    category: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    offer: Optional[str] = None
    images: Tuple[ExternalBlob, ...] = ()
    videos: Tuple[ExternalBlob, ...] = ()


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    quantity: int
    price: int  # unit price at time of order


@dataclass(frozen=True)
class Order:
    id: str
    customer_id: str
    customer_name: str
    phone: str
    address: str
    total_price: int
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UserProfile:
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class ProductStats:
    id: str
    views: int
    wishlists: int
    sales: int


@dataclass(frozen=True)
class StoreInfo:
    name: str
    location: str
    hours: str
    contact_number: str
    google_maps_link: str
    rating: float
    review_count: int


@dataclass(frozen=True)
class SystemStats:
    total_products: int
    active_products: int
    total_orders: int
    pending_orders: int
    total_sales: int
