"""
The transport handle ("actor") through which every backend call is issued,
and the registry that keeps exactly one of them per identity.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from db.blob import ExternalBlob
from db.identity import Identity
from db.models import (
    CartItem,
    Order,
    OrderStatus,
    Product,
    ProductStats,
    StoreInfo,
    SystemStats,
    UserProfile,
    UserRole,
)
from utils.logger import get_logger

_logger = get_logger(__name__)


class StoreActor(Protocol):
    """Backend RPC surface. Every call is scoped to the actor's identity."""

    # catalog
    async def get_active_products(self) -> List[Product]: ...
    async def get_all_products(self) -> List[Product]: ...
    async def get_product(self, product_id: str) -> Optional[Product]: ...
    async def get_featured_products(self) -> List[Product]: ...
    async def set_featured_products(self, product_ids: Sequence[str]) -> None: ...
    async def get_products_by_category(self, category: str) -> List[Product]: ...
    async def get_all_categories(self) -> List[str]: ...
    async def add_category(self, name: str) -> None: ...
    async def delete_category(self, name: str) -> None: ...
    async def add_product(
        self,
        product_id: str,
        name: str,
        description: str,
        price: int,
        offer: Optional[str],
        category: str,
    ) -> None: ...
    async def update_product(
        self,
        product_id: str,
        name: str,
        description: str,
        price: int,
        offer: Optional[str],
        category: str,
        is_active: bool,
    ) -> None: ...
    async def update_product_media(
        self,
        product_id: str,
        images: Sequence[ExternalBlob],
        videos: Sequence[ExternalBlob],
    ) -> None: ...
    async def increment_product_views(self, product_id: str) -> None: ...
    async def get_product_stats(self, product_id: str) -> Optional[ProductStats]: ...
    async def get_all_product_stats(self) -> List[ProductStats]: ...

    # orders
    async def create_order(
        self,
        order_id: str,
        name: str,
        phone: str,
        address: str,
        cart: Sequence[CartItem],
    ) -> None: ...
    async def get_my_orders(self) -> List[Order]: ...
    async def get_all_orders(self) -> List[Order]: ...
    async def get_order(self, order_id: str) -> Order: ...
    async def update_order_status(self, order_id: str, status: OrderStatus) -> None: ...
    async def get_active_orders(self) -> List[Order]: ...
    async def get_completed_orders(self) -> List[Order]: ...

    # identity and profile
    async def get_caller_user_profile(self) -> Optional[UserProfile]: ...
    async def save_caller_user_profile(self, profile: UserProfile) -> None: ...
    async def get_user_profile(self, principal: str) -> Optional[UserProfile]: ...
    async def is_caller_admin(self) -> bool: ...
    async def get_caller_user_role(self) -> UserRole: ...
    async def assign_caller_user_role(self, principal: str, role: UserRole) -> None: ...

    # store and wishlist
    async def get_store_info(self) -> StoreInfo: ...
    async def get_system_stats(self) -> SystemStats: ...
    async def get_wishlist(self) -> List[str]: ...
    async def add_to_wishlist(self, product_id: str) -> None: ...
    async def remove_from_wishlist(self, product_id: str) -> None: ...


ActorFactory = Callable[[Optional[Identity]], Awaitable[StoreActor]]


class ActorRegistry:
    """
    Keyed cache of transport handles: one actor per identity key, anonymous
    callers included. Asking for a different identity discards the previous
    actor and builds a new one.
    """

    def __init__(self, factory: ActorFactory) -> None:
        self._factory = factory
        self._key: Optional[str] = None
        self._actor: Optional[StoreActor] = None
        self.is_fetching = False
        self._lock = asyncio.Lock()

    @staticmethod
    def key_for(identity: Optional[Identity]) -> str:
        return identity.principal if identity is not None else "<anonymous>"

    def current(self, identity: Optional[Identity]) -> Optional[StoreActor]:
        """The ready actor for identity, or None if it is missing or still being built."""
        if self.is_fetching or self._key != self.key_for(identity):
            return None
        return self._actor

    async def ensure(self, identity: Optional[Identity]) -> StoreActor:
        key = self.key_for(identity)
        async with self._lock:
            if self._actor is not None and self._key == key:
                return self._actor

            self.is_fetching = True
            try:
                if self._actor is not None:
                    _logger.debug(f"Dropping actor for {self._key}")
                self._actor = None
                self._key = key
                self._actor = await self._factory(identity)
                _logger.info(f"Actor ready for {key}")
            except Exception:
                self._key = None
                raise
            finally:
                self.is_fetching = False
            return self._actor
