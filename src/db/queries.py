"""
Cached, named accessors for every backend call.

Queries return a QueryResult and never raise: until the actor for the
current identity is ready (and, for caller scoped queries, until someone is
logged in) they report loading. Queries are not retried. Mutations raise on
failure, leave cached data alone, and on success invalidate the keys listed
in ``db.invalidation``.
"""

from __future__ import annotations

import random
import string
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from db import invalidation as inv
from db.actor import ActorRegistry, StoreActor
from db.blob import ExternalBlob
from db.cache import CacheKey, QueryCache, QueryResult
from db.errors import ActorUnavailableError
from db.identity import AuthClient
from db.invalidation import MutationKind, keys_to_invalidate
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

T = TypeVar("T")
ActorCall = Callable[[StoreActor], Awaitable[T]]


def generate_id(prefix: str) -> str:
    """Client generated record id, e.g. ``order-1718000000000-k3j9x0a1b``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class StoreApi:
    def __init__(
        self,
        auth: AuthClient,
        actors: ActorRegistry,
        cache: Optional[QueryCache] = None,
    ) -> None:
        self._auth = auth
        self._actors = actors
        self.cache = cache if cache is not None else QueryCache()

    # ---------------------------
    # plumbing
    # ---------------------------

    def _ready_actor(self, requires_identity: bool = False) -> Optional[StoreActor]:
        identity = self._auth.identity
        if requires_identity and identity is None:
            return None
        return self._actors.current(identity)

    async def _query(
        self,
        key: CacheKey,
        call: ActorCall[T],
        *,
        requires_identity: bool = False,
        enabled: bool = True,
    ) -> QueryResult[T]:
        actor = self._ready_actor(requires_identity)
        if actor is None or not enabled:
            return QueryResult.loading()
        return await self.cache.fetch(key, lambda: call(actor))

    async def _mutate(self, kind: MutationKind, call: ActorCall[T], **params: Any) -> T:
        actor = self._ready_actor()
        if actor is None:
            raise ActorUnavailableError()

        _logger.info(f"{kind.value} {params}")
        try:
            result = await call(actor)
        except Exception as exc:
            _logger.warning(f"{kind.value} failed: {exc}")
            raise

        for key in keys_to_invalidate(kind, params):
            self.cache.invalidate(key)
        return result

    # ---------------------------
    # Identity & profile
    # ---------------------------

    async def get_caller_user_profile(self) -> QueryResult[Optional[UserProfile]]:
        return await self._query(
            inv.CURRENT_USER_PROFILE,
            lambda actor: actor.get_caller_user_profile(),
            requires_identity=True,
        )

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        await self._mutate(
            MutationKind.SAVE_PROFILE,
            lambda actor: actor.save_caller_user_profile(profile),
            profile=profile,
        )

    async def get_user_profile(self, principal: str) -> QueryResult[Optional[UserProfile]]:
        return await self._query(
            ("userProfile", principal),
            lambda actor: actor.get_user_profile(principal),
            enabled=bool(principal),
        )

    def _admin_key(self) -> CacheKey:
        return (*inv.IS_ADMIN, self._auth.identity.principal)

    async def is_caller_admin(self) -> QueryResult[bool]:
        """
        Whether the caller may use the admin panel. Fails closed: no identity
        or a failed call both mean False.
        """
        if self._auth.identity is None:
            return QueryResult(data=False)

        actor = self._ready_actor(requires_identity=True)
        if actor is None:
            return QueryResult.loading()

        async def call() -> bool:
            try:
                return bool(await actor.is_caller_admin())
            except Exception as exc:
                _logger.warning(f"isCallerAdmin failed, treating caller as non-admin: {exc}")
                return False

        result = await self.cache.fetch(self._admin_key(), call)
        if result.is_error:
            return QueryResult(data=False, is_fetched=True, error=result.error)
        return result

    def peek_is_caller_admin(self) -> QueryResult[bool]:
        """Admin status from the cache only; loading if it has not been fetched yet."""
        if self._auth.identity is None:
            return QueryResult(data=False)
        key = self._admin_key()
        if self.cache.is_stale(key):
            return QueryResult.loading()
        return QueryResult.success(bool(self.cache.peek(key)))

    async def get_caller_user_role(self) -> QueryResult[UserRole]:
        principal = self._auth.identity.principal if self._auth.identity else None
        return await self._query(
            (*inv.CALLER_USER_ROLE, principal),
            lambda actor: actor.get_caller_user_role(),
            requires_identity=True,
        )

    async def assign_caller_user_role(self, principal: str, role: UserRole) -> None:
        await self._mutate(
            MutationKind.ASSIGN_ROLE,
            lambda actor: actor.assign_caller_user_role(principal, role),
            principal=principal,
            role=role,
        )

    # ---------------------------
    # Categories
    # ---------------------------

    async def get_all_categories(self) -> QueryResult[List[str]]:
        return await self._query(inv.CATEGORIES, lambda actor: actor.get_all_categories())

    async def add_category(self, name: str) -> None:
        await self._mutate(
            MutationKind.ADD_CATEGORY, lambda actor: actor.add_category(name), name=name
        )

    async def delete_category(self, name: str) -> None:
        await self._mutate(
            MutationKind.DELETE_CATEGORY,
            lambda actor: actor.delete_category(name),
            name=name,
        )

    # ---------------------------
    # Products
    # ---------------------------

    async def get_active_products(self) -> QueryResult[List[Product]]:
        return await self._query(
            inv.ACTIVE_PRODUCTS, lambda actor: actor.get_active_products()
        )

    async def get_all_products(self) -> QueryResult[List[Product]]:
        return await self._query(inv.ALL_PRODUCTS, lambda actor: actor.get_all_products())

    async def get_featured_products(self) -> QueryResult[List[Product]]:
        return await self._query(
            inv.FEATURED_PRODUCTS, lambda actor: actor.get_featured_products()
        )

    async def get_products_by_category(self, category: str) -> QueryResult[List[Product]]:
        return await self._query(
            (*inv.PRODUCTS_BY_CATEGORY, category),
            lambda actor: actor.get_products_by_category(category),
            enabled=bool(category),
        )

    async def get_product(self, product_id: str) -> QueryResult[Optional[Product]]:
        return await self._query(
            inv.product_key(product_id),
            lambda actor: actor.get_product(product_id),
            enabled=bool(product_id),
        )

    async def add_product(
        self,
        product_id: str,
        name: str,
        description: str,
        price: int,
        offer: Optional[str],
        category: str,
    ) -> None:
        await self._mutate(
            MutationKind.ADD_PRODUCT,
            lambda actor: actor.add_product(
                product_id, name, description, price, offer, category
            ),
            product_id=product_id,
        )

    async def update_product(
        self,
        product_id: str,
        name: str,
        description: str,
        price: int,
        offer: Optional[str],
        category: str,
        is_active: bool,
    ) -> None:
        await self._mutate(
            MutationKind.UPDATE_PRODUCT,
            lambda actor: actor.update_product(
                product_id, name, description, price, offer, category, is_active
            ),
            product_id=product_id,
        )

    async def update_product_media(
        self,
        product_id: str,
        images: Sequence[ExternalBlob],
        videos: Sequence[ExternalBlob],
    ) -> None:
        await self._mutate(
            MutationKind.UPDATE_PRODUCT_MEDIA,
            lambda actor: actor.update_product_media(product_id, images, videos),
            product_id=product_id,
        )

    async def set_featured_products(self, product_ids: Sequence[str]) -> None:
        await self._mutate(
            MutationKind.SET_FEATURED_PRODUCTS,
            lambda actor: actor.set_featured_products(list(product_ids)),
            product_ids=list(product_ids),
        )

    async def increment_product_views(self, product_id: str) -> None:
        """Record a product view. Never raises; failures are only logged."""
        try:
            await self._mutate(
                MutationKind.INCREMENT_PRODUCT_VIEWS,
                lambda actor: actor.increment_product_views(product_id),
                product_id=product_id,
            )
        except Exception as exc:
            _logger.debug(f"View tracking for {product_id} dropped: {exc}")

    async def get_product_stats(self, product_id: str) -> QueryResult[Optional[ProductStats]]:
        return await self._query(
            ("productStats", product_id),
            lambda actor: actor.get_product_stats(product_id),
            enabled=bool(product_id),
        )

    async def get_all_product_stats(self) -> QueryResult[List[ProductStats]]:
        return await self._query(
            ("allProductStats",), lambda actor: actor.get_all_product_stats()
        )

    # ---------------------------
    # Orders
    # ---------------------------

    async def create_order(
        self,
        order_id: str,
        name: str,
        phone: str,
        address: str,
        cart: Sequence[CartItem],
    ) -> None:
        await self._mutate(
            MutationKind.CREATE_ORDER,
            lambda actor: actor.create_order(order_id, name, phone, address, list(cart)),
            order_id=order_id,
        )

    async def get_my_orders(self) -> QueryResult[List[Order]]:
        return await self._query(
            inv.MY_ORDERS, lambda actor: actor.get_my_orders(), requires_identity=True
        )

    async def get_all_orders(self) -> QueryResult[List[Order]]:
        return await self._query(inv.ALL_ORDERS, lambda actor: actor.get_all_orders())

    async def get_order(self, order_id: str) -> QueryResult[Order]:
        return await self._query(
            inv.order_key(order_id),
            lambda actor: actor.get_order(order_id),
            enabled=bool(order_id),
        )

    async def get_active_orders(self) -> QueryResult[List[Order]]:
        return await self._query(
            inv.ACTIVE_ORDERS, lambda actor: actor.get_active_orders()
        )

    async def get_completed_orders(self) -> QueryResult[List[Order]]:
        return await self._query(
            inv.COMPLETED_ORDERS, lambda actor: actor.get_completed_orders()
        )

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        await self._mutate(
            MutationKind.UPDATE_ORDER_STATUS,
            lambda actor: actor.update_order_status(order_id, status),
            order_id=order_id,
            status=status,
        )

    # ---------------------------
    # Store & wishlist
    # ---------------------------

    async def get_store_info(self) -> QueryResult[StoreInfo]:
        return await self._query(("storeInfo",), lambda actor: actor.get_store_info())

    async def get_system_stats(self) -> QueryResult[SystemStats]:
        return await self._query(("systemStats",), lambda actor: actor.get_system_stats())

    async def get_wishlist(self) -> QueryResult[List[str]]:
        return await self._query(
            inv.WISHLIST, lambda actor: actor.get_wishlist(), requires_identity=True
        )

    async def add_to_wishlist(self, product_id: str) -> None:
        await self._mutate(
            MutationKind.ADD_TO_WISHLIST,
            lambda actor: actor.add_to_wishlist(product_id),
            product_id=product_id,
        )

    async def remove_from_wishlist(self, product_id: str) -> None:
        await self._mutate(
            MutationKind.REMOVE_FROM_WISHLIST,
            lambda actor: actor.remove_from_wishlist(product_id),
            product_id=product_id,
        )
