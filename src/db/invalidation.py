"""
Which cached queries each kind of mutation makes out of date.

Every mutation in ``db.queries`` looks its kind up here after succeeding, so
this table is the single statement of the invalidation policy.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping

from db.cache import CacheKey

# cache key roots shared by queries and this table
ACTIVE_PRODUCTS: CacheKey = ("activeProducts",)
ALL_PRODUCTS: CacheKey = ("allProducts",)
FEATURED_PRODUCTS: CacheKey = ("featuredProducts",)
PRODUCTS_BY_CATEGORY: CacheKey = ("productsByCategory",)
CATEGORIES: CacheKey = ("categories",)
MY_ORDERS: CacheKey = ("myOrders",)
ALL_ORDERS: CacheKey = ("allOrders",)
CURRENT_USER_PROFILE: CacheKey = ("currentUserProfile",)
IS_ADMIN: CacheKey = ("isAdmin",)
CALLER_USER_ROLE: CacheKey = ("callerUserRole",)
WISHLIST: CacheKey = ("wishlist",)
ACTIVE_ORDERS: CacheKey = ("activeOrders",)
COMPLETED_ORDERS: CacheKey = ("completedOrders",)


def product_key(product_id: str) -> CacheKey:
    return ("product", product_id)


def order_key(order_id: str) -> CacheKey:
    return ("order", order_id)


class MutationKind(str, Enum):
    ADD_PRODUCT = "addProduct"
    UPDATE_PRODUCT = "updateProduct"
    UPDATE_PRODUCT_MEDIA = "updateProductMedia"
    SET_FEATURED_PRODUCTS = "setFeaturedProducts"
    ADD_CATEGORY = "addCategory"
    DELETE_CATEGORY = "deleteCategory"
    CREATE_ORDER = "createOrder"
    UPDATE_ORDER_STATUS = "updateOrderStatus"
    SAVE_PROFILE = "saveCallerUserProfile"
    ASSIGN_ROLE = "assignCallerUserRole"
    ADD_TO_WISHLIST = "addToWishlist"
    REMOVE_FROM_WISHLIST = "removeFromWishlist"
    INCREMENT_PRODUCT_VIEWS = "incrementProductViews"


def _fixed(*keys: CacheKey) -> Callable[[Mapping[str, Any]], List[CacheKey]]:
    return lambda _params: list(keys)


def _with_product(*keys: CacheKey) -> Callable[[Mapping[str, Any]], List[CacheKey]]:
    return lambda params: [product_key(params["product_id"]), *keys]


INVALIDATIONS: Dict[MutationKind, Callable[[Mapping[str, Any]], List[CacheKey]]] = {
    MutationKind.ADD_PRODUCT: _fixed(ALL_PRODUCTS, ACTIVE_PRODUCTS),
    MutationKind.UPDATE_PRODUCT: _with_product(ALL_PRODUCTS, ACTIVE_PRODUCTS),
    MutationKind.UPDATE_PRODUCT_MEDIA: _with_product(ALL_PRODUCTS, ACTIVE_PRODUCTS),
    MutationKind.SET_FEATURED_PRODUCTS: _fixed(FEATURED_PRODUCTS),
    MutationKind.ADD_CATEGORY: _fixed(CATEGORIES, ALL_PRODUCTS, ACTIVE_PRODUCTS),
    MutationKind.DELETE_CATEGORY: _fixed(CATEGORIES, ALL_PRODUCTS, ACTIVE_PRODUCTS),
    MutationKind.CREATE_ORDER: _fixed(MY_ORDERS, ALL_ORDERS, ACTIVE_ORDERS),
    MutationKind.UPDATE_ORDER_STATUS: lambda params: [
        ALL_ORDERS,
        MY_ORDERS,
        ACTIVE_ORDERS,
        COMPLETED_ORDERS,
        order_key(params["order_id"]),
    ],
    MutationKind.SAVE_PROFILE: _fixed(CURRENT_USER_PROFILE),
    MutationKind.ASSIGN_ROLE: _fixed(IS_ADMIN, CALLER_USER_ROLE),
    MutationKind.ADD_TO_WISHLIST: _fixed(WISHLIST),
    MutationKind.REMOVE_FROM_WISHLIST: _fixed(WISHLIST),
    # view counts are fire-and-forget telemetry
    MutationKind.INCREMENT_PRODUCT_VIEWS: _fixed(),
}


def keys_to_invalidate(kind: MutationKind, params: Mapping[str, Any]) -> List[CacheKey]:
    return INVALIDATIONS[kind](params)
