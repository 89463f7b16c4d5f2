"""
Fragment based routing: mapping between a location fragment such as
``#/product/sofa-1`` and a typed :class:`Route`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional

if TYPE_CHECKING:
    from utils.location import Location

RouteKind = Literal["home", "admin", "orders", "checkout", "product", "not-found"]

_PRODUCT_PATH = re.compile(r"/product/(.+)")


@dataclass(frozen=True)
class Route:
    kind: RouteKind
    product_id: Optional[str] = None

    @classmethod
    def product(cls, product_id: str) -> Route:
        return cls("product", product_id)


HOME = Route("home")
ADMIN = Route("admin")
ORDERS = Route("orders")
CHECKOUT = Route("checkout")
NOT_FOUND = Route("not-found")

_LITERAL_PATHS = {
    "/admin": ADMIN,
    "/orders": ORDERS,
    "/checkout": CHECKOUT,
}


def decode(fragment: str) -> Route:
    """
    Parse a location fragment into a Route. Never raises.

    - a single leading '#' is dropped
    - '' and '/' are home
    - '/admin', '/orders' and '/checkout' must match exactly
    - '/product/<rest>' keeps <rest> verbatim, slashes and escapes included
    - everything else is not-found
    """
    if not isinstance(fragment, str):
        return NOT_FOUND

    path = fragment[1:] if fragment.startswith("#") else fragment
    if not path or path == "/":
        return HOME

    if path in _LITERAL_PATHS:
        return _LITERAL_PATHS[path]

    match = _PRODUCT_PATH.fullmatch(path)
    if match:
        return Route.product(match.group(1))

    return NOT_FOUND


def encode(route: Route) -> str:
    """Canonical fragment for a route, used for programmatic navigation."""
    if route.kind == "product":
        return f"#/product/{route.product_id}"
    if route.kind == "home":
        return "#/"
    return f"#/{route.kind}"


def navigate(location: Location, route: Route) -> None:
    """Write the route into the location; observers hear about it asynchronously."""
    location.assign(encode(route))
