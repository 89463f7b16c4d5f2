from typing import Literal, Optional

from db.cache import QueryResult
from utils.routes import Route

PageKind = Literal[
    "home",
    "product",
    "checkout",
    "orders",
    "admin",
    "admin-blocked",
    "not-found",
]


def select_page(
    route: Route, is_authenticated: bool, admin_status: QueryResult[bool]
) -> Optional[PageKind]:
    """
    Pick the one page to show for a route. None means show nothing yet.

    The admin panel needs a logged in caller whose admin check came back
    True. Anonymous callers are blocked straight away, whatever an older
    admin answer may say; while the check is still running nothing is shown.
    """
    if route.kind != "admin":
        if route.kind in ("home", "product", "checkout", "orders"):
            return route.kind
        return "not-found"

    if not is_authenticated:
        return "admin-blocked"
    if admin_status.is_loading:
        return None
    if admin_status.data is True:
        return "admin"
    return "admin-blocked"
