import argparse
from typing import Optional

from textual import on, work
from textual.app import App
from textual.binding import Binding

from db.backend import local_actor_factory
from db.errors import StoreError
from utils import routes
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    IdentityChangedMessage,
    QueryInvalidatedMessage,
    QuitRequestedMessage,
    RouteChangedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import SessionState
from views.base_screen import Sidebar, StorefrontScreen
from views.composition import PageKind, select_page
from views.modal_dialog import DialogModal
from views.modal_login import LoginModal
from views.modal_profile import ProfileSetupModal
from views.page_admin import AdminPage
from views.page_base import Page
from views.page_checkout import CheckoutPage
from views.page_home import HomePage
from views.page_orders import OrdersPage
from views.page_product import ProductPage
from views.page_status import AdminAccessBlockedPage, NotFoundPage

_logger = get_logger(__name__)

PAGES = {
    "home": HomePage,
    "checkout": CheckoutPage,
    "orders": OrdersPage,
    "admin": AdminPage,
    "admin-blocked": AdminAccessBlockedPage,
    "not-found": NotFoundPage,
}


class StorefrontApp(App):
    TITLE = "Woodcraft Furniture"

    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    CSS_PATH = "views/storefront.tcss"

    state: SessionState

    def __init__(self, fragment: str = "#/", state: Optional[SessionState] = None):
        super().__init__()
        self.state = state or SessionState.create(local_actor_factory(), fragment)
        self.current_page: Optional[Page] = None
        self._page_kind: Optional[PageKind] = None
        self._unsubscribe = []

    async def on_mount(self) -> None:
        self.storefront = StorefrontScreen()
        await self.push_screen(self.storefront)
        await self.state.start()

        state = self.state
        self._unsubscribe = [
            state.routes.subscribe(lambda route: self.post_message(RouteChangedMessage(route))),
            state.on_cart_change(lambda cart: self.post_message(CartChangedMessage())),
            state.api.cache.subscribe((), lambda key: self.post_message(QueryInvalidatedMessage(key))),
        ]
        self.storefront.query_one(Sidebar).refresh_user()
        self.show_route(state.routes.current)

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self.state.routes.close()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    def action_history_back(self) -> None:
        self.state.location.back()

    def action_history_forward(self) -> None:
        self.state.location.forward()

    # ---------------------------
    # Routing
    # ---------------------------

    @on(RouteChangedMessage)
    def handle_route_changed(self, message: RouteChangedMessage) -> None:
        self.show_route(message.route)

    @work(exclusive=True, group="route")
    async def show_route(self, route: routes.Route, force: bool = False) -> None:
        state = self.state
        kind = select_page(route, state.is_authenticated, state.api.peek_is_caller_admin())
        if kind is None:
            # admin check still running; show nothing until it answers
            await self._mount_page(None, route, force)
            kind = select_page(route, state.is_authenticated, await state.api.is_caller_admin())
        await self._mount_page(kind, route, force)

    async def _mount_page(self, kind: Optional[PageKind], route: routes.Route, force: bool) -> None:
        outlet = self.storefront.query_one("#page-outlet")
        same_page = (
            self.current_page is not None
            and kind == self._page_kind
            and (kind != "product" or self.current_page.product_id == route.product_id)
        )
        if same_page and not force:
            return

        await outlet.remove_children()
        self._page_kind = kind
        self.current_page = None
        if kind is None:
            self.storefront.sub_title = ""
            return

        if kind == "product":
            page = ProductPage(self.state, route.product_id)
        else:
            page = PAGES[kind](self.state)
        self.current_page = page
        self.storefront.sub_title = page.TITLE
        await outlet.mount(page)
        _logger.debug(f"showing {kind} for {routes.encode(route)}")

    # ---------------------------
    # Session events
    # ---------------------------

    @on(CartChangedMessage)
    def handle_cart_changed(self) -> None:
        self.storefront.query_one(Sidebar).refresh_cart()
        if self.current_page is not None:
            self.current_page.cart_changed()

    @on(QueryInvalidatedMessage)
    def handle_query_invalidated(self, message: QueryInvalidatedMessage) -> None:
        _logger.debug(f"invalidated {message.key}")
        if self.current_page is not None:
            self.current_page.reload()
        self.storefront.query_one(Sidebar).refresh_user()

    @on(IdentityChangedMessage)
    def handle_identity_changed(self) -> None:
        self.storefront.query_one(Sidebar).refresh_user()
        self.show_route(self.state.routes.current, force=True)
        if self.state.is_authenticated:
            self.check_profile()

    @work(exclusive=True, group="profile")
    async def check_profile(self) -> None:
        profile = await self.state.api.get_caller_user_profile()
        if profile.is_fetched and not profile.is_error and profile.data is None:
            await self.push_screen_wait(ProfileSetupModal())

    @on(UserLoginMessage)
    @work(exclusive=True, group="auth")
    async def handle_user_login(self) -> None:
        principal = await self.push_screen_wait(LoginModal())
        if not principal:
            return
        try:
            identity = await self.state.login(principal)
        except (StoreError, ValueError) as e:
            _logger.warning(f"Login failed: {e}")
            self.notify(f"Login failed: {e}", severity="error")
            return
        self.notify(f"Logged in as {identity.principal}.")
        self.post_message(IdentityChangedMessage())

    @on(UserLogoutMessage)
    @work(exclusive=True, group="auth")
    async def handle_user_logout(self) -> None:
        if not await self.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return
        await self.state.logout()
        self.notify("Logout successful.")
        self.post_message(IdentityChangedMessage())

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        if self.state.is_authenticated:
            await self.state.auth.clear()
        self.exit()


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="storefront", description="Furniture storefront")
    parser.add_argument(
        "fragment",
        nargs="?",
        default="#/",
        help="location to open at, e.g. '#/product/sofa-1'",
    )
    args = parser.parse_args(argv)

    app = StorefrontApp(args.fragment)
    app.run()


if __name__ == "__main__":
    main()
