from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils import routes
from utils.messages import UserLoginMessage, UserLogoutMessage
from utils.pure import format_price, generate_markdown_table
from views.modal_dialog import QuitDialogModal

# menu entries: list item id suffix -> (label, route)
MENU = {
    "home": ("Home", routes.HOME),
    "orders": ("My Orders", routes.ORDERS),
    "checkout": ("Cart & Checkout", routes.CHECKOUT),
}
ADMIN_MENU = {"admin": ("Admin Panel", routes.ADMIN)}


class Sidebar(Container):
    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Login", id="btn-auth", variant="primary")
        yield Label("Cart: empty", id="label-cart-summary")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    def on_mount(self):
        self.refresh_user()
        self.refresh_cart()

    @work(exclusive=True, group="sidebar-user")
    async def refresh_user(self) -> None:
        state = self.app.state
        btn_auth = self.query_one("#btn-auth", Button)

        if not state.is_authenticated:
            rows = [["User", "-"], ["Role", "Guest"]]
            btn_auth.label = "Login"
            btn_auth.variant = "primary"
            is_admin = False
        else:
            profile = await state.api.get_caller_user_profile()
            admin_status = await state.api.is_caller_admin()
            is_admin = admin_status.data is True
            name = profile.data.name if profile.data else "-"
            rows = [
                ["Principal", state.identity.principal],
                ["Name", name],
                ["Role", "Admin" if is_admin else "Customer"],
            ]
            btn_auth.label = "Logout"
            btn_auth.variant = "error"

        await self.query_one("#md-userinfo", Markdown).update(
            generate_markdown_table(None, rows, ["l", "l"])
        )

        entries = {**MENU, **(ADMIN_MENU if is_admin else {})}
        list_menu = self.query_one("#list-menu", ListView)
        await list_menu.clear()
        await list_menu.extend(
            [ListItem(Label(label), id="list-menu-item-" + key) for key, (label, _) in entries.items()]
        )

    def refresh_cart(self) -> None:
        cart = self.app.state.cart
        summary = (
            f"Cart: {cart.item_count} item(s), {format_price(cart.subtotal)}"
            if cart.item_count
            else "Cart: empty"
        )
        self.query_one("#label-cart-summary", Label).update(summary)

    @on(ListView.Selected, "#list-menu")
    def handle_menu_selected(self, event: ListView.Selected) -> None:
        key = event.item.id.removeprefix("list-menu-item-")
        _, route = {**MENU, **ADMIN_MENU}[key]
        self.app.state.navigate(route)

    @on(Button.Pressed, "#btn-auth")
    def handle_auth(self) -> None:
        if self.app.state.is_authenticated:
            self.post_message(UserLogoutMessage())
        else:
            self.post_message(UserLoginMessage())


class StorefrontScreen(Screen):
    """
    The storefront's single screen: header, sidebar, footer and the outlet
    the current page is mounted into.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
        Binding("alt+left", "app.history_back", "Back", show=True),
        Binding("alt+right", "app.history_forward", "Forward", show=False),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Sidebar()
        yield Container(id="page-outlet")
        yield Footer(show_command_palette=False)

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
