from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Label

from utils import routes
from utils.messages import UserLoginMessage
from views.page_base import Page


class AdminAccessBlockedPage(Page):
    """
    Shown for the admin route to anonymous visitors and to logged in users
    without the admin role. Only the former get a login button.
    """

    TITLE = "Access Restricted"

    def compose(self) -> ComposeResult:
        with Vertical(id="div-status"):
            yield Label("Access Restricted", classes="title")
            yield Label("", id="label-blocked-reason")
            with Horizontal(id="div-status-btns"):
                yield Button("Login", id="btn-login", variant="primary")
                yield Button("Go to Home", id="btn-home")

    def on_mount(self) -> None:
        self.reload()

    def reload(self) -> None:
        authenticated = self.session.is_authenticated
        self.query_one("#label-blocked-reason", Label).update(
            "You don't have permission to access the Admin Panel. "
            "This area is restricted to administrators only."
            if authenticated
            else "You need to be logged in to access the Admin Panel. "
            "Please login to continue."
        )
        login_btn = self.query_one("#btn-login", Button)
        login_btn.display = not authenticated
        login_btn.disabled = self.session.auth.status == "logging-in"

    @on(Button.Pressed, "#btn-login")
    def handle_login(self) -> None:
        self.post_message(UserLoginMessage())

    @on(Button.Pressed, "#btn-home")
    def handle_home(self) -> None:
        self.session.navigate(routes.HOME)


class NotFoundPage(Page):
    TITLE = "Page Not Found"

    def compose(self) -> ComposeResult:
        with Vertical(id="div-status"):
            yield Label("Page Not Found", classes="title")
            yield Label("The page you are looking for does not exist.")
            yield Button("Go to Home", id="btn-home", variant="primary")

    @on(Button.Pressed, "#btn-home")
    def handle_home(self) -> None:
        self.session.navigate(routes.HOME)
