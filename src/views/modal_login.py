from typing import Optional

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label


class LoginModal(ModalScreen[Optional[str]]):
    """
    Asks for the principal to log in as. Dismisses with it, or None on cancel.
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="div-login"):
            yield Label("Login", classes="title")
            yield Label("Principal")
            yield Input(placeholder="e.g. alice", id="input-login-principal")
            with Horizontal(id="div-login-btns"):
                yield Button("Cancel", id="btn-cancel")
                yield Button("Login", id="btn-login", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-principal").focus()

    def on_key(self, event: Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Input.Submitted, "#input-login-principal")
    @on(Button.Pressed, "#btn-login")
    def handle_login_submit(self) -> None:
        principal_input = self.query_one("#input-login-principal", Input)
        principal = principal_input.value.strip()
        if not principal:
            self.notify("Principal cannot be empty!", severity="error")
            principal_input.add_class("-invalid")
            principal_input.focus()
            return
        self.dismiss(principal)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
