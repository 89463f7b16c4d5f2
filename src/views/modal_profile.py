from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

from db.models import UserProfile
from utils.logger import get_logger

_logger = get_logger(__name__)


class ProfileSetupModal(ModalScreen[bool]):
    """
    Shown once a logged in user turns out to have no profile yet.
    Returns True when the profile was saved.
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="div-profile"):
            yield Label("Welcome! Tell us about yourself", classes="title")
            yield Label("Name *")
            yield Input(placeholder="Enter your name", id="input-profile-name")
            yield Label("Phone")
            yield Input(placeholder="Phone number", id="input-profile-phone")
            yield Label("Address")
            yield Input(placeholder="Delivery address", id="input-profile-address")
            with Horizontal():
                yield Button("Later", id="btn-later")
                yield Button("Save Profile", id="btn-save", variant="primary")

    def on_mount(self):
        self.query_one("#input-profile-name").focus()

    @on(Button.Pressed, "#btn-later")
    def handle_later(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self):
        name_input = self.query_one("#input-profile-name", Input)
        name = name_input.value.strip()
        if not name:
            name_input.add_class("-invalid")
            name_input.focus()
            self.notify("Please enter your name.", severity="error")
            return

        profile = UserProfile(
            name=name,
            phone=self.query_one("#input-profile-phone", Input).value.strip() or None,
            address=self.query_one("#input-profile-address", Input).value.strip() or None,
        )
        try:
            await self.app.state.api.save_caller_user_profile(profile)
        except Exception:
            _logger.exception("Saving profile failed")
            self.notify("Failed to save profile.", severity="error")
            return

        self.notify("Profile saved.")
        self.dismiss(True)
