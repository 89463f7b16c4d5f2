from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, Vertical
from textual.widgets import Button, Input, Label, Rule

from db.errors import ValidationError
from db.queries import generate_id
from utils import routes
from utils.cart import CartLine
from utils.logger import get_logger
from utils.pure import format_price
from utils.validation import validate_checkout
from views.modal_dialog import DialogModal
from views.page_base import Page

_logger = get_logger(__name__)


class CartLineWidget(HorizontalGroup):
    def __init__(self, session, line: CartLine):
        super().__init__()
        self.session = session
        self.line = line

    def compose(self):
        with Container(id="div-item"):
            yield Label(self.line.name, id="label-item-name")
            yield Label(format_price(self.line.unit_price), id="label-item-price")
            yield Label(format_price(self.line.line_total), id="label-item-total")
        with Container(id="div-actions"):
            yield Button("-", id="btn-item-sub", disabled=self.line.quantity <= 1)
            yield Label(str(self.line.quantity), id="label-item-qty")
            yield Button("+", id="btn-item-add")
            yield Button("Remove", id="btn-item-remove", variant="error")

    @on(Button.Pressed, "#btn-item-sub")
    def handle_sub(self) -> None:
        self.session.update_cart_quantity(self.line.product_id, self.line.quantity - 1)

    @on(Button.Pressed, "#btn-item-add")
    def handle_add(self) -> None:
        self.session.update_cart_quantity(self.line.product_id, self.line.quantity + 1)

    @on(Button.Pressed, "#btn-item-remove")
    @work()
    async def handle_remove(self) -> None:
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                f"Remove {self.line.name} from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )
        if remove_confirmed:
            self.session.remove_from_cart(self.line.product_id)
            self.notify("Item removed from cart.")


class CheckoutPage(Page):
    """
    Cart review plus delivery details. Placing the order sends the cart
    (ids and quantities only) and, once it went through, empties the cart
    and returns home.
    """

    TITLE = "Checkout"

    def compose(self) -> ComposeResult:
        yield Button("< Continue Shopping", id="btn-back")
        yield Label("Your Cart", classes="title")
        yield Vertical(id="div-cart-lines")
        yield Label("", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Vertical(id="div-delivery"):
            yield Label("Delivery Details", classes="title")
            yield Label("Full Name")
            yield Input(placeholder="Your name", id="input-name")
            yield Label("Phone Number")
            yield Input(placeholder="+91 98765 43210", id="input-phone")
            yield Label("Delivery Address")
            yield Input(placeholder="House, street, city, PIN", id="input-address")
            yield Label(
                "Payment: Cash or UPI on delivery. We will call you to confirm.",
                id="label-payment-note",
            )
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Place Order", id="btn-place-order", variant="primary")

    def on_mount(self) -> None:
        self.cart_changed()
        self.reload()

    def reload(self) -> None:
        self.prefill_delivery()

    @work(exclusive=True, group="checkout-prefill")
    async def prefill_delivery(self) -> None:
        """Fill empty delivery fields from the saved profile."""
        profile = (await self.session.api.get_caller_user_profile()).data
        if profile is None:
            return
        for input_id, value in (
            ("#input-name", profile.name),
            ("#input-phone", profile.phone),
            ("#input-address", profile.address),
        ):
            field = self.query_one(input_id, Input)
            if value and not field.value:
                field.value = value

    def cart_changed(self) -> None:
        self.render_cart()

    @work(exclusive=True, group="checkout-cart")
    async def render_cart(self) -> None:
        cart = self.session.cart
        content = self.query_one("#div-cart-lines")
        await content.remove_children()

        if not cart.lines:
            await content.mount(Label("Your cart is empty", id="label-empty-cart"))
            content.add_class("no-items")
        else:
            await content.mount_all([CartLineWidget(self.session, line) for line in cart])
            content.remove_class("no-items")

        self.query_one("#label-cart-total", Label).update(
            f"Total ({cart.item_count} items): {format_price(cart.subtotal)}"
        )
        self.query_one("#btn-place-order", Button).disabled = not cart.lines
        self.query_one("#btn-clear-cart", Button).disabled = not cart.lines

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.session.navigate(routes.HOME)

    @on(Button.Pressed, "#btn-clear-cart")
    @work(exclusive=True)
    async def handle_clear_cart(self) -> None:
        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            self.session.clear_cart()

    @on(Button.Pressed, "#btn-place-order")
    @work(exclusive=True, group="place-order")
    async def handle_place_order(self) -> None:
        session = self.session
        try:
            details = validate_checkout(
                self.query_one("#input-name", Input).value,
                self.query_one("#input-phone", Input).value,
                self.query_one("#input-address", Input).value,
                session.identity,
            )
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return

        if not session.cart.lines:
            self.notify("Cart is empty.", severity="warning")
            return

        place_btn = self.query_one("#btn-place-order", Button)
        place_btn.disabled = True
        place_btn.label = "Placing Order..."
        try:
            await session.api.create_order(
                generate_id("order"),
                details.name,
                details.phone,
                details.address,
                session.cart.to_order_items(),
            )
        except Exception:
            _logger.exception("Placing order failed")
            self.notify("Failed to place order. Please try again.", severity="error")
            place_btn.disabled = False
            place_btn.label = "Place Order"
            return

        self.notify("Order placed successfully! We will contact you soon.")
        session.clear_cart()
        session.navigate(routes.HOME)
