from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.validation import Number
from textual.widgets import Button, Input, Label, Markdown

from db.cache import QueryResult
from db.models import Product
from utils import routes
from utils.cart import CartLine
from utils.logger import get_logger
from utils.pure import format_price, generate_markdown_table
from views.page_base import Page

_logger = get_logger(__name__)


def product_markdown(result: QueryResult[Product]) -> str:
    if result.is_loading:
        return "### Loading..."
    if result.is_error:
        return "### Failed to load product\n\nPlease try again later."
    prod = result.data
    if prod is None:
        return "### Product not found"

    rows = [
        ["Price", format_price(prod.price)],
        ["Category", prod.category or "Uncategorized"],
        ["Offer", prod.offer or "-"],
        ["Images", len(prod.images)],
        ["Videos", len(prod.videos)],
    ]
    return f"### {prod.name}\n\n{prod.description}\n\n" + generate_markdown_table(
        ["Attribute", "Value"], rows, ["l", "l"]
    )


class ProductPage(Page):
    """
    Product detail with a quantity selector.
    A view is recorded once per visit, and only for logged in users.
    """

    TITLE = "Product"

    order_qty = reactive(1)

    def __init__(self, session, product_id: str, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.product_id = product_id
        self._prod: Optional[Product] = None
        self._view_recorded = False

    def compose(self) -> ComposeResult:
        yield Button("< Back to Products", id="btn-back")
        yield Markdown("", id="md-product")
        with Vertical(id="div-order"):
            yield Label("Quantity")
            with Horizontal():
                yield Button("-", id="btn-sub-qty")
                yield Input(
                    value="1",
                    id="input-order-qty",
                    type="integer",
                    validators=[Number(minimum=1)],
                )
                yield Button("+", id="btn-add-qty")
            with Horizontal():
                yield Button("Add to Cart", id="btn-addcart", variant="primary")
                yield Button("Buy Now", id="btn-buynow", variant="success")
                yield Button("Wishlist", id="btn-wishlist")

    def on_mount(self) -> None:
        self.reload()

    def reload(self) -> None:
        self.load_product()

    @work(exclusive=True, group="product")
    async def load_product(self) -> None:
        api = self.session.api
        md = self.query_one("#md-product", Markdown)
        result = await api.get_product(self.product_id)
        if result.is_error:
            _logger.warning(f"Loading product {self.product_id} failed: {result.error}")

        await md.update(product_markdown(result))
        self._prod = result.data if result.is_fetched else None
        self._set_orderable(self._prod is not None)
        if self._prod is None:
            return

        wishlist_btn = self.query_one("#btn-wishlist", Button)
        wishlist_btn.display = self.session.is_authenticated
        if self.session.is_authenticated:
            wishlist = await api.get_wishlist()
            in_wishlist = self._prod.id in (wishlist.data or [])
            wishlist_btn.label = "Remove from Wishlist" if in_wishlist else "Add to Wishlist"

            if not self._view_recorded:
                self._view_recorded = True
                await api.increment_product_views(self._prod.id)

    def _set_orderable(self, enabled: bool) -> None:
        for btn_id in ("#btn-addcart", "#btn-buynow", "#btn-add-qty", "#input-order-qty"):
            self.query_one(btn_id).disabled = not enabled
        self.query_one("#btn-sub-qty").disabled = not enabled or self.order_qty <= 1

    def validate_order_qty(self, qty: int) -> int:
        return max(qty, 1)

    def watch_order_qty(self, qty: int) -> None:
        self.query_one("#btn-sub-qty", Button).disabled = qty <= 1
        qty_input = self.query_one("#input-order-qty", Input)
        if qty_input.value != str(qty):
            qty_input.value = str(qty)

    @on(Input.Changed, "#input-order-qty")
    def handle_qty_input(self, message: Input.Changed) -> None:
        if message.value and message.input.is_valid:
            self.order_qty = int(message.value)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self) -> None:
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self) -> None:
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.session.navigate(routes.HOME)

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self) -> None:
        if self._prod is None:
            return
        self.session.add_to_cart(CartLine.from_product(self._prod, self.order_qty))
        self.notify(f"Added {self.order_qty} x {self._prod.name} to cart.")

    @on(Button.Pressed, "#btn-buynow")
    def handle_buynow(self) -> None:
        if self._prod is None:
            return
        self.session.add_to_cart(CartLine.from_product(self._prod, self.order_qty))
        self.session.navigate(routes.CHECKOUT)

    @on(Button.Pressed, "#btn-wishlist")
    @work(exclusive=True, group="wishlist")
    async def handle_wishlist(self) -> None:
        if self._prod is None:
            return
        api = self.session.api
        wishlist = await api.get_wishlist()
        try:
            if self._prod.id in (wishlist.data or []):
                await api.remove_from_wishlist(self._prod.id)
                self.notify("Removed from wishlist.")
            else:
                await api.add_to_wishlist(self._prod.id)
                self.notify("Added to wishlist.")
        except Exception:
            _logger.exception("Updating wishlist failed")
            self.notify("Failed to update wishlist.", severity="error")
