from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, DataTable, Input, Label, Select

from db.models import Product
from utils import routes
from utils.cart import CartLine
from utils.pure import format_price
from views.page_base import Page

UNCATEGORIZED = "Uncategorized"


def normalize_category(category: Optional[str]) -> str:
    if not category or not category.strip():
        return UNCATEGORIZED.lower()
    return category.strip().lower()


def filter_products(products: List[Product], category: str, query: str) -> List[Product]:
    """Category ("" for all) and case insensitive name/description search."""
    query = query.strip().lower()
    result = []
    for p in products:
        if category and normalize_category(p.category) != normalize_category(category):
            continue
        if query and query not in p.name.lower() and query not in p.description.lower():
            continue
        result.append(p)
    return result


class HomePage(Page):
    """
    Catalog: featured banner, category strip, search and the product table.
    """

    TITLE = "Home"

    # shown in footer while the product table has focus
    BINDINGS = [
        Binding("a", "add_to_cart", "Add to Cart", show=True),
        Binding("b", "buy_now", "Buy Now", show=True),
    ]

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self._products: Dict[str, Product] = {}
        self._categories: List[str] = []

    def compose(self) -> ComposeResult:
        yield Label("", id="label-featured")
        with Horizontal(id="hort-filters"):
            yield Select(
                [("All", "")], value="", allow_blank=False, id="select-category"
            )
            yield Input(id="input-search", placeholder="Search furniture...")
        yield DataTable(id="table-products")
        with Horizontal(id="hort-buttons"):
            yield Button("View", id="btn-view")
            yield Button("Add to Cart", id="btn-addcart", variant="primary")
            yield Button("Buy Now", id="btn-buynow", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Category", "Price", "Offer")
        table.focus()
        self.reload()

    def reload(self) -> None:
        self.update_products()

    @on(Select.Changed, "#select-category")
    @on(Input.Changed, "#input-search")
    def handle_filter_changed(self) -> None:
        self.update_products()

    @work(exclusive=True, group="home")
    async def update_products(self) -> None:
        api = self.session.api
        categories = await api.get_all_categories()
        featured = await api.get_featured_products()
        products = await api.get_active_products()

        if categories.data is not None and list(categories.data) != self._categories:
            self._categories = list(categories.data)
            select = self.query_one("#select-category", Select)
            current = select.value
            with self.prevent(Select.Changed):
                select.set_options([("All", "")] + [(c, c) for c in self._categories])
                select.value = current if current in self._categories else ""

        banner = self.query_one("#label-featured", Label)
        if featured.data:
            banner.update(
                "Featured: "
                + "  |  ".join(
                    f"{p.name} {format_price(p.price)}" + (f" ({p.offer})" if p.offer else "")
                    for p in featured.data
                )
            )
        else:
            banner.update("Handcrafted furniture for every room")

        table = self.query_one(DataTable)
        table.clear()
        if products.is_loading:
            table.loading = True
            return
        table.loading = False

        category = self.query_one("#select-category", Select).value or ""
        query = self.query_one("#input-search", Input).value
        shown = filter_products(products.data or [], category, query)
        self._products = {p.id: p for p in shown}
        for p in shown:
            table.add_row(
                p.name,
                p.category or UNCATEGORIZED,
                format_price(p.price),
                p.offer or "",
                key=p.id,
            )

    def _selected_product(self) -> Optional[Product]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._products.get(row_key.value)

    @on(DataTable.RowSelected, "#table-products")
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        self.session.navigate(routes.Route.product(event.row_key.value))

    @on(Button.Pressed, "#btn-view")
    def handle_view(self) -> None:
        product = self._selected_product()
        if product:
            self.session.navigate(routes.Route.product(product.id))

    @on(Button.Pressed, "#btn-addcart")
    def action_add_to_cart(self) -> None:
        product = self._selected_product()
        if product is None:
            self.notify("Select a product first.", severity="warning")
            return
        self.session.add_to_cart(CartLine.from_product(product))
        self.notify(f"{product.name} added to cart.")

    @on(Button.Pressed, "#btn-buynow")
    def action_buy_now(self) -> None:
        product = self._selected_product()
        if product is None:
            self.notify("Select a product first.", severity="warning")
            return
        self.session.add_to_cart(CartLine.from_product(product))
        self.session.navigate(routes.CHECKOUT)
