from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Label, Markdown

from db.models import Order
from utils import routes
from utils.messages import UserLoginMessage
from utils.pure import format_price, generate_markdown_table
from views.page_base import Page


def order_detail_markdown(order: Order, product_names: Dict[str, str]) -> str:
    header = (
        f"### Order {order.id}\n"
        f"Status: **{order.status.value.title()}**  \n"
        f"Placed: {order.created_at:%Y-%m-%d %H:%M}  \n"
        f"Deliver to: {order.customer_name}, {order.phone}, {order.address}\n\n"
    )
    rows = [
        [
            product_names.get(item.product_id, item.product_id),
            item.quantity,
            format_price(item.price),
            format_price(item.price * item.quantity),
        ]
        for item in order.items
    ]
    table = generate_markdown_table(
        ["Product", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"]
    )
    return header + table + f"\n\n**Total:** {format_price(order.total_price)}"


class OrdersPage(Page):
    """
    The caller's orders, newest first, with details of the highlighted one.
    Anonymous visitors get a login prompt instead.
    """

    TITLE = "My Orders"

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self._orders: Dict[str, Order] = {}
        self._product_names: Dict[str, str] = {}

    def compose(self) -> ComposeResult:
        with Vertical(id="div-login-prompt"):
            yield Label("Please login to view your orders.")
            yield Button("Login", id="btn-login", variant="primary")
        with Vertical(id="div-orders"):
            yield Markdown("", id="md-order-detail")
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("< Back", id="btn-back")
            yield Button("Refresh", id="btn-refresh")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order", "Date", "Items", "Total", "Status")
        self.reload()

    def reload(self) -> None:
        self.load_orders()

    @on(Button.Pressed, "#btn-refresh")
    def handle_refresh(self) -> None:
        self.session.api.cache.invalidate(("myOrders",))

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.session.navigate(routes.HOME)

    @on(Button.Pressed, "#btn-login")
    def handle_login(self) -> None:
        self.post_message(UserLoginMessage())

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        authenticated = self.session.is_authenticated
        self.query_one("#div-login-prompt").display = not authenticated
        self.query_one("#div-orders").display = authenticated
        self.query_one("#btn-refresh").display = authenticated
        if not authenticated:
            return

        api = self.session.api
        table = self.query_one(DataTable)
        orders = await api.get_my_orders()
        if orders.is_loading:
            table.loading = True
            return
        table.loading = False

        products = await api.get_active_products()
        if products.data:
            self._product_names = {p.id: p.name for p in products.data}

        ordered = sorted(orders.data or [], key=lambda o: o.created_at, reverse=True)
        self._orders = {o.id: o for o in ordered}
        table.clear()
        for o in ordered:
            table.add_row(
                o.id,
                f"{o.created_at:%Y-%m-%d}",
                sum(item.quantity for item in o.items),
                format_price(o.total_price),
                o.status.value.title(),
                key=o.id,
            )

        if ordered:
            table.move_cursor(row=0)
            await self._render_detail(ordered[0])
        else:
            await self._render_detail(None)

    @on(DataTable.RowHighlighted, "#table-orders")
    async def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None:
            await self._render_detail(self._orders.get(event.row_key.value))

    async def _render_detail(self, order: Optional[Order]) -> None:
        md = self.query_one("#md-order-detail", Markdown)
        if order is None:
            await md.update(
                "### No orders yet\n\nOrders you place will show up here."
                if not self._orders
                else "### Select an order to view its details."
            )
            return
        await md.update(order_detail_markdown(order, self._product_names))
