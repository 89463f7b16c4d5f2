import asyncio
import mimetypes
from pathlib import Path
from typing import Dict, List, Optional, Set

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import (
    Button,
    Checkbox,
    DataTable,
    Input,
    Label,
    Markdown,
    ProgressBar,
    Select,
    TabbedContent,
    TabPane,
)

from db.blob import ExternalBlob
from db.errors import ValidationError
from db.models import Order, OrderStatus, Product, ProductStats
from db.queries import generate_id
from utils import routes
from utils.logger import get_logger
from utils.pure import format_price, generate_markdown_table
from utils.validation import validate_category, validate_product
from views.modal_dialog import DialogModal
from views.page_base import Page
from views.page_orders import order_detail_markdown

_logger = get_logger(__name__)


def media_paths(text: str, kind: str) -> List[Path]:
    """
    Comma separated file paths of one media kind ("image" or "video").
    Raises ValidationError naming the first unusable path.
    """
    paths = [Path(p.strip()).expanduser() for p in (text or "").split(",") if p.strip()]
    if not paths:
        raise ValidationError(f"Please select {kind} files")
    for path in paths:
        if not path.is_file():
            raise ValidationError(f"File not found: {path}")
        mime, _ = mimetypes.guess_type(path.name)
        if not mime or not mime.startswith(kind + "/"):
            raise ValidationError(f"Please select {kind} files")
    return paths


def product_stats_markdown(stats: List[ProductStats], names: Dict[str, str]) -> str:
    ranked = sorted(stats, key=lambda s: (s.sales, s.views), reverse=True)
    rows = [[names.get(s.id, s.id), s.views, s.wishlists, s.sales] for s in ranked]
    return generate_markdown_table(
        ["Product", "Views", "Wishlists", "Units Sold"], rows, ["l", "r", "r", "r"]
    )


class AdminPage(Page):
    """
    Back office: products (with media), orders, categories and store stats.
    Only mounted for callers whose admin check came back True.
    """

    TITLE = "Admin Panel"

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self._products: Dict[str, Product] = {}
        self._orders: Dict[str, Order] = {}
        self._featured: Set[str] = set()
        self._editing: Optional[Product] = None
        self._categories: List[str] = []

    def compose(self) -> ComposeResult:
        yield Button("< Back", id="btn-back")
        with TabbedContent(id="tabs-admin"):
            with TabPane("Products", id="tab-products"):
                yield DataTable(id="table-admin-products")
                with Vertical(id="div-product-form"):
                    yield Label("Add New Product", id="label-product-form", classes="title")
                    yield Label("Product Name *")
                    yield Input(placeholder="e.g. Teak Wood Sofa", id="input-prod-name")
                    yield Label("Description *")
                    yield Input(placeholder="Materials, size, finish", id="input-prod-desc")
                    yield Label("Price (₹) *")
                    yield Input(placeholder="25000", id="input-prod-price", type="number")
                    yield Label("Offer")
                    yield Input(placeholder="e.g. 10% OFF", id="input-prod-offer")
                    yield Label("Category")
                    yield Select(
                        [("Uncategorized", "")],
                        value="",
                        allow_blank=False,
                        id="select-prod-category",
                    )
                    yield Checkbox("Active", value=True, id="chk-prod-active")
                    with Horizontal():
                        yield Button("New", id="btn-prod-new")
                        yield Button("Save Product", id="btn-prod-save", variant="primary")
                        yield Button("Toggle Featured", id="btn-prod-featured")
                with Vertical(id="div-product-media"):
                    yield Label("Media (comma separated file paths)")
                    yield Input(placeholder="~/photos/sofa.jpg", id="input-media-paths")
                    with Horizontal():
                        yield Button("Upload Images", id="btn-upload-images")
                        yield Button("Upload Video", id="btn-upload-video")
                    yield ProgressBar(total=100, id="progress-upload")
            with TabPane("Orders", id="tab-orders"):
                yield DataTable(id="table-admin-orders")
                yield Markdown("", id="md-admin-order")
                with Horizontal(id="hort-order-status"):
                    yield Select(
                        [(s.value.title(), s.value) for s in OrderStatus],
                        value=OrderStatus.PENDING.value,
                        allow_blank=False,
                        id="select-order-status",
                    )
                    yield Button("Update Status", id="btn-order-status", variant="primary")
            with TabPane("Categories", id="tab-categories"):
                yield DataTable(id="table-admin-categories")
                with Horizontal(id="hort-category"):
                    yield Input(placeholder="New category name", id="input-category")
                    yield Button("Add Category", id="btn-category-add", variant="primary")
                    yield Button("Delete Selected", id="btn-category-delete", variant="error")
            with TabPane("Stats", id="tab-stats"):
                yield Markdown("", id="md-admin-stats")

    def on_mount(self) -> None:
        for table_id, columns in (
            ("#table-admin-products", ("Name", "Category", "Price", "Offer", "Active", "Featured")),
            ("#table-admin-orders", ("Order", "Date", "Customer", "Phone", "Total", "Status")),
            ("#table-admin-categories", ("Category",)),
        ):
            table = self.query_one(table_id, DataTable)
            table.cursor_type = "row"
            table.zebra_stripes = True
            table.add_columns(*columns)
        self.query_one("#progress-upload").display = False
        self.reload()

    def reload(self) -> None:
        self.load_products()
        self.load_orders()
        self.load_categories()
        self.load_stats()

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.session.navigate(routes.HOME)

    # ---------------------------
    # Products
    # ---------------------------

    @work(exclusive=True, group="admin-products")
    async def load_products(self) -> None:
        api = self.session.api
        products = await api.get_all_products()
        featured = await api.get_featured_products()
        self._featured = {p.id for p in featured.data or []}

        table = self.query_one("#table-admin-products", DataTable)
        table.clear()
        if products.is_error:
            self.notify("Failed to load products.", severity="error")
            return
        self._products = {p.id: p for p in products.data or []}
        for p in self._products.values():
            table.add_row(
                p.name,
                p.category or "Uncategorized",
                format_price(p.price),
                p.offer or "",
                "Yes" if p.is_active else "Inactive",
                "*" if p.id in self._featured else "",
                key=p.id,
            )

        # keep the form pointing at the fresh record
        if self._editing is not None:
            self._editing = self._products.get(self._editing.id)

    @on(DataTable.RowSelected, "#table-admin-products")
    def handle_product_selected(self, event: DataTable.RowSelected) -> None:
        product = self._products.get(event.row_key.value)
        if product is None:
            return
        self._editing = product
        self.query_one("#label-product-form", Label).update(f"Edit Product ({product.id})")
        self.query_one("#input-prod-name", Input).value = product.name
        self.query_one("#input-prod-desc", Input).value = product.description
        self.query_one("#input-prod-price", Input).value = str(product.price)
        self.query_one("#input-prod-offer", Input).value = product.offer or ""
        category = self.query_one("#select-prod-category", Select)
        category.value = product.category if product.category in self._categories else ""
        self.query_one("#chk-prod-active", Checkbox).value = product.is_active

    @on(Button.Pressed, "#btn-prod-new")
    def handle_product_new(self) -> None:
        self._editing = None
        self.query_one("#label-product-form", Label).update("Add New Product")
        for input_id in ("#input-prod-name", "#input-prod-desc", "#input-prod-price", "#input-prod-offer"):
            self.query_one(input_id, Input).value = ""
        self.query_one("#select-prod-category", Select).value = ""
        self.query_one("#chk-prod-active", Checkbox).value = True

    @on(Button.Pressed, "#btn-prod-save")
    @work(exclusive=True, group="admin-save")
    async def handle_product_save(self) -> None:
        try:
            form = validate_product(
                self.query_one("#input-prod-name", Input).value,
                self.query_one("#input-prod-desc", Input).value,
                self.query_one("#input-prod-price", Input).value,
                self.query_one("#input-prod-offer", Input).value,
                self.query_one("#select-prod-category", Select).value or "",
            )
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return

        api = self.session.api
        editing = self._editing
        try:
            if editing is None:
                await api.add_product(
                    generate_id("prod"),
                    form.name,
                    form.description,
                    form.price,
                    form.offer,
                    form.category,
                )
            else:
                await api.update_product(
                    editing.id,
                    form.name,
                    form.description,
                    form.price,
                    form.offer,
                    form.category,
                    self.query_one("#chk-prod-active", Checkbox).value,
                )
        except Exception:
            _logger.exception("Saving product failed")
            self.notify(
                "Failed to add product" if editing is None else "Failed to update product",
                severity="error",
            )
            return

        if editing is None:
            self.notify("Product added successfully! You can now upload images.")
            self.handle_product_new()
        else:
            self.notify("Product updated successfully!")

    @on(Button.Pressed, "#btn-prod-featured")
    @work(exclusive=True, group="admin-save")
    async def handle_product_featured(self) -> None:
        if self._editing is None:
            self.notify("Select a product first.", severity="warning")
            return
        featured = set(self._featured)
        featured ^= {self._editing.id}
        try:
            await self.session.api.set_featured_products(sorted(featured))
        except Exception:
            _logger.exception("Updating featured products failed")
            self.notify("Failed to update featured products", severity="error")
            return
        self.notify("Featured products updated")

    @on(Button.Pressed, "#btn-upload-images")
    def handle_upload_images(self) -> None:
        self.upload_media("image")

    @on(Button.Pressed, "#btn-upload-video")
    def handle_upload_video(self) -> None:
        self.upload_media("video")

    @work(exclusive=True, group="admin-upload")
    async def upload_media(self, kind: str) -> None:
        product = self._editing
        if product is None:
            self.notify("Select a product first.", severity="warning")
            return
        try:
            paths = media_paths(self.query_one("#input-media-paths", Input).value, kind)
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return
        if kind == "video":
            paths = paths[:1]

        progress = self.query_one("#progress-upload", ProgressBar)
        progress.update(progress=0)
        progress.display = True
        buttons = list(self.query("#btn-upload-images, #btn-upload-video").results(Button))
        for btn in buttons:
            btn.disabled = True

        def on_progress(index: int):
            # overall progress across all files of this upload
            def report(percentage: int) -> None:
                progress.update(progress=round(index * 100 / len(paths) + percentage / len(paths)))

            return report

        try:
            blobs = [
                ExternalBlob.from_bytes(await asyncio.to_thread(path.read_bytes)).with_upload_progress(
                    on_progress(i)
                )
                for i, path in enumerate(paths)
            ]
            images, videos = list(product.images), list(product.videos)
            if kind == "image":
                images += blobs
            else:
                videos += blobs
            await self.session.api.update_product_media(product.id, images, videos)
        except Exception:
            _logger.exception(f"Uploading {kind}s failed")
            self.notify(f"Failed to upload {kind}s", severity="error")
        else:
            self.notify(
                f"{len(blobs)} image(s) uploaded successfully!"
                if kind == "image"
                else "Video uploaded successfully!"
            )
            self.query_one("#input-media-paths", Input).value = ""
        finally:
            progress.display = False
            for btn in buttons:
                btn.disabled = False

    # ---------------------------
    # Orders
    # ---------------------------

    @work(exclusive=True, group="admin-orders")
    async def load_orders(self) -> None:
        orders = await self.session.api.get_all_orders()
        table = self.query_one("#table-admin-orders", DataTable)
        table.clear()
        if orders.is_error:
            self.notify("Failed to load orders.", severity="error")
            return
        ordered = sorted(orders.data or [], key=lambda o: o.created_at, reverse=True)
        self._orders = {o.id: o for o in ordered}
        for o in ordered:
            table.add_row(
                o.id,
                f"{o.created_at:%Y-%m-%d %H:%M}",
                o.customer_name,
                o.phone,
                format_price(o.total_price),
                o.status.value.title(),
                key=o.id,
            )
        if not ordered:
            await self.query_one("#md-admin-order", Markdown).update("### No orders yet")

    def _selected_order(self) -> Optional[Order]:
        table = self.query_one("#table-admin-orders", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return self._orders.get(row_key.value)

    @on(DataTable.RowHighlighted, "#table-admin-orders")
    async def handle_order_highlighted(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        names = {pid: p.name for pid, p in self._products.items()}
        await self.query_one("#md-admin-order", Markdown).update(
            order_detail_markdown(order, names)
        )
        self.query_one("#select-order-status", Select).value = order.status.value

    @on(Button.Pressed, "#btn-order-status")
    @work(exclusive=True, group="admin-save")
    async def handle_order_status(self) -> None:
        order = self._selected_order()
        if order is None:
            self.notify("Select an order first.", severity="warning")
            return
        try:
            status = OrderStatus(self.query_one("#select-order-status", Select).value)
        except ValueError:
            self.notify("Invalid status", severity="error")
            return
        if status == order.status:
            self.notify("Nothing to update.", severity="warning")
            return
        try:
            await self.session.api.update_order_status(order.id, status)
        except Exception:
            _logger.exception("Updating order status failed")
            self.notify("Failed to update order status", severity="error")
            return
        self.notify("Order status updated")

    # ---------------------------
    # Categories
    # ---------------------------

    @work(exclusive=True, group="admin-categories")
    async def load_categories(self) -> None:
        categories = await self.session.api.get_all_categories()
        if categories.data is None:
            return
        table = self.query_one("#table-admin-categories", DataTable)
        table.clear()
        for name in categories.data:
            table.add_row(name, key=name)

        self._categories = list(categories.data)
        select = self.query_one("#select-prod-category", Select)
        current = select.value
        select.set_options([("Uncategorized", "")] + [(c, c) for c in self._categories])
        select.value = current if current in self._categories else ""

    @on(Input.Submitted, "#input-category")
    @on(Button.Pressed, "#btn-category-add")
    @work(exclusive=True, group="admin-save")
    async def handle_category_add(self) -> None:
        category_input = self.query_one("#input-category", Input)
        try:
            name = validate_category(category_input.value)
            await self.session.api.add_category(name)
        except ValidationError as e:
            self.notify(str(e), severity="error")
            return
        except Exception:
            _logger.exception("Adding category failed")
            self.notify("Failed to add category", severity="error")
            return
        category_input.value = ""
        self.notify(f"Category '{name}' added")

    @on(Button.Pressed, "#btn-category-delete")
    @work(exclusive=True, group="admin-save")
    async def handle_category_delete(self) -> None:
        table = self.query_one("#table-admin-categories", DataTable)
        if table.row_count == 0:
            self.notify("No category selected.", severity="warning")
            return
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        name = row_key.value

        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete category '{name}'? Its products become uncategorized.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await self.session.api.delete_category(name)
        except Exception:
            _logger.exception("Deleting category failed")
            self.notify("Failed to delete category", severity="error")
            return
        self.notify(f"Category '{name}' deleted")

    # ---------------------------
    # Stats
    # ---------------------------

    @work(exclusive=True, group="admin-stats")
    async def load_stats(self) -> None:
        api = self.session.api
        info = await api.get_store_info()
        system = await api.get_system_stats()
        product_stats = await api.get_all_product_stats()
        products = await api.get_all_products()
        names = {p.id: p.name for p in products.data or []}

        md = "### Store\n\n"
        if info.data:
            s = info.data
            md += (
                f"- {s.name}, {s.location}\n"
                f"- Hours: {s.hours}\n"
                f"- Contact: {s.contact_number}\n"
                f"- Rating: {s.rating} ({s.review_count} reviews)\n\n"
            )
        if system.data:
            s = system.data
            md += (
                "### Overview\n\n"
                f"- Products: {s.total_products} ({s.active_products} active)\n"
                f"- Orders: {s.total_orders} ({s.pending_orders} pending)\n"
                f"- Total Sales: {format_price(s.total_sales)}\n\n"
            )
        if product_stats.data:
            md += "### Products\n\n" + product_stats_markdown(product_stats.data, names)
        await self.query_one("#md-admin-stats", Markdown).update(md)
