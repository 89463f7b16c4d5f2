# src/db/backend.py
"""
Local development backend: the store's RPC surface served from sqlite.

Each LocalBackend instance is an actor bound to one caller principal
(None for anonymous callers). Admin only calls check the caller's role.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from db.actor import ActorFactory
from db.blob import ExternalBlob
from db.database import connect
from db.errors import BackendError
from db.identity import Identity
from db.media import MediaStore
from db.models import (
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductStats,
    StoreInfo,
    SystemStats,
    UserProfile,
    UserRole,
)
from utils.logger import get_logger

_logger = get_logger(__name__)

_PRODUCT_COLUMNS = (
    "id, name, description, price, offer, category, is_active, created_at, updated_at"
)
_ORDER_COLUMNS = (
    "id, customer_id, customer_name, phone, address, total_price, status, "
    "created_at, updated_at"
)

# status changes the backend accepts; delivered and cancelled are final
ORDER_TRANSITIONS: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}
ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)
COMPLETED_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


def _now() -> str:
    return datetime.now().isoformat()


def _ts(val: str) -> datetime:
    return datetime.fromisoformat(val)


class LocalBackend:
    def __init__(self, caller: Optional[str] = None, media: Optional[MediaStore] = None) -> None:
        self.caller = caller
        self.media = media or MediaStore()

    # ---------------------------
    # helpers
    # ---------------------------

    async def _role_of(self, principal: Optional[str]) -> UserRole:
        if principal is None:
            return UserRole.GUEST
        async with connect() as conn:
            cur = await conn.execute(
                "SELECT role FROM user_roles WHERE principal = ?;", (principal,)
            )
            row = await cur.fetchone()
            await cur.close()
        return UserRole(row[0]) if row else UserRole.USER

    def _require_caller(self) -> str:
        if self.caller is None:
            raise BackendError("Unauthorized: anonymous callers cannot do this")
        return self.caller

    async def _require_admin(self) -> None:
        if await self._role_of(self.caller) != UserRole.ADMIN:
            raise BackendError("Unauthorized: only admins can do this")

    async def _products(self, where: str = "", params: tuple = ()) -> List[Product]:
        async with connect() as conn:
            cur = await conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM products {where} ORDER BY created_at, id;",
                params,
            )
            rows = await cur.fetchall()
            await cur.close()
            cur = await conn.execute(
                "SELECT product_id, kind, url FROM product_media ORDER BY product_id, kind, position;"
            )
            media_rows = await cur.fetchall()
            await cur.close()

        media: Dict[Tuple[str, str], List[ExternalBlob]] = {}
        for product_id, kind, url in media_rows:
            media.setdefault((product_id, kind), []).append(ExternalBlob.from_url(url))

        return [
            Product(
                id=row[0],
                name=row[1],
                description=row[2],
                price=int(row[3]),
                offer=row[4],
                category=row[5],
                is_active=bool(row[6]),
                created_at=_ts(row[7]),
                updated_at=_ts(row[8]),
                images=tuple(media.get((row[0], "image"), ())),
                videos=tuple(media.get((row[0], "video"), ())),
            )
            for row in rows
        ]

    async def _orders(self, where: str = "", params: tuple = ()) -> List[Order]:
        async with connect() as conn:
            cur = await conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders {where} ORDER BY created_at DESC, id;",
                params,
            )
            rows = await cur.fetchall()
            await cur.close()
            items: Dict[str, List[OrderItem]] = {}
            for row in rows:
                cur = await conn.execute(
                    "SELECT product_id, quantity, price FROM order_items WHERE order_id = ? ORDER BY line_no;",
                    (row[0],),
                )
                items[row[0]] = [
                    OrderItem(product_id=r[0], quantity=int(r[1]), price=int(r[2]))
                    for r in await cur.fetchall()
                ]
                await cur.close()

        return [
            Order(
                id=row[0],
                customer_id=row[1],
                customer_name=row[2],
                phone=row[3],
                address=row[4],
                total_price=int(row[5]),
                status=OrderStatus(row[6]),
                created_at=_ts(row[7]),
                updated_at=_ts(row[8]),
                items=tuple(items[row[0]]),
            )
            for row in rows
        ]

    async def _category_exists(self, name: str) -> bool:
        async with connect() as conn:
            cur = await conn.execute("SELECT 1 FROM categories WHERE name = ?;", (name,))
            row = await cur.fetchone()
            await cur.close()
        return row is not None

    # ---------------------------
    # Catalog
    # ---------------------------

    async def get_active_products(self) -> List[Product]:
        return await self._products("WHERE is_active = 1")

    async def get_all_products(self) -> List[Product]:
        await self._require_admin()
        return await self._products()

    async def get_product(self, product_id: str) -> Optional[Product]:
        found = await self._products("WHERE id = ?", (product_id,))
        return found[0] if found else None

    async def get_featured_products(self) -> List[Product]:
        return await self._products("WHERE is_active = 1 AND featured = 1")

    async def set_featured_products(self, product_ids: Sequence[str]) -> None:
        await self._require_admin()
        async with connect() as conn:
            await conn.execute("UPDATE products SET featured = 0;")
            for product_id in product_ids:
                await conn.execute(
                    "UPDATE products SET featured = 1 WHERE id = ?;", (product_id,)
                )
            await conn.commit()

    async def get_products_by_category(self, category: str) -> List[Product]:
        return await self._products("WHERE is_active = 1 AND category = ?", (category,))

    async def get_all_categories(self) -> List[str]:
        async with connect() as conn:
            cur = await conn.execute("SELECT name FROM categories ORDER BY name;")
            rows = await cur.fetchall()
            await cur.close()
        return [row[0] for row in rows]

    async def add_category(self, name: str) -> None:
        await self._require_admin()
        if await self._category_exists(name):
            raise BackendError(f"Category '{name}' already exists")
        async with connect() as conn:
            await conn.execute("INSERT INTO categories(name) VALUES (?);", (name,))
            await conn.commit()

    async def delete_category(self, name: str) -> None:
        """Remove a category; its products stay, uncategorized."""
        await self._require_admin()
        if not await self._category_exists(name):
            raise BackendError(f"Category '{name}' not found")
        async with connect() as conn:
            await conn.execute("DELETE FROM categories WHERE name = ?;", (name,))
            await conn.execute(
                "UPDATE products SET category = '', updated_at = ? WHERE category = ?;",
                (_now(), name),
            )
            await conn.commit()

    async def _check_product_fields(self, price: int, category: str) -> None:
        if price < 0:
            raise BackendError("Price cannot be negative")
        if category and not await self._category_exists(category):
            raise BackendError(f"Unknown category '{category}'")

    async def add_product(
        self,
        product_id: str,
        name: str,
        description: str,
        price: int,
        offer: Optional[str],
        category: str,
    ) -> None:
        await self._require_admin()
        await self._check_product_fields(price, category)
        if await self.get_product(product_id) is not None:
            raise BackendError(f"Product '{product_id}' already exists")
        now = _now()
        async with connect() as conn:
            await conn.execute(
                """
                INSERT INTO products(id, name, description, price, offer, category, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?);
                """,
                (product_id, name, description, price, offer, category, now, now),
            )
            await conn.commit()

    async def update_product(
        self,
        product_id: str,
        name: str,
        description: str,
        price: int,
        offer: Optional[str],
        category: str,
        is_active: bool,
    ) -> None:
        await self._require_admin()
        await self._check_product_fields(price, category)
        async with connect() as conn:
            res = await conn.execute(
                """
                UPDATE products
                SET name = ?, description = ?, price = ?, offer = ?, category = ?, is_active = ?, updated_at = ?
                WHERE id = ?;
                """,
                (name, description, price, offer, category, int(is_active), _now(), product_id),
            )
            await conn.commit()
            if res.rowcount == 0:
                raise BackendError(f"Product '{product_id}' not found")

    async def update_product_media(
        self,
        product_id: str,
        images: Sequence[ExternalBlob],
        videos: Sequence[ExternalBlob],
    ) -> None:
        """Replace a product's media; byte backed blobs are stored first."""
        await self._require_admin()
        if await self.get_product(product_id) is None:
            raise BackendError(f"Product '{product_id}' not found")

        stored = {
            "image": [await self.media.put(blob) for blob in images],
            "video": [await self.media.put(blob) for blob in videos],
        }
        async with connect() as conn:
            await conn.execute("DELETE FROM product_media WHERE product_id = ?;", (product_id,))
            for kind, blobs in stored.items():
                for position, blob in enumerate(blobs):
                    await conn.execute(
                        "INSERT INTO product_media(product_id, kind, position, url) VALUES (?, ?, ?, ?);",
                        (product_id, kind, position, blob.get_direct_url()),
                    )
            await conn.execute(
                "UPDATE products SET updated_at = ? WHERE id = ?;", (_now(), product_id)
            )
            await conn.commit()

    async def increment_product_views(self, product_id: str) -> None:
        async with connect() as conn:
            res = await conn.execute(
                "UPDATE products SET views = views + 1 WHERE id = ?;", (product_id,)
            )
            await conn.commit()
            if res.rowcount == 0:
                raise BackendError(f"Product '{product_id}' not found")

    async def _stats(self, where: str = "", params: tuple = ()) -> List[ProductStats]:
        async with connect() as conn:
            cur = await conn.execute(
                f"""
                SELECT p.id,
                       p.views,
                       (SELECT COUNT(*) FROM wishlist w WHERE w.product_id = p.id),
                       (SELECT COALESCE(SUM(oi.quantity), 0)
                        FROM order_items oi JOIN orders o ON o.id = oi.order_id
                        WHERE oi.product_id = p.id AND o.status != 'cancelled')
                FROM products p
                {where}
                ORDER BY p.id;
                """,
                params,
            )
            rows = await cur.fetchall()
            await cur.close()
        return [
            ProductStats(id=row[0], views=int(row[1]), wishlists=int(row[2]), sales=int(row[3]))
            for row in rows
        ]

    async def get_product_stats(self, product_id: str) -> Optional[ProductStats]:
        found = await self._stats("WHERE p.id = ?", (product_id,))
        return found[0] if found else None

    async def get_all_product_stats(self) -> List[ProductStats]:
        await self._require_admin()
        return await self._stats()

    # ---------------------------
    # Orders
    # ---------------------------

    async def create_order(
        self,
        order_id: str,
        name: str,
        phone: str,
        address: str,
        cart: Sequence[CartItem],
    ) -> None:
        """
        Place an order for the caller. Unit prices are taken from the catalog
        now and stored on the order lines; the total is computed here.
        """
        customer = self._require_caller()
        if not cart:
            raise BackendError("Cart is empty")

        lines: List[OrderItem] = []
        for item in cart:
            if item.quantity <= 0:
                raise BackendError(f"Invalid quantity for '{item.product_id}'")
            product = await self.get_product(item.product_id)
            if product is None or not product.is_active:
                raise BackendError(f"Product '{item.product_id}' is not available")
            lines.append(OrderItem(item.product_id, item.quantity, product.price))
        total = sum(line.quantity * line.price for line in lines)

        now = _now()
        async with connect() as conn:
            cur = await conn.execute("SELECT 1 FROM orders WHERE id = ?;", (order_id,))
            exists = await cur.fetchone()
            await cur.close()
            if exists:
                raise BackendError(f"Order '{order_id}' already exists")

            await conn.execute(
                f"INSERT INTO orders({_ORDER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?);",
                (order_id, customer, name, phone, address, total, now, now),
            )
            for line_no, line in enumerate(lines, start=1):
                await conn.execute(
                    "INSERT INTO order_items(order_id, line_no, product_id, quantity, price) VALUES (?, ?, ?, ?, ?);",
                    (order_id, line_no, line.product_id, line.quantity, line.price),
                )
            await conn.commit()
        _logger.info(f"Order {order_id} placed by {customer}, total {total}")

    async def get_my_orders(self) -> List[Order]:
        customer = self._require_caller()
        return await self._orders("WHERE customer_id = ?", (customer,))

    async def get_all_orders(self) -> List[Order]:
        await self._require_admin()
        return await self._orders()

    async def get_order(self, order_id: str) -> Order:
        found = await self._orders("WHERE id = ?", (order_id,))
        if not found:
            raise BackendError(f"Order '{order_id}' not found")
        order = found[0]
        if order.customer_id != self.caller:
            await self._require_admin()
        return order

    async def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        await self._require_admin()
        status = OrderStatus(status)
        order = await self.get_order(order_id)
        if status not in ORDER_TRANSITIONS[order.status]:
            raise BackendError(
                f"Cannot move order '{order_id}' from {order.status.value} to {status.value}"
            )
        async with connect() as conn:
            await conn.execute(
                "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?;",
                (status.value, _now(), order_id),
            )
            await conn.commit()

    async def get_active_orders(self) -> List[Order]:
        await self._require_admin()
        return await self._orders(
            "WHERE status IN (?, ?)", tuple(s.value for s in ACTIVE_STATUSES)
        )

    async def get_completed_orders(self) -> List[Order]:
        await self._require_admin()
        return await self._orders(
            "WHERE status IN (?, ?)", tuple(s.value for s in COMPLETED_STATUSES)
        )

    # ---------------------------
    # Identity & profile
    # ---------------------------

    async def get_caller_user_profile(self) -> Optional[UserProfile]:
        if self.caller is None:
            return None
        return await self._profile(self.caller)

    async def _profile(self, principal: str) -> Optional[UserProfile]:
        async with connect() as conn:
            cur = await conn.execute(
                "SELECT name, address, phone FROM user_profiles WHERE principal = ?;",
                (principal,),
            )
            row = await cur.fetchone()
            await cur.close()
        if not row:
            return None
        return UserProfile(name=row[0], address=row[1], phone=row[2])

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        principal = self._require_caller()
        if not profile.name.strip():
            raise BackendError("Profile name cannot be empty")
        async with connect() as conn:
            await conn.execute(
                """
                INSERT INTO user_profiles(principal, name, address, phone) VALUES (?, ?, ?, ?)
                ON CONFLICT(principal) DO UPDATE SET name = excluded.name, address = excluded.address, phone = excluded.phone;
                """,
                (principal, profile.name, profile.address, profile.phone),
            )
            await conn.commit()

    async def get_user_profile(self, principal: str) -> Optional[UserProfile]:
        if principal != self.caller:
            await self._require_admin()
        return await self._profile(principal)

    async def is_caller_admin(self) -> bool:
        return await self._role_of(self.caller) == UserRole.ADMIN

    async def get_caller_user_role(self) -> UserRole:
        return await self._role_of(self.caller)

    async def assign_caller_user_role(self, principal: str, role: UserRole) -> None:
        await self._require_admin()
        async with connect() as conn:
            await conn.execute(
                """
                INSERT INTO user_roles(principal, role) VALUES (?, ?)
                ON CONFLICT(principal) DO UPDATE SET role = excluded.role;
                """,
                (principal, UserRole(role).value),
            )
            await conn.commit()

    # ---------------------------
    # Store & wishlist
    # ---------------------------

    async def get_store_info(self) -> StoreInfo:
        async with connect() as conn:
            cur = await conn.execute(
                "SELECT name, location, hours, contact_number, google_maps_link, rating, review_count FROM store_info WHERE id = 1;"
            )
            row = await cur.fetchone()
            await cur.close()
        if not row:
            raise BackendError("Store info not configured")
        return StoreInfo(
            name=row[0],
            location=row[1],
            hours=row[2],
            contact_number=row[3],
            google_maps_link=row[4],
            rating=float(row[5]),
            review_count=int(row[6]),
        )

    async def get_system_stats(self) -> SystemStats:
        await self._require_admin()
        async with connect() as conn:
            cur = await conn.execute(
                """
                SELECT (SELECT COUNT(*) FROM products),
                       (SELECT COUNT(*) FROM products WHERE is_active = 1),
                       (SELECT COUNT(*) FROM orders),
                       (SELECT COUNT(*) FROM orders WHERE status = 'pending'),
                       (SELECT COALESCE(SUM(total_price), 0) FROM orders WHERE status != 'cancelled');
                """
            )
            row = await cur.fetchone()
            await cur.close()
        return SystemStats(
            total_products=int(row[0]),
            active_products=int(row[1]),
            total_orders=int(row[2]),
            pending_orders=int(row[3]),
            total_sales=int(row[4]),
        )

    async def get_wishlist(self) -> List[str]:
        principal = self._require_caller()
        async with connect() as conn:
            cur = await conn.execute(
                "SELECT product_id FROM wishlist WHERE principal = ? ORDER BY product_id;",
                (principal,),
            )
            rows = await cur.fetchall()
            await cur.close()
        return [row[0] for row in rows]

    async def add_to_wishlist(self, product_id: str) -> None:
        principal = self._require_caller()
        if await self.get_product(product_id) is None:
            raise BackendError(f"Product '{product_id}' not found")
        async with connect() as conn:
            await conn.execute(
                "INSERT OR IGNORE INTO wishlist(principal, product_id) VALUES (?, ?);",
                (principal, product_id),
            )
            await conn.commit()

    async def remove_from_wishlist(self, product_id: str) -> None:
        principal = self._require_caller()
        async with connect() as conn:
            await conn.execute(
                "DELETE FROM wishlist WHERE principal = ? AND product_id = ?;",
                (principal, product_id),
            )
            await conn.commit()


def local_actor_factory(media: Optional[MediaStore] = None) -> ActorFactory:
    """Actor factory for ActorRegistry that binds a LocalBackend to each identity."""
    store = media or MediaStore()

    async def build(identity: Optional[Identity]) -> LocalBackend:
        return LocalBackend(identity.principal if identity else None, store)

    return build
