import os
import tempfile
import unittest
from unittest import mock

from db import database as db_database
from db.backend import LocalBackend, local_actor_factory
from db.blob import ExternalBlob
from db.errors import BackendError
from db.identity import Identity
from db.media import MediaStore
from db.models import CartItem, OrderStatus, UserProfile, UserRole


class LocalBackendTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        self.patches = [
            mock.patch.object(db_database, "DB_PATH", self.db_path),
            mock.patch.object(db_database, "_initialized", False),
            mock.patch("utils.settings.ADMIN_PRINCIPALS", ["admin"]),
        ]
        for p in self.patches:
            p.start()

        media = MediaStore(os.path.join(self.temp_dir.name, "media"))
        self.admin = LocalBackend("admin", media)
        self.alice = LocalBackend("alice", media)
        self.anon = LocalBackend(None, media)

    def tearDown(self):
        for p in reversed(self.patches):
            p.stop()
        self.temp_dir.cleanup()

    # ---------- Catalog ----------

    async def test_seed_catalog(self):
        active = await self.anon.get_active_products()
        self.assertNotIn("storage-2", [p.id for p in active])
        self.assertEqual(len(active), 5)

        featured = await self.anon.get_featured_products()
        self.assertEqual({p.id for p in featured}, {"sofa-1", "bed-1"})

        self.assertEqual(await self.anon.get_all_categories(), ["Beds", "Dining", "Sofas", "Storage"])
        sofas = await self.anon.get_products_by_category("Sofas")
        self.assertEqual([p.id for p in sofas], ["sofa-1", "sofa-2"])

        product = await self.anon.get_product("sofa-1")
        self.assertEqual(product.price, 25000)
        self.assertEqual(product.offer, "10% OFF")
        self.assertIsNone(await self.anon.get_product("nope"))

    async def test_admin_only_catalog_changes(self):
        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await self.alice.add_product("p-x", "Stool", "Bar stool", 1500, None, "")
        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await self.anon.get_all_products()

        await self.admin.add_product("p-x", "Stool", "Bar stool", 1500, None, "Dining")
        self.assertEqual((await self.anon.get_product("p-x")).category, "Dining")
        self.assertEqual(len(await self.admin.get_all_products()), 7)

        with self.assertRaisesRegex(BackendError, "already exists"):
            await self.admin.add_product("p-x", "Stool", "Bar stool", 1500, None, "")
        with self.assertRaisesRegex(BackendError, "Unknown category"):
            await self.admin.add_product("p-y", "Lamp", "Floor lamp", 900, None, "Lighting")

    async def test_update_and_deactivate_product(self):
        await self.admin.update_product(
            "sofa-2", "Sectional", "Corner sofa", 40000, "Sale", "Sofas", False
        )
        product = await self.anon.get_product("sofa-2")
        self.assertEqual((product.name, product.price, product.offer), ("Sectional", 40000, "Sale"))
        self.assertFalse(product.is_active)
        self.assertNotIn("sofa-2", [p.id for p in await self.anon.get_active_products()])

        with self.assertRaises(BackendError):
            await self.admin.update_product("ghost", "x", "y", 1, None, "", True)

    async def test_categories(self):
        await self.admin.add_category("Outdoor")
        self.assertIn("Outdoor", await self.anon.get_all_categories())
        with self.assertRaisesRegex(BackendError, "already exists"):
            await self.admin.add_category("Outdoor")

        await self.admin.delete_category("Storage")
        self.assertNotIn("Storage", await self.anon.get_all_categories())
        self.assertEqual((await self.anon.get_product("storage-1")).category, "")
        with self.assertRaisesRegex(BackendError, "not found"):
            await self.admin.delete_category("Storage")

    async def test_featured_products(self):
        await self.admin.set_featured_products(["dining-1"])
        self.assertEqual([p.id for p in await self.anon.get_featured_products()], ["dining-1"])

    async def test_product_media(self):
        progress = []
        image = ExternalBlob.from_bytes(b"\x89PNG...").with_upload_progress(progress.append)
        video = ExternalBlob.from_url("https://cdn.example.com/tour.mp4")

        await self.admin.update_product_media("bed-1", [image], [video])
        product = await self.anon.get_product("bed-1")
        self.assertEqual(len(product.images), 1)
        self.assertTrue(product.images[0].get_direct_url().startswith("file://"))
        self.assertEqual(await product.images[0].get_bytes(), b"\x89PNG...")
        self.assertEqual(product.videos, (video,))
        self.assertEqual(progress[-1], 100)

        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await self.alice.update_product_media("bed-1", [], [])

    # ---------- Orders ----------

    async def test_create_order_snapshots_prices(self):
        await self.alice.create_order(
            "order-1", "Alice", "123", "1 Main St",
            [CartItem("sofa-1", 2), CartItem("storage-1", 1)],
        )
        (order,) = await self.alice.get_my_orders()
        self.assertEqual(order.total_price, 2 * 25000 + 18500)
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual([(i.product_id, i.price) for i in order.items], [("sofa-1", 25000), ("storage-1", 18500)])

        # later price changes do not touch the order
        await self.admin.update_product("sofa-1", "Sofa", "desc", 1, None, "Sofas", True)
        self.assertEqual((await self.alice.get_order("order-1")).total_price, 68500)

    async def test_create_order_rejections(self):
        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await self.anon.create_order("o", "A", "1", "x", [CartItem("sofa-1", 1)])
        with self.assertRaisesRegex(BackendError, "empty"):
            await self.alice.create_order("o", "A", "1", "x", [])
        with self.assertRaisesRegex(BackendError, "not available"):
            await self.alice.create_order("o", "A", "1", "x", [CartItem("storage-2", 1)])

        await self.alice.create_order("o", "A", "1", "x", [CartItem("bed-1", 1)])
        with self.assertRaisesRegex(BackendError, "already exists"):
            await self.alice.create_order("o", "A", "1", "x", [CartItem("bed-1", 1)])

    async def test_order_visibility(self):
        await self.alice.create_order("o-a", "A", "1", "x", [CartItem("bed-1", 1)])
        bob = LocalBackend("bob", self.alice.media)

        self.assertEqual(await bob.get_my_orders(), [])
        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await bob.get_order("o-a")
        self.assertEqual((await self.admin.get_order("o-a")).customer_id, "alice")
        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await self.alice.get_all_orders()
        self.assertEqual(len(await self.admin.get_all_orders()), 1)

    async def test_order_status_transitions(self):
        await self.alice.create_order("o-1", "A", "1", "x", [CartItem("bed-1", 1)])

        with self.assertRaisesRegex(BackendError, "Cannot move"):
            await self.admin.update_order_status("o-1", OrderStatus.DELIVERED)
        await self.admin.update_order_status("o-1", OrderStatus.PROCESSING)
        self.assertEqual([o.id for o in await self.admin.get_active_orders()], ["o-1"])

        await self.admin.update_order_status("o-1", OrderStatus.DELIVERED)
        self.assertEqual(await self.admin.get_active_orders(), [])
        self.assertEqual([o.id for o in await self.admin.get_completed_orders()], ["o-1"])
        with self.assertRaisesRegex(BackendError, "Cannot move"):
            await self.admin.update_order_status("o-1", OrderStatus.CANCELLED)

        with self.assertRaisesRegex(BackendError, "Unauthorized"):
            await self.alice.update_order_status("o-1", OrderStatus.CANCELLED)

    # ---------- Identity, stats, wishlist ----------

    async def test_roles_and_profiles(self):
        self.assertTrue(await self.admin.is_caller_admin())
        self.assertFalse(await self.alice.is_caller_admin())
        self.assertFalse(await self.anon.is_caller_admin())
        self.assertEqual(await self.anon.get_caller_user_role(), UserRole.GUEST)
        self.assertEqual(await self.alice.get_caller_user_role(), UserRole.USER)

        self.assertIsNone(await self.alice.get_caller_user_profile())
        await self.alice.save_caller_user_profile(UserProfile("Alice", "1 Main St", "123"))
        self.assertEqual((await self.alice.get_caller_user_profile()).name, "Alice")
        self.assertEqual((await self.admin.get_user_profile("alice")).phone, "123")
        with self.assertRaises(BackendError):
            await self.anon.save_caller_user_profile(UserProfile("Nobody"))

        await self.admin.assign_caller_user_role("alice", UserRole.ADMIN)
        self.assertTrue(await self.alice.is_caller_admin())

    async def test_stats_and_wishlist(self):
        await self.alice.add_to_wishlist("sofa-1")
        await self.alice.add_to_wishlist("sofa-1")
        self.assertEqual(await self.alice.get_wishlist(), ["sofa-1"])
        await self.alice.increment_product_views("sofa-1")
        await self.alice.create_order("o-s", "A", "1", "x", [CartItem("sofa-1", 3)])

        stats = await self.anon.get_product_stats("sofa-1")
        self.assertEqual((stats.views, stats.wishlists, stats.sales), (1, 1, 3))

        system = await self.admin.get_system_stats()
        self.assertEqual((system.total_products, system.active_products), (6, 5))
        self.assertEqual((system.total_orders, system.pending_orders), (1, 1))
        self.assertEqual(system.total_sales, 75000)

        await self.alice.remove_from_wishlist("sofa-1")
        self.assertEqual(await self.alice.get_wishlist(), [])
        self.assertEqual((await self.anon.get_store_info()).name, "Woodcraft Furniture")

    async def test_actor_factory_binds_caller(self):
        build = local_actor_factory(self.admin.media)
        self.assertEqual((await build(Identity("carol"))).caller, "carol")
        self.assertIsNone((await build(None)).caller)


if __name__ == "__main__":
    unittest.main()
