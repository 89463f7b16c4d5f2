import asyncio
import re
import unittest
from datetime import datetime

from db.actor import ActorRegistry
from db.cache import QueryCache
from db.errors import ActorUnavailableError, BackendError
from db.identity import AuthClient, Identity
from db.models import CartItem, Order, OrderStatus, UserProfile
from db.queries import StoreApi, generate_id


def make_order(order_id, customer="alice"):
    now = datetime.now()
    return Order(
        id=order_id,
        customer_id=customer,
        customer_name="Alice",
        phone="123",
        address="1 Main St",
        total_price=500,
        status=OrderStatus.PENDING,
        created_at=now,
        updated_at=now,
    )


class FakeActor:
    """Just enough of the store actor for the data access tests."""

    def __init__(self, principal=None, admins=()):
        self.principal = principal
        self.admins = set(admins)
        self.orders = []
        self.calls = []
        self.fail = set()
        self.gate = None

    def _record(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise BackendError(f"{name} failed")

    async def get_my_orders(self):
        self._record("get_my_orders")
        mine = [o for o in self.orders if o.customer_id == self.principal]
        if self.gate is not None:
            await self.gate.wait()
        return mine

    async def get_all_orders(self):
        self._record("get_all_orders")
        return list(self.orders)

    async def create_order(self, order_id, name, phone, address, cart):
        self._record("create_order")
        self.orders.append(make_order(order_id, self.principal))

    async def is_caller_admin(self):
        self._record("is_caller_admin")
        return self.principal in self.admins

    async def get_caller_user_profile(self):
        self._record("get_caller_user_profile")
        return None

    async def save_caller_user_profile(self, profile):
        self._record("save_caller_user_profile")

    async def get_all_categories(self):
        self._record("get_all_categories")
        return ["Beds", "Sofas"]

    async def increment_product_views(self, product_id):
        self._record("increment_product_views")


class StoreApiTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.actors_built = []
        self.admins = {"root"}

        async def factory(identity):
            actor = FakeActor(identity.principal if identity else None, self.admins)
            self.actors_built.append(actor)
            return actor

        self.auth = AuthClient()
        self.registry = ActorRegistry(factory)
        self.api = StoreApi(self.auth, self.registry, QueryCache())

    async def login(self, principal):
        identity = await self.auth.login(principal)
        return await self.registry.ensure(identity)

    async def test_queries_report_loading_until_actor_ready(self):
        result = await self.api.get_all_categories()
        self.assertTrue(result.is_loading)
        self.assertIsNone(result.data)
        self.assertIsNone(result.error)

        await self.registry.ensure(None)
        result = await self.api.get_all_categories()
        self.assertEqual(result.data, ["Beds", "Sofas"])

    async def test_caller_scoped_queries_need_identity(self):
        actor = await self.registry.ensure(None)

        self.assertTrue((await self.api.get_my_orders()).is_loading)
        self.assertTrue((await self.api.get_caller_user_profile()).is_loading)
        self.assertNotIn("get_my_orders", actor.calls)

    async def test_admin_is_false_without_identity(self):
        await self.registry.ensure(None)
        result = await self.api.is_caller_admin()
        self.assertIs(result.data, False)
        self.assertFalse(result.is_loading)
        self.assertIs(self.api.peek_is_caller_admin().data, False)

    async def test_admin_check_fails_closed(self):
        actor = await self.login("root")
        actor.fail.add("is_caller_admin")

        result = await self.api.is_caller_admin()
        self.assertIs(result.data, False)

    async def test_admin_status_per_principal(self):
        await self.login("root")
        self.assertTrue((await self.api.is_caller_admin()).data)
        self.assertTrue(self.api.peek_is_caller_admin().data)

        await self.auth.clear()
        await self.login("bob")
        # nothing cached for bob yet
        self.assertTrue(self.api.peek_is_caller_admin().is_loading)
        self.assertIs((await self.api.is_caller_admin()).data, False)

    async def test_create_order_refreshes_order_lists(self):
        actor = await self.login("alice")
        mine_before = await self.api.get_my_orders()
        all_before = await self.api.get_all_orders()
        self.assertEqual(mine_before.data, [])
        self.assertEqual(all_before.data, [])

        await self.api.create_order(
            "order-1", "Alice", "123", "1 Main St", [CartItem("sofa-1", 1)]
        )

        mine_after = await self.api.get_my_orders()
        all_after = await self.api.get_all_orders()
        self.assertEqual([o.id for o in mine_after.data], ["order-1"])
        self.assertEqual([o.id for o in all_after.data], ["order-1"])
        self.assertEqual(actor.calls.count("get_my_orders"), 2)

    async def test_read_after_order_is_not_served_by_earlier_call(self):
        actor = await self.login("alice")
        actor.gate = asyncio.Event()

        before = asyncio.ensure_future(self.api.get_my_orders())
        while "get_my_orders" not in actor.calls:
            await asyncio.sleep(0)

        await self.api.create_order(
            "o1", "Alice", "123", "1 Main St", [CartItem("sofa-1", 1)]
        )
        after = asyncio.ensure_future(self.api.get_my_orders())
        while actor.calls.count("get_my_orders") < 2:
            await asyncio.sleep(0)
        actor.gate.set()

        self.assertEqual((await before).data, [])
        self.assertEqual([o.id for o in (await after).data], ["o1"])
        cached = await self.api.get_my_orders()
        self.assertEqual([o.id for o in cached.data], ["o1"])
        self.assertEqual(actor.calls.count("get_my_orders"), 2)

    async def test_failed_mutation_leaves_cache_alone(self):
        actor = await self.login("alice")
        await self.api.get_my_orders()
        actor.fail.add("create_order")

        with self.assertRaises(BackendError):
            await self.api.create_order("order-2", "Alice", "1", "x", [CartItem("a", 1)])

        self.assertFalse(self.api.cache.is_stale(("myOrders",)))
        await self.api.get_my_orders()
        self.assertEqual(actor.calls.count("get_my_orders"), 1)

    async def test_mutation_without_actor(self):
        with self.assertRaises(ActorUnavailableError):
            await self.api.save_caller_user_profile(UserProfile(name="Alice"))

    async def test_save_profile_invalidates_profile(self):
        actor = await self.login("alice")
        await self.api.get_caller_user_profile()
        await self.api.save_caller_user_profile(UserProfile(name="Alice"))
        await self.api.get_caller_user_profile()
        self.assertEqual(actor.calls.count("get_caller_user_profile"), 2)

    async def test_view_tracking_never_raises(self):
        # no actor at all
        await self.api.increment_product_views("sofa-1")

        actor = await self.login("alice")
        actor.fail.add("increment_product_views")
        await self.api.increment_product_views("sofa-1")
        self.assertIn("increment_product_views", actor.calls)

    async def test_actor_rebuilt_per_identity(self):
        await self.registry.ensure(None)
        await self.registry.ensure(None)
        self.assertEqual(len(self.actors_built), 1)

        await self.login("alice")
        self.assertEqual(self.actors_built[-1].principal, "alice")
        self.assertIsNone(self.registry.current(None))
        self.assertIs(self.registry.current(Identity("alice")), self.actors_built[-1])
        self.assertEqual(len(self.actors_built), 2)

    async def test_actor_not_ready_while_building(self):
        gate = asyncio.Event()

        async def slow_factory(identity):
            await gate.wait()
            return FakeActor()

        registry = ActorRegistry(slow_factory)
        api = StoreApi(AuthClient(), registry)
        building = asyncio.ensure_future(registry.ensure(None))
        await asyncio.sleep(0)

        self.assertTrue(registry.is_fetching)
        self.assertTrue((await api.get_all_categories()).is_loading)
        gate.set()
        await building
        self.assertFalse(registry.is_fetching)
        self.assertEqual((await api.get_all_categories()).data, ["Beds", "Sofas"])


class GenerateIdTestCase(unittest.TestCase):
    def test_format(self):
        order_id = generate_id("order")
        self.assertRegex(order_id, re.compile(r"^order-\d{13}-[a-z0-9]{9}$"))
        self.assertNotEqual(order_id, generate_id("order"))


if __name__ == "__main__":
    unittest.main()
