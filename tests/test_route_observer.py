import asyncio
import unittest

from utils import routes
from utils.location import Location
from utils.route_observer import RouteObserver
from utils.routes import Route


class RouteObserverTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_initial_route_from_fragment(self):
        observer = RouteObserver(Location("#/product/sofa-1"))
        self.assertEqual(observer.current, Route.product("sofa-1"))

    async def test_navigation_is_delivered_asynchronously(self):
        location = Location()
        observer = RouteObserver(location)
        seen = []
        observer.subscribe(seen.append)

        routes.navigate(location, routes.CHECKOUT)
        # not yet: listeners run on the next loop iteration
        self.assertEqual(observer.current, routes.HOME)
        self.assertEqual(seen, [])

        await asyncio.sleep(0)
        self.assertEqual(observer.current, routes.CHECKOUT)
        self.assertEqual(seen, [routes.CHECKOUT])

    async def test_subscribe_resolves_missed_change(self):
        location = Location()
        observer = RouteObserver(location)
        # the observer has not heard about this yet
        location.assign("#/orders")

        seen = []
        observer.subscribe(seen.append)
        self.assertEqual(seen, [routes.ORDERS])
        self.assertEqual(observer.current, routes.ORDERS)

        # the queued notification finds nothing new
        await asyncio.sleep(0)
        self.assertEqual(seen, [routes.ORDERS])

    async def test_only_changes_are_published(self):
        location = Location()
        observer = RouteObserver(location)
        seen = []
        observer.subscribe(seen.append)

        location.assign("#/nowhere")
        await asyncio.sleep(0)
        location.assign("#/elsewhere")
        await asyncio.sleep(0)
        self.assertEqual(seen, [routes.NOT_FOUND])

    async def test_back_navigation_and_unsubscribe(self):
        location = Location()
        observer = RouteObserver(location)
        seen = []
        unsubscribe = observer.subscribe(seen.append)

        location.assign("#/admin")
        await asyncio.sleep(0)
        location.back()
        await asyncio.sleep(0)
        self.assertEqual(seen, [routes.ADMIN, routes.HOME])

        unsubscribe()
        location.forward()
        await asyncio.sleep(0)
        self.assertEqual(seen, [routes.ADMIN, routes.HOME])
        self.assertEqual(observer.current, routes.ADMIN)

        observer.close()
        location.back()
        await asyncio.sleep(0)
        self.assertEqual(observer.current, routes.ADMIN)


if __name__ == "__main__":
    unittest.main()
