import unittest

from utils import routes
from utils.location import Location
from utils.routes import Route, decode, encode


class DecodeTestCase(unittest.TestCase):
    def test_home_fragments(self):
        for fragment in ("", "#", "/", "#/"):
            self.assertEqual(decode(fragment), routes.HOME, fragment)

    def test_literal_routes(self):
        self.assertEqual(decode("#/admin"), routes.ADMIN)
        self.assertEqual(decode("#/orders"), routes.ORDERS)
        self.assertEqual(decode("#/checkout"), routes.CHECKOUT)
        # the leading '#' is optional
        self.assertEqual(decode("/orders"), routes.ORDERS)

    def test_literals_must_match_exactly(self):
        for fragment in ("#/admin/", "#/Admin", "#/orders?x=1", "#//admin", "##/admin"):
            self.assertEqual(decode(fragment), routes.NOT_FOUND, fragment)

    def test_product_id_kept_verbatim(self):
        self.assertEqual(decode("#/product/sofa-1"), Route.product("sofa-1"))
        self.assertEqual(decode("#/product/a/b"), Route.product("a/b"))
        self.assertEqual(decode("#/product/teak%20bed"), Route.product("teak%20bed"))

    def test_product_needs_an_id(self):
        self.assertEqual(decode("#/product/"), routes.NOT_FOUND)
        self.assertEqual(decode("#/product"), routes.NOT_FOUND)

    def test_unknown_and_bad_input(self):
        self.assertEqual(decode("#/nowhere"), routes.NOT_FOUND)
        self.assertEqual(decode("#/not-found"), routes.NOT_FOUND)
        self.assertEqual(decode(None), routes.NOT_FOUND)
        self.assertEqual(decode(42), routes.NOT_FOUND)


class EncodeTestCase(unittest.TestCase):
    def test_encode(self):
        self.assertEqual(encode(routes.HOME), "#/")
        self.assertEqual(encode(routes.ADMIN), "#/admin")
        self.assertEqual(encode(routes.ORDERS), "#/orders")
        self.assertEqual(encode(routes.CHECKOUT), "#/checkout")
        self.assertEqual(encode(routes.NOT_FOUND), "#/not-found")
        self.assertEqual(encode(Route.product("sofa-1")), "#/product/sofa-1")

    def test_canonical_fragments_round_trip(self):
        for route in (routes.HOME, routes.ADMIN, routes.ORDERS, routes.CHECKOUT, Route.product("x/y")):
            self.assertEqual(decode(encode(route)), route)

    def test_navigate_writes_location(self):
        location = Location()
        routes.navigate(location, Route.product("bed-1"))
        self.assertEqual(location.fragment, "#/product/bed-1")


class LocationTestCase(unittest.TestCase):
    def test_history(self):
        location = Location("#/")
        location.assign("#/orders")
        location.assign("#/checkout")

        self.assertTrue(location.back())
        self.assertEqual(location.fragment, "#/orders")
        self.assertTrue(location.forward())
        self.assertEqual(location.fragment, "#/checkout")
        self.assertFalse(location.forward())

        location.back()
        location.assign("#/admin")
        # forward history is gone after a new assignment
        self.assertFalse(location.forward())
        self.assertTrue(location.back())
        self.assertTrue(location.back())
        self.assertFalse(location.back())
        self.assertEqual(location.fragment, "#/")

    def test_listeners_outside_loop_called_immediately(self):
        location = Location()
        calls = []
        remove = location.add_listener(lambda: calls.append(location.fragment))

        location.assign("#/orders")
        location.assign("#/orders")  # same fragment, no event
        self.assertEqual(calls, ["#/orders"])

        remove()
        location.assign("#/checkout")
        self.assertEqual(calls, ["#/orders"])


if __name__ == "__main__":
    unittest.main()
