import unittest

from db import invalidation as inv
from db.invalidation import INVALIDATIONS, MutationKind, keys_to_invalidate


class InvalidationTableTestCase(unittest.TestCase):
    def test_every_mutation_has_an_entry(self):
        self.assertEqual(set(INVALIDATIONS), set(MutationKind))

    def test_product_mutations(self):
        self.assertEqual(
            keys_to_invalidate(MutationKind.ADD_PRODUCT, {"product_id": "p"}),
            [inv.ALL_PRODUCTS, inv.ACTIVE_PRODUCTS],
        )
        for kind in (MutationKind.UPDATE_PRODUCT, MutationKind.UPDATE_PRODUCT_MEDIA):
            self.assertEqual(
                keys_to_invalidate(kind, {"product_id": "sofa-1"}),
                [("product", "sofa-1"), inv.ALL_PRODUCTS, inv.ACTIVE_PRODUCTS],
            )

    def test_category_mutations(self):
        for kind in (MutationKind.ADD_CATEGORY, MutationKind.DELETE_CATEGORY):
            keys = keys_to_invalidate(kind, {"name": "Beds"})
            self.assertEqual(set(keys), {inv.CATEGORIES, inv.ALL_PRODUCTS, inv.ACTIVE_PRODUCTS})

    def test_order_mutations(self):
        created = keys_to_invalidate(MutationKind.CREATE_ORDER, {"order_id": "o1"})
        self.assertIn(inv.MY_ORDERS, created)
        self.assertIn(inv.ALL_ORDERS, created)

        updated = keys_to_invalidate(MutationKind.UPDATE_ORDER_STATUS, {"order_id": "o1"})
        self.assertIn(inv.MY_ORDERS, updated)
        self.assertIn(inv.ALL_ORDERS, updated)
        self.assertIn(("order", "o1"), updated)

    def test_identity_and_wishlist_mutations(self):
        self.assertEqual(
            keys_to_invalidate(MutationKind.SAVE_PROFILE, {}), [inv.CURRENT_USER_PROFILE]
        )
        self.assertEqual(
            keys_to_invalidate(MutationKind.ASSIGN_ROLE, {}), [inv.IS_ADMIN, inv.CALLER_USER_ROLE]
        )
        self.assertEqual(keys_to_invalidate(MutationKind.ADD_TO_WISHLIST, {}), [inv.WISHLIST])
        self.assertEqual(keys_to_invalidate(MutationKind.REMOVE_FROM_WISHLIST, {}), [inv.WISHLIST])
        self.assertEqual(
            keys_to_invalidate(MutationKind.SET_FEATURED_PRODUCTS, {}), [inv.FEATURED_PRODUCTS]
        )

    def test_view_tracking_invalidates_nothing(self):
        self.assertEqual(
            keys_to_invalidate(MutationKind.INCREMENT_PRODUCT_VIEWS, {"product_id": "p"}), []
        )


if __name__ == "__main__":
    unittest.main()
