from django.test import SimpleTestCase
from django.urls import reverse

from catalog.models import CatalogItemInfo
from checkout.test_helpers.square_fakes import create_catalog_item
from checkout.test_helpers.testcases import SquareViewTestCase


class CatalogItemInfoTest(SimpleTestCase):
    """Test the catalog item view model"""

    def test_variations_are_formatted(self):
        item = CatalogItemInfo(create_catalog_item(variations=[("VAR1", "Small", 300), ("VAR2", "Large", 525)]))

        self.assertEqual(item.name, "Croissant")
        self.assertEqual(
            item.variations,
            [
                {"id": "VAR1", "name": "Small", "price": "$3.00"},
                {"id": "VAR2", "name": "Large", "price": "$5.25"},
            ],
        )

    def test_availability_at_location(self):
        everywhere = CatalogItemInfo(create_catalog_item())
        only_here = CatalogItemInfo(
            create_catalog_item(present_at_all_locations=False, present_at_location_ids=["LOC123"])
        )
        not_here = CatalogItemInfo(create_catalog_item(absent_at_location_ids=["LOC123"]))
        deleted = CatalogItemInfo(create_catalog_item(is_deleted=True))

        self.assertTrue(everywhere.is_available_at("LOC123"))
        self.assertTrue(only_here.is_available_at("LOC123"))
        self.assertFalse(only_here.is_available_at("LOC999"))
        self.assertFalse(not_here.is_available_at("LOC123"))
        self.assertFalse(deleted.is_available_at("LOC123"))


class CatalogItemListViewTest(SquareViewTestCase):
    """Test the storefront"""

    def setUp(self):
        super().setUp()
        self.square.catalog = [
            create_catalog_item("ITEM1", "Croissant"),
            create_catalog_item("ITEM2", "Baguette", variations=[("VAR2", "Whole", 600)]),
            create_catalog_item("ITEM3", "Bagel", variations=[("VAR3", "Plain", 250)], absent_at_location_ids=["LOC123"]),
            create_catalog_item("ITEM4", "Gift card", variations=[]),
        ]
        self.url = reverse("catalog:index")

    def test_lists_items_sold_at_location(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "catalog/index.html")
        names = [item.name for item in response.context["items"]]
        self.assertEqual(names, ["Croissant", "Baguette"])
        self.assertEqual(self.square.calls[0], ("retrieve_location", ("LOC123",)))

    def test_buy_form_posts_to_create_order(self):
        response = self.client.get(self.url)

        self.assertContains(response, f'action="{reverse("checkout:create_order")}"')
        self.assertContains(response, 'name="item_var_id" value="VAR2"')
        self.assertContains(response, 'name="location_id" value="LOC123"')

    def test_empty_catalog(self):
        self.square.catalog = []

        response = self.client.get(self.url)

        self.assertContains(response, "Nothing is for sale at this location yet.")
