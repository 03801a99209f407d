"""View models for Square catalog objects listed on the storefront."""

from checkout.models import format_money


class CatalogItemInfo:
    """Wraps a catalog object of type ITEM."""

    def __init__(self, catalog_object):
        self.catalog_object = catalog_object

    @property
    def item_id(self):
        return self.catalog_object["id"]

    @property
    def item_data(self):
        return self.catalog_object.get("item_data", {})

    @property
    def name(self):
        return self.item_data.get("name", "")

    @property
    def description(self):
        return self.item_data.get("description", "")

    @property
    def variations(self):
        variations = []
        for variation in self.item_data.get("variations", []):
            data = variation.get("item_variation_data", {})
            variations.append(
                {
                    "id": variation["id"],
                    "name": data.get("name", ""),
                    "price": format_money(data.get("price_money")),
                }
            )
        return variations

    def is_available_at(self, location_id):
        if self.catalog_object.get("is_deleted"):
            return False
        if location_id in self.catalog_object.get("absent_at_location_ids", []):
            return False
        if self.catalog_object.get("present_at_all_locations", True):
            return True
        return location_id in self.catalog_object.get("present_at_location_ids", [])
