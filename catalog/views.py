from django.shortcuts import render

from catalog.models import CatalogItemInfo
from checkout.models import LocationInfo
from checkout.views import SquareView
from orders_payments.env import getEnvConfig


class CatalogItemListView(SquareView):
    """Storefront: items sold at the configured location"""

    template_name = "catalog/index.html"

    def get(self, request):
        location_id = getEnvConfig().SQUARE_LOCATION_ID
        client = self.get_client()

        location_info = LocationInfo(client.retrieve_location(location_id))
        items = [CatalogItemInfo(obj) for obj in client.list_catalog(types="ITEM")]
        items = [item for item in items if item.is_available_at(location_id) and item.variations]

        context = {
            "items": items,
            "location_info": location_info,
        }

        return render(request, self.template_name, context)
