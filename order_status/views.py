from django.shortcuts import render

from checkout.models import LocationInfo, OrderInfo
from checkout.utils import get_order
from checkout.views import SquareView, get_order_reference


class OrderStatusView(SquareView):
    """Read-only summary of an order after checkout"""

    def get(self, request):
        order_id, location_id = get_order_reference(request.GET)
        client = self.get_client()

        order_info = OrderInfo(get_order(client, location_id, order_id))
        location_info = LocationInfo(client.retrieve_location(location_id))

        context = {
            "order_info": order_info,
            "location_info": location_info,
        }

        return render(request, "order_status/order_status.html", context)
