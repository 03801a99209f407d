from datetime import datetime, timezone
from unittest.mock import patch

from django.test import Client, SimpleTestCase
from django.urls import reverse

from checkout.models import PickUpTimes
from checkout.test_helpers.square_fakes import FakeSquareClient
from orders_payments.env import getEnvConfig

# Slots offered at this moment start at 15:30 and follow every 30 minutes
PICKUP_NOW = datetime(2030, 3, 4, 15, 7, 42, tzinfo=timezone.utc)

PICKUP_DATA = {
    "pickup_name": "Ada Lovelace",
    "pickup_email": "ada@example.com",
    "pickup_number": "+1 415 555 0101",
    "pickup_time": "2030-03-04T15:30:00Z",
    "fulfillment_type": "PICKUP",
}


def fixed_pick_up_times():
    return PickUpTimes(
        interval_minutes=30,
        count=getEnvConfig().PICKUP_SLOT_COUNT,
        lead_minutes=15,
        now=PICKUP_NOW,
    )


class SquareViewTestCase(SimpleTestCase):
    """Runs every view against a FakeSquareClient"""

    def setUp(self):
        self.client = Client()
        self.square = FakeSquareClient()
        for target, kwargs in (
            ("checkout.views.get_square_client", {"return_value": self.square}),
            ("checkout.views.get_pick_up_times", {"side_effect": fixed_pick_up_times}),
        ):
            patcher = patch(target, **kwargs)
            patcher.start()
            self.addCleanup(patcher.stop)

    def order_params(self, order):
        return {"order_id": order["id"], "location_id": order["location_id"]}

    def submit_pickup(self, order, **overrides):
        data = {**self.order_params(order), **PICKUP_DATA, **overrides}
        return self.client.post(reverse("checkout:choose_delivery_pickup"), data)
