from django.urls import reverse

from checkout.test_helpers.testcases import SquareViewTestCase


class OrderStatusViewTest(SquareViewTestCase):
    """Test the read-only order summary"""

    def setUp(self):
        super().setUp()
        self.url = reverse("order_status:order_status")

    def test_renders_paid_order_summary(self):
        order = self.square.add_order(
            total=1350,
            fulfillments=[
                {
                    "uid": "ful-1",
                    "type": "PICKUP",
                    "state": "PROPOSED",
                    "pickup_details": {
                        "recipient": {"display_name": "Ada Lovelace", "email_address": "ada@example.com"},
                        "pickup_at": "2030-03-04T15:30:00Z",
                    },
                }
            ],
            tenders=[{"id": "PAY1", "payment_id": "PAY1"}],
        )

        response = self.client.get(self.url, self.order_params(order))

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "order_status/order_status.html")
        self.assertContains(response, order["id"])
        self.assertContains(response, "Ada Lovelace")
        self.assertContains(response, "$13.50")
        self.assertContains(response, "Paid")
        self.assertContains(response, "$6.75")
        self.assertContains(response, "hello@example.com")
        self.assertEqual(response.context["location_info"].location_id, "LOC123")

    def test_status_has_no_stage_precondition(self):
        """An order that never got a fulfillment can still be looked at"""
        order = self.square.add_order()

        response = self.client.get(self.url, self.order_params(order))

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Awaiting payment")

    def test_status_does_not_modify_order(self):
        order = self.square.add_order()

        self.client.get(self.url, self.order_params(order))

        self.assertEqual(self.square.call_names(), ["batch_retrieve_orders", "retrieve_location"])

    def test_unknown_order_surfaces_error(self):
        """A missing order must not render a blank summary"""
        response = self.client.get(self.url, {"order_id": "DOES-NOT-EXIST", "location_id": "LOC123"})

        self.assertEqual(response.status_code, 404)
        self.assertTemplateUsed(response, "error.html")
        self.assertTemplateNotUsed(response, "order_status/order_status.html")

    def test_unknown_location_surfaces_error(self):
        order = self.square.add_order(location_id="ELSEWHERE")

        response = self.client.get(self.url, self.order_params(order))

        self.assertEqual(response.status_code, 404)

    def test_missing_identifiers_is_bad_request(self):
        response = self.client.get(self.url, {"order_id": "ORDER1"})
        self.assertEqual(response.status_code, 400)
