import copy
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from django.test import RequestFactory, SimpleTestCase
from django.urls import reverse

from checkout.client import SquareConnectionError
from checkout.models import CheckoutStage
from checkout.test_helpers.square_fakes import FakeSquareClient
from checkout.test_helpers.testcases import PICKUP_DATA, SquareViewTestCase, fixed_pick_up_times
from checkout.views import ChooseDeliveryPickupView
from orders_payments.env import getEnvConfig


def query_of(url):
    """Return the query string of a redirect as a flat dict"""
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


class CreateOrderViewTest(SquareViewTestCase):
    """Test order creation from the storefront"""

    def setUp(self):
        super().setUp()
        self.url = reverse("checkout:create_order")

    def test_create_order_redirects_to_delivery_pickup(self):
        """New order id and the posted location id should be carried to the next step"""
        response = self.client.post(self.url, {"item_var_id": "VAR1", "item_quantity": "3", "location_id": "LOC123"})

        self.assertEqual(len(self.square.orders), 1)
        order_id = next(iter(self.square.orders))

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("checkout:choose_delivery_pickup")))
        self.assertEqual(query_of(response.url), {"order_id": order_id, "location_id": "LOC123"})

    def test_create_order_sends_single_line_item(self):
        """Only the chosen variation and quantity should be sent"""
        self.client.post(self.url, {"item_var_id": "VAR1", "item_quantity": "2", "location_id": "LOC123"})

        name, (location_id, body) = self.square.calls[0]
        self.assertEqual(name, "create_order")
        self.assertEqual(location_id, "LOC123")
        self.assertEqual(body["order"]["line_items"], [{"quantity": "2", "catalog_object_id": "VAR1"}])
        self.assertTrue(body["idempotency_key"])

    def test_create_order_rejects_invalid_quantity(self):
        """Zero quantity is a bad request and nothing is sent to Square"""
        response = self.client.post(self.url, {"item_var_id": "VAR1", "item_quantity": "0", "location_id": "LOC123"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.square.calls, [])

    def test_create_order_requires_post(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)

    def test_create_order_square_unreachable_renders_error_page(self):
        """Transport failures go to the generic error page"""
        with patch.object(self.square, "create_order", side_effect=SquareConnectionError("boom")):
            response = self.client.post(
                self.url, {"item_var_id": "VAR1", "item_quantity": "1", "location_id": "LOC123"}
            )

        self.assertEqual(response.status_code, 502)
        self.assertTemplateUsed(response, "error.html")


class ChooseDeliveryPickupViewTest(SquareViewTestCase):
    """Test the pickup details step"""

    def setUp(self):
        super().setUp()
        self.url = reverse("checkout:choose_delivery_pickup")
        self.order = self.square.add_order()

    def test_get_renders_order_location_and_pickup_times(self):
        response = self.client.get(self.url, self.order_params(self.order))

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "checkout/choose_delivery_pickup.html")
        self.assertEqual(response.context["order_info"].order_id, self.order["id"])
        self.assertEqual(response.context["location_info"].business_name, "Corner Bakery")
        self.assertEqual(len(response.context["pick_up_times"]), getEnvConfig().PICKUP_SLOT_COUNT)
        self.assertNotIn("update_order", self.square.call_names())

    def test_get_without_identifiers_is_bad_request(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 400)

    def test_post_sets_fulfillment_and_redirects_to_payment(self):
        response = self.submit_pickup(self.order)

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("checkout:payment")))
        self.assertEqual(query_of(response.url), self.order_params(self.order))

        stored = self.square.orders[self.order["id"]]
        self.assertEqual(len(stored["fulfillments"]), 1)
        fulfillment = stored["fulfillments"][0]
        self.assertEqual(fulfillment["type"], "PICKUP")
        self.assertEqual(fulfillment["state"], "PROPOSED")
        self.assertEqual(fulfillment["pickup_details"]["recipient"]["display_name"], "Ada Lovelace")
        self.assertEqual(fulfillment["pickup_details"]["pickup_at"], "2030-03-04T15:30:00Z")

    def test_post_sends_current_version(self):
        self.submit_pickup(self.order)

        update = [args for name, args in self.square.calls if name == "update_order"][0]
        self.assertEqual(update[2]["order"]["version"], 1)

    def test_resubmitting_replaces_fulfillment(self):
        """Second submission updates the same fulfillment instead of adding one"""
        self.submit_pickup(self.order)
        first_uid = self.square.orders[self.order["id"]]["fulfillments"][0]["uid"]

        self.submit_pickup(self.order, pickup_name="Grace Hopper", pickup_time="2030-03-04T16:00:00Z")

        fulfillments = self.square.orders[self.order["id"]]["fulfillments"]
        self.assertEqual(len(fulfillments), 1)
        self.assertEqual(fulfillments[0]["uid"], first_uid)
        self.assertEqual(fulfillments[0]["pickup_details"]["recipient"]["display_name"], "Grace Hopper")
        self.assertEqual(fulfillments[0]["pickup_details"]["pickup_at"], "2030-03-04T16:00:00Z")

    def test_get_prefills_existing_fulfillment(self):
        self.submit_pickup(self.order)

        response = self.client.get(self.url, self.order_params(self.order))

        self.assertEqual(response.context["form"].initial["pickup_name"], "Ada Lovelace")

    def test_invalid_pickup_details_rerender_without_update(self):
        response = self.submit_pickup(self.order, pickup_email="not-an-email", pickup_time="tomorrow")

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "checkout/choose_delivery_pickup.html")
        self.assertIn("pickup_email", response.context["form"].errors)
        self.assertIn("pickup_time", response.context["form"].errors)
        self.assertNotIn("update_order", self.square.call_names())

    def test_stale_version_renders_conflict(self):
        """A concurrent edit between read and update surfaces as a 409"""
        original_update = self.square.update_order

        def bump_then_update(location_id, order_id, body):
            self.square.orders[order_id]["version"] += 1
            return original_update(location_id, order_id, body)

        with patch.object(self.square, "update_order", side_effect=bump_then_update):
            response = self.submit_pickup(self.order)

        self.assertEqual(response.status_code, 409)
        self.assertTemplateUsed(response, "error.html")
        self.assertNotIn("fulfillments", self.square.orders[self.order["id"]])

    def test_unknown_order_renders_not_found(self):
        response = self.client.get(self.url, {"order_id": "MISSING", "location_id": "LOC123"})

        self.assertEqual(response.status_code, 404)
        self.assertTemplateUsed(response, "error.html")

    def test_paid_order_redirects_to_status(self):
        paid = self.square.add_order(
            fulfillments=[{"uid": "ful-1", "type": "PICKUP", "state": "PROPOSED"}],
            tenders=[{"id": "T1", "payment_id": "T1"}],
        )

        response = self.submit_pickup(paid)

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("order_status:order_status")))
        self.assertNotIn("update_order", self.square.call_names())

    def test_unoffered_pickup_time_is_a_form_error(self):
        """Times between slots or in the past never reach Square"""
        for pickup_time in ("2030-03-04T15:45:00Z", "2001-01-01T03:07:00Z"):
            with self.subTest(pickup_time=pickup_time):
                response = self.submit_pickup(self.order, pickup_time=pickup_time)

                self.assertEqual(response.status_code, 200)
                self.assertIn("pickup_time", response.context["form"].errors)

        self.assertNotIn("update_order", self.square.call_names())

    def test_rerender_keeps_chosen_slot_selected(self):
        response = self.submit_pickup(self.order, pickup_email="not-an-email", pickup_time="2030-03-04T16:00:00Z")

        self.assertContains(response, '<option value="2030-03-04T16:00:00Z" selected>')
        self.assertNotContains(response, '<option value="2030-03-04T15:30:00Z" selected>')

    def test_return_visit_selects_scheduled_slot(self):
        self.submit_pickup(self.order, pickup_time="2030-03-04T16:00:00Z")

        response = self.client.get(self.url, self.order_params(self.order))

        self.assertContains(response, '<option value="2030-03-04T16:00:00Z" selected>')

    def test_update_uses_the_orders_own_location(self):
        """A posted location_id that differs from the order's is not sent to Square"""
        stored = copy.deepcopy(self.order)
        with patch.object(self.square, "batch_retrieve_orders", return_value=[stored]):
            response = self.submit_pickup(self.order, location_id="LOC999")

        update = [args for name, args in self.square.calls if name == "update_order"][0]
        self.assertEqual(update[0], "LOC123")
        self.assertEqual(query_of(response.url)["location_id"], "LOC123")


class PaymentViewTest(SquareViewTestCase):
    """Test the payment step"""

    def setUp(self):
        super().setUp()
        self.url = reverse("checkout:payment")
        self.order = self.square.add_order(total=1350)

    def test_get_without_fulfillment_redirects_back(self):
        """No fulfillment yet: send the customer back and render nothing else"""
        response = self.client.get(self.url, self.order_params(self.order))

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("checkout:choose_delivery_pickup")))
        self.assertEqual(query_of(response.url), self.order_params(self.order))
        self.assertTemplateNotUsed(response, "checkout/payment.html")
        self.assertNotIn("retrieve_location", self.square.call_names())

    def test_get_with_fulfillment_renders_payment_form(self):
        self.submit_pickup(self.order)

        response = self.client.get(self.url, self.order_params(self.order))

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "checkout/payment.html")
        self.assertEqual(response.context["application_id"], getEnvConfig().SQUARE_APPLICATION_ID)
        self.assertEqual(response.context["order_info"].total, "$13.50")
        self.assertContains(response, "sandbox.web.squarecdn.com")

    def test_post_creates_one_payment_for_order_total(self):
        self.submit_pickup(self.order)

        response = self.client.post(self.url, {**self.order_params(self.order), "nonce": "cnon:card-nonce-ok"})

        self.assertEqual(len(self.square.payments), 1)
        payment = self.square.payments[0]
        self.assertEqual(payment["amount_money"], {"amount": 1350, "currency": "USD"})
        self.assertEqual(payment["order_id"], self.order["id"])

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("order_status:order_status")))
        self.assertEqual(query_of(response.url)["order_id"], self.order["id"])

    def test_post_uses_nonce_and_short_idempotency_key(self):
        self.submit_pickup(self.order)

        self.client.post(self.url, {**self.order_params(self.order), "nonce": "cnon:card-nonce-ok"})

        body = [args[0] for name, args in self.square.calls if name == "create_payment"][0]
        self.assertEqual(body["source_id"], "cnon:card-nonce-ok")
        self.assertLessEqual(len(body["idempotency_key"]), 45)

    def test_post_uses_total_at_submission_time(self):
        """The amount comes from Square, not from anything the browser posts"""
        self.submit_pickup(self.order)
        self.square.orders[self.order["id"]]["total_money"] = {"amount": 1500, "currency": "USD"}

        self.client.post(
            self.url,
            {**self.order_params(self.order), "nonce": "cnon:card-nonce-ok", "amount": "1"},
        )

        self.assertEqual(self.square.payments[0]["amount_money"]["amount"], 1500)

    def test_post_without_fulfillment_does_not_charge(self):
        response = self.client.post(self.url, {**self.order_params(self.order), "nonce": "cnon:card-nonce-ok"})

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("checkout:choose_delivery_pickup")))
        self.assertEqual(self.square.payments, [])

    def test_post_without_nonce_rerenders_form(self):
        self.submit_pickup(self.order)

        response = self.client.post(self.url, self.order_params(self.order))

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "checkout/payment.html")
        self.assertIn("nonce", response.context["form"].errors)
        self.assertEqual(self.square.payments, [])

    def test_paid_order_is_not_charged_twice(self):
        self.submit_pickup(self.order)
        params = {**self.order_params(self.order), "nonce": "cnon:card-nonce-ok"}

        self.client.post(self.url, params)
        response = self.client.post(self.url, params)

        self.assertEqual(len(self.square.payments), 1)
        self.assertTrue(response.url.startswith(reverse("order_status:order_status")))


class CheckoutFlowTest(SquareViewTestCase):
    """Walk the whole checkout the way a browser would"""

    def test_full_checkout(self):
        response = self.client.post(
            reverse("checkout:create_order"),
            {"item_var_id": "VAR1", "item_quantity": "2", "location_id": "LOC123"},
        )
        params = query_of(response.url)

        response = self.client.get(response.url)
        self.assertEqual(response.status_code, 200)

        response = self.client.post(reverse("checkout:choose_delivery_pickup"), {**params, **PICKUP_DATA})
        response = self.client.get(response.url)
        self.assertTemplateUsed(response, "checkout/payment.html")

        response = self.client.post(reverse("checkout:payment"), {**params, "nonce": "cnon:card-nonce-ok"})
        response = self.client.get(response.url)

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "order_status/order_status.html")
        self.assertTrue(response.context["order_info"].is_paid)
        self.assertEqual(self.square.payments[0]["amount_money"]["amount"], 900)

    def test_every_mutating_call_uses_a_fresh_idempotency_key(self):
        self.test_full_checkout()

        keys = self.square.idempotency_keys
        self.assertEqual(len(keys), 3)
        self.assertEqual(len(keys), len(set(keys)))

    def test_stage_values_follow_checkout_order(self):
        self.assertLess(CheckoutStage.DELIVERY_PICKUP, CheckoutStage.PAYMENT)
        self.assertLess(CheckoutStage.PAYMENT, CheckoutStage.ORDER_STATUS)


class InjectedClientTest(SimpleTestCase):
    """Views built with as_view(client=...) use that client and never build their own"""

    def setUp(self):
        self.factory = RequestFactory()
        self.square = FakeSquareClient()
        self.order = self.square.add_order()
        self.view = ChooseDeliveryPickupView.as_view(client=self.square)

    @patch("checkout.views.get_pick_up_times", side_effect=fixed_pick_up_times)
    @patch("checkout.views.get_square_client")
    def test_get_uses_injected_client(self, get_square_client, _):
        request = self.factory.get(
            reverse("checkout:choose_delivery_pickup"),
            {"order_id": self.order["id"], "location_id": "LOC123"},
        )

        response = self.view(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.square.call_names(), ["batch_retrieve_orders", "retrieve_location"])
        get_square_client.assert_not_called()

    @patch("checkout.views.get_pick_up_times", side_effect=fixed_pick_up_times)
    @patch("checkout.views.get_square_client")
    def test_post_updates_through_injected_client(self, get_square_client, _):
        request = self.factory.post(
            reverse("checkout:choose_delivery_pickup"),
            {"order_id": self.order["id"], "location_id": "LOC123", **PICKUP_DATA},
        )

        response = self.view(request)

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.url.startswith(reverse("checkout:payment")))
        self.assertEqual(self.square.orders[self.order["id"]]["fulfillments"][0]["type"], "PICKUP")
        get_square_client.assert_not_called()
