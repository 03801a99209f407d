from datetime import datetime, timezone

from django.test import SimpleTestCase

from checkout.forms import PickupDetailsForm
from checkout.models import CheckoutStage, LocationInfo, OrderInfo, PickUpTimes, format_money
from checkout.test_helpers.square_fakes import DEFAULT_LOCATION
from checkout.utils import (
    PAYMENT_IDEMPOTENCY_KEY_MAX_LENGTH,
    build_fulfillment_update_body,
    build_payment_body,
    check_stage,
    generate_idempotency_key,
)

ORDER = {
    "id": "ORDER1",
    "location_id": "LOC123",
    "version": 4,
    "state": "OPEN",
    "line_items": [
        {
            "name": "Croissant",
            "variation_name": "Regular",
            "quantity": "2",
            "base_price_money": {"amount": 450, "currency": "USD"},
            "total_money": {"amount": 900, "currency": "USD"},
        }
    ],
    "total_money": {"amount": 900, "currency": "USD"},
}

FULFILLMENT = {
    "uid": "ful-1",
    "type": "PICKUP",
    "state": "PROPOSED",
    "pickup_details": {
        "recipient": {
            "display_name": "Ada Lovelace",
            "email_address": "ada@example.com",
            "phone_number": "+1 415 555 0101",
        },
        "pickup_at": "2030-03-04T15:30:00Z",
    },
}

PICKUP_DETAILS = {
    "pickup_name": "Grace Hopper",
    "pickup_email": "grace@example.com",
    "pickup_number": "+1 415 555 0102",
    "pickup_time": "2030-03-04T16:00:00Z",
    "fulfillment_type": "PICKUP",
}


class FormatMoneyTest(SimpleTestCase):
    def test_cents_to_dollars(self):
        self.assertEqual(format_money({"amount": 1250, "currency": "USD"}), "$12.50")

    def test_zero_decimal_currency(self):
        self.assertEqual(format_money({"amount": 500, "currency": "JPY"}), "¥500")

    def test_unknown_currency_uses_code(self):
        self.assertEqual(format_money({"amount": 199, "currency": "CHF"}), "1.99 CHF")

    def test_missing_money(self):
        self.assertEqual(format_money(None), "")


class OrderInfoTest(SimpleTestCase):
    """Test the order view model"""

    def test_order_without_fulfillment(self):
        info = OrderInfo(ORDER)

        self.assertEqual(info.order_id, "ORDER1")
        self.assertEqual(info.version, 4)
        self.assertFalse(info.has_fulfillments)
        self.assertIsNone(info.fulfillment)
        self.assertIsNone(info.fulfillment_uid)
        self.assertEqual(info.recipient, {"name": "", "email": "", "phone": ""})
        self.assertEqual(info.formatted_pickup_at, "")
        self.assertEqual(info.total, "$9.00")

    def test_line_items(self):
        line_item = OrderInfo(ORDER).line_items[0]

        self.assertEqual(line_item.name, "Croissant")
        self.assertEqual(line_item.quantity, "2")
        self.assertEqual(line_item.base_price, "$4.50")
        self.assertEqual(line_item.total, "$9.00")

    def test_order_with_fulfillment(self):
        info = OrderInfo({**ORDER, "fulfillments": [FULFILLMENT]})

        self.assertTrue(info.has_fulfillments)
        self.assertEqual(info.fulfillment_uid, "ful-1")
        self.assertEqual(info.fulfillment_type, "PICKUP")
        self.assertEqual(info.recipient["email"], "ada@example.com")
        self.assertEqual(info.formatted_pickup_at, "Mar 4, 3:30 PM")

    def test_empty_fulfillment_list(self):
        self.assertFalse(OrderInfo({**ORDER, "fulfillments": []}).has_fulfillments)

    def test_checkout_stage(self):
        self.assertEqual(OrderInfo(ORDER).checkout_stage, CheckoutStage.DELIVERY_PICKUP)
        self.assertEqual(OrderInfo({**ORDER, "fulfillments": [FULFILLMENT]}).checkout_stage, CheckoutStage.PAYMENT)
        paid = {**ORDER, "fulfillments": [FULFILLMENT], "tenders": [{"id": "T1"}]}
        self.assertEqual(OrderInfo(paid).checkout_stage, CheckoutStage.ORDER_STATUS)
        self.assertTrue(OrderInfo(paid).is_paid)


class LocationInfoTest(SimpleTestCase):
    def test_location_fields(self):
        info = LocationInfo(DEFAULT_LOCATION)

        self.assertEqual(info.location_id, "LOC123")
        self.assertEqual(info.business_name, "Corner Bakery")
        self.assertEqual(info.formatted_address, "1455 Market St, San Francisco CA 94103")
        self.assertEqual(info.phone_number, "+1 415-555-0100")
        self.assertEqual(info.email, "hello@example.com")

    def test_business_name_falls_back_to_name(self):
        info = LocationInfo({"id": "LOC9", "name": "Pop-up"})

        self.assertEqual(info.business_name, "Pop-up")
        self.assertEqual(info.address_lines, [])


class PickUpTimesTest(SimpleTestCase):
    """Test the pickup window generator"""

    def setUp(self):
        self.now = datetime(2030, 3, 4, 15, 7, 42, tzinfo=timezone.utc)

    def test_first_slot_rounds_up_after_lead_time(self):
        times = PickUpTimes(interval_minutes=30, count=3, lead_minutes=15, now=self.now)

        self.assertEqual(
            [slot["value"] for slot in times],
            ["2030-03-04T15:30:00Z", "2030-03-04T16:00:00Z", "2030-03-04T16:30:00Z"],
        )

    def test_slot_on_boundary_is_kept(self):
        now = datetime(2030, 3, 4, 15, 15, tzinfo=timezone.utc)
        times = PickUpTimes(interval_minutes=30, count=1, lead_minutes=15, now=now)

        self.assertEqual(times.slots[0]["value"], "2030-03-04T15:30:00Z")

    def test_labels(self):
        times = PickUpTimes(interval_minutes=60, count=2, lead_minutes=0, now=self.now)

        self.assertEqual([slot["label"] for slot in times], ["Mar 4, 4:00 PM", "Mar 4, 5:00 PM"])

    def test_slot_values_are_accepted_by_the_form(self):
        slot = PickUpTimes(count=1, now=self.now).slots[0]
        form = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": slot["value"]})

        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["pickup_time"], slot["value"])

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            PickUpTimes(interval_minutes=0)


class PickupDetailsFormTest(SimpleTestCase):
    def offered_times(self):
        """Slots at 15:30, 16:00 and 16:30 UTC"""
        now = datetime(2030, 3, 4, 15, 7, tzinfo=timezone.utc)
        return PickUpTimes(interval_minutes=30, count=3, lead_minutes=15, now=now)

    def test_valid(self):
        self.assertTrue(PickupDetailsForm(PICKUP_DETAILS).is_valid())

    def test_offset_pickup_time_normalised_to_utc(self):
        form = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2030-03-04T08:00:00-08:00"})

        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["pickup_time"], "2030-03-04T16:00:00Z")

    def test_naive_pickup_time_rejected(self):
        form = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2030-03-04T16:00:00"})
        self.assertIn("pickup_time", form.errors)

    def test_past_pickup_time_rejected(self):
        form = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2001-01-01T03:07:00Z"})
        self.assertIn("pickup_time", form.errors)

    def test_only_offered_slots_accepted(self):
        times = self.offered_times()

        offered = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2030-03-04T16:00:00Z"}, pick_up_times=times)
        between = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2030-03-04T16:15:00Z"}, pick_up_times=times)
        too_late = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2030-03-04T18:00:00Z"}, pick_up_times=times)

        self.assertTrue(offered.is_valid(), offered.errors)
        self.assertIn("pickup_time", between.errors)
        self.assertIn("pickup_time", too_late.errors)

    def test_offered_slot_matches_in_any_offset(self):
        times = self.offered_times()
        form = PickupDetailsForm({**PICKUP_DETAILS, "pickup_time": "2030-03-04T07:30:00-08:00"}, pick_up_times=times)

        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["pickup_time"], "2030-03-04T15:30:00Z")

    def test_invalid_phone_rejected(self):
        form = PickupDetailsForm({**PICKUP_DETAILS, "pickup_number": "call me"})
        self.assertIn("pickup_number", form.errors)

    def test_only_pickup_supported(self):
        form = PickupDetailsForm({**PICKUP_DETAILS, "fulfillment_type": "SHIPMENT"})
        self.assertIn("fulfillment_type", form.errors)


class IdempotencyKeyTest(SimpleTestCase):
    """Test idempotency key generation"""

    def test_keys_are_unique(self):
        keys = [generate_idempotency_key() for _ in range(1000)]
        self.assertEqual(len(keys), len(set(keys)))

    def test_default_length(self):
        self.assertEqual(len(generate_idempotency_key()), 90)

    def test_truncated_keys_are_unique(self):
        keys = [generate_idempotency_key(PAYMENT_IDEMPOTENCY_KEY_MAX_LENGTH) for _ in range(1000)]
        self.assertTrue(all(len(key) == 45 for key in keys))
        self.assertEqual(len(keys), len(set(keys)))


class RequestBodyTest(SimpleTestCase):
    """Test the bodies sent to Square"""

    def test_new_fulfillment_has_no_uid(self):
        body = build_fulfillment_update_body(ORDER, PICKUP_DETAILS)

        fulfillment = body["order"]["fulfillments"][0]
        self.assertNotIn("uid", fulfillment)
        self.assertEqual(body["order"]["version"], 4)
        self.assertEqual(fulfillment["pickup_details"]["recipient"]["display_name"], "Grace Hopper")
        self.assertEqual(fulfillment["pickup_details"]["pickup_at"], "2030-03-04T16:00:00Z")

    def test_existing_fulfillment_uid_is_reused(self):
        body = build_fulfillment_update_body({**ORDER, "fulfillments": [FULFILLMENT]}, PICKUP_DETAILS)

        self.assertEqual(len(body["order"]["fulfillments"]), 1)
        self.assertEqual(body["order"]["fulfillments"][0]["uid"], "ful-1")

    def test_each_update_gets_its_own_key(self):
        first = build_fulfillment_update_body(ORDER, PICKUP_DETAILS)
        second = build_fulfillment_update_body(ORDER, PICKUP_DETAILS)

        self.assertNotEqual(first["idempotency_key"], second["idempotency_key"])

    def test_payment_body(self):
        body = build_payment_body(ORDER, "cnon:card-nonce-ok")

        self.assertEqual(body["source_id"], "cnon:card-nonce-ok")
        self.assertEqual(body["amount_money"], {"amount": 900, "currency": "USD"})
        self.assertEqual(body["order_id"], "ORDER1")
        self.assertEqual(body["location_id"], "LOC123")
        self.assertEqual(len(body["idempotency_key"]), 45)


class CheckStageTest(SimpleTestCase):
    """Test the step preconditions"""

    def test_allowed_stage_proceeds(self):
        self.assertIsNone(check_stage(CheckoutStage.DELIVERY_PICKUP, OrderInfo(ORDER), "LOC123"))

    def test_payment_requires_fulfillment(self):
        response = check_stage(CheckoutStage.PAYMENT, OrderInfo(ORDER), "LOC123")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.url, "/checkout/choose-delivery-pickup?order_id=ORDER1&location_id=LOC123")

    def test_going_back_to_pickup_is_allowed(self):
        order_info = OrderInfo({**ORDER, "fulfillments": [FULFILLMENT]})
        self.assertIsNone(check_stage(CheckoutStage.DELIVERY_PICKUP, order_info, "LOC123"))

    def test_paid_order_goes_to_status(self):
        order_info = OrderInfo({**ORDER, "fulfillments": [FULFILLMENT], "tenders": [{"id": "T1"}]})

        response = check_stage(CheckoutStage.PAYMENT, order_info, "LOC123")

        self.assertEqual(response.url, "/order-status?order_id=ORDER1&location_id=LOC123")
        self.assertIsNone(check_stage(CheckoutStage.ORDER_STATUS, order_info, "LOC123"))
