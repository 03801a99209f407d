"""
Tests for the Square HTTP client. The requests session is mocked; no
network access happens here.
"""

from unittest.mock import Mock

import requests
from django.test import SimpleTestCase

from checkout.client import (
    SquareAPIError,
    SquareClient,
    SquareConflictError,
    SquareConnectionError,
    SquareNotFoundError,
    get_square_client,
)
from checkout.utils import get_order
from orders_payments.env import getEnvConfig


def mock_response(status_code=200, json_data=None, text=None):
    response = Mock()
    response.status_code = status_code
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    response.text = text or ""
    return response


class SquareClientTest(SimpleTestCase):
    """Test request building and response handling"""

    def setUp(self):
        self.session = Mock(spec=requests.Session)
        self.client_ = SquareClient(
            access_token="EAAAtoken",
            base_url="https://connect.squareupsandbox.com/",
            api_version="2024-01-18",
            timeout=7,
            session=self.session,
        )

    def last_request(self):
        return self.session.request.call_args.kwargs

    def test_create_order_puts_location_on_order(self):
        self.session.request.return_value = mock_response(200, {"order": {"id": "ORDER1"}})

        order = self.client_.create_order(
            "LOC123",
            {"idempotency_key": "key", "order": {"line_items": [{"quantity": "1", "catalog_object_id": "VAR1"}]}},
        )

        self.assertEqual(order, {"id": "ORDER1"})
        request = self.last_request()
        self.assertEqual(request["method"], "POST")
        self.assertEqual(request["url"], "https://connect.squareupsandbox.com/v2/orders")
        self.assertEqual(request["json"]["order"]["location_id"], "LOC123")
        self.assertEqual(request["json"]["idempotency_key"], "key")
        self.assertEqual(request["timeout"], 7)

    def test_headers(self):
        self.session.request.return_value = mock_response(200, {"location": {"id": "LOC123"}})

        self.client_.retrieve_location("LOC123")

        headers = self.last_request()["headers"]
        self.assertEqual(headers["Authorization"], "Bearer EAAAtoken")
        self.assertEqual(headers["Square-Version"], "2024-01-18")
        self.assertEqual(headers["Content-Type"], "application/json")

    def test_batch_retrieve_orders(self):
        self.session.request.return_value = mock_response(200, {"orders": [{"id": "ORDER1"}]})

        orders = self.client_.batch_retrieve_orders("LOC123", ["ORDER1"])

        self.assertEqual(orders, [{"id": "ORDER1"}])
        request = self.last_request()
        self.assertEqual(request["url"], "https://connect.squareupsandbox.com/v2/orders/batch-retrieve")
        self.assertEqual(request["json"], {"location_id": "LOC123", "order_ids": ["ORDER1"]})

    def test_batch_retrieve_without_orders_key(self):
        self.session.request.return_value = mock_response(200, {})

        self.assertEqual(self.client_.batch_retrieve_orders("LOC123", ["MISSING"]), [])

    def test_update_order(self):
        self.session.request.return_value = mock_response(200, {"order": {"id": "ORDER1", "version": 2}})

        self.client_.update_order("LOC123", "ORDER1", {"order": {"version": 1}, "idempotency_key": "key"})

        request = self.last_request()
        self.assertEqual(request["method"], "PUT")
        self.assertEqual(request["url"], "https://connect.squareupsandbox.com/v2/orders/ORDER1")
        self.assertEqual(request["json"]["order"], {"version": 1, "location_id": "LOC123"})

    def test_create_payment(self):
        self.session.request.return_value = mock_response(200, {"payment": {"id": "PAY1"}})

        payment = self.client_.create_payment({"source_id": "cnon:card-nonce-ok"})

        self.assertEqual(payment["id"], "PAY1")
        self.assertEqual(self.last_request()["url"], "https://connect.squareupsandbox.com/v2/payments")

    def test_list_catalog(self):
        self.session.request.return_value = mock_response(200, {"objects": [{"id": "ITEM1", "type": "ITEM"}]})

        objects = self.client_.list_catalog(types="ITEM")

        self.assertEqual(objects[0]["id"], "ITEM1")
        self.assertEqual(self.last_request()["params"], {"types": "ITEM"})

    def test_list_catalog_follows_cursor(self):
        """Every page is fetched and the objects concatenated in order"""
        self.session.request.side_effect = [
            mock_response(200, {"objects": [{"id": "ITEM1", "type": "ITEM"}], "cursor": "NEXT"}),
            mock_response(200, {"objects": [{"id": "ITEM2", "type": "ITEM"}]}),
        ]

        objects = self.client_.list_catalog(types="ITEM")

        self.assertEqual([obj["id"] for obj in objects], ["ITEM1", "ITEM2"])
        self.assertEqual(self.session.request.call_count, 2)
        self.assertEqual(self.last_request()["params"], {"types": "ITEM", "cursor": "NEXT"})

    def test_not_found(self):
        self.session.request.return_value = mock_response(
            404, {"errors": [{"category": "INVALID_REQUEST_ERROR", "code": "NOT_FOUND", "detail": "Location not found"}]}
        )

        with self.assertRaises(SquareNotFoundError) as ctx:
            self.client_.retrieve_location("NOPE")

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.codes, ["NOT_FOUND"])
        self.assertIn("Location not found", str(ctx.exception))

    def test_version_mismatch_is_conflict(self):
        self.session.request.return_value = mock_response(
            400, {"errors": [{"category": "INVALID_REQUEST_ERROR", "code": "VERSION_MISMATCH"}]}
        )

        with self.assertRaises(SquareConflictError):
            self.client_.update_order("LOC123", "ORDER1", {"order": {"version": 1}, "idempotency_key": "key"})

    def test_card_declined_is_api_error(self):
        self.session.request.return_value = mock_response(
            402, {"errors": [{"category": "PAYMENT_METHOD_ERROR", "code": "CARD_DECLINED"}]}
        )

        with self.assertRaises(SquareAPIError) as ctx:
            self.client_.create_payment({"source_id": "cnon:card-nonce-declined"})

        self.assertNotIsInstance(ctx.exception, (SquareNotFoundError, SquareConflictError))
        self.assertEqual(ctx.exception.status_code, 402)

    def test_non_json_error_body(self):
        self.session.request.return_value = mock_response(500, None, text="<html>Bad gateway</html>")

        with self.assertRaises(SquareAPIError) as ctx:
            self.client_.retrieve_location("LOC123")

        self.assertEqual(ctx.exception.errors, [])

    def test_connection_failure(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with self.assertRaises(SquareConnectionError) as ctx:
            self.client_.retrieve_location("LOC123")

        self.assertIsNone(ctx.exception.status_code)

    def test_timeout(self):
        self.session.request.side_effect = requests.exceptions.Timeout("read timed out")

        with self.assertRaises(SquareConnectionError):
            self.client_.create_payment({"source_id": "cnon:card-nonce-ok"})

    def test_get_order_raises_when_missing(self):
        self.session.request.return_value = mock_response(200, {})

        with self.assertRaises(SquareNotFoundError):
            get_order(self.client_, "LOC123", "MISSING")


class GetSquareClientTest(SimpleTestCase):
    def test_built_from_environment(self):
        client = get_square_client()

        self.assertEqual(client.base_url, getEnvConfig().get_square_base_url())
        self.assertTrue(client.access_token)
        self.assertIsInstance(client.session, requests.Session)
