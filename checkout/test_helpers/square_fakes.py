"""
In-memory stand-in for SquareClient used by the view tests.

It honours the parts of Square's contract the checkout relies on:
optimistic versioning on update, fulfillment replacement by uid, and
tenders appearing on an order once it is paid.
"""

import copy
import itertools

from checkout.client import SquareConflictError, SquareNotFoundError

DEFAULT_LOCATION = {
    "id": "LOC123",
    "name": "Mission St",
    "business_name": "Corner Bakery",
    "address": {
        "address_line_1": "1455 Market St",
        "locality": "San Francisco",
        "administrative_district_level_1": "CA",
        "postal_code": "94103",
    },
    "phone_number": "+1 415-555-0100",
    "business_email": "hello@example.com",
    "currency": "USD",
}


def create_catalog_item(item_id="ITEM1", name="Croissant", variations=None, **extra):
    """
    Build a catalog object of type ITEM.

    Args:
        variations: List of (variation_id, name, amount_in_cents) tuples
    """
    if variations is None:
        variations = [("VAR1", "Regular", 450)]

    catalog_object = {
        "type": "ITEM",
        "id": item_id,
        "present_at_all_locations": True,
        "item_data": {
            "name": name,
            "description": f"Fresh {name.lower()}",
            "variations": [
                {
                    "type": "ITEM_VARIATION",
                    "id": var_id,
                    "item_variation_data": {
                        "item_id": item_id,
                        "name": var_name,
                        "price_money": {"amount": amount, "currency": "USD"},
                    },
                }
                for var_id, var_name, amount in variations
            ],
        },
    }
    catalog_object.update(extra)
    return catalog_object


class FakeSquareClient:
    """Implements the SquareClient call contract against dicts."""

    def __init__(self, locations=None, catalog=None):
        self.locations = {loc["id"]: copy.deepcopy(loc) for loc in (locations or [DEFAULT_LOCATION])}
        self.catalog = catalog if catalog is not None else [create_catalog_item()]
        self.orders = {}
        self.payments = []
        self.calls = []
        self.idempotency_keys = []
        self._ids = itertools.count(1)

    def _record(self, name, *args):
        self.calls.append((name, args))

    def call_names(self):
        return [name for name, _ in self.calls]

    def _variation(self, variation_id):
        for item in self.catalog:
            for variation in item["item_data"]["variations"]:
                if variation["id"] == variation_id:
                    return item, variation
        return None, None

    # Orders

    def create_order(self, location_id, body):
        self._record("create_order", location_id, body)
        self.idempotency_keys.append(body["idempotency_key"])

        line_items = []
        total = 0
        for requested in body["order"]["line_items"]:
            item, variation = self._variation(requested["catalog_object_id"])
            price = variation["item_variation_data"]["price_money"]["amount"] if variation else 100
            line_total = price * int(requested["quantity"])
            total += line_total
            line_items.append(
                {
                    "uid": f"li-{next(self._ids)}",
                    "catalog_object_id": requested["catalog_object_id"],
                    "quantity": requested["quantity"],
                    "name": item["item_data"]["name"] if item else "Item",
                    "variation_name": variation["item_variation_data"]["name"] if variation else "",
                    "base_price_money": {"amount": price, "currency": "USD"},
                    "total_money": {"amount": line_total, "currency": "USD"},
                }
            )

        order = self.add_order(location_id=location_id, line_items=line_items, total=total)
        return copy.deepcopy(order)

    def add_order(self, location_id="LOC123", line_items=None, total=900, fulfillments=None, tenders=None):
        """Seed an order directly, bypassing create_order."""
        order_id = f"ORDER{next(self._ids)}"
        order = {
            "id": order_id,
            "location_id": location_id,
            "state": "OPEN",
            "version": 1,
            "line_items": line_items
            or [
                {
                    "uid": "li-seed",
                    "catalog_object_id": "VAR1",
                    "quantity": "2",
                    "name": "Croissant",
                    "variation_name": "Regular",
                    "base_price_money": {"amount": total // 2, "currency": "USD"},
                    "total_money": {"amount": total, "currency": "USD"},
                }
            ],
            "total_money": {"amount": total, "currency": "USD"},
            "total_tax_money": {"amount": 0, "currency": "USD"},
            "total_discount_money": {"amount": 0, "currency": "USD"},
        }
        if fulfillments:
            order["fulfillments"] = fulfillments
        if tenders:
            order["tenders"] = tenders
        self.orders[order_id] = order
        return order

    def batch_retrieve_orders(self, location_id, order_ids):
        self._record("batch_retrieve_orders", location_id, order_ids)
        return [
            copy.deepcopy(self.orders[order_id])
            for order_id in order_ids
            if order_id in self.orders and self.orders[order_id]["location_id"] == location_id
        ]

    def update_order(self, location_id, order_id, body):
        self._record("update_order", location_id, order_id, body)
        self.idempotency_keys.append(body["idempotency_key"])

        order = self.orders.get(order_id)
        if order is None:
            raise SquareNotFoundError(f"Order {order_id} not found", status_code=404)

        changes = body["order"]
        if changes.get("version") != order["version"]:
            raise SquareConflictError(
                "Order version mismatch",
                status_code=400,
                errors=[{"category": "INVALID_REQUEST_ERROR", "code": "VERSION_MISMATCH"}],
            )

        existing = order.setdefault("fulfillments", [])
        for fulfillment in changes.get("fulfillments", []):
            fulfillment = copy.deepcopy(fulfillment)
            match = next((f for f in existing if f["uid"] == fulfillment.get("uid")), None)
            if match is not None:
                match.update(fulfillment)
            else:
                fulfillment["uid"] = f"ful-{next(self._ids)}"
                existing.append(fulfillment)

        order["version"] += 1
        return copy.deepcopy(order)

    # Locations

    def retrieve_location(self, location_id):
        self._record("retrieve_location", location_id)
        if location_id not in self.locations:
            raise SquareNotFoundError(f"Location {location_id} not found", status_code=404)
        return copy.deepcopy(self.locations[location_id])

    # Payments

    def create_payment(self, body):
        self._record("create_payment", body)
        self.idempotency_keys.append(body["idempotency_key"])

        payment = {
            "id": f"PAY{next(self._ids)}",
            "status": "COMPLETED",
            "source_type": "CARD",
            "amount_money": copy.deepcopy(body["amount_money"]),
            "order_id": body["order_id"],
            "location_id": body.get("location_id"),
        }
        self.payments.append(payment)

        order = self.orders.get(body["order_id"])
        if order is not None:
            order.setdefault("tenders", []).append(
                {"id": payment["id"], "payment_id": payment["id"], "amount_money": payment["amount_money"]}
            )
            order["version"] += 1
        return copy.deepcopy(payment)

    # Catalog

    def list_catalog(self, types="ITEM"):
        self._record("list_catalog", types)
        wanted = types.split(",")
        return [copy.deepcopy(obj) for obj in self.catalog if obj["type"] in wanted]
