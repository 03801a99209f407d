import secrets
from urllib.parse import urlencode

from django.http import HttpResponseRedirect
from django.urls import reverse

from checkout.client import SquareNotFoundError
from checkout.models import CheckoutStage, OrderInfo

# Square rejects payment idempotency keys longer than this
PAYMENT_IDEMPOTENCY_KEY_MAX_LENGTH = 45


def generate_idempotency_key(max_length=None):
    """
    Generate a random idempotency key for a mutating Square call.

    Args:
        max_length: Truncate the key to this many characters (default: no limit)

    Returns:
        A 90 character hex string, or its first ``max_length`` characters
    """
    key = secrets.token_hex(45)
    return key[:max_length] if max_length else key


def get_order(client, location_id, order_id):
    """
    Fetch a single order through batch-retrieve.

    Raises:
        SquareNotFoundError: If Square returns no order for that id
    """
    orders = client.batch_retrieve_orders(location_id, [order_id])
    if not orders:
        raise SquareNotFoundError(f"Order {order_id} not found at location {location_id}", status_code=404)
    return orders[0]


def build_create_order_body(item_var_id, item_quantity):
    return {
        "idempotency_key": generate_idempotency_key(),
        "order": {
            "line_items": [
                {
                    # Square expects quantities as decimal strings
                    "quantity": str(item_quantity),
                    "catalog_object_id": item_var_id,
                }
            ]
        },
    }


def build_fulfillment_update_body(order, pickup_details):
    """
    Build the update-order body that sets the order's pickup fulfillment.

    If the order already has a fulfillment its uid is reused so Square
    replaces it instead of appending a second one.

    Args:
        order: Square order dict, as freshly retrieved
        pickup_details: Cleaned PickupDetailsForm data

    Returns:
        Dict ready for SquareClient.update_order
    """
    order_info = OrderInfo(order)

    fulfillment = {
        "type": pickup_details["fulfillment_type"],
        "state": "PROPOSED",
        "pickup_details": {
            "recipient": {
                "display_name": pickup_details["pickup_name"],
                "email_address": pickup_details["pickup_email"],
                "phone_number": pickup_details["pickup_number"],
            },
            "pickup_at": pickup_details["pickup_time"],
        },
    }
    if order_info.fulfillment_uid:
        fulfillment["uid"] = order_info.fulfillment_uid

    return {
        "order": {
            "version": order_info.version,
            "fulfillments": [fulfillment],
        },
        "idempotency_key": generate_idempotency_key(),
    }


def build_payment_body(order, nonce):
    order_info = OrderInfo(order)
    return {
        "source_id": nonce,
        "idempotency_key": generate_idempotency_key(PAYMENT_IDEMPOTENCY_KEY_MAX_LENGTH),
        "amount_money": order_info.total_money,
        "order_id": order_info.order_id,
        "location_id": order_info.location_id,
    }


def redirect_to_stage(stage, order_id, location_id):
    """
    Redirect to a checkout step, carrying the order through the query string.

    Views must return the result immediately; nothing else may be rendered
    for the request once a redirect has been decided.
    """
    query = urlencode({"order_id": order_id, "location_id": location_id})
    return HttpResponseRedirect(f"{reverse(stage.url_name)}?{query}")


def check_stage(stage, order_info, location_id):
    """
    Validate that the order's state allows entering ``stage``.

    Returns:
        None if the step may proceed, otherwise the redirect response to
        the step the order actually belongs to.
    """
    allowed = order_info.checkout_stage

    if allowed == CheckoutStage.ORDER_STATUS and stage != CheckoutStage.ORDER_STATUS:
        # Already paid: never show checkout forms again
        return redirect_to_stage(CheckoutStage.ORDER_STATUS, order_info.order_id, location_id)

    if stage > allowed:
        return redirect_to_stage(allowed, order_info.order_id, location_id)

    return None
