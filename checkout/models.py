"""
View models for Square records.

Nothing here is stored locally. Each class wraps one record returned by
the Square API (order, location) and exposes the fields the templates
need, already formatted.
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from enum import IntEnum

from django.utils import timezone
from django.utils.dateparse import parse_datetime

# Currencies Square expresses in whole units instead of cents
ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}
CURRENCY_SYMBOLS = {"USD": "$", "CAD": "$", "AUD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}


def format_money(money):
    """Format a Square Money dict ({"amount": 1250, "currency": "USD"}) as "$12.50"."""
    if not money:
        return ""

    currency = money.get("currency", "USD")
    amount = Decimal(money.get("amount", 0))
    if currency not in ZERO_DECIMAL_CURRENCIES:
        amount = (amount / Decimal("100")).quantize(Decimal("0.01"))

    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{amount}"
    return f"{amount} {currency}"


def format_pickup_time(value):
    """Render an RFC 3339 timestamp as e.g. "Mar 4, 3:30 PM"."""
    moment = parse_datetime(value) if isinstance(value, str) else value
    if moment is None:
        return ""
    if timezone.is_aware(moment):
        moment = timezone.localtime(moment)
    return f"{moment:%b} {moment.day}, {moment.strftime('%I:%M %p').lstrip('0')}"


class CheckoutStage(IntEnum):
    """Checkout steps in the order a customer goes through them."""

    DELIVERY_PICKUP = 1
    PAYMENT = 2
    ORDER_STATUS = 3

    @property
    def url_name(self):
        return {
            CheckoutStage.DELIVERY_PICKUP: "checkout:choose_delivery_pickup",
            CheckoutStage.PAYMENT: "checkout:payment",
            CheckoutStage.ORDER_STATUS: "order_status:order_status",
        }[self]


class LineItemInfo:
    def __init__(self, line_item):
        self.line_item = line_item

    @property
    def name(self):
        return self.line_item.get("name", "")

    @property
    def variation_name(self):
        return self.line_item.get("variation_name", "")

    @property
    def quantity(self):
        return self.line_item.get("quantity", "0")

    @property
    def base_price(self):
        return format_money(self.line_item.get("base_price_money"))

    @property
    def total(self):
        return format_money(self.line_item.get("total_money"))


class OrderInfo:
    """Wraps a Square order for the checkout and status pages."""

    def __init__(self, order):
        self.order = order

    @property
    def order_id(self):
        return self.order["id"]

    @property
    def location_id(self):
        return self.order.get("location_id", "")

    @property
    def version(self):
        return self.order.get("version")

    @property
    def state(self):
        return self.order.get("state", "")

    @property
    def line_items(self):
        return [LineItemInfo(item) for item in self.order.get("line_items", [])]

    @property
    def total_money(self):
        return self.order.get("total_money", {})

    @property
    def total(self):
        return format_money(self.total_money)

    @property
    def total_tax(self):
        return format_money(self.order.get("total_tax_money"))

    @property
    def total_discount(self):
        return format_money(self.order.get("total_discount_money"))

    @property
    def has_fulfillments(self):
        return bool(self.order.get("fulfillments"))

    @property
    def fulfillment(self):
        """The order's fulfillment; the checkout never keeps more than one."""
        fulfillments = self.order.get("fulfillments") or []
        return fulfillments[0] if fulfillments else None

    @property
    def fulfillment_uid(self):
        return self.fulfillment["uid"] if self.fulfillment else None

    @property
    def fulfillment_type(self):
        return self.fulfillment.get("type", "") if self.fulfillment else ""

    @property
    def fulfillment_state(self):
        return self.fulfillment.get("state", "") if self.fulfillment else ""

    @property
    def pickup_details(self):
        if not self.fulfillment:
            return {}
        return self.fulfillment.get("pickup_details", {})

    @property
    def recipient(self):
        recipient = self.pickup_details.get("recipient", {})
        return {
            "name": recipient.get("display_name", ""),
            "email": recipient.get("email_address", ""),
            "phone": recipient.get("phone_number", ""),
        }

    @property
    def pickup_at(self):
        return self.pickup_details.get("pickup_at", "")

    @property
    def formatted_pickup_at(self):
        return format_pickup_time(self.pickup_at) if self.pickup_at else ""

    @property
    def is_paid(self):
        return bool(self.order.get("tenders"))

    @property
    def checkout_stage(self):
        """Furthest checkout step this order's current state allows."""
        if self.is_paid:
            return CheckoutStage.ORDER_STATUS
        if self.has_fulfillments:
            return CheckoutStage.PAYMENT
        return CheckoutStage.DELIVERY_PICKUP


class LocationInfo:
    """Wraps a Square location (the store the order is picked up from)."""

    def __init__(self, location):
        self.location = location

    @property
    def location_id(self):
        return self.location["id"]

    @property
    def name(self):
        return self.location.get("name", "")

    @property
    def business_name(self):
        return self.location.get("business_name") or self.name

    @property
    def address(self):
        return self.location.get("address", {})

    @property
    def address_lines(self):
        address = self.address
        city_line = " ".join(
            part
            for part in (
                address.get("locality", ""),
                address.get("administrative_district_level_1", ""),
                address.get("postal_code", ""),
            )
            if part
        )
        lines = [address.get("address_line_1", ""), address.get("address_line_2", ""), city_line]
        return [line for line in lines if line]

    @property
    def formatted_address(self):
        return ", ".join(self.address_lines)

    @property
    def phone_number(self):
        return self.location.get("phone_number", "")

    @property
    def email(self):
        return self.location.get("business_email", "")


class PickUpTimes:
    """
    Pickup windows offered on the delivery/pickup page.

    Slots start at the first interval boundary at least ``lead_minutes``
    from now. Each slot has an RFC 3339 ``value`` to post back to Square
    and a human readable ``label``.
    """

    def __init__(self, interval_minutes=30, count=8, lead_minutes=15, now: datetime | None = None):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.interval_minutes = interval_minutes
        self.count = count
        self.lead_minutes = lead_minutes
        self.now = now or timezone.now()

    def first_slot(self):
        earliest = self.now + timedelta(minutes=self.lead_minutes)
        earliest = earliest.replace(second=0, microsecond=0)
        remainder = (earliest.hour * 60 + earliest.minute) % self.interval_minutes
        if remainder:
            earliest += timedelta(minutes=self.interval_minutes - remainder)
        return earliest

    @property
    def slots(self):
        first = self.first_slot()
        return [
            {
                "value": to_rfc3339(first + timedelta(minutes=self.interval_minutes * i)),
                "label": format_pickup_time(first + timedelta(minutes=self.interval_minutes * i)),
            }
            for i in range(self.count)
        ]

    @property
    def values(self):
        return [slot["value"] for slot in self.slots]

    def __iter__(self):
        return iter(self.slots)

    def __len__(self):
        return self.count


def to_rfc3339(moment):
    """Serialize an aware datetime the way Square expects, in UTC with a Z suffix."""
    return moment.astimezone(dt_timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
