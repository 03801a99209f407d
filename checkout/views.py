import logging

from django.core.exceptions import BadRequest
from django.shortcuts import render
from django.views import View

from checkout.client import get_square_client
from checkout.forms import CreateOrderForm, OrderReferenceForm, PaymentForm, PickupDetailsForm
from checkout.models import CheckoutStage, LocationInfo, OrderInfo, PickUpTimes
from checkout.utils import (
    build_create_order_body,
    build_fulfillment_update_body,
    build_payment_body,
    check_stage,
    get_order,
    redirect_to_stage,
)
from orders_payments.env import getEnvConfig

logger = logging.getLogger(__name__)


def get_order_reference(data):
    """Read order_id and location_id from a QueryDict or raise BadRequest."""
    form = OrderReferenceForm(data)
    if not form.is_valid():
        raise BadRequest("order_id and location_id are required.")
    return form.cleaned_data["order_id"], form.cleaned_data["location_id"]


def get_pick_up_times():
    env_config = getEnvConfig()
    return PickUpTimes(
        interval_minutes=env_config.PICKUP_SLOT_MINUTES,
        count=env_config.PICKUP_SLOT_COUNT,
        lead_minutes=env_config.PICKUP_LEAD_MINUTES,
    )


class SquareView(View):
    """Base view holding the Square client. Pass ``client`` to as_view() to inject one."""

    client = None

    def get_client(self):
        if self.client is None:
            self.client = get_square_client()
        return self.client


class CreateOrderView(SquareView):
    """Create a Square order for the item chosen on the storefront"""

    def post(self, request):
        form = CreateOrderForm(request.POST)
        if not form.is_valid():
            raise BadRequest("item_var_id, item_quantity and location_id are required.")

        location_id = form.cleaned_data["location_id"]
        order = self.get_client().create_order(
            location_id,
            build_create_order_body(form.cleaned_data["item_var_id"], form.cleaned_data["item_quantity"]),
        )
        logger.info("Created order %s at location %s", order["id"], location_id)

        return redirect_to_stage(CheckoutStage.DELIVERY_PICKUP, order["id"], location_id)


class ChooseDeliveryPickupView(SquareView):
    """Step 1: choose who picks the order up and when"""

    template_name = "checkout/choose_delivery_pickup.html"

    def get(self, request):
        order_id, location_id = get_order_reference(request.GET)
        client = self.get_client()

        order_info = OrderInfo(get_order(client, location_id, order_id))
        redirect = check_stage(CheckoutStage.DELIVERY_PICKUP, order_info, location_id)
        if redirect:
            return redirect

        initial = {}
        if order_info.has_fulfillments:
            initial = {
                "pickup_name": order_info.recipient["name"],
                "pickup_email": order_info.recipient["email"],
                "pickup_number": order_info.recipient["phone"],
                "pickup_time": order_info.pickup_at,
            }

        pick_up_times = get_pick_up_times()
        location_info = LocationInfo(client.retrieve_location(location_id))
        form = PickupDetailsForm(initial=initial, pick_up_times=pick_up_times)
        return self._render(request, form, order_info, location_info)

    def post(self, request):
        order_id, location_id = get_order_reference(request.POST)
        client = self.get_client()

        order = get_order(client, location_id, order_id)
        order_info = OrderInfo(order)
        redirect = check_stage(CheckoutStage.DELIVERY_PICKUP, order_info, location_id)
        if redirect:
            return redirect

        form = PickupDetailsForm(request.POST, pick_up_times=get_pick_up_times())
        if not form.is_valid():
            location_info = LocationInfo(client.retrieve_location(location_id))
            return self._render(request, form, order_info, location_info)

        # The order's own location wins over whatever was posted
        location_id = order_info.location_id or location_id
        client.update_order(location_id, order_info.order_id, build_fulfillment_update_body(order, form.cleaned_data))
        logger.info(
            "Set %s fulfillment on order %s (version %s)",
            form.cleaned_data["fulfillment_type"],
            order_info.order_id,
            order_info.version,
        )

        return redirect_to_stage(CheckoutStage.PAYMENT, order_info.order_id, location_id)

    def _render(self, request, form, order_info, location_info):
        context = {
            "form": form,
            "order_info": order_info,
            "location_info": location_info,
            "pick_up_times": form.pick_up_times,
            "step": CheckoutStage.DELIVERY_PICKUP,
        }
        return render(request, self.template_name, context)


class PaymentView(SquareView):
    """Step 2: review the order and pay with a card"""

    template_name = "checkout/payment.html"

    def get(self, request):
        order_id, location_id = get_order_reference(request.GET)
        client = self.get_client()

        order_info = OrderInfo(get_order(client, location_id, order_id))
        redirect = check_stage(CheckoutStage.PAYMENT, order_info, location_id)
        if redirect:
            return redirect

        location_info = LocationInfo(client.retrieve_location(location_id))
        return self._render(request, PaymentForm(), order_info, location_info)

    def post(self, request):
        order_id, location_id = get_order_reference(request.POST)
        client = self.get_client()

        order = get_order(client, location_id, order_id)
        order_info = OrderInfo(order)
        redirect = check_stage(CheckoutStage.PAYMENT, order_info, location_id)
        if redirect:
            return redirect

        form = PaymentForm(request.POST)
        if not form.is_valid():
            location_info = LocationInfo(client.retrieve_location(location_id))
            return self._render(request, form, order_info, location_info)

        payment = client.create_payment(build_payment_body(order, form.cleaned_data["nonce"]))
        logger.info("Payment %s created for order %s (%s)", payment.get("id"), order_info.order_id, order_info.total)

        return redirect_to_stage(CheckoutStage.ORDER_STATUS, order_info.order_id, location_id)

    def _render(self, request, form, order_info, location_info):
        env_config = getEnvConfig()
        context = {
            "form": form,
            "order_info": order_info,
            "location_info": location_info,
            "application_id": env_config.SQUARE_APPLICATION_ID,
            "web_payments_sdk_url": env_config.get_web_payments_sdk_url(),
            "step": CheckoutStage.PAYMENT,
        }
        return render(request, self.template_name, context)
