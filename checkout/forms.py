from django import forms
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from checkout.models import to_rfc3339


class OrderReferenceForm(forms.Form):
    """Identifiers every checkout step receives in its query string or body"""

    order_id = forms.CharField(max_length=192)
    location_id = forms.CharField(max_length=32)


class CreateOrderForm(forms.Form):
    """Item chosen on the storefront"""

    item_var_id = forms.CharField(max_length=192)
    item_quantity = forms.IntegerField(min_value=1, max_value=1000)
    location_id = forms.CharField(max_length=32)


class PickupDetailsForm(forms.Form):
    """Form for collecting pickup recipient and time"""

    FULFILLMENT_TYPE_CHOICES = [
        ("PICKUP", "Pickup"),
    ]

    pickup_name = forms.CharField(
        label="Name",
        max_length=255,
        widget=forms.TextInput(
            attrs={
                "class": "form-control",
                "placeholder": "Who is picking up the order?",
            }
        ),
    )
    pickup_email = forms.EmailField(
        label="Email",
        widget=forms.EmailInput(
            attrs={
                "class": "form-control",
                "placeholder": "name@example.com",
            }
        ),
    )
    pickup_number = forms.CharField(
        label="Phone number",
        max_length=17,
        widget=forms.TextInput(
            attrs={
                "class": "form-control",
                "placeholder": "+1 415 555 0100",
            }
        ),
    )
    pickup_time = forms.CharField(label="Pickup time")
    fulfillment_type = forms.ChoiceField(
        choices=FULFILLMENT_TYPE_CHOICES,
        initial="PICKUP",
        widget=forms.HiddenInput,
    )

    def __init__(self, *args, pick_up_times=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.pick_up_times = pick_up_times

    def clean_pickup_number(self):
        number = self.cleaned_data.get("pickup_number").strip()
        digits = number[1:] if number.startswith("+") else number
        digits = digits.replace(" ", "").replace("-", "")
        if not digits.isdigit() or not 7 <= len(digits) <= 15:
            raise forms.ValidationError("Enter a valid phone number.")
        return number

    def clean_pickup_time(self):
        value = self.cleaned_data.get("pickup_time")
        try:
            pickup_at = parse_datetime(value)
        except ValueError:
            pickup_at = None
        if pickup_at is None or timezone.is_naive(pickup_at):
            raise forms.ValidationError("Choose one of the offered pickup times.")

        pickup_time = to_rfc3339(pickup_at)
        if self.pick_up_times is not None:
            offered = pickup_time in self.pick_up_times.values
        else:
            offered = pickup_at > timezone.now()
        if not offered:
            raise forms.ValidationError("Choose one of the offered pickup times.")
        return pickup_time


class PaymentForm(forms.Form):
    """Card nonce produced by the Square Web Payments SDK"""

    nonce = forms.CharField(max_length=192)
