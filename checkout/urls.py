from django.urls import path

from checkout import views

app_name = "checkout"

urlpatterns = [
    path("create-order", views.CreateOrderView.as_view(), name="create_order"),
    path(
        "choose-delivery-pickup",
        views.ChooseDeliveryPickupView.as_view(),
        name="choose_delivery_pickup",
    ),
    path("payment", views.PaymentView.as_view(), name="payment"),
]
