from django.urls import include, path

urlpatterns = [
    path("", include("catalog.urls")),
    path("checkout/", include("checkout.urls")),
    path("order-status", include("order_status.urls")),
]
