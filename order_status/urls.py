from django.urls import path

from order_status import views

app_name = "order_status"

urlpatterns = [
    path("", views.OrderStatusView.as_view(), name="order_status"),
]
