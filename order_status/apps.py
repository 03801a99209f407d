from django.apps import AppConfig


class OrderStatusConfig(AppConfig):
    name = "order_status"
