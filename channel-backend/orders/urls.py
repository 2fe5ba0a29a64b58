from django.urls import path

from .api import OrderListCreateView, OrderConfirmView, OrderCancelView

app_name = "orders"

urlpatterns = [
    path("", OrderListCreateView.as_view(), name="list-create"),
    path("<int:pk>/confirm", OrderConfirmView.as_view(), name="confirm"),
    path("<int:pk>/cancel", OrderCancelView.as_view(), name="cancel"),
]
