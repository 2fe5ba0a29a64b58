from django.urls import path

from .api import DealerListView, DealerProductListView

app_name = "catalog"

urlpatterns = [
    path("dealers", DealerListView.as_view(), name="dealers"),
    path("products", DealerProductListView.as_view(), name="products"),
]
