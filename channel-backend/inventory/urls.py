from django.urls import path

from .api import ProductUnitsView, ProductMovementsView

app_name = "inventory"

urlpatterns = [
    path("products/<int:pk>/units", ProductUnitsView.as_view(), name="product-units"),
    path("products/<int:pk>/movements", ProductMovementsView.as_view(), name="product-movements"),
]
