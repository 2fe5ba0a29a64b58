# channel-backend/core/urls.py
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView


urlpatterns = [
    path("", RedirectView.as_view(url="/admin/", permanent=False)),
    path("admin/", admin.site.urls),

    # Auth
    path("api/v1/auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/v1/auth/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/v1/auth/verify/", TokenVerifyView.as_view(), name="token_verify"),

    # API & docs
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/v1/docs/", SpectacularSwaggerView.as_view(url_name="schema")),

    path("api/v1/accounts/", include("accounts.urls", namespace="accounts")),
    path("api/v1/catalog/", include("catalog.urls", namespace="catalog")),
    path("api/v1/inventory/", include("inventory.urls", namespace="inventory")),
    path("api/v1/pickups/", include("pickups.urls", namespace="pickups")),
    path("api/v1/orders/", include("orders.urls", namespace="orders")),
    path("api/v1/notifications/", include("notifications.urls", namespace="notifications")),
]
