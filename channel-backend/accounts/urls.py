from django.urls import path

from .api import MeView, AccountLockView

app_name = "accounts"

urlpatterns = [
    path("me", MeView.as_view(), name="me"),
    path("<int:pk>/lock", AccountLockView.as_view(lock=True), name="lock"),
    path("<int:pk>/unlock", AccountLockView.as_view(lock=False), name="unlock"),
]
