from django.urls import path

from .api import (
    PickupListCreateView,
    BulkPickupView,
    ReturnRequestView,
    ReturnConfirmView,
    TransferRequestView,
    TransferReviewView,
    AllowanceView,
    AdditionalPickupRequestView,
    AdditionalPickupReviewView,
    PendingConfirmationsView,
)

app_name = "pickups"

urlpatterns = [
    path("", PickupListCreateView.as_view(), name="list-create"),
    path("bulk", BulkPickupView.as_view(), name="bulk"),
    path("allowance", AllowanceView.as_view(), name="allowance"),
    path("pending-confirmations", PendingConfirmationsView.as_view(), name="pending-confirmations"),
    path("additional-requests", AdditionalPickupRequestView.as_view(), name="additional-requests"),
    path("additional-requests/<int:pk>/review", AdditionalPickupReviewView.as_view(), name="additional-review"),
    path("<int:pk>/return", ReturnRequestView.as_view(), name="return"),
    path("<int:pk>/return/confirm", ReturnConfirmView.as_view(), name="return-confirm"),
    path("<int:pk>/transfer", TransferRequestView.as_view(), name="transfer"),
    path("<int:pk>/transfer/review", TransferReviewView.as_view(), name="transfer-review"),
]
