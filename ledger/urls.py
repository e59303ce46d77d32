from django.urls import path
from .views import LedgerDetailView, OutstandingView, PaymentCreateView, TimelineView

urlpatterns = [
    path('ledgers/outstanding/', OutstandingView.as_view(), name='ledger-outstanding'),
    path('patients/<str:patient_id>/ledger/', LedgerDetailView.as_view(), name='patient-ledger'),
    path('patients/<str:patient_id>/timeline/', TimelineView.as_view(), name='patient-timeline'),
    path('patients/<str:patient_id>/payments/', PaymentCreateView.as_view(), name='patient-payment-create'),
]
