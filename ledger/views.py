from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import serialize_ledger, serialize_outstanding, serialize_timeline
from .services import get_ledger_service


class LedgerDetailView(APIView):
    """GET /api/patients/<patient_id>/ledger/ - Current ledger, recomputed from raw records"""

    def get(self, request, patient_id):
        ledger = get_ledger_service().get_ledger(patient_id)
        return Response(serialize_ledger(ledger))


class TimelineView(APIView):
    """GET /api/patients/<patient_id>/timeline/ - Merged treatment / payment timeline"""

    def get(self, request, patient_id):
        events = get_ledger_service().get_timeline(patient_id)
        return Response(serialize_timeline(patient_id, events))


class PaymentCreateView(APIView):
    """POST /api/patients/<patient_id>/payments/ - Append a payment, return the recomputed ledger"""

    def post(self, request, patient_id):
        ledger = get_ledger_service().record_payment(patient_id, request.data)
        return Response(serialize_ledger(ledger), status=status.HTTP_201_CREATED)


class OutstandingView(APIView):
    """GET /api/ledgers/outstanding/ - Patients that still owe money"""

    def get(self, request):
        balances = get_ledger_service().get_all_outstanding()
        return Response(serialize_outstanding(balances))
