import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.services.invoice_service import InvoiceService

from .response import APIResponse
from .serializers import InvoiceDraftSerializer

logger = logging.getLogger(__name__)


class InvoiceTotalsView(APIView):
    """Resolve the totals of an invoice form without saving anything."""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        serializer = InvoiceDraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        draft = serializer.to_draft()

        breakdown, tds_applicable, tds_rate = InvoiceService.resolve_totals(draft)
        data = {key: str(value) for key, value in breakdown.as_dict().items()}
        data.update({
            "currency": draft.currency,
            "engagement_type": draft.engagement_type,
            "is_tds_applicable": tds_applicable,
            "tds_rate": str(tds_rate),
        })
        logger.debug(f"Resolved totals for user {request.user.id}: {data}")
        return APIResponse.success(data, message="Totals calculated")
