import logging

from django.conf import settings
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.gateways import ClickGateway, PaymeGateway

logger = logging.getLogger(__name__)


class PaymeWebhookView(APIView):
    """Payme Merchant API endpoint. Payme authenticates with HTTP Basic, not our JWT."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        if not settings.PAYME_SECRET_KEY:
            logger.error("Payme secret key not configured.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        gateway = PaymeGateway()
        result = gateway.handle(request.body, request.META.get("HTTP_AUTHORIZATION"))
        # JSON-RPC errors still travel with HTTP 200
        return Response(result, status=status.HTTP_200_OK)


class ClickWebhookView(APIView):
    permission_classes: list = []
    authentication_classes: list = []
    parser_classes = [FormParser, MultiPartParser, JSONParser]

    def handle_callback(self, gateway: ClickGateway, data):
        raise NotImplementedError

    def post(self, request, *args, **kwargs):
        if not settings.CLICK_SECRET_KEY:
            logger.error("Click secret key not configured.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        result = self.handle_callback(ClickGateway(), request.data)
        return Response(result, status=status.HTTP_200_OK)


class ClickPrepareView(ClickWebhookView):
    def handle_callback(self, gateway, data):
        return gateway.handle_prepare(data)


class ClickCompleteView(ClickWebhookView):
    def handle_callback(self, gateway, data):
        return gateway.handle_complete(data)
