import logging

from django.db.models import Q
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from bookings.exceptions import BookingValidationError, InvalidTransition
from bookings.models import Booking
from bookings.serializers import BookingCreateSerializer, BookingSerializer
from bookings.services.creation import create_booking
from bookings.services import refund_policy
from bookings.services.state_machine import get_state_machine
from payments.gateways import build_checkout_url
from payments.gateways.base import UnknownProvider

logger = logging.getLogger(__name__)


class BookingViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "place"]
    ordering_fields = ["created_at", "check_in", "final_total"]

    def get_queryset(self):
        user = self.request.user
        queryset = Booking.objects.select_related("place", "client").order_by("-created_at", "-id")
        if user.is_superuser or user.is_agent:
            return queryset
        return queryset.filter(Q(client=user) | Q(place__owner=user))

    def _is_staff(self, user) -> bool:
        return user.is_superuser or user.is_agent

    def _is_place_host(self, user, booking: Booking) -> bool:
        return booking.place.owner_id == user.id

    def create(self, request, *args, **kwargs):
        if request.user.is_host:
            return Response({"detail": "Hosts cannot request bookings."}, status=status.HTTP_403_FORBIDDEN)

        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            booking = create_booking(
                client=request.user,
                place=data["place"],
                time_slots=data["time_slots"],
                protection_plan_selected=data["protection_plan_selected"],
                perks=data["perks"],
                num_guests=data["num_guests"],
                guest_name=data["guest_name"],
                guest_phone=data["guest_phone"],
            )
        except BookingValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    def _transition_response(self, apply, booking: Booking):
        try:
            result = apply(booking.pk)
        except InvalidTransition as exc:
            return Response({"detail": str(exc), "status": exc.context.get("status")}, status=status.HTTP_409_CONFLICT)
        return Response(BookingSerializer(result.booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def select(self, request, pk=None):
        booking = self.get_object()
        if not (self._is_staff(request.user) or self._is_place_host(request.user, booking)):
            return Response({"detail": "Only the host can select a booking."}, status=status.HTTP_403_FORBIDDEN)
        return self._transition_response(get_state_machine().host_selects, booking)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        booking = self.get_object()
        if not (self._is_staff(request.user) or self._is_place_host(request.user, booking)):
            return Response({"detail": "Only the host can reject a booking."}, status=status.HTTP_403_FORBIDDEN)
        return self._transition_response(get_state_machine().host_rejects, booking)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        booking = self.get_object()
        user = request.user
        if booking.client_id == user.id:
            cancelled_by = Booking.CANCELLED_BY_CLIENT
        elif self._is_place_host(user, booking):
            cancelled_by = Booking.CANCELLED_BY_HOST
        elif self._is_staff(user):
            cancelled_by = Booking.CANCELLED_BY_SYSTEM
        else:
            return Response({"detail": "Not permitted."}, status=status.HTTP_403_FORBIDDEN)

        machine = get_state_machine()
        return self._transition_response(
            lambda booking_id: machine.cancel(booking_id, cancelled_by=cancelled_by),
            booking,
        )

    @action(detail=True, methods=["get"], url_path="refund-quote")
    def refund_quote(self, request, pk=None):
        booking = self.get_object()
        quote = refund_policy.refund_quote(booking)
        return Response({"booking": booking.pk, "currency": booking.currency, **quote.as_dict()})

    @action(detail=True, methods=["post"], url_path="checkout/(?P<provider>[^/.]+)")
    def checkout(self, request, pk=None, provider=None):
        booking = self.get_object()
        if booking.client_id != request.user.id:
            return Response({"detail": "Only the client who made the booking can pay."}, status=status.HTTP_403_FORBIDDEN)
        if booking.status != Booking.SELECTED:
            return Response(
                {"detail": "Booking must be selected by the host before payment.", "status": booking.status},
                status=status.HTTP_409_CONFLICT,
            )
        try:
            url = build_checkout_url(provider, booking, return_url=request.data.get("return_url"))
        except UnknownProvider:
            return Response({"detail": f"Unknown payment provider {provider!r}."}, status=status.HTTP_400_BAD_REQUEST)

        logger.info("Checkout link issued for booking %s via %s", booking.pk, provider)
        return Response(
            {"provider": provider, "url": url, "amount": str(booking.final_total), "currency": booking.currency},
            status=status.HTTP_200_OK,
        )
