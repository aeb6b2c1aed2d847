from rest_framework import permissions, viewsets
from rest_framework.exceptions import PermissionDenied

from .models import Place
from .serializers import PlaceSerializer


class PlaceViewSet(viewsets.ModelViewSet):
    serializer_class = PlaceSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["owner", "currency"]
    ordering_fields = ["title", "hourly_rate", "created_at"]

    def get_queryset(self):
        return Place.objects.all().prefetch_related("refund_terms", "perks").order_by("title", "id")

    def _ensure_owner(self, place: Place):
        user = self.request.user
        if user.is_superuser:
            return
        if place.owner_id != user.id:
            raise PermissionDenied("Only the host who owns this place may change it.")

    def perform_create(self, serializer):
        user = self.request.user
        if not (user.is_superuser or user.is_host):
            raise PermissionDenied("Only hosts can list places.")
        serializer.save(owner=user)

    def perform_update(self, serializer):
        self._ensure_owner(serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        self._ensure_owner(instance)
        instance.delete()
