from rest_framework import serializers

from bookings.models import Booking
from places.models import Place


class TimeSlotSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField(format="%H:%M")
    end_time = serializers.TimeField(format="%H:%M")

    def validate(self, attrs):
        if attrs["end_time"] <= attrs["start_time"]:
            raise serializers.ValidationError({"end_time": "End time must be after start time."})
        return {
            "date": attrs["date"].isoformat(),
            "start_time": attrs["start_time"].strftime("%H:%M"),
            "end_time": attrs["end_time"].strftime("%H:%M"),
        }


class BookingCreateSerializer(serializers.Serializer):
    place = serializers.PrimaryKeyRelatedField(queryset=Place.objects.all())
    time_slots = TimeSlotSerializer(many=True, allow_empty=False)
    protection_plan_selected = serializers.BooleanField(default=False)
    perks = serializers.ListField(child=serializers.CharField(max_length=120), required=False, default=list)
    num_guests = serializers.IntegerField(min_value=1, default=1)
    guest_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    guest_phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    place_title = serializers.CharField(source="place.title", read_only=True)
    is_actionable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "unique_request_id",
            "place",
            "place_title",
            "client",
            "status",
            "is_actionable",
            "time_slots",
            "check_in",
            "check_out",
            "num_guests",
            "guest_name",
            "guest_phone",
            "currency",
            "total_hours",
            "base_price",
            "perks_fee",
            "service_fee",
            "protection_plan_selected",
            "protection_plan_fee",
            "final_total",
            "selected_perks",
            "refund_policy_snapshot",
            "selected_at",
            "approved_at",
            "paid_at",
            "rejected_at",
            "cancelled_at",
            "cancelled_by",
            "payment_provider",
            "payment_reference",
            "created_at",
        ]
        read_only_fields = fields
