import copy

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from .state import state_of


def _status_timestamps(status, present):
    absent = {"selected_at", "approved_at", "paid_at", "rejected_at", "cancelled_at"} - set(present)
    condition = Q(status=status)
    for field in present:
        condition &= Q(**{f"{field}__isnull": False})
    for field in sorted(absent):
        condition &= Q(**{f"{field}__isnull": True})
    return condition


class Booking(models.Model):
    """A client's request to rent a place for one or more time slots."""

    PENDING = "pending"
    SELECTED = "selected"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (SELECTED, "Selected"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
        (CANCELLED, "Cancelled"),
    ]
    ACTIONABLE_STATUSES = (PENDING, SELECTED)
    TERMINAL_STATUSES = (APPROVED, REJECTED, CANCELLED)

    CANCELLED_BY_CLIENT = "client"
    CANCELLED_BY_HOST = "host"
    CANCELLED_BY_SYSTEM = "system"
    CANCELLED_BY_CHOICES = [
        (CANCELLED_BY_CLIENT, "Client"),
        (CANCELLED_BY_HOST, "Host"),
        (CANCELLED_BY_SYSTEM, "System"),
    ]

    PAYME = "payme"
    CLICK = "click"
    PROVIDER_CHOICES = [
        (PAYME, "Payme"),
        (CLICK, "Click"),
    ]

    # Written once when the booking is created; save() refuses to change them afterwards.
    FROZEN_FIELDS = (
        "place_id",
        "client_id",
        "time_slots",
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
    )
    # Only the state machine and the payment ledger write these, through conditional updates.
    GUARDED_FIELDS = (
        "status",
        "selected_at",
        "approved_at",
        "paid_at",
        "rejected_at",
        "cancelled_at",
        "cancelled_by",
        "payment_provider",
        "payment_reference",
    )

    place = models.ForeignKey("places.Place", on_delete=models.PROTECT, related_name="bookings")
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="bookings")
    unique_request_id = models.CharField(max_length=32, unique=True)

    time_slots = models.JSONField(default=list)
    check_in = models.DateTimeField()
    check_out = models.DateTimeField()
    num_guests = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    guest_name = models.CharField(max_length=200, blank=True)
    guest_phone = models.CharField(max_length=30, blank=True)

    currency = models.CharField(max_length=3)
    total_hours = models.DecimalField(max_digits=8, decimal_places=2)
    base_price = models.DecimalField(max_digits=14, decimal_places=2)
    perks_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    service_fee = models.DecimalField(max_digits=14, decimal_places=2)
    protection_plan_selected = models.BooleanField(default=False)
    protection_plan_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    final_total = models.DecimalField(max_digits=14, decimal_places=2)
    selected_perks = models.JSONField(default=list, blank=True)
    refund_policy_snapshot = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=PENDING)
    selected_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(max_length=12, choices=CANCELLED_BY_CHOICES, blank=True)

    payment_provider = models.CharField(max_length=12, choices=PROVIDER_CHOICES, blank=True)
    payment_reference = models.CharField(max_length=64, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["place", "status"], name="booking_place_status_idx"),
            models.Index(fields=["client", "status"], name="booking_client_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    _status_timestamps("pending", [])
                    | _status_timestamps("selected", ["selected_at"])
                    | _status_timestamps("approved", ["selected_at", "approved_at", "paid_at"])
                    | _status_timestamps("rejected", ["rejected_at"])
                    | _status_timestamps("rejected", ["selected_at", "rejected_at"])
                    | _status_timestamps("cancelled", ["cancelled_at"])
                    | _status_timestamps("cancelled", ["selected_at", "cancelled_at"])
                ),
                name="booking_status_timestamps_consistent",
            ),
            models.CheckConstraint(
                condition=Q(final_total__gte=0) & Q(base_price__gte=0),
                name="booking_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(check_out__gt=models.F("check_in")),
                name="booking_check_out_after_check_in",
            ),
        ]

    def __str__(self):
        return f"{self.unique_request_id} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_values = copy.deepcopy(
            {name: value for name, value in zip(field_names, values) if value is not models.DEFERRED}
        )
        return instance

    def _remember_loaded_values(self):
        self._loaded_values = {
            field.attname: copy.deepcopy(getattr(self, field.attname))
            for field in self._meta.concrete_fields
            if field.attname in self.__dict__
        }

    def refresh_from_db(self, *args, **kwargs):
        super().refresh_from_db(*args, **kwargs)
        self._remember_loaded_values()

    def save(self, *args, **kwargs):
        loaded = getattr(self, "_loaded_values", None)
        protected = self.FROZEN_FIELDS + self.GUARDED_FIELDS
        if loaded is not None and self.pk is not None:
            changed = [field for field in protected if field in loaded and getattr(self, field) != loaded[field]]
            if changed:
                raise ValueError(f"Booking fields cannot be edited directly: {', '.join(changed)}")
            if kwargs.get("update_fields") is None:
                # a stale in-memory copy must not overwrite a concurrent transition
                kwargs["update_fields"] = [
                    field.name
                    for field in self._meta.concrete_fields
                    if not field.primary_key and field.attname not in protected
                ]
        super().save(*args, **kwargs)
        self._remember_loaded_values()

    @property
    def state(self):
        return state_of(self)

    @property
    def is_actionable(self) -> bool:
        return is_actionable(self.status)


def is_actionable(status) -> bool:
    """Whether a booking in `status` still awaits a host or client decision; unknown values are not."""
    return status in Booking.ACTIONABLE_STATUSES
