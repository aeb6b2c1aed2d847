import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _status_timestamps(status, present):
    absent = {"selected_at", "approved_at", "paid_at", "rejected_at", "cancelled_at"} - set(present)
    condition = models.Q(status=status)
    for field in present:
        condition &= models.Q(**{f"{field}__isnull": False})
    for field in sorted(absent):
        condition &= models.Q(**{f"{field}__isnull": True})
    return condition


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("places", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("unique_request_id", models.CharField(max_length=32, unique=True)),
                ("time_slots", models.JSONField(default=list)),
                ("check_in", models.DateTimeField()),
                ("check_out", models.DateTimeField()),
                (
                    "num_guests",
                    models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("guest_name", models.CharField(blank=True, max_length=200)),
                ("guest_phone", models.CharField(blank=True, max_length=30)),
                ("currency", models.CharField(max_length=3)),
                ("total_hours", models.DecimalField(decimal_places=2, max_digits=8)),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("perks_fee", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("service_fee", models.DecimalField(decimal_places=2, max_digits=14)),
                ("protection_plan_selected", models.BooleanField(default=False)),
                ("protection_plan_fee", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("final_total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("selected_perks", models.JSONField(blank=True, default=list)),
                ("refund_policy_snapshot", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("selected", "Selected"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=12,
                    ),
                ),
                ("selected_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancelled_by",
                    models.CharField(
                        blank=True,
                        choices=[("client", "Client"), ("host", "Host"), ("system", "System")],
                        max_length=12,
                    ),
                ),
                (
                    "payment_provider",
                    models.CharField(blank=True, choices=[("payme", "Payme"), ("click", "Click")], max_length=12),
                ),
                ("payment_reference", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "place",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="places.place",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["place", "status"], name="booking_place_status_idx"),
                    models.Index(fields=["client", "status"], name="booking_client_status_idx"),
                ],
                "constraints": [
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
                        condition=models.Q(final_total__gte=0) & models.Q(base_price__gte=0),
                        name="booking_amounts_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(check_out__gt=models.F("check_in")),
                        name="booking_check_out_after_check_in",
                    ),
                ],
            },
        ),
    ]
