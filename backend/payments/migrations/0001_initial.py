import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(choices=[("payme", "Payme"), ("click", "Click")], max_length=12)),
                ("provider_transaction_id", models.CharField(max_length=64)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "status",
                    models.CharField(
                        choices=[("initiated", "Initiated"), ("completed", "Completed"), ("failed", "Failed")],
                        default="initiated",
                        max_length=12,
                    ),
                ),
                ("provider_created_at", models.BigIntegerField(blank=True, null=True)),
                ("performed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.SmallIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["booking", "provider", "status"], name="payments_txn_booking_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("provider", "provider_transaction_id"),
                        name="payments_transaction_provider_txn_unique",
                    ),
                ],
            },
        ),
    ]
