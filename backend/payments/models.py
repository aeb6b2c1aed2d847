from django.db import models


class Transaction(models.Model):
    """One provider-reported payment attempt against a booking."""

    PAYME = "payme"
    CLICK = "click"
    PROVIDERS = [
        (PAYME, "Payme"),
        (CLICK, "Click"),
    ]

    INITIATED = "initiated"
    COMPLETED = "completed"
    FAILED = "failed"
    STATUSES = [
        (INITIATED, "Initiated"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
    ]

    booking = models.ForeignKey("bookings.Booking", on_delete=models.PROTECT, related_name="transactions")
    provider = models.CharField(max_length=12, choices=PROVIDERS)
    provider_transaction_id = models.CharField(max_length=64)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=12, choices=STATUSES, default=INITIATED)
    # Provider's own clock for the attempt, in epoch milliseconds (Payme `time`).
    provider_created_at = models.BigIntegerField(null=True, blank=True)
    performed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.SmallIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_transaction_id"],
                name="payments_transaction_provider_txn_unique",
            ),
        ]
        indexes = [
            models.Index(fields=["booking", "provider", "status"], name="payments_txn_booking_idx"),
        ]

    def __str__(self):
        return f"{self.provider}:{self.provider_transaction_id} ({self.status})"

    @property
    def is_completed(self) -> bool:
        return self.status == self.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == self.FAILED
