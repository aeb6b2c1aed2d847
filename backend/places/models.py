from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Place(models.Model):
    """Venue listed by a host and booked by the hour."""

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="places")
    title = models.CharField(max_length=200)
    address = models.CharField(max_length=300, blank=True)
    currency = models.CharField(max_length=3, default="UZS")
    hourly_rate = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    minimum_hours = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    full_day_hours = models.PositiveSmallIntegerField(
        default=8,
        validators=[MinValueValidator(1), MaxValueValidator(24)],
    )
    full_day_discount_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
    )
    # gap kept free after each booking before the next one may start
    cooldown_minutes = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(720)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title", "id"]

    def __str__(self):
        return self.title

    def clean(self):
        super().clean()
        if self.full_day_hours is not None and self.minimum_hours is not None:
            if self.full_day_hours < self.minimum_hours:
                raise ValidationError({"full_day_hours": "Full day hours must not be shorter than the minimum booking."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class RefundTerm(models.Model):
    """One cancellation window: cancelling at least `window_hours` before check-in refunds `refund_percentage`."""

    place = models.ForeignKey(Place, on_delete=models.CASCADE, related_name="refund_terms")
    position = models.PositiveSmallIntegerField(default=0)
    window_hours = models.PositiveIntegerField()
    refund_percentage = models.PositiveSmallIntegerField(validators=[MaxValueValidator(100)])

    class Meta:
        ordering = ["place", "position", "id"]

    def __str__(self):
        return f"{self.refund_percentage}% if cancelled {self.window_hours}h+ ahead"


class Perk(models.Model):
    place = models.ForeignKey(Place, on_delete=models.CASCADE, related_name="perks")
    position = models.PositiveSmallIntegerField(default=0)
    name = models.CharField(max_length=120)
    is_paid = models.BooleanField(default=False)
    price = models.DecimalField(max_digits=14, decimal_places=2, default=0, validators=[MinValueValidator(0)])

    class Meta:
        ordering = ["place", "position", "id"]
        unique_together = ("place", "name")

    def __str__(self):
        return self.name
