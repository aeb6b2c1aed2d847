"""Booking fee computation.

Everything here is pure: callers pass the place pricing and the requested
slots and get back a breakdown. Nothing touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from django.conf import settings
from django.utils import timezone

from bookings.exceptions import DurationTooShort, InvalidPerkSelection, InvalidPricingConfig, InvalidTimeSlots
from places.services import PlacePricing

MINUTES_PER_HOUR = Decimal("60")


@dataclass(frozen=True)
class TimeSlot:
    day: date
    start_time: time
    end_time: time

    @classmethod
    def parse(cls, raw) -> "TimeSlot":
        try:
            day = date.fromisoformat(str(raw["date"]))
            start = time.fromisoformat(str(raw["start_time"]))
            end = time.fromisoformat(str(raw["end_time"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidTimeSlots(f"Malformed time slot: {raw!r}") from exc
        if end <= start:
            raise InvalidTimeSlots("Time slot must end after it starts.", slot=raw)
        return cls(day=day, start_time=start, end_time=end)

    @property
    def hours(self) -> Decimal:
        minutes = (self.end_time.hour * 60 + self.end_time.minute) - (
            self.start_time.hour * 60 + self.start_time.minute
        )
        return Decimal(minutes) / MINUTES_PER_HOUR

    @property
    def starts_at(self) -> datetime:
        return timezone.make_aware(datetime.combine(self.day, self.start_time))

    @property
    def ends_at(self) -> datetime:
        return timezone.make_aware(datetime.combine(self.day, self.end_time))

    def as_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
        }


@dataclass(frozen=True)
class FeeBreakdown:
    currency: str
    total_hours: Decimal
    base_price: Decimal
    perks_fee: Decimal
    service_fee: Decimal
    protection_plan_fee: Decimal
    final_total: Decimal

    def as_dict(self) -> dict:
        return {
            "currency": self.currency,
            "total_hours": str(self.total_hours),
            "base_price": str(self.base_price),
            "perks_fee": str(self.perks_fee),
            "service_fee": str(self.service_fee),
            "protection_plan_fee": str(self.protection_plan_fee),
            "final_total": str(self.final_total),
        }


def parse_time_slots(raw_slots: Iterable) -> list[TimeSlot]:
    slots = sorted((TimeSlot.parse(raw) for raw in raw_slots), key=lambda slot: (slot.day, slot.start_time))
    if not slots:
        raise InvalidTimeSlots("At least one time slot is required.")
    for previous, current in zip(slots, slots[1:]):
        if previous.day == current.day and current.start_time < previous.end_time:
            raise InvalidTimeSlots("Time slots overlap.", slot=current.as_dict())
    return slots


def quantize_amount(amount: Decimal, currency: str) -> Decimal:
    minor_units = settings.CURRENCY_MINOR_UNITS.get(currency.upper(), 2)
    step = Decimal(1).scaleb(-minor_units)
    return Decimal(amount).quantize(step, rounding=ROUND_HALF_UP)


def validate_pricing(pricing: PlacePricing) -> None:
    if pricing.hourly_rate is None or pricing.hourly_rate < 0:
        raise InvalidPricingConfig("Hourly rate must be zero or positive.")
    if not 1 <= pricing.minimum_hours <= 5:
        raise InvalidPricingConfig("Minimum hours must be between 1 and 5.")
    if not 1 <= pricing.full_day_hours <= 24:
        raise InvalidPricingConfig("Full day hours must be between 1 and 24.")
    if pricing.full_day_hours < pricing.minimum_hours:
        raise InvalidPricingConfig("Full day hours must not be shorter than the minimum booking.")
    if pricing.full_day_discount_price < 0:
        raise InvalidPricingConfig("Full day discount price must not be negative.")


def price_slot(pricing: PlacePricing, hours: Decimal) -> Decimal:
    linear = hours * pricing.hourly_rate
    discount = pricing.full_day_discount_price
    if discount <= 0 or hours < pricing.full_day_hours:
        return linear
    full_days = int(hours // pricing.full_day_hours)
    remainder = hours - full_days * pricing.full_day_hours
    discounted = full_days * discount + remainder * pricing.hourly_rate
    return min(linear, discounted)


def perks_total(pricing: PlacePricing, requested: Sequence[str]) -> Decimal:
    offered = {perk.name: perk for perk in pricing.perks}
    total = Decimal("0")
    for name in dict.fromkeys(requested):
        perk = offered.get(name)
        if perk is None:
            raise InvalidPerkSelection(f"Perk {name!r} is not offered by this place.", perk=name)
        if perk.is_paid:
            total += perk.price
    return total


def calculate_fees(
    pricing: PlacePricing,
    slots: Sequence[TimeSlot],
    *,
    protection_plan_selected: bool = False,
    perks: Sequence[str] = (),
) -> FeeBreakdown:
    """Price the requested slots at this place.

    Each slot must meet the place minimum on its own. Slots that reach the
    full-day length use the full-day price when that is cheaper than the
    hourly rate.
    """
    validate_pricing(pricing)
    if not slots:
        raise DurationTooShort("No time requested.", hours=0, minimum_hours=pricing.minimum_hours)

    total_hours = Decimal("0")
    base = Decimal("0")
    for slot in slots:
        hours = slot.hours
        if hours < pricing.minimum_hours:
            raise DurationTooShort(
                f"Each slot must be at least {pricing.minimum_hours} hours.",
                hours=hours,
                minimum_hours=pricing.minimum_hours,
            )
        total_hours += hours
        base += price_slot(pricing, hours)

    currency = pricing.currency
    base_price = quantize_amount(base, currency)
    perks_fee = quantize_amount(perks_total(pricing, perks), currency)
    service_fee = quantize_amount(base_price * Decimal(settings.SERVICE_FEE_PERCENT) / 100, currency)
    protection_plan_fee = quantize_amount(
        Decimal(settings.PROTECTION_PLAN_FEE) if protection_plan_selected else Decimal("0"),
        currency,
    )
    final_total = quantize_amount(base_price + perks_fee + service_fee + protection_plan_fee, currency)

    return FeeBreakdown(
        currency=currency,
        total_hours=total_hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        base_price=base_price,
        perks_fee=perks_fee,
        service_fee=service_fee,
        protection_plan_fee=protection_plan_fee,
        final_total=final_total,
    )
