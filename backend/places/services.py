from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from .models import Perk, Place, RefundTerm


@dataclass(frozen=True)
class PerkOption:
    name: str
    is_paid: bool
    price: Decimal


@dataclass(frozen=True)
class PlacePricing:
    """Pricing parameters the fee calculator needs from a place."""

    hourly_rate: Decimal
    minimum_hours: int
    full_day_hours: int
    full_day_discount_price: Decimal
    currency: str
    perks: tuple[PerkOption, ...] = ()


@dataclass(frozen=True)
class RefundOption:
    window_hours: int
    refund_percentage: int

    def as_dict(self) -> dict:
        return {"window_hours": self.window_hours, "refund_percentage": self.refund_percentage}


def pricing_for_place(place: Place) -> PlacePricing:
    perks = tuple(
        PerkOption(name=perk.name, is_paid=perk.is_paid, price=perk.price)
        for perk in Perk.objects.filter(place=place).order_by("position", "id")
    )
    return PlacePricing(
        hourly_rate=place.hourly_rate,
        minimum_hours=place.minimum_hours,
        full_day_hours=place.full_day_hours,
        full_day_discount_price=place.full_day_discount_price,
        currency=place.currency,
        perks=perks,
    )


def get_place_pricing(place_id: int) -> PlacePricing:
    return pricing_for_place(Place.objects.get(pk=place_id))


def get_place_refund_options(place_id: int) -> List[RefundOption]:
    terms = RefundTerm.objects.filter(place_id=place_id).order_by("position", "id")
    return [
        RefundOption(window_hours=term.window_hours, refund_percentage=term.refund_percentage)
        for term in terms
    ]
