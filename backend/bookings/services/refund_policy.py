from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from django.utils import timezone

from bookings.services.fees import quantize_amount
from places.services import get_place_refund_options


@dataclass(frozen=True)
class RefundQuote:
    hours_before_check_in: Decimal
    refund_percentage: int
    refund_amount: Decimal
    window_hours: Optional[int]

    def as_dict(self) -> dict:
        return {
            "hours_before_check_in": str(self.hours_before_check_in),
            "refund_percentage": self.refund_percentage,
            "refund_amount": str(self.refund_amount),
            "window_hours": self.window_hours,
        }


def snapshot_refund_policy(place) -> List[dict]:
    """Copy the place's refund terms as they stand right now, longest window first.

    A place without terms yields an empty list, which means non-refundable.
    """
    terms = [option.as_dict() for option in get_place_refund_options(place.pk)]
    terms.sort(key=lambda term: term["window_hours"], reverse=True)
    return copy.deepcopy(terms)


def validate_snapshot(terms) -> List[dict]:
    if not isinstance(terms, list):
        raise ValueError("Refund policy snapshot must be a list.")
    cleaned = []
    for term in terms:
        window = int(term["window_hours"])
        percentage = int(term["refund_percentage"])
        if window < 0 or not 0 <= percentage <= 100:
            raise ValueError(f"Invalid refund term {term!r}")
        cleaned.append({"window_hours": window, "refund_percentage": percentage})
    return sorted(cleaned, key=lambda term: term["window_hours"], reverse=True)


def refund_quote(booking, at: Optional[datetime] = None) -> RefundQuote:
    """Refund owed if the booking were cancelled at `at` (defaults to now)."""
    at = at or timezone.now()
    remaining = Decimal((booking.check_in - at).total_seconds()) / Decimal(3600)
    remaining = max(remaining, Decimal("0")).quantize(Decimal("0.01"))

    matched = None
    for term in validate_snapshot(booking.refund_policy_snapshot):
        if term["window_hours"] <= remaining:
            matched = term
            break

    percentage = matched["refund_percentage"] if matched else 0
    amount = quantize_amount(booking.final_total * Decimal(percentage) / 100, booking.currency)
    return RefundQuote(
        hours_before_check_in=remaining,
        refund_percentage=percentage,
        refund_amount=amount,
        window_hours=matched["window_hours"] if matched else None,
    )
