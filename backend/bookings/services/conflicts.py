from __future__ import annotations

from datetime import timedelta
from typing import Iterable, List, Sequence

from bookings.models import Booking
from bookings.services.fees import TimeSlot

NO_COOLDOWN = timedelta(0)


def slots_overlap(first: TimeSlot, second: TimeSlot, cooldown: timedelta = NO_COOLDOWN) -> bool:
    """True when the slots intersect or one starts inside the other's cooldown."""
    return first.starts_at < second.ends_at + cooldown and second.starts_at < first.ends_at + cooldown


def _booking_slots(booking: Booking) -> List[TimeSlot]:
    return [TimeSlot.parse(raw) for raw in booking.time_slots]


def first_overlap(slots: Sequence[TimeSlot], bookings: Iterable[Booking], cooldown: timedelta = NO_COOLDOWN):
    """Return the first requested slot that collides with any of `bookings`, or None."""
    for booking in bookings:
        for existing in _booking_slots(booking):
            for slot in slots:
                if slots_overlap(slot, existing, cooldown):
                    return slot
    return None


def overlapping_bookings(place_id, slots: Sequence[TimeSlot], statuses, exclude_id=None, cooldown_minutes=0):
    if not slots:
        return []
    cooldown = timedelta(minutes=cooldown_minutes or 0)
    window_start = min(slot.starts_at for slot in slots) - cooldown
    window_end = max(slot.ends_at for slot in slots) + cooldown
    candidates = Booking.objects.filter(
        place_id=place_id,
        status__in=statuses,
        check_in__lt=window_end,
        check_out__gt=window_start,
    )
    if exclude_id is not None:
        candidates = candidates.exclude(pk=exclude_id)
    return [booking for booking in candidates if first_overlap(slots, [booking], cooldown) is not None]
