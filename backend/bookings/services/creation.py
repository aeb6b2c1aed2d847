from __future__ import annotations

import logging
import secrets
from typing import Sequence

from django.db import transaction
from django.utils import timezone

from bookings.exceptions import BookingValidationError, InvalidTimeSlots, SlotUnavailable
from bookings.models import Booking
from bookings.services import notifications
from bookings.services.conflicts import overlapping_bookings
from bookings.services.fees import calculate_fees, parse_time_slots
from bookings.services.refund_policy import snapshot_refund_policy
from places.services import pricing_for_place

logger = logging.getLogger(__name__)


def generate_request_id() -> str:
    stamp = format(int(timezone.now().timestamp() * 1000), "x")
    return f"REQ-{stamp}-{secrets.token_hex(3)}".upper()


def create_booking(
    *,
    client,
    place,
    time_slots: Sequence[dict],
    protection_plan_selected: bool = False,
    perks: Sequence[str] = (),
    num_guests: int = 1,
    guest_name: str = "",
    guest_phone: str = "",
) -> Booking:
    """Price the request, freeze the refund terms and store a pending booking."""
    if place.owner_id == client.pk:
        raise BookingValidationError("Hosts cannot book their own place.")

    slots = parse_time_slots(time_slots)
    if slots[0].starts_at <= timezone.now():
        raise InvalidTimeSlots("Time slots must be in the future.")

    fees = calculate_fees(
        pricing_for_place(place),
        slots,
        protection_plan_selected=protection_plan_selected,
        perks=perks,
    )

    with transaction.atomic():
        taken = overlapping_bookings(
            place.pk,
            slots,
            statuses=[Booking.APPROVED],
            cooldown_minutes=place.cooldown_minutes,
        )
        if taken:
            raise SlotUnavailable(booking_id=taken[0].pk)

        booking = Booking.objects.create(
            place=place,
            client=client,
            unique_request_id=generate_request_id(),
            time_slots=[slot.as_dict() for slot in slots],
            check_in=min(slot.starts_at for slot in slots),
            check_out=max(slot.ends_at for slot in slots),
            num_guests=num_guests,
            guest_name=guest_name or client.get_full_name(),
            guest_phone=guest_phone or getattr(client, "phone_number", ""),
            currency=fees.currency,
            total_hours=fees.total_hours,
            base_price=fees.base_price,
            perks_fee=fees.perks_fee,
            service_fee=fees.service_fee,
            protection_plan_selected=protection_plan_selected,
            protection_plan_fee=fees.protection_plan_fee,
            final_total=fees.final_total,
            selected_perks=list(dict.fromkeys(perks)),
            refund_policy_snapshot=snapshot_refund_policy(place),
        )
        notifications.notify_on_commit(booking.pk, notifications.BOOKING_CREATED)

    logger.info(
        "Booking %s created for place %s: %s %s",
        booking.unique_request_id,
        place.pk,
        booking.final_total,
        booking.currency,
    )
    return booking
