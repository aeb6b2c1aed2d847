"""Booking lifecycle transitions.

Every transition is a single conditional UPDATE keyed on the booking id and
the allowed source statuses. Whoever changes the row first wins; a later
request for the same target state is a no-op, anything else is rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from django.db import transaction
from django.utils import timezone

from bookings.exceptions import InvalidTransition
from bookings.models import Booking
from bookings.services import notifications
from bookings.services.conflicts import overlapping_bookings
from bookings.services.fees import parse_time_slots
from bookings.services.refund_policy import refund_quote

logger = logging.getLogger(__name__)

HOST_SELECTS = "host_selects"
PAYMENT_CONFIRMED = "payment_confirmed"
HOST_REJECTS = "host_rejects"
CANCEL = "cancel"


@dataclass(frozen=True)
class Transition:
    sources: tuple
    target: str
    timestamps: tuple
    notification: str


TRANSITIONS = {
    HOST_SELECTS: Transition(
        sources=(Booking.PENDING,),
        target=Booking.SELECTED,
        timestamps=("selected_at",),
        notification=notifications.BOOKING_SELECTED,
    ),
    PAYMENT_CONFIRMED: Transition(
        sources=(Booking.SELECTED,),
        target=Booking.APPROVED,
        timestamps=("paid_at", "approved_at"),
        notification=notifications.BOOKING_APPROVED,
    ),
    HOST_REJECTS: Transition(
        sources=(Booking.PENDING, Booking.SELECTED),
        target=Booking.REJECTED,
        timestamps=("rejected_at",),
        notification=notifications.BOOKING_REJECTED,
    ),
    CANCEL: Transition(
        sources=(Booking.PENDING, Booking.SELECTED),
        target=Booking.CANCELLED,
        timestamps=("cancelled_at",),
        notification=notifications.BOOKING_CANCELLED,
    ),
}


@dataclass
class TransitionResult:
    booking: Booking
    changed: bool


class BookingStateMachine:
    def __init__(
        self,
        clock: Callable = timezone.now,
        notifier: Callable = notifications.notify_on_commit,
    ):
        self._clock = clock
        self._notifier = notifier

    def host_selects(self, booking_id) -> TransitionResult:
        return self.apply(booking_id, HOST_SELECTS)

    def payment_confirmed(self, booking_id) -> TransitionResult:
        result = self.apply(booking_id, PAYMENT_CONFIRMED)
        if result.changed:
            self._reject_competing(result.booking)
        return result

    def _reject_competing(self, booking: Booking):
        slots = parse_time_slots(booking.time_slots)
        competing = overlapping_bookings(
            booking.place_id,
            slots,
            statuses=Booking.ACTIONABLE_STATUSES,
            exclude_id=booking.pk,
            cooldown_minutes=booking.place.cooldown_minutes,
        )
        for other in competing:
            try:
                self.host_rejects(other.pk)
            except InvalidTransition:
                logger.info("Competing booking %s moved on before it could be rejected", other.pk)

    def host_rejects(self, booking_id) -> TransitionResult:
        return self.apply(booking_id, HOST_REJECTS)

    def cancel(self, booking_id, cancelled_by: str = Booking.CANCELLED_BY_CLIENT) -> TransitionResult:
        result = self.apply(booking_id, CANCEL, extra={"cancelled_by": cancelled_by})
        if result.changed:
            booking = result.booking
            quote = refund_quote(booking, at=booking.cancelled_at)
            logger.info(
                "Booking %s cancelled by %s %.2fh before check-in; refund terms give %s%% (%s %s)",
                booking.pk,
                cancelled_by,
                quote.hours_before_check_in,
                quote.refund_percentage,
                quote.refund_amount,
                booking.currency,
            )
        return result

    def apply(self, booking_id, event: str, extra: Optional[dict] = None) -> TransitionResult:
        rule = TRANSITIONS[event]
        now = self._clock()
        values = {"status": rule.target, "updated_at": now}
        values.update({field: now for field in rule.timestamps})
        values.update(extra or {})

        with transaction.atomic():
            updated = Booking.objects.filter(pk=booking_id, status__in=rule.sources).update(**values)
            booking = Booking.objects.get(pk=booking_id)

        if updated:
            logger.info("Booking %s %s -> %s", booking_id, event, rule.target)
            self._notifier(booking.pk, rule.notification)
            return TransitionResult(booking=booking, changed=True)

        if booking.status == rule.target:
            logger.info("Booking %s already %s; %s ignored", booking_id, rule.target, event)
            return TransitionResult(booking=booking, changed=False)

        logger.warning("Booking %s rejected %s from status %s", booking_id, event, booking.status)
        raise InvalidTransition(
            f"Cannot {event.replace('_', ' ')} a booking that is {booking.status}.",
            booking_id=booking_id,
            event=event,
            status=booking.status,
        )


def get_state_machine() -> BookingStateMachine:
    return BookingStateMachine()
