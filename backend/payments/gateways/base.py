from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.db import transaction

from bookings.exceptions import InvalidTransition
from bookings.models import Booking
from bookings.services.state_machine import BookingStateMachine, get_state_machine
from payments.models import Transaction
from payments.services import ledger

logger = logging.getLogger(__name__)


class UnknownProvider(KeyError):
    pass


@dataclass(frozen=True)
class CallbackData:
    provider: str
    provider_transaction_id: str
    amount: Optional[Decimal]
    booking_reference: Optional[str]
    provider_status: str


def to_epoch_ms(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    return int(value.timestamp() * 1000)


class PaymentGateway:
    """Shared plumbing for provider adapters.

    Subclasses decode and authenticate their provider's payloads; this class
    owns the hand-off to the ledger and the booking state machine.
    """

    provider: str = ""

    def __init__(self, state_machine: Optional[BookingStateMachine] = None):
        self.state_machine = state_machine or get_state_machine()

    def checkout_url(self, booking: Booking, return_url: Optional[str] = None) -> str:
        raise NotImplementedError

    def find_booking(self, reference) -> Optional[Booking]:
        try:
            booking_id = int(str(reference))
        except (TypeError, ValueError):
            return None
        return Booking.objects.filter(pk=booking_id).first()

    def confirm(self, txn: Transaction) -> bool:
        """Complete the attempt and approve its booking as one unit.

        Returns False when the attempt was already completed by an earlier
        delivery. Raises InvalidTransition, with nothing written, when the
        booking can no longer be approved.
        """
        try:
            with transaction.atomic():
                if not ledger.complete(txn):
                    return False
                result = self.state_machine.payment_confirmed(txn.booking_id)
                if not result.changed:
                    # approved through a different attempt; this one must not be taken
                    raise InvalidTransition(
                        "Booking was already paid through another transaction.",
                        booking_id=txn.booking_id,
                        status=result.booking.status,
                    )
        except InvalidTransition:
            txn.refresh_from_db()
            logger.warning(
                "%s payment %s arrived for booking %s which can no longer be approved",
                self.provider,
                txn.provider_transaction_id,
                txn.booking_id,
            )
            raise
        return True
