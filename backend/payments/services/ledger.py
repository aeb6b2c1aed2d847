"""Append-only record of provider payment attempts.

Uniqueness of (provider, provider_transaction_id) is enforced by the
database, so a replayed callback can never create a second row no matter
how many workers receive it at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from bookings.models import Booking
from payments.exceptions import AmountMismatch
from payments.models import Transaction

logger = logging.getLogger(__name__)
reconciliation_logger = logging.getLogger("payments.reconciliation")


@dataclass(frozen=True)
class LedgerEntry:
    transaction: Transaction
    is_new: bool
    amount_mismatch: bool = False


def lookup(provider: str, provider_transaction_id: str) -> Optional[Transaction]:
    return Transaction.objects.filter(
        provider=provider,
        provider_transaction_id=str(provider_transaction_id),
    ).first()


def reconcile(txn: Transaction, amount) -> bool:
    """Compare a replayed amount with the stored one; report a difference. The row is never changed."""
    amount = Decimal(amount)
    if txn.amount == amount:
        return True
    warning = AmountMismatch(txn.provider, txn.provider_transaction_id, txn.amount, amount)
    reconciliation_logger.warning(
        "%s",
        warning,
        extra={"booking_id": txn.booking_id, "provider": txn.provider},
    )
    return False


def record(
    provider: str,
    provider_transaction_id: str,
    amount,
    *,
    booking: Booking,
    status: str = Transaction.INITIATED,
    provider_created_at: Optional[int] = None,
) -> LedgerEntry:
    """Store the attempt once. A replay returns the stored row untouched."""
    provider_transaction_id = str(provider_transaction_id)
    amount = Decimal(amount)
    try:
        with transaction.atomic():
            txn = Transaction.objects.create(
                booking=booking,
                provider=provider,
                provider_transaction_id=provider_transaction_id,
                amount=amount,
                status=status,
                provider_created_at=provider_created_at,
            )
    except IntegrityError:
        existing = lookup(provider, provider_transaction_id)
        if existing is None:
            raise
        mismatch = not reconcile(existing, amount)
        return LedgerEntry(transaction=existing, is_new=False, amount_mismatch=mismatch)

    Booking.objects.filter(pk=booking.pk, payment_provider="").update(
        payment_provider=provider,
        payment_reference=provider_transaction_id,
        updated_at=timezone.now(),
    )
    logger.info(
        "Recorded %s transaction %s for booking %s (%s)",
        provider,
        provider_transaction_id,
        booking.pk,
        amount,
    )
    return LedgerEntry(transaction=txn, is_new=True)


def complete(txn: Transaction, performed_at: Optional[datetime] = None) -> bool:
    """Move an initiated attempt to completed. True only for the call that did it."""
    performed_at = performed_at or timezone.now()
    updated = Transaction.objects.filter(pk=txn.pk, status=Transaction.INITIATED).update(
        status=Transaction.COMPLETED,
        performed_at=performed_at,
        updated_at=performed_at,
    )
    txn.refresh_from_db()
    if updated:
        logger.info("%s transaction %s completed", txn.provider, txn.provider_transaction_id)
    return bool(updated)


def fail(
    txn: Transaction,
    reason: Optional[int] = None,
    *,
    allow_completed: bool = False,
    at: Optional[datetime] = None,
) -> bool:
    """Mark the attempt failed.

    A completed attempt is only failed when the provider itself reverses it,
    which callers signal with `allow_completed`.
    """
    at = at or timezone.now()
    sources = [Transaction.INITIATED]
    if allow_completed:
        sources.append(Transaction.COMPLETED)
    updated = Transaction.objects.filter(pk=txn.pk, status__in=sources).update(
        status=Transaction.FAILED,
        cancelled_at=at,
        cancel_reason=reason,
        updated_at=at,
    )
    was_completed = txn.status == Transaction.COMPLETED
    txn.refresh_from_db()
    if updated and was_completed:
        reconciliation_logger.warning(
            "%s reversed completed transaction %s for booking %s (reason %s)",
            txn.provider,
            txn.provider_transaction_id,
            txn.booking_id,
            reason,
        )
    elif updated:
        logger.info("%s transaction %s failed (reason %s)", txn.provider, txn.provider_transaction_id, reason)
    return bool(updated)


def expire_stale(provider: str, older_than: datetime, reason: Optional[int] = None, booking=None) -> int:
    """Fail every initiated attempt created before `older_than`."""
    now = timezone.now()
    stale = Transaction.objects.filter(provider=provider, status=Transaction.INITIATED, created_at__lt=older_than)
    if booking is not None:
        stale = stale.filter(booking=booking)
    count = stale.update(status=Transaction.FAILED, cancelled_at=now, cancel_reason=reason, updated_at=now)
    if count:
        logger.info("Expired %s stale %s transaction(s)", count, provider)
    return count


def statement(provider: str, start, end):
    """Attempts whose provider timestamp falls in [start, end], oldest first."""
    return Transaction.objects.filter(
        provider=provider,
        provider_created_at__gte=start,
        provider_created_at__lte=end,
    ).order_by("provider_created_at", "id")
