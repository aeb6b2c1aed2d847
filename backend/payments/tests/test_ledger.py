from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from payments.models import Transaction
from payments.services import ledger


@pytest.mark.django_db
def test_recording_same_provider_id_twice_keeps_one_row(selected_booking):
    first = ledger.record("payme", "TX1", Decimal("108000"), booking=selected_booking)
    second = ledger.record("payme", "TX1", Decimal("108000"), booking=selected_booking)

    assert first.is_new is True
    assert second.is_new is False
    assert second.transaction.pk == first.transaction.pk
    assert Transaction.objects.count() == 1


@pytest.mark.django_db
def test_same_id_from_different_providers_are_distinct(selected_booking):
    ledger.record("payme", "42", Decimal("108000"), booking=selected_booking)
    entry = ledger.record("click", "42", Decimal("108000"), booking=selected_booking)

    assert entry.is_new is True
    assert Transaction.objects.count() == 2


@pytest.mark.django_db
def test_first_record_sets_booking_payment_reference_once(selected_booking):
    ledger.record("click", "C-1", Decimal("108000"), booking=selected_booking)
    ledger.record("payme", "P-1", Decimal("108000"), booking=selected_booking)

    selected_booking.refresh_from_db()
    assert selected_booking.payment_provider == "click"
    assert selected_booking.payment_reference == "C-1"


@pytest.mark.django_db
def test_replay_with_different_amount_warns_and_keeps_row(selected_booking, caplog):
    ledger.record("payme", "TX1", Decimal("108000"), booking=selected_booking)

    entry = ledger.record("payme", "TX1", Decimal("99000"), booking=selected_booking)

    assert entry.is_new is False
    assert entry.amount_mismatch is True
    assert entry.transaction.amount == Decimal("108000.00")
    warnings = [record for record in caplog.records if record.name == "payments.reconciliation"]
    assert len(warnings) == 1
    assert "99000" in warnings[0].getMessage()


@pytest.mark.django_db
def test_complete_succeeds_only_once(selected_booking):
    txn = ledger.record("click", "C-1", Decimal("108000"), booking=selected_booking).transaction

    assert ledger.complete(txn) is True
    assert ledger.complete(txn) is False
    assert txn.status == Transaction.COMPLETED
    assert txn.performed_at is not None


@pytest.mark.django_db
def test_completed_attempt_only_fails_on_provider_reversal(selected_booking, caplog):
    txn = ledger.record("payme", "TX1", Decimal("108000"), booking=selected_booking).transaction
    ledger.complete(txn)

    assert ledger.fail(txn, reason=5) is False
    assert txn.status == Transaction.COMPLETED

    assert ledger.fail(txn, reason=5, allow_completed=True) is True
    assert txn.status == Transaction.FAILED
    assert txn.cancel_reason == 5
    assert txn.performed_at is not None
    assert any(record.name == "payments.reconciliation" for record in caplog.records)


@pytest.mark.django_db
def test_expire_stale_fails_old_initiated_attempts(selected_booking):
    old = ledger.record("payme", "OLD", Decimal("108000"), booking=selected_booking).transaction
    fresh = ledger.record("payme", "NEW", Decimal("108000"), booking=selected_booking).transaction
    Transaction.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(minutes=30))

    count = ledger.expire_stale("payme", timezone.now() - timedelta(minutes=12), reason=4)

    assert count == 1
    old.refresh_from_db()
    fresh.refresh_from_db()
    assert old.status == Transaction.FAILED
    assert old.cancel_reason == 4
    assert fresh.status == Transaction.INITIATED


@pytest.mark.django_db
def test_statement_filters_by_provider_time(selected_booking):
    ledger.record("payme", "A", Decimal("1"), booking=selected_booking, provider_created_at=1000)
    ledger.record("payme", "B", Decimal("1"), booking=selected_booking, provider_created_at=2000)
    ledger.record("payme", "C", Decimal("1"), booking=selected_booking, provider_created_at=3000)
    ledger.record("click", "D", Decimal("1"), booking=selected_booking, provider_created_at=2000)

    rows = ledger.statement("payme", 1500, 3000)

    assert [row.provider_transaction_id for row in rows] == ["B", "C"]
