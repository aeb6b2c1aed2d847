"""Click SHOP API adapter: prepare (action 0) then complete (action 1)."""

from __future__ import annotations

import hashlib
import hmac
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import urlencode

from django.conf import settings

from bookings.exceptions import InvalidTransition
from bookings.models import Booking
from payments.exceptions import InvalidCallback
from payments.gateways.base import CallbackData, PaymentGateway
from payments.models import Transaction
from payments.services import ledger

logger = logging.getLogger(__name__)

ACTION_PREPARE = 0
ACTION_COMPLETE = 1

SUCCESS = 0
SIGN_FAILED = -1
INVALID_AMOUNT = -2
ACTION_NOT_FOUND = -3
ALREADY_PAID = -4
BOOKING_NOT_FOUND = -5
TRANSACTION_NOT_FOUND = -6
BAD_REQUEST = -8
TRANSACTION_CANCELLED = -9

REQUIRED_FIELDS = (
    "click_trans_id",
    "service_id",
    "merchant_trans_id",
    "amount",
    "action",
    "sign_time",
    "sign_string",
)


class ClickError(Exception):
    def __init__(self, code: int, note: str):
        self.code = code
        self.note = note
        super().__init__(note)


def click_signature(data, secret_key: str, with_prepare_id: bool) -> str:
    parts = [
        str(data["click_trans_id"]),
        str(data["service_id"]),
        secret_key,
        str(data["merchant_trans_id"]),
    ]
    if with_prepare_id:
        parts.append(str(data["merchant_prepare_id"]))
    parts.extend([str(data["amount"]), str(data["action"]), str(data["sign_time"])])
    return hashlib.md5("".join(parts).encode()).hexdigest()


class ClickGateway(PaymentGateway):
    provider = Transaction.CLICK

    def checkout_url(self, booking: Booking, return_url: Optional[str] = None) -> str:
        query = {
            "service_id": settings.CLICK_SERVICE_ID,
            "merchant_id": settings.CLICK_MERCHANT_ID,
            "amount": f"{booking.final_total:.2f}",
            "transaction_param": booking.pk,
        }
        if return_url:
            query["return_url"] = return_url
        return f"{settings.CLICK_CHECKOUT_URL.rstrip('/')}/services/pay?{urlencode(query)}"

    def decode(self, data, action: int) -> CallbackData:
        with_prepare_id = action == ACTION_COMPLETE
        required = REQUIRED_FIELDS + (("merchant_prepare_id",) if with_prepare_id else ())
        missing = [field for field in required if data.get(field) in (None, "")]
        if missing:
            raise InvalidCallback(f"Missing fields: {', '.join(missing)}", code=BAD_REQUEST)

        expected = click_signature(data, settings.CLICK_SECRET_KEY, with_prepare_id)
        if not hmac.compare_digest(expected, str(data["sign_string"]).lower()):
            raise InvalidCallback("Invalid sign", code=SIGN_FAILED)
        if str(data["service_id"]) != str(settings.CLICK_SERVICE_ID):
            raise InvalidCallback("Unknown service", code=BAD_REQUEST)

        try:
            amount = Decimal(str(data["amount"])).quantize(Decimal("0.01"))
        except InvalidOperation as exc:
            raise InvalidCallback("Incorrect parameter amount", code=INVALID_AMOUNT) from exc

        try:
            click_error = int(data.get("error") or 0)
        except (TypeError, ValueError) as exc:
            raise InvalidCallback("Error must be an integer", code=BAD_REQUEST) from exc

        return CallbackData(
            provider=self.provider,
            provider_transaction_id=str(data["click_trans_id"]),
            amount=amount,
            booking_reference=str(data["merchant_trans_id"]),
            provider_status=str(click_error),
        )

    def _response(self, data, code: int, note: str, **ids) -> dict:
        body = {
            "click_trans_id": data.get("click_trans_id"),
            "merchant_trans_id": data.get("merchant_trans_id"),
            "error": code,
            "error_note": note,
        }
        body.update(ids)
        return body

    def _check_action(self, data, action: int) -> None:
        if str(data.get("action")) != str(action):
            raise ClickError(ACTION_NOT_FOUND, "Action not found")

    def handle_prepare(self, data) -> dict:
        try:
            callback = self.decode(data, ACTION_PREPARE)
            self._check_action(data, ACTION_PREPARE)
            txn = self.prepare(callback)
        except InvalidCallback as exc:
            logger.warning("Rejected Click prepare: %s", exc)
            return self._response(data, exc.code, str(exc))
        except ClickError as exc:
            return self._response(data, exc.code, exc.note)
        return self._response(data, SUCCESS, "Success", merchant_prepare_id=txn.pk)

    def handle_complete(self, data) -> dict:
        prepare_id = data.get("merchant_prepare_id")
        try:
            callback = self.decode(data, ACTION_COMPLETE)
            self._check_action(data, ACTION_COMPLETE)
            txn = self.complete(callback, prepare_id)
        except InvalidCallback as exc:
            logger.warning("Rejected Click complete: %s", exc)
            return self._response(data, exc.code, str(exc), merchant_prepare_id=prepare_id)
        except ClickError as exc:
            return self._response(data, exc.code, exc.note, merchant_prepare_id=prepare_id)
        return self._response(data, SUCCESS, "Success", merchant_confirm_id=txn.pk)

    def _replayed_prepare(self, callback: CallbackData, txn: Transaction) -> Transaction:
        # answered from the stored row; a different amount only reaches the operators
        ledger.reconcile(txn, callback.amount)
        if str(txn.booking_id) != callback.booking_reference:
            raise ClickError(BAD_REQUEST, "Transaction belongs to another booking")
        if txn.status == Transaction.COMPLETED:
            raise ClickError(ALREADY_PAID, "Already paid")
        if txn.status == Transaction.FAILED:
            raise ClickError(TRANSACTION_CANCELLED, "Transaction cancelled")
        if txn.booking.status != Booking.SELECTED:
            raise ClickError(TRANSACTION_CANCELLED, "Booking is not awaiting payment")
        return txn

    def prepare(self, callback: CallbackData) -> Transaction:
        txn = ledger.lookup(self.provider, callback.provider_transaction_id)
        if txn is not None:
            return self._replayed_prepare(callback, txn)

        booking = self.find_booking(callback.booking_reference)
        if booking is None:
            raise ClickError(BOOKING_NOT_FOUND, "Booking not found")
        if booking.status == Booking.APPROVED:
            raise ClickError(ALREADY_PAID, "Already paid")
        if booking.status != Booking.SELECTED:
            raise ClickError(TRANSACTION_CANCELLED, "Booking is not awaiting payment")
        if callback.amount != booking.final_total:
            raise ClickError(INVALID_AMOUNT, "Incorrect parameter amount")

        entry = ledger.record(
            self.provider,
            callback.provider_transaction_id,
            callback.amount,
            booking=booking,
        )
        if not entry.is_new:
            # another worker recorded it between the lookup and the insert
            return self._replayed_prepare(callback, entry.transaction)
        return entry.transaction

    def complete(self, callback: CallbackData, prepare_id) -> Transaction:
        txn = ledger.lookup(self.provider, callback.provider_transaction_id)
        if txn is None or str(txn.pk) != str(prepare_id):
            raise ClickError(TRANSACTION_NOT_FOUND, "Transaction not found")
        if str(txn.booking_id) != callback.booking_reference:
            raise ClickError(TRANSACTION_NOT_FOUND, "Transaction not found")

        amount_matches = ledger.reconcile(txn, callback.amount)
        if txn.status == Transaction.COMPLETED:
            return txn
        if not amount_matches:
            raise ClickError(INVALID_AMOUNT, "Incorrect parameter amount")
        if txn.status == Transaction.FAILED:
            raise ClickError(TRANSACTION_CANCELLED, "Transaction cancelled")

        click_error = int(callback.provider_status)
        if click_error < 0:
            ledger.fail(txn, click_error)
            raise ClickError(TRANSACTION_CANCELLED, "Transaction cancelled")

        try:
            self.confirm(txn)
        except InvalidTransition:
            raise ClickError(TRANSACTION_CANCELLED, "Booking can no longer be paid")
        return txn
