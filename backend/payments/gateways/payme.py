"""Payme Merchant API (JSON-RPC 2.0) adapter.

Payme drives a two-phase flow: CreateTransaction reserves the payment,
PerformTransaction captures it. Amounts travel in tiyin.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.utils import timezone

from bookings.exceptions import InvalidTransition
from bookings.models import Booking
from payments.exceptions import InvalidCallback
from payments.gateways.base import CallbackData, PaymentGateway, to_epoch_ms
from payments.models import Transaction
from payments.services import ledger

logger = logging.getLogger(__name__)

STATE_INITIATED = 1
STATE_COMPLETED = 2
STATE_CANCELLED = -1
STATE_CANCELLED_AFTER_PERFORM = -2

REASON_TIMEOUT = 4

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INSUFFICIENT_PRIVILEGE = -32504

ERRORS = {
    "InvalidAmount": (
        -31001,
        {"uz": "Noto'g'ri summa", "ru": "Недопустимая сумма", "en": "Invalid amount"},
    ),
    "TransactionNotFound": (
        -31003,
        {"uz": "Tranzaksiya topilmadi", "ru": "Транзакция не найдена", "en": "Transaction not found"},
    ),
    "CantDoOperation": (
        -31008,
        {
            "uz": "Biz operatsiyani bajara olmaymiz",
            "ru": "Невозможно выполнить данную операцию",
            "en": "Can't perform operation",
        },
    ),
    "BookingNotFound": (
        -31050,
        {"uz": "Bron topilmadi", "ru": "Бронирование не найдено", "en": "Booking not found"},
    ),
    "Pending": (
        -31051,
        {
            "uz": "Bron uchun boshqa tranzaksiya kutilmoqda",
            "ru": "Для бронирования уже есть ожидающая транзакция",
            "en": "Another transaction is pending for this booking",
        },
    ),
    "AlreadyDone": (
        -31060,
        {"uz": "Bron allaqachon to'langan", "ru": "Бронирование уже оплачено", "en": "Booking is already paid"},
    ),
}


class PaymeRPCError(Exception):
    def __init__(self, code: int, message, data=None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"Payme error {code}")


def payme_error(name: str, data=None) -> PaymeRPCError:
    code, message = ERRORS[name]
    return PaymeRPCError(code, message, data)


def payme_state(txn: Transaction) -> int:
    if txn.status == Transaction.INITIATED:
        return STATE_INITIATED
    if txn.status == Transaction.COMPLETED:
        return STATE_COMPLETED
    return STATE_CANCELLED_AFTER_PERFORM if txn.performed_at else STATE_CANCELLED


def to_tiyin(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


class PaymeGateway(PaymentGateway):
    provider = Transaction.PAYME

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.methods = {
            "CheckPerformTransaction": self.check_perform_transaction,
            "CreateTransaction": self.create_transaction,
            "PerformTransaction": self.perform_transaction,
            "CancelTransaction": self.cancel_transaction,
            "CheckTransaction": self.check_transaction,
            "GetStatement": self.get_statement,
        }

    def checkout_url(self, booking: Booking, return_url: Optional[str] = None) -> str:
        parts = [
            f"m={settings.PAYME_MERCHANT_ID}",
            f"ac.booking_id={booking.pk}",
            f"a={to_tiyin(booking.final_total)}",
        ]
        if return_url:
            parts.append(f"c={return_url}")
        encoded = base64.b64encode(";".join(parts).encode()).decode()
        return f"{settings.PAYME_CHECKOUT_URL.rstrip('/')}/{encoded}"

    # Request decoding

    def authenticate(self, authorization: Optional[str]) -> None:
        if not authorization or not authorization.startswith("Basic "):
            raise InvalidCallback("Missing Payme credentials.", code=INSUFFICIENT_PRIVILEGE)
        try:
            decoded = base64.b64decode(authorization[len("Basic "):], validate=True).decode()
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise InvalidCallback("Malformed Payme credentials.", code=INSUFFICIENT_PRIVILEGE) from exc
        login, _, password = decoded.partition(":")
        if login != "Paycom" or not hmac.compare_digest(password.encode(), settings.PAYME_SECRET_KEY.encode()):
            raise InvalidCallback("Invalid Payme credentials.", code=INSUFFICIENT_PRIVILEGE)

    def parse_body(self, body: bytes):
        try:
            payload = json.loads(body)
        except (TypeError, ValueError) as exc:
            raise InvalidCallback("Request body is not valid JSON.", code=PARSE_ERROR) from exc
        if not isinstance(payload, dict):
            raise InvalidCallback("JSON-RPC request must be an object.", code=INVALID_REQUEST)
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            raise InvalidCallback("JSON-RPC params must be an object.", code=INVALID_REQUEST)
        return payload.get("id"), payload.get("method"), params

    def decode(self, params: dict, method: str) -> CallbackData:
        amount = None
        if "amount" in params:
            try:
                amount = (Decimal(str(params["amount"])) / 100).quantize(Decimal("0.01"))
            except (InvalidOperation, TypeError) as exc:
                raise InvalidCallback("Amount must be a number of tiyin.", code=INVALID_REQUEST) from exc
        account = params.get("account") or {}
        if not isinstance(account, dict):
            raise InvalidCallback("Account must be an object.", code=INVALID_REQUEST)
        transaction_id = params.get("id")
        return CallbackData(
            provider=self.provider,
            provider_transaction_id=str(transaction_id) if transaction_id is not None else "",
            amount=amount,
            booking_reference=account.get("booking_id"),
            provider_status=method,
        )

    def handle(self, body: bytes, authorization: Optional[str]) -> dict:
        rpc_id = None
        try:
            self.authenticate(authorization)
            rpc_id, method, params = self.parse_body(body)
            handler = self.methods.get(method)
            if handler is None:
                raise PaymeRPCError(METHOD_NOT_FOUND, f"Method {method!r} not found", method)
            result = handler(params, self.decode(params, method))
        except InvalidCallback as exc:
            logger.warning("Rejected Payme callback: %s", exc)
            return self.error_response(rpc_id, exc.code, str(exc))
        except PaymeRPCError as exc:
            logger.info("Payme request %s answered with error %s", rpc_id, exc.code)
            return self.error_response(rpc_id, exc.code, exc.message, exc.data)
        return {"jsonrpc": "2.0", "id": rpc_id, "result": result}

    def error_response(self, rpc_id, code, message, data=None) -> dict:
        error = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        return {"jsonrpc": "2.0", "id": rpc_id, "error": error}

    # Helpers

    def _require_transaction_id(self, callback: CallbackData) -> str:
        if not callback.provider_transaction_id:
            raise InvalidCallback("Transaction id is required.", code=INVALID_REQUEST)
        return callback.provider_transaction_id

    def _payable_booking(self, callback: CallbackData) -> Booking:
        booking = self.find_booking(callback.booking_reference)
        if booking is None:
            raise payme_error("BookingNotFound", "booking_id")
        if booking.status == Booking.APPROVED:
            raise payme_error("AlreadyDone", "booking_id")
        if booking.status != Booking.SELECTED:
            raise payme_error("BookingNotFound", "booking_id")
        if callback.amount is None or callback.amount != booking.final_total:
            raise payme_error("InvalidAmount", "amount")
        return booking

    def _get_transaction(self, callback: CallbackData) -> Transaction:
        txn = ledger.lookup(self.provider, self._require_transaction_id(callback))
        if txn is None:
            raise payme_error("TransactionNotFound", "id")
        return txn

    def _create_time(self, txn: Transaction) -> int:
        return txn.provider_created_at or to_epoch_ms(txn.created_at)

    def _expire_if_timed_out(self, txn: Transaction) -> None:
        now_ms = to_epoch_ms(timezone.now())
        if now_ms - self._create_time(txn) > settings.PAYME_TIMEOUT_MS:
            ledger.fail(txn, REASON_TIMEOUT)
            raise payme_error("CantDoOperation")

    def _describe(self, txn: Transaction) -> dict:
        return {
            "create_time": self._create_time(txn),
            "perform_time": to_epoch_ms(txn.performed_at),
            "cancel_time": to_epoch_ms(txn.cancelled_at),
            "transaction": str(txn.pk),
            "state": payme_state(txn),
            "reason": txn.cancel_reason,
        }

    # Methods

    def check_perform_transaction(self, params: dict, callback: CallbackData) -> dict:
        self._payable_booking(callback)
        return {"allow": True}

    def _provider_time(self, params: dict) -> int:
        try:
            return int(params["time"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCallback("CreateTransaction needs an integer time.", code=INVALID_REQUEST) from exc

    def create_transaction(self, params: dict, callback: CallbackData) -> dict:
        transaction_id = self._require_transaction_id(callback)
        created_at_ms = self._provider_time(params)
        txn = ledger.lookup(self.provider, transaction_id)
        if txn is not None and callback.amount is not None:
            ledger.reconcile(txn, callback.amount)
        if txn is None:
            booking = self._payable_booking(callback)
            cutoff = timezone.now() - timedelta(milliseconds=settings.PAYME_TIMEOUT_MS)
            ledger.expire_stale(self.provider, cutoff, reason=REASON_TIMEOUT, booking=booking)
            pending = booking.transactions.filter(provider=self.provider, status=Transaction.INITIATED)
            if pending.exclude(provider_transaction_id=transaction_id).exists():
                raise payme_error("Pending", "booking_id")
            entry = ledger.record(
                self.provider,
                transaction_id,
                callback.amount,
                booking=booking,
                provider_created_at=created_at_ms,
            )
            txn = entry.transaction
            if entry.is_new:
                return {"create_time": self._create_time(txn), "transaction": str(txn.pk), "state": STATE_INITIATED}

        if txn.status != Transaction.INITIATED:
            raise payme_error("CantDoOperation")
        self._expire_if_timed_out(txn)
        return {"create_time": self._create_time(txn), "transaction": str(txn.pk), "state": STATE_INITIATED}

    def perform_transaction(self, params: dict, callback: CallbackData) -> dict:
        txn = self._get_transaction(callback)
        if txn.status == Transaction.INITIATED:
            self._expire_if_timed_out(txn)
            try:
                self.confirm(txn)
            except InvalidTransition:
                raise payme_error("CantDoOperation")
        if txn.status != Transaction.COMPLETED:
            raise payme_error("CantDoOperation")
        return {
            "perform_time": to_epoch_ms(txn.performed_at),
            "transaction": str(txn.pk),
            "state": STATE_COMPLETED,
        }

    def cancel_transaction(self, params: dict, callback: CallbackData) -> dict:
        txn = self._get_transaction(callback)
        reason = params.get("reason")
        if txn.status != Transaction.FAILED:
            if not ledger.fail(txn, reason) and txn.status == Transaction.COMPLETED:
                # Payme reverses a captured payment; the booking itself is left as it is
                ledger.fail(txn, reason, allow_completed=True)
        return {
            "cancel_time": to_epoch_ms(txn.cancelled_at),
            "transaction": str(txn.pk),
            "state": payme_state(txn),
        }

    def check_transaction(self, params: dict, callback: CallbackData) -> dict:
        return self._describe(self._get_transaction(callback))

    def get_statement(self, params: dict, callback: CallbackData) -> dict:
        try:
            start, end = int(params["from"]), int(params["to"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCallback("GetStatement needs integer from/to.", code=INVALID_REQUEST) from exc
        transactions = []
        for txn in ledger.statement(self.provider, start, end):
            row = self._describe(txn)
            row.update(
                {
                    "id": txn.provider_transaction_id,
                    "time": self._create_time(txn),
                    "amount": to_tiyin(txn.amount),
                    "account": {"booking_id": txn.booking_id},
                }
            )
            transactions.append(row)
        return {"transactions": transactions}
