from decimal import Decimal


class PaymentError(Exception):
    pass


class InvalidCallback(PaymentError):
    """Provider payload failed authentication or could not be decoded."""

    def __init__(self, message: str, *, code=None):
        self.code = code
        super().__init__(message)


class ReconciliationWarning(UserWarning):
    """Something an operator should look at; never fails a provider acknowledgement."""


class AmountMismatch(ReconciliationWarning):
    def __init__(self, provider: str, provider_transaction_id: str, recorded: Decimal, reported: Decimal):
        self.provider = provider
        self.provider_transaction_id = provider_transaction_id
        self.recorded = recorded
        self.reported = reported
        super().__init__(
            f"{provider} transaction {provider_transaction_id} replayed with amount {reported}, "
            f"ledger holds {recorded}"
        )
