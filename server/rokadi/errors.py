"""Typed errors raised by the ledger engine.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer maps it to. ``ValidationError`` also subclasses ``ValueError`` and
``NotFoundError`` subclasses ``LookupError`` so plain callers can catch the
builtin families.
"""


class LedgerError(Exception):
    code = "ledger_error"
    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError, ValueError):
    code = "validation_error"
    status_code = 400


class InvalidAmountError(ValidationError):
    code = "invalid_amount"


class SameAccountError(ValidationError):
    code = "same_account"


class InsufficientFundsError(ValidationError):
    code = "insufficient_funds"


class NotFoundError(LedgerError, LookupError):
    code = "not_found"
    status_code = 404


class AccountNotFoundError(NotFoundError):
    code = "account_not_found"


class EventNotFoundError(NotFoundError):
    code = "event_not_found"


class VendorNotFoundError(NotFoundError):
    code = "vendor_not_found"


class LabourerNotFoundError(NotFoundError):
    code = "labourer_not_found"


class PurchaseNotFoundError(NotFoundError):
    code = "purchase_not_found"


class ConflictError(LedgerError):
    code = "conflict"
    status_code = 409


class StoreError(LedgerError):
    code = "store_error"
    status_code = 500
