from __future__ import annotations


class PaymentError(Exception):
    """Base class for payment errors that map onto an HTTP response."""

    status_code = 400
    default_message = "Payment request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(PaymentError):
    default_message = "Invalid fee parameters"


class BadRequest(PaymentError):
    default_message = "Missing required fields"


class NotFound(PaymentError):
    status_code = 404
    default_message = "Not found"


class AlreadyPaid(PaymentError):
    status_code = 409
    default_message = "Entry already paid"


class AlreadyProcessed(PaymentError):
    """Entries already exist for the payment; carries them for the caller."""

    status_code = 200
    default_message = "Entries already created for this payment"

    def __init__(self, entries: list, message: str | None = None) -> None:
        super().__init__(message)
        self.entries = entries


class PaymentNotRequired(PaymentError):
    default_message = "Payment not required for this event"


class ForbiddenOrigin(PaymentError):
    status_code = 403
    default_message = "Invalid host"


class InvalidSignature(PaymentError):
    status_code = 403
    default_message = "Invalid signature"


class PaymentNotCompleted(PaymentError):
    status_code = 409
    default_message = "Payment not completed"


class PersistenceError(PaymentError):
    status_code = 500
    default_message = "Internal server error"
