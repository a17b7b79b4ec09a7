"""
Error taxonomy shared by the payment handlers and the transfer/admin routes.

Every error carries the HTTP status it renders with and an optional
`details` payload (raw upstream text for gateway rejections).
"""
from typing import Any, Optional


class TuraPayError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, details: Any = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthorized(TuraPayError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(TuraPayError):
    status_code = 403
    default_message = "Forbidden"


class ValidationFailed(TuraPayError):
    status_code = 400
    default_message = "Invalid request"


class InvalidAmount(ValidationFailed):
    default_message = "Invalid amount"


class MissingCardDetails(ValidationFailed):
    default_message = "Card details are required"


class MissingAccountNumber(ValidationFailed):
    default_message = "Account number is required"


class TransferLimitExceeded(ValidationFailed):
    default_message = "Transfer limit exceeded"


class TransactionNotFound(TuraPayError):
    status_code = 404
    default_message = "Transaction not found"


class ProfileNotFound(TuraPayError):
    status_code = 404
    default_message = "Profile not found"


class RecipientNotFound(TuraPayError):
    status_code = 404
    default_message = "Recipient not found"


class IllegalTransition(TuraPayError):
    status_code = 409
    default_message = "Illegal status transition"


class StatusConflict(TuraPayError):
    status_code = 409
    default_message = "Transaction was modified concurrently"


class GatewayMisconfigured(TuraPayError):
    status_code = 500
    default_message = "Payment gateway not configured"


class GatewayRejected(TuraPayError):
    """Non-2xx from the gateway; status_code mirrors upstream."""

    status_code = 502
    default_message = "Payment gateway rejected the request"
