"""
Payment error taxonomy.

Drivers translate these into session state and an in-session message.
The application-level exception handler in main.py maps whatever escapes
to HTTP status codes.
"""

from typing import Optional


class PaymentError(Exception):
    """Base exception for payment session errors"""

    status_code = 400
    code = "payment_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(PaymentError):
    """Malformed user input. Blocks submission, never reaches the orchestrator."""

    code = "invalid"

    def __init__(self, message: str, fields: Optional[dict[str, str]] = None):
        super().__init__(message, details={"fields": fields or {}})
        self.fields = fields or {}


class UnsupportedCurrencyError(ValidationError):
    """No fixed rate exists for the requested currency"""

    def __init__(self, currency: str):
        super().__init__(f"Unsupported settlement currency: {currency}", fields={"currency": currency})
        self.currency = currency


class ExpiryError(PaymentError):
    """QR code or transfer window elapsed"""

    status_code = 410
    code = "expired"


class GatewayError(PaymentError):
    """Simulated network or payment service failure"""

    status_code = 502
    code = "gateway_error"


class RejectionError(PaymentError):
    """Manual proof or reference was not accepted"""

    status_code = 422
    code = "rejected"


class NotFoundError(PaymentError):
    """Referenced resource does not exist"""

    status_code = 404
    code = "not_found"

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(f"{resource_type} not found: {identifier}")
        self.resource_type = resource_type
        self.identifier = identifier


class SessionConflictError(PaymentError):
    """A payment session is already active"""

    status_code = 409
    code = "conflict"


class SessionBusyError(SessionConflictError):
    """The session is in a step that cannot be interrupted"""

    code = "busy"


class SessionClosedError(PaymentError):
    """The session already reached a terminal state"""

    status_code = 409
    code = "closed"
