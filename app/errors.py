"""Error taxonomy shared by every domain package.

Each error carries a stable machine-readable ``category`` and the HTTP status
used when it escapes a route handler. Messages are meant for end users and
must never include credentials or signing keys.
"""

from __future__ import annotations

from fastapi import status


class CommerceError(Exception):
    """Base class for errors surfaced to API callers."""

    category = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()

    @classmethod
    def default_message(cls) -> str:
        return cls.category.replace("_", " ")

    def as_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "success": False,
            "error": self.category,
            "message": self.message,
        }
        if self.retryable:
            payload["retryable"] = True
        return payload


class ValidationError(CommerceError):
    category = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPlan(ValidationError):
    category = "invalid_plan"


class Unauthorized(CommerceError):
    category = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(CommerceError):
    category = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(CommerceError):
    category = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(CommerceError):
    category = "conflict"
    status_code = status.HTTP_409_CONFLICT


class PaymentRejected(CommerceError):
    """A payment attempt was rejected; the order may be retried with a new payment."""

    category = "payment_rejected"
    status_code = status.HTTP_400_BAD_REQUEST


class SignatureInvalid(PaymentRejected):
    category = "signature_invalid"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid signature"


class PaymentNotCaptured(PaymentRejected):
    category = "payment_not_captured"

    def __init__(self, message: str | None = None, *, gateway_status: str | None = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.gateway_status = gateway_status
        self.retryable = retryable


class InternalError(CommerceError):
    category = "internal_error"

    @classmethod
    def default_message(cls) -> str:
        return "Internal server error"


class GatewayError(InternalError):
    """The payment gateway could not be reached or answered unexpectedly."""

    category = "gateway_error"
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "Payment gateway unavailable, please retry"
