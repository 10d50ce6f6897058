"""
Domain exceptions.

Services raise these; the API error middleware maps each one to an HTTP
status code via ``http_status``.
"""

from typing import Any


class AssignXError(Exception):
    """Base class for all expected application errors."""

    http_status = 400
    code = "bad_request"
    # Commit the request transaction anyway (audit rows written before raising)
    commit_on_error = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(AssignXError):
    """Entity does not exist or is not visible to the caller."""

    http_status = 404
    code = "not_found"


class PermissionDeniedError(AssignXError):
    """Caller is authenticated but not allowed to perform the action."""

    http_status = 403
    code = "forbidden"


class AuthenticationError(AssignXError):
    """Missing or invalid credentials."""

    http_status = 401
    code = "unauthorized"


class ValidationError(AssignXError):
    """Input failed validation."""

    http_status = 400
    code = "validation_error"


class InvalidStateTransitionError(AssignXError):
    """Project (or listing) status change not allowed from current state."""

    http_status = 409
    code = "invalid_state_transition"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move from '{current}' to '{target}'",
            current=current,
            target=target,
        )
        self.current = current
        self.target = target


class InsufficientFundsError(AssignXError):
    """Wallet balance does not cover the requested debit."""

    http_status = 402
    code = "insufficient_funds"


class ContentViolationError(AssignXError):
    """
    Content blocked by moderation.

    Carries the moderation outcome so the caller can show the user-facing
    message and any escalating warning.
    """

    http_status = 422
    code = "content_violation"
    commit_on_error = True

    def __init__(
        self,
        message: str,
        violation_types: list[str] | None = None,
        severity: str | None = None,
        warning: str | None = None,
        rate_limited: bool = False,
    ) -> None:
        super().__init__(
            message,
            violation_types=violation_types or [],
            severity=severity,
            warning=warning,
            rate_limited=rate_limited,
        )
        self.violation_types = violation_types or []
        self.severity = severity
        self.warning = warning
        self.rate_limited = rate_limited


class RateLimitExceededError(AssignXError):
    """Too many requests in the current window."""

    http_status = 429
    code = "rate_limited"

    def __init__(self, message: str, retry_after: int = 0) -> None:
        super().__init__(message, retry_after=retry_after)
        self.retry_after = retry_after


class DuplicateRequestError(AssignXError):
    """An identical request is already being processed elsewhere."""

    http_status = 409
    code = "duplicate_request"


class PaymentGatewayError(AssignXError):
    """
    Payment gateway call failed.

    ``status_code`` is the gateway HTTP status, or None for network errors
    and timeouts. Used by the retry helper to classify the failure.
    """

    http_status = 502
    code = "payment_gateway_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, gateway_status=status_code)
        self.status_code = status_code


class SecurityError(AssignXError):
    """Security check failed (bad origin, bad signature, bad key)."""

    http_status = 403
    code = "security_error"
