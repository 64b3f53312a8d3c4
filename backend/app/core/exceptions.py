from typing import Optional, Dict, Any


class VeritasException(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class InvalidInput(VeritasException):
    status_code = 400
    code = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid {field}: {reason}",
            {"field": field, "reason": reason}
        )


class AuthenticationRequired(VeritasException):
    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(reason)


class Forbidden(VeritasException):
    status_code = 403
    code = "FORBIDDEN"


class QuotaExceeded(VeritasException):
    """Daily request ceiling reached. The 403 + code pair routes clients to the upgrade flow."""
    status_code = 403
    code = "QUOTA_EXCEEDED"

    def __init__(self, limit: int, plan: str):
        super().__init__(
            "Daily limit reached. Upgrade to Premium to keep verifying.",
            {"limit": limit, "plan": plan}
        )


class NotFound(VeritasException):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} not found",
            {"resource": resource, "id": resource_id}
        )


class UpstreamUnavailable(VeritasException):
    """The reasoning service did not answer or answered with a transport-level error."""
    status_code = 502
    code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, reason: str, retryable: bool = True):
        super().__init__(
            f"Reasoning service unavailable: {reason}",
            {"reason": reason, "retryable": retryable}
        )


class PersistenceUnavailable(VeritasException):
    """Remote history store unreachable. Only used client side, never shown to the user."""
    code = "PERSISTENCE_UNAVAILABLE"
