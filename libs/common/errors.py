"""Application error taxonomy.

Operations raise these; ``libs.common.error_handler`` turns them into HTTP
responses. Routers do not catch them.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base exception for domain errors."""

    status_code: int = 500
    code: str = "app_error"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    """Bad caller input; rejected before any write."""

    status_code = 400
    code = "validation_error"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    """Duplicate of an already-applied operation."""

    status_code = 409
    code = "conflict"


class PolicyViolation(AppError):
    """Input is well-formed but a business rule forbids the operation."""

    status_code = 422
    code = "policy_violation"


class PersistenceError(AppError):
    """Storage failure. The message shown to callers is generic."""

    status_code = 500
    code = "persistence_error"


# ---------------------------------------------------------------------------
# Domain-specific errors
# ---------------------------------------------------------------------------


class InvalidAmount(ValidationError):
    code = "invalid_amount"


class MissingPayoutInfo(ValidationError):
    code = "missing_payout_info"


class InvalidReference(NotFoundError):
    code = "invalid_reference"


class BelowMinimum(PolicyViolation):
    code = "below_minimum"


class InsufficientPoints(PolicyViolation):
    code = "insufficient_points"


class NoCommissionPolicy(PolicyViolation):
    code = "no_commission_policy"
