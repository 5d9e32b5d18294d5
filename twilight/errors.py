"""
twilight.errors — Domain Exceptions
====================================

Every rejected operation raises one of these.  Each carries a
machine-readable ``reason`` (e.g. ``already_claimed_today``) and the HTTP
status the API layer maps it to.  The bot layer catches
:class:`TwilightError` and shows ``str(exc)`` to the user.
"""

from __future__ import annotations


class TwilightError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_reason: str = "internal_error"

    def __init__(self, message: str, reason: str | None = None, **details) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "reason": self.reason}
        if self.details:
            body.update(self.details)
        return body


class ValidationFailed(TwilightError):
    """Missing/invalid input or a self-referential operation."""

    status_code = 400
    default_reason = "invalid_request"


class RuleViolation(TwilightError):
    """A business rule rejected the operation.  Nothing was mutated."""

    status_code = 400
    default_reason = "rule_violation"


class NotFound(RuleViolation):
    status_code = 404
    default_reason = "not_found"


class InsufficientBalance(RuleViolation):
    """A staged ledger plan debits more than a balance holds."""

    def __init__(self, user_id: int, currency: str) -> None:
        super().__init__(
            f"Insufficient {currency}",
            reason=f"insufficient_{currency}",
        )
        self.user_id = user_id
        self.currency = currency
