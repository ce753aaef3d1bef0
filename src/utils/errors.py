"""
Exception hierarchy for the customer resolution engine.

Three outcome classes are kept apart:
- validation errors (raised before any matching runs),
- no-match (not an error at all: empty lists or ``None``),
- collaborator failures (the customer store raised or timed out).
"""

import math
from typing import Optional


class ResolverError(Exception):
    """Base class for every error raised by the resolver."""


class InvalidQueryError(ResolverError, ValueError):
    """The query or name is empty or not a string."""


class InvalidIdentifierError(ResolverError, ValueError):
    """A customer or conversation identifier is empty or malformed."""


class InvalidThresholdError(ResolverError, ValueError):
    """A matching threshold is not a finite number in [0, 1]."""


class InvalidUpdateError(ResolverError, ValueError):
    """A customer update carries no fields to apply."""


class CustomerNotFoundError(ResolverError, LookupError):
    """A customer id passed by the caller does not exist in the store."""

    def __init__(self, customer_id: str):
        super().__init__(f"Customer not found: {customer_id}")
        self.customer_id = customer_id


class CustomerStoreError(ResolverError):
    """
    The external customer store failed.

    Always raised ``from`` the original exception so the root cause stays
    attached. Never reinterpreted as "no customer found".
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        message = f"Customer store failed during {operation}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause


def require_text(value, name: str = "query") -> str:
    """
    Returns the stripped text or raises InvalidQueryError.

    Runs before any matching logic so that empty input never reaches the
    scorers or the store.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidQueryError(f"{name} must be a non-empty string")
    return value.strip()


def require_identifier(value, name: str = "customer_id") -> str:
    """Returns the identifier or raises InvalidIdentifierError."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidIdentifierError(f"{name} must be a non-empty string")
    return value.strip()


def require_threshold(value, name: str = "threshold") -> float:
    """Returns the threshold as float or raises InvalidThresholdError."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidThresholdError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise InvalidThresholdError(f"{name} must be a finite number in [0, 1], got {value!r}")
    return float(value)
