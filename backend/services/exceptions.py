"""Typed exception hierarchy for ledger and catalog errors.

Every error a caller can act on is a ``LedgerError`` subclass carrying a
human-readable message, a ``details`` dict for structured responses, and
the HTTP status the API layer maps it to. Only ``ConcurrencyTimeoutError``
is retriable.
"""

from typing import Any


class LedgerError(Exception):
    """Base exception for all caller-facing ledger errors."""

    status_code: int = 400
    retriable: bool = False

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(LedgerError):
    """Malformed or out-of-range input (zero/negative amounts, missing reason)."""

    status_code = 400


class NotFoundError(LedgerError):
    """A referenced entity, reason or principal does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            resource=resource,
            identifier=str(identifier),
        )


class InactiveEntityError(LedgerError):
    """Operation attempted on a closed (depleted) entity."""

    status_code = 409


class EntityDeletedError(LedgerError):
    """Operation attempted on a soft-deleted entity."""

    status_code = 409


class InsufficientBalanceError(LedgerError):
    """Requested egress exceeds the available balance."""

    status_code = 409


class NegativeResultError(LedgerError):
    """An adjustment would leave the balance below zero."""

    status_code = 409


class AlreadyDepletedError(LedgerError):
    """"Consume remainder" requested on a balance that is already zero."""

    status_code = 409


class DuplicateNameError(LedgerError):
    """A uniqueness guard rejected the name/code."""

    status_code = 409


class DependencyExistsError(LedgerError):
    """Delete rejected because live dependents still reference the entity."""

    status_code = 409

    def __init__(self, message: str, blocking_count: int, **details: Any):
        self.blocking_count = blocking_count
        super().__init__(message, blocking_count=blocking_count, **details)


class ConcurrencyTimeoutError(LedgerError):
    """The entity lock could not be acquired within the configured bound.

    Retriable by the caller.
    """

    status_code = 503
    retriable = True


class StorageError(LedgerError):
    """Unexpected persistence failure. The message is safe to show callers."""

    status_code = 500


class AuthenticationError(LedgerError):
    """The credential did not resolve to an active principal."""

    status_code = 401


class PermissionDeniedError(LedgerError):
    """The principal's role does not allow the operation."""

    status_code = 403
