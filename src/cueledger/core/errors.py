"""
Ledger Error Taxonomy

Every failure of a ledger operation is raised as a LedgerError subclass.
None of them are fatal: the operation that raised performed no partial write.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgument(LedgerError):
    """Bad numeric or enum input."""
    status_code = 400


class InvalidAmount(InvalidArgument):
    """Amount is not a usable non-negative number for this operation."""


class MissingCustomerName(InvalidArgument):
    """Partial and credit payments must name the customer."""


class StationUnavailable(LedgerError):
    """Station is under maintenance or already has an active session."""
    status_code = 409


class StationNotFound(LedgerError):
    status_code = 404


class SessionNotFound(LedgerError):
    status_code = 404


class SessionAlreadyClosed(LedgerError):
    """Session is no longer pending."""
    status_code = 409


class CreditNotFound(LedgerError):
    status_code = 404


class AlreadyPaid(LedgerError):
    """Credit has already been settled."""
    status_code = 409


class ConcurrentUpdate(LedgerError):
    """Record changed between read and write (version mismatch)."""
    status_code = 409


class StorageUnavailable(LedgerError):
    """The storage backend failed to read or write."""
    status_code = 503
