# Overview: Error taxonomy shared by services and routes.

"""
Domain errors raised by the service layer.

Routes translate these into HTTP responses; services never build responses
themselves. Every error carries a human-readable message and an optional
``details`` dict that is returned to the caller verbatim.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every recoverable, caller-facing failure."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self)}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError, ValueError):
    """400-level input problem (missing or malformed field)."""


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict."""

    status_code = 409


class UnauthenticatedError(LedgerError):
    status_code = 401


class ForbiddenError(LedgerError):
    """Caller is authenticated but does not own the target store."""

    status_code = 403


class NotFoundError(LedgerError):
    status_code = 404


class DuplicateEntryError(ConflictError):
    """A sold record already exists for (product, category, date)."""


class InsufficientStockError(ConflictError):
    """Requested units exceed what is left on the shelf."""


class InvalidDateError(ValidationError):
    """Sale date precedes the date the product entered inventory."""


class NonPositiveQuantityError(ValidationError):
    pass
