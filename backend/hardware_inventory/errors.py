# Overview: Error taxonomy shared by the store, the services, and the facade.

"""
Every error surfaced to a caller carries three things:

- code:    stable machine-readable identifier (e.g. DUPLICATE_CODE)
- kind:    one of ErrorKind, which decides how the facade reports it
- message: human-readable text

VALIDATION / NOT_FOUND / STORE_ERROR / INTERNAL travel inside a 200 envelope.
AUTH maps to HTTP 401 and FORBIDDEN to HTTP 403.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    AUTH = "AUTH"
    FORBIDDEN = "FORBIDDEN"
    STORE_ERROR = "STORE_ERROR"
    INTERNAL = "INTERNAL"


class InventoryError(Exception):
    """Base class for every domain-level failure."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code={self.code} kind={self.kind.value} message={self.message!r}>"


class ValidationError(InventoryError):
    """Input rejected before any write."""

    kind = ErrorKind.VALIDATION
    default_code = "VALIDATION_ERROR"


class ConflictError(ValidationError):
    """Business-key collision (duplicate item code)."""

    default_code = "DUPLICATE_CODE"


class NotFoundError(InventoryError):
    kind = ErrorKind.NOT_FOUND
    default_code = "ITEM_NOT_FOUND"


class AuthError(InventoryError):
    """Missing or invalid credentials."""

    kind = ErrorKind.AUTH
    default_code = "AUTH_REQUIRED"


class ForbiddenError(InventoryError):
    """Authenticated caller whose role does not allow the operation."""

    kind = ErrorKind.FORBIDDEN
    default_code = "OPERATION_FORBIDDEN"


class StoreError(InventoryError):
    """
    Database failure. The underlying exception is chained as __cause__.

    retryable is set for operational failures (deadlocks, serialization
    conflicts, dropped connections) that run_with_retry may try again.
    """

    kind = ErrorKind.STORE_ERROR
    default_code = "DB_ERROR"

    def __init__(self, message: str, *, code: str | None = None, retryable: bool = False):
        super().__init__(message, code=code)
        self.retryable = retryable


class InternalError(InventoryError):
    kind = ErrorKind.INTERNAL
    default_code = "INTERNAL_ERROR"
