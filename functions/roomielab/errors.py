"""
Error kinds shared by route handlers, clients and the app's exception handlers.

Every expected failure is an ``ApiError`` tagged with an ``ErrorKind``; the
kind carries the HTTP status so handlers never pick status codes by hand.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    VALIDATION = (400, "Validation failed")
    AUTHENTICATION = (401, "Authentication required")
    AUTHORIZATION = (403, "Access denied")
    NOT_FOUND = (404, "Resource not found")
    CONFLICT = (409, "Resource already exists")
    INTERNAL = (500, "Internal Server Error")

    def __init__(self, status_code: int, default_message: str):
        self.status_code = status_code
        self.default_message = default_message


class ApiError(Exception):
    """An operational (expected) error that maps onto an HTTP response."""

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        errors: Optional[list[dict]] = None,
    ):
        self.kind = kind
        self.message = message or kind.default_message
        self.errors = errors
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

