"""
Error taxonomy shared by the session core and the HTTP layer.

The core raises AccountError with an explicit kind; api.errors turns it into
the uniform JSON error envelope with the kind-derived status.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_REUSE = "TOKEN_REUSE"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"

    @property
    def status(self) -> int:
        return DEFAULT_STATUS[self]


DEFAULT_STATUS = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.TOKEN_REUSE: 401,
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


class AccountError(Exception):
    """An expected failure of an account operation."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status or kind.status
        self.details = details

    def __repr__(self) -> str:
        return f"AccountError({self.kind.value}, {self.message!r}, status={self.status})"
