# src/padel_api/core/errors.py

from enum import Enum
from typing import Dict, List, Optional

from fastapi import status


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    STORE = "store"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorKind.STORE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class UserServiceError(Exception):
    """Error raised by the request handlers, rendered as {"message": ...}."""

    def __init__(self, kind: ErrorKind, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        if headers is None and kind is ErrorKind.UNAUTHENTICATED:
            headers = {"WWW-Authenticate": "Bearer"}
        self.headers = headers


class StoreError(Exception):
    """Persistence-layer failure, carrying the raw driver error text."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail


class DuplicateUserError(Exception):
    """A write collided with a unique index on name, email or phone."""

    def __init__(self, fields: List[str]):
        super().__init__(", ".join(fields))
        self.fields = fields
