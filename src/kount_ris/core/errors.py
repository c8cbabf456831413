"""RIS client exceptions.

Three disjoint failure domains, all derived from RisError:

- RisValidationError: the request failed client-side validation, nothing was sent
- RisTransportError: network, TLS, authentication, HTTP status or credential failure
- RisResponseError: the reply stream was malformed or could not be read
"""

from __future__ import annotations

from typing import Optional

from .models import ValidationError


class RisError(Exception):
    """Base class for all RIS client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RisValidationError(RisError):
    """Raised before any network activity when a request breaks field rules."""

    def __init__(self, message: str, errors: list[ValidationError]):
        super().__init__(message)
        self.errors = list(errors)


class RisTransportError(RisError):
    """Raised when a request could not be delivered or its stream released."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code


class RisResponseError(RisError):
    """Raised when the RIS reply cannot be parsed."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.line_number = line_number
        self.line = line
        self.cause = cause
