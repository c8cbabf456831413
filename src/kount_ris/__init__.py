"""Kount RIS client.

Validate a fraud-risk inquiry or update, send it to the Kount Risk Inquiry
Service with certificate or API key authentication, and parse the reply.
"""

__version__ = "0.1.0"

from .client import KountRisClient
from .config import RisSettings, create_client
from .core.errors import RisError, RisResponseError, RisTransportError, RisValidationError
from .core.models import (
    CartItem,
    Decision,
    RequestMode,
    ValidationError,
)
from .core.request import Inquiry, Request, Update
from .core.response import Response, parse_response
from .core.results import Outcome, ProcessResult
from .core.transports import ApiKeyTransport, CertificateTransport, ResponseStream, Transport
from .core.validator import RisValidator

__all__ = [
    "ApiKeyTransport",
    "CartItem",
    "CertificateTransport",
    "Decision",
    "Inquiry",
    "KountRisClient",
    "Outcome",
    "ProcessResult",
    "Request",
    "RequestMode",
    "Response",
    "ResponseStream",
    "RisError",
    "RisResponseError",
    "RisSettings",
    "RisTransportError",
    "RisValidationError",
    "RisValidator",
    "Transport",
    "Update",
    "ValidationError",
    "create_client",
    "parse_response",
]
