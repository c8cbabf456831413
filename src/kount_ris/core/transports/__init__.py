"""RIS transports: the Transport protocol and its certificate and API key variants."""

from .api_key import ApiKeyTransport
from .base import HttpTransport, ResponseStream, Transport
from .certificate import CertificateTransport

__all__ = [
    "ApiKeyTransport",
    "CertificateTransport",
    "HttpTransport",
    "ResponseStream",
    "Transport",
]
