"""Mutual-TLS transport authenticated with a PKCS12 client certificate."""

from __future__ import annotations

import logging
import os
import ssl
import tempfile
from typing import Any, BinaryIO, Optional, Union

import httpx
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    NoEncryption,
    PrivateFormat,
    pkcs12,
)

from ..errors import RisTransportError
from .base import DEFAULT_CONNECT_TIMEOUT, DEFAULT_TIMEOUT, HttpTransport

logger = logging.getLogger(__name__)

Pkcs12Source = Union[str, os.PathLike, BinaryIO, bytes]


def read_pkcs12(source: Pkcs12Source) -> bytes:
    """Return the raw PKCS12 bytes from a path, an open binary stream or bytes."""
    if isinstance(source, bytes):
        return source
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as fh:
            return fh.read()
    return source.read()


def build_ssl_context(p12_data: bytes, passphrase: str) -> ssl.SSLContext:
    """Unlock a PKCS12 container and load its key and chain into an SSLContext.

    The standard library only loads client certificates from files, so the
    key and chain are written to a short-lived PEM file that is removed before
    returning. The key is re-encrypted with the pass phrase when there is one.
    """
    password = passphrase.encode("utf-8") if passphrase else None
    key, cert, additional = pkcs12.load_key_and_certificates(p12_data, password)
    if key is None or cert is None:
        raise ValueError("PKCS12 container does not hold a private key and certificate")

    encryption = BestAvailableEncryption(password) if password else NoEncryption()
    pem = key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, encryption)
    pem += cert.public_bytes(Encoding.PEM)
    for extra in additional or []:
        pem += extra.public_bytes(Encoding.PEM)

    fd, path = tempfile.mkstemp(suffix=".pem")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(pem)
        context = ssl.create_default_context()
        context.load_cert_chain(path, password=password)
    finally:
        os.unlink(path)
    return context


class CertificateTransport(HttpTransport):
    """RIS transport that authenticates with a client certificate.

    The PKCS12 container is read and unlocked on construction, so a missing
    file or a wrong pass phrase fails early with RisTransportError.
    """

    def __init__(
        self,
        passphrase: str,
        url: str,
        pkcs12_source: Pkcs12Source,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        http_transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(
            url,
            timeout=timeout,
            connect_timeout=connect_timeout,
            http_transport=http_transport,
            logger=logger,
        )
        try:
            self.ssl_context = build_ssl_context(read_pkcs12(pkcs12_source), passphrase)
        except (OSError, TypeError, ValueError) as exc:
            self.logger.error("Unable to load PKCS12 client certificate: %s", exc)
            raise RisTransportError(f"Unable to load PKCS12 client certificate: {exc}", cause=exc) from exc

    def _client_options(self) -> dict[str, Any]:
        return {"verify": self.ssl_context}
