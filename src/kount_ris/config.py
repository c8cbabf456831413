"""Environment-driven client configuration.

    KOUNT_RIS_URL              RIS endpoint (defaults to the Kount test server)
    KOUNT_API_KEY              API key string
    KOUNT_API_KEY_FILE         path to a file holding the API key
    KOUNT_PKCS12_FILE          path to a PKCS12 client certificate
    KOUNT_PKCS12_PASSPHRASE    pass phrase for the PKCS12 file
    KOUNT_RIS_TIMEOUT          read timeout in seconds
    KOUNT_RIS_CONNECT_TIMEOUT  connect timeout in seconds
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

from .client import KountRisClient
from .core.transports.base import DEFAULT_CONNECT_TIMEOUT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_RIS_URL = "https://risk.test.kount.net"


class RisSettings(BaseModel):
    """Connection settings for a KountRisClient."""

    url: str = DEFAULT_RIS_URL
    api_key: Optional[str] = None
    api_key_file: Optional[str] = None
    pkcs12_file: Optional[str] = None
    pkcs12_passphrase: str = ""
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    connect_timeout: float = Field(DEFAULT_CONNECT_TIMEOUT, gt=0)

    @classmethod
    def from_env(cls) -> "RisSettings":
        return cls(
            url=os.environ.get("KOUNT_RIS_URL", DEFAULT_RIS_URL),
            api_key=os.environ.get("KOUNT_API_KEY") or None,
            api_key_file=os.environ.get("KOUNT_API_KEY_FILE") or None,
            pkcs12_file=os.environ.get("KOUNT_PKCS12_FILE") or None,
            pkcs12_passphrase=os.environ.get("KOUNT_PKCS12_PASSPHRASE", ""),
            timeout=float(os.environ.get("KOUNT_RIS_TIMEOUT", str(DEFAULT_TIMEOUT))),
            connect_timeout=float(os.environ.get("KOUNT_RIS_CONNECT_TIMEOUT", str(DEFAULT_CONNECT_TIMEOUT))),
        )


def create_client(
    settings: Optional[RisSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> KountRisClient:
    """Build a client from settings, preferring API key auth over certificates."""
    settings = settings or RisSettings.from_env()
    if settings.api_key or settings.api_key_file:
        return KountRisClient.with_api_key(
            settings.url,
            settings.api_key,
            api_key_file=settings.api_key_file,
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
            logger=logger,
        )
    if settings.pkcs12_file:
        return KountRisClient.with_certificate(
            settings.pkcs12_passphrase,
            settings.url,
            settings.pkcs12_file,
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
            logger=logger,
        )
    raise ValueError(
        "RIS credentials are required: set KOUNT_API_KEY or KOUNT_API_KEY_FILE, "
        "or KOUNT_PKCS12_FILE and KOUNT_PKCS12_PASSPHRASE"
    )
