"""HTTPS transport authenticated with a merchant API key."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

import httpx

from ..errors import RisTransportError
from .base import DEFAULT_CONNECT_TIMEOUT, DEFAULT_TIMEOUT, HttpTransport

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Kount-Api-Key"


def read_api_key(path: Union[str, os.PathLike]) -> str:
    """Load an API key from a UTF-8 file, trimming surrounding whitespace."""
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("API key file (%s) could not be read: %s", path, exc)
        raise RisTransportError(f"API key file ({path}) could not be read: {exc}", cause=exc) from exc


class ApiKeyTransport(HttpTransport):
    """RIS transport that sends the API key in the X-Kount-Api-Key header."""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        *,
        api_key_file: Optional[Union[str, os.PathLike]] = None,
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
        if api_key is None and api_key_file is not None:
            api_key = read_api_key(api_key_file)
        if not api_key:
            raise RisTransportError("No API key was provided")
        self.api_key = api_key

    def _headers(self) -> dict[str, str]:
        return {API_KEY_HEADER: self.api_key}

    def __repr__(self) -> str:
        return f"ApiKeyTransport(url={self.url!r})"
