"""Transport protocol and the shared HTTP plumbing.

A transport POSTs the request parameters form-encoded to the RIS endpoint and
hands back the reply body as a ResponseStream of text lines. Authentication is
the only thing that differs between the concrete transports.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Iterator, Mapping
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from ..errors import RisTransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0


@runtime_checkable
class Transport(Protocol):
    """Anything that can deliver RIS parameters and return the reply lines."""

    def send(self, params: Mapping[str, str]) -> "ResponseStream":
        """Send one request.

        Raises:
            RisTransportError: if the request could not be delivered.
        """
        ...


class ResponseStream:
    """Closable line iterator over a streamed RIS reply body.

    The body is decoded as strict UTF-8: undecodable bytes raise
    UnicodeDecodeError rather than being replaced. Read and close failures
    from httpx surface as OSError so consumers do not depend on httpx.
    Closing releases the HTTP response; the connection pool belongs to the
    transport that produced the stream.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[str]:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        pending = ""
        try:
            for chunk in self._response.iter_bytes():
                pending += decoder.decode(chunk)
                *lines, pending = pending.split("\n")
                for line in lines:
                    yield line.rstrip("\r")
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise OSError(f"Error reading RIS response stream: {exc}") from exc
        pending += decoder.decode(b"", final=True)
        if pending:
            yield pending.rstrip("\r")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._response.close()
        except httpx.HTTPError as exc:
            raise OSError(f"Error closing RIS response stream: {exc}") from exc

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class HttpTransport:
    """Form-encoded POST to a RIS endpoint over httpx.

    Subclasses supply authentication through ``_headers`` and
    ``_client_options``. ``http_transport`` replaces the network layer of the
    underlying httpx.Client (e.g. with httpx.MockTransport in tests).

    One httpx.Client is opened on the first send and reused for every later
    one, so streams the caller leaves open never own a connection pool.
    Call ``close()`` (or use the transport as a context manager) to release it.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        http_transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.url = str(url)
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._http_transport = http_transport
        self._client: Optional[httpx.Client] = None
        self.logger = logger or logging.getLogger(__name__)

    def _headers(self) -> dict[str, str]:
        return {}

    def _client_options(self) -> dict[str, Any]:
        return {}

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=self.timeout,
                transport=self._http_transport,
                **self._client_options(),
            )
        return self._client

    @property
    def is_closed(self) -> bool:
        return self._client is None or self._client.is_closed

    def send(self, params: Mapping[str, str]) -> ResponseStream:
        self.logger.debug("Sending RIS request to %s (%d fields)", self.url, len(params))
        client = self._get_client()
        try:
            request = client.build_request("POST", self.url, data=dict(params), headers=self._headers())
            response = client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise RisTransportError(f"RIS request to {self.url} failed: {exc}", cause=exc) from exc

        if not response.is_success:
            response.close()
            raise RisTransportError(
                f"RIS request to {self.url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        self.logger.debug("RIS replied HTTP %d", response.status_code)
        return ResponseStream(response)

    def close(self) -> None:
        """Close the pooled httpx.Client. A later send opens a new one."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
