"""RIS client: validates, sends and parses a request in one call.

The client only talks to the Transport protocol. Which authentication scheme
is in use is decided when the client is built, either by one of the
``with_*`` factories or by injecting a transport directly.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from typing import Optional, Union

import httpx

from .core.errors import RisResponseError, RisTransportError, RisValidationError
from .core.models import ValidationError
from .core.request import Request
from .core.response import Response, parse_response
from .core.results import Outcome, ProcessResult
from .core.transports import ApiKeyTransport, CertificateTransport, ResponseStream, Transport
from .core.transports.certificate import Pkcs12Source
from .core.validator import RisValidator

logger = logging.getLogger(__name__)


def combine_errors(errors: list[ValidationError]) -> str:
    """One line per validation error, in the order they were reported."""
    return "\n".join(str(error) for error in errors)


class KountRisClient:
    """Validate, send and parse RIS requests.

    Instances hold no per-call state but are not meant to be shared between
    threads while a call is in flight: use one client per concurrent caller.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        validator: Optional[RisValidator] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.validator = validator or RisValidator()
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def with_certificate(
        cls,
        passphrase: str,
        url: str,
        pkcs12_source: Pkcs12Source,
        *,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "KountRisClient":
        """Build a client that authenticates with a PKCS12 client certificate."""
        log = logger or logging.getLogger(__name__)
        log.debug("RIS endpoint URL [%s]", url)
        transport = CertificateTransport(
            passphrase,
            url,
            pkcs12_source,
            http_transport=http_transport,
            logger=logger,
            **_timeouts(timeout, connect_timeout),
        )
        return cls(transport, logger=logger)

    @classmethod
    def with_api_key(
        cls,
        url: str,
        api_key: Optional[str] = None,
        *,
        api_key_file: Optional[Union[str, os.PathLike]] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "KountRisClient":
        """Build a client that authenticates with an API key string or key file."""
        log = logger or logging.getLogger(__name__)
        log.debug("RIS endpoint URL [%s]", url)
        transport = ApiKeyTransport(
            url,
            api_key,
            api_key_file=api_key_file,
            http_transport=http_transport,
            logger=logger,
            **_timeouts(timeout, connect_timeout),
        )
        return cls(transport, logger=logger)

    def set_transport(self, transport: Transport) -> None:
        self.transport = transport

    def process(self, request: Request) -> Response:
        """Validate, send and parse one RIS request.

        Raises:
            RisValidationError: the request broke one or more field rules;
                nothing was sent. ``errors`` holds the structured list and
                the message holds one line per error.
            RisTransportError: the request could not be delivered, or the
                reply stream could not be closed after parsing. In the latter
                case the parsed response is discarded.
            RisResponseError: the reply was malformed or unreadable.
        """
        errors = self.validate(request)
        if errors:
            message = combine_errors(errors)
            self.logger.warning("RIS request failed validation with %d error(s)", len(errors))
            raise RisValidationError(message, errors)

        stream = self.send(request)
        try:
            response = self.parse(stream)
        except RisResponseError:
            if request.close_on_finish:
                self._close_after_failure(stream)
            raise

        if request.close_on_finish:
            try:
                _close(stream)
            except OSError as exc:
                self.logger.warning("Error closing RIS response stream: %s", exc)
                raise RisTransportError("Error closing RIS response stream", cause=exc) from exc
        return response

    def try_process(self, request: Request) -> ProcessResult:
        """Like process(), but report every outcome as a ProcessResult."""
        try:
            response = self.process(request)
        except RisValidationError as exc:
            return ProcessResult(
                outcome=Outcome.VALIDATION_FAILURE,
                validation_errors=exc.errors,
                error_message=exc.message,
                error=exc,
            )
        except RisTransportError as exc:
            return ProcessResult(outcome=Outcome.TRANSPORT_FAILURE, error_message=exc.message, error=exc)
        except RisResponseError as exc:
            return ProcessResult(outcome=Outcome.RESPONSE_FAILURE, error_message=exc.message, error=exc)
        return ProcessResult(outcome=Outcome.SUCCESS, response=response)

    def validate(self, request: Request) -> list[ValidationError]:
        self.logger.debug("validate()")
        return self.validator.validate(request.get_params(), request.mode)

    def send(self, request: Request) -> Iterable[str]:
        self.logger.debug("send()")
        if self.transport is None:
            raise RisTransportError("No transport was specified, unable to send request.")
        return self.transport.send(request.get_params())

    def parse(self, stream: Iterable[str]) -> Response:
        self.logger.debug("parse()")
        return parse_response(stream)

    def _close_after_failure(self, stream: Iterable[str]) -> None:
        try:
            _close(stream)
        except OSError as exc:
            self.logger.warning("Error closing RIS response stream after a parse failure: %s", exc)

    def close(self) -> None:
        """Release the transport's connection pool, if it keeps one."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "KountRisClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _close(stream: Union[ResponseStream, Iterable[str]]) -> None:
    close = getattr(stream, "close", None)
    if close is not None:
        close()


def _timeouts(timeout: Optional[float], connect_timeout: Optional[float]) -> dict[str, float]:
    options = {}
    if timeout is not None:
        options["timeout"] = timeout
    if connect_timeout is not None:
        options["connect_timeout"] = connect_timeout
    return options
