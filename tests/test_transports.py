"""
Unit tests for kount_ris.core.transports.

HTTP traffic goes through httpx.MockTransport; no network access is needed.
"""

import io
import ssl
from urllib.parse import parse_qs

import httpx
import pytest

from kount_ris import (
    ApiKeyTransport,
    CertificateTransport,
    RisResponseError,
    RisTransportError,
    Transport,
    parse_response,
)
from kount_ris.core.transports.api_key import API_KEY_HEADER, read_api_key

from conftest import PKCS12_PASSPHRASE, RIS_URL, SAMPLE_REPLY


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replies with a fixed body."""

    def __init__(self, status_code: int = 200, body: str = SAMPLE_REPLY):
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)


def form_of(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}


class TestApiKeyTransport:

    def test_send_posts_form_with_api_key(self):
        handler = RecordingHandler()
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(handler))

        stream = transport.send({"MODE": "Q", "MERC": "999666", "UDF[tier]": "a=b&c"})

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.scheme == "https"
        assert request.url.host == "risk.test.kount.net"
        assert request.headers[API_KEY_HEADER] == "my-key"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert form_of(request) == {"MODE": "Q", "MERC": "999666", "UDF[tier]": "a=b&c"}
        assert parse_response(stream).score == 42
        stream.close()

    def test_satisfies_transport_protocol(self):
        assert isinstance(ApiKeyTransport(RIS_URL, "my-key"), Transport)

    def test_key_file_is_trimmed(self, tmp_path):
        key_file = tmp_path / "api.key"
        key_file.write_text("  secret-key\n\n", encoding="utf-8")

        transport = ApiKeyTransport(RIS_URL, api_key_file=key_file)

        assert transport.api_key == "secret-key"

    def test_explicit_key_wins_over_file(self, tmp_path):
        transport = ApiKeyTransport(RIS_URL, "direct", api_key_file=tmp_path / "missing.key")

        assert transport.api_key == "direct"

    def test_unreadable_key_file(self, tmp_path):
        with pytest.raises(RisTransportError) as exc_info:
            read_api_key(tmp_path / "missing.key")

        assert isinstance(exc_info.value.cause, OSError)

    def test_missing_key(self):
        with pytest.raises(RisTransportError):
            ApiKeyTransport(RIS_URL)

    def test_repr_hides_key(self):
        assert "my-key" not in repr(ApiKeyTransport(RIS_URL, "my-key"))

    def test_non_success_status(self):
        handler = RecordingHandler(status_code=401, body="unauthorized")
        transport = ApiKeyTransport(RIS_URL, "bad-key", http_transport=httpx.MockTransport(handler))

        with pytest.raises(RisTransportError) as exc_info:
            transport.send({"MODE": "Q"})

        assert exc_info.value.status_code == 401

    def test_connection_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(refuse))

        with pytest.raises(RisTransportError) as exc_info:
            transport.send({"MODE": "Q"})

        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert exc_info.value.__cause__ is exc_info.value.cause

    def test_timeouts(self):
        transport = ApiKeyTransport(RIS_URL, "my-key", timeout=5.0, connect_timeout=2.0)

        assert transport.timeout == httpx.Timeout(5.0, connect=2.0)


class TestResponseStream:

    def test_close(self):
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(RecordingHandler()))
        stream = transport.send({"MODE": "Q"})

        assert stream.closed is False
        assert stream.status_code == 200
        stream.close()
        stream.close()
        assert stream.closed is True

    def test_context_manager(self):
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(RecordingHandler()))

        with transport.send({"MODE": "Q"}) as stream:
            lines = list(stream)

        assert stream.closed is True
        assert lines[0] == "VERS=0720"

    def test_crlf_and_unterminated_last_line(self):
        reply = httpx.MockTransport(lambda request: httpx.Response(200, content=b"VERS=0720\r\nSCOR=42\r\n\r\nAUTO=A"))
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=reply)

        with transport.send({"MODE": "Q"}) as stream:
            lines = list(stream)

        assert lines == ["VERS=0720", "SCOR=42", "", "AUTO=A"]

    def test_character_split_across_chunks(self):
        chunks = [b"NAME=Ren", b"\xc3", b"\xa9e\nSCOR=42\n"]
        reply = httpx.MockTransport(lambda request: httpx.Response(200, content=iter(chunks)))
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=reply)

        with transport.send({"MODE": "Q"}) as stream:
            lines = list(stream)

        assert lines == ["NAME=Renée", "SCOR=42"]

    def test_invalid_utf8_is_not_replaced(self):
        reply = httpx.MockTransport(lambda request: httpx.Response(200, content=b"A=\xff\xfe\n"))
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=reply)

        with transport.send({"MODE": "Q"}) as stream:
            with pytest.raises(UnicodeDecodeError):
                list(stream)

    def test_truncated_utf8_at_end_of_body(self):
        reply = httpx.MockTransport(lambda request: httpx.Response(200, content=b"NAME=Ren\xc3"))
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=reply)

        with transport.send({"MODE": "Q"}) as stream:
            with pytest.raises(RisResponseError) as exc_info:
                parse_response(stream)

        assert isinstance(exc_info.value.cause, UnicodeDecodeError)


class TestConnectionPool:
    """One httpx.Client per transport, released by close()."""

    def test_client_is_reused_across_sends(self):
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(RecordingHandler()))

        assert transport.is_closed is True
        with transport.send({"MODE": "Q"}) as first:
            list(first)
        pooled = transport._client
        with transport.send({"MODE": "Q"}) as second:
            list(second)

        assert transport._client is pooled
        assert transport.is_closed is False

    def test_open_stream_does_not_keep_pool_alive(self):
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(RecordingHandler()))
        stream = transport.send({"MODE": "Q"})

        transport.close()

        assert transport.is_closed is True
        assert stream.closed is False
        stream.close()

    def test_send_after_close_opens_new_client(self):
        handler = RecordingHandler()
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(handler))
        transport.send({"MODE": "Q"}).close()
        transport.close()

        with transport.send({"MODE": "Q"}) as stream:
            assert parse_response(stream).score == 42

        assert len(handler.requests) == 2
        assert transport.is_closed is False
        transport.close()

    def test_context_manager(self):
        with ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(RecordingHandler())) as transport:
            transport.send({"MODE": "Q"}).close()
            assert transport.is_closed is False

        assert transport.is_closed is True

    def test_failed_send_keeps_pool(self):
        handler = RecordingHandler(status_code=503, body="unavailable")
        transport = ApiKeyTransport(RIS_URL, "my-key", http_transport=httpx.MockTransport(handler))

        for _ in range(2):
            with pytest.raises(RisTransportError):
                transport.send({"MODE": "Q"})

        assert transport.is_closed is False
        transport.close()


class TestCertificateTransport:

    def test_loads_from_path(self, pkcs12_file):
        transport = CertificateTransport(PKCS12_PASSPHRASE, RIS_URL, pkcs12_file)

        assert isinstance(transport.ssl_context, ssl.SSLContext)

    def test_loads_from_string_path(self, pkcs12_file):
        transport = CertificateTransport(PKCS12_PASSPHRASE, RIS_URL, str(pkcs12_file))

        assert isinstance(transport.ssl_context, ssl.SSLContext)

    def test_loads_from_stream(self, pkcs12_bytes):
        transport = CertificateTransport(PKCS12_PASSPHRASE, RIS_URL, io.BytesIO(pkcs12_bytes))

        assert isinstance(transport.ssl_context, ssl.SSLContext)

    def test_wrong_passphrase(self, pkcs12_bytes):
        with pytest.raises(RisTransportError) as exc_info:
            CertificateTransport("wrong", RIS_URL, pkcs12_bytes)

        assert exc_info.value.cause is not None

    def test_missing_file(self, tmp_path):
        with pytest.raises(RisTransportError) as exc_info:
            CertificateTransport(PKCS12_PASSPHRASE, RIS_URL, tmp_path / "missing.p12")

        assert isinstance(exc_info.value.cause, OSError)

    def test_send(self, pkcs12_bytes):
        handler = RecordingHandler()
        transport = CertificateTransport(
            PKCS12_PASSPHRASE,
            RIS_URL,
            pkcs12_bytes,
            http_transport=httpx.MockTransport(handler),
        )

        with transport.send({"MODE": "U", "TRAN": "P01J0YFDCG7V"}) as stream:
            response = parse_response(stream)

        assert API_KEY_HEADER not in handler.requests[0].headers
        assert form_of(handler.requests[0]) == {"MODE": "U", "TRAN": "P01J0YFDCG7V"}
        assert response.transaction_id == "P01J0YFDCG7V"
