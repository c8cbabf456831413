import io
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from cryptography.x509.oid import NameOID

from kount_ris import CartItem, Inquiry, Update

RIS_URL = "https://risk.test.kount.net"
PKCS12_PASSPHRASE = "merchant-secret"

SAMPLE_REPLY = (
    "VERS=0720\n"
    "MODE=Q\n"
    "MERC=999666\n"
    "SESS=abc123session\n"
    "TRAN=P01J0YFDCG7V\n"
    "AUTO=R\n"
    "SCOR=42\n"
    "OMNISCORE=61.5\n"
    "GEOX=US\n"
    "RULES_TRIGGERED=1\n"
    "RULE_ID_0=1024\n"
    "RULE_DESCRIPTION_0=Review orders over $100\n"
)


class FakeStream(io.StringIO):
    """In-memory reply stream whose close() can be made to fail once."""

    def __init__(self, body: str = "", fail_close: bool = False):
        super().__init__(body)
        self.fail_close = fail_close

    def close(self):
        if self.fail_close:
            self.fail_close = False
            raise OSError("connection reset while closing")
        super().close()


class SpyTransport:
    """Transport double that records every send() call."""

    def __init__(self, body: str = SAMPLE_REPLY, fail_close: bool = False, error: Exception = None):
        self.body = body
        self.fail_close = fail_close
        self.error = error
        self.calls = []
        self.streams = []

    def send(self, params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        stream = FakeStream(self.body, fail_close=self.fail_close)
        self.streams.append(stream)
        return stream


@pytest.fixture
def inquiry() -> Inquiry:
    request = Inquiry()
    request.set_merchant_id(999666)
    request.set_session_id("abc123session")
    request.set_website("DEFAULT")
    request.set_currency("USD")
    request.set_total(12345)
    request.set_payment("CARD", "4111111111111111")
    request.set_ip_address("192.168.0.1")
    request.set_mack(True)
    request.set_authorization_status("A")
    request.set_email("jane.doe@example.com")
    request.set_cart([
        CartItem(product_type="SPORTING_GOODS", name="BALL", description="Soccer ball", quantity=2, price=1500),
    ])
    return request


@pytest.fixture
def update() -> Update:
    request = Update()
    request.set_merchant_id(999666)
    request.set_session_id("abc123session")
    request.set_transaction_id("P01J0YFDCG7V")
    return request


@pytest.fixture
def spy_transport() -> SpyTransport:
    return SpyTransport()


@pytest.fixture(scope="session")
def pkcs12_bytes() -> bytes:
    """A self-signed client certificate bundled as PKCS12."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "ris-test-merchant")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return pkcs12.serialize_key_and_certificates(
        b"ris-test-merchant",
        key,
        cert,
        None,
        BestAvailableEncryption(PKCS12_PASSPHRASE.encode()),
    )


@pytest.fixture
def pkcs12_file(tmp_path, pkcs12_bytes):
    path = tmp_path / "merchant.p12"
    path.write_bytes(pkcs12_bytes)
    return path
