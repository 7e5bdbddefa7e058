"""Shared fixtures: generated trust-stores, isolated home directory and a proxy client on a mock transport."""
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from oneops_secrets.proxy.domains import preferences
from oneops_secrets.proxy.domains.client import SecretsClient
from oneops_secrets.proxy.domains.config_loader import SecretsProxyConfig, TrustStoreConfig

BASE_URL = "https://secrets.test/api/"
STORE_PASSWORD = "changeit"


@pytest.fixture(scope="session")
def ca_cert():
    """Self-signed CA certificate used as the only trust anchor."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test Secrets Proxy CA")])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def pem_trust_store(ca_cert, tmp_path_factory) -> Path:
    path = tmp_path_factory.mktemp("truststore") / "truststore.pem"
    path.write_bytes(ca_cert.public_bytes(serialization.Encoding.PEM))
    return path


@pytest.fixture(scope="session")
def p12_trust_store(ca_cert, tmp_path_factory) -> Path:
    path = tmp_path_factory.mktemp("truststore") / "truststore.p12"
    path.write_bytes(
        pkcs12.serialize_key_and_certificates(
            name=b"secrets-ca",
            key=None,
            cert=None,
            cas=[ca_cert],
            encryption_algorithm=serialization.BestAvailableEncryption(STORE_PASSWORD.encode()),
        )
    )
    return path


@pytest.fixture
def proxy_config(pem_trust_store) -> SecretsProxyConfig:
    return SecretsProxyConfig(
        base_url=BASE_URL,
        timeout=5,
        trust_store=TrustStoreConfig(name=str(pem_trust_store), type="PEM"),
    )


@pytest.fixture
def make_client(proxy_config):
    """
    Factory building a SecretsClient whose requests go to `handler`.

    Usage:
        client, requests = make_client(lambda req: httpx.Response(200, json=[]))
    """
    created = []

    def factory(handler):
        requests = []

        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = SecretsClient(proxy_config, transport=httpx.MockTransport(record))
        created.append(client)
        return client, requests

    yield factory

    for client in created:
        client.close()


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("SECRETS_PROXY_URL", raising=False)

    fake_config_dir = fake_home / ".config" / "oneops-secrets"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home
