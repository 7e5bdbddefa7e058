"""Secure HTTP transport for the Secrets Proxy.

Builds the httpx client used by SecretsClient: trust anchors come only from
the configured trust-store, TLS is pinned to 1.2+ with AEAD ciphers, and
every request gets the JSON/User-Agent headers plus the bearer token when
one is set.
"""
import logging
import ssl
from importlib import resources
from pathlib import Path
from typing import Callable, Optional

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from oneops_secrets import __version__
from .config_loader import SecretsProxyConfig, TrustStoreConfig
from .exceptions import TrustStoreError

logger = logging.getLogger(__name__)

USER_AGENT = f"OneOpsSecretsCLI-{__version__}"
AUTH_HEADER = "X-Authorization"
RESOURCE_PACKAGE = "oneops_secrets.resources"

MODERN_CIPHERS = "ECDHE+AESGCM:ECDHE+CHACHA20:!aNULL:!eNULL:!MD5:!DSS"

# Retries only cover failures to establish the connection
CONNECT_RETRIES = 1

TokenProvider = Callable[[], Optional[str]]


def _read_trust_store(config: TrustStoreConfig) -> bytes:
    logger.info(f"Loading the trust-store: {config.name}")
    if config.file_resource:
        path = Path(config.name).expanduser()
        if not path.is_file():
            raise TrustStoreError(f"Can't find the trust-store for OneOps Secrets: {path}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise TrustStoreError(f"Can't load the trust-store ({config.name}): {e}") from e

    resource = resources.files(RESOURCE_PACKAGE).joinpath(config.name.lstrip("/"))
    if not resource.is_file():
        raise TrustStoreError(f"Can't find the bundled trust-store for OneOps Secrets: {config.name}")
    return resource.read_bytes()


def load_trust_store(config: TrustStoreConfig) -> str:
    """
    Load the trust-store and return its certificates as a PEM bundle.

    Args:
        config: Trust-store location, type (PEM or PKCS12) and password

    Returns:
        PEM encoded trust anchors

    Raises:
        TrustStoreError: If the trust-store is missing, unreadable, of an
            unsupported type or holds no certificates
    """
    data = _read_trust_store(config)
    store_type = config.type.upper()

    try:
        if store_type == "PEM":
            certs = x509.load_pem_x509_certificates(data)
        elif store_type in ("PKCS12", "P12"):
            password = config.password.encode() if config.password else None
            _key, cert, additional = pkcs12.load_key_and_certificates(data, password)
            certs = ([cert] if cert is not None else []) + list(additional)
        else:
            raise TrustStoreError(
                f"Unsupported trust-store type '{config.type}' for {config.name}. Use PEM or PKCS12."
            )
    except ValueError as e:
        raise TrustStoreError(f"Can't load the trust-store ({config.name}): {e}") from e

    if not certs:
        raise TrustStoreError(f"The trust-store ({config.name}) doesn't contain any certificates.")

    logger.debug(f"Loaded {len(certs)} trusted certificate(s) from {config.name}")
    return "".join(c.public_bytes(serialization.Encoding.PEM).decode("ascii") for c in certs)


def create_ssl_context(ca_bundle: str) -> ssl.SSLContext:
    """Create a TLS 1.2+ client context trusting only the given PEM certificates."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.set_ciphers(MODERN_CIPHERS)
    try:
        ctx.load_verify_locations(cadata=ca_bundle)
    except ssl.SSLError as e:
        raise TrustStoreError(f"Invalid trust anchors in trust-store: {e}") from e
    return ctx


def _header_hook(token_provider: TokenProvider) -> Callable[[httpx.Request], None]:
    def add_headers(request: httpx.Request) -> None:
        request.headers["Content-Type"] = "application/json"
        request.headers["User-Agent"] = USER_AGENT
        token = token_provider()
        if token and AUTH_HEADER not in request.headers:
            request.headers[AUTH_HEADER] = f"Bearer {token}"

    return add_headers


def _log_exchange(response: httpx.Response) -> None:
    request = response.request
    logger.info(f"{request.method} {request.url} {response.status_code}")


def build_http_client(
    config: SecretsProxyConfig,
    token_provider: TokenProvider,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Build the httpx client for the Secrets Proxy.

    Args:
        config: Proxy base URL, timeout and trust-store
        token_provider: Returns the current auth token (or None) per request
        transport: Replaces the TLS network transport (tests). The trust-store
            is still loaded first.

    Returns:
        Configured httpx.Client

    Raises:
        TrustStoreError: If the trust-store can't be loaded
    """
    ssl_context = create_ssl_context(load_trust_store(config.trust_store))

    if transport is None:
        transport = httpx.HTTPTransport(verify=ssl_context, retries=CONNECT_RETRIES)

    return httpx.Client(
        base_url=config.base_url,
        transport=transport,
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=False,
        event_hooks={
            "request": [_header_hook(token_provider)],
            "response": [_log_exchange],
        },
    )
