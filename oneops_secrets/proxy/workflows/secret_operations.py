"""Workflows shared by the CLI commands: session handling, result checks and secret file I/O."""
import base64
import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from ..domains import preferences
from ..domains.client import SecretsClient
from ..domains.exceptions import ProxyIOError, SecretsProxyException
from ..domains.models import TokenRes
from ..domains.results import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOKEN_KEY = "auth_token"
USER_KEY = "auth_user"


def check(command: str, result: Result[T]) -> Optional[T]:
    """
    Return the body of a successful result.

    Raises:
        SecretsProxyException: If the proxy reported a failure
    """
    if not result.success:
        raise SecretsProxyException(command, result.error, result.status_code)
    return result.body


def run(command: str, call: Callable[..., Result[T]], *args: Any, **kwargs: Any) -> Optional[T]:
    """Invoke one client method on behalf of `command` and return the checked body."""
    try:
        result = call(*args, **kwargs)
    except ProxyIOError as e:
        raise SecretsProxyException.from_io_error(command, e) from e
    return check(command, result)


def login(client: SecretsClient, username: str, password: str, domain: str) -> TokenRes:
    """Authenticate and persist the token for later CLI invocations."""
    token = run("login", client.authenticate, username, password, domain)
    preferences.set_preference(TOKEN_KEY, token.access_token, secret=True)
    preferences.set_preference(USER_KEY, f"{domain}\\{username}")
    return token


def restore_session(client: SecretsClient) -> bool:
    """
    Load the token saved by 'secrets login' into the client.

    Returns:
        True if a saved token was found
    """
    token = preferences.get_preference(TOKEN_KEY)
    if token:
        client.set_auth_token(token)
        logger.debug(f"Using saved token for {preferences.get_preference(USER_KEY)}")
        return True
    return False


def logout() -> None:
    preferences.clear_preference(TOKEN_KEY)
    preferences.clear_preference(USER_KEY)


def read_secret_file(path: str) -> str:
    """Read a secret file and return its content base64 encoded."""
    return base64.b64encode(Path(path).expanduser().read_bytes()).decode("ascii")


def decode_secret(content: str) -> bytes:
    return base64.b64decode(content)


def write_secret(data: bytes, output: str) -> Path:
    """Write decoded secret bytes to `output`, readable by the owner only."""
    path = Path(output).expanduser()
    path.touch(mode=0o600, exist_ok=True)
    path.chmod(0o600)
    path.write_bytes(data)
    return path
