"""Exceptions raised by the Secrets Proxy client and CLI commands."""
from typing import Optional

from .models import ErrorRes


class TrustStoreError(Exception):
    """The trust-store could not be located or loaded. Not recoverable."""
    pass


class ProxyIOError(OSError):
    """The HTTP exchange with the Secrets Proxy could not be completed."""
    pass


class SecretsProxyException(Exception):
    """
    Failure of a CLI command talking to the Secrets Proxy.

    Carries the originating command name together with either the server
    error (application failure) or the wrapped I/O error (transport failure,
    available as __cause__).
    """

    def __init__(self, command: str, error: Optional[ErrorRes] = None, status_code: Optional[int] = None):
        self.command = command
        self.error = error
        self.status_code = status_code
        super().__init__(self._describe())

    @classmethod
    def from_io_error(cls, command: str, cause: BaseException) -> "SecretsProxyException":
        exc = cls(command)
        exc.__cause__ = cause
        exc.args = (f"Can't connect to the Secrets Proxy while running '{command}': {cause}",)
        return exc

    def _describe(self) -> str:
        if self.error is not None and self.error.message:
            msg = f"'{self.command}' failed: {self.error.message}"
        elif self.status_code is not None:
            msg = f"'{self.command}' failed with HTTP status {self.status_code}"
        else:
            msg = f"'{self.command}' failed"

        if self.status_code in (401, 403):
            msg += "\nYour session may have expired. Run 'secrets login' to get a new token."
        return msg
