"""Uniform result envelope for Secrets Proxy calls."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import httpx

from .exceptions import ProxyIOError
from .models import ErrorRes

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Max characters of an unparseable error body echoed to the log
_RAW_BODY_LOG_LIMIT = 200


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of one proxy call.

    body is only set when success is True, error only when it is False.
    A failed result may still have error=None when the server did not send
    a structured error body.
    """
    body: Optional[T]
    error: Optional[ErrorRes]
    status_code: int
    success: bool


def map_response(response: httpx.Response, parser: Optional[Callable[[Any], T]] = None) -> Result[T]:
    """
    Convert a completed HTTP exchange into a Result.

    Args:
        response: The httpx response (already read)
        parser: Converts the decoded JSON body into T. None for calls
            without a response body.

    Returns:
        Result with status code and success flag always set

    Raises:
        ProxyIOError: If a 2xx body is empty or can't be decoded as T
    """
    if response.is_success:
        body = None
        if parser is not None:
            if not response.content:
                raise ProxyIOError(
                    f"Empty response body from {response.request.method} {response.request.url}"
                )
            try:
                body = parser(response.json())
            except (ValueError, KeyError, TypeError, OverflowError) as e:
                raise ProxyIOError(
                    f"Invalid response body from {response.request.method} {response.request.url}: {e}"
                ) from e
        return Result(body=body, error=None, status_code=response.status_code, success=True)

    return Result(
        body=None,
        error=_parse_error(response),
        status_code=response.status_code,
        success=False,
    )


def _parse_error(response: httpx.Response) -> Optional[ErrorRes]:
    if not response.content:
        return None
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        try:
            return ErrorRes.from_dict(data)
        except (ValueError, TypeError, OverflowError) as e:
            logger.debug(f"Ignoring malformed error fields: {e}")

    logger.warning(
        f"HTTP {response.status_code} without a structured error body: "
        f"{response.text[:_RAW_BODY_LOG_LIMIT]!r}"
    )
    return None
