r"""Exceptions raised by the request orchestration engine.

Every call-level failure carries a snapshot of the request that failed
(method, URL, resolved options and attempt number). Only ``HTTPError``
also carries the final normalized response.
"""

from __future__ import annotations

__all__ = [
    "ArelayError",
    "ConfigurationError",
    "HTTPError",
    "MiddlewareContractError",
    "RequestSnapshot",
    "RequestTimeoutError",
    "TransportError",
    "UnsupportedBodyError",
]

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arelay.context import RequestContext
    from arelay.core.config import RequestOptions
    from arelay.response import Response


@dataclass(frozen=True)
class RequestSnapshot:
    """Description of the request attached to an error.

    Attributes:
        method: The HTTP method (e.g., "GET", "POST").
        url: The absolute URL of the failed attempt.
        options: The resolved options of the call, or ``None`` if they
            could not be resolved.
        attempt: The attempt number (0-indexed) that failed.
    """

    method: str
    url: str
    options: RequestOptions | None
    attempt: int

    @classmethod
    def from_context(cls, ctx: RequestContext, attempt: int) -> RequestSnapshot:
        """Create a snapshot from a request context.

        Args:
            ctx: The context of the failed attempt.
            attempt: The attempt number (0-indexed).

        Returns:
            The request snapshot.
        """
        return cls(method=ctx.method, url=ctx.url, options=ctx.options, attempt=attempt)


class ArelayError(Exception):
    """Base class of all the errors raised by arelay.

    Args:
        message: Human-readable error message.
        request: Optional snapshot of the request that failed.
        response: Optional final response (HTTP status failures only).

    Example:
        ```pycon
        >>> from arelay.exceptions import ArelayError, RequestSnapshot
        >>> snapshot = RequestSnapshot(
        ...     method="GET", url="https://api.example.com", options=None, attempt=0
        ... )
        >>> error = ArelayError("something went wrong", request=snapshot)
        >>> error.request.method
        'GET'
        >>> error.response is None
        True

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        request: RequestSnapshot | None = None,
        response: Response | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.request = request
        self.response = response

    @property
    def method(self) -> str | None:
        return None if self.request is None else self.request.method

    @property
    def url(self) -> str | None:
        return None if self.request is None else self.request.url


class ConfigurationError(ArelayError, ValueError):
    """Raised when client defaults or per-call options are invalid."""


class MiddlewareContractError(ArelayError, TypeError):
    """Raised when a middleware handler returns a malformed value."""


class UnsupportedBodyError(ArelayError, TypeError):
    """Raised when a streaming body is supplied.

    No network I/O happens before this error is raised.
    """


class TransportError(ArelayError):
    """Raised when a connection-level failure exhausts the retry
    budget, or when a redirect response carries a ``Location`` header
    that is not a valid URL."""


class RequestTimeoutError(ArelayError, TimeoutError):
    """Raised when an attempt exceeds its deadline.

    Timeouts are terminal and never retried.
    """


class HTTPError(ArelayError):
    """Raised when the final response has a non-success status.

    Args:
        message: Human-readable error message.
        request: Snapshot of the request that failed.
        response: The last normalized response.

    Example:
        ```pycon
        >>> from arelay.exceptions import HTTPError, RequestSnapshot
        >>> from arelay.response import Response
        >>> error = HTTPError(
        ...     "GET request to https://api.example.com failed with status 503",
        ...     request=RequestSnapshot(
        ...         method="GET", url="https://api.example.com", options=None, attempt=1
        ...     ),
        ...     response=Response(status_code=503),
        ... )
        >>> error.status_code
        503
        >>> error.request.attempt
        1

        ```
    """

    def __init__(self, message: str, *, request: RequestSnapshot, response: Response) -> None:
        super().__init__(message, request=request, response=response)
        self.status_code = response.status_code
