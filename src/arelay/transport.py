r"""Single-attempt transport over ``httpx.AsyncClient``.

The transport performs exactly one network attempt and reports exactly
one outcome: a ``Completion``, a ``TransportFailure``, an
``AttemptTimeout`` or an ``InvalidRedirect``. The outcomes are handled
by different policies in the orchestration engine, so the transport
never retries, follows redirects or raises for connection-level
problems.
"""

from __future__ import annotations

__all__ = [
    "AttemptTimeout",
    "Completion",
    "InvalidRedirect",
    "RequestDescriptor",
    "Transport",
    "TransportFailure",
    "TransportOutcome",
    "build_descriptor",
    "encode_body",
    "is_invalid_location_error",
    "is_streaming_body",
]

import asyncio
import json
import logging
from collections.abc import AsyncIterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

import httpx

from arelay.exceptions import RequestSnapshot, UnsupportedBodyError

if TYPE_CHECKING:
    from arelay.context import RequestContext

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}

# Methods that never carry a request body
BODYLESS_METHODS = ("GET", "HEAD")


@dataclass(frozen=True)
class RequestDescriptor:
    """Low-level description of one attempt.

    Attributes:
        method: The HTTP method.
        url: The absolute target URL.
        scheme: ``http`` or ``https``.
        host: The target host.
        port: The target port (scheme default when unspecified).
        path: The path and query string.
        headers: The headers of the attempt.
        timeout: The timeout in seconds, or ``None`` if disabled.
        content: The encoded body, or ``None`` if there is no body.
    """

    method: str
    url: str
    scheme: str
    host: str
    port: int
    path: str
    headers: httpx.Headers
    timeout: float | None
    content: bytes | None


@dataclass(frozen=True)
class Completion:
    """A response that was fully received.

    Attributes:
        status_code: The HTTP status code.
        headers: The response headers (lowercase names).
        text: The decoded response body.
    """

    status_code: int
    headers: dict[str, str]
    text: str


@dataclass(frozen=True)
class TransportFailure:
    """A connection-level failure (DNS, refused, reset, ...)."""

    error: Exception


@dataclass(frozen=True)
class AttemptTimeout:
    """The attempt exceeded its deadline and was aborted."""

    error: Exception


@dataclass(frozen=True)
class InvalidRedirect:
    """A redirect response was received with a malformed ``Location``
    header."""

    error: Exception


TransportOutcome = Union[Completion, TransportFailure, AttemptTimeout, InvalidRedirect]


def is_invalid_location_error(error: httpx.RemoteProtocolError) -> bool:
    """Indicate if httpx rejected the ``Location`` header of a completed
    redirect response.

    ``httpx.AsyncClient.send`` builds the next request of a redirect even
    when redirects are not followed, and raises ``RemoteProtocolError``
    when the location is not a valid URL.
    """
    return "location header" in str(error).lower()


def is_streaming_body(body: Any) -> bool:
    """Indicate if a body exposes a streaming capability.

    File-like objects, iterators (generators included) and async
    iterables are streaming bodies.

    Args:
        body: The body to check.

    Returns:
        ``True`` if the body is a stream.

    Example:
        ```pycon
        >>> import io
        >>> from arelay.transport import is_streaming_body
        >>> is_streaming_body({"key": "value"})
        False
        >>> is_streaming_body(io.BytesIO(b"data"))
        True
        >>> is_streaming_body(iter([b"a", b"b"]))
        True

        ```
    """
    if body is None or isinstance(body, (str, bytes, bytearray)):
        return False
    return (
        callable(getattr(body, "read", None))
        or isinstance(body, Iterator)
        or isinstance(body, AsyncIterable)
    )


def encode_body(method: str, body: Any, headers: httpx.Headers) -> bytes | None:
    """Encode a request body and set the matching headers.

    Structured bodies are serialized to JSON and get a JSON content type
    unless one is already set. ``Content-Length`` is always the byte
    length of the encoded body. Empty ``str`` or ``bytes`` bodies and
    bodies of GET and HEAD requests are not sent.

    Args:
        method: The HTTP method.
        body: The body to encode.
        headers: The headers of the attempt, updated in place.

    Returns:
        The encoded body, or ``None`` if no body is sent.

    Raises:
        TypeError: If a structured body is not JSON serializable.
    """
    if body is None or method in BODYLESS_METHODS:
        return None
    if isinstance(body, (str, bytes, bytearray)) and not body:
        return None
    if isinstance(body, (bytes, bytearray)):
        data = bytes(body)
    elif isinstance(body, str):
        data = body.encode("utf-8")
    else:
        data = json.dumps(body).encode("utf-8")
        if "content-type" not in headers:
            headers["Content-Type"] = "application/json"
    headers["Content-Length"] = str(len(data))
    return data


def build_descriptor(ctx: RequestContext, attempt: int = 0) -> RequestDescriptor:
    """Build the low-level descriptor of an attempt.

    Args:
        ctx: The request context.
        attempt: The attempt number, used in error snapshots.

    Returns:
        The request descriptor.

    Raises:
        UnsupportedBodyError: If the body is a stream or cannot be
            serialized.

    Example:
        ```pycon
        >>> from arelay.context import build_context
        >>> from arelay.core.config import RequestOptions
        >>> from arelay.transport import build_descriptor
        >>> ctx = build_context(
        ...     "POST", "https://api.example.com/items?x=1", RequestOptions(body={"a": 1})
        ... )
        >>> descriptor = build_descriptor(ctx)
        >>> descriptor.port, descriptor.path
        (443, '/items?x=1')
        >>> descriptor.headers["content-type"], descriptor.headers["content-length"]
        ('application/json', '8')

        ```
    """
    body = ctx.options.body
    if is_streaming_body(body):
        raise UnsupportedBodyError(
            "Streaming is not supported for body handling",
            request=RequestSnapshot.from_context(ctx, attempt),
        )
    url = httpx.URL(ctx.url)
    headers = httpx.Headers(ctx.options.headers)
    try:
        content = encode_body(ctx.method, body, headers)
    except TypeError as exc:
        raise UnsupportedBodyError(
            f"Request body is not JSON serializable: {exc}",
            request=RequestSnapshot.from_context(ctx, attempt),
        ) from exc
    return RequestDescriptor(
        method=ctx.method,
        url=ctx.url,
        scheme=url.scheme,
        host=url.host,
        port=url.port or DEFAULT_PORTS[url.scheme],
        path=url.raw_path.decode("ascii"),
        headers=headers,
        timeout=ctx.options.timeout_seconds,
        content=content,
    )


class Transport:
    """Performs single network attempts with an ``httpx.AsyncClient``.

    Args:
        client: The httpx client used to send the requests. Redirects are
            never followed by the client.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from arelay.context import build_context
        >>> from arelay.core.config import RequestOptions
        >>> from arelay.transport import Transport
        >>> async def main():
        ...     mock = httpx.MockTransport(lambda request: httpx.Response(200, text="hi"))
        ...     async with httpx.AsyncClient(transport=mock) as client:
        ...         ctx = build_context("GET", "https://api.example.com", RequestOptions())
        ...         return await Transport(client).send(ctx)
        ...
        >>> asyncio.run(main()).status_code
        200

        ```
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(self, ctx: RequestContext, attempt: int = 0) -> TransportOutcome:
        """Send one attempt and report its outcome.

        Args:
            ctx: The request context.
            attempt: The attempt number (0-indexed).

        Returns:
            Exactly one of ``Completion``, ``TransportFailure``,
            ``AttemptTimeout`` or ``InvalidRedirect``.

        Raises:
            UnsupportedBodyError: If the body cannot be sent. No network
                I/O happens in this case.
        """
        descriptor = build_descriptor(ctx, attempt)
        request = self._client.build_request(
            descriptor.method,
            descriptor.url,
            headers=descriptor.headers,
            content=descriptor.content,
            timeout=httpx.Timeout(descriptor.timeout),
        )
        logger.debug(
            f"Sending {descriptor.method} {descriptor.scheme}://{descriptor.host}:"
            f"{descriptor.port}{descriptor.path} (attempt {attempt + 1})"
        )
        try:
            # The wall-clock deadline covers connecting, sending and reading
            response = await asyncio.wait_for(
                self._client.send(request, follow_redirects=False), descriptor.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.debug(f"{descriptor.method} request to {descriptor.url} timed out")
            return AttemptTimeout(error=exc)
        except httpx.RequestError as exc:
            if isinstance(exc, httpx.RemoteProtocolError) and is_invalid_location_error(exc):
                logger.debug(f"{descriptor.method} request to {descriptor.url}: {exc}")
                return InvalidRedirect(error=exc)
            logger.debug(
                f"{descriptor.method} request to {descriptor.url} encountered "
                f"{type(exc).__name__}: {exc}"
            )
            return TransportFailure(error=exc)
        return Completion(
            status_code=response.status_code,
            headers=dict(response.headers.items()),
            text=response.text,
        )
