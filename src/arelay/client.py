r"""Asynchronous context manager client.

The ``AsyncRelayClient`` owns an ``httpx.AsyncClient`` (or borrows the
one it is given), the client-level defaults and the middleware registry.
Every call snapshots the middleware registry, resolves its options once
and hands them to the orchestration engine.
"""

from __future__ import annotations

__all__ = ["AsyncRelayClient"]

from typing import TYPE_CHECKING, Any

import httpx

from arelay.core.config import ClientConfig
from arelay.engine import RequestEngine
from arelay.exceptions import ConfigurationError, RequestSnapshot
from arelay.middleware import MiddlewareRegistry
from arelay.transport import Transport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType
    from typing import Self

    from arelay.core.config import RequestOptions
    from arelay.middleware import ErrorObserver, Handler, Integration
    from arelay.response import Response


class AsyncRelayClient:
    r"""Asynchronous HTTP client with retries, redirects and middleware.

    Args:
        config: Optional ClientConfig instance with the client defaults.
            If ``None``, a default ClientConfig is used.
        client: Optional ``httpx.AsyncClient`` to send the requests with.
            A borrowed client is never closed by this class, and can be
            used without entering the context manager.
        **defaults: Overrides of the ClientConfig fields
            (``default_headers``, ``max_redirects``, ``retries``,
            ``timeout``, ``base_retry_delay``, ``max_retry_delay``,
            ``on_middleware_error``).

    Raises:
        ConfigurationError: If a default has the wrong type.

    Example:
        ```pycon
        >>> import asyncio
        >>> from arelay import AsyncRelayClient
        >>> async def main():  # doctest: +SKIP
        ...     async with AsyncRelayClient(retries=2, timeout=5000) as client:
        ...         response = await client.get(
        ...             "https://api.example.com/items", params={"page": 2}
        ...         )
        ...         return response.body
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        **defaults: Any,
    ) -> None:
        base = config if config is not None else ClientConfig()
        try:
            self._config = base.merge(**defaults)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid client default: {exc}") from exc
        self._middleware = MiddlewareRegistry(observer=self._config.on_middleware_error)
        self._client = client
        self._owns_client = client is None

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def __aenter__(self) -> Self:
        """Enter the async context manager and create the underlying
        httpx client if none was given.

        Returns:
            The AsyncRelayClient instance for making requests.
        """
        if self._owns_client:
            self._client = httpx.AsyncClient(follow_redirects=False)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the async context manager and close the owned httpx
        client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure the client is available for use.

        Returns:
            The httpx.AsyncClient instance.

        Raises:
            RuntimeError: If the client is used outside of a context manager.
        """
        if self._client is None:
            msg = (
                "AsyncRelayClient must be used within an async context manager "
                "(async with statement)"
            )
            raise RuntimeError(msg)
        return self._client

    def use(self, handler: Handler, phase: str = "before") -> None:
        """Register a middleware handler.

        Args:
            handler: The handler, receiving a ``MiddlewareInput`` and
                returning ``Continue`` or ``Produce``.
            phase: ``"before"`` or ``"after"``.

        Raises:
            ConfigurationError: If the handler or the phase is invalid.
        """
        self._middleware.use(handler, phase)

    def use_integration(self, integration: Integration | Mapping[str, Handler]) -> None:
        """Register the before and after handlers of an integration."""
        self._middleware.use_integration(integration)

    def on_middleware_error(self, observer: ErrorObserver) -> None:
        """Set the observer notified with ``(error, ctx, phase)`` when a
        middleware handler fails.

        The observer only applies to calls started after it is set.
        """
        self._middleware.on_middleware_error(observer)

    def _resolve(self, method: str, url: str, options: dict[str, Any]) -> RequestOptions:
        try:
            return self._config.resolve(**options)
        except ConfigurationError as exc:
            raise ConfigurationError(
                exc.message,
                request=RequestSnapshot(method=method.upper(), url=url, options=None, attempt=0),
            ) from exc
        except TypeError as exc:
            raise ConfigurationError(
                f"Invalid request option: {exc}",
                request=RequestSnapshot(method=method.upper(), url=url, options=None, attempt=0),
            ) from exc

    async def request(self, method: str, url: str, **options: Any) -> Response:
        r"""Send an HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH, HEAD, OPTIONS, etc.).
            url: The absolute URL to send the request to.
            **options: Per-call options overriding the client defaults:
                ``headers``, ``body``, ``timeout``, ``redirects``,
                ``retries``, ``base_retry_delay``, ``max_retry_delay``
                and ``params``.

        Returns:
            The final response.

        Raises:
            RuntimeError: If called outside of a context manager.
            ConfigurationError: If an option or the URL is invalid.
            MiddlewareContractError: If a handler returns a malformed value.
            UnsupportedBodyError: If the body is a stream.
            TransportError: If connection failures exhaust the retries, or a
                redirect carries a malformed Location header.
            RequestTimeoutError: If an attempt times out.
            HTTPError: If the final status is a client or server error.
        """
        client = self._ensure_client()
        resolved = self._resolve(method, url, options)
        engine = RequestEngine(Transport(client), self._middleware.snapshot())
        return await engine.execute(method, url, resolved)

    async def get(self, url: str, **options: Any) -> Response:
        """Send an HTTP GET request (see ``request``)."""
        return await self.request("GET", url, **options)

    async def post(self, url: str, **options: Any) -> Response:
        """Send an HTTP POST request (see ``request``)."""
        return await self.request("POST", url, **options)

    async def put(self, url: str, **options: Any) -> Response:
        """Send an HTTP PUT request (see ``request``)."""
        return await self.request("PUT", url, **options)

    async def delete(self, url: str, **options: Any) -> Response:
        """Send an HTTP DELETE request (see ``request``)."""
        return await self.request("DELETE", url, **options)

    async def head(self, url: str, **options: Any) -> Response:
        """Send an HTTP HEAD request (see ``request``)."""
        return await self.request("HEAD", url, **options)

    async def patch(self, url: str, **options: Any) -> Response:
        """Send an HTTP PATCH request (see ``request``)."""
        return await self.request("PATCH", url, **options)

    async def options(self, url: str, **options: Any) -> Response:
        """Send an HTTP OPTIONS request (see ``request``)."""
        return await self.request("OPTIONS", url, **options)
