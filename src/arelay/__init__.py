r"""arelay - Asynchronous HTTP client with retries, redirects and
middleware.

This package layers retry, redirect-following and a two-phase
(before/after) middleware pipeline over a single-attempt transport built
on the httpx library.

Key Features:
    - Retries with exponential backoff and +/-20% jitter on connection
      failures and server errors (status >= 500)
    - Redirect following with a budget shared across the whole call
    - Before/after middleware with short-circuiting and an error observer
    - JSON request bodies and JSON response parsing with raw-text fallback
    - Per-attempt timeouts that are never retried
    - Errors carrying a snapshot of the failed request

Example:
    ```pycon
    >>> import asyncio
    >>> import dataclasses
    >>> from arelay import AsyncRelayClient, Continue
    >>> async def add_token(data):
    ...     headers = data.ctx.options.headers.copy()
    ...     headers["Authorization"] = "Bearer token"
    ...     options = dataclasses.replace(data.ctx.options, headers=headers)
    ...     return Continue(data.ctx.replace(options=options))
    ...
    >>> async def main():  # doctest: +SKIP
    ...     async with AsyncRelayClient(retries=3) as client:
    ...         client.use(add_token, "before")
    ...         return await client.get("https://api.example.com/data")
    ...
    >>> asyncio.run(main())  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = [
    "ArelayError",
    "AsyncRelayClient",
    "ClientConfig",
    "ConfigurationError",
    "Continue",
    "HTTPError",
    "Integration",
    "MiddlewareContractError",
    "MiddlewareInput",
    "Produce",
    "RequestContext",
    "RequestSnapshot",
    "RequestTimeoutError",
    "Response",
    "TransportError",
    "UnsupportedBodyError",
    "__version__",
    "delete_async",
    "get_async",
    "head_async",
    "options_async",
    "patch_async",
    "post_async",
    "put_async",
    "request_async",
]

from importlib.metadata import PackageNotFoundError, version

from arelay.client import AsyncRelayClient
from arelay.context import RequestContext
from arelay.core.config import ClientConfig
from arelay.exceptions import (
    ArelayError,
    ConfigurationError,
    HTTPError,
    MiddlewareContractError,
    RequestSnapshot,
    RequestTimeoutError,
    TransportError,
    UnsupportedBodyError,
)
from arelay.middleware import Continue, Integration, MiddlewareInput, Produce
from arelay.request_async import (
    delete_async,
    get_async,
    head_async,
    options_async,
    patch_async,
    post_async,
    put_async,
    request_async,
)
from arelay.response import Response

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
