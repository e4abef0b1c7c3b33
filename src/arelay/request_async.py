r"""One-shot asynchronous request functions.

Each function opens a short-lived ``AsyncRelayClient`` (or uses the
``httpx.AsyncClient`` it is given), sends one call and closes the client.
"""

from __future__ import annotations

__all__ = [
    "delete_async",
    "get_async",
    "head_async",
    "options_async",
    "patch_async",
    "post_async",
    "put_async",
    "request_async",
]

from typing import TYPE_CHECKING, Any

from arelay.client import AsyncRelayClient

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx

    from arelay.core.config import ClientConfig
    from arelay.middleware import Integration
    from arelay.response import Response


async def request_async(
    method: str,
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    config: ClientConfig | None = None,
    integrations: Sequence[Integration] = (),
    **options: Any,
) -> Response:
    """Send one HTTP request with a short-lived client.

    Args:
        method: The HTTP method.
        url: The absolute URL to send the request to.
        client: Optional ``httpx.AsyncClient`` to send the request with.
            If None, a new client is created and closed after use.
        config: Optional ClientConfig with the defaults of the call.
        integrations: Optional integrations registered for this call.
        **options: Per-call options (see ``AsyncRelayClient.request``).

    Returns:
        The final response.

    Example:
        ```pycon
        >>> import asyncio
        >>> from arelay import get_async
        >>> asyncio.run(get_async("https://api.example.com/data", retries=2))  # doctest: +SKIP

        ```
    """
    async with AsyncRelayClient(config, client=client) as relay:
        for integration in integrations:
            relay.use_integration(integration)
        return await relay.request(method, url, **options)


async def get_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP GET request (see ``request_async``)."""
    return await request_async("GET", url, **kwargs)


async def post_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP POST request (see ``request_async``)."""
    return await request_async("POST", url, **kwargs)


async def put_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP PUT request (see ``request_async``)."""
    return await request_async("PUT", url, **kwargs)


async def delete_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP DELETE request (see ``request_async``)."""
    return await request_async("DELETE", url, **kwargs)


async def head_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP HEAD request (see ``request_async``)."""
    return await request_async("HEAD", url, **kwargs)


async def patch_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP PATCH request (see ``request_async``)."""
    return await request_async("PATCH", url, **kwargs)


async def options_async(url: str, **kwargs: Any) -> Response:
    """Send one HTTP OPTIONS request (see ``request_async``)."""
    return await request_async("OPTIONS", url, **kwargs)
