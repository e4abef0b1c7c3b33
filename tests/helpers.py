r"""Shared test helpers.

This module contains a scripted fake server served through
``httpx.MockTransport`` and a helper to build an ``AsyncRelayClient``
on top of it.
"""

from __future__ import annotations

__all__ = ["TEST_URL", "FakeServer", "redirect", "relay_for"]

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx

from arelay import AsyncRelayClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

TEST_URL = "https://api.example.com/data"


class FakeServer:
    """Replay a scripted sequence of responses.

    Each step is an ``httpx.Response``, an exception raised by the
    transport, or a callable receiving the request. Steps are consumed in
    order and the last one is repeated once the script is exhausted.

    Attributes:
        requests: The requests received so far.
    """

    def __init__(self, *steps: httpx.Response | Exception | Callable[..., Any]) -> None:
        if not steps:
            msg = "FakeServer needs at least one step"
            raise ValueError(msg)
        self._steps = list(steps)
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        step = self._steps.pop(0) if len(self._steps) > 1 else self._steps[0]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return step


def redirect(location: str, status_code: int = 301) -> httpx.Response:
    return httpx.Response(status_code, headers={"Location": location})


@asynccontextmanager
async def relay_for(server: FakeServer, **defaults: Any) -> AsyncIterator[AsyncRelayClient]:
    """Open an AsyncRelayClient whose requests are served by ``server``.

    Args:
        server: The fake server.
        **defaults: Client defaults passed to AsyncRelayClient.

    Yields:
        The client.
    """
    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as http_client:
        async with AsyncRelayClient(client=http_client, **defaults) as relay:
            yield relay
