r"""Request orchestration engine.

The engine drives one logical call from context construction to the
final response. Retries and redirects are continuations of the same
call, expressed as an explicit loop carrying the context, the redirect
count and the attempt count:

- the attempt count is shared by the whole redirect chain (a redirect
  hop does not reset the retry budget);
- the redirect count survives retries within the same hop;
- timeouts and malformed redirect locations are terminal and never
  retried, transport failures and server errors (status >= 500) are
  retried while the budget lasts.

The after-middleware runs once where the terminal (or short-circuit)
response is produced, then once more for every redirect hop that led to
it, innermost hop first.
"""

from __future__ import annotations

__all__ = ["RequestEngine"]

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING

from arelay.backoff import ExponentialBackoff
from arelay.context import RequestContext, build_context
from arelay.exceptions import (
    HTTPError,
    RequestSnapshot,
    RequestTimeoutError,
    TransportError,
)
from arelay.redirect import next_location
from arelay.response import Response, normalize_response
from arelay.retry import RetryDecider, RetryStrategy
from arelay.transport import AttemptTimeout, InvalidRedirect, TransportFailure
from arelay.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from arelay.core.config import RequestOptions
    from arelay.middleware import MiddlewareChain
    from arelay.transport import Transport

logger: logging.Logger = logging.getLogger(__name__)


class RequestEngine:
    """Executes calls through the middleware chain and the transport.

    Args:
        transport: The transport performing single network attempts.
        chain: The middleware snapshot used for the call.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from arelay.core.config import ClientConfig
        >>> from arelay.engine import RequestEngine
        >>> from arelay.middleware import MiddlewareChain
        >>> from arelay.transport import Transport
        >>> async def main():
        ...     mock = httpx.MockTransport(lambda request: httpx.Response(200, json={"a": 1}))
        ...     async with httpx.AsyncClient(transport=mock) as client:
        ...         engine = RequestEngine(Transport(client), MiddlewareChain())
        ...         return await engine.execute(
        ...             "GET", "https://api.example.com", ClientConfig().resolve()
        ...         )
        ...
        >>> asyncio.run(main()).body
        {'a': 1}

        ```
    """

    def __init__(self, transport: Transport, chain: MiddlewareChain) -> None:
        self.transport = transport
        self.chain = chain

    async def execute(self, method: str, url: str, options: RequestOptions) -> Response:
        """Execute a call.

        Args:
            method: The HTTP method.
            url: The absolute request URL.
            options: The resolved options of the call.

        Returns:
            The final response, after the after-middleware.

        Raises:
            ConfigurationError: If the URL is invalid.
            MiddlewareContractError: If a handler returns a malformed value.
            UnsupportedBodyError: If the body is a stream.
            TransportError: If connection failures exhaust the retries, or a
                redirect carries a malformed Location header.
            RequestTimeoutError: If an attempt times out.
            HTTPError: If the final status is a client or server error.
        """
        ctx = build_context(method, url, options)
        # Contexts of the redirect hops already followed, outermost first
        hops: list[RequestContext] = []
        attempt = 0

        while True:
            redirect_count = len(hops)
            ctx, short_circuit = await self.chain.run_before(ctx, attempt)
            if short_circuit is not None:
                result = await self.chain.run_after(ctx, short_circuit, attempt)
                break

            outcome = await self.transport.send(ctx, attempt)

            if isinstance(outcome, AttemptTimeout):
                self._log(ctx, attempt, redirect_count, "Attempt timed out")
                raise RequestTimeoutError(
                    f"{ctx.method} request to {ctx.url} timed out "
                    f"after {ctx.options.timeout} ms",
                    request=RequestSnapshot.from_context(ctx, attempt),
                ) from outcome.error

            if isinstance(outcome, InvalidRedirect):
                self._log(ctx, attempt, redirect_count, "Invalid redirect location")
                raise TransportError(
                    f"{ctx.method} request to {ctx.url} returned a redirect with an "
                    f"invalid Location header: {outcome.error}",
                    request=RequestSnapshot.from_context(ctx, attempt),
                ) from outcome.error

            if isinstance(outcome, TransportFailure):
                if RetryDecider(ctx.options.retries).should_retry_error(attempt):
                    await self._wait_before_retry(ctx, attempt, redirect_count)
                    attempt += 1
                    continue
                raise TransportError(
                    f"Network error: {ctx.method} request to {ctx.url} failed "
                    f"after {attempt + 1} attempts: {outcome.error}",
                    request=RequestSnapshot.from_context(ctx, attempt),
                ) from outcome.error

            response = normalize_response(outcome, ctx, attempt, redirect_count)
            location = next_location(response, ctx.url, redirect_count, ctx.options.redirects)
            if location is not None:
                self._log(
                    ctx,
                    attempt,
                    redirect_count,
                    f"Following redirect to {location}",
                    status_code=response.status_code,
                )
                hops.append(ctx)
                ctx = build_context(ctx.method, location, ctx.options, meta=ctx.meta)
                continue

            if response.ok or response.is_redirect:
                self._log(
                    ctx,
                    attempt,
                    redirect_count,
                    "Request completed",
                    status_code=response.status_code,
                )
                result = await self.chain.run_after(ctx, response, attempt)
                break

            if RetryDecider(ctx.options.retries).should_retry_response(response, attempt):
                await self._wait_before_retry(ctx, attempt, redirect_count, response.status_code)
                attempt += 1
                continue

            raise HTTPError(
                f"{ctx.method} request to {ctx.url} failed with status "
                f"{response.status_code} ({attempt + 1} attempts)",
                request=RequestSnapshot.from_context(ctx, attempt),
                response=response,
            )

        for depth in range(len(hops), 0, -1):
            result = dataclasses.replace(result, redirects=max(result.redirects, depth))
            result = await self.chain.run_after(hops[depth - 1], result, attempt)
        return result

    async def _wait_before_retry(
        self,
        ctx: RequestContext,
        attempt: int,
        redirect_count: int,
        status_code: int | None = None,
    ) -> None:
        strategy = RetryStrategy(
            ExponentialBackoff(ctx.options.base_retry_delay, ctx.options.max_retry_delay)
        )
        delay = strategy.calculate_delay(attempt)
        self._log(
            ctx,
            attempt,
            redirect_count,
            f"Retrying in {delay:.3f}s",
            status_code=status_code,
        )
        await asyncio.sleep(delay)

    def _log(
        self,
        ctx: RequestContext,
        attempt: int,
        redirect_count: int,
        message: str,
        status_code: int | None = None,
    ) -> None:
        log_structured(
            logger,
            logging.DEBUG,
            f"{ctx.method} {ctx.url}: {message}",
            method=ctx.method,
            url=ctx.url,
            attempt=attempt,
            redirects=redirect_count,
            status_code=status_code,
        )
