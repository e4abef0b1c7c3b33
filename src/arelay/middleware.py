r"""Two-phase middleware pipeline.

Handlers are registered for the ``before`` phase (run before the
transport) or the ``after`` phase (run once a response exists). A handler
receives a ``MiddlewareInput`` and returns either ``Continue(ctx)`` or
``Produce(ctx, result)``:

- In the before phase, ``Continue`` threads the context to the next
  handler and ``Produce`` short-circuits the request: no further before
  handler runs and the transport is skipped.
- In the after phase, every handler must return ``Produce``; the result
  of the last handler is the one returned to the caller.

Any handler failure is reported to the optional error observer and then
re-raised, aborting the call.

Example:
    ```pycon
    >>> import dataclasses
    >>> from arelay.middleware import Continue, MiddlewareInput, Produce
    >>> async def add_trace_header(data: MiddlewareInput) -> Continue:
    ...     headers = data.ctx.options.headers.copy()
    ...     headers["X-Trace"] = "abc"
    ...     options = dataclasses.replace(data.ctx.options, headers=headers)
    ...     return Continue(data.ctx.replace(options=options))
    ...
    >>> async def tag_response(data: MiddlewareInput) -> Produce:
    ...     data.result.meta["tagged"] = True
    ...     return Produce(data.ctx, data.result)
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "PHASES",
    "Continue",
    "Integration",
    "MiddlewareChain",
    "MiddlewareInput",
    "MiddlewareRegistry",
    "Produce",
]

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from arelay.context import RequestContext
from arelay.exceptions import ConfigurationError, MiddlewareContractError, RequestSnapshot
from arelay.response import Response

logger: logging.Logger = logging.getLogger(__name__)

PHASES = ("before", "after")


@dataclass(frozen=True)
class MiddlewareInput:
    """Value passed to a middleware handler.

    Attributes:
        ctx: The current request context.
        result: The current response. ``None`` in the before phase.
    """

    ctx: RequestContext
    result: Response | None = None


@dataclass(frozen=True)
class Continue:
    """Handler return value that passes a context along."""

    ctx: RequestContext


@dataclass(frozen=True)
class Produce:
    """Handler return value that carries a response."""

    ctx: RequestContext
    result: Response


HandlerResult = Union[Continue, Produce]
Handler = Callable[[MiddlewareInput], Union[Awaitable[HandlerResult], HandlerResult]]
ErrorObserver = Callable[[Exception, RequestContext, str], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class Integration:
    """A pair of before/after handlers registered together.

    Attributes:
        before: Optional before-phase handler.
        after: Optional after-phase handler.
    """

    before: Handler | None = None
    after: Handler | None = None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class MiddlewareChain:
    """Immutable snapshot of the registered handlers.

    A chain is taken at the start of every call, so handlers registered
    while a call is in flight only apply to later calls.

    Args:
        before: The before-phase handlers, in registration order.
        after: The after-phase handlers, in registration order.
        observer: Optional observer called with ``(error, ctx, phase)``
            when a handler fails.
    """

    def __init__(
        self,
        before: tuple[Handler, ...] = (),
        after: tuple[Handler, ...] = (),
        observer: ErrorObserver | None = None,
    ) -> None:
        self.before = tuple(before)
        self.after = tuple(after)
        self.observer = observer

    async def run_before(
        self, ctx: RequestContext, attempt: int = 0
    ) -> tuple[RequestContext, Response | None]:
        """Run the before-phase handlers.

        Args:
            ctx: The request context.
            attempt: The attempt number, used in error snapshots.

        Returns:
            The final context and the short-circuit response, or ``None``
            if no handler produced one.

        Raises:
            MiddlewareContractError: If a handler returns a malformed value.
        """
        current = ctx
        for handler in self.before:
            try:
                returned = await _maybe_await(handler(MiddlewareInput(ctx=current)))
                self._check_return(returned, "before", current, attempt)
            except Exception as exc:
                await self._notify(exc, current, "before")
                raise
            if isinstance(returned, Produce):
                logger.debug(f"Before middleware short-circuited {current.method} {current.url}")
                return returned.ctx, returned.result
            current = returned.ctx
        return current, None

    async def run_after(self, ctx: RequestContext, result: Response, attempt: int = 0) -> Response:
        """Run the after-phase handlers.

        Args:
            ctx: The request context.
            result: The response produced by the transport or a before
                handler.
            attempt: The attempt number, used in error snapshots.

        Returns:
            The response of the last handler.

        Raises:
            MiddlewareContractError: If a handler does not return
                ``Produce`` with a ``Response``.
        """
        current_ctx, current_result = ctx, result
        for handler in self.after:
            try:
                returned = await _maybe_await(
                    handler(MiddlewareInput(ctx=current_ctx, result=current_result))
                )
                self._check_return(returned, "after", current_ctx, attempt)
            except Exception as exc:
                await self._notify(exc, current_ctx, "after")
                raise
            current_ctx, current_result = returned.ctx, returned.result
        return current_result

    def _check_return(
        self, returned: Any, phase: str, ctx: RequestContext, attempt: int
    ) -> None:
        allowed = (Continue, Produce) if phase == "before" else (Produce,)
        if not isinstance(returned, allowed):
            expected = " or ".join(cls.__name__ for cls in allowed)
            msg = (
                f"{phase.capitalize()} middleware must return {expected}, "
                f"got {type(returned).__name__}"
            )
            raise MiddlewareContractError(msg, request=RequestSnapshot.from_context(ctx, attempt))
        if not isinstance(returned.ctx, RequestContext):
            msg = f"Middleware returned an invalid ctx: {type(returned.ctx).__name__}"
            raise MiddlewareContractError(msg, request=RequestSnapshot.from_context(ctx, attempt))
        if isinstance(returned, Produce) and not isinstance(returned.result, Response):
            msg = f"Middleware returned an invalid result: {type(returned.result).__name__}"
            raise MiddlewareContractError(msg, request=RequestSnapshot.from_context(ctx, attempt))

    async def _notify(self, error: Exception, ctx: RequestContext, phase: str) -> None:
        logger.debug(f"{phase.capitalize()} middleware failed for {ctx.method} {ctx.url}: {error}")
        if self.observer is None:
            return
        try:
            await _maybe_await(self.observer(error, ctx, phase))
        except Exception:
            logger.exception("Middleware error observer raised, propagating the original error")


class MiddlewareRegistry:
    """Mutable registry of middleware handlers.

    Args:
        observer: Optional observer called with ``(error, ctx, phase)``
            when a handler fails.

    Example:
        ```pycon
        >>> from arelay.middleware import Continue, MiddlewareRegistry
        >>> registry = MiddlewareRegistry()
        >>> async def passthrough(data):
        ...     return Continue(data.ctx)
        ...
        >>> registry.use(passthrough)
        >>> len(registry.snapshot().before)
        1

        ```
    """

    def __init__(self, observer: ErrorObserver | None = None) -> None:
        self._handlers: dict[str, list[Handler]] = {phase: [] for phase in PHASES}
        self._observer: ErrorObserver | None = None
        if observer is not None:
            self.on_middleware_error(observer)

    def use(self, handler: Handler, phase: str = "before") -> None:
        """Register a handler for a phase.

        Args:
            handler: The handler to register.
            phase: ``"before"`` or ``"after"``.

        Raises:
            ConfigurationError: If the handler is not callable or the
                phase is unknown.
        """
        if not callable(handler) or phase not in PHASES:
            msg = 'Middleware must be callable and phase must be either "before" or "after"'
            raise ConfigurationError(msg)
        self._handlers[phase].append(handler)

    def use_integration(self, integration: Integration | Mapping[str, Handler]) -> None:
        """Register the before and after handlers of an integration.

        Args:
            integration: An ``Integration`` or a mapping with optional
                ``"before"`` and ``"after"`` keys.
        """
        if isinstance(integration, Mapping):
            integration = Integration(
                before=integration.get("before"), after=integration.get("after")
            )
        if integration.before is not None:
            self.use(integration.before, "before")
        if integration.after is not None:
            self.use(integration.after, "after")

    def on_middleware_error(self, observer: ErrorObserver) -> None:
        """Set the observer notified when a handler fails.

        Args:
            observer: Callable receiving ``(error, ctx, phase)``. It cannot
                suppress the error.

        Raises:
            ConfigurationError: If the observer is not callable.
        """
        if not callable(observer):
            msg = "Middleware error handler must be callable"
            raise ConfigurationError(msg)
        self._observer = observer

    def snapshot(self) -> MiddlewareChain:
        """Take an immutable snapshot of the registered handlers.

        Returns:
            The middleware chain used by a call.
        """
        return MiddlewareChain(
            before=tuple(self._handlers["before"]),
            after=tuple(self._handlers["after"]),
            observer=self._observer,
        )
