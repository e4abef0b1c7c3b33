from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, Mock, patch

import pytest

from arelay.exceptions import ConfigurationError, MiddlewareContractError
from arelay.middleware import (
    Continue,
    Integration,
    MiddlewareChain,
    MiddlewareInput,
    MiddlewareRegistry,
    Produce,
)
from arelay.response import Response

if TYPE_CHECKING:
    from arelay.context import RequestContext


async def passthrough(data: MiddlewareInput) -> Continue:
    return Continue(data.ctx)


async def keep_result(data: MiddlewareInput) -> Produce:
    return Produce(data.ctx, data.result)


def with_header(name: str, value: str):
    def handler(data: MiddlewareInput) -> Continue:
        headers = data.ctx.options.headers.copy()
        headers[name] = value
        options = dataclasses.replace(data.ctx.options, headers=headers)
        return Continue(data.ctx.replace(options=options))

    return handler


########################################
#     Tests for MiddlewareChain        #
#     before phase                     #
########################################


@pytest.mark.asyncio
async def test_run_before_empty(ctx: RequestContext) -> None:
    assert await MiddlewareChain().run_before(ctx) == (ctx, None)


@pytest.mark.asyncio
async def test_run_before_threads_context(ctx: RequestContext) -> None:
    chain = MiddlewareChain(before=(with_header("X-A", "1"), with_header("X-B", "2")))
    new_ctx, result = await chain.run_before(ctx)

    assert result is None
    assert new_ctx.options.headers["x-a"] == "1"
    assert new_ctx.options.headers["x-b"] == "2"
    assert "x-a" not in ctx.options.headers


@pytest.mark.asyncio
async def test_run_before_short_circuit(ctx: RequestContext) -> None:
    cached = Response(status_code=200, body="cached")
    later = AsyncMock()

    async def from_cache(data: MiddlewareInput) -> Produce:
        return Produce(data.ctx, cached)

    chain = MiddlewareChain(before=(from_cache, later))
    new_ctx, result = await chain.run_before(ctx)

    assert new_ctx is ctx
    assert result is cached
    later.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("returned", [None, "ctx", {"ctx": None}])
async def test_run_before_contract_violation(ctx: RequestContext, returned: object) -> None:
    chain = MiddlewareChain(before=(lambda data: returned,))
    with pytest.raises(
        MiddlewareContractError, match=r"Before middleware must return Continue or Produce"
    ) as exc_info:
        await chain.run_before(ctx, attempt=1)
    assert exc_info.value.request.url == ctx.url
    assert exc_info.value.request.attempt == 1


@pytest.mark.asyncio
async def test_run_before_invalid_ctx(ctx: RequestContext) -> None:
    chain = MiddlewareChain(before=(lambda data: Continue("not a context"),))
    with pytest.raises(MiddlewareContractError, match=r"invalid ctx"):
        await chain.run_before(ctx)


@pytest.mark.asyncio
async def test_run_before_invalid_result(ctx: RequestContext) -> None:
    chain = MiddlewareChain(before=(lambda data: Produce(data.ctx, {"status": 200}),))
    with pytest.raises(MiddlewareContractError, match=r"invalid result"):
        await chain.run_before(ctx)


#######################################
#     Tests for MiddlewareChain       #
#     after phase                     #
#######################################


@pytest.mark.asyncio
async def test_run_after_empty(ctx: RequestContext) -> None:
    response = Response(status_code=200)
    assert await MiddlewareChain().run_after(ctx, response) is response


@pytest.mark.asyncio
async def test_run_after_runs_every_handler(ctx: RequestContext) -> None:
    def wrap(data: MiddlewareInput) -> Produce:
        return Produce(data.ctx, dataclasses.replace(data.result, body=[data.result.body]))

    chain = MiddlewareChain(after=(wrap, wrap, keep_result))
    result = await chain.run_after(ctx, Response(status_code=200, body="x"))
    assert result.body == [["x"]]


@pytest.mark.asyncio
async def test_run_after_rejects_continue(ctx: RequestContext) -> None:
    chain = MiddlewareChain(after=(passthrough,))
    with pytest.raises(MiddlewareContractError, match=r"After middleware must return Produce"):
        await chain.run_after(ctx, Response(status_code=200))


@pytest.mark.asyncio
async def test_valid_returns_build_no_snapshot(ctx: RequestContext) -> None:
    chain = MiddlewareChain(before=(passthrough,), after=(keep_result,))
    with patch("arelay.middleware.RequestSnapshot.from_context") as from_context:
        await chain.run_before(ctx)
        await chain.run_after(ctx, Response(status_code=200))
    from_context.assert_not_called()


#######################################
#     Tests for the error observer    #
#######################################


@pytest.mark.asyncio
async def test_observer_called_on_failure(ctx: RequestContext, mock_callback: Mock) -> None:
    error = RuntimeError("handler failed")

    def failing(data: MiddlewareInput) -> Continue:
        raise error

    chain = MiddlewareChain(before=(failing,), observer=mock_callback)
    with pytest.raises(RuntimeError, match=r"handler failed"):
        await chain.run_before(ctx)
    mock_callback.assert_called_once_with(error, ctx, "before")


@pytest.mark.asyncio
async def test_async_observer_called_on_contract_violation(ctx: RequestContext) -> None:
    observer = AsyncMock()
    chain = MiddlewareChain(after=(passthrough,), observer=observer)
    with pytest.raises(MiddlewareContractError):
        await chain.run_after(ctx, Response(status_code=200))

    observer.assert_awaited_once()
    error, observed_ctx, phase = observer.await_args.args
    assert isinstance(error, MiddlewareContractError)
    assert observed_ctx is ctx
    assert phase == "after"


@pytest.mark.asyncio
async def test_failing_observer_does_not_replace_error(
    ctx: RequestContext, caplog: pytest.LogCaptureFixture
) -> None:
    def failing(data: MiddlewareInput) -> Continue:
        msg = "original"
        raise ValueError(msg)

    chain = MiddlewareChain(before=(failing,), observer=Mock(side_effect=KeyError("observer")))
    with caplog.at_level(logging.ERROR, logger="arelay.middleware"), pytest.raises(
        ValueError, match=r"original"
    ):
        await chain.run_before(ctx)
    assert "Middleware error observer raised" in caplog.text


########################################
#     Tests for MiddlewareRegistry     #
########################################


def test_registry_use_default_phase() -> None:
    registry = MiddlewareRegistry()
    registry.use(passthrough)
    chain = registry.snapshot()
    assert chain.before == (passthrough,)
    assert chain.after == ()


@pytest.mark.parametrize(("handler", "phase"), [("nope", "before"), (passthrough, "during")])
def test_registry_use_invalid(handler: object, phase: str) -> None:
    with pytest.raises(
        ConfigurationError, match=r'phase must be either "before" or "after"'
    ):
        MiddlewareRegistry().use(handler, phase)


def test_registry_use_integration() -> None:
    registry = MiddlewareRegistry()
    registry.use_integration(Integration(before=passthrough, after=keep_result))
    registry.use_integration({"after": keep_result})

    chain = registry.snapshot()
    assert chain.before == (passthrough,)
    assert chain.after == (keep_result, keep_result)


def test_registry_snapshot_is_isolated() -> None:
    registry = MiddlewareRegistry()
    registry.use(passthrough)
    chain = registry.snapshot()
    registry.use(keep_result, "after")

    assert chain.after == ()
    assert registry.snapshot().after == (keep_result,)


def test_registry_observer(mock_callback: Mock) -> None:
    registry = MiddlewareRegistry()
    assert registry.snapshot().observer is None
    registry.on_middleware_error(mock_callback)
    assert registry.snapshot().observer is mock_callback


def test_registry_observer_from_constructor(mock_callback: Mock) -> None:
    assert MiddlewareRegistry(observer=mock_callback).snapshot().observer is mock_callback


def test_registry_observer_must_be_callable() -> None:
    with pytest.raises(ConfigurationError, match=r"must be callable"):
        MiddlewareRegistry().on_middleware_error("log")
