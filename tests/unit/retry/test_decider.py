from __future__ import annotations

import pytest

from arelay.response import Response
from arelay.retry import RetryDecider

##################################
#     Tests for RetryDecider     #
##################################


@pytest.mark.parametrize(("attempt", "expected"), [(0, True), (1, True), (2, False), (3, False)])
def test_has_budget(attempt: int, expected: bool) -> None:
    assert RetryDecider(max_retries=2).has_budget(attempt) == expected


def test_should_retry_error_zero_budget() -> None:
    assert not RetryDecider(max_retries=0).should_retry_error(0)


def test_should_retry_error_with_budget() -> None:
    decider = RetryDecider(max_retries=1)
    assert decider.should_retry_error(0)
    assert not decider.should_retry_error(1)


@pytest.mark.parametrize("status_code", [500, 502, 503, 504, 599])
def test_should_retry_response_server_error(status_code: int) -> None:
    assert RetryDecider(max_retries=1).should_retry_response(Response(status_code), attempt=0)


@pytest.mark.parametrize("status_code", [200, 301, 400, 404, 429, 499])
def test_should_retry_response_other_status(status_code: int) -> None:
    assert not RetryDecider(max_retries=5).should_retry_response(Response(status_code), attempt=0)


def test_should_retry_response_exhausted() -> None:
    assert not RetryDecider(max_retries=2).should_retry_response(Response(503), attempt=2)
