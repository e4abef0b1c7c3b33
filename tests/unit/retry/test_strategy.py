from __future__ import annotations

from unittest.mock import patch

import pytest

from arelay.backoff import ExponentialBackoff
from arelay.retry import JITTER_RATIO, RetryStrategy, apply_jitter

##################################
#     Tests for apply_jitter     #
##################################


def test_jitter_ratio() -> None:
    assert JITTER_RATIO == 0.2


@pytest.mark.parametrize("delay", [1, 100, 500, 2000])
def test_apply_jitter_bounds(delay: float) -> None:
    for _ in range(50):
        assert delay * 0.8 <= apply_jitter(delay) <= delay * 1.2


def test_apply_jitter_uses_symmetric_range() -> None:
    with patch("arelay.retry.strategy.random.uniform", return_value=-50.0) as uniform:
        assert apply_jitter(500) == 450.0
    uniform.assert_called_once_with(-100.0, 100.0)


def test_apply_jitter_custom_ratio() -> None:
    with patch("arelay.retry.strategy.random.uniform", return_value=5.0) as uniform:
        assert apply_jitter(100, ratio=0.5) == 105.0
    uniform.assert_called_once_with(-50.0, 50.0)


###################################
#     Tests for RetryStrategy     #
###################################


def test_retry_strategy_default_backoff() -> None:
    strategy = RetryStrategy()
    assert isinstance(strategy.backoff_strategy, ExponentialBackoff)
    assert strategy.jitter_ratio == JITTER_RATIO


@pytest.mark.parametrize(("attempt", "expected"), [(0, 0.5), (1, 1.0), (2, 2.0), (6, 2.0)])
def test_retry_strategy_calculate_delay_in_seconds(attempt: int, expected: float) -> None:
    strategy = RetryStrategy(ExponentialBackoff(), jitter_ratio=0.0)
    assert strategy.calculate_delay(attempt) == pytest.approx(expected)


def test_retry_strategy_calculate_delay_jittered() -> None:
    strategy = RetryStrategy(ExponentialBackoff(base_delay=100, max_delay=1000))
    for _ in range(50):
        assert 0.08 <= strategy.calculate_delay(0) <= 0.12
