r"""Retry decision and delay calculation."""

from __future__ import annotations

__all__ = ["JITTER_RATIO", "RetryDecider", "RetryStrategy", "apply_jitter"]

from arelay.retry.decider import RetryDecider
from arelay.retry.strategy import JITTER_RATIO, RetryStrategy, apply_jitter
