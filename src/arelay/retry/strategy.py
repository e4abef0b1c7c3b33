r"""Retry strategy for calculating jittered backoff delays.

This module provides the RetryStrategy class for calculating the delay
before the next attempt.
"""

from __future__ import annotations

__all__ = ["JITTER_RATIO", "RetryStrategy", "apply_jitter"]

import logging
import random
from typing import TYPE_CHECKING

from arelay.backoff.exponential import ExponentialBackoff

if TYPE_CHECKING:
    from arelay.backoff.base import BaseBackoffStrategy

logger: logging.Logger = logging.getLogger(__name__)

# Symmetric jitter: the delay is moved by a uniform offset in [-20%, +20%]
JITTER_RATIO = 0.2


def apply_jitter(delay: float, ratio: float = JITTER_RATIO) -> float:
    """Apply a symmetric random jitter to a delay.

    Args:
        delay: The delay to jitter.
        ratio: The maximum relative offset.

    Returns:
        ``delay`` moved by a uniform random offset in
        ``[-ratio * delay, ratio * delay]``.

    Example:
        ```pycon
        >>> from arelay.retry.strategy import apply_jitter
        >>> 400 <= apply_jitter(500) <= 600
        True
        >>> apply_jitter(0)
        0.0

        ```
    """
    jitter = delay * ratio
    return delay + random.uniform(-jitter, jitter)  # noqa: S311


class RetryStrategy:
    """Strategy for calculating retry delays with backoff and jitter.

    Args:
        backoff_strategy: Backoff strategy instance. Defaults to
            ``ExponentialBackoff()``.
        jitter_ratio: The maximum relative jitter applied to the delay.

    Attributes:
        backoff_strategy: Backoff strategy instance.
        jitter_ratio: The maximum relative jitter applied to the delay.
    """

    def __init__(
        self,
        backoff_strategy: BaseBackoffStrategy | None = None,
        jitter_ratio: float = JITTER_RATIO,
    ) -> None:
        self.backoff_strategy: BaseBackoffStrategy = (
            backoff_strategy if backoff_strategy is not None else ExponentialBackoff()
        )
        self.jitter_ratio = jitter_ratio

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before next attempt.

        Args:
            attempt: The number of the attempt that failed (0-indexed).

        Returns:
            Sleep time in seconds.
        """
        delay_ms = apply_jitter(self.backoff_strategy.calculate(attempt), self.jitter_ratio)
        logger.debug(f"Waiting {delay_ms / 1000:.3f}s before retry")
        return delay_ms / 1000
