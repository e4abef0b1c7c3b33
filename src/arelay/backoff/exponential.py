r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

from arelay.backoff.base import BaseBackoffStrategy
from arelay.core.config import DEFAULT_BASE_RETRY_DELAY, DEFAULT_MAX_RETRY_DELAY


class ExponentialBackoff(BaseBackoffStrategy):
    """Exponential backoff strategy.

    Calculates delay as: min(base_delay * (2 ** attempt), max_delay).

    Args:
        base_delay: The delay in milliseconds before the first retry.
        max_delay: The maximum delay in milliseconds.

    Example:
        ```pycon
        >>> from arelay.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(base_delay=500, max_delay=2000)
        >>> backoff.calculate(0)  # First retry
        500
        >>> backoff.calculate(1)  # Second retry
        1000
        >>> backoff.calculate(5)  # Would be 16000, but capped
        2000

        ```
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_RETRY_DELAY,
        max_delay: float = DEFAULT_MAX_RETRY_DELAY,
    ) -> None:
        if base_delay < 0:
            msg = f"base_delay must be non-negative, got {base_delay}"
            raise ValueError(msg)
        if max_delay < 0:
            msg = f"max_delay must be non-negative, got {max_delay}"
            raise ValueError(msg)

        self.base_delay = base_delay
        self.max_delay = max_delay

    def calculate(self, attempt: int) -> float:
        """Calculate exponential backoff delay.

        Args:
            attempt: The number of the attempt that failed (0-indexed).

        Returns:
            The delay in milliseconds: base_delay * (2 ** attempt),
            capped at max_delay.
        """
        return min(self.base_delay * (2**attempt), self.max_delay)
