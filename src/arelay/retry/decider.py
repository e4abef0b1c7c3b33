r"""Retry decision logic.

Transport failures and server errors (status >= 500) are retried while
the attempt budget lasts. Timeouts are never handed to the decider.
"""

from __future__ import annotations

__all__ = ["RetryDecider"]

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arelay.response import Response

logger: logging.Logger = logging.getLogger(__name__)


class RetryDecider:
    """Decides whether an attempt should be retried.

    Args:
        max_retries: Maximum number of retry attempts beyond the first.

    Example:
        ```pycon
        >>> from arelay.response import Response
        >>> from arelay.retry import RetryDecider
        >>> decider = RetryDecider(max_retries=1)
        >>> decider.should_retry_response(Response(status_code=503), attempt=0)
        True
        >>> decider.should_retry_response(Response(status_code=503), attempt=1)
        False
        >>> decider.should_retry_response(Response(status_code=404), attempt=0)
        False

        ```
    """

    def __init__(self, max_retries: int) -> None:
        self.max_retries = max_retries

    def has_budget(self, attempt: int) -> bool:
        return attempt < self.max_retries

    def should_retry_error(self, attempt: int) -> bool:
        """Determine if a transport failure should trigger a retry.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            ``True`` if another attempt is allowed.
        """
        if not self.has_budget(attempt):
            logger.debug(f"Transport failure on attempt {attempt + 1}: retries exhausted")
            return False
        return True

    def should_retry_response(self, response: Response, attempt: int) -> bool:
        """Determine if a completed response should trigger a retry.

        Args:
            response: The normalized response of the attempt.
            attempt: Current attempt number (0-indexed).

        Returns:
            ``True`` if the status is a server error and another attempt
            is allowed.
        """
        if response.status_code < 500:
            return False
        if not self.has_budget(attempt):
            logger.debug(
                f"Status {response.status_code} on attempt {attempt + 1}: retries exhausted"
            )
            return False
        return True
