r"""Parameter validation utilities for client defaults and per-call
options.

Integer limits (timeouts, delays, redirect and retry budgets) are
expressed in milliseconds or counts and must be non-negative integers.
"""

from __future__ import annotations

__all__ = ["validate_headers", "validate_limits", "validate_non_negative_int", "validate_params"]

from collections.abc import Mapping
from typing import Any

from arelay.exceptions import ConfigurationError


def validate_non_negative_int(value: Any, name: str) -> None:
    """Validate that a value is a non-negative integer.

    Booleans are rejected even though ``bool`` is a subclass of ``int``.

    Args:
        value: The value to validate.
        name: The parameter name, used in the error message.

    Raises:
        ConfigurationError: If the value is not an integer or is negative.

    Example:
        ```pycon
        >>> from arelay.core.validation import validate_non_negative_int
        >>> validate_non_negative_int(3, "retries")
        >>> validate_non_negative_int(1.5, "retries")  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        arelay.exceptions.ConfigurationError: retries must be an integer, got 1.5

        ```
    """
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigurationError(msg)
    if value < 0:
        msg = f"{name} must be >= 0, got {value}"
        raise ConfigurationError(msg)


def validate_headers(headers: Any, name: str = "headers") -> None:
    """Validate that headers are a mapping.

    Args:
        headers: The headers to validate.
        name: The parameter name, used in the error message.

    Raises:
        ConfigurationError: If the headers are not a mapping.
    """
    if not isinstance(headers, Mapping):
        msg = f"{name} must be a mapping, got {type(headers).__name__}"
        raise ConfigurationError(msg)


def validate_params(params: Any) -> None:
    """Validate that query parameters are a mapping or ``None``.

    Args:
        params: The query parameters to validate.

    Raises:
        ConfigurationError: If the parameters are not a mapping.
    """
    if params is not None and not isinstance(params, Mapping):
        msg = f"params must be a mapping, got {type(params).__name__}"
        raise ConfigurationError(msg)


def validate_limits(**limits: Any) -> None:
    """Validate several integer limits at once.

    Args:
        **limits: Mapping of parameter name to value. ``None`` values are
            skipped.

    Raises:
        ConfigurationError: If any value is not a non-negative integer.

    Example:
        ```pycon
        >>> from arelay.core.validation import validate_limits
        >>> validate_limits(timeout=10000, retries=None, redirects=3)

        ```
    """
    for name, value in limits.items():
        if value is not None:
            validate_non_negative_int(value, name)
