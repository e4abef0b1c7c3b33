r"""Core configuration and validation shared by the client and the
orchestration engine."""

from __future__ import annotations

__all__ = [
    "DEFAULT_BASE_RETRY_DELAY",
    "DEFAULT_HEADERS",
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_MAX_RETRY_DELAY",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
    "RequestOptions",
    "validate_headers",
    "validate_limits",
    "validate_non_negative_int",
    "validate_params",
]

from arelay.core.config import (
    DEFAULT_BASE_RETRY_DELAY,
    DEFAULT_HEADERS,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    ClientConfig,
    RequestOptions,
)
from arelay.core.validation import (
    validate_headers,
    validate_limits,
    validate_non_negative_int,
    validate_params,
)
