r"""Configuration dataclasses and defaults for AsyncRelayClient.

This module provides the client-level defaults, validated once at client
construction, and the per-call ``RequestOptions`` produced by merging
those defaults with call overrides. Defaults are merged exactly once per
call, when the request context is built.
"""

from __future__ import annotations

__all__ = [
    "ClientConfig",
    "DEFAULT_BASE_RETRY_DELAY",
    "DEFAULT_HEADERS",
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_MAX_RETRY_DELAY",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "RequestOptions",
]

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import httpx

from arelay.core.validation import validate_headers, validate_limits, validate_params
from arelay.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from arelay.context import RequestContext

# Headers sent with every request unless overridden
DEFAULT_HEADERS = {"Accept": "application/json"}

# Default maximum number of redirect hops to follow
DEFAULT_MAX_REDIRECTS = 3

# Default number of retry attempts beyond the first one
# Total attempts = retries + 1 (initial attempt)
DEFAULT_RETRIES = 0

# Default per-attempt timeout in milliseconds (0 disables the timeout)
DEFAULT_TIMEOUT = 10000

# Default backoff delays in milliseconds
# Wait time = min(base_retry_delay * (2 ** attempt), max_retry_delay) +/- 20%
DEFAULT_BASE_RETRY_DELAY = 500
DEFAULT_MAX_RETRY_DELAY = 2000


@dataclass(frozen=True)
class RequestOptions:
    """Resolved configuration of a single call.

    Instances are produced by ``ClientConfig.resolve`` and are never
    re-merged with the client defaults afterwards.

    Args:
        headers: Client default headers merged with the call headers.
        body: Optional request body (structured value, ``str`` or ``bytes``).
        timeout: Per-attempt timeout in milliseconds. ``0`` disables it.
        redirects: Maximum number of redirect hops to follow.
        retries: Maximum number of retry attempts beyond the first one.
        base_retry_delay: Initial backoff delay in milliseconds.
        max_retry_delay: Maximum backoff delay in milliseconds.
        params: Optional query parameters appended to the URL.
    """

    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Any = None
    timeout: int = DEFAULT_TIMEOUT
    redirects: int = DEFAULT_MAX_REDIRECTS
    retries: int = DEFAULT_RETRIES
    base_retry_delay: int = DEFAULT_BASE_RETRY_DELAY
    max_retry_delay: int = DEFAULT_MAX_RETRY_DELAY
    params: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        validate_headers(self.headers)
        validate_params(self.params)
        validate_limits(
            timeout=self.timeout,
            redirects=self.redirects,
            retries=self.retries,
            base_retry_delay=self.base_retry_delay,
            max_retry_delay=self.max_retry_delay,
        )
        if not isinstance(self.headers, httpx.Headers):
            object.__setattr__(self, "headers", httpx.Headers(self.headers))

    @property
    def timeout_seconds(self) -> float | None:
        """The per-attempt timeout in seconds, or ``None`` if disabled."""
        return self.timeout / 1000 if self.timeout > 0 else None


@dataclass
class ClientConfig:
    """Client-level defaults for AsyncRelayClient.

    All the values are validated when the config is created, so a wrong
    type fails at client construction rather than at the first call.

    Args:
        default_headers: Headers sent with every request.
        max_redirects: Default maximum number of redirect hops.
        retries: Default number of retry attempts. Must be >= 0.
        timeout: Default per-attempt timeout in milliseconds.
        base_retry_delay: Default initial backoff delay in milliseconds.
        max_retry_delay: Default maximum backoff delay in milliseconds.
        on_middleware_error: Optional observer called with
            ``(error, ctx, phase)`` when a middleware handler fails.

    Raises:
        ConfigurationError: If any parameter fails validation.

    Example:
        ```pycon
        >>> from arelay.core.config import ClientConfig
        >>> config = ClientConfig()
        >>> config.max_redirects
        3
        >>> options = config.resolve(retries=2, headers={"X-Trace": "abc"})
        >>> options.retries
        2
        >>> options.headers["accept"]
        'application/json'
        >>> config.retries  # Original unchanged
        0

        ```
    """

    default_headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    retries: int = DEFAULT_RETRIES
    timeout: int = DEFAULT_TIMEOUT
    base_retry_delay: int = DEFAULT_BASE_RETRY_DELAY
    max_retry_delay: int = DEFAULT_MAX_RETRY_DELAY
    on_middleware_error: (
        Callable[[Exception, RequestContext, str], Awaitable[None] | None] | None
    ) = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ConfigurationError: If any parameter fails validation.
        """
        validate_headers(self.default_headers, "default_headers")
        validate_limits(
            max_redirects=self.max_redirects,
            retries=self.retries,
            timeout=self.timeout,
            base_retry_delay=self.base_retry_delay,
            max_retry_delay=self.max_retry_delay,
        )
        if self.on_middleware_error is not None and not callable(self.on_middleware_error):
            msg = "on_middleware_error must be callable"
            raise ConfigurationError(msg)

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new validated ClientConfig instance.

        Example:
            ```pycon
            >>> from arelay.core.config import ClientConfig
            >>> config = ClientConfig(retries=3)
            >>> config.merge(retries=5).retries
            5
            >>> config.retries
            3

            ```
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def resolve(
        self,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        timeout: int | None = None,
        redirects: int | None = None,
        retries: int | None = None,
        base_retry_delay: int | None = None,
        max_retry_delay: int | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> RequestOptions:
        """Merge per-call overrides with the client defaults.

        Args:
            headers: Headers merged over the default headers
                (case-insensitive, call headers win).
            body: Optional request body.
            timeout: Overrides the default timeout (ms).
            redirects: Overrides the default maximum number of redirects.
            retries: Overrides the default number of retries.
            base_retry_delay: Overrides the default initial backoff (ms).
            max_retry_delay: Overrides the default maximum backoff (ms).
            params: Optional query parameters.

        Returns:
            The resolved options of the call.

        Raises:
            ConfigurationError: If an override fails validation.
        """
        merged_headers = httpx.Headers(self.default_headers)
        if headers is not None:
            validate_headers(headers)
            merged_headers.update(headers)
        return RequestOptions(
            headers=merged_headers,
            body=body,
            timeout=self.timeout if timeout is None else timeout,
            redirects=self.max_redirects if redirects is None else redirects,
            retries=self.retries if retries is None else retries,
            base_retry_delay=(
                self.base_retry_delay if base_retry_delay is None else base_retry_delay
            ),
            max_retry_delay=self.max_retry_delay if max_retry_delay is None else max_retry_delay,
            params=params,
        )
