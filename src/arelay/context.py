r"""Request context construction.

A ``RequestContext`` describes one in-flight request. It is immutable:
middleware handlers produce modified copies with ``ctx.replace(...)``.
"""

from __future__ import annotations

__all__ = ["RequestContext", "build_context", "merge_params"]

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import httpx

from arelay.exceptions import ConfigurationError, RequestSnapshot

if TYPE_CHECKING:
    from collections.abc import Mapping

    from arelay.core.config import RequestOptions

SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class RequestContext:
    """Immutable description of a request attempt.

    Attributes:
        method: The uppercase HTTP method.
        url: The absolute request URL, query parameters included.
        options: The resolved options of the call.
        meta: Open mapping used by middleware to share data (e.g., timers).

    Example:
        ```pycon
        >>> from arelay.context import build_context
        >>> from arelay.core.config import RequestOptions
        >>> ctx = build_context("get", "https://api.example.com/items", RequestOptions())
        >>> ctx.method
        'GET'
        >>> ctx.replace(url="https://api.example.com/other").url
        'https://api.example.com/other'

        ```
    """

    method: str
    url: str
    options: RequestOptions
    meta: dict[str, Any] = field(default_factory=dict)

    def replace(self, **changes: Any) -> RequestContext:
        """Return a copy of the context with some fields replaced.

        Args:
            **changes: The fields to replace.

        Returns:
            The new context.
        """
        return replace(self, **changes)


def merge_params(url: str, params: Mapping[str, Any] | None) -> str:
    """Merge query parameters into a URL.

    Parameters override same-named keys already present in the URL
    query. A ``None`` value leaves the URL untouched.

    Args:
        url: The URL to update.
        params: Optional query parameters.

    Returns:
        The URL with the merged query string.

    Example:
        ```pycon
        >>> from arelay.context import merge_params
        >>> merge_params("https://api.example.com/search?q=a", {"page": 2})
        'https://api.example.com/search?q=a&page=2'
        >>> merge_params("https://api.example.com/search", None)
        'https://api.example.com/search'

        ```
    """
    if not params:
        return url
    return str(httpx.URL(url).copy_merge_params(params))


def build_context(
    method: str,
    url: str,
    options: RequestOptions,
    meta: dict[str, Any] | None = None,
) -> RequestContext:
    """Build the context of a request.

    Args:
        method: The HTTP method (case-insensitive).
        url: The absolute request URL.
        options: The resolved options of the call.
        meta: Optional metadata carried over from a previous hop. A new
            empty mapping is used if ``None``.

    Returns:
        The request context.

    Raises:
        ConfigurationError: If the URL is not an absolute ``http`` or
            ``https`` URL.
    """
    method = method.upper()
    try:
        full_url = merge_params(url, options.params)
        parsed = httpx.URL(full_url)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(
            f"Invalid URL {url!r}: {exc}",
            request=RequestSnapshot(method=method, url=url, options=options, attempt=0),
        ) from exc
    if parsed.scheme not in SUPPORTED_SCHEMES or not parsed.host:
        msg = f"URL must be an absolute http or https URL, got {url!r}"
        raise ConfigurationError(
            msg, request=RequestSnapshot(method=method, url=url, options=options, attempt=0)
        )
    return RequestContext(
        method=method,
        url=full_url,
        options=options,
        meta={} if meta is None else meta,
    )
