r"""Redirect decisions.

A redirect is followed when the status is in [300, 400), a ``Location``
header resolving to an ``http`` or ``https`` URL is present and the
redirect budget is not exhausted.
"""

from __future__ import annotations

__all__ = ["next_location", "resolve_location"]

import logging
from typing import TYPE_CHECKING

import httpx

from arelay.context import SUPPORTED_SCHEMES

if TYPE_CHECKING:
    from arelay.response import Response

logger: logging.Logger = logging.getLogger(__name__)


def resolve_location(location: str, current_url: str) -> str:
    """Resolve a ``Location`` header against the current URL.

    Args:
        location: The absolute or relative location.
        current_url: The URL of the response carrying the location.

    Returns:
        The absolute target URL.

    Example:
        ```pycon
        >>> from arelay.redirect import resolve_location
        >>> resolve_location("/next", "https://api.example.com/a/b?x=1")
        'https://api.example.com/next'
        >>> resolve_location("c", "https://api.example.com/a/b")
        'https://api.example.com/a/c'
        >>> resolve_location("http://other.example.com/", "https://api.example.com/")
        'http://other.example.com/'

        ```
    """
    return str(httpx.URL(current_url).join(location))


def next_location(
    response: Response, current_url: str, redirect_count: int, max_redirects: int
) -> str | None:
    """Return the URL of the next hop, if the response should be
    followed.

    Args:
        response: The normalized response.
        current_url: The URL that produced the response.
        redirect_count: The number of hops followed so far.
        max_redirects: The maximum number of hops.

    Returns:
        The absolute URL of the next hop, or ``None`` if the response is
        not a redirect to follow or its location is not an ``http`` or
        ``https`` URL.
    """
    if not response.is_redirect:
        return None
    location = response.headers.get("location")
    if not location:
        logger.debug(f"Status {response.status_code} from {current_url} has no Location header")
        return None
    if redirect_count >= max_redirects:
        logger.debug(
            f"Not following redirect from {current_url}: "
            f"redirect budget of {max_redirects} exhausted"
        )
        return None
    try:
        target = resolve_location(location, current_url)
        parsed = httpx.URL(target)
    except httpx.InvalidURL as exc:
        logger.debug(f"Not following redirect from {current_url}: invalid location: {exc}")
        return None
    if parsed.scheme not in SUPPORTED_SCHEMES or not parsed.host:
        logger.debug(f"Not following redirect from {current_url} to unsupported URL {target}")
        return None
    return target
