r"""Uniform response value and normalization of transport completions."""

from __future__ import annotations

__all__ = ["Response", "is_json_content", "normalize_response", "parse_body", "reason_phrase"]

import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from arelay.context import RequestContext
    from arelay.transport import Completion

logger: logging.Logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


def reason_phrase(status_code: int) -> str:
    """Look up the standard reason phrase of a status code.

    Args:
        status_code: The HTTP status code.

    Returns:
        The reason phrase, or an empty string for unknown codes.

    Example:
        ```pycon
        >>> from arelay.response import reason_phrase
        >>> reason_phrase(404)
        'Not Found'
        >>> reason_phrase(599)
        ''

        ```
    """
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


@dataclass
class Response:
    """Uniform response returned by the client.

    Responses are also created by middleware handlers that short-circuit
    a request, so only ``status_code`` is required.

    Attributes:
        status_code: The HTTP status code.
        status_text: The reason phrase. Looked up from ``status_code``
            when left empty.
        headers: The response headers (lowercase names).
        body: The parsed JSON body, or the raw text.
        retries: The number of retries consumed on this call path.
        redirects: The number of redirect hops followed on this call path.
        meta: The metadata of the request context.

    Example:
        ```pycon
        >>> from arelay.response import Response
        >>> response = Response(status_code=201, body={"id": 1})
        >>> response.ok
        True
        >>> response.status_text
        'Created'

        ```
    """

    status_code: int
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    retries: int = 0
    redirects: int = 0
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.status_text:
            self.status_text = reason_phrase(self.status_code)

    @property
    def ok(self) -> bool:
        """``True`` if the status code is in [200, 300)."""
        return 200 <= self.status_code < 300

    @property
    def is_redirect(self) -> bool:
        """``True`` if the status code is in [300, 400)."""
        return 300 <= self.status_code < 400


def is_json_content(headers: dict[str, str]) -> bool:
    return JSON_MEDIA_TYPE in headers.get("content-type", "").lower()


def parse_body(text: str, headers: dict[str, str]) -> Any:
    """Interpret a response body.

    JSON bodies are parsed when the content type says so. A body that
    fails to parse is returned as the raw text.

    Args:
        text: The decoded response body.
        headers: The response headers (lowercase names).

    Returns:
        The parsed body or the raw text.

    Example:
        ```pycon
        >>> from arelay.response import parse_body
        >>> parse_body('{"a": 1}', {"content-type": "application/json"})
        {'a': 1}
        >>> parse_body("{oops", {"content-type": "application/json"})
        '{oops'
        >>> parse_body('{"a": 1}', {"content-type": "text/plain"})
        '{"a": 1}'

        ```
    """
    if not is_json_content(headers):
        return text
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Response declared as JSON but could not be parsed, keeping raw text")
        return text


def normalize_response(
    completion: Completion, ctx: RequestContext, attempt: int, redirect_count: int
) -> Response:
    """Build the uniform response of a completed attempt.

    Args:
        completion: The completed transport outcome.
        ctx: The context of the attempt.
        attempt: The attempt number (0-indexed).
        redirect_count: The number of redirect hops followed so far.

    Returns:
        The normalized response.
    """
    return Response(
        status_code=completion.status_code,
        status_text=reason_phrase(completion.status_code),
        headers=completion.headers,
        body=parse_body(completion.text, completion.headers),
        retries=attempt,
        redirects=redirect_count,
        meta=ctx.meta,
    )
