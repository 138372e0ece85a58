"""Exceptions raised by the fetch/paging engine."""

from __future__ import annotations

from typing import Any
from urllib.error import URLError

# Network failures are not translated; urlopen's URLError reaches the caller.
TransportError = URLError

BODY_PREVIEW_CHARS = 50


def _truncate(body: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    return body[:limit] + "..."


class TrelloError(Exception):
    """Base class for all trellor errors."""


class HttpError(TrelloError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, reason: str, body: str, *, url: str | None = None) -> None:
        self.status = status
        self.reason = reason
        self.body = _truncate(body)
        self.url = url
        super().__init__(f"HTTP {status} {reason} : {self.body}")


class FormatError(TrelloError):
    """The response body is not JSON."""

    def __init__(self, content_type: str, body: str) -> None:
        self.content_type = content_type
        self.body = _truncate(body)
        super().__init__(f"{content_type} is not JSON : {self.body}")


class MergeError(TrelloError):
    """A page could not be appended to the rows accumulated so far.

    Both halves are kept so the caller can salvage what was fetched:
    ``partial`` holds the accumulated rows, ``page`` the page that failed.
    """

    def __init__(self, message: str, *, partial: Any, page: Any) -> None:
        self.partial = partial
        self.page = page
        super().__init__(message)
