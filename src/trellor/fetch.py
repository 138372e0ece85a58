"""Request executor, pager and client for the Trello REST API.

``get_flat`` sends one authenticated GET and flattens the JSON body into a
page. ``trello_get`` repeats it, walking backwards in time with the
``before`` cursor until a short page comes back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from urllib.request import Request, urlopen

import pandas as pd

from .errors import FormatError, HttpError
from .flatten import flatten_page, is_tabular, merge_pages
from .resources import API_BASE_URL, build_url, default_query

logger = logging.getLogger(__name__)

TRELLO_BASE_URL = API_BASE_URL
PAGE_LIMIT = 1000
DEFAULT_TIMEOUT_S = 20.0
USER_AGENT = "trellor"

_REDACTED_PARAMS = {"token"}


@dataclass(frozen=True, slots=True)
class TrelloToken:
    """API key plus member token, sent as query parameters."""

    api_key: str
    token: str

    def params(self) -> dict[str, str]:
        return {"key": self.api_key, "token": self.token}


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _build_request_url(url: str, params: dict[str, Any]) -> str:
    parts = urlsplit(url)
    merged = dict(parse_qsl(parts.query, keep_blank_values=True))
    merged.update({k: _param_value(v) for k, v in params.items() if v is not None})
    return urlunsplit(parts._replace(query=urlencode(merged)))


def _redact(url: str) -> str:
    parts = urlsplit(url)
    pairs = [
        (k, "***" if k in _REDACTED_PARAMS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(pairs, safe="*")))


def _prepare_query(query: dict[str, Any] | None) -> dict[str, Any]:
    prepared = dict(query or {})
    limit = prepared.get("limit")
    if limit is None:
        prepared["limit"] = PAGE_LIMIT
    else:
        try:
            requested = int(limit)
        except (TypeError, ValueError):
            raise ValueError(f"limit must be a whole number, got {limit!r}") from None
        if requested > PAGE_LIMIT:
            logger.warning(
                "limit=%s exceeds the per-request maximum; using %d", limit, PAGE_LIMIT
            )
            requested = PAGE_LIMIT
        prepared["limit"] = requested
    return prepared


def get_flat(
    url: str,
    token: TrelloToken | None = None,
    query: dict[str, Any] | None = None,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> Any:
    """GET ``url`` and return the flattened page.

    Args:
        url: Absolute endpoint URL. Parameters already in it are kept.
        token: Credentials, or None for public resources.
        query: Extra parameters. ``limit`` defaults to and is capped at 1000.
        timeout_s: Socket timeout for the request.

    Returns:
        A DataFrame for list-of-object (or empty) responses, otherwise the
        decoded JSON value.

    Raises:
        HttpError: Non-2xx response.
        FormatError: The response is not ``application/json`` or its body
            does not parse as JSON.
        ValueError: ``limit`` is not a whole number.
        urllib.error.URLError: The request could not be sent or received.
    """
    params = _prepare_query(query)
    merged = {**(token.params() if token is not None else {}), **params}
    request_url = _build_request_url(url, merged)
    logger.info("Request URL: %s", _redact(request_url))

    req = Request(
        request_url,
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
    )
    try:
        with urlopen(req, timeout=timeout_s) as resp:
            content_type = resp.headers.get_content_type()
            charset = resp.headers.get_content_charset() or "utf-8"
            body = resp.read()
    except HTTPError as e:
        try:
            detail = e.read().decode("utf-8", errors="replace")
        except OSError:
            detail = ""
        raise HttpError(e.code, str(e.reason), detail, url=_redact(request_url)) from e

    try:
        raw = body.decode(charset, errors="replace")
    except LookupError:
        logger.debug("Unknown charset %r, decoding as utf-8", charset)
        raw = body.decode("utf-8", errors="replace")

    if content_type != "application/json":
        raise FormatError(content_type, raw)

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FormatError(content_type, raw) from e

    return flatten_page(value)


def _keep_going(batch: Any) -> bool:
    if not is_tabular(batch):
        logger.info("Response format is not suitable for paging - finished.")
        return False
    return len(batch) == PAGE_LIMIT


def _set_before(batch: pd.DataFrame) -> str | None:
    """Id of the oldest row in ``batch``; the first one wins a tie."""
    if "id" not in batch.columns:
        return None

    if "date" in batch.columns:
        dates = pd.to_datetime(batch["date"], utc=True, errors="coerce").dropna()
        if not dates.empty:
            oldest = dates.index[dates == dates.min()][0]
            return str(batch.at[oldest, "id"])

    # Trello ids are ObjectIds, so they sort by creation time.
    return str(batch["id"].dropna().astype(str).min())


def trello_get(
    url: str,
    token: TrelloToken | None = None,
    query: dict[str, Any] | None = None,
    paging: bool = False,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> Any:
    """Fetch ``url``, optionally following the ``before`` cursor.

    Without paging at most 1000 rows come back. With paging, requests repeat
    while full pages keep arriving; each next request asks for rows older
    than the oldest row seen so far.

    Raises:
        MergeError: A later page could not be appended. ``partial`` holds the
            rows accumulated up to that point.
    """
    logger.info("Sending request...")
    query = dict(query or {})

    if not paging:
        flat = get_flat(url, token, query, timeout_s=timeout_s)
        if not is_tabular(flat):
            logger.info("Returning %s", type(flat).__name__)
        elif len(flat) >= PAGE_LIMIT:
            logger.info(
                "Reached %d results; use paging=True to get more", PAGE_LIMIT
            )
        else:
            logger.info("Received %d results", len(flat))
        return flat

    result: Any = None
    while True:
        batch = get_flat(url, token, query, timeout_s=timeout_s)
        if result is None:
            result = batch
        else:
            result = merge_pages(result, batch)

        if not _keep_going(batch):
            break

        before = _set_before(batch)
        if before is None:
            logger.warning("Page has no 'id' column; cannot compute the next cursor")
            break
        query["before"] = before
        logger.info("Received %d results, keep paging...", PAGE_LIMIT)

    if is_tabular(result):
        logger.info("Received last page, %d results in total", len(result))
    return result


class TrelloClient:
    def __init__(
        self,
        token: TrelloToken | None = None,
        *,
        base_url: str = TRELLO_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    def close(self) -> None:
        return None

    def __enter__(self) -> TrelloClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def url_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self._base_url}/{path_or_url.lstrip('/')}"

    def get(
        self,
        path_or_url: str,
        query: dict[str, Any] | None = None,
        *,
        paging: bool = False,
    ) -> Any:
        return trello_get(
            self.url_for(path_or_url),
            self._token,
            query,
            paging,
            timeout_s=self._timeout_s,
        )

    def resource(
        self,
        parent: str,
        child: str | None = None,
        resource_id: str | None = None,
        query: dict[str, Any] | None = None,
        *,
        paging: bool = False,
    ) -> Any:
        """Fetch ``child`` items of the ``parent`` resource ``resource_id``.

        Example: ``client.resource("board", "cards", board_id)``.
        """
        url = build_url(parent, child, resource_id, base_url=self._base_url)
        merged = {**default_query(child), **(query or {})}
        return self.get(url, merged, paging=paging)
