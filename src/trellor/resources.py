from __future__ import annotations

import re
from typing import Any

API_BASE_URL = "https://api.trello.com/1"

_SEGMENTS = {
    "action": "actions",
    "attachment": "attachments",
    "board": "boards",
    "card": "cards",
    "checkitem": "checkItems",
    "checklist": "checklists",
    "comment": "actions",
    "customfield": "customFields",
    "label": "labels",
    "list": "lists",
    "member": "members",
    "organization": "organizations",
    "team": "organizations",
}

_CHILD_QUERIES: dict[str, dict[str, Any]] = {
    "comment": {"filter": "commentCard"},
}

_BOARD_URL_RE = re.compile(r"(?:^|[/.])trello\.com/b/([A-Za-z0-9]+)")


def _key(name: str) -> str:
    key = name.strip().lower()
    return key[:-1] if key.endswith("s") else key


def segment(name: str) -> str:
    """Trello path segment for a singular or plural resource name.

    Unknown names are used as given.
    """
    return _SEGMENTS.get(_key(name), name.strip())


def default_query(child: str | None) -> dict[str, Any]:
    if child is None:
        return {}
    return dict(_CHILD_QUERIES.get(_key(child), {}))


def build_url(
    parent: str,
    child: str | None = None,
    resource_id: str | None = None,
    *,
    base_url: str = API_BASE_URL,
) -> str:
    """Build the endpoint URL for ``parent/{resource_id}/child``.

    >>> build_url("board", "cards", "4d5ea62fd76aa1136000000c")
    'https://api.trello.com/1/boards/4d5ea62fd76aa1136000000c/cards'
    """
    if child is not None and not resource_id:
        raise ValueError(f"A {parent} id is required to fetch its {child}")

    parts = [base_url.rstrip("/"), segment(parent)]
    if resource_id:
        parts.append(resource_id)
    if child is not None:
        parts.append(segment(child))
    return "/".join(parts)


def get_id_board(url: str) -> str:
    """Extract the board short id from a ``trello.com/b/<id>/...`` URL."""
    if not url:
        raise ValueError("URL cannot be empty")
    match = _BOARD_URL_RE.search(url)
    if match is None:
        raise ValueError(f"Could not extract board ID from URL: {url}")
    return match.group(1)
