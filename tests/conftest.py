from __future__ import annotations

import io
import json
from datetime import datetime, timedelta, timezone
from email.message import Message
from typing import Any
from urllib.error import HTTPError
from urllib.parse import parse_qs, urlsplit

import pytest


def _headers(content_type: str) -> Message:
    headers = Message()
    headers["Content-Type"] = content_type
    return headers


class FakeResponse:
    def __init__(self, body: str, content_type: str = "application/json; charset=utf-8") -> None:
        self._body = body.encode("utf-8")
        self.headers = _headers(content_type)
        self.status = 200

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


def json_response(value: Any) -> FakeResponse:
    return FakeResponse(json.dumps(value))


def http_error(status: int, reason: str, body: str = "") -> HTTPError:
    return HTTPError(
        "https://api.trello.com/1/x",
        status,
        reason,
        _headers("text/plain"),
        io.BytesIO(body.encode("utf-8")),
    )


class FakeTrello:
    """Stands in for urlopen and replays queued responses in order."""

    def __init__(self) -> None:
        self.responses: list[Any] = []
        self.requests: list[Any] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def __call__(self, req: Any, timeout: float | None = None) -> Any:
        self.requests.append(req)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {req.full_url}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    def params(self, index: int = -1) -> dict[str, str]:
        query = urlsplit(self.requests[index].full_url).query
        return {k: v[0] for k, v in parse_qs(query, keep_blank_values=True).items()}

    def path(self, index: int = -1) -> str:
        return urlsplit(self.requests[index].full_url).path


@pytest.fixture()
def fake_trello(monkeypatch: pytest.MonkeyPatch) -> FakeTrello:
    fake = FakeTrello()
    monkeypatch.setattr("trellor.fetch.urlopen", fake)
    return fake


@pytest.fixture(autouse=True)
def _clean_trello_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so values written by load_env are undone after each test
    for name in ("TRELLO_API_KEY", "TRELLO_TOKEN", "TRELLO_BASE_URL", "TRELLO_TIMEOUT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


BASE_DATE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_actions(count: int, *, start: int = 0) -> list[dict[str, Any]]:
    """Newest-first actions, one minute apart, like Trello returns them."""
    rows = []
    for i in range(start, start + count):
        date = BASE_DATE - timedelta(minutes=i)
        rows.append(
            {
                "id": f"{10_000_000 - i:024x}",
                "type": "commentCard",
                "date": date.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
                "data": {"text": f"comment {i}", "card": {"id": "c1"}},
            }
        )
    return rows
