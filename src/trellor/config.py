from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .fetch import DEFAULT_TIMEOUT_S, TRELLO_BASE_URL, TrelloToken

CONFIG_DIR = Path.home() / ".config" / "trellor"


@dataclass(frozen=True, slots=True)
class Settings:
    """Connection settings resolved from CLI flags and the environment."""

    api_key: str | None = None
    token: str | None = None
    base_url: str = TRELLO_BASE_URL
    timeout_s: float = DEFAULT_TIMEOUT_S

    def credentials(self) -> TrelloToken | None:
        """Return the credential pair, or None for anonymous access."""
        if self.api_key and self.token:
            return TrelloToken(api_key=self.api_key, token=self.token)
        return None


_QUOTES = ("'", '"')


def _parse_env_line(line: str) -> tuple[str, str] | None:
    text = line.strip().removeprefix("export ").strip()
    if text.startswith("#"):
        return None
    name, sep, value = text.partition("=")
    name, value = name.strip(), value.strip()
    if not sep or not name:
        return None
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        value = value[1:-1]
    return name, value


def _load_env_from_path(path: Path) -> None:
    """Copy NAME=value pairs from ``path`` into ``os.environ`` (set names win)."""
    if not path.is_file():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        pair = _parse_env_line(line)
        if pair is not None:
            os.environ.setdefault(*pair)


def load_env(env_file: str | None) -> None:
    """
    Load environment variables from .env files.

    Search order:
    1. Explicit env_file if provided.
    2. .env in current working directory.
    3. ~/.config/trellor/.env as a global fallback.

    Variables from earlier sources take precedence (won't be overridden).
    """
    if env_file:
        _load_env_from_path(Path(env_file).expanduser())
    else:
        _load_env_from_path(Path.cwd() / ".env")
        _load_env_from_path(CONFIG_DIR / ".env")


def resolve_settings(
    *,
    api_key: str | None = None,
    token: str | None = None,
    base_url: str | None = None,
    timeout_s: float | None = None,
) -> Settings:
    """Explicit values win over TRELLO_* environment variables."""
    if timeout_s is None:
        raw_timeout = os.getenv("TRELLO_TIMEOUT")
        try:
            timeout_s = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_S
        except ValueError:
            raise ValueError(f"TRELLO_TIMEOUT must be a number, got {raw_timeout!r}") from None

    return Settings(
        api_key=api_key or os.getenv("TRELLO_API_KEY"),
        token=token or os.getenv("TRELLO_TOKEN"),
        base_url=base_url or os.getenv("TRELLO_BASE_URL") or TRELLO_BASE_URL,
        timeout_s=timeout_s,
    )
