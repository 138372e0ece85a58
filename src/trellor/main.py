#!/usr/bin/env python3
"""trellor CLI entry point.

This module implements the `trellor` command (see `pyproject.toml` scripts):

- `trellor get URL ...` fetches any endpoint or absolute URL.
- `trellor resource PARENT CHILD ID ...` fetches e.g. the cards of a board.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn

import typer

from .config import Settings, load_env, resolve_settings
from .errors import MergeError, TransportError, TrelloError
from .fetch import TrelloClient
from .flatten import is_tabular
from .resources import build_url, default_query
from .retry import RetryPolicy, call_with_retry


class OutputFormat(str, Enum):
    """Supported output formats for CLI commands."""

    json = "json"
    csv = "csv"


def _die(message: str, *, code: int = 1) -> NoReturn:
    """Print a user-facing error message and exit."""

    typer.echo(message, err=True)
    raise typer.Exit(code=code)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("trellor").setLevel(level)


def _parse_query(pairs: list[str] | None, limit: int | None) -> dict[str, Any]:
    query: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            _die(f"Invalid --query value {pair!r}; expected KEY=VALUE.")
        query[key] = value
    if limit is not None:
        query["limit"] = limit
    try:
        int(query.get("limit", 0))
    except ValueError:
        _die(f"Invalid limit {query['limit']!r}; expected a whole number.")
    return query


def _render(result: Any, fmt: OutputFormat) -> str:
    if is_tabular(result):
        if fmt == OutputFormat.csv:
            return result.to_csv(index=False)
        return result.to_json(orient="records", indent=2) + "\n"
    if fmt == OutputFormat.csv:
        _die(f"Cannot write {type(result).__name__} as CSV; use --format json.")
    return json.dumps(result, indent=2) + "\n"


def _write(content: str, *, out: str | None) -> None:
    if out is None:
        typer.echo(content, nl=False)
    else:
        Path(out).expanduser().write_text(content, encoding="utf-8")


def _fetch(
    settings: Settings,
    path_or_url: str,
    *,
    query: dict[str, Any],
    paging: bool,
    retries: int,
    fmt: OutputFormat,
    out: str | None,
) -> None:
    with TrelloClient(
        settings.credentials(),
        base_url=settings.base_url,
        timeout_s=settings.timeout_s,
    ) as client:
        try:
            result = call_with_retry(
                client.get,
                path_or_url,
                query,
                paging=paging,
                policy=RetryPolicy(max_attempts=max(retries, 1)),
            )
        except MergeError as e:
            # Keep what was fetched before the incompatible page.
            _write(_render(e.partial, fmt), out=out)
            _die(f"Paging stopped: {e}")
        except (TrelloError, TransportError) as e:
            _die(f"Error fetching data: {e}")

    _write(_render(result, fmt), out=out)


app = typer.Typer(help="Fetch and flatten data from the Trello REST API")


@app.callback()
def _root(
    ctx: typer.Context,
    env_file: str | None = typer.Option(
        None,
        "--env-file",
        help="Path to a .env file (defaults to ./.env when present).",
    ),
    api_key: str | None = typer.Option(
        None, "--api-key", help="Trello API key (or set TRELLO_API_KEY)."
    ),
    token: str | None = typer.Option(
        None, "--token", help="Trello token (or set TRELLO_TOKEN)."
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="-v for progress, -vv for debug."
    ),
) -> None:
    """Initialize global CLI state (env, logging and credentials)."""

    _configure_logging(verbose)
    load_env(env_file)
    try:
        settings = resolve_settings(api_key=api_key, token=token)
    except ValueError as e:
        _die(str(e))
    ctx.obj = settings


@app.command("get")
def get(
    ctx: typer.Context,
    url: str = typer.Argument(
        ..., help="API path (e.g. boards/<id>/cards) or an absolute URL."
    ),
    query: list[str] | None = typer.Option(
        None, "--query", "-q", help="Extra query parameter as KEY=VALUE (repeatable)."
    ),
    limit: int | None = typer.Option(None, "--limit", help="Rows per request (max 1000)."),
    paging: bool = typer.Option(False, "--paging", help="Follow pages past 1000 rows."),
    retries: int = typer.Option(
        1, "--retries", help="Attempts for transient server errors."
    ),
    format: OutputFormat = typer.Option(OutputFormat.json, "--format"),
    out: str | None = typer.Option(None, "--out"),
) -> None:
    """Fetch a URL and print the flattened result."""

    _fetch(
        ctx.obj,
        url,
        query=_parse_query(query, limit),
        paging=paging,
        retries=retries,
        fmt=format,
        out=out,
    )


@app.command("resource")
def resource(
    ctx: typer.Context,
    parent: str = typer.Argument(..., help="Parent resource, e.g. board."),
    child: str = typer.Argument(..., help="Child resource, e.g. cards or comments."),
    resource_id: str = typer.Argument(..., help="Id of the parent resource."),
    query: list[str] | None = typer.Option(
        None, "--query", "-q", help="Extra query parameter as KEY=VALUE (repeatable)."
    ),
    limit: int | None = typer.Option(None, "--limit", help="Rows per request (max 1000)."),
    paging: bool = typer.Option(False, "--paging", help="Follow pages past 1000 rows."),
    retries: int = typer.Option(
        1, "--retries", help="Attempts for transient server errors."
    ),
    format: OutputFormat = typer.Option(OutputFormat.json, "--format"),
    out: str | None = typer.Option(None, "--out"),
) -> None:
    """Fetch the CHILD items of a PARENT resource."""

    settings: Settings = ctx.obj
    _fetch(
        settings,
        build_url(parent, child, resource_id, base_url=settings.base_url),
        query={**default_query(child), **_parse_query(query, limit)},
        paging=paging,
        retries=retries,
        fmt=format,
        out=out,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the `trellor` script."""

    if argv is None:
        app()
        return 0  # pragma: no cover

    try:
        rv = app(args=argv, standalone_mode=False)
    except typer.Exit as e:
        return int(e.exit_code)
    # click hands the exit code back instead of raising when not standalone
    return rv if isinstance(rv, int) else 0


if __name__ == "__main__":
    raise SystemExit(main())
