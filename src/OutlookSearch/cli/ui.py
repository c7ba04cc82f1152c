"""Click CLI interface definitions.

Defines the command-line interface and routes each command to the runner.
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from dotenv import load_dotenv

from OutlookSearch.cli.runner import CommandRunner
from OutlookSearch.config import AppConfig, NamedQuery, load_config, load_config_with_defaults
from OutlookSearch.config.app import DEFAULT_CONFIG_PATH
from OutlookSearch.core.errors import QueryValidationError
from OutlookSearch.core.models import SearchOptions
from OutlookSearch.core.query import parse_query
from OutlookSearch.services.search import MAX_EXPORT_ITEMS


@click.group(help="OutlookSearch: structured search over an Outlook mailbox via Microsoft Graph.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file (merged over config/default.yml when present).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env before reading the config so the
    Graph access token can be resolved.
    """
    load_dotenv()

    try:
        if DEFAULT_CONFIG_PATH.exists():
            cfg = load_config_with_defaults(config_path)
        else:
            cfg = load_config(config_path)
    except (OSError, TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid config {config_path}: {e}") from e
    ctx.obj = cfg


def _inline_query(raw: str) -> NamedQuery:
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--query") from e
    try:
        return NamedQuery(name=None, query=parse_query(payload))
    except QueryValidationError as e:
        raise click.BadParameter(str(e), param_hint="--query") from e


def _select_queries(cfg: AppConfig, query: str | None, name: str | None) -> tuple[NamedQuery, ...]:
    if query is not None:
        return (_inline_query(query),)
    queries = cfg.search.queries
    if name is not None:
        queries = tuple(q for q in queries if q.name == name)
        if not queries:
            raise click.BadParameter(f"no configured query named {name!r}", param_hint="--name")
    return queries


@cli.command("search")
@click.option("--query", "query_json", help="Inline query as JSON, e.g. '{\"from\": \"a@b.com\"}'.")
@click.option("--name", help="Run only the configured query with this NAME.")
@click.option("--page-size", type=click.IntRange(min=1), help="Results per call (clamped to 1000).")
@click.option("--page-token", help="Continuation token from a previous search.")
@click.option("--include-body/--no-include-body", default=None, help="Fetch full message bodies.")
@click.option("--max-pages", type=click.IntRange(min=1), help="Remote page budget for this call.")
@click.option("--max-items-scanned", type=click.IntRange(min=1), help="Remote item budget for this call.")
@click.pass_context
def search_cmd(
    ctx: click.Context,
    query_json: str | None,
    name: str | None,
    page_size: int | None,
    page_token: str | None,
    include_body: bool | None,
    max_pages: int | None,
    max_items_scanned: int | None,
) -> None:
    """Search messages with an inline query or the configured queries.

    Raises:
        click.Abort: When the search fails.
    """
    cfg: AppConfig = ctx.obj
    queries = _select_queries(cfg, query_json, name)
    if not queries:
        raise click.UsageError("No query given: pass --query or configure queries in the config file")
    if page_token and len(queries) > 1:
        raise click.UsageError("--page-token needs a single query (use --query or --name)")

    options = SearchOptions(
        page_size=page_size or cfg.search.page_size,
        include_body=cfg.search.include_body if include_body is None else include_body,
        max_pages=max_pages or cfg.search.max_pages,
        max_items_scanned=max_items_scanned or cfg.search.max_items_scanned,
        page_token=page_token,
    )
    CommandRunner(cfg).run_search(ctx.command.name, queries, options)


@cli.command("get")
@click.argument("message_id")
@click.option("--body/--no-body", "include_body", default=True, show_default=True, help="Fetch the message body.")
@click.pass_context
def get_cmd(ctx: click.Context, message_id: str, include_body: bool) -> None:
    """Fetch one message by id.

    Raises:
        click.Abort: When the request fails.
    """
    CommandRunner(ctx.obj).run_get(ctx.command.name, message_id, include_body=include_body)


@cli.command("categories")
@click.pass_context
def categories_cmd(ctx: click.Context) -> None:
    """List the mailbox master categories.

    Raises:
        click.Abort: When the request fails.
    """
    CommandRunner(ctx.obj).run_categories(ctx.command.name)


@cli.command("export")
@click.option("--query", "query_json", help="Inline query as JSON; omit to export the whole mailbox.")
@click.option("--name", help="Export the configured query with this NAME.")
@click.option("--filename", help="CSV file name under <output.base_dir>/csv.")
@click.option("--max-items", type=click.IntRange(min=1, max=MAX_EXPORT_ITEMS), help="Maximum messages to export.")
@click.option("--page-size", type=click.IntRange(min=1, max=1000), default=50, show_default=True)
@click.pass_context
def export_cmd(
    ctx: click.Context,
    query_json: str | None,
    name: str | None,
    filename: str | None,
    max_items: int | None,
    page_size: int,
) -> None:
    """Export matching messages, with bodies, to CSV.

    Raises:
        click.Abort: When the export fails.
    """
    cfg: AppConfig = ctx.obj
    named = None
    if query_json is not None or name is not None:
        named = _select_queries(cfg, query_json, name)[0]
    CommandRunner(cfg).run_export(
        ctx.command.name,
        named,
        filename=filename or cfg.output.csv_filename,
        max_items=max_items or cfg.output.export_max_items,
        page_size=page_size,
    )
