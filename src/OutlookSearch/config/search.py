"""Search domain configuration and named queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from OutlookSearch.config.common import (
    expect_bool,
    expect_int,
    expect_optional_int,
    expect_str,
    get_required_value,
    get_section,
)
from OutlookSearch.core.errors import QueryValidationError
from OutlookSearch.core.query import Query, parse_query
from OutlookSearch.sources.graph.client import MAX_PAGE_SIZE


@dataclass(frozen=True, slots=True)
class NamedQuery:
    """A configured query with an optional display name."""

    name: str | None
    query: Query


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Store validated search defaults and configured queries.

    Attributes:
        queries: Named queries run by `search` when no inline query is given.
        page_size: Results per search call.
        include_body: Fetch message bodies by default.
        max_pages: Remote page budget per call; None is unbounded.
        max_items_scanned: Remote item budget per call; None is unbounded.
    """

    queries: tuple[NamedQuery, ...]
    page_size: int
    include_body: bool
    max_pages: int | None
    max_items_scanned: int | None


def load_search(raw: Mapping[str, Any]) -> SearchConfig:
    """Load the `search` section and the top-level `queries` list.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing or a query is malformed.
    """
    queries_obj = raw.get("queries") or []
    if not isinstance(queries_obj, list):
        raise TypeError("queries must be a list")
    queries = tuple(parse_named_query(item, f"queries[{idx}]") for idx, item in enumerate(queries_obj))

    section = get_section(raw, "search", required=True)
    return SearchConfig(
        queries=queries,
        page_size=expect_int(get_required_value(section, "page_size", "search.page_size"), "search.page_size"),
        include_body=expect_bool(
            get_required_value(section, "include_body", "search.include_body"),
            "search.include_body",
        ),
        max_pages=expect_optional_int(section.get("max_pages"), "search.max_pages"),
        max_items_scanned=expect_optional_int(section.get("max_items_scanned"), "search.max_items_scanned"),
    )


def check_search(config: SearchConfig) -> None:
    """Validate search domain constraints.

    Raises:
        ValueError: If values violate search constraints.
    """
    if not 1 <= config.page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"search.page_size must be between 1 and {MAX_PAGE_SIZE}")
    if config.max_pages is not None and config.max_pages <= 0:
        raise ValueError("search.max_pages must be null or positive")
    if config.max_items_scanned is not None and config.max_items_scanned <= 0:
        raise ValueError("search.max_items_scanned must be null or positive")
    names = [q.name for q in config.queries if q.name]
    if len(names) != len(set(names)):
        raise ValueError("queries must have unique NAME values")


def parse_named_query(value: Any, config_key: str) -> NamedQuery:
    """Parse one `{NAME, QUERY}` entry.

    Raises:
        TypeError: If the entry is not a mapping.
        ValueError: If keys are unknown or the query is malformed.
    """
    if not isinstance(value, Mapping):
        raise TypeError(f"{config_key} must be an object")
    unknown = {str(k) for k in value} - {"NAME", "QUERY"}
    if unknown:
        raise ValueError(f"{config_key} has unknown keys: {sorted(unknown)}")

    name = None
    if "NAME" in value:
        name = expect_str(value["NAME"], f"{config_key}.NAME").strip() or None
    query_obj = get_required_value(value, "QUERY", f"{config_key}.QUERY")
    try:
        query = parse_query(query_obj, f"{config_key}.QUERY")
    except QueryValidationError as e:
        raise ValueError(str(e)) from e
    return NamedQuery(name=name, query=query)
