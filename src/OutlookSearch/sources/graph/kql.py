"""Microsoft Graph `$search` (KQL) compiler.

Text-bearing fields (`subject`, `text`, `body`, `exactPhrase`, `kqlQuery`)
cannot be expressed reliably in `$filter`, so a query that carries any of them
is sent to Graph as a KQL search instead, and every constraint of the query is
re-checked locally by the client predicate.

Rules
- A root `kqlQuery` is used verbatim; a nested one becomes a parenthesized clause.
  Other fields on the same leaf are validated but emit no clause.
- Scalar values are KQL-escaped and double-quoted when they contain anything
  other than letters and digits.
- `$any` -> `(a OR b)`, `$all` -> `(a AND b)`, `$none` -> `NOT a` / `NOT (a OR b)`.
- `exactPhrase` -> `"phrase"` (hyphens escaped as well).
- All clauses of the tree are joined with ` OR `. Branch structure (`$and`,
  `$not`) is not preserved here; the client predicate restores it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Mapping

from OutlookSearch.core.categories import DEFAULT_CATEGORY_TABLE, normalize_category, validate_label
from OutlookSearch.core.errors import QueryValidationError
from OutlookSearch.core.query import (
    AndQuery,
    FieldOperator,
    FieldQuery,
    NotQuery,
    OrQuery,
    Query,
    Term,
    operator_values,
    wire_name,
)
from OutlookSearch.sources.graph.filter import compile_filter

KQL_ESCAPES: AbstractSet[str] = frozenset('\\:(){}[]"*?<>_')
KQL_PHRASE_ESCAPES: AbstractSet[str] = KQL_ESCAPES | {"-"}

_FULL_TEXT_FIELDS = ("kql_query", "exact_phrase", "subject", "text", "body")
_SEARCH_TERM_FIELDS = ("subject", "text", "body")
_ADDRESS_FIELDS = ("from_", "to", "cc", "bcc")


@dataclass(frozen=True, slots=True)
class SearchExpression:
    """Result of compiling a query into KQL.

    Attributes:
        search: KQL expression, or None when the query has no text clauses.
        require_body_client_filter: True when a `body` or `text` constraint was
            seen; the caller must fetch bodies so the predicate can check them.
    """

    search: str | None
    require_body_client_filter: bool


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """Remote query plan for one search call.

    `has_full_text` implies `filter is None`: structural constraints are never
    combined with `$search`, they are enforced by the client predicate instead.
    """

    filter: str | None
    search: str | None
    require_body_client_filter: bool
    has_full_text: bool


EMPTY_PLAN = CompiledQuery(filter=None, search=None, require_body_client_filter=False, has_full_text=False)


@dataclass(slots=True)
class _SearchState:
    clauses: list[str] = field(default_factory=list)
    require_body: bool = False


def has_full_text_intent(node: Query) -> bool:
    """Return True if any node of the tree carries a text-search field."""
    if isinstance(node, (AndQuery, OrQuery)):
        return any(has_full_text_intent(child) for child in node.children)
    if isinstance(node, NotQuery):
        return has_full_text_intent(node.child)
    if isinstance(node, FieldQuery):
        return any(getattr(node, name) is not None for name in _FULL_TEXT_FIELDS)
    raise TypeError(f"Unsupported query node: {type(node).__name__}")


def compile_query(
    query: Query | None,
    *,
    categories: Mapping[str, str] = DEFAULT_CATEGORY_TABLE,
) -> CompiledQuery:
    """Choose between filter mode and search mode and compile the query.

    Args:
        query: Query tree, or None for an unfiltered listing.
        categories: Category table shared by all compilers.

    Returns:
        The compiled plan.

    Raises:
        QueryValidationError: If the query is malformed.
    """
    if query is None:
        return EMPTY_PLAN
    if has_full_text_intent(query):
        expression = compile_search(query, categories=categories)
        return CompiledQuery(
            filter=None,
            search=expression.search,
            require_body_client_filter=expression.require_body_client_filter,
            has_full_text=True,
        )
    return CompiledQuery(
        filter=compile_filter(query, categories=categories),
        search=None,
        require_body_client_filter=False,
        has_full_text=False,
    )


def compile_search(
    query: Query,
    *,
    categories: Mapping[str, str] = DEFAULT_CATEGORY_TABLE,
) -> SearchExpression:
    """Compile the text clauses of a query into one KQL expression.

    Structural fields produce no clause but are still validated, so an
    invalid category fails here rather than during the scan.

    Raises:
        QueryValidationError: On empty values, empty operators or invalid categories.
    """
    state = _SearchState()
    if isinstance(query, FieldQuery) and query.kql_query is not None:
        _require_text("kql_query", query.kql_query)
        _leaf_clauses(query, state, categories)
        return SearchExpression(search=query.kql_query, require_body_client_filter=state.require_body)

    _walk(query, state, categories)
    search = " OR ".join(state.clauses) if state.clauses else None
    return SearchExpression(search=search, require_body_client_filter=state.require_body)


def _walk(node: Query, state: _SearchState, categories: Mapping[str, str]) -> None:
    if isinstance(node, (AndQuery, OrQuery)):
        for child in node.children:
            _walk(child, state, categories)
        return
    if isinstance(node, NotQuery):
        _walk(node.child, state, categories)
        return
    if not isinstance(node, FieldQuery):
        raise TypeError(f"Unsupported query node: {type(node).__name__}")

    if node.kql_query is not None:
        # The raw expression replaces the leaf's own clauses; the other fields are only checked.
        state.clauses.append(f"({_require_text('kql_query', node.kql_query)})")
        checked = _SearchState()
        _leaf_clauses(node, checked, categories)
        state.require_body = state.require_body or checked.require_body
        return
    _leaf_clauses(node, state, categories)


def _leaf_clauses(node: FieldQuery, state: _SearchState, categories: Mapping[str, str]) -> None:
    for name, value in node.populated():
        if name == "kql_query":
            continue
        if name == "exact_phrase":
            state.clauses.append(phrase_clause(_require_text(name, value)))
        elif name in _SEARCH_TERM_FIELDS:
            state.clauses.extend(_term_clauses(name, value))  # type: ignore[arg-type]
            if name in ("text", "body"):
                state.require_body = True
        elif name == "categories":
            for raw in _operator_terms(name, value):  # type: ignore[arg-type]
                normalize_category(raw, table=categories, strict=True)
        elif name == "label":
            for raw in _operator_terms(name, value):  # type: ignore[arg-type]
                validate_label(raw)
        elif name in _ADDRESS_FIELDS:
            for raw in _operator_terms(name, value):  # type: ignore[arg-type]
                _require_text(name, raw)


def _term_clauses(name: str, term: Term) -> list[str]:
    if not isinstance(term, FieldOperator):
        return [kql_clause(_require_text(name, term))]

    _operator_terms(name, term)
    clauses: list[str] = []
    if term.ANY:
        clauses.append(_group("OR", [kql_clause(_require_text(name, v)) for v in term.ANY]))
    if term.ALL:
        clauses.append(_group("AND", [kql_clause(_require_text(name, v)) for v in term.ALL]))
    if term.NONE:
        excluded = [kql_clause(_require_text(name, v)) for v in term.NONE]
        clauses.append(f"NOT {_group('OR', excluded)}")
    return clauses


def _group(op: str, parts: list[str]) -> str:
    if len(parts) == 1:
        return parts[0]
    return "(" + f" {op} ".join(parts) + ")"


def _operator_terms(name: str, term: Term) -> tuple[str, ...]:
    if isinstance(term, FieldOperator) and term.is_empty():
        raise QueryValidationError(f"Unknown field operator for {wire_name(name)}: {term!r}")
    return operator_values(term)


def _require_text(name: str, raw: object) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise QueryValidationError(f"Invalid {wire_name(name)} value: empty string")
    return raw


def escape_kql(value: str, *, escapes: AbstractSet[str] = KQL_ESCAPES) -> str:
    """Backslash-escape KQL special characters.

    Args:
        value: Raw term.
        escapes: Characters to escape.

    Returns:
        Escaped term.
    """
    return "".join(f"\\{ch}" if ch in escapes else ch for ch in value)


def kql_clause(value: str) -> str:
    """Build a search clause for one term, quoting it unless purely alphanumeric."""
    term = value.strip()
    escaped = escape_kql(term)
    if all(ch.isalnum() for ch in term):
        return escaped
    return f'"{escaped}"'


def phrase_clause(phrase: str) -> str:
    """Build a quoted exact-phrase clause."""
    return f'"{escape_kql(phrase.strip(), escapes=KQL_PHRASE_ESCAPES)}"'
