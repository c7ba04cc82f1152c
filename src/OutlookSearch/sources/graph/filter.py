"""Microsoft Graph `$filter` compiler.

Compiles the internal `Query` tree into an OData filter expression for
`/me/messages`.

Rules
- `from` with `@` -> equality on `from/emailAddress/address` or `.../name`;
  name-only tokens emit nothing (left to the client predicate).
- `to` / `cc` / `bcc` -> `<coll>/any(r: r/emailAddress/address eq v or r/emailAddress/name eq v)`
- `subject` -> `startswith(subject, v)` for tokens of length >= 3 without `-`
  (Graph rejects `contains()` on messages).
- `categories` -> `categories/any(c: c eq 'Work')` (normalized name)
- `label` -> `categories/any(c: c eq 'Raw Label')` (case-sensitive, as given)
- `hasAttachment` -> `hasAttachments eq true|false`
- `date` -> `receivedDateTime ge|lt YYYY-MM-DDT00:00:00Z`
- `text`, `body`, `exactPhrase`, `kqlQuery`, `importance`, `isRead` emit nothing.

Several fields on one leaf are combined with `and`. Empty groups are dropped
and single-element groups are never wrapped in parentheses.
"""

from __future__ import annotations

from typing import Mapping

from OutlookSearch.core.categories import DEFAULT_CATEGORY_TABLE, normalize_category, validate_label
from OutlookSearch.core.errors import QueryValidationError
from OutlookSearch.core.query import (
    AndQuery,
    DateRange,
    FieldOperator,
    FieldQuery,
    NotQuery,
    OrQuery,
    Query,
    Term,
    wire_name,
)

_RECIPIENT_COLLECTIONS = {
    "to": "toRecipients",
    "cc": "ccRecipients",
    "bcc": "bccRecipients",
}

_TERM_FIELDS = frozenset({"from_", "to", "cc", "bcc", "subject", "body", "text", "categories", "label"})
_SUBJECT_MIN_LEN = 3


def compile_filter(
    query: Query,
    *,
    categories: Mapping[str, str] = DEFAULT_CATEGORY_TABLE,
) -> str | None:
    """Compile a query into a Graph `$filter` expression.

    Args:
        query: Query tree.
        categories: Category table used to normalize category names.

    Returns:
        Filter expression, or None when nothing is expressible server-side.

    Raises:
        QueryValidationError: On empty values, empty operators or invalid categories.
    """
    expr = _emit(query, categories)
    return expr or None


def _emit(node: Query, categories: Mapping[str, str]) -> str:
    if isinstance(node, AndQuery):
        return _chain("and", [_emit(child, categories) for child in node.children])
    if isinstance(node, OrQuery):
        return _chain("or", [_emit(child, categories) for child in node.children])
    if isinstance(node, NotQuery):
        inner = _emit(node.child, categories)
        return f"not ({inner})" if inner else ""
    if isinstance(node, FieldQuery):
        return _chain("and", [_compile_field(name, value, categories) for name, value in node.populated()])
    raise TypeError(f"Unsupported query node: {type(node).__name__}")


def _chain(op: str, parts: list[str]) -> str:
    kept = [part for part in parts if part]
    if not kept:
        return ""
    if len(kept) == 1:
        return kept[0]
    return "(" + f" {op} ".join(kept) + ")"


def _compile_field(name: str, value: object, categories: Mapping[str, str]) -> str:
    if name == "has_attachment":
        return f"hasAttachments eq {'true' if value else 'false'}"
    if name == "date":
        assert isinstance(value, DateRange)
        return _date_expr(value)
    if name in _TERM_FIELDS:
        return _field_expr(name, value, categories)  # type: ignore[arg-type]
    if name in ("exact_phrase", "kql_query"):
        _require_text(name, value)
    return ""


def _field_expr(name: str, term: Term, categories: Mapping[str, str]) -> str:
    if not isinstance(term, FieldOperator):
        return _value_expr(name, term, categories)
    if term.is_empty():
        raise QueryValidationError(f"Unknown field operator for {wire_name(name)}: {term!r}")

    parts: list[str] = []
    if term.ANY:
        parts.append(_chain("or", [_value_expr(name, v, categories) for v in term.ANY]))
    if term.ALL:
        parts.append(_chain("and", [_value_expr(name, v, categories) for v in term.ALL]))
    if term.NONE:
        excluded = _chain("or", [_value_expr(name, v, categories) for v in term.NONE])
        if excluded:
            parts.append(f"not ({excluded})")
    return _chain("and", parts)


def _value_expr(name: str, raw: object, categories: Mapping[str, str]) -> str:
    if name == "categories":
        canonical = normalize_category(raw, table=categories, strict=True)
        return f"categories/any(c: c eq {odata_literal(str(canonical))})"
    if name == "label":
        return f"categories/any(c: c eq {odata_literal(validate_label(raw))})"

    text = _require_text(name, raw)
    if name in ("text", "body"):
        return ""

    literal = odata_literal(text.lower())
    if name == "from_":
        if "@" not in text:
            return ""
        return f"(from/emailAddress/address eq {literal} or from/emailAddress/name eq {literal})"
    if name in _RECIPIENT_COLLECTIONS:
        collection = _RECIPIENT_COLLECTIONS[name]
        return (
            f"{collection}/any(r: r/emailAddress/address eq {literal} "
            f"or r/emailAddress/name eq {literal})"
        )
    if name == "subject":
        if "-" in text or len(text) < _SUBJECT_MIN_LEN:
            return ""
        return f"startswith(subject, {literal})"
    return ""


def _date_expr(window: DateRange) -> str:
    parts: list[str] = []
    if window.gte is not None:
        parts.append(f"receivedDateTime ge {window.gte.isoformat()}T00:00:00Z")
    if window.lt is not None:
        parts.append(f"receivedDateTime lt {window.lt.isoformat()}T00:00:00Z")
    return _chain("and", parts)


def _require_text(name: str, raw: object) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise QueryValidationError(f"Invalid {wire_name(name)} value: empty string")
    return raw


def odata_literal(value: str) -> str:
    """Quote a value as an OData string literal (single quotes doubled)."""
    return "'" + value.replace("'", "''") + "'"
