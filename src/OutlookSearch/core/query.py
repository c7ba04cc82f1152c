"""Structured mail query model.

A query is a tree of logical nodes (`AndQuery`, `OrQuery`, `NotQuery`) over
`FieldQuery` leaves. The wire/YAML form uses `$and`/`$or`/`$not` for logic,
camelCase field names, and `$any`/`$all`/`$none` for multi-value fields:

    {"$and": [{"from": "alice@example.com"},
              {"subject": {"$any": ["invoice", "receipt"]}}]}
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Iterator, Mapping, Sequence, Union

from dateutil import parser as dt_parser

from OutlookSearch.core.errors import QueryValidationError
from OutlookSearch.utils.log import log


@dataclass(frozen=True, slots=True)
class FieldOperator:
    """Multi-value condition on a single field.

    - `ANY`: at least one value matches
    - `ALL`: every value matches
    - `NONE`: no value matches

    Populated lists are independent constraints and are combined with AND.
    """

    ANY: Sequence[str] = ()
    ALL: Sequence[str] = ()
    NONE: Sequence[str] = ()

    def is_empty(self) -> bool:
        """Return True when no operator list is populated."""
        return not (self.ANY or self.ALL or self.NONE)


Term = Union[str, FieldOperator]


@dataclass(frozen=True, slots=True)
class DateRange:
    """Received-date window: inclusive `gte`, exclusive `lt` (UTC days)."""

    gte: date | None = None
    lt: date | None = None


@dataclass(frozen=True, slots=True)
class FieldQuery:
    """Leaf node: every populated field is a constraint, combined with AND.

    Attributes:
        from_: Sender address or display name.
        to: Any To recipient.
        cc: Any Cc recipient.
        bcc: Any Bcc recipient.
        subject: Subject text.
        body: Body content.
        text: Subject, body or preview text.
        exact_phrase: Phrase that must appear verbatim in subject/body/preview.
        has_attachment: Attachment flag.
        is_read: Read flag.
        date: Received date window.
        categories: Outlook system category (work, personal, ...).
        label: User-created category name (case-sensitive).
        importance: One of high/normal/low.
        kql_query: Raw KQL search expression.
    """

    from_: Term | None = None
    to: Term | None = None
    cc: Term | None = None
    bcc: Term | None = None
    subject: Term | None = None
    body: Term | None = None
    text: Term | None = None
    exact_phrase: str | None = None
    has_attachment: bool | None = None
    is_read: bool | None = None
    date: DateRange | None = None
    categories: Term | None = None
    label: Term | None = None
    importance: str | None = None
    kql_query: str | None = None

    def populated(self) -> Iterator[tuple[str, object]]:
        """Yield `(field_name, value)` for each field that is set."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                yield f.name, value


@dataclass(frozen=True, slots=True)
class AndQuery:
    """All children must match."""

    children: Sequence[Query]


@dataclass(frozen=True, slots=True)
class OrQuery:
    """At least one child must match."""

    children: Sequence[Query]


@dataclass(frozen=True, slots=True)
class NotQuery:
    """The child must not match."""

    child: Query


Query = Union[AndQuery, OrQuery, NotQuery, FieldQuery]


def operator_values(term: Term) -> tuple[str, ...]:
    """Flatten a scalar term or operator into the list of its raw values."""
    if isinstance(term, FieldOperator):
        return tuple(term.ANY) + tuple(term.ALL) + tuple(term.NONE)
    return (term,)


# Wire/YAML key -> FieldQuery attribute.
FIELD_ATTRIBUTES: dict[str, str] = {
    "from": "from_",
    "to": "to",
    "cc": "cc",
    "bcc": "bcc",
    "subject": "subject",
    "body": "body",
    "text": "text",
    "exactPhrase": "exact_phrase",
    "hasAttachment": "has_attachment",
    "isRead": "is_read",
    "date": "date",
    "categories": "categories",
    "label": "label",
    "importance": "importance",
    "kqlQuery": "kql_query",
}

_WIRE_NAMES = {attr: key for key, attr in FIELD_ATTRIBUTES.items()}


def wire_name(attribute: str) -> str:
    """Return the wire/YAML key for a `FieldQuery` attribute name."""
    return _WIRE_NAMES.get(attribute, attribute)


_LOGICAL_KEYS = ("$and", "$or", "$not")
_OPERATOR_KEYS = {"$any": "ANY", "$all": "ALL", "$none": "NONE"}
_TERM_ATTRIBUTES = frozenset({"from_", "to", "cc", "bcc", "subject", "body", "text", "categories", "label"})
_FLAG_ATTRIBUTES = frozenset({"has_attachment", "is_read"})
_IMPORTANCE_VALUES = ("high", "normal", "low")


def parse_query(value: Any, config_key: str = "query") -> Query:
    """Parse the wire/YAML form of a query into the query model.

    Logical keys win over leaf keys on the same mapping; sibling leaf keys are
    ignored. Value emptiness is not checked here, the compilers reject it.

    Args:
        value: Query mapping.
        config_key: Key path used in error messages.

    Returns:
        Parsed query tree.

    Raises:
        QueryValidationError: If the shape, a key or a value type is invalid.
    """
    if not isinstance(value, Mapping):
        raise QueryValidationError(f"{config_key} must be an object")

    logical = [key for key in _LOGICAL_KEYS if key in value]
    if len(logical) > 1:
        raise QueryValidationError(f"{config_key} must use only one of $and/$or/$not, got {logical}")
    if not logical:
        return _parse_leaf(value, config_key)

    key = logical[0]
    ignored = [k for k in value if k != key]
    if ignored:
        log.debug("Ignoring leaf keys next to %s at %s: %s", key, config_key, ignored)
    if key == "$not":
        return NotQuery(parse_query(value[key], f"{config_key}.$not"))

    raw_children = value[key]
    if not isinstance(raw_children, list) or not raw_children:
        raise QueryValidationError(f"{config_key}.{key} must be a non-empty list")
    children = tuple(parse_query(child, f"{config_key}.{key}[{idx}]") for idx, child in enumerate(raw_children))
    return AndQuery(children) if key == "$and" else OrQuery(children)


def _parse_leaf(value: Mapping[str, Any], config_key: str) -> FieldQuery:
    kwargs: dict[str, Any] = {}
    for key, raw in value.items():
        attr = FIELD_ATTRIBUTES.get(key) if isinstance(key, str) else None
        if attr is None:
            raise QueryValidationError(f"{config_key} has unknown field: {key}")
        path = f"{config_key}.{key}"
        if attr in _TERM_ATTRIBUTES:
            kwargs[attr] = _parse_term(raw, path)
        elif attr in _FLAG_ATTRIBUTES:
            if not isinstance(raw, bool):
                raise QueryValidationError(f"{path} must be a boolean")
            kwargs[attr] = raw
        elif attr == "date":
            kwargs[attr] = _parse_date_range(raw, path)
        elif attr == "importance":
            if not isinstance(raw, str) or raw.strip().lower() not in _IMPORTANCE_VALUES:
                raise QueryValidationError(f"{path} must be one of {list(_IMPORTANCE_VALUES)}")
            kwargs[attr] = raw.strip().lower()
        else:
            if not isinstance(raw, str):
                raise QueryValidationError(f"{path} must be a string")
            kwargs[attr] = raw
    return FieldQuery(**kwargs)


def _parse_term(raw: Any, config_key: str) -> Term:
    if isinstance(raw, str):
        return raw
    if not isinstance(raw, Mapping):
        raise QueryValidationError(f"{config_key} must be a string or an object with $any/$all/$none")

    unknown = [k for k in raw if k not in _OPERATOR_KEYS]
    if unknown:
        raise QueryValidationError(f"Unknown field operator for {config_key}: {unknown}")
    lists: dict[str, tuple[str, ...]] = {}
    for key, attr in _OPERATOR_KEYS.items():
        if key not in raw:
            continue
        items = raw[key]
        if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
            raise QueryValidationError(f"{config_key}.{key} must be a list of strings")
        lists[attr] = tuple(items)
    return FieldOperator(**lists)


def _parse_date_range(raw: Any, config_key: str) -> DateRange:
    if not isinstance(raw, Mapping):
        raise QueryValidationError(f"{config_key} must be an object with $gte/$lt")
    unknown = [k for k in raw if k not in ("$gte", "$lt")]
    if unknown:
        raise QueryValidationError(f"{config_key} has unknown keys: {unknown}")
    return DateRange(
        gte=_parse_day(raw.get("$gte"), f"{config_key}.$gte"),
        lt=_parse_day(raw.get("$lt"), f"{config_key}.$lt"),
    )


def _parse_day(raw: Any, config_key: str) -> date | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise QueryValidationError(f"{config_key} must be a date (YYYY-MM-DD)")
    try:
        return dt_parser.isoparse(raw.strip()).date()
    except (ValueError, OverflowError) as e:
        raise QueryValidationError(f"{config_key} is not a valid date: {raw!r}") from e


def dump_query(query: Query) -> dict[str, Any]:
    """Render a query tree back into its wire/YAML mapping."""
    if isinstance(query, AndQuery):
        return {"$and": [dump_query(child) for child in query.children]}
    if isinstance(query, OrQuery):
        return {"$or": [dump_query(child) for child in query.children]}
    if isinstance(query, NotQuery):
        return {"$not": dump_query(query.child)}
    if not isinstance(query, FieldQuery):
        raise TypeError(f"Unsupported query node: {type(query).__name__}")

    out: dict[str, Any] = {}
    for name, value in query.populated():
        if isinstance(value, FieldOperator):
            value = {
                key: list(getattr(value, attr))
                for key, attr in _OPERATOR_KEYS.items()
                if getattr(value, attr)
            }
        elif isinstance(value, DateRange):
            value = {
                key: day.isoformat()
                for key, day in (("$gte", value.gte), ("$lt", value.lt))
                if day is not None
            }
        out[wire_name(name)] = value
    return out
