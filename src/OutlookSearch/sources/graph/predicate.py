"""Client-side message predicate.

Re-evaluates a `Query` locally against fetched messages. Graph's `$search`
is approximate (tokenized, stemmed, no branch structure), so when a query runs
in search mode every page is passed through this predicate and only exact
matches are kept.

Matching
- Text fields: case-insensitive, whitespace-collapsed substring containment.
- Address fields: containment against both address and display name.
- `categories`: normalized leniently; an invalid term never matches.
- `label`: exact, case-sensitive membership.
- `date`: inclusive `gte`, exclusive `lt`; missing/unparsable timestamps never match.
- A leaf with no recognized constraint matches everything.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, time, timezone
from typing import Mapping, Sequence

from dateutil import parser as dt_parser

from OutlookSearch.core.categories import DEFAULT_CATEGORY_TABLE, normalize_category
from OutlookSearch.core.models import Message, Recipient
from OutlookSearch.core.query import (
    AndQuery,
    DateRange,
    FieldOperator,
    FieldQuery,
    NotQuery,
    OrQuery,
    Query,
    Term,
)

Predicate = Callable[[Message], bool]

_WHITESPACE_RE = re.compile(r"\s+")


def build_predicate(
    query: Query | None,
    *,
    categories: Mapping[str, str] = DEFAULT_CATEGORY_TABLE,
) -> Predicate:
    """Compile a query into a message predicate.

    Args:
        query: Query tree; None matches every message.
        categories: Category table shared with the remote compilers.

    Returns:
        A pure function `Message -> bool`.
    """
    if query is None:
        return lambda message: True
    return _node_predicate(query, categories)


def _node_predicate(node: Query, categories: Mapping[str, str]) -> Predicate:
    if isinstance(node, AndQuery):
        children = [_node_predicate(child, categories) for child in node.children]
        return lambda message: all(child(message) for child in children)
    if isinstance(node, OrQuery):
        children = [_node_predicate(child, categories) for child in node.children]
        return lambda message: any(child(message) for child in children)
    if isinstance(node, NotQuery):
        child = _node_predicate(node.child, categories)
        return lambda message: not child(message)
    if isinstance(node, FieldQuery):
        return _leaf_predicate(node, categories)
    raise TypeError(f"Unsupported query node: {type(node).__name__}")


def _leaf_predicate(node: FieldQuery, categories: Mapping[str, str]) -> Predicate:
    predicates: list[Predicate] = []

    if node.has_attachment is not None:
        expected_attachment = node.has_attachment
        predicates.append(lambda m: m.has_attachments is expected_attachment)
    if node.is_read is not None:
        expected_read = node.is_read
        predicates.append(lambda m: m.is_read is expected_read)
    if node.importance is not None:
        expected_importance = node.importance.lower()
        predicates.append(lambda m: (m.importance or "").lower() == expected_importance)
    if node.date is not None:
        window = node.date
        predicates.append(lambda m: _matches_date(m.received_date_time, window))

    if node.from_ is not None:
        from_term = node.from_
        predicates.append(lambda m: _matches_recipients([m.sender] if m.sender else [], from_term))
    if node.to is not None:
        to_term = node.to
        predicates.append(lambda m: _matches_recipients(m.to_recipients, to_term))
    if node.cc is not None:
        cc_term = node.cc
        predicates.append(lambda m: _matches_recipients(m.cc_recipients, cc_term))
    if node.bcc is not None:
        bcc_term = node.bcc
        predicates.append(lambda m: _matches_recipients(m.bcc_recipients, bcc_term))

    if node.subject is not None:
        subject_term = node.subject
        predicates.append(lambda m: _evaluate(subject_term, lambda t: t in _normalize(m.subject)))
    if node.body is not None:
        body_term = node.body
        predicates.append(lambda m: _evaluate(body_term, lambda t: t in _normalize(_body_content(m))))
    if node.text is not None:
        text_term = node.text
        predicates.append(lambda m: _evaluate(text_term, _text_matcher(m)))
    if node.exact_phrase is not None:
        phrase = _normalize_term(node.exact_phrase)
        predicates.append(lambda m: phrase is not None and _text_matcher(m)(phrase))

    if node.categories is not None:
        category_term = node.categories
        predicates.append(lambda m: _matches_categories(m.categories, category_term, categories))
    if node.label is not None:
        label_term = node.label
        predicates.append(lambda m: _evaluate(label_term, lambda t: t in m.categories, _normalize_label))

    if not predicates:
        return lambda message: True
    return lambda message: all(predicate(message) for predicate in predicates)


def _evaluate(
    term: Term,
    matcher: Callable[[str], bool],
    normalize: Callable[[str], str | None] | None = None,
) -> bool:
    """Evaluate a scalar term or field operator with a per-term matcher.

    Terms that normalize to nothing are dropped. An operator whose lists are
    all empty carries no constraint and never matches.
    """
    normalize = normalize or _normalize_term
    if not isinstance(term, FieldOperator):
        normalized = normalize(term)
        return normalized is not None and matcher(normalized)

    has_constraint = False
    if term.ANY:
        has_constraint = True
        terms = _normalized_terms(term.ANY, normalize)
        if not terms or not any(matcher(t) for t in terms):
            return False
    if term.ALL:
        has_constraint = True
        terms = _normalized_terms(term.ALL, normalize)
        if not terms or not all(matcher(t) for t in terms):
            return False
    if term.NONE:
        has_constraint = True
        if any(matcher(t) for t in _normalized_terms(term.NONE, normalize)):
            return False
    return has_constraint


def _normalized_terms(values: Sequence[str], normalize: Callable[[str], str | None]) -> list[str]:
    out: list[str] = []
    for value in values:
        normalized = normalize(value)
        if normalized is not None:
            out.append(normalized)
    return out


def _matches_recipients(recipients: Sequence[Recipient], term: Term) -> bool:
    normalized = [(_normalize(r.address), _normalize(r.name)) for r in recipients]
    return _evaluate(term, lambda t: any(t in address or t in name for address, name in normalized))


def _matches_categories(message_categories: Sequence[str], term: Term, table: Mapping[str, str]) -> bool:
    def match(raw: str) -> bool:
        canonical = normalize_category(raw, table=table, strict=False)
        return canonical is not None and canonical in message_categories

    return _evaluate(term, match, _keep_raw)


def _matches_date(received: str | None, window: DateRange) -> bool:
    timestamp = _parse_timestamp(received)
    if timestamp is None:
        return False
    if window.gte is not None and timestamp < _day_start(window.gte):
        return False
    if window.lt is not None and timestamp >= _day_start(window.lt):
        return False
    return True


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = dt_parser.isoparse(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _text_matcher(message: Message) -> Callable[[str], bool]:
    sources = (
        _normalize(message.subject),
        _normalize(_body_content(message)),
        _normalize(message.body_preview),
    )
    return lambda term: any(term in source for source in sources)


def _body_content(message: Message) -> str:
    return message.body.content if message.body else ""


def _normalize_term(value: str) -> str | None:
    collapsed = _WHITESPACE_RE.sub(" ", value).strip().lower()
    return collapsed or None


def _normalize(value: str | None) -> str:
    return _normalize_term(value or "") or ""


def _normalize_label(value: str) -> str | None:
    trimmed = value.strip()
    return trimmed or None


def _keep_raw(value: str) -> str | None:
    # Category terms go through normalize_category inside the matcher.
    return value
