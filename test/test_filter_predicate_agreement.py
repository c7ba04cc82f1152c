"""The structural `$filter` and the client predicate must accept the same messages.

The filter is checked with a small evaluator covering exactly the OData
subset the filter compiler emits. String equality is case-insensitive, as it
is on Graph. The corpus is generated from fixed pools with a seeded RNG.

Address fields only agree while no address or display name in the corpus
contains another one: the filter compares with `eq`, the predicate with
substring containment, so `malice@example.com` passes the predicate for
`alice@example.com` but not the filter. The pools keep that apart and
`test_address_containment_is_wider_than_equality` pins the difference.
"""

import random
import re
import sys
import unittest
from datetime import date, datetime, timezone
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from OutlookSearch.core.models import Message, Recipient
from OutlookSearch.core.query import AndQuery, DateRange, FieldOperator, FieldQuery, NotQuery, OrQuery
from OutlookSearch.sources.graph.filter import compile_filter
from OutlookSearch.sources.graph.predicate import build_predicate

_LITERAL = r"'((?:[^']|'')*)'"
_TOKEN_RE = re.compile(
    r"\s*(?:"
    rf"(?P<recipients>to|cc|bcc)Recipients/any\(r: r/emailAddress/address eq {_LITERAL} "
    rf"or r/emailAddress/name eq '(?:[^']|'')*'\)"
    rf"|categories/any\(c: c eq (?P<category>{_LITERAL})\)"
    rf"|from/emailAddress/(?P<from_field>address|name) eq (?P<from_value>{_LITERAL})"
    r"|hasAttachments eq (?P<attachments>true|false)"
    r"|receivedDateTime (?P<date_op>ge|lt) (?P<date_value>\S+?Z)"
    rf"|startswith\(subject, (?P<subject>{_LITERAL})\)"
    r"|(?P<punct>[()])"
    r"|(?P<word>and|or|not)\b"
    r")"
)


def _unquote(literal: str) -> str:
    return literal[1:-1].replace("''", "'")


def _tokenize(expr: str) -> list[tuple[str, object]]:
    tokens: list[tuple[str, object]] = []
    pos = 0
    while pos < len(expr):
        match = _TOKEN_RE.match(expr, pos)
        if not match or match.end() == pos:
            raise AssertionError(f"Unexpected filter text at {pos}: {expr[pos:]!r}")
        pos = match.end()
        if match.group("punct"):
            tokens.append((match.group("punct"), None))
        elif match.group("word"):
            tokens.append((match.group("word"), None))
        else:
            tokens.append(("atom", match))
    return tokens


def _atom(match: re.Match) -> "callable":
    if match.group("recipients"):
        attr = f"{match.group('recipients')}_recipients"
        value = match.group(2).replace("''", "'").lower()
        return lambda m: any(value in (r.address.lower(), r.name.lower()) for r in getattr(m, attr))
    if match.group("category"):
        value = _unquote(match.group("category"))
        return lambda m: value in m.categories
    if match.group("from_field"):
        field = match.group("from_field")
        value = _unquote(match.group("from_value")).lower()
        return lambda m: m.sender is not None and getattr(m.sender, field).lower() == value
    if match.group("attachments"):
        expected = match.group("attachments") == "true"
        return lambda m: m.has_attachments is expected
    if match.group("date_op"):
        bound = datetime.fromisoformat(match.group("date_value").replace("Z", "+00:00"))
        op = match.group("date_op")

        def compare(m: Message) -> bool:
            if not m.received_date_time:
                return False
            received = datetime.fromisoformat(m.received_date_time.replace("Z", "+00:00"))
            return received >= bound if op == "ge" else received < bound

        return compare
    value = _unquote(match.group("subject")).lower()
    return lambda m: m.subject.lower().startswith(value)


class _FilterEvaluator:
    def __init__(self, expr: str) -> None:
        self.tokens = _tokenize(expr)
        self.pos = 0
        self.fn = self._or()
        if self.pos != len(self.tokens):
            raise AssertionError(f"Trailing filter tokens in {expr!r}")

    def _peek(self) -> str | None:
        return self.tokens[self.pos][0] if self.pos < len(self.tokens) else None

    def _take(self, kind: str):
        token_kind, value = self.tokens[self.pos]
        if token_kind != kind:
            raise AssertionError(f"Expected {kind}, got {token_kind}")
        self.pos += 1
        return value

    def _or(self):
        parts = [self._and()]
        while self._peek() == "or":
            self._take("or")
            parts.append(self._and())
        return parts[0] if len(parts) == 1 else (lambda m: any(p(m) for p in parts))

    def _and(self):
        parts = [self._factor()]
        while self._peek() == "and":
            self._take("and")
            parts.append(self._factor())
        return parts[0] if len(parts) == 1 else (lambda m: all(p(m) for p in parts))

    def _factor(self):
        kind = self._peek()
        if kind == "not":
            self._take("not")
            inner = self._factor()
            return lambda m: not inner(m)
        if kind == "(":
            self._take("(")
            inner = self._or()
            self._take(")")
            return inner
        return _atom(self._take("atom"))


_ALICE = Recipient(address="alice@example.com", name="Alice Smith")
_BOB = Recipient(address="bob@example.com", name="Bob Jones")
_CAROL = Recipient(address="carol@example.org", name="Carol")
_DAVE = Recipient(address="dave@example.net", name="Dave")

_PEOPLE = (_ALICE, _BOB, _CAROL, _DAVE)
_CATEGORY_POOL = ("Work", "Personal", "Project X", "Urgent", "Travel")
_RECEIVED_POOL = (
    "2024-02-29T23:59:59Z",
    "2024-03-01T00:00:00Z",
    "2024-03-15T10:00:00Z",
    "2024-03-31T23:00:00Z",
    "2024-04-01T00:00:00Z",
    None,
)


def _generated_corpus(count: int = 300, seed: int = 17) -> list[Message]:
    rng = random.Random(seed)

    def people() -> tuple[Recipient, ...]:
        return tuple(rng.sample(_PEOPLE, rng.randint(0, 3)))

    return [
        Message(
            id=f"g{index}",
            sender=rng.choice(_PEOPLE + (None,)),
            to_recipients=people(),
            cc_recipients=people(),
            bcc_recipients=people(),
            categories=tuple(rng.sample(_CATEGORY_POOL, rng.randint(0, 3))),
            has_attachments=rng.choice((True, False, None)),
            received_date_time=rng.choice(_RECEIVED_POOL),
        )
        for index in range(count)
    ]


def _corpus() -> list[Message]:
    alice, bob, carol = _ALICE, _BOB, _CAROL
    return _generated_corpus() + [
        Message(id="1", sender=alice, to_recipients=(bob,), categories=("Work",), has_attachments=True,
                received_date_time="2024-03-15T10:00:00Z"),
        Message(id="2", sender=bob, to_recipients=(alice, carol), categories=("Personal", "Project X"),
                has_attachments=False, received_date_time="2024-03-01T00:00:00Z"),
        Message(id="3", sender=carol, cc_recipients=(alice,), categories=(), has_attachments=True,
                received_date_time="2024-02-29T23:59:59Z"),
        Message(id="4", sender=None, to_recipients=(), categories=("Work", "Urgent"), has_attachments=None,
                received_date_time=None),
        Message(id="5", sender=alice, to_recipients=(carol,), bcc_recipients=(bob,), categories=("Travel",),
                has_attachments=False, received_date_time="2024-04-01T00:00:00Z"),
        Message(id="6", sender=bob, to_recipients=(bob,), categories=("Work",), has_attachments=True,
                received_date_time="2024-03-31T23:00:00Z"),
    ]


_QUERIES = [
    FieldQuery(categories="work"),
    FieldQuery(categories=FieldOperator(ANY=("work", "travel"))),
    FieldQuery(categories=FieldOperator(ALL=("work", "urgent"))),
    FieldQuery(categories=FieldOperator(NONE=("work",))),
    FieldQuery(label="Project X"),
    FieldQuery(from_="alice@example.com"),
    FieldQuery(from_="BOB@example.com"),
    FieldQuery(to="carol@example.org"),
    FieldQuery(to=FieldOperator(ALL=("alice@example.com", "carol@example.org"))),
    FieldQuery(to=FieldOperator(NONE=("bob@example.com",))),
    FieldQuery(cc="alice@example.com"),
    FieldQuery(bcc="bob@example.com"),
    FieldQuery(has_attachment=True),
    FieldQuery(has_attachment=False),
    FieldQuery(date=DateRange(gte=date(2024, 3, 1), lt=date(2024, 4, 1))),
    FieldQuery(categories="work", has_attachment=True),
    AndQuery((FieldQuery(from_="alice@example.com"), NotQuery(FieldQuery(categories="travel")))),
    OrQuery((FieldQuery(label="Project X"), FieldQuery(date=DateRange(lt=date(2024, 3, 1))))),
    NotQuery(OrQuery((FieldQuery(has_attachment=True), FieldQuery(to="alice@example.com")))),
    AndQuery(
        (
            OrQuery((FieldQuery(categories="work"), FieldQuery(categories="personal"))),
            FieldQuery(date=DateRange(gte=date(2024, 3, 1))),
        )
    ),
]


class TestFilterPredicateAgreement(unittest.TestCase):
    def test_evaluator_sanity(self) -> None:
        fn = _FilterEvaluator("(hasAttachments eq true and not (categories/any(c: c eq 'Work')))").fn
        corpus = {m.id: m for m in _corpus()}
        self.assertTrue(fn(corpus["3"]))
        self.assertFalse(fn(corpus["1"]))

    def test_address_containment_is_wider_than_equality(self) -> None:
        query = FieldQuery(from_="alice@example.com")
        message = Message(id="m", sender=Recipient(address="malice@example.com", name="Mallory"))
        self.assertFalse(_FilterEvaluator(compile_filter(query)).fn(message))
        self.assertTrue(build_predicate(query)(message))

    def test_filter_and_predicate_agree(self) -> None:
        corpus = _corpus()
        for query in _QUERIES:
            expr = compile_filter(query)
            self.assertIsNotNone(expr)
            remote = _FilterEvaluator(expr).fn
            local = build_predicate(query)
            with self.subTest(filter=expr):
                self.assertEqual(
                    [m.id for m in corpus if remote(m)],
                    [m.id for m in corpus if local(m)],
                )


if __name__ == "__main__":
    unittest.main()
