from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence


@dataclass(frozen=True, slots=True)
class Recipient:
    """Email address with optional display name."""

    address: str = ""
    name: str = ""


@dataclass(frozen=True, slots=True)
class MessageBody:
    """Message body.

    Attributes:
        content: Raw body content.
        content_type: "text" or "html".
    """

    content: str = ""
    content_type: str = "text"


@dataclass(frozen=True, slots=True)
class Message:
    """Internal canonical message model.

    Mirrors the subset of the Microsoft Graph `message` resource that the
    search engine reads. `received_date_time` is kept as the raw ISO string
    the API returned; consumers parse it when they need a timestamp.

    Attributes:
        id: Graph message id.
        conversation_id: Thread identifier.
        subject: Subject line.
        body: Body content when it was requested.
        body_preview: First characters of the body as provided by Graph.
        sender: The `from` recipient.
        to_recipients: To recipients.
        cc_recipients: Cc recipients.
        bcc_recipients: Bcc recipients.
        categories: Category display names assigned to the message.
        importance: high/normal/low.
        is_read: Read flag.
        has_attachments: Attachment flag.
        received_date_time: Raw ISO-8601 receive timestamp.
        extra: Remaining payload fields, read-only.
    """

    id: str
    subject: str = ""
    body: Optional[MessageBody] = None
    body_preview: str = ""
    sender: Optional[Recipient] = None
    to_recipients: Sequence[Recipient] = ()
    cc_recipients: Sequence[Recipient] = ()
    bcc_recipients: Sequence[Recipient] = ()
    categories: Sequence[str] = ()
    importance: Optional[str] = None
    is_read: Optional[bool] = None
    has_attachments: Optional[bool] = None
    received_date_time: Optional[str] = None
    conversation_id: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))


@dataclass(frozen=True, slots=True)
class MessagePage:
    """One page of the remote message listing.

    Attributes:
        items: Messages in remote order.
        next_cursor: Opaque remote cursor for the following page, if any.
    """

    items: Sequence[Message]
    next_cursor: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Category:
    """User-visible Outlook master category."""

    id: str
    display_name: str
    color: Optional[str] = None


MODE_FILTER = "filter"
MODE_SEARCH = "search"

STOP_SINGLE_PAGE = "single_page"
STOP_FILLED = "filled"
STOP_EXHAUSTED = "exhausted"
STOP_CAPPED = "capped"


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Per-call search options.

    Attributes:
        page_size: Number of results wanted; clamped to 1..1000 by the executor.
        include_body: Fetch full bodies even when the query does not need them.
        max_pages: Remote page budget for a client-filtered scan; None is unbounded.
        max_items_scanned: Item budget for a client-filtered scan; None is unbounded.
        page_token: Token returned by a previous call, or a raw remote cursor.
    """

    page_size: int = 50
    include_body: bool = False
    max_pages: Optional[int] = None
    max_items_scanned: Optional[int] = None
    page_token: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Result of one search call.

    Attributes:
        items: Matching messages in remote order.
        next_page_token: Token to resume after the last returned item; None
            when there is nothing more to fetch or a scan cap was hit.
        stop_reason: One of single_page/filled/exhausted/capped.
        pages_fetched: Remote pages requested during this call.
        items_scanned: Remote items inspected during this call.
        mode: "filter" or "search", the remote mode that produced the items.
    """

    items: Sequence[Message]
    next_page_token: Optional[str] = None
    stop_reason: str = STOP_SINGLE_PAGE
    pages_fetched: int = 0
    items_scanned: int = 0
    mode: str = MODE_FILTER

    @property
    def capped(self) -> bool:
        return self.stop_reason == STOP_CAPPED
