"""Microsoft Graph JSON parser.

Maps Graph `message` and `outlookCategory` payloads into the internal models.
Missing or malformed fields degrade to empty values instead of failing the page.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence
from urllib.parse import parse_qs, urlparse

from OutlookSearch.core.models import Category, Message, MessageBody, MessagePage, Recipient
from OutlookSearch.utils.log import log

_MESSAGE_KEYS = frozenset(
    {
        "id",
        "subject",
        "body",
        "bodyPreview",
        "from",
        "toRecipients",
        "ccRecipients",
        "bccRecipients",
        "categories",
        "importance",
        "isRead",
        "hasAttachments",
        "receivedDateTime",
        "conversationId",
    }
)


def parse_messages_page(payload: Mapping[str, Any]) -> MessagePage:
    """Parse a `/me/messages` collection payload.

    Args:
        payload: Decoded JSON object with `value` and optional `@odata.nextLink`.

    Returns:
        MessagePage with messages in remote order.
    """
    raw_items = payload.get("value")
    if not isinstance(raw_items, list):
        raw_items = []

    items: list[Message] = []
    for raw in raw_items:
        if not isinstance(raw, Mapping) or not raw.get("id"):
            log.debug("Skip Graph item without id")
            continue
        items.append(parse_message(raw))

    return MessagePage(items=items, next_cursor=next_cursor_from_link(payload.get("@odata.nextLink")))


def parse_message(raw: Mapping[str, Any]) -> Message:
    """Parse a single Graph message resource."""
    return Message(
        id=str(raw.get("id") or ""),
        subject=_text(raw.get("subject")),
        body=_parse_body(raw.get("body")),
        body_preview=_text(raw.get("bodyPreview")),
        sender=_parse_recipient(raw.get("from")),
        to_recipients=_parse_recipients(raw.get("toRecipients")),
        cc_recipients=_parse_recipients(raw.get("ccRecipients")),
        bcc_recipients=_parse_recipients(raw.get("bccRecipients")),
        categories=tuple(c for c in (raw.get("categories") or ()) if isinstance(c, str)),
        importance=raw.get("importance") if isinstance(raw.get("importance"), str) else None,
        is_read=raw.get("isRead") if isinstance(raw.get("isRead"), bool) else None,
        has_attachments=raw.get("hasAttachments") if isinstance(raw.get("hasAttachments"), bool) else None,
        received_date_time=raw.get("receivedDateTime") or None,
        conversation_id=raw.get("conversationId") or None,
        extra={k: v for k, v in raw.items() if k not in _MESSAGE_KEYS and not k.startswith("@odata")},
    )


def parse_categories(payload: Mapping[str, Any]) -> list[Category]:
    """Parse a `/me/outlook/masterCategories` payload."""
    out: list[Category] = []
    for raw in payload.get("value") or ():
        if not isinstance(raw, Mapping):
            continue
        name = _text(raw.get("displayName")).strip()
        if not name:
            continue
        out.append(Category(id=str(raw.get("id") or name), display_name=name, color=raw.get("color") or None))
    return out


def next_cursor_from_link(next_link: object) -> str | None:
    """Extract the `$skiptoken` cursor from an `@odata.nextLink` URL.

    Args:
        next_link: Absolute next-page URL as returned by Graph, or None.

    Returns:
        The skip token, or None when there is no further page.
    """
    if not isinstance(next_link, str) or not next_link:
        return None
    params = parse_qs(urlparse(next_link).query)
    values = params.get("$skiptoken") or params.get("%24skiptoken")
    if not values:
        log.warning("Graph nextLink carries no $skiptoken; treating as last page")
        return None
    return values[0] or None


def _parse_body(raw: object) -> MessageBody | None:
    if not isinstance(raw, Mapping):
        return None
    content_type = _text(raw.get("contentType")).lower() or "text"
    return MessageBody(content=_text(raw.get("content")), content_type=content_type)


def _parse_recipients(raw: object) -> tuple[Recipient, ...]:
    if not isinstance(raw, Sequence) or isinstance(raw, str):
        return ()
    recipients = (_parse_recipient(item) for item in raw)
    return tuple(r for r in recipients if r is not None)


def _parse_recipient(raw: object) -> Recipient | None:
    if not isinstance(raw, Mapping):
        return None
    email = raw.get("emailAddress")
    if not isinstance(email, Mapping):
        return None
    address = _text(email.get("address")).strip()
    name = _text(email.get("name")).strip()
    if not address and not name:
        return None
    return Recipient(address=address, name=name)


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""
