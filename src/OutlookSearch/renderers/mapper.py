"""Mapper for converting Message domain models to MessageView display models."""

from __future__ import annotations

from datetime import timezone
from typing import Sequence

from bs4 import BeautifulSoup
from dateutil import parser as dt_parser

from OutlookSearch.core.models import Message, Recipient
from OutlookSearch.renderers.view_models import MessageView


def format_recipient(recipient: Recipient | None) -> str:
    """Format a recipient as `Name <address>`, or whichever part is present."""
    if recipient is None:
        return ""
    if recipient.name and recipient.address and recipient.name != recipient.address:
        return f"{recipient.name} <{recipient.address}>"
    return recipient.address or recipient.name


def format_received(raw: str | None) -> str | None:
    """Format a Graph ISO timestamp as `YYYY-mm-dd HH:MM` in UTC.

    Unparsable values are returned unchanged.
    """
    if not raw:
        return None
    try:
        parsed = dt_parser.isoparse(raw)
    except (ValueError, OverflowError):
        return raw
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d %H:%M")


def html_to_text(html: str) -> str:
    """Reduce an HTML body to readable plain text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    return soup.get_text(separator="\n", strip=True)


def body_text(message: Message) -> str | None:
    """Return the message body as plain text, or None if it was not fetched."""
    if message.body is None:
        return None
    if message.body.content_type == "html":
        return html_to_text(message.body.content)
    return message.body.content.strip()


def map_message_to_view(message: Message) -> MessageView:
    """Map a Message domain model to a MessageView display model."""
    return MessageView(
        id=message.id,
        conversation_id=message.conversation_id,
        subject=message.subject.strip() or "(no subject)",
        sender=format_recipient(message.sender),
        to=[format_recipient(r) for r in message.to_recipients],
        cc=[format_recipient(r) for r in message.cc_recipients],
        bcc=[format_recipient(r) for r in message.bcc_recipients],
        received=format_received(message.received_date_time),
        categories=list(message.categories),
        importance=message.importance,
        is_read=message.is_read,
        has_attachments=message.has_attachments,
        preview=message.body_preview.strip(),
        body=body_text(message),
    )


def map_messages_to_views(messages: Sequence[Message]) -> list[MessageView]:
    """Batch map messages to views."""
    return [map_message_to_view(m) for m in messages]
