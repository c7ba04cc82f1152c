"""View models for output rendering.

Display-oriented structures that keep presentation concerns out of the
`Message` domain model. Used by OutputWriter implementations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True, slots=True)
class MessageView:
    """Message view model for output rendering.

    Attributes:
        id: Graph message id.
        conversation_id: Thread id.
        subject: Subject line ("(no subject)" when empty).
        sender: Sender formatted as `Name <address>`.
        to: To recipients, formatted.
        cc: Cc recipients, formatted.
        bcc: Bcc recipients, formatted.
        received: Receive time as `YYYY-mm-dd HH:MM` (UTC) or None.
        categories: Category display names.
        importance: high/normal/low or None.
        is_read: Read flag or None when unknown.
        has_attachments: Attachment flag or None when unknown.
        preview: Body preview text.
        body: Plain-text body, or None when bodies were not fetched.
    """

    id: str
    conversation_id: str | None
    subject: str
    sender: str
    to: Sequence[str]
    cc: Sequence[str]
    bcc: Sequence[str]
    received: str | None
    categories: Sequence[str]
    importance: str | None
    is_read: bool | None
    has_attachments: bool | None
    preview: str
    body: str | None = None
