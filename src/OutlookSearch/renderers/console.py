"""Console text output renderers.

Renders message views into human-friendly text, written through the logger
like every other command output line.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from OutlookSearch.renderers.base import OutputWriter
from OutlookSearch.renderers.view_models import MessageView
from OutlookSearch.utils.log import log

if TYPE_CHECKING:
    from OutlookSearch.core.query import Query

_BODY_PREVIEW_CHARS = 500


def _flag(value: bool | None, label: str) -> str | None:
    if value is None:
        return None
    return label if value else f"not {label}"


def render_text(messages: Iterable[MessageView]) -> str:
    """Render message views into a human-readable text block.

    Args:
        messages: Iterable of message views.

    Returns:
        A formatted string ready to be printed.
    """
    lines: list[str] = []
    for idx, view in enumerate(messages, start=1):
        lines.append(f"{idx}. {view.subject}")
        lines.append(f"   From: {view.sender or '-'}")
        if view.to:
            lines.append(f"   To: {', '.join(view.to)}")
        if view.cc:
            lines.append(f"   Cc: {', '.join(view.cc)}")
        lines.append(f"   Received: {view.received or '-'}")
        flags = [f for f in (_flag(view.is_read, "read"), _flag(view.has_attachments, "attachments")) if f]
        if view.importance and view.importance != "normal":
            flags.append(f"importance {view.importance}")
        if flags:
            lines.append(f"   Flags: {', '.join(flags)}")
        if view.categories:
            lines.append(f"   Categories: {', '.join(view.categories)}")
        if view.body:
            body = view.body if len(view.body) <= _BODY_PREVIEW_CHARS else view.body[:_BODY_PREVIEW_CHARS] + "..."
            lines.append("   --- Body ---")
            lines.extend(f"   {line}" for line in body.splitlines())
        elif view.preview:
            lines.append(f"   Preview: {view.preview}")
        lines.append(f"   Id: {view.id}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


class ConsoleOutputWriter(OutputWriter):
    """Write results to console via logging."""

    def write_query_result(
        self,
        messages: list[MessageView],
        *,
        name: str | None,
        query: Query | None,
        next_page_token: str | None = None,
    ) -> None:
        """Write one batch to the console."""
        if name:
            log.info("=== %s: %d messages ===", name, len(messages))
        if not messages:
            log.info("No matching messages")
            return
        for line in render_text(messages).splitlines():
            log.info(line)
        if next_page_token:
            log.info("More results: --page-token %s", next_page_token)

    def finalize(self, action: str) -> None:
        """No-op for console output."""
