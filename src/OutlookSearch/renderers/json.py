"""JSON output renderers.

Renders message views into JSON-serializable objects and provides the
JsonFileWriter used by the `search` command.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable

from OutlookSearch.core.query import Query, dump_query
from OutlookSearch.renderers.base import OutputWriter
from OutlookSearch.renderers.view_models import MessageView
from OutlookSearch.utils.log import log


def render_json(messages: Iterable[MessageView]) -> list[dict]:
    """Render message views into JSON-serializable Python objects."""
    out: list[dict] = []
    for view in messages:
        d = {
            "id": view.id,
            "conversation_id": view.conversation_id,
            "subject": view.subject,
            "from": view.sender,
            "to": list(view.to),
            "cc": list(view.cc),
            "bcc": list(view.bcc),
            "received": view.received,
            "categories": list(view.categories),
            "importance": view.importance,
            "is_read": view.is_read,
            "has_attachments": view.has_attachments,
            "preview": view.preview,
        }
        if view.body is not None:
            d["body"] = view.body
        out.append(d)
    return out


class JsonFileWriter(OutputWriter):
    """Accumulate results and write them to a JSON file on finalize."""

    def __init__(self, base_dir: str) -> None:
        """Initialize JSON writer.

        Args:
            base_dir: Base output directory; files go to `<base_dir>/json`.
        """
        self.output_dir = Path(base_dir) / "json"
        self.all_results: list[dict] = []
        self.output_path: Path | None = None

    def write_query_result(
        self,
        messages: list[MessageView],
        *,
        name: str | None,
        query: Query | None,
        next_page_token: str | None = None,
    ) -> None:
        """Accumulate one batch for later writing."""
        self.all_results.append(
            {
                "name": name,
                "query": dump_query(query) if query is not None else None,
                "next_page_token": next_page_token,
                "messages": render_json(messages),
            }
        )

    def finalize(self, action: str) -> None:
        """Write accumulated results to `<action>_<timestamp>.json`."""
        payload = json.dumps(self.all_results, ensure_ascii=False, indent=2)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.output_path = self.output_dir / f"{action}_{timestamp}.json"
        self.output_path.write_text(payload, encoding="utf-8")
        log.info("JSON saved to %s", self.output_path)
