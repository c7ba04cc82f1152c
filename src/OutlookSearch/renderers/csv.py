"""CSV output writer.

Streams message rows to disk as batches arrive: the header is written on the
first batch and each batch is appended, so large exports never sit in memory.
A failed export removes its partial file.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import TYPE_CHECKING, IO, Optional

from OutlookSearch.renderers.base import OutputWriter
from OutlookSearch.renderers.view_models import MessageView
from OutlookSearch.utils.log import log

if TYPE_CHECKING:
    from OutlookSearch.core.query import Query

CSV_COLUMNS = (
    "id",
    "conversation_id",
    "from",
    "to",
    "cc",
    "bcc",
    "subject",
    "received",
    "preview",
    "body",
    "categories",
)


def render_row(view: MessageView) -> list[str]:
    """Render one message view as a CSV row in `CSV_COLUMNS` order."""
    return [
        view.id,
        view.conversation_id or "",
        view.sender,
        ", ".join(view.to),
        ", ".join(view.cc),
        ", ".join(view.bcc),
        view.subject,
        view.received or "",
        view.preview,
        view.body or "",
        ", ".join(view.categories),
    ]


class CsvFileWriter(OutputWriter):
    """Append message rows to a single CSV file."""

    def __init__(self, base_dir: str, filename: str) -> None:
        """Initialize CSV writer.

        Args:
            base_dir: Base output directory; the file goes to `<base_dir>/csv`.
            filename: CSV file name.
        """
        self.output_path = Path(base_dir) / "csv" / filename
        self.row_count = 0
        self._handle: Optional[IO[str]] = None
        self._writer = None

    def write_query_result(
        self,
        messages: list[MessageView],
        *,
        name: str | None,
        query: Query | None,
        next_page_token: str | None = None,
    ) -> None:
        """Append one batch of rows, creating the file on first use."""
        if self._writer is None:
            self._open()
        for view in messages:
            self._writer.writerow(render_row(view))
        self.row_count += len(messages)
        self._handle.flush()

    def finalize(self, action: str) -> None:
        """Close the file; an export without rows still gets a header-only file."""
        if self._writer is None:
            self._open()
        self._close()
        log.info("CSV saved to %s (%d rows)", self.output_path, self.row_count)

    def discard(self) -> None:
        """Close and delete the partial file."""
        self._close()
        if self.output_path.exists():
            self.output_path.unlink()
            log.info("Removed partial CSV %s", self.output_path)

    def _open(self) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.output_path.open("w", encoding="utf-8", newline="")
        self._writer = csv.writer(self._handle, quoting=csv.QUOTE_ALL)
        self._writer.writerow(CSV_COLUMNS)

    def _close(self) -> None:
        if self._handle is not None:
            self._handle.close()
        self._handle = None
        self._writer = None
