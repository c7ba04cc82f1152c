"""Search service layer for mailbox queries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from OutlookSearch.core.models import Category, Message, SearchOptions, SearchResult
from OutlookSearch.core.query import Query
from OutlookSearch.utils.log import log

DEFAULT_EXPORT_PAGE_SIZE = 50
DEFAULT_EXPORT_MAX_ITEMS = 10000
MAX_EXPORT_ITEMS = 50000


class MailSource(Protocol):
    """Protocol for a mailbox backend."""

    name: str

    def search(self, query: Query | None, options: SearchOptions | None = None) -> SearchResult:
        """Run one paged search call."""
        raise NotImplementedError

    def get_message(self, message_id: str, *, include_body: bool = True) -> Message:
        """Fetch one message by id."""
        raise NotImplementedError

    def list_categories(self) -> Sequence[Category]:
        """List the mailbox master categories."""
        raise NotImplementedError

    def close(self) -> None:
        """Close resources held by source."""
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ExportSummary:
    """Outcome of a paged export.

    Attributes:
        row_count: Messages handed to the sink.
        truncated: True when more matches may exist beyond what was exported
            (`max_items` reached with a continuation token, or a scan cap hit).
        calls: Search calls issued.
        next_page_token: Token to continue the export, if any.
    """

    row_count: int
    truncated: bool
    calls: int
    next_page_token: Optional[str] = None


@dataclass(slots=True)
class MailSearchService:
    """Application service in front of a single mailbox source."""

    source: MailSource

    def search(self, query: Query | None, options: SearchOptions | None = None) -> SearchResult:
        """Search messages.

        Args:
            query: Structured query, or None to list the mailbox.
            options: Paging, cap and body options.

        Returns:
            SearchResult from the source.
        """
        result = self.source.search(query, options)
        log.info(
            "Search completed: source=%s count=%d stop=%s pages=%d scanned=%d more=%s",
            self.source.name,
            len(result.items),
            result.stop_reason,
            result.pages_fetched,
            result.items_scanned,
            result.next_page_token is not None,
        )
        return result

    def get_message(self, message_id: str, *, include_body: bool = True) -> Message:
        """Fetch one message by id."""
        if not message_id.strip():
            raise ValueError("message id must not be empty")
        return self.source.get_message(message_id, include_body=include_body)

    def list_categories(self) -> Sequence[Category]:
        """List the mailbox master categories."""
        return self.source.list_categories()

    def export(
        self,
        query: Query | None,
        sink: Callable[[Sequence[Message]], None],
        *,
        max_items: int = DEFAULT_EXPORT_MAX_ITEMS,
        page_size: int = DEFAULT_EXPORT_PAGE_SIZE,
        max_pages: int | None = None,
        max_items_scanned: int | None = None,
    ) -> ExportSummary:
        """Page through all matches and stream each batch to `sink`.

        Bodies are always fetched. Caps apply per search call. Stops at
        `max_items`, when the source is exhausted, or when a call is capped.

        Args:
            query: Structured query, or None for the whole mailbox.
            sink: Callback receiving each batch of messages in order.
            max_items: Maximum number of messages to export.
            page_size: Messages requested per search call.
            max_pages: Remote page budget per call.
            max_items_scanned: Remote item budget per call.

        Returns:
            ExportSummary with row count and truncation flag.

        Raises:
            ValueError: If `max_items` or `page_size` is out of range.
        """
        if max_items <= 0 or max_items > MAX_EXPORT_ITEMS:
            raise ValueError(f"max_items must be between 1 and {MAX_EXPORT_ITEMS}")
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        total = 0
        calls = 0
        token: str | None = None
        capped = False
        while total < max_items:
            result = self.source.search(
                query,
                SearchOptions(
                    page_size=min(max_items - total, page_size),
                    include_body=True,
                    max_pages=max_pages,
                    max_items_scanned=max_items_scanned,
                    page_token=token,
                ),
            )
            calls += 1
            if result.items:
                sink(result.items)
            total += len(result.items)
            token = result.next_page_token
            log.info("Export batch %d: %d messages (total %d)", calls, len(result.items), total)
            if result.capped:
                capped = True
                log.warning("Export stopped at scan cap after %d messages", total)
                break
            if not token or not result.items:
                break

        truncated = capped or (total >= max_items and token is not None)
        log.info("Export done: rows=%d truncated=%s", total, truncated)
        return ExportSummary(row_count=total, truncated=truncated, calls=calls, next_page_token=token)

    def close(self) -> None:
        """Close the source and release external resources."""
        try:
            self.source.close()
        except Exception as error:  # noqa: BLE001 - close failure must be isolated
            log.warning("Mail source close failed: source=%s error=%s", self.source.name, error)
