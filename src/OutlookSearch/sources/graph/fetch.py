"""Bounded, resumable client-filtered scan over Graph message pages.

Graph `$search` results are approximate, so in search mode the executor walks
remote pages, keeps only the messages accepted by the client predicate, and
stops as soon as a page worth of matches is collected. When it stops in the
middle of a remote page it hands back a token pointing at the next unconsumed
item of that page, so nothing is skipped or repeated on resume.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from OutlookSearch.core.models import (
    STOP_CAPPED,
    STOP_EXHAUSTED,
    STOP_FILLED,
    Message,
    MessagePage,
)
from OutlookSearch.sources.graph.token import encode_page_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PageRequest:
    """Parameters for one remote page fetch."""

    filter: Optional[str]
    search: Optional[str]
    cursor: Optional[str]
    page_size: int
    include_body: bool


FetchPage = Callable[[PageRequest], MessagePage]


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of a client-filtered scan.

    Attributes:
        items: Accepted messages, at most `page_size` of them.
        stop_reason: filled/exhausted/capped.
        mid_page_token: Token resuming inside the last fetched page, when the
            scan filled up before reaching the end of that page.
        next_cursor: Remote cursor to resume from at a page boundary.
        pages_fetched: Remote pages fetched.
        items_scanned: Remote items inspected by the predicate.
        mode: Scan mode recorded in emitted tokens.
    """

    items: list[Message]
    stop_reason: str
    mid_page_token: Optional[str] = None
    next_cursor: Optional[str] = None
    pages_fetched: int = 0
    items_scanned: int = 0
    mode: str = ""

    def continuation_token(self) -> str | None:
        """Return the token a caller should use to continue this scan.

        A capped or exhausted scan has no continuation.
        """
        if self.stop_reason != STOP_FILLED:
            return None
        if self.mid_page_token:
            return self.mid_page_token
        if self.next_cursor:
            return encode_page_token(self.next_cursor, 0, self.mode)
        return None


def scan_filtered_pages(
    fetch_page: FetchPage,
    *,
    predicate: Callable[[Message], bool],
    page_size: int,
    mode: str,
    filter: Optional[str] = None,
    search: Optional[str] = None,
    start_cursor: Optional[str] = None,
    start_offset: int = 0,
    include_body: bool = False,
    max_pages: Optional[int] = None,
    max_items_scanned: Optional[int] = None,
) -> ScanResult:
    """Collect up to `page_size` predicate matches across remote pages.

    Stop conditions, in priority order:
        1. `max_items_scanned` reached before inspecting the next item (capped).
        2. `max_pages` reached before fetching the next page (capped).
        3. `page_size` matches collected (filled).
        4. The remote returned an empty page (exhausted).
        5. The remote returned no next cursor (exhausted).

    Args:
        fetch_page: Callback fetching one remote page.
        predicate: Client-side match function.
        page_size: Number of matches wanted.
        mode: Scan mode stored in emitted tokens.
        filter: Remote `$filter` for every page.
        search: Remote `$search` for every page.
        start_cursor: Remote cursor of the first page; None for the very first.
        start_offset: Items of the first page to skip (already consumed).
        include_body: Whether pages must carry message bodies.
        max_pages: Page budget; None is unbounded.
        max_items_scanned: Item budget; None is unbounded.

    Returns:
        ScanResult describing collected messages and where to resume.
    """
    collected: list[Message] = []
    cursor = start_cursor
    offset = max(0, start_offset)
    pages_fetched = 0
    items_scanned = 0

    def finish(stop_reason: str, **kwargs: Optional[str]) -> ScanResult:
        logger.info(
            "Scan stopped (%s) - collected %d, scanned %d items in %d pages",
            stop_reason,
            len(collected),
            items_scanned,
            pages_fetched,
        )
        return ScanResult(
            items=collected,
            stop_reason=stop_reason,
            pages_fetched=pages_fetched,
            items_scanned=items_scanned,
            mode=mode,
            **kwargs,
        )

    logger.info(
        "Start %s scan - target: %d, resume offset: %d, max_pages: %s, max_items_scanned: %s",
        mode,
        page_size,
        offset,
        max_pages,
        max_items_scanned,
    )

    while True:
        if max_items_scanned is not None and items_scanned >= max_items_scanned:
            return finish(STOP_CAPPED)
        if max_pages is not None and pages_fetched >= max_pages:
            return finish(STOP_CAPPED)

        page_cursor = cursor
        page = fetch_page(
            PageRequest(
                filter=filter,
                search=search,
                cursor=page_cursor,
                page_size=page_size,
                include_body=include_body,
            )
        )
        pages_fetched += 1
        items = list(page.items)
        logger.info("Fetched page %d: %d items (scanned so far %d)", pages_fetched, len(items), items_scanned)

        if not items:
            return finish(STOP_EXHAUSTED)

        start, offset = offset, 0
        if start >= len(items):
            logger.debug("Resume offset %d beyond page of %d items; skip page", start, len(items))

        for index in range(start, len(items)):
            if max_items_scanned is not None and items_scanned >= max_items_scanned:
                return finish(STOP_CAPPED)
            items_scanned += 1
            message = items[index]
            if not predicate(message):
                continue
            collected.append(message)
            if len(collected) < page_size:
                continue

            next_index = index + 1
            if next_index < len(items):
                return finish(
                    STOP_FILLED,
                    mid_page_token=encode_page_token(page_cursor, next_index, mode),
                )
            # Filled on the last item: resume at the next page boundary.
            return finish(STOP_FILLED, next_cursor=page.next_cursor)

        if not page.next_cursor:
            return finish(STOP_EXHAUSTED)
        cursor = page.next_cursor
