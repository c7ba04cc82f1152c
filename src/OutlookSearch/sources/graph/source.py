"""Microsoft Graph mail source.

Composes query compilation, HTTP fetching, JSON parsing and the client-filtered
scan loop into a `MailSource` implementation.

Queries without text fields run on the fast path: one `$filter` request whose
remote cursor is handed back re-encoded as a page token. Queries with text
fields run a `$search` scan re-checked by the client predicate; when such a
scan finds nothing at all, the same query is retried once as a structural
`$filter` scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from OutlookSearch.core.categories import DEFAULT_CATEGORY_TABLE
from OutlookSearch.core.models import (
    MODE_FILTER,
    MODE_SEARCH,
    STOP_EXHAUSTED,
    STOP_SINGLE_PAGE,
    Category,
    Message,
    MessagePage,
    SearchOptions,
    SearchResult,
)
from OutlookSearch.core.query import Query
from OutlookSearch.services.search import MailSource
from OutlookSearch.sources.graph.client import MAX_PAGE_SIZE, GraphApiClient
from OutlookSearch.sources.graph.fetch import PageRequest, ScanResult, scan_filtered_pages
from OutlookSearch.sources.graph.filter import compile_filter
from OutlookSearch.sources.graph.kql import compile_query
from OutlookSearch.sources.graph.parser import parse_categories, parse_message, parse_messages_page
from OutlookSearch.sources.graph.predicate import Predicate, build_predicate
from OutlookSearch.sources.graph.token import PageToken, decode_page_token, encode_page_token
from OutlookSearch.utils.log import log

MESSAGE_FIELDS: tuple[str, ...] = (
    "id",
    "conversationId",
    "receivedDateTime",
    "subject",
    "bodyPreview",
    "from",
    "toRecipients",
    "ccRecipients",
    "bccRecipients",
    "categories",
    "importance",
    "isRead",
    "hasAttachments",
)


def clamp_page_size(page_size: int) -> int:
    """Clamp a requested page size to the range Graph accepts."""
    return max(1, min(int(page_size), MAX_PAGE_SIZE))


def select_fields(include_body: bool) -> tuple[str, ...]:
    """Return the `$select` list for message listings."""
    return MESSAGE_FIELDS + ("body",) if include_body else MESSAGE_FIELDS


@dataclass(slots=True)
class GraphMailSource(MailSource):
    """`MailSource` implementation backed by Microsoft Graph `/me/messages`."""

    client: GraphApiClient
    name: str = "graph"
    categories: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CATEGORY_TABLE)

    def search(self, query: Query | None, options: SearchOptions | None = None) -> SearchResult:
        """Run one search call.

        Args:
            query: Query tree, or None to list the mailbox.
            options: Page size, caps, body flag and resume token.

        Returns:
            SearchResult with matching messages and a continuation token.

        Raises:
            QueryValidationError: If the query is malformed (before any request).
            RemoteFetchError: If a Graph request fails.
        """
        options = options or SearchOptions()
        page_size = clamp_page_size(options.page_size)
        plan = compile_query(query, categories=self.categories)
        token = decode_page_token(options.page_token)
        include_body = options.include_body or plan.require_body_client_filter

        log.info(
            "Graph search: full_text=%s filter=%s page_size=%d include_body=%s resume=%s",
            plan.has_full_text,
            plan.filter is not None,
            page_size,
            include_body,
            options.page_token is not None,
        )

        if not plan.has_full_text:
            return self._search_single_page(plan.filter, token, page_size, include_body)

        assert query is not None
        predicate = build_predicate(query, categories=self.categories)
        # Compiled up front so a malformed query never fails after a request.
        structural_filter = compile_filter(query, categories=self.categories)
        if token.mode == MODE_FILTER:
            # Continue a scan that already fell back to the structural filter.
            scan = self._scan(
                predicate,
                filter=structural_filter,
                token=token,
                page_size=page_size,
                include_body=include_body,
                options=options,
                mode=MODE_FILTER,
            )
            return _to_result(scan)

        scan = self._scan(
            predicate,
            search=plan.search,
            token=token,
            page_size=page_size,
            include_body=include_body,
            options=options,
            mode=MODE_SEARCH,
        )
        if scan.stop_reason != STOP_EXHAUSTED or scan.items or options.page_token:
            return _to_result(scan)

        if structural_filter is None:
            return _to_result(scan)

        log.info("Search scan matched nothing; retrying once with structural filter")
        fallback = self._scan(
            predicate,
            filter=structural_filter,
            token=decode_page_token(None),
            page_size=page_size,
            include_body=include_body,
            options=options,
            mode=MODE_FILTER,
        )
        return _to_result(fallback, previous=scan)

    def get_message(self, message_id: str, *, include_body: bool = True) -> Message:
        """Fetch one message by id.

        Raises:
            RemoteFetchError: If the Graph request fails.
        """
        payload = self.client.get_message(message_id, fields=select_fields(include_body))
        return parse_message(payload)

    def list_categories(self) -> Sequence[Category]:
        """List the mailbox master categories.

        Raises:
            RemoteFetchError: If the Graph request fails.
        """
        return parse_categories(self.client.list_categories())

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def _search_single_page(
        self,
        filter_expr: Optional[str],
        token: PageToken,
        page_size: int,
        include_body: bool,
    ) -> SearchResult:
        page = self._fetch_page(
            PageRequest(
                filter=filter_expr,
                search=None,
                cursor=token.cursor,
                page_size=page_size,
                include_body=include_body,
            )
        )
        log.info("Graph filter page: %d items, more=%s", len(page.items), page.next_cursor is not None)
        return SearchResult(
            items=list(page.items),
            next_page_token=encode_page_token(page.next_cursor) if page.next_cursor else None,
            stop_reason=STOP_SINGLE_PAGE,
            pages_fetched=1,
            items_scanned=len(page.items),
            mode=MODE_FILTER,
        )

    def _scan(
        self,
        predicate: Predicate,
        *,
        token: PageToken,
        page_size: int,
        include_body: bool,
        options: SearchOptions,
        mode: str,
        filter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> ScanResult:
        return scan_filtered_pages(
            self._fetch_page,
            predicate=predicate,
            page_size=page_size,
            mode=mode,
            filter=filter,
            search=search,
            start_cursor=token.cursor,
            start_offset=token.offset,
            include_body=include_body,
            max_pages=options.max_pages,
            max_items_scanned=options.max_items_scanned,
        )

    def _fetch_page(self, request: PageRequest) -> MessagePage:
        """Fetch and parse one Graph page for the scan loop."""
        payload = self.client.fetch_messages_page(
            filter=request.filter,
            search=request.search,
            cursor=request.cursor,
            page_size=request.page_size,
            fields=select_fields(request.include_body),
        )
        return parse_messages_page(payload)


def _to_result(scan: ScanResult, *, previous: ScanResult | None = None) -> SearchResult:
    pages_fetched = scan.pages_fetched + (previous.pages_fetched if previous else 0)
    items_scanned = scan.items_scanned + (previous.items_scanned if previous else 0)
    return SearchResult(
        items=scan.items,
        next_page_token=scan.continuation_token(),
        stop_reason=scan.stop_reason,
        pages_fetched=pages_fetched,
        items_scanned=items_scanned,
        mode=scan.mode,
    )
