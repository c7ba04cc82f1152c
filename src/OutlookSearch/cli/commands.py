"""Command implementations for the OutlookSearch CLI.

Business logic for each command, separated from click parameter handling
and from writer lifecycle management.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from OutlookSearch.config import NamedQuery
from OutlookSearch.core.models import Category, SearchOptions, SearchResult
from OutlookSearch.core.query import Query
from OutlookSearch.renderers import OutputWriter
from OutlookSearch.renderers.mapper import map_message_to_view, map_messages_to_views
from OutlookSearch.services.search import ExportSummary, MailSearchService
from OutlookSearch.utils.log import log


@dataclass(slots=True)
class SearchCommand:
    """Run one or more queries and hand each result page to the writer."""

    search_service: MailSearchService
    queries: Sequence[NamedQuery]
    options: SearchOptions
    output_writer: OutputWriter

    def execute(self) -> list[SearchResult]:
        """Execute every query once with the shared options.

        Returns:
            One SearchResult per query, in order.
        """
        results: list[SearchResult] = []
        multiple = len(self.queries) > 1
        for idx, named in enumerate(self.queries, start=1):
            if multiple:
                log.info("=== Query %d/%d ===", idx, len(self.queries))
            log.debug("Running query %d/%d name=%s query=%s", idx, len(self.queries), named.name, named.query)

            result = self.search_service.search(named.query, self.options)
            if result.capped:
                log.warning(
                    "Scan cap reached after %d items in %d pages; results may be incomplete",
                    result.items_scanned,
                    result.pages_fetched,
                )
            self.output_writer.write_query_result(
                map_messages_to_views(result.items),
                name=named.name,
                query=named.query,
                next_page_token=result.next_page_token,
            )
            results.append(result)
        return results


@dataclass(slots=True)
class GetCommand:
    """Fetch a single message and write it."""

    search_service: MailSearchService
    message_id: str
    include_body: bool
    output_writer: OutputWriter

    def execute(self) -> None:
        """Fetch the message and write it as a one-item batch."""
        message = self.search_service.get_message(self.message_id, include_body=self.include_body)
        self.output_writer.write_query_result([map_message_to_view(message)], name=None, query=None)


@dataclass(slots=True)
class CategoriesCommand:
    """List mailbox master categories."""

    search_service: MailSearchService

    def execute(self) -> Sequence[Category]:
        """Log each category and return the list."""
        categories = self.search_service.list_categories()
        log.info("Found %d categories", len(categories))
        for category in categories:
            if category.color:
                log.info("- %s (%s)", category.display_name, category.color)
            else:
                log.info("- %s", category.display_name)
        return categories


@dataclass(slots=True)
class ExportCommand:
    """Stream every match of a query into the writer."""

    search_service: MailSearchService
    query: Query | None
    name: str | None
    max_items: int
    page_size: int
    max_pages: int | None
    max_items_scanned: int | None
    output_writer: OutputWriter

    def execute(self) -> ExportSummary:
        """Run the paged export.

        Returns:
            ExportSummary with the row count and truncation flag.
        """

        def sink(batch) -> None:
            self.output_writer.write_query_result(map_messages_to_views(batch), name=self.name, query=self.query)

        summary = self.search_service.export(
            self.query,
            sink,
            max_items=self.max_items,
            page_size=self.page_size,
            max_pages=self.max_pages,
            max_items_scanned=self.max_items_scanned,
        )
        if summary.truncated:
            log.warning("Export truncated at %d messages; more matches may exist", summary.row_count)
        return summary
