"""Search service layer for OutlookSearch.

Provides the mailbox source abstraction and the factory that wires the
configured Graph source into a `MailSearchService`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from OutlookSearch.services.search import ExportSummary, MailSearchService, MailSource

if TYPE_CHECKING:
    from OutlookSearch.config import AppConfig


def create_search_service(config: AppConfig) -> MailSearchService:
    """Create a search service backed by Microsoft Graph.

    Args:
        config: Application configuration containing Graph settings.

    Returns:
        Configured MailSearchService instance.

    Raises:
        ValueError: If no access token is available.
    """
    from OutlookSearch.sources.graph.client import GraphApiClient
    from OutlookSearch.sources.graph.source import GraphMailSource

    graph = config.graph
    if not graph.access_token:
        raise ValueError(
            f"{graph.access_token_env} environment variable not set. "
            "Set it in your .env file or shell environment."
        )
    client = GraphApiClient(graph.access_token, base_url=graph.base_url, timeout=graph.timeout)
    return MailSearchService(source=GraphMailSource(client=client))


__all__ = [
    "ExportSummary",
    "MailSearchService",
    "MailSource",
    "create_search_service",
]
