"""Base classes for output writers.

Separates command control flow from output logic so commands can be tested
with in-memory writers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from OutlookSearch.renderers.view_models import MessageView

if TYPE_CHECKING:
    from OutlookSearch.core.query import Query


class OutputWriter(ABC):
    """Abstract base class for command output writers."""

    @abstractmethod
    def write_query_result(
        self,
        messages: list[MessageView],
        *,
        name: str | None,
        query: Query | None,
        next_page_token: str | None = None,
    ) -> None:
        """Write one batch of results.

        Args:
            messages: Message views to write.
            name: Query name or other label for the batch.
            query: The query that produced the batch, if any.
            next_page_token: Continuation token returned with the batch.
        """

    @abstractmethod
    def finalize(self, action: str) -> None:
        """Finalize output (e.g., write accumulated results to file).

        Args:
            action: The CLI command name (e.g., 'search').
        """

    def discard(self) -> None:
        """Drop partial output after a failed command. No-op by default."""


@dataclass(slots=True)
class MultiOutputWriter(OutputWriter):
    """Delegate output to multiple writers."""

    writers: Sequence[OutputWriter]

    def write_query_result(
        self,
        messages: list[MessageView],
        *,
        name: str | None,
        query: Query | None,
        next_page_token: str | None = None,
    ) -> None:
        """Send results to all writers."""
        for writer in self.writers:
            writer.write_query_result(messages, name=name, query=query, next_page_token=next_page_token)

    def finalize(self, action: str) -> None:
        """Finalize all writers."""
        for writer in self.writers:
            writer.finalize(action)

    def discard(self) -> None:
        """Discard partial output of all writers."""
        for writer in self.writers:
            writer.discard()
