"""Command runner for coordinating CLI execution.

Manages logging configuration, component creation, writer finalization,
resource cleanup and error handling for each command.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import click

from OutlookSearch.cli.commands import CategoriesCommand, ExportCommand, GetCommand, SearchCommand
from OutlookSearch.config import AppConfig, NamedQuery
from OutlookSearch.core.models import SearchOptions
from OutlookSearch.renderers import ConsoleOutputWriter, CsvFileWriter, OutputWriter, create_output_writer
from OutlookSearch.services import MailSearchService, create_search_service
from OutlookSearch.utils.log import configure_logging, log


class CommandRunner:
    """Orchestrates command execution with proper resource management."""

    def __init__(
        self,
        config: AppConfig,
        service_factory: Callable[[AppConfig], MailSearchService] | None = None,
    ) -> None:
        """Initialize command runner.

        Args:
            config: Application configuration.
            service_factory: Builds the search service; defaults to
                `create_search_service`.
        """
        self.config = config
        self.service_factory = service_factory

    def run_search(self, action: str, queries: tuple[NamedQuery, ...], options: SearchOptions) -> None:
        """Execute the search command.

        Raises:
            click.Abort: When the search fails.
        """
        writer = create_output_writer(self.config)
        self._run(
            action,
            writer,
            lambda service: SearchCommand(
                search_service=service,
                queries=queries,
                options=options,
                output_writer=writer,
            ),
        )

    def run_get(self, action: str, message_id: str, *, include_body: bool) -> None:
        """Execute the get command.

        Raises:
            click.Abort: When the request fails.
        """
        writer = create_output_writer(self.config)
        self._run(
            action,
            writer,
            lambda service: GetCommand(
                search_service=service,
                message_id=message_id,
                include_body=include_body,
                output_writer=writer,
            ),
        )

    def run_categories(self, action: str) -> None:
        """Execute the categories command.

        Raises:
            click.Abort: When the request fails.
        """
        self._run(action, ConsoleOutputWriter(), lambda service: CategoriesCommand(search_service=service))

    def run_export(
        self,
        action: str,
        named: NamedQuery | None,
        *,
        filename: str,
        max_items: int,
        page_size: int,
    ) -> None:
        """Execute the export command; a failed export leaves no partial file.

        Raises:
            click.Abort: When the export fails.
        """
        writer = CsvFileWriter(self.config.output.base_dir, filename)
        self._run(
            action,
            writer,
            lambda service: ExportCommand(
                search_service=service,
                query=named.query if named else None,
                name=named.name if named else None,
                max_items=max_items,
                page_size=page_size,
                max_pages=self.config.search.max_pages,
                max_items_scanned=self.config.search.max_items_scanned,
                output_writer=writer,
            ),
        )

    def _run(self, action: str, writer: OutputWriter, build: Callable[[MailSearchService], Any]) -> None:
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
        service: MailSearchService | None = None
        try:
            factory = self.service_factory or create_search_service
            service = factory(self.config)
            build(service).execute()
            writer.finalize(action)
        except Exception as e:  # noqa: BLE001 - cli boundary
            writer.discard()
            log.error("%s failed: %s", action.capitalize(), e)
            raise click.Abort from e
        finally:
            if service is not None:
                service.close()
