"""Output renderers for command results.

Provides the OutputWriter base class, console/JSON/CSV implementations, and a
factory that instantiates writers from configuration.
"""

from __future__ import annotations

from OutlookSearch.config import AppConfig
from OutlookSearch.renderers.base import MultiOutputWriter, OutputWriter
from OutlookSearch.renderers.console import ConsoleOutputWriter, render_text
from OutlookSearch.renderers.csv import CsvFileWriter
from OutlookSearch.renderers.json import JsonFileWriter, render_json


def create_output_writer(config: AppConfig) -> OutputWriter:
    """Create output writer based on config.

    Args:
        config: Application configuration.

    Returns:
        MultiOutputWriter over every configured format.

    Raises:
        ValueError: If no format is configured.
    """
    writers: list[OutputWriter] = []
    if "console" in config.output.formats:
        writers.append(ConsoleOutputWriter())
    if "json" in config.output.formats:
        writers.append(JsonFileWriter(config.output.base_dir))
    if "csv" in config.output.formats:
        writers.append(CsvFileWriter(config.output.base_dir, config.output.csv_filename))

    if not writers:
        raise ValueError("No output writers configured")
    return MultiOutputWriter(writers)


__all__ = [
    "OutputWriter",
    "ConsoleOutputWriter",
    "CsvFileWriter",
    "JsonFileWriter",
    "MultiOutputWriter",
    "render_json",
    "render_text",
    "create_output_writer",
]
