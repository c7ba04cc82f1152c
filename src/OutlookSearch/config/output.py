"""Output domain configuration for multi-format rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from OutlookSearch.config.common import (
    check_non_empty,
    expect_int,
    expect_str,
    expect_str_list,
    get_required_value,
    get_section,
)
from OutlookSearch.services.search import MAX_EXPORT_ITEMS

_ALLOWED_FORMATS = {"console", "json", "csv"}


@dataclass(frozen=True, slots=True)
class OutputConfig:
    """Output configuration.

    Attributes:
        base_dir: Directory receiving json/ and csv/ outputs.
        formats: Enabled writers for `search`.
        csv_filename: File name stem used by `export`.
        export_max_items: Default message limit for `export`.
    """

    base_dir: str
    formats: tuple[str, ...]
    csv_filename: str
    export_max_items: int


def load_output(raw: Mapping[str, Any]) -> OutputConfig:
    """Load output domain config from raw mapping.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "output", required=True)
    formats = tuple(
        item.lower() for item in expect_str_list(get_required_value(section, "formats", "output.formats"), "output.formats")
    )
    return OutputConfig(
        base_dir=expect_str(get_required_value(section, "base_dir", "output.base_dir"), "output.base_dir"),
        formats=formats,
        csv_filename=expect_str(section.get("csv_filename", "outlook-messages.csv"), "output.csv_filename"),
        export_max_items=expect_int(section.get("export_max_items", 10000), "output.export_max_items"),
    )


def check_output(config: OutputConfig) -> None:
    """Validate output domain constraints.

    Raises:
        ValueError: If values violate output constraints.
    """
    check_non_empty(config.base_dir, "output.base_dir")
    if not config.formats:
        raise ValueError("output.formats must include at least one format")
    unknown = set(config.formats) - _ALLOWED_FORMATS
    if unknown:
        raise ValueError(f"output.formats has unknown formats: {sorted(unknown)}")
    check_non_empty(config.csv_filename, "output.csv_filename")
    if not 1 <= config.export_max_items <= MAX_EXPORT_ITEMS:
        raise ValueError(f"output.export_max_items must be between 1 and {MAX_EXPORT_ITEMS}")
