"""`log` section: console level and optional per-command log files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from OutlookSearch.config.common import (
    check_non_empty,
    expect_bool,
    expect_str,
    get_required_value,
    get_section,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Logging settings handed to `configure_logging`.

    Attributes:
        level: Console level name, upper-cased.
        to_file: Mirror DEBUG output to ``<dir>/<command>/``.
        dir: Root directory for log files.
    """

    level: str
    to_file: bool
    dir: str


def load_runtime(raw: Mapping[str, Any]) -> RuntimeConfig:
    section = get_section(raw, "log", required=True)

    def value(name: str) -> Any:
        return get_required_value(section, name, f"log.{name}")

    return RuntimeConfig(
        level=expect_str(value("level"), "log.level").upper(),
        to_file=expect_bool(value("to_file"), "log.to_file"),
        dir=expect_str(value("dir"), "log.dir"),
    )


def check_runtime(config: RuntimeConfig) -> None:
    if config.level not in LOG_LEVELS:
        raise ValueError(f"log.level must be one of {list(LOG_LEVELS)}")
    check_non_empty(config.dir, "log.dir")
