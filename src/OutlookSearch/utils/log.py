"""Package logger.

Every module logs through `log` (or a child from `logging.getLogger(__name__)`).
Console lines go to stderr as ``mm-dd HH:MM:SS [LVL] message`` with a
four-letter level, so stdout stays free for command output.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

log = logging.getLogger("OutlookSearch")

_SHORT_LEVELS = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "ERRO",
}


class _ShortLevelFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(short_level)s] %(message)s", datefmt="%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.short_level = _SHORT_LEVELS.get(record.levelno, record.levelname[:4])
        return super().format(record)


def _open_log_file(action: str, log_dir: str) -> Path:
    folder = Path(log_dir or "log") / action
    folder.mkdir(parents=True, exist_ok=True)
    return folder / f"{action}_{datetime.now():%m%d%H%M%S}.log"


def configure_logging(
    *,
    level: str = "INFO",
    action: str | None = None,
    log_to_file: bool = False,
    log_dir: str = "log",
) -> Path | None:
    """Replace the handlers of the package logger.

    Args:
        level: Console level name; unknown names fall back to INFO.
        action: CLI command name, used as the log file folder and prefix.
        log_to_file: Also write DEBUG and above to ``<log_dir>/<action>/``.
        log_dir: Root directory for log files.

    Returns:
        The log file path, or None when only the console is used.
    """
    console_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    formatter = _ShortLevelFormatter()

    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(formatter)
    log.addHandler(console)

    log_path: Path | None = None
    if log_to_file and action:
        log_path = _open_log_file(action, log_dir)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    log.setLevel(min(logging.DEBUG, console_level))
    log.propagate = False
    return log_path
