"""Typed accessors shared by the config section loaders.

Wrong types raise `TypeError`, missing keys raise `ValueError`. Both name the
full dotted key (``graph.timeout``, ``queries[0].NAME``) so the CLI can print
the message unchanged.
"""

from __future__ import annotations

from typing import Any, Mapping


def get_section(raw: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    """Return `raw[key]` as a mapping; a missing optional section reads as empty."""
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config: {key}")
        return {}
    if not isinstance(section, Mapping):
        raise TypeError(f"{key} must be an object")
    return section


def get_required_value(section: Mapping[str, Any], field: str, config_key: str) -> Any:
    try:
        return section[field]
    except KeyError:
        raise ValueError(f"Missing required config: {config_key}") from None


def _wrong_type(config_key: str, expected: str) -> TypeError:
    return TypeError(f"{config_key} must be {expected}")


def expect_str(value: Any, config_key: str) -> str:
    if isinstance(value, str):
        return value
    raise _wrong_type(config_key, "a string")


def expect_bool(value: Any, config_key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise _wrong_type(config_key, "a boolean")


def expect_int(value: Any, config_key: str) -> int:
    """Accept an int; `True`/`False` are rejected even though they are ints."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise _wrong_type(config_key, "an integer")


def expect_optional_int(value: Any, config_key: str) -> int | None:
    """Like `expect_int`, but YAML `null` passes through as "no limit"."""
    return None if value is None else expect_int(value, config_key)


def expect_float(value: Any, config_key: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise _wrong_type(config_key, "a number")


def expect_str_list(value: Any, config_key: str) -> list[str]:
    if not isinstance(value, list):
        raise _wrong_type(config_key, "a list")
    for idx, item in enumerate(value):
        if not isinstance(item, str):
            raise _wrong_type(f"{config_key}[{idx}]", "a string")
    return list(value)


def check_non_empty(value: str, config_key: str) -> None:
    if not value.strip():
        raise ValueError(f"{config_key} must not be empty")
