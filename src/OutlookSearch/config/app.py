"""Root config: the `log`, `graph`, `search` and `output` sections.

`config/default.yml` is always read first. A user file only carries the keys it
changes; nested mappings are merged key by key, anything else is replaced.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from OutlookSearch.config.graph import GraphConfig, check_graph, load_graph
from OutlookSearch.config.output import OutputConfig, check_output, load_output
from OutlookSearch.config.runtime import RuntimeConfig, check_runtime, load_runtime
from OutlookSearch.config.search import SearchConfig, check_search, load_search

DEFAULT_CONFIG_PATH = Path("config/default.yml")


@dataclass(frozen=True, slots=True)
class AppConfig:
    runtime: RuntimeConfig
    graph: GraphConfig
    search: SearchConfig
    output: OutputConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Build an `AppConfig` from a merged mapping, then run each section check.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If a key is missing or a value is out of range.
    """
    config = AppConfig(
        runtime=load_runtime(raw),
        graph=load_graph(raw),
        search=load_search(raw),
        output=load_output(raw),
    )
    check_runtime(config.runtime)
    check_graph(config.graph)
    check_search(config.search)
    check_output(config.output)
    return config


def load_config(path: Path) -> AppConfig:
    """Load a single complete config file, without defaults."""
    return load_config_with_defaults(path, default_path=path)


def load_config_with_defaults(config_path: Path, default_path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    raw = parse_yaml(default_path.read_text(encoding="utf-8"))
    if config_path != default_path:
        raw = merge_config_dicts(raw, parse_yaml(config_path.read_text(encoding="utf-8")))
    return parse_config_dict(raw)


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse YAML text; an empty document reads as an empty mapping."""
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(current, value)
        else:
            merged[key] = value
    return merged
