from __future__ import annotations

"""Public configuration API for OutlookSearch."""

from OutlookSearch.config.app import (
    AppConfig,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
)
from OutlookSearch.config.graph import GraphConfig
from OutlookSearch.config.output import OutputConfig
from OutlookSearch.config.runtime import RuntimeConfig
from OutlookSearch.config.search import NamedQuery, SearchConfig

__all__ = [
    "RuntimeConfig",
    "GraphConfig",
    "SearchConfig",
    "NamedQuery",
    "OutputConfig",
    "AppConfig",
    "load_config",
    "load_config_with_defaults",
    "merge_config_dicts",
    "parse_config_dict",
]
