"""Microsoft Graph connection configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from OutlookSearch.config.common import (
    check_non_empty,
    expect_float,
    expect_str,
    get_required_value,
    get_section,
)


@dataclass(frozen=True, slots=True)
class GraphConfig:
    """Graph API endpoint and credentials.

    Attributes:
        base_url: API root including the version segment.
        access_token_env: Environment variable holding the bearer token.
        timeout: Request timeout in seconds.
        access_token: Token resolved from the environment; empty when unset.
    """

    base_url: str
    access_token_env: str
    timeout: float
    access_token: str = ""


def load_graph(raw: Mapping[str, Any]) -> GraphConfig:
    """Load the `graph` section and resolve the access token from the environment.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "graph", required=True)
    token_env = expect_str(
        get_required_value(section, "access_token_env", "graph.access_token_env"),
        "graph.access_token_env",
    )
    return GraphConfig(
        base_url=expect_str(get_required_value(section, "base_url", "graph.base_url"), "graph.base_url"),
        access_token_env=token_env,
        timeout=expect_float(get_required_value(section, "timeout", "graph.timeout"), "graph.timeout"),
        access_token=os.getenv(token_env, "").strip(),
    )


def check_graph(config: GraphConfig) -> None:
    """Validate Graph settings. A missing token is reported when a command needs it.

    Raises:
        ValueError: If values violate Graph constraints.
    """
    check_non_empty(config.base_url, "graph.base_url")
    if not config.base_url.startswith(("https://", "http://")):
        raise ValueError("graph.base_url must be an http(s) URL")
    check_non_empty(config.access_token_env, "graph.access_token_env")
    if config.timeout <= 0:
        raise ValueError("graph.timeout must be positive")
