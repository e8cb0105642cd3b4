"""Constants for the lin CLI."""

from __future__ import annotations

import re

APP_NAME = "lin"

LINEAR_API_URL = "https://api.linear.app/graphql"
LINEAR_API_TOKEN_ENV = "LINEAR_API_TOKEN"
CONFIG_DIR_ENV = "LIN_CONFIG_DIR"
CACHE_DIR_ENV = "LIN_CACHE_DIR"

CONFIG_FILENAME = "config.toml"
CACHE_FILENAME = "cache.json"

# Bumped whenever the on-disk layout changes incompatibly
SCHEMA_VERSION = 1

# Remote API request timeout in seconds
REQUEST_TIMEOUT = 30.0

# Page sizes used by sync and list queries
TEAMS_PAGE_SIZE = 100
DEFAULT_ISSUE_LIMIT = 50

# TTLs in seconds, keyed by entity type tag
TTL_SECONDS: dict[str, int] = {
    "teams": 60 * 60,
    "users": 60 * 60,
    "workflow-states": 60 * 60,
    "labels": 30 * 60,
    "projects": 15 * 60,
    "cycles": 15 * 60,
    "documents": 10 * 60,
    "issues": 5 * 60,
    "comments": 5 * 60,
    "search": 2 * 60,
}

# Priority names accepted by --priority (case-insensitive)
PRIORITY_NAMES: dict[str, int] = {
    "none": 0,
    "urgent": 1,
    "high": 2,
    "normal": 3,
    "medium": 3,
    "low": 4,
}

PRIORITY_LABELS = {
    0: "No priority",
    1: "Urgent",
    2: "High",
    3: "Normal",
    4: "Low",
}

PRIORITY_COLORS = {
    0: "bright_black",
    1: "bright_red",
    2: "yellow",
    3: "white",
    4: "cyan",
}

# Estimate scales by Linear's issueEstimationType
ESTIMATE_SCALES: dict[str, list[tuple[str, float]]] = {
    "tShirt": [("xs", 1.0), ("s", 2.0), ("m", 3.0), ("l", 5.0), ("xl", 8.0)],
    "linear": [(str(v), float(v)) for v in (1, 2, 3, 4, 5)],
    "fibonacci": [(str(v), float(v)) for v in (1, 2, 3, 5, 8, 13, 21)],
    "exponential": [(str(v), float(v)) for v in (1, 2, 4, 8, 16, 32, 64)],
}

# Opaque Linear identifiers are UUIDs (8-4-4-4-12 hex)
UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

TOKEN_PREFIX = "lin_api_"
MASKED_TOKEN_VISIBLE = 12

STATE_COLORS = {
    "backlog": "bright_black",
    "unstarted": "white",
    "started": "bright_blue",
    "completed": "bright_green",
    "canceled": "bright_red",
}


def is_uuid(value: str) -> bool:
    """Return True if *value* has the shape of a Linear opaque identifier."""
    return bool(UUID_RE.match(value))
