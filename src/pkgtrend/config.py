"""Configuration for pkgtrend.

Defaults live on ``TrackerConfig``; a YAML file may override any of them.
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .utils import validate_package_id, validate_repository

DEFAULT_CONFIG_FILE = "pkgtrend.yml"
DEFAULT_DB_FILE = "pkgtrend.db"


@dataclass(frozen=True)
class TrackerConfig:
    """Immutable settings for one tracked package and repository."""

    package_id: str = "Ivy"
    repository: str = "Ivy-Interactive/Ivy-Framework"
    database: str = DEFAULT_DB_FILE

    cache_minutes: float = 15.0
    # Statistics cache freshness window. 0 disables caching.

    registry_timeout: float = 30.0
    # Per-page timeout for registry and search requests (seconds).

    roster_timeout: float = 15.0
    # Per-page timeout for stargazer roster requests (seconds).

    roster_page_size: int = 100
    # GitHub caps per_page at 100.

    max_workers: int = 4
    # Bounded fan-out for concurrent registry page fetches.

    github_token: str | None = None

    def validate(self) -> None:
        """Raise ValueError if the package id or repository is malformed."""
        ok, message = validate_package_id(self.package_id)
        if not ok:
            raise ValueError(message)
        ok, message = validate_repository(self.repository)
        if not ok:
            raise ValueError(message)
        if self.roster_page_size < 1 or self.max_workers < 1:
            raise ValueError("roster_page_size and max_workers must be positive")


def load_config(path: str | None = None, **overrides: Any) -> TrackerConfig:
    """Build a TrackerConfig from an optional YAML file.

    Keys in the file must match TrackerConfig field names. Keyword overrides
    that are not None win over the file. ``GITHUB_TOKEN`` supplies the token
    when neither sets one.
    """
    values: dict[str, Any] = {}

    if path is not None and Path(path).exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        known = {f.name for f in fields(TrackerConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")
        values.update(data)

    values.update({k: v for k, v in overrides.items() if v is not None})

    config = replace(TrackerConfig(), **values)
    if config.github_token is None and os.environ.get("GITHUB_TOKEN"):
        config = replace(config, github_token=os.environ["GITHUB_TOKEN"])

    config.validate()
    return config
