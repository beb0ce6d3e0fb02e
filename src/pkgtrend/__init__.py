"""pkgtrend - Track package downloads and repository stars over time.

Walks a package registry for every published version, merges per-version
download counts from the search endpoints, keeps a reconciled roster of
repository stargazers in SQLite, and derives daily and weekly growth series.
"""

__version__ = "0.1.0"

from .aggregate import (
    average_daily_growth,
    daily_deltas,
    download_summary,
    growth_percent,
    month_to_date,
    moving_average,
    roster_events,
    star_totals_by_day,
    week_over_week_growth,
    weekly_growth_series,
    weekly_sum,
)
from .cache import StatisticsCache
from .cli import main
from .config import DEFAULT_CONFIG_FILE, DEFAULT_DB_FILE, TrackerConfig, load_config
from .db import get_db, get_db_connection, init_db
from .errors import (
    NoVersionsFound,
    PkgTrendError,
    ReconciliationPartialWrite,
    RegistryUnavailable,
    RosterUnavailable,
    SourceUnavailable,
)
from .github import GitHubRosterClient
from .reconcile import StargazerReconciler, diff_roster
from .registry import RegistryClient
from .service import TrackerService
from .statistics import build_package_statistics, merge_download_counts, release_summary
from .types import (
    DailyDelta,
    DailySnapshot,
    PackageMetadata,
    PackageStatistics,
    PageResult,
    ReconcileResult,
    ReleaseSummary,
    RegistryTraversal,
    RosterDailyStats,
    RosterEvent,
    StargazerAccount,
    VersionRecord,
)
from .versions import normalize_version

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DB_FILE",
    "DailyDelta",
    "DailySnapshot",
    "GitHubRosterClient",
    "NoVersionsFound",
    "PackageMetadata",
    "PackageStatistics",
    "PageResult",
    "PkgTrendError",
    "ReconcileResult",
    "ReconciliationPartialWrite",
    "ReleaseSummary",
    "RegistryClient",
    "RegistryTraversal",
    "RegistryUnavailable",
    "RosterDailyStats",
    "RosterEvent",
    "RosterUnavailable",
    "SourceUnavailable",
    "StargazerAccount",
    "StargazerReconciler",
    "StatisticsCache",
    "TrackerConfig",
    "TrackerService",
    "VersionRecord",
    "average_daily_growth",
    "build_package_statistics",
    "daily_deltas",
    "diff_roster",
    "download_summary",
    "get_db",
    "get_db_connection",
    "growth_percent",
    "init_db",
    "load_config",
    "main",
    "merge_download_counts",
    "month_to_date",
    "moving_average",
    "normalize_version",
    "release_summary",
    "roster_events",
    "star_totals_by_day",
    "week_over_week_growth",
    "weekly_growth_series",
    "weekly_sum",
]
