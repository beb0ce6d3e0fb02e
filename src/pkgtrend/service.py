"""Service layer tying the sources, cache and storage together.

``TrackerService`` is the composition root: it owns the HTTP session, the
source clients, the statistics cache and the database path.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta

import requests

from . import db
from .aggregate import (
    DAYS_PER_WEEK,
    daily_deltas,
    download_summary,
    roster_events,
    star_totals_by_day,
    weekly_growth_series,
)
from .cache import StatisticsCache
from .config import TrackerConfig
from .errors import SourceUnavailable
from .export import (
    DAILY_COLUMNS,
    VERSION_COLUMNS,
    daily_rows,
    export_csv,
    export_json,
    export_markdown,
    version_rows,
)
from .github import GitHubRosterClient
from .reconcile import StargazerReconciler
from .registry import RegistryClient, create_session
from .statistics import build_package_statistics, release_summary
from .types import (
    DailyDelta,
    DownloadSummary,
    PackageStatistics,
    ReconcileResult,
    ReleaseSummary,
    RosterDailyStats,
    RosterEvent,
    StarCounts,
    WeeklyGrowth,
)
from .utils import utc_now

logger = logging.getLogger("pkgtrend")

EXPORT_FORMATS = ("csv", "json", "markdown", "md")


class TrackerService:
    """High-level operations for one tracked package and repository.

    Args:
        config: Tracker settings.
        session: HTTP session shared by both sources. Created if omitted.
        clock: Returns the current time (aware UTC).
    """

    def __init__(
        self,
        config: TrackerConfig,
        session: requests.Session | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.clock = clock
        self.session = session if session is not None else create_session()
        self.registry = RegistryClient(
            self.session,
            timeout=config.registry_timeout,
            max_workers=config.max_workers,
        )
        self.roster = GitHubRosterClient(
            self.session,
            token=config.github_token,
            timeout=config.roster_timeout,
            page_size=config.roster_page_size,
        )
        self.cache = StatisticsCache(
            self._load_statistics,
            expiration=timedelta(minutes=config.cache_minutes),
            clock=clock,
        )

    def _today(self) -> date:
        return self.clock().date()

    # -------------------------------------------------------------------------
    # Package statistics
    # -------------------------------------------------------------------------

    def _load_statistics(self, package_id: str) -> PackageStatistics:
        traversal = self.registry.traverse(package_id)
        metadata = self.registry.fetch_package_metadata(package_id)

        def secondary(versions: list[str]) -> dict[str, int]:
            return self.registry.fetch_version_downloads(package_id, versions)

        stats = build_package_statistics(package_id, traversal, metadata, secondary)
        logger.debug(
            "Loaded %d versions for %s (%d pages skipped)",
            stats.total_versions,
            package_id,
            len(stats.failed_pages),
        )
        return stats

    def get_package_statistics(self, package_id: str | None = None) -> PackageStatistics:
        """Merged version and download statistics, served from cache when fresh.

        Raises:
            RegistryUnavailable: If the registry index cannot be read.
            NoVersionsFound: If the package has no listed versions.
        """
        return self.cache.get(package_id or self.config.package_id)

    def release_summary(self, package_id: str | None = None) -> ReleaseSummary:
        """Versions released this month and last, with last month's downloads."""
        return release_summary(self.get_package_statistics(package_id), self.clock())

    def record_download_snapshot(self, day: date | None = None) -> int:
        """Store today's cumulative download total for the tracked package.

        Raises:
            SourceUnavailable: If the search source does not report a total.
        """
        package_id = self.config.package_id
        metadata = self.registry.fetch_package_metadata(package_id)
        if metadata is None or metadata.total_downloads is None:
            raise SourceUnavailable(f"No download total reported for {package_id}")

        with db.get_db(self.config.database) as conn:
            db.store_download_snapshot(
                conn, package_id, metadata.total_downloads, day or self._today()
            )
        logger.info("Recorded %s downloads for %s", metadata.total_downloads, package_id)
        return metadata.total_downloads

    # -------------------------------------------------------------------------
    # Stargazers
    # -------------------------------------------------------------------------

    def sync_stargazers(self) -> ReconcileResult:
        """Run one stargazer reconciliation pass."""
        with db.get_db(self.config.database) as conn:
            reconciler = StargazerReconciler(
                conn, self.roster.fetch_roster, self.config.repository, self.clock
            )
            return reconciler.reconcile()

    def star_counts(self) -> StarCounts:
        with db.get_db(self.config.database) as conn:
            return db.get_star_counts(conn, self.config.repository)

    def roster_daily_stats(self, days: int = 30) -> list[RosterDailyStats]:
        with db.get_db(self.config.database) as conn:
            return db.get_roster_daily_stats(conn, self.config.repository, days)

    def roster_events(
        self, start: date | None = None, end: date | None = None
    ) -> list[RosterEvent]:
        """Joined/left events for the repository, newest first."""
        with db.get_db(self.config.database) as conn:
            accounts = db.get_roster(conn, self.config.repository)
        return roster_events(accounts, start, end)

    # -------------------------------------------------------------------------
    # Daily series
    # -------------------------------------------------------------------------

    def download_deltas(self, days: int = 30, descending: bool = True) -> list[DailyDelta]:
        """Daily download growth for the last ``days`` days with data."""
        with db.get_db(self.config.database) as conn:
            # One extra snapshot supplies the baseline for the oldest delta
            snapshots = db.get_download_snapshots(conn, self.config.package_id, days + 1)
        return daily_deltas(snapshots, descending=descending)

    def star_deltas(self, days: int = 30, descending: bool = True) -> list[DailyDelta]:
        """Daily star growth reconstructed from roster state, up to yesterday."""
        with db.get_db(self.config.database) as conn:
            accounts = db.get_roster(conn, self.config.repository)
        today = self._today()
        snapshots = star_totals_by_day(
            accounts, today - timedelta(days=days + 1), today - timedelta(days=1)
        )
        return daily_deltas(snapshots, descending=descending)

    def download_summary(self) -> DownloadSummary:
        # Two full weeks plus the month so far
        deltas = self.download_deltas(days=max(2 * DAYS_PER_WEEK, 31))
        return download_summary(deltas, self._today())

    def weekly_growth(self, weeks: int = 12) -> list[WeeklyGrowth]:
        deltas = self.download_deltas(days=(weeks + 1) * DAYS_PER_WEEK)
        return weekly_growth_series(deltas, self._today(), weeks)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export(self, kind: str, fmt: str, days: int = 30) -> str | None:
        """Export versions or daily downloads as csv, json or markdown.

        Returns None when there is nothing to export.

        Raises:
            ValueError: If the kind or format is unknown.
        """
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unknown format: {fmt}")

        if kind == "versions":
            stats = self.get_package_statistics()
            rows, columns = version_rows(stats), VERSION_COLUMNS
            extra = {"package": stats.package_id}
        elif kind == "downloads":
            rows, columns = daily_rows(self.download_deltas(days)), DAILY_COLUMNS
            extra = {"package": self.config.package_id}
        elif kind == "stars":
            rows, columns = daily_rows(self.star_deltas(days)), DAILY_COLUMNS
            extra = {"repository": self.config.repository}
        else:
            raise ValueError(f"Unknown export kind: {kind}")

        if not rows:
            return None
        if fmt == "csv":
            return export_csv(rows, columns)
        if fmt == "json":
            return export_json(rows, kind, **extra)
        return export_markdown(rows, columns)
