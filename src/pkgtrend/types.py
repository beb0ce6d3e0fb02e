"""Type definitions for pkgtrend.

Dataclasses for domain records, TypedDict for plain summaries.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TypedDict


@dataclass
class VersionRecord:
    """A single published version of a package."""

    version: str
    published: datetime | None = None
    downloads: int | None = None


@dataclass
class PackageMetadata:
    """Search-source view of a package."""

    package_id: str
    description: str | None = None
    authors: list[str] = field(default_factory=list)
    project_url: str | None = None
    total_downloads: int | None = None
    versions: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class PageResult:
    """Outcome of fetching one registry page.

    A successful page carries the records it yielded (including those of any
    pages it pointed to). A failed page carries the reason instead.
    """

    url: str
    ok: bool
    records: list[VersionRecord] = field(default_factory=list)
    reason: str | None = None

    @classmethod
    def success(cls, url: str, records: list[VersionRecord]) -> "PageResult":
        return cls(url=url, ok=True, records=records)

    @classmethod
    def soft_failure(cls, url: str, reason: str) -> "PageResult":
        return cls(url=url, ok=False, reason=reason)


@dataclass
class RegistryTraversal:
    """Everything collected from one walk of the registry index."""

    package_id: str
    versions: list[VersionRecord] = field(default_factory=list)
    failures: list[PageResult] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


@dataclass
class PackageStatistics:
    """Merged registry and download data for one package."""

    package_id: str
    description: str | None
    authors: str | None
    project_url: str | None
    total_versions: int
    latest_version: str
    latest_version_published: datetime | None
    first_version_published: datetime | None
    total_downloads: int | None
    versions: list[VersionRecord]
    failed_pages: list[str] = field(default_factory=list)


@dataclass
class StargazerAccount:
    """One account that has starred the tracked repository at some point."""

    username: str
    starred_at: datetime | None = None
    unstarred_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.unstarred_at is None


@dataclass
class ReconcileResult:
    """Outcome of one stargazer reconciliation pass."""

    success: bool
    error: str | None = None
    new: list[str] = field(default_factory=list)
    departed: list[str] = field(default_factory=list)
    reactivated: list[str] = field(default_factory=list)

    @property
    def new_count(self) -> int:
        return len(self.new)

    @property
    def departed_count(self) -> int:
        return len(self.departed)

    @property
    def reactivated_count(self) -> int:
        return len(self.reactivated)


@dataclass(frozen=True)
class DailySnapshot:
    """Cumulative count observed on a day."""

    date: date
    total: int


@dataclass(frozen=True)
class DailyDelta:
    """Day-over-day change between consecutive snapshots."""

    date: date
    total: int
    growth: int


@dataclass(frozen=True)
class RosterDailyStats:
    """Roster changes recorded for one day."""

    date: date
    new_count: int
    unstar_count: int
    reactivated_count: int


@dataclass(frozen=True)
class RosterEvent:
    """A joined/left event derived from roster state."""

    username: str
    action: str  # "joined" or "left"
    when: datetime
    days_since_previous: int | None


@dataclass(frozen=True)
class WeeklyGrowth:
    """Growth of one Monday-Sunday week against the week before."""

    week_start: date
    total: int
    growth_percent: float


@dataclass(frozen=True)
class MovingAveragePoint:
    """Trailing average of daily growth ending on a day."""

    date: date
    average: float


class StarCounts(TypedDict):
    """Star totals derived from the roster table."""

    starred: int
    unstarred: int
    total_ever: int


class DownloadSummary(TypedDict):
    """Headline download figures for a package."""

    this_week: int
    previous_week: int
    week_over_week: float
    average_daily: float
    month_to_date: int
    projected_month: float


class ReleaseSummary(TypedDict):
    """Release activity of a package by calendar month."""

    versions_this_month: int
    versions_last_month: int
    downloads_last_month: int
