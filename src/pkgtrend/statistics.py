"""Merge registry versions with download counts into package statistics."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from .errors import NoVersionsFound
from .registry import sort_versions
from .types import (
    PackageMetadata,
    PackageStatistics,
    RegistryTraversal,
    ReleaseSummary,
    VersionRecord,
)
from .versions import is_prerelease, normalize_version

logger = logging.getLogger("pkgtrend")

# The registry reports unlisted versions with a placeholder publish date
# (1900-01-01); anything before this year is treated as unlisted.
UNLISTED_BEFORE_YEAR = 2000

SecondarySource = Callable[[list[str]], dict[str, int]]


def merge_download_counts(
    versions: list[VersionRecord],
    metadata: PackageMetadata | None,
    secondary: SecondarySource | None = None,
) -> list[VersionRecord]:
    """Fill in ``downloads`` on each record, in place.

    Pass 1 matches against the primary metadata by normalized version key.
    Pass 2 asks ``secondary`` only for the raw versions still missing a count.

    Returns:
        The records that still have no download count.
    """
    primary: dict[str, int] = {}
    if metadata is not None:
        for version, downloads in metadata.versions:
            primary[normalize_version(version)] = downloads

    for record in versions:
        key = normalize_version(record.version)
        if key in primary:
            record.downloads = primary[key]

    unmatched = [record for record in versions if record.downloads is None]
    if unmatched and secondary is not None:
        logger.debug("Querying secondary source for %d versions", len(unmatched))
        extra = secondary([record.version for record in unmatched])
        for record in unmatched:
            key = normalize_version(record.version)
            if key in extra:
                record.downloads = extra[key]
        unmatched = [record for record in unmatched if record.downloads is None]

    return unmatched


def _dedupe_normalized(versions: list[VersionRecord]) -> list[VersionRecord]:
    seen: set[str] = set()
    unique = []
    for record in versions:
        key = normalize_version(record.version)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def build_package_statistics(
    package_id: str,
    traversal: RegistryTraversal,
    metadata: PackageMetadata | None,
    secondary: SecondarySource | None = None,
) -> PackageStatistics:
    """Assemble the statistics aggregate for one package.

    Raises:
        NoVersionsFound: If no listed versions remain after traversal.
    """
    versions = [
        v
        for v in traversal.versions
        if v.published is None or v.published.year >= UNLISTED_BEFORE_YEAR
    ]
    if not versions:
        raise NoVersionsFound(f"Package {package_id} not found or has no versions")

    versions = sort_versions(versions)
    merge_download_counts(versions, metadata, secondary)
    versions = _dedupe_normalized(versions)

    latest = versions[0]
    published_dates = [v.published for v in versions if v.published is not None]

    return PackageStatistics(
        package_id=package_id,
        description=metadata.description if metadata else None,
        authors=metadata.authors[0] if metadata and metadata.authors else None,
        project_url=metadata.project_url if metadata else None,
        total_versions=len(versions),
        latest_version=latest.version,
        latest_version_published=latest.published,
        first_version_published=min(published_dates) if published_dates else None,
        total_downloads=metadata.total_downloads if metadata else None,
        versions=versions,
        failed_pages=[failure.url for failure in traversal.failures],
    )


def most_downloaded_version(stats: PackageStatistics) -> VersionRecord | None:
    """Return the version with the highest known download count."""
    counted = [v for v in stats.versions if v.downloads]
    if not counted:
        return None
    return max(counted, key=lambda v: v.downloads or 0)


def top_versions(
    stats: PackageStatistics, since: datetime, limit: int = 5
) -> list[VersionRecord]:
    """Most downloaded versions published on or after ``since``."""
    recent = [
        v
        for v in stats.versions
        if v.published is not None and v.published >= since and v.downloads
    ]
    return sorted(recent, key=lambda v: v.downloads or 0, reverse=True)[:limit]


def filter_versions(
    stats: PackageStatistics,
    start: datetime | None = None,
    end: datetime | None = None,
    include_prerelease: bool = True,
    limit: int | None = None,
) -> list[VersionRecord]:
    """Select versions published in ``[start, end)``, newest first."""
    selected = []
    for v in stats.versions:
        if not include_prerelease and is_prerelease(v.version):
            continue
        if start is not None and (v.published is None or v.published < start):
            continue
        if end is not None and (v.published is None or v.published >= end):
            continue
        selected.append(v)
    return selected[:limit] if limit is not None else selected


def release_summary(stats: PackageStatistics, now: datetime) -> ReleaseSummary:
    """Release counts for the current and previous calendar month (UTC).

    ``downloads_last_month`` sums the download counts of the versions
    published last month; versions without a count contribute nothing.
    """
    now = now.astimezone(timezone.utc)
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if this_month.month == 1:
        last_month = this_month.replace(year=this_month.year - 1, month=12)
    else:
        last_month = this_month.replace(month=this_month.month - 1)

    previous = filter_versions(stats, start=last_month, end=this_month)
    current = filter_versions(stats, start=this_month, end=now)
    return {
        "versions_this_month": len(current),
        "versions_last_month": len(previous),
        "downloads_last_month": sum(v.downloads or 0 for v in previous),
    }
