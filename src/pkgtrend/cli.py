"""CLI argument parsing and command implementations."""

import argparse
import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone

from tabulate import tabulate

from .config import DEFAULT_CONFIG_FILE, load_config
from .errors import PkgTrendError
from .logging import setup_logging
from .service import EXPORT_FORMATS, TrackerService
from .statistics import (
    filter_versions,
    most_downloaded_version,
    release_summary,
    top_versions,
)

logger = logging.getLogger("pkgtrend")


def get_service(args: argparse.Namespace) -> TrackerService:
    """Build the service from the config file and command-line overrides."""
    config = load_config(
        args.config,
        database=args.database,
        package_id=args.package,
        repository=args.repository,
    )
    return TrackerService(config)


def _format_count(value: int | None) -> str:
    return f"{value:,}" if value is not None else "-"


def _format_when(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "-"


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date '{value}' (use YYYY-MM-DD)") from e


def cmd_stats(args: argparse.Namespace) -> None:
    """Stats command: show merged registry statistics for the package."""
    service = get_service(args)
    s = service.get_package_statistics()

    print(f"=== {s.package_id} ===")
    if s.description:
        print(f"  {s.description}")
    print(f"  Author:          {s.authors or '-'}")
    print(f"  Project:         {s.project_url or '-'}")
    print(f"  Total downloads: {_format_count(s.total_downloads)}")
    print(f"  Versions:        {s.total_versions:,}")
    print(f"  Latest:          {s.latest_version} ({_format_when(s.latest_version_published)})")
    print(f"  First release:   {_format_when(s.first_version_published)}")

    popular = most_downloaded_version(s)
    if popular is not None:
        print(f"  Most popular:    {popular.version} ({_format_count(popular.downloads)})")

    releases = release_summary(s, service.clock())
    print(f"  This month:      {releases['versions_this_month']} versions")
    print(
        f"  Last month:      {releases['versions_last_month']} versions"
        f" ({releases['downloads_last_month']:,} downloads)"
    )

    since = service.clock() - timedelta(days=30)
    recent = top_versions(s, since)
    if recent:
        print("\n=== Top Versions (Last 30 Days) ===")
        rows = [[v.version, _format_count(v.downloads)] for v in recent]
        print(tabulate(rows, headers=["Version", "Downloads"], tablefmt="simple"))

    if s.failed_pages:
        logger.warning("%d registry pages could not be read", len(s.failed_pages))


def cmd_versions(args: argparse.Namespace) -> None:
    """Versions command: list versions with publish dates and downloads."""
    service = get_service(args)
    s = service.get_package_statistics()

    start = (
        datetime.combine(args.since, datetime.min.time(), tzinfo=timezone.utc)
        if args.since
        else None
    )
    versions = filter_versions(
        s, start=start, include_prerelease=not args.releases_only, limit=args.limit
    )
    if not versions:
        print("No versions found.")
        return

    rows = [
        [v.version, _format_when(v.published), _format_count(v.downloads)]
        for v in versions
    ]
    print(tabulate(rows, headers=["Version", "Published", "Downloads"], tablefmt="simple"))


def cmd_snapshot(args: argparse.Namespace) -> None:
    """Snapshot command: record today's cumulative download total."""
    service = get_service(args)
    total = service.record_download_snapshot()
    print(f"Recorded {total:,} total downloads for {service.config.package_id}.")


def cmd_sync_stars(args: argparse.Namespace) -> int:
    """Sync-stars command: reconcile stored stargazers with GitHub."""
    service = get_service(args)
    result = service.sync_stargazers()
    if not result.success:
        logger.error("Stargazer sync failed: %s", result.error)
        return 1

    print(
        f"New: {result.new_count} | Unstarred: {result.departed_count} | "
        f"Reactivated: {result.reactivated_count}"
    )
    return 0


def cmd_daily(args: argparse.Namespace) -> None:
    """Daily command: show day-over-day growth of downloads or stars."""
    service = get_service(args)
    if args.stars:
        deltas = service.star_deltas(args.days)
    else:
        deltas = service.download_deltas(args.days)

    if not deltas:
        print("No data in database. Run 'snapshot' or 'sync-stars' first.")
        return

    rows = [[d.date.isoformat(), f"{d.total:,}", f"{d.growth:+,}"] for d in deltas]
    print(tabulate(rows, headers=["Date", "Total", "Growth"], tablefmt="simple"))


def cmd_growth(args: argparse.Namespace) -> None:
    """Growth command: weekly totals and week-over-week growth."""
    service = get_service(args)
    summary = service.download_summary()

    g = summary["week_over_week"]
    sign = "+" if g >= 0 else ""
    print(f"This week:      {summary['this_week']:>12,}")
    print(f"Previous week:  {summary['previous_week']:>12,}")
    print(f"Growth:         {sign}{g:.1f}%")
    print(f"Average daily:  {summary['average_daily']:>12,.0f}")
    print(f"Month to date:  {summary['month_to_date']:>12,}")
    print(f"Projected month:{summary['projected_month']:>12,.0f}")
    print()

    rows = [
        [w.week_start.strftime("%m/%d"), f"{w.total:,}", f"{w.growth_percent:+.1f}%"]
        for w in service.weekly_growth(args.weeks)
    ]
    print(tabulate(rows, headers=["Week", "Downloads", "WoW"], tablefmt="simple"))


def cmd_stars(args: argparse.Namespace) -> None:
    """Stars command: star counts and recent roster changes."""
    service = get_service(args)
    counts = service.star_counts()
    print(
        f"Starred: {counts['starred']:,} | Unstarred: {counts['unstarred']:,} | "
        f"All time: {counts['total_ever']:,}"
    )

    daily = service.roster_daily_stats(args.days)
    if daily:
        print()
        rows = [
            [d.date.isoformat(), d.new_count, d.unstar_count, d.reactivated_count]
            for d in daily
        ]
        headers = ["Date", "New", "Unstarred", "Reactivated"]
        print(tabulate(rows, headers=headers, tablefmt="simple"))


def cmd_events(args: argparse.Namespace) -> None:
    """Events command: who joined or left, newest first."""
    service = get_service(args)
    events = service.roster_events(args.since, args.until)
    if not events:
        print("No stargazer events found.")
        return

    rows = [
        [
            e.when.strftime("%Y-%m-%d %H:%M"),
            e.username,
            e.action,
            "" if e.days_since_previous is None else e.days_since_previous,
        ]
        for e in events[: args.limit]
    ]
    headers = ["When", "User", "Action", "Days since previous"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))


def cmd_export(args: argparse.Namespace) -> None:
    """Export command: export versions or daily series in various formats."""
    service = get_service(args)
    output = service.export(args.kind, args.format, days=args.days)
    if output is None:
        print("Nothing to export.")
        return

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        print(f"Exported to {args.output}")
    else:
        print(output)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Track package downloads and repository stars over time.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"YAML config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "-d",
        "--database",
        help="SQLite database file (overrides config)",
    )
    parser.add_argument(
        "-p",
        "--package",
        help="Package id to track (overrides config)",
    )
    parser.add_argument(
        "-r",
        "--repository",
        help="GitHub repository as owner/name (overrides config)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show registry statistics for the package",
    )
    stats_parser.set_defaults(func=cmd_stats)

    # versions command
    versions_parser = subparsers.add_parser(
        "versions",
        help="List package versions with downloads",
    )
    versions_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=20,
        help="Number of versions to show (default: 20)",
    )
    versions_parser.add_argument(
        "--since",
        type=_parse_date,
        help="Only versions published on or after this date (YYYY-MM-DD)",
    )
    versions_parser.add_argument(
        "--releases-only",
        action="store_true",
        help="Hide prerelease versions",
    )
    versions_parser.set_defaults(func=cmd_versions)

    # snapshot command
    snapshot_parser = subparsers.add_parser(
        "snapshot",
        help="Record today's total downloads",
    )
    snapshot_parser.set_defaults(func=cmd_snapshot)

    # sync-stars command
    sync_parser = subparsers.add_parser(
        "sync-stars",
        help="Reconcile stored stargazers with GitHub",
    )
    sync_parser.set_defaults(func=cmd_sync_stars)

    # daily command
    daily_parser = subparsers.add_parser(
        "daily",
        help="Show daily growth of downloads (or stars)",
    )
    daily_parser.add_argument(
        "-n",
        "--days",
        type=int,
        default=30,
        help="Number of days to show (default: 30)",
    )
    daily_parser.add_argument(
        "--stars",
        action="store_true",
        help="Show stars instead of downloads",
    )
    daily_parser.set_defaults(func=cmd_daily)

    # growth command
    growth_parser = subparsers.add_parser(
        "growth",
        help="Show weekly downloads and week-over-week growth",
    )
    growth_parser.add_argument(
        "-w",
        "--weeks",
        type=int,
        default=12,
        help="Number of weeks to show (default: 12)",
    )
    growth_parser.set_defaults(func=cmd_growth)

    # stars command
    stars_parser = subparsers.add_parser(
        "stars",
        help="Show star counts and daily roster changes",
    )
    stars_parser.add_argument(
        "-n",
        "--days",
        type=int,
        default=30,
        help="Number of days to show (default: 30)",
    )
    stars_parser.set_defaults(func=cmd_stars)

    # events command
    events_parser = subparsers.add_parser(
        "events",
        help="Show stargazers who joined or left",
    )
    events_parser.add_argument("--since", type=_parse_date, help="Start date (YYYY-MM-DD)")
    events_parser.add_argument("--until", type=_parse_date, help="End date (YYYY-MM-DD)")
    events_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=50,
        help="Number of events to show (default: 50)",
    )
    events_parser.set_defaults(func=cmd_events)

    # export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export versions or daily series (csv, json, markdown)",
    )
    export_parser.add_argument(
        "kind",
        choices=["versions", "downloads", "stars"],
        help="What to export",
    )
    export_parser.add_argument(
        "-f",
        "--format",
        choices=list(EXPORT_FORMATS),
        default="csv",
        help="Export format (default: csv)",
    )
    export_parser.add_argument(
        "-n",
        "--days",
        type=int,
        default=30,
        help="Days of history for daily series (default: 30)",
    )
    export_parser.add_argument(
        "-o",
        "--output",
        help="Output file (default: stdout)",
    )
    export_parser.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args) or 0
    except (PkgTrendError, ValueError, OSError, sqlite3.Error) as e:
        logger.error("Error: %s", e)
        return 1
