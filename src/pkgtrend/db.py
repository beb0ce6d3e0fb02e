"""SQLite storage for download snapshots and stargazer roster state."""

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime

from .types import DailySnapshot, RosterDailyStats, StarCounts, StargazerAccount
from .utils import parse_timestamp, to_utc, utc_now


def _format_ts(value: datetime | None) -> str | None:
    utc = to_utc(value)
    return utc.isoformat() if utc is not None else None


def get_db_connection(db_path: str) -> sqlite3.Connection:
    """Create and return a database connection."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS download_snapshots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            package_id TEXT NOT NULL,
            snapshot_date TEXT NOT NULL,
            total_downloads INTEGER NOT NULL,
            UNIQUE(package_id, snapshot_date)
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS stargazers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project TEXT NOT NULL,
            username TEXT NOT NULL,
            starred_at TEXT,
            unstarred_at TEXT,
            UNIQUE(project, username)
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS stargazers_daily (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project TEXT NOT NULL,
            date TEXT NOT NULL,
            new_count INTEGER NOT NULL DEFAULT 0,
            unstar_count INTEGER NOT NULL DEFAULT 0,
            reactivated_count INTEGER NOT NULL DEFAULT 0,
            UNIQUE(project, date)
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_stargazers_active
        ON stargazers(project, unstarred_at)
    """)
    conn.commit()


@contextmanager
def get_db(db_path: str) -> Iterator[sqlite3.Connection]:
    """Open an initialized connection and close it on exit."""
    conn = get_db_connection(db_path)
    try:
        init_db(conn)
        yield conn
    finally:
        conn.close()


# -----------------------------------------------------------------------------
# Download snapshots
# -----------------------------------------------------------------------------


def store_download_snapshot(
    conn: sqlite3.Connection,
    package_id: str,
    total_downloads: int,
    snapshot_date: date | None = None,
) -> None:
    """Store the cumulative download total for a day, replacing any earlier value."""
    day = snapshot_date or utc_now().date()
    conn.execute(
        """
        INSERT INTO download_snapshots (package_id, snapshot_date, total_downloads)
        VALUES (?, ?, ?)
        ON CONFLICT(package_id, snapshot_date)
        DO UPDATE SET total_downloads = excluded.total_downloads
        """,
        (package_id.lower(), day.isoformat(), total_downloads),
    )
    conn.commit()


def get_download_snapshots(
    conn: sqlite3.Connection, package_id: str, days: int = 30
) -> list[DailySnapshot]:
    """Return the most recent ``days`` snapshots, oldest first."""
    cursor = conn.execute(
        """
        SELECT snapshot_date, total_downloads
        FROM download_snapshots
        WHERE package_id = ?
        ORDER BY snapshot_date DESC
        LIMIT ?
        """,
        (package_id.lower(), days),
    )
    rows = cursor.fetchall()
    return [
        DailySnapshot(date.fromisoformat(row["snapshot_date"]), row["total_downloads"])
        for row in reversed(rows)
    ]


# -----------------------------------------------------------------------------
# Stargazer roster
# -----------------------------------------------------------------------------


def get_active_usernames(conn: sqlite3.Connection, project: str) -> set[str]:
    """Usernames currently starring the project."""
    cursor = conn.execute(
        "SELECT username FROM stargazers WHERE project = ? AND unstarred_at IS NULL",
        (project,),
    )
    return {row["username"] for row in cursor.fetchall()}


def get_departed_usernames(conn: sqlite3.Connection, project: str) -> set[str]:
    """Usernames that starred the project once and have since left."""
    cursor = conn.execute(
        "SELECT username FROM stargazers WHERE project = ? AND unstarred_at IS NOT NULL",
        (project,),
    )
    return {row["username"] for row in cursor.fetchall()}


def insert_stargazers(
    conn: sqlite3.Connection,
    project: str,
    starred: dict[str, datetime | None],
) -> int:
    """Insert never-seen accounts as active. Existing rows are left alone."""
    if not starred:
        return 0
    cursor = conn.executemany(
        """
        INSERT INTO stargazers (project, username, starred_at, unstarred_at)
        VALUES (?, ?, ?, NULL)
        ON CONFLICT(project, username) DO NOTHING
        """,
        [(project, name, _format_ts(when)) for name, when in starred.items()],
    )
    conn.commit()
    return cursor.rowcount


def reactivate_stargazers(
    conn: sqlite3.Connection, project: str, usernames: Iterable[str]
) -> int:
    """Clear ``unstarred_at`` for departed accounts that are back."""
    names = list(usernames)
    if not names:
        return 0
    cursor = conn.executemany(
        """
        UPDATE stargazers SET unstarred_at = NULL
        WHERE project = ? AND username = ? AND unstarred_at IS NOT NULL
        """,
        [(project, name) for name in names],
    )
    conn.commit()
    return cursor.rowcount


def mark_departed(
    conn: sqlite3.Connection,
    project: str,
    usernames: Iterable[str],
    when: datetime,
) -> int:
    """Set ``unstarred_at`` on active accounts missing from the roster."""
    names = list(usernames)
    if not names:
        return 0
    stamp = _format_ts(when)
    cursor = conn.executemany(
        """
        UPDATE stargazers SET unstarred_at = ?
        WHERE project = ? AND username = ? AND unstarred_at IS NULL
        """,
        [(stamp, project, name) for name in names],
    )
    conn.commit()
    return cursor.rowcount


def upsert_roster_daily_stats(
    conn: sqlite3.Connection,
    project: str,
    day: date,
    new_count: int,
    unstar_count: int,
    reactivated_count: int,
) -> None:
    """Write the roster counts for a day, overwriting an earlier run's row."""
    conn.execute(
        """
        INSERT INTO stargazers_daily
            (project, date, new_count, unstar_count, reactivated_count)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(project, date) DO UPDATE SET
            new_count = excluded.new_count,
            unstar_count = excluded.unstar_count,
            reactivated_count = excluded.reactivated_count
        """,
        (project, day.isoformat(), new_count, unstar_count, reactivated_count),
    )
    conn.commit()


def get_roster(conn: sqlite3.Connection, project: str) -> list[StargazerAccount]:
    """Every account ever seen for the project, most recent star first."""
    cursor = conn.execute(
        """
        SELECT username, starred_at, unstarred_at
        FROM stargazers
        WHERE project = ?
        ORDER BY starred_at DESC, username
        """,
        (project,),
    )
    return [
        StargazerAccount(
            username=row["username"],
            starred_at=parse_timestamp(row["starred_at"]),
            unstarred_at=parse_timestamp(row["unstarred_at"]),
        )
        for row in cursor.fetchall()
    ]


def get_roster_daily_stats(
    conn: sqlite3.Connection, project: str, days: int = 30
) -> list[RosterDailyStats]:
    """Most recent ``days`` rows of roster counts, newest first."""
    cursor = conn.execute(
        """
        SELECT date, new_count, unstar_count, reactivated_count
        FROM stargazers_daily
        WHERE project = ?
        ORDER BY date DESC
        LIMIT ?
        """,
        (project, days),
    )
    return [
        RosterDailyStats(
            date=date.fromisoformat(row["date"]),
            new_count=row["new_count"],
            unstar_count=row["unstar_count"],
            reactivated_count=row["reactivated_count"],
        )
        for row in cursor.fetchall()
    ]


def get_star_counts(conn: sqlite3.Connection, project: str) -> StarCounts:
    """Active, departed and all-time star counts for the project."""
    row = conn.execute(
        """
        SELECT
            COUNT(CASE WHEN unstarred_at IS NULL THEN 1 END) AS starred,
            COUNT(CASE WHEN unstarred_at IS NOT NULL THEN 1 END) AS unstarred,
            COUNT(*) AS total_ever
        FROM stargazers
        WHERE project = ?
        """,
        (project,),
    ).fetchone()
    return {
        "starred": row["starred"],
        "unstarred": row["unstarred"],
        "total_ever": row["total_ever"],
    }
