"""Stargazer roster reconciliation.

Star state is reconstructed from presence in the latest roster fetch: an
account that disappears is marked departed, one that reappears is
reactivated. It is not an authoritative event log.
"""

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from . import db
from .errors import PkgTrendError, ReconciliationPartialWrite
from .types import ReconcileResult
from .utils import utc_now

logger = logging.getLogger("pkgtrend")

RosterSource = Callable[[str], dict[str, datetime | None]]


@dataclass
class RosterDiff:
    """Classification of the current roster against stored state."""

    new: dict[str, datetime | None] = field(default_factory=dict)
    reactivated: set[str] = field(default_factory=set)
    departed: set[str] = field(default_factory=set)
    unchanged: set[str] = field(default_factory=set)


def diff_roster(
    current: dict[str, datetime | None],
    stored_active: set[str],
    stored_departed: set[str],
) -> RosterDiff:
    """Split accounts into new, reactivated, departed and unchanged."""
    names = set(current)
    return RosterDiff(
        new={
            name: current[name]
            for name in names - stored_active - stored_departed
        },
        reactivated=names & stored_departed,
        departed=stored_active - names,
        unchanged=names & stored_active,
    )


class StargazerReconciler:
    """Run one diff-and-write pass of the stargazer roster.

    Two passes must not run concurrently for the same project: both would
    diff against the same stored state. Callers serialize runs.

    Args:
        conn: Open, initialized database connection.
        roster_source: Returns ``{username: starred_at}`` for a repository.
        project: Repository the roster belongs to (``owner/name``).
        clock: Returns the current time (aware UTC).
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        roster_source: RosterSource,
        project: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.conn = conn
        self.roster_source = roster_source
        self.project = project
        self.clock = clock

    def reconcile(self) -> ReconcileResult:
        """Fetch the roster, diff it against storage and write the changes.

        Never raises for source or storage failures; they are reported on the
        returned result.
        """
        try:
            current = self.roster_source(self.project)
        except PkgTrendError as e:
            logger.warning("Roster fetch failed: %s", e)
            return ReconcileResult(success=False, error=str(e))

        if not current:
            return ReconcileResult(success=False, error="No stargazers found")

        try:
            stored_active = db.get_active_usernames(self.conn, self.project)
            stored_departed = db.get_departed_usernames(self.conn, self.project)
        except sqlite3.Error as e:
            return ReconcileResult(success=False, error=f"Could not load roster: {e}")

        diff = diff_roster(current, stored_active, stored_departed)
        logger.info(
            "Roster diff for %s: %d new, %d reactivated, %d departed, %d unchanged",
            self.project,
            len(diff.new),
            len(diff.reactivated),
            len(diff.departed),
            len(diff.unchanged),
        )

        try:
            self._write(diff)
        except ReconciliationPartialWrite as e:
            logger.warning("%s", e)
            return ReconcileResult(success=False, error=str(e))

        return ReconcileResult(
            success=True,
            new=sorted(diff.new),
            departed=sorted(diff.departed),
            reactivated=sorted(diff.reactivated),
        )

    def _write(self, diff: RosterDiff) -> None:
        """Apply the diff as separate bulk writes; committed steps stand."""
        now = self.clock()
        steps = [
            ("insert new", lambda: db.insert_stargazers(self.conn, self.project, diff.new)),
            (
                "reactivate",
                lambda: db.reactivate_stargazers(self.conn, self.project, diff.reactivated),
            ),
            (
                "mark departed",
                lambda: db.mark_departed(self.conn, self.project, diff.departed, now),
            ),
            (
                "daily stats",
                lambda: db.upsert_roster_daily_stats(
                    self.conn,
                    self.project,
                    now.date(),
                    len(diff.new),
                    len(diff.departed),
                    len(diff.reactivated),
                ),
            ),
        ]
        for name, step in steps:
            try:
                step()
            except sqlite3.Error as e:
                # Only the failing step is undone
                self.conn.rollback()
                raise ReconciliationPartialWrite(name, e) from e
