"""Tests for the SQLite storage layer."""

from datetime import date

from conftest import utc
from pkgtrend.db import (
    get_active_usernames,
    get_db,
    get_departed_usernames,
    get_download_snapshots,
    get_roster,
    get_roster_daily_stats,
    get_star_counts,
    insert_stargazers,
    mark_departed,
    reactivate_stargazers,
    store_download_snapshot,
    upsert_roster_daily_stats,
)
from pkgtrend.types import DailySnapshot

PROJECT = "octo/sample"


class TestSchema:
    """Tests for schema creation."""

    def test_tables_exist(self, db_conn):
        cursor = db_conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row["name"] for row in cursor.fetchall()}
        assert {"download_snapshots", "stargazers", "stargazers_daily"} <= tables

    def test_get_db_initializes_and_closes(self, temp_db):
        with get_db(temp_db) as conn:
            store_download_snapshot(conn, "Sample.Package", 10, date(2024, 1, 1))
        with get_db(temp_db) as conn:
            assert len(get_download_snapshots(conn, "Sample.Package")) == 1


class TestDownloadSnapshots:
    """Tests for download snapshot storage."""

    def test_store_and_read_oldest_first(self, db_conn):
        store_download_snapshot(db_conn, "Sample.Package", 120, date(2024, 1, 2))
        store_download_snapshot(db_conn, "Sample.Package", 100, date(2024, 1, 1))

        snapshots = get_download_snapshots(db_conn, "Sample.Package")

        assert snapshots == [
            DailySnapshot(date(2024, 1, 1), 100),
            DailySnapshot(date(2024, 1, 2), 120),
        ]

    def test_same_day_replaces(self, db_conn):
        store_download_snapshot(db_conn, "Sample.Package", 100, date(2024, 1, 1))
        store_download_snapshot(db_conn, "Sample.Package", 150, date(2024, 1, 1))

        assert get_download_snapshots(db_conn, "Sample.Package") == [
            DailySnapshot(date(2024, 1, 1), 150)
        ]

    def test_package_id_is_case_insensitive(self, db_conn):
        store_download_snapshot(db_conn, "Sample.Package", 100, date(2024, 1, 1))
        assert len(get_download_snapshots(db_conn, "SAMPLE.package")) == 1

    def test_limit_keeps_most_recent(self, db_conn):
        for day in range(1, 11):
            store_download_snapshot(db_conn, "Sample.Package", day * 10, date(2024, 1, day))

        snapshots = get_download_snapshots(db_conn, "Sample.Package", days=3)

        assert [s.date.day for s in snapshots] == [8, 9, 10]

    def test_packages_are_isolated(self, db_conn):
        store_download_snapshot(db_conn, "Sample.Package", 100, date(2024, 1, 1))
        assert get_download_snapshots(db_conn, "Other.Package") == []


class TestStargazers:
    """Tests for stargazer roster storage."""

    def test_insert_new_accounts(self, db_conn):
        inserted = insert_stargazers(
            db_conn, PROJECT, {"alice": utc(2024, 1, 1), "bob": None}
        )

        assert inserted == 2
        assert get_active_usernames(db_conn, PROJECT) == {"alice", "bob"}
        assert get_departed_usernames(db_conn, PROJECT) == set()

    def test_insert_existing_is_ignored(self, db_conn):
        insert_stargazers(db_conn, PROJECT, {"alice": utc(2024, 1, 1)})
        insert_stargazers(db_conn, PROJECT, {"alice": utc(2024, 5, 1)})

        (account,) = get_roster(db_conn, PROJECT)
        assert account.starred_at == utc(2024, 1, 1)

    def test_insert_empty(self, db_conn):
        assert insert_stargazers(db_conn, PROJECT, {}) == 0

    def test_mark_departed_and_reactivate(self, db_conn):
        insert_stargazers(db_conn, PROJECT, {"alice": utc(2024, 1, 1), "bob": utc(2024, 1, 2)})

        assert mark_departed(db_conn, PROJECT, ["alice"], utc(2024, 3, 1)) == 1
        assert get_active_usernames(db_conn, PROJECT) == {"bob"}
        assert get_departed_usernames(db_conn, PROJECT) == {"alice"}

        assert reactivate_stargazers(db_conn, PROJECT, ["alice"]) == 1
        assert get_active_usernames(db_conn, PROJECT) == {"alice", "bob"}

    def test_mark_departed_skips_already_departed(self, db_conn):
        insert_stargazers(db_conn, PROJECT, {"alice": utc(2024, 1, 1)})
        mark_departed(db_conn, PROJECT, ["alice"], utc(2024, 3, 1))

        assert mark_departed(db_conn, PROJECT, ["alice"], utc(2024, 4, 1)) == 0
        (account,) = get_roster(db_conn, PROJECT)
        assert account.unstarred_at == utc(2024, 3, 1)

    def test_empty_updates_are_noops(self, db_conn):
        assert mark_departed(db_conn, PROJECT, [], utc(2024, 1, 1)) == 0
        assert reactivate_stargazers(db_conn, PROJECT, set()) == 0

    def test_roster_order_and_projects(self, db_conn):
        insert_stargazers(db_conn, PROJECT, {"bob": utc(2024, 1, 1), "alice": utc(2024, 2, 1)})
        insert_stargazers(db_conn, "octo/other", {"carol": utc(2024, 3, 1)})

        roster = get_roster(db_conn, PROJECT)

        assert [a.username for a in roster] == ["alice", "bob"]
        assert all(a.is_active for a in roster)

    def test_star_counts(self, db_conn):
        insert_stargazers(
            db_conn,
            PROJECT,
            {"alice": utc(2024, 1, 1), "bob": utc(2024, 1, 2), "carol": utc(2024, 1, 3)},
        )
        mark_departed(db_conn, PROJECT, ["carol"], utc(2024, 2, 1))

        assert get_star_counts(db_conn, PROJECT) == {
            "starred": 2,
            "unstarred": 1,
            "total_ever": 3,
        }

    def test_star_counts_empty(self, db_conn):
        assert get_star_counts(db_conn, PROJECT) == {
            "starred": 0,
            "unstarred": 0,
            "total_ever": 0,
        }


class TestRosterDailyStats:
    """Tests for per-day roster counts."""

    def test_upsert_overwrites_same_day(self, db_conn):
        upsert_roster_daily_stats(db_conn, PROJECT, date(2024, 1, 1), 3, 1, 0)
        upsert_roster_daily_stats(db_conn, PROJECT, date(2024, 1, 1), 5, 0, 2)

        (row,) = get_roster_daily_stats(db_conn, PROJECT)
        assert (row.new_count, row.unstar_count, row.reactivated_count) == (5, 0, 2)

    def test_newest_first_with_limit(self, db_conn):
        for day in range(1, 6):
            upsert_roster_daily_stats(db_conn, PROJECT, date(2024, 1, day), day, 0, 0)

        rows = get_roster_daily_stats(db_conn, PROJECT, days=2)

        assert [r.date for r in rows] == [date(2024, 1, 5), date(2024, 1, 4)]
