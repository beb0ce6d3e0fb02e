"""Tests for export functions."""

import csv
import io
import json
from datetime import date

import pytest

from conftest import utc
from pkgtrend.export import (
    DAILY_COLUMNS,
    VERSION_COLUMNS,
    daily_rows,
    export_csv,
    export_json,
    export_markdown,
    version_rows,
)
from pkgtrend.types import DailyDelta, PackageStatistics, VersionRecord


@pytest.fixture
def stats():
    return PackageStatistics(
        package_id="Sample.Package",
        description=None,
        authors=None,
        project_url=None,
        total_versions=2,
        latest_version="1.1.0",
        latest_version_published=utc(2024, 2, 1),
        first_version_published=None,
        total_downloads=1500,
        versions=[
            VersionRecord("1.1.0", utc(2024, 2, 1), 1500),
            VersionRecord("1.0.0", None, None),
        ],
    )


@pytest.fixture
def deltas():
    return [
        DailyDelta(date(2024, 1, 2), 1200, 200),
        DailyDelta(date(2024, 1, 1), 1000, -3),
    ]


class TestRows:
    """Tests for row flattening."""

    def test_version_rows(self, stats):
        rows = version_rows(stats)
        assert rows[0] == {
            "version": "1.1.0",
            "published": "2024-02-01T00:00:00+00:00",
            "downloads": 1500,
        }
        assert rows[1] == {"version": "1.0.0", "published": "", "downloads": ""}

    def test_daily_rows(self, deltas):
        assert daily_rows(deltas)[0] == {"date": "2024-01-02", "total": 1200, "growth": 200}


class TestExportCsv:
    """Tests for CSV export."""

    def test_header_and_rows(self, deltas):
        output = export_csv(daily_rows(deltas), DAILY_COLUMNS)

        rows = list(csv.reader(io.StringIO(output)))
        assert rows[0] == DAILY_COLUMNS
        assert rows[1] == ["2024-01-02", "1200", "200"]
        assert len(rows) == 3

    def test_writes_to_given_buffer(self, stats):
        buffer = io.StringIO()
        output = export_csv(version_rows(stats), VERSION_COLUMNS, output=buffer)
        assert buffer.getvalue() == output


class TestExportJson:
    """Tests for JSON export."""

    def test_structure(self, deltas):
        data = json.loads(export_json(daily_rows(deltas), "downloads", package="Sample.Package"))

        assert "generated" in data
        assert data["package"] == "Sample.Package"
        assert data["downloads"][1]["growth"] == -3


class TestExportMarkdown:
    """Tests for Markdown export."""

    def test_table(self, deltas):
        lines = export_markdown(daily_rows(deltas), DAILY_COLUMNS).splitlines()

        assert lines[0] == "| Date | Total | Growth |"
        assert lines[1].startswith("|---")
        assert lines[2] == "| 2024-01-02 | 1,200 | 200 |"
        assert len(lines) == 4

    def test_empty_rows(self):
        lines = export_markdown([], VERSION_COLUMNS).splitlines()
        assert lines[0] == "| Version | Published | Downloads |"
        assert len(lines) == 2
