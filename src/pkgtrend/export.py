"""Export functions for various formats."""

import csv
import io
import json
from datetime import datetime
from typing import Any

from .types import DailyDelta, PackageStatistics

VERSION_COLUMNS = ["version", "published", "downloads"]
DAILY_COLUMNS = ["date", "total", "growth"]


def version_rows(stats: PackageStatistics) -> list[dict[str, Any]]:
    """Flatten the version list of a package for export."""
    return [
        {
            "version": v.version,
            "published": v.published.isoformat() if v.published else "",
            "downloads": v.downloads if v.downloads is not None else "",
        }
        for v in stats.versions
    ]


def daily_rows(deltas: list[DailyDelta]) -> list[dict[str, Any]]:
    """Flatten daily deltas for export."""
    return [
        {"date": d.date.isoformat(), "total": d.total, "growth": d.growth}
        for d in deltas
    ]


def export_csv(
    rows: list[dict[str, Any]],
    columns: list[str],
    output: io.StringIO | None = None,
) -> str:
    """Export rows to CSV format."""
    if output is None:
        output = io.StringIO()

    writer = csv.writer(output)
    writer.writerow(columns)
    for row in rows:
        writer.writerow([row.get(c, "") for c in columns])

    return output.getvalue()


def export_json(rows: list[dict[str, Any]], key: str, **extra: Any) -> str:
    """Export rows to JSON format under ``key``."""
    export_data = {
        "generated": datetime.now().isoformat(),
        **extra,
        key: rows,
    }
    return json.dumps(export_data, indent=2)


def export_markdown(rows: list[dict[str, Any]], columns: list[str]) -> str:
    """Export rows to Markdown table format."""
    header = "| " + " | ".join(c.title() for c in columns) + " |"
    separator = "|" + "|".join("-" * (len(c) + 2) for c in columns) + "|"
    lines = [header, separator]

    for row in rows:
        cells = []
        for c in columns:
            value = row.get(c, "")
            cells.append(f"{value:,}" if isinstance(value, int) else str(value))
        lines.append("| " + " | ".join(cells) + " |")

    return "\n".join(lines)
