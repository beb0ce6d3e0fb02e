"""Daily deltas and trailing aggregates over cumulative snapshots.

Snapshots are cumulative totals (downloads or stars) observed once per day.
Deltas are the day-over-day differences; missing days are not filled, so the
growth across a gap is attributed entirely to the day after it.
"""

from datetime import date, timedelta

from .types import (
    DailyDelta,
    DailySnapshot,
    DownloadSummary,
    MovingAveragePoint,
    RosterEvent,
    StargazerAccount,
    WeeklyGrowth,
)

DAYS_PER_WEEK = 7

# Projection horizon for the monthly download estimate
DAYS_PER_MONTH = 30


def daily_deltas(
    snapshots: list[DailySnapshot], descending: bool = True
) -> list[DailyDelta]:
    """Turn ascending cumulative snapshots into day-over-day deltas.

    The first snapshot has no predecessor and produces no delta.

    Args:
        snapshots: Snapshots in strictly ascending date order.
        descending: Return newest first (display order) instead of oldest first.

    Raises:
        ValueError: If the snapshots are not in ascending date order.
    """
    deltas = []
    for previous, current in zip(snapshots, snapshots[1:]):
        if current.date <= previous.date:
            raise ValueError("snapshots must be in ascending date order")
        deltas.append(
            DailyDelta(
                date=current.date,
                total=current.total,
                growth=current.total - previous.total,
            )
        )
    if descending:
        deltas.reverse()
    return deltas


def weekly_sum(deltas: list[DailyDelta], end: date, days: int = DAYS_PER_WEEK) -> int:
    """Sum of positive growth over the ``days`` calendar days ending on ``end``.

    Negative growth (a data correction) counts as zero.
    """
    start = end - timedelta(days=days - 1)
    return sum(max(0, d.growth) for d in deltas if start <= d.date <= end)


def growth_percent(current: int, previous: int) -> float:
    """Percentage change from ``previous`` to ``current``.

    With no baseline (``previous == 0``) and a positive ``current``, the
    current count itself is reported as the percentage: 0 -> 40 is +40%.
    """
    if previous > 0:
        return (current - previous) / previous * 100
    if current > 0:
        return float(current)
    return 0.0


def week_over_week_growth(deltas: list[DailyDelta], today: date) -> float:
    """Growth of the trailing 7 days against the 7 days before them."""
    this_week = weekly_sum(deltas, today)
    previous_week = weekly_sum(deltas, today - timedelta(days=DAYS_PER_WEEK))
    return growth_percent(this_week, previous_week)


def moving_average(deltas: list[DailyDelta], window: int) -> list[MovingAveragePoint]:
    """Trailing average of daily growth, oldest first.

    The window counts deltas, not calendar days: on a gapped series a window
    of 7 spans the last 7 recorded days however far apart they are. The first
    points average over however many deltas exist so far.
    """
    if window < 1:
        raise ValueError("window must be at least 1")
    ordered = sorted(deltas, key=lambda d: d.date)
    points = []
    for i, delta in enumerate(ordered):
        span = ordered[max(0, i - window + 1) : i + 1]
        points.append(
            MovingAveragePoint(
                date=delta.date,
                average=sum(d.growth for d in span) / len(span),
            )
        )
    return points


def weekly_growth_series(
    deltas: list[DailyDelta], today: date, weeks: int = 12
) -> list[WeeklyGrowth]:
    """Week-over-week growth for Monday-Sunday weeks, oldest first.

    The current (possibly partial) week is the last entry.
    """
    monday = today - timedelta(days=today.weekday())
    series = []
    for i in range(weeks):
        week_start = monday - timedelta(weeks=i)
        total = weekly_sum(deltas, week_start + timedelta(days=DAYS_PER_WEEK - 1))
        previous = weekly_sum(deltas, week_start - timedelta(days=1))
        series.append(
            WeeklyGrowth(
                week_start=week_start,
                total=total,
                growth_percent=growth_percent(total, previous),
            )
        )
    series.reverse()
    return series


def average_daily_growth(deltas: list[DailyDelta]) -> float:
    """Mean of positive daily growth; 0.0 when there are no deltas."""
    if not deltas:
        return 0.0
    return sum(max(0, d.growth) for d in deltas) / len(deltas)


def month_to_date(deltas: list[DailyDelta], today: date) -> int:
    """Positive growth accumulated in the calendar month of ``today``."""
    return sum(
        max(0, d.growth)
        for d in deltas
        if d.date.year == today.year and d.date.month == today.month and d.date <= today
    )


def download_summary(
    deltas: list[DailyDelta], today: date, average_days: int = DAYS_PER_MONTH
) -> DownloadSummary:
    """Headline figures used by the overview.

    ``projected_month`` extrapolates the average daily growth to a month.
    """
    this_week = weekly_sum(deltas, today)
    previous_week = weekly_sum(deltas, today - timedelta(days=DAYS_PER_WEEK))
    recent_start = today - timedelta(days=average_days)
    recent = [d for d in deltas if d.date >= recent_start]
    average_daily = average_daily_growth(recent)
    return {
        "this_week": this_week,
        "previous_week": previous_week,
        "week_over_week": growth_percent(this_week, previous_week),
        "average_daily": average_daily,
        "month_to_date": month_to_date(deltas, today),
        "projected_month": average_daily * DAYS_PER_MONTH,
    }


# -----------------------------------------------------------------------------
# Star history reconstructed from roster state
# -----------------------------------------------------------------------------


def star_totals_by_day(
    accounts: list[StargazerAccount], start: date, end: date
) -> list[DailySnapshot]:
    """Cumulative star count for every day in ``[start, end]``, oldest first.

    An account counts on a day if it had starred on or before that day and
    had not unstarred by the end of it. Accounts without a star date are not
    counted.
    """
    snapshots = []
    day = start
    while day <= end:
        total = sum(
            1
            for a in accounts
            if a.starred_at is not None
            and a.starred_at.date() <= day
            and (a.unstarred_at is None or a.unstarred_at.date() > day)
        )
        snapshots.append(DailySnapshot(date=day, total=total))
        day += timedelta(days=1)
    return snapshots


def roster_events(
    accounts: list[StargazerAccount],
    start: date | None = None,
    end: date | None = None,
) -> list[RosterEvent]:
    """Joined/left events, newest first, optionally limited to a date range.

    ``days_since_previous`` is the number of days since the preceding event
    in the full history, so it does not change with the range requested.
    """
    raw = []
    for account in accounts:
        if account.starred_at is not None:
            raw.append((account.starred_at, 0, account.username, "joined"))
        if account.unstarred_at is not None:
            raw.append((account.unstarred_at, 1, account.username, "left"))
    raw.sort()

    events = []
    previous_day: date | None = None
    for when, _, username, action in raw:
        day = when.date()
        events.append(
            RosterEvent(
                username=username,
                action=action,
                when=when,
                days_since_previous=(day - previous_day).days
                if previous_day is not None
                else None,
            )
        )
        previous_day = day

    selected = [
        e
        for e in events
        if (start is None or e.when.date() >= start)
        and (end is None or e.when.date() <= end)
    ]
    selected.reverse()
    return selected
