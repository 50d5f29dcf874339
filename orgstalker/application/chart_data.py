"""Bucketing of activity timestamps into chart-ready daily series."""

from datetime import datetime, timedelta, timezone
from typing import Iterable

from orgstalker.domain.chart import ChartData


def generate_chart_data(dates: Iterable[datetime], past_days: int, now: datetime) -> ChartData:
    """
    Count timestamps per UTC day.

    The series covers at least ``past_days + 1`` days, from the day of
    ``now - past_days`` up to and including the day of ``now``. It is widened
    to the earliest and latest timestamp given, so every timestamp is counted
    and ``sum(data)`` equals the number of timestamps.

    Args:
        dates: Activity timestamps, in any order
        past_days: Size of the crawl window in days
        now: Reference time for the window

    Returns:
        ChartData with one ISO date label and one count per day, oldest first
    """
    days = [date.astimezone(timezone.utc).date() for date in dates]

    last_day = now.astimezone(timezone.utc).date()
    first_day = last_day - timedelta(days=past_days)
    if days:
        first_day = min(first_day, min(days))
        last_day = max(last_day, max(days))

    labels = [first_day + timedelta(days=offset) for offset in range((last_day - first_day).days + 1)]
    counts = {day: 0 for day in labels}
    for day in days:
        counts[day] += 1

    return ChartData(
        labels=[day.isoformat() for day in labels],
        data=[counts[day] for day in labels],
    )
