#!/usr/bin/env python3
"""
Shared breakdown helpers for dashboard and analytics aggregation.

Every percentage in a response goes through `percentage()` so the wire
format (string, one decimal, "0" for an empty scope) stays identical across
breakdowns.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Any, Optional, Iterable

from dateutil.relativedelta import relativedelta

from apps.api.utils.providers import ResolutionSummary

MS_PER_DAY = 1000 * 60 * 60 * 24


def percentage(part: int, whole: int) -> str:
    """part / whole as a percentage string with one decimal"""
    if not whole or whole <= 0:
        return "0"
    return f"{(part / whole) * 100:.1f}"


def ms_to_days(ms: Optional[float]) -> float:
    """Milliseconds to days, rounded to 2 decimals; non-positive gives 0"""
    if not ms or ms <= 0:
        return 0
    return round(ms / MS_PER_DAY, 2)


def breakdown(counts: Dict[Any, int], whole: int, label_key: str) -> List[Dict[str, Any]]:
    """
    Count-and-percentage distribution of a grouped count.

    Ordered by count descending, ties broken by label.
    """
    items = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
    return [
        {label_key: label, "count": count, "percentage": percentage(count, whole)}
        for label, count in items
    ]


def chart(counts: Dict[Any, int], labels: Optional[Iterable[str]] = None) -> Dict[str, int]:
    """Label -> count map; with `labels`, every label is present (0 when absent)"""
    if labels is None:
        return dict(counts)
    return {label: counts.get(label, 0) for label in labels}


@dataclass(frozen=True)
class TimeWindows:
    """Rolling window start points anchored at `now`"""
    now: datetime
    today: datetime
    week: datetime
    month: datetime
    year: datetime

    @classmethod
    def anchored_at(cls, now: datetime) -> "TimeWindows":
        return cls(
            now=now,
            today=now.replace(hour=0, minute=0, second=0, microsecond=0),
            week=now - timedelta(days=7),
            month=now - relativedelta(months=1),
            year=now - relativedelta(years=1),
        )


def resolution_figures(summary: ResolutionSummary, whole: int) -> Dict[str, Any]:
    """Resolution statistics in days; resolutionRate is relative to `whole`"""
    return {
        "totalResolved": summary.total_resolved,
        "avgResolutionDays": ms_to_days(summary.avg_ms),
        "minResolutionDays": ms_to_days(summary.min_ms),
        "maxResolutionDays": ms_to_days(summary.max_ms),
        "resolutionRate": percentage(summary.total_resolved, whole),
    }


def monthly_trend(month_counts: Dict[tuple, int]) -> List[Dict[str, Any]]:
    """(year, month) -> count into an ascending "YYYY-MM" series"""
    return [
        {"month": f"{year}-{month:02d}", "count": count}
        for (year, month), count in sorted(month_counts.items())
    ]
