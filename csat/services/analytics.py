"""
Dashboard analytics: scalar metrics, period-over-period deltas, daily and
monthly trends, category distributions and the recent-surveys feed.

Trend series come from one grouped query each; every bucket still obeys the
same school/transaction-type filters as the top-level query, and empty
buckets are zero-filled.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from sqlalchemy import extract, func
from sqlalchemy.orm import Query

from csat.extensions import db
from csat.models.school import School
from csat.models.survey import (
    RATING_DISSATISFIED,
    RATING_NEUTRAL,
    RATING_SATISFIED,
    SurveyResponse,
    transaction_type_label,
    transaction_type_options,
)
from csat.services.filters import (
    DATE_RANGE_LABELS,
    DateWindow,
    SurveyFilters,
    category_conditions,
    order_newest_first,
)
from csat.utils.helpers import (
    add_months,
    day_bounds_utc,
    format_long_date,
    parse_iso_date,
    round_half_up,
    time_ago,
    to_local,
)

DEFAULT_DATE_RANGE = "last_30_days"


def satisfaction_rate(satisfied: int, total: int) -> float:
    """satisfied / total * 100, one decimal; 0 when there is nothing to rate."""
    if not total:
        return 0
    return round_half_up(satisfied / total * 100, 1)


def percent_change(current: int, previous: int) -> float:
    """Change vs the previous period; 0 (not infinity) when previous is 0."""
    if not previous:
        return 0
    return round_half_up((current - previous) / previous * 100, 1)


def rate_change(current_rate: float, previous_rate: float) -> float:
    # A previous rate of 0 reports no change rather than a delta from zero
    if not previous_rate:
        return 0
    return round_half_up(current_rate - previous_rate, 1)


@dataclass
class RatingCounts:
    total: int = 0
    satisfied: int = 0
    dissatisfied: int = 0
    neutral: int = 0

    def add(self, rating: Optional[str], n: int = 1) -> None:
        self.total += n
        if rating == RATING_SATISFIED:
            self.satisfied += n
        elif rating == RATING_DISSATISFIED:
            self.dissatisfied += n
        elif rating == RATING_NEUTRAL:
            self.neutral += n

    @property
    def rate(self) -> float:
        return satisfaction_rate(self.satisfied, self.total)

    @classmethod
    def from_records(cls, records: Iterable[SurveyResponse]) -> "RatingCounts":
        counts = cls()
        for r in records:
            counts.add(r.satisfaction_rating)
        return counts


def count_ratings(conditions: list) -> RatingCounts:
    rows = (
        db.session.query(SurveyResponse.satisfaction_rating, func.count(SurveyResponse.id))
        .filter(*conditions)
        .group_by(SurveyResponse.satisfaction_rating)
        .all()
    )
    counts = RatingCounts()
    for rating, n in rows:
        counts.add(rating, int(n or 0))
    return counts


def period_windows(preset: Optional[str], today: date) -> tuple[DateWindow, DateWindow]:
    """(current, previous) transaction-date windows for a dashboard preset."""
    if preset == "today":
        yesterday = today - timedelta(days=1)
        return DateWindow(today, today), DateWindow(yesterday, yesterday)
    if preset == "this_week":
        start = today - timedelta(days=today.weekday())
        return (
            DateWindow(start, today),
            DateWindow(start - timedelta(days=7), start - timedelta(days=1)),
        )
    if preset == "this_month":
        first = today.replace(day=1)
        prev_first = add_months(first, -1)
        return DateWindow(first, today), DateWindow(prev_first, first - timedelta(days=1))
    if preset == "this_year":
        return (
            DateWindow(date(today.year, 1, 1), today),
            DateWindow(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)),
        )
    n = {"last_60_days": 60, "last_90_days": 90}.get(preset, 30)
    return (
        DateWindow(today - timedelta(days=n), today),
        DateWindow(today - timedelta(days=2 * n - 1), today - timedelta(days=n + 1)),
    )


def _in_window(window: DateWindow):
    return SurveyResponse.transaction_date.between(window.start, window.end)


def daily_trend(conditions: list, today: date, days: int = 30) -> list[dict]:
    start = today - timedelta(days=days - 1)
    buckets = {start + timedelta(days=i): RatingCounts() for i in range(days)}
    rows = (
        db.session.query(
            SurveyResponse.transaction_date,
            SurveyResponse.satisfaction_rating,
            func.count(SurveyResponse.id),
        )
        .filter(*conditions, _in_window(DateWindow(start, today)))
        .group_by(SurveyResponse.transaction_date, SurveyResponse.satisfaction_rating)
        .all()
    )
    for day, rating, n in rows:
        bucket = buckets.get(parse_iso_date(day))
        if bucket is not None:
            bucket.add(rating, int(n or 0))
    return [
        {
            "date": day.isoformat(),
            "satisfied": c.satisfied,
            "dissatisfied": c.dissatisfied,
            "total": c.total,
        }
        for day, c in buckets.items()
    ]


def monthly_trend(conditions: list, today: date, months: int = 6) -> list[dict]:
    current_month = today.replace(day=1)
    firsts = [add_months(current_month, -i) for i in range(months - 1, -1, -1)]
    buckets = {(d.year, d.month): RatingCounts() for d in firsts}
    end = today.replace(day=calendar.monthrange(today.year, today.month)[1])

    year = extract("year", SurveyResponse.transaction_date)
    month = extract("month", SurveyResponse.transaction_date)
    rows = (
        db.session.query(year, month, SurveyResponse.satisfaction_rating, func.count(SurveyResponse.id))
        .filter(*conditions, _in_window(DateWindow(firsts[0], end)))
        .group_by(year, month, SurveyResponse.satisfaction_rating)
        .all()
    )
    for y, m, rating, n in rows:
        bucket = buckets.get((int(y), int(m)))
        if bucket is not None:
            bucket.add(rating, int(n or 0))
    return [
        {
            "month": f"{d:%b %Y}",
            "satisfied": buckets[(d.year, d.month)].satisfied,
            "dissatisfied": buckets[(d.year, d.month)].dissatisfied,
            "total": buckets[(d.year, d.month)].total,
            "satisfaction_rate": buckets[(d.year, d.month)].rate,
        }
        for d in firsts
    ]


def distribution(records: Iterable[SurveyResponse], key: Callable[[SurveyResponse], str]) -> list[dict]:
    """Group by key in discovery order; callers sort/truncate as they like."""
    groups: dict[str, dict] = {}
    for r in records:
        name = key(r)
        g = groups.setdefault(name, {"name": name, "total": 0, "satisfied": 0, "dissatisfied": 0})
        g["total"] += 1
        if r.satisfaction_rating == RATING_SATISFIED:
            g["satisfied"] += 1
        elif r.satisfaction_rating == RATING_DISSATISFIED:
            g["dissatisfied"] += 1
    return list(groups.values())


def school_distribution(records):
    return distribution(records, lambda r: r.school_display_name)


def transaction_distribution(records):
    return distribution(records, lambda r: transaction_type_label(r.transaction_type))


def recent_item(survey: SurveyResponse, *, now: datetime, tz) -> dict:
    return {
        "id": survey.id,
        "client_name": survey.full_name,
        "satisfaction_rating": survey.satisfaction_rating,
        "school": survey.school_display_name,
        "transaction_type": survey.transaction_type_display,
        "date": format_long_date(survey.transaction_date),
        "submitted_at": time_ago(to_local(survey.created_at, tz), now),
    }


def recent_items(query: Query, *, now: datetime, tz, limit: int = 5) -> list[dict]:
    rows = order_newest_first(query).limit(limit).all()
    return [recent_item(s, now=now, tz=tz) for s in rows]


def filter_options() -> dict:
    schools = School.active().order_by(func.lower(School.name).asc()).all()
    return {
        "schools": [s.to_dict() for s in schools],
        "transaction_types": transaction_type_options(),
        "date_ranges": [{"value": k, "label": v} for k, v in DATE_RANGE_LABELS.items()],
    }


def build_dashboard(
    filters: SurveyFilters,
    *,
    now: datetime,
    tz,
    trend_days: int = 30,
    trend_months: int = 6,
    recent_limit: int = 5,
) -> dict:
    """
    Dashboard view-model. Matches on transaction_date only; the date-range
    preset picks the current/previous windows, while trends use their own
    fixed windows with the same school/type filters.
    """
    today = now.date()
    preset = filters.date_range if filters.date_range in DATE_RANGE_LABELS else DEFAULT_DATE_RANGE
    current, previous = period_windows(preset, today)
    category = category_conditions(filters)

    base = SurveyResponse.query.filter(*category, _in_window(current))
    surveys = base.order_by(SurveyResponse.id.asc()).all()
    counts = RatingCounts.from_records(surveys)
    prev_counts = count_ratings(category + [_in_window(previous)])

    return {
        "analytics": {
            "metrics": {
                "total_surveys": counts.total,
                "satisfied_count": counts.satisfied,
                "dissatisfied_count": counts.dissatisfied,
                "satisfaction_rate": counts.rate,
                "total_change": percent_change(counts.total, prev_counts.total),
                "satisfaction_change": rate_change(counts.rate, prev_counts.rate),
            },
            "daily_trend": daily_trend(category, today, trend_days),
            "monthly_trend": monthly_trend(category, today, trend_months),
            "school_distribution": school_distribution(surveys),
            "transaction_distribution": transaction_distribution(surveys),
            "recent_surveys": recent_items(base, now=now, tz=tz, limit=recent_limit),
        },
        "filter_options": filter_options(),
        "current_filters": {
            "date_range": preset,
            "school": filters.school,
            "transaction_type": filters.transaction_type,
        },
    }


def review_stats(filtered_conditions: list, *, now: datetime, tz) -> dict:
    """Totals shown above the review list."""
    overall = count_ratings([])
    filtered = count_ratings(filtered_conditions)

    today = now.date()
    day_lo, day_hi = day_bounds_utc(today, today, tz)
    month_first = today.replace(day=1)
    month_lo, month_hi = day_bounds_utc(
        month_first, add_months(month_first, 1) - timedelta(days=1), tz
    )

    def _submitted_between(lo, hi) -> int:
        return SurveyResponse.query.filter(
            SurveyResponse.created_at >= lo, SurveyResponse.created_at < hi
        ).count()

    return {
        "total": overall.total,
        "satisfied": overall.satisfied,
        "dissatisfied": overall.dissatisfied,
        "filtered_total": filtered.total,
        "filtered_satisfied": filtered.satisfied,
        "filtered_dissatisfied": filtered.dissatisfied,
        "today": _submitted_between(day_lo, day_hi),
        "this_month": _submitted_between(month_lo, month_hi),
    }
