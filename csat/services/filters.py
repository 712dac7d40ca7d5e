"""
Survey filter engine.

Turns the query-string filters shared by the review list, the dashboard and
the exports into SQLAlchemy predicates over SurveyResponse. All filters are
AND-ed together; the date-range and search filters are OR-groups internally.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping, Optional

from sqlalchemy import and_, func, or_

from csat.models.school import School
from csat.models.survey import SCHOOL_OTHER, SurveyResponse
from csat.utils.helpers import day_bounds_utc, parse_id, parse_iso_date

# Named date policies for the `date_range` preset
DATE_POLICY_EITHER = "transaction_or_submitted"   # transaction_date OR created_at in window
DATE_POLICY_TRANSACTION = "transaction_only"      # transaction_date in window
DATE_POLICIES = (DATE_POLICY_EITHER, DATE_POLICY_TRANSACTION)

DATE_RANGE_LABELS = {
    "today": "Today",
    "this_week": "This Week",
    "this_month": "This Month",
    "last_30_days": "Last 30 Days",
    "last_60_days": "Last 60 Days",
    "last_90_days": "Last 90 Days",
    "this_year": "This Year",
}
_LAST_N_DAYS = {"last_30_days": 30, "last_60_days": 60, "last_90_days": 90}


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date window."""
    start: date
    end: date

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class SurveyFilters:
    satisfaction_rating: Optional[str] = None
    school: Optional[str] = None
    transaction_type: Optional[str] = None
    date_range: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None

    @classmethod
    def from_args(cls, args: Mapping) -> "SurveyFilters":
        """
        Build from request args. "all" or empty means no constraint; malformed
        start/end dates are dropped rather than failing the request.
        """
        def _opt(*keys):
            for k in keys:
                v = (args.get(k) or "").strip()
                if v and v.lower() != "all":
                    return v
            return None

        return cls(
            satisfaction_rating=_opt("satisfaction_rating"),
            school=_opt("school", "school_id", "school_hei"),
            transaction_type=_opt("transaction_type"),
            date_range=_opt("date_range"),
            start_date=parse_iso_date(_opt("start_date")),
            end_date=parse_iso_date(_opt("end_date")),
            search=_opt("search"),
        )

    def to_dict(self) -> dict:
        return {
            "satisfaction_rating": self.satisfaction_rating,
            "school": self.school,
            "transaction_type": self.transaction_type,
            "date_range": self.date_range,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "search": self.search,
        }


def resolve_date_range(preset: Optional[str], today: date) -> Optional[DateWindow]:
    """Named preset -> concrete window around `today`; unknown presets -> None."""
    if preset == "today":
        return DateWindow(today, today)
    if preset == "this_week":
        start = today - timedelta(days=today.weekday())  # Monday
        return DateWindow(start, start + timedelta(days=6))
    if preset == "this_month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return DateWindow(today.replace(day=1), today.replace(day=last_day))
    if preset == "this_year":
        return DateWindow(date(today.year, 1, 1), date(today.year, 12, 31))
    if preset in _LAST_N_DAYS:
        return DateWindow(today - timedelta(days=_LAST_N_DAYS[preset]), today)
    return None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _window_clause(window: DateWindow, date_policy: str, tz):
    on_transaction = SurveyResponse.transaction_date.between(window.start, window.end)
    if date_policy == DATE_POLICY_TRANSACTION:
        return on_transaction
    lo, hi = day_bounds_utc(window.start, window.end, tz)
    on_submission = and_(SurveyResponse.created_at >= lo, SurveyResponse.created_at < hi)
    return or_(on_transaction, on_submission)


def school_clause(value: str):
    if value == SCHOOL_OTHER:
        return and_(
            SurveyResponse.school_id.is_(None),
            SurveyResponse.other_school_specify.isnot(None),
        )
    school_id = parse_id(value)
    if school_id is not None:
        return SurveyResponse.school_id == school_id
    return SurveyResponse.school.has(School.name == value)


def search_clause(term: str):
    pattern = f"%{_escape_like(term.strip().lower())}%"

    def _like(expr):
        return func.lower(expr).like(pattern, escape="\\")

    full_name = (
        SurveyResponse.first_name + " "
        + func.coalesce(SurveyResponse.middle_name + " ", "")
        + SurveyResponse.last_name
    )
    short_name = SurveyResponse.first_name + " " + SurveyResponse.last_name
    return or_(
        _like(full_name),
        _like(short_name),
        _like(SurveyResponse.email),
        _like(SurveyResponse.reason),
        _like(SurveyResponse.other_school_specify),
        SurveyResponse.school.has(_like(School.name)),
    )


def category_conditions(filters: SurveyFilters) -> list:
    """School / transaction-type clauses only (trend buckets re-apply just these)."""
    conds = []
    if filters.school:
        conds.append(school_clause(filters.school))
    if filters.transaction_type:
        conds.append(SurveyResponse.transaction_type == filters.transaction_type)
    return conds


def build_conditions(
    filters: SurveyFilters,
    *,
    today: date,
    tz,
    date_policy: str = DATE_POLICY_EITHER,
) -> list:
    conds = []
    if filters.satisfaction_rating:
        conds.append(SurveyResponse.satisfaction_rating == filters.satisfaction_rating)
    conds.extend(category_conditions(filters))

    window = resolve_date_range(filters.date_range, today)
    if window is not None:
        conds.append(_window_clause(window, date_policy, tz))

    # Explicit bounds are independent of (and in addition to) the preset
    if filters.start_date:
        conds.append(SurveyResponse.transaction_date >= filters.start_date)
    if filters.end_date:
        conds.append(SurveyResponse.transaction_date <= filters.end_date)

    if filters.search:
        conds.append(search_clause(filters.search))
    return conds


def order_newest_first(query):
    return query.order_by(SurveyResponse.created_at.desc(), SurveyResponse.id.desc())


def order_chronological(query):
    return query.order_by(SurveyResponse.created_at.asc(), SurveyResponse.id.asc())


def filtered_query(
    filters: SurveyFilters,
    *,
    today: date,
    tz,
    date_policy: str = DATE_POLICY_EITHER,
    newest_first: bool = True,
):
    query = SurveyResponse.query.filter(
        *build_conditions(filters, today=today, tz=tz, date_policy=date_policy)
    )
    return order_newest_first(query) if newest_first else order_chronological(query)
