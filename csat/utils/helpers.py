from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

import pytz

INT_ID_MAX = 2_147_483_647


def round_half_up(value: Any, places: int = 1) -> float:
    """Round like a person would (2.25 -> 2.3), not banker's rounding."""
    try:
        quant = Decimal(1).scaleb(-places)
        return float(Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP))
    except (TypeError, ValueError, InvalidOperation):
        return 0.0


def parse_id(value: Any) -> Optional[int]:
    """Positive ASCII integer within the INTEGER column range, else None."""
    s = (str(value) if value is not None else "").strip()
    if not (s.isascii() and s.isdigit()):
        return None
    n = int(s)
    return n if 0 < n <= INT_ID_MAX else None


def parse_iso_date(value: Any) -> Optional[date]:
    """'YYYY-MM-DD' -> date; anything else -> None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = (str(value) if value is not None else "").strip()
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None

def get_tz(name: Optional[str]):
    try:
        return pytz.timezone(name or "UTC")
    except pytz.UnknownTimeZoneError:
        return pytz.utc

def local_now(tz) -> datetime:
    return datetime.now(tz)

def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive values; they are stored as UTC
    if dt is None:
        return None
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)

def to_local(dt: Optional[datetime], tz) -> Optional[datetime]:
    if dt is None:
        return None
    return as_utc(dt).astimezone(tz)

def day_bounds_utc(start: date, end: date, tz):
    """[start 00:00, end+1 00:00) in tz, expressed as UTC datetimes."""
    lo = tz.localize(datetime.combine(start, time.min)).astimezone(pytz.utc)
    hi = tz.localize(datetime.combine(end + timedelta(days=1), time.min)).astimezone(pytz.utc)
    return lo, hi

def add_months(d: date, months: int) -> date:
    """First day of the month `months` away from d's month."""
    idx = d.year * 12 + (d.month - 1) + months
    return date(idx // 12, idx % 12 + 1, 1)

def format_long_date(d: Optional[date]) -> str:
    # "Jan 5, 2024"
    if not d:
        return ""
    return f"{d:%b} {d.day}, {d.year}"

def format_short_date(d: Optional[date]) -> str:
    # "1/5/2024"
    if not d:
        return ""
    return f"{d.month}/{d.day}/{d.year}"

_TIME_UNITS = (
    (365 * 24 * 3600, "year"),
    (30 * 24 * 3600, "month"),
    (7 * 24 * 3600, "week"),
    (24 * 3600, "day"),
    (3600, "hour"),
    (60, "minute"),
    (1, "second"),
)

def time_ago(then: Optional[datetime], now: datetime) -> str:
    """Human relative time: '3 hours ago', '1 day ago', 'just now'."""
    if then is None:
        return ""
    seconds = int((as_utc(now) - as_utc(then)).total_seconds())
    suffix = "ago" if seconds >= 0 else "from now"
    seconds = abs(seconds)
    if seconds < 1:
        return "just now"
    for size, unit in _TIME_UNITS:
        if seconds >= size:
            n = seconds // size
            return f"{n} {unit}{'' if n == 1 else 's'} {suffix}"
    return "just now"

def app_clock(config) -> tuple:
    """(tz, now) for the configured APP_TIMEZONE."""
    tz = get_tz(config.get("APP_TIMEZONE"))
    return tz, local_now(tz)
