"""Nutritional-day arithmetic.

A nutritional day runs from 05:00 to the next 05:00 local time, so late-night
eating counts toward the previous day. Database timestamps are naive UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DAY_START_HOUR = 5

WEEKDAY_NAMES = (
    "Domingo",
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
)


def get_zoneinfo(name: str | None, default: str = "UTC"):
    for candidate in (name, default, "UTC"):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    return timezone.utc


def is_valid_time_zone(name: str | None) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def resolve_day_key(moment: datetime, tz=None) -> date:
    """Return the nutritional day a timestamp belongs to.

    With ``tz`` the timestamp is converted to that zone first (naive values are
    read as UTC). Without it the timestamp's own wall clock is used.
    """
    local = moment
    if tz is not None:
        if local.tzinfo is None:
            local = local.replace(tzinfo=timezone.utc)
        local = local.astimezone(tz)
    if local.hour < DAY_START_HOUR:
        return local.date() - timedelta(days=1)
    return local.date()


def day_range(day_key: date, tz=None) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC range of a nutritional day."""
    zone = tz or timezone.utc
    start = datetime.combine(day_key, time(hour=DAY_START_HOUR), tzinfo=zone)
    end = datetime.combine(day_key + timedelta(days=1), time(hour=DAY_START_HOUR), tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def span_range(first_day: date, last_day: date, tz=None) -> tuple[datetime, datetime]:
    start, _ = day_range(first_day, tz)
    _, end = day_range(last_day, tz)
    return start, end


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def week_start(anchor: date) -> date:
    # date.weekday(): Monday=0 ... Sunday=6
    return anchor - timedelta(days=(anchor.weekday() + 1) % 7)


def week_days(anchor: date) -> list[date]:
    first = week_start(anchor)
    return [first + timedelta(days=offset) for offset in range(7)]


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[(day.weekday() + 1) % 7]


def month_week_buckets(anchor: date) -> list[tuple[date, date]]:
    """Sunday-to-Saturday weeks covering the month of ``anchor``."""
    first_of_month = anchor.replace(day=1)
    if first_of_month.month == 12:
        next_month = first_of_month.replace(year=first_of_month.year + 1, month=1)
    else:
        next_month = first_of_month.replace(month=first_of_month.month + 1)
    last_of_month = next_month - timedelta(days=1)

    buckets = []
    cursor = week_start(first_of_month)
    while cursor <= last_of_month:
        buckets.append((cursor, cursor + timedelta(days=6)))
        cursor += timedelta(days=7)
    return buckets


def parse_day(value: str | None, fallback: date | None = None) -> date | None:
    if not value:
        return fallback
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
