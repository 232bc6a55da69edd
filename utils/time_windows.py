from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from core.config import settings
from core.exceptions import ValidationError


def utcnow() -> datetime:
    """Naive UTC timestamp, the form the order store keeps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def _to_store(local: datetime) -> datetime:
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def day_window(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a business day, as naive UTC."""
    tz = business_tz()
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return _to_store(start), _to_store(end)


def today(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(business_tz()).date()


def today_window(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    return day_window(today(now))


def month_window(year: int, month: int) -> tuple[datetime, datetime]:
    tz = business_tz()
    start = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 1, 1, tzinfo=tz)
    return _to_store(start), _to_store(end)


def current_month_window(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    current = today(now)
    return month_window(current.year, current.month)


def parse_month(value: str) -> tuple[int, int]:
    """Parse 'YYYY-MM'."""
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError:
        raise ValidationError(f"Invalid month '{value}', expected YYYY-MM")
    return parsed.year, parsed.month


def parse_day(value: str) -> date:
    """Parse 'YYYY-MM-DD'."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")
