# backoffice/utils/timezones.py
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_start(d: Optional[date] = None) -> date:
    d = d or utcnow().date()
    return d.replace(day=1)


def monday_of_week(d: date) -> date:
    # Monday=0 .. Sunday=6
    return d - timedelta(days=d.weekday())
