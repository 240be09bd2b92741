from datetime import date, datetime, timedelta
from typing import Optional, Union


def add_days(anchor: date, days: int) -> date:
    return anchor + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (end - start).days


def parse_date(value: Optional[Union[str, date]]) -> Optional[date]:
    """Parse an ISO date or datetime string as stored in SQLite."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return datetime.fromisoformat(value).date()
