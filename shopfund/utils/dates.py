import math
from datetime import date, datetime, timezone
from typing import Any, Optional


def parse_date(value: Any) -> Optional[date]:
    """Accepts date, datetime or an ISO string ("2025-03-01" or full timestamp)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO timestamp to an aware datetime; a naive value is taken as UTC. None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def days_left(end_date: Any, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until end_date (midnight UTC), rounded up; negative once past."""
    end = parse_date(end_date)
    if end is None:
        return None
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    end_dt = datetime(end.year, end.month, end.day, tzinfo=timezone.utc)
    return math.ceil((end_dt - now).total_seconds() / 86400)


def iso(value: Any) -> Optional[str]:
    return value.isoformat() if hasattr(value, "isoformat") else value
