# -------------------- DATE UTILITIES --------------------
from datetime import date, datetime, timedelta
from typing import Optional


def parse_date(value) -> Optional[date]:
    """Parse YYYY-MM-DD (or an ISO datetime) to a date; None when unparseable"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def week_start(day: date) -> date:
    """Monday of the week containing day"""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)
