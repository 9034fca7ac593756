"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import List, Tuple


def add_months(from_date: date, months: int) -> date:
    """Advance by whole months, clamping to the last valid day of the target month"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def month_key(value: date) -> str:
    """'YYYY-MM' key used to bucket dates by month"""
    return f"{value.year:04d}-{value.month:02d}"


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day (inclusive) of a calendar month"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_sequence(start: date, count: int) -> List[date]:
    """First day of ``count`` consecutive months starting with start's month"""
    first = start.replace(day=1)
    return [add_months(first, i) for i in range(count)]
