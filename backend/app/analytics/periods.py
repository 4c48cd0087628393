from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Literal, Tuple

Period = Literal["weekly", "monthly", "quarterly", "yearly"]
DEFAULT_PERIOD: Period = "monthly"


def period_start(period: str, today: date) -> date:
    """Start of the current week (Monday), month, quarter or year; unknown periods fall back to the month."""
    if period == "weekly":
        return today - timedelta(days=today.weekday())
    if period == "quarterly":
        first_month = ((today.month - 1) // 3) * 3 + 1
        return date(today.year, first_month, 1)
    if period == "yearly":
        return date(today.year, 1, 1)
    return month_start(today)


def month_start(value: date) -> date:
    return date(value.year, value.month, 1)


def month_bounds(value: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return date(value.year, value.month, 1), date(value.year, value.month, last_day)


def previous_month(value: date) -> date:
    if value.month == 1:
        return date(value.year - 1, 12, 1)
    return date(value.year, value.month - 1, 1)


def shift_months(value: date, months: int) -> date:
    index = value.year * 12 + (value.month - 1) + months
    year, month0 = divmod(index, 12)
    month = month0 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
