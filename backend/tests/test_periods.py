from datetime import date
import os
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from backend.app.analytics.periods import month_bounds, period_start, previous_month, shift_months


def test_period_start_per_period():
    today = date(2024, 5, 16)  # Thursday
    assert period_start("weekly", today) == date(2024, 5, 13)
    assert period_start("monthly", today) == date(2024, 5, 1)
    assert period_start("quarterly", today) == date(2024, 4, 1)
    assert period_start("yearly", today) == date(2024, 1, 1)
    assert period_start("fortnightly", today) == date(2024, 5, 1)


def test_month_helpers_cross_year_and_leap_day():
    assert previous_month(date(2024, 1, 15)) == date(2023, 12, 1)
    assert shift_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert shift_months(date(2024, 6, 15), -12) == date(2023, 6, 15)
    assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
