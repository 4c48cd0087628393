from __future__ import annotations

import os
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from backend.app.analytics.forecasting import analyze_trend, build_forecast_payload, forecast_next_month
from backend.app.analytics.lines import MonthlyTotal


def _history(*totals):
    return [MonthlyTotal(month=f"2024-{i + 1:02d}", total=float(t)) for i, t in enumerate(totals)]


def test_three_months_forecast_applies_growth():
    assert round(forecast_next_month(_history(100, 200, 300)), 6) == 204.0


def test_short_history_uses_plain_mean():
    assert forecast_next_month(_history(100, 300)) == 200.0
    assert forecast_next_month([]) == 0.0


def test_only_last_three_months_feed_the_forecast():
    assert round(forecast_next_month(_history(1000, 1000, 100, 200, 300)), 6) == 204.0


def test_trend_bands():
    assert analyze_trend(_history(100, 200, 300)) == {"overall_trend": "increasing", "trend_percentage": 200.0}
    assert analyze_trend(_history(100, 103))["overall_trend"] == "stable"
    assert analyze_trend(_history(100, 50))["overall_trend"] == "decreasing"
    assert analyze_trend(_history(100))["overall_trend"] == "insufficient_data"


def test_trend_from_zero_first_month_has_no_percentage():
    assert analyze_trend(_history(0, 50)) == {"overall_trend": "increasing", "trend_percentage": None}
    assert analyze_trend(_history(0, 0)) == {"overall_trend": "stable", "trend_percentage": None}


def test_payload_keeps_last_twelve_months():
    history = [MonthlyTotal(month=f"{2023 + i // 12}-{i % 12 + 1:02d}", total=100.0) for i in range(14)]

    payload = build_forecast_payload(history)

    assert payload["history_months"] == 12
    assert payload["history"][0]["month"] == "2023-03"
    assert payload["next_month_forecast"] == 102.0
    assert payload["category_forecasts"] == {"status": "not_available", "forecasts": None}
