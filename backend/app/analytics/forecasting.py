from __future__ import annotations

import statistics
from typing import Any, Dict, List, Literal, Optional, Sequence

from backend.app.analytics.lines import MonthlyTotal

FORECAST_METHOD = "moving_average_3m_growth_2pct"
HISTORY_MONTHS = 12
RECENT_WINDOW = 3
# Fixed growth assumption, not a fitted trend.
GROWTH_FACTOR = 1.02
TREND_BAND_PCT = 5.0

Trend = Literal["increasing", "decreasing", "stable", "insufficient_data"]


def forecast_next_month(history: Sequence[MonthlyTotal]) -> float:
    """
    Fewer than three months: plain mean of what exists (0 when empty).
    Otherwise: mean of the last three months scaled by GROWTH_FACTOR.
    """
    totals = [row.total for row in history]
    if len(totals) < RECENT_WINDOW:
        return statistics.fmean(totals) if totals else 0.0
    return statistics.fmean(totals[-RECENT_WINDOW:]) * GROWTH_FACTOR


def analyze_trend(history: Sequence[MonthlyTotal]) -> Dict[str, Any]:
    if len(history) < 2:
        return {"overall_trend": "insufficient_data", "trend_percentage": None}

    first = history[0].total
    last = history[-1].total
    if first == 0:
        # Percentage change from zero is undefined; classify by direction only.
        trend: Trend = "increasing" if last > first else "stable"
        return {"overall_trend": trend, "trend_percentage": None}

    pct = (last - first) / first * 100.0
    if pct > TREND_BAND_PCT:
        trend = "increasing"
    elif pct < -TREND_BAND_PCT:
        trend = "decreasing"
    else:
        trend = "stable"
    return {"overall_trend": trend, "trend_percentage": round(pct, 2)}


def category_forecasts() -> Dict[str, Optional[List[Any]]]:
    return {"status": "not_available", "forecasts": None}


def build_forecast_payload(history: Sequence[MonthlyTotal]) -> Dict[str, Any]:
    rows = list(history)[-HISTORY_MONTHS:]
    return {
        "method": FORECAST_METHOD,
        "history_months": len(rows),
        "history": [row.to_dict() for row in rows],
        "next_month_forecast": round(forecast_next_month(rows), 2),
        "category_forecasts": category_forecasts(),
        "trend_analysis": analyze_trend(rows),
    }
