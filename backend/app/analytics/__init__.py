"""Pure analytics over ledger lines: patterns, health score, insights, forecasts, recommendations."""

from .errors import (
    AnalyticsComputationError,
    AnalyticsError,
    AnalyticsPersistenceError,
    DataAccessError,
    PatternPersistenceFailure,
)
from .forecasting import build_forecast_payload
from .patterns import PatternObservation, PatternSet, detect_patterns
from .recommendations import build_recommendations
from .scoring import HealthScoreResult, compute_health_score

__all__ = [
    "AnalyticsComputationError",
    "AnalyticsError",
    "AnalyticsPersistenceError",
    "DataAccessError",
    "HealthScoreResult",
    "PatternObservation",
    "PatternPersistenceFailure",
    "PatternSet",
    "build_forecast_payload",
    "build_recommendations",
    "compute_health_score",
    "detect_patterns",
]
