from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.analytics.errors import (
    AnalyticsComputationError,
    AnalyticsPersistenceError,
    DataAccessError,
    PatternPersistenceFailure,
)
from backend.app.analytics.forecasting import HISTORY_MONTHS, build_forecast_payload
from backend.app.analytics.insights import (
    TREND_INSIGHT_CONFIDENCE,
    TREND_INSIGHT_TYPE,
    budget_performance_row,
    insight_summary,
    insight_title,
    spending_trend,
    top_categories,
)
from backend.app.analytics.keys import CacheKey, HealthScoreKey, InsightKey
from backend.app.analytics.patterns import PatternSet, detect_patterns
from backend.app.analytics.periods import (
    DEFAULT_PERIOD,
    month_bounds,
    month_start,
    period_start,
    previous_month,
    shift_months,
)
from backend.app.analytics.recommendations import build_recommendations
from backend.app.analytics.scoring import compute_health_score
from backend.app.api import config
from backend.app.models import utcnow
from backend.app.services import analytics_store, ledger_service
from backend.app.services.analytics_cache_service import AnalyticsCacheService, Clock

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Synchronous analytics pass over one user's ledger.

    Stage order inside a bundle: patterns, health score, insights, forecasts,
    recommendations (the last reads the patterns persisted by the first).
    Every persisted write is a keyed upsert, so concurrent passes for the
    same user settle as last-write-wins.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[AnalyticsCacheService] = None,
        clock: Optional[Clock] = None,
        *,
        cache_ttl_minutes: Optional[int] = None,
        high_confidence_threshold: Optional[float] = None,
    ) -> None:
        self.db = db
        self.clock = clock or utcnow
        self.cache = cache or AnalyticsCacheService(db, clock=self.clock)
        self.cache_ttl_minutes = (
            config.analytics_cache_ttl_minutes() if cache_ttl_minutes is None else cache_ttl_minutes
        )
        self.high_confidence_threshold = (
            config.high_confidence_threshold()
            if high_confidence_threshold is None
            else high_confidence_threshold
        )

    def _now(self) -> datetime:
        return self.clock()

    # -------------------------
    # Bundle
    # -------------------------

    def generate_user_analytics(self, user_id: str, period: str = DEFAULT_PERIOD) -> Dict[str, Any]:
        key = CacheKey.for_bundle(user_id, period)
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        return self._compute_bundle(user_id, period, key)

    def _compute_bundle(self, user_id: str, period: str, key: CacheKey) -> Dict[str, Any]:
        # A stale entry may survive a failed invalidation, so this path skips the cache read.
        bundle = {
            "spending_patterns": self.detect_spending_patterns(user_id, period),
            "financial_health": self.calculate_financial_health(user_id, period),
            "insights": self.generate_insights(user_id, period),
            "forecasts": self.generate_forecasts(user_id, period),
            "recommendations": self.generate_recommendations(user_id, period),
        }
        logger.info("Computed analytics bundle user_id=%s period=%s", user_id, period)
        self._cache_set(key, bundle)
        return bundle

    def refresh_analytics(self, user_id: str, period: str = DEFAULT_PERIOD) -> Dict[str, Any]:
        key = CacheKey.for_bundle(user_id, period)
        try:
            removed = self.cache.invalidate(key)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Analytics cache invalidation failed key=%s; recomputing: %s", key.cache_key, exc)
            return self._compute_bundle(user_id, period, key)
        logger.info("Refreshing analytics user_id=%s period=%s (dropped %s cache rows)", user_id, period, removed)
        return self.generate_user_analytics(user_id, period)

    def _cache_get(self, key: CacheKey) -> Optional[Dict[str, Any]]:
        try:
            return self.cache.get(key)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Analytics cache read failed key=%s; recomputing: %s", key.cache_key, exc)
            return None

    def _cache_set(self, key: CacheKey, bundle: Dict[str, Any]) -> None:
        try:
            self.cache.set(key, bundle, self.cache_ttl_minutes)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Analytics cache write failed key=%s; bundle not cached: %s", key.cache_key, exc)

    # -------------------------
    # Pattern detection
    # -------------------------

    def detect_spending_patterns(self, user_id: str, period: str = DEFAULT_PERIOD) -> Dict[str, Any]:
        today = self._now().date()
        try:
            lines = ledger_service.list_expenses(self.db, user_id, period_start(period, today))
            patterns = detect_patterns(lines, ledger_service.category_name_resolver(self.db))
        except DataAccessError as exc:
            exc.user_id, exc.period = user_id, period
            raise

        failures = self._store_patterns(user_id, patterns, today)
        payload: Dict[str, Any] = patterns.to_dict()
        payload["persistence_errors"] = [failure.to_dict() for failure in failures]
        return payload

    def _store_patterns(self, user_id: str, patterns: PatternSet, today) -> List[PatternPersistenceFailure]:
        failures: List[PatternPersistenceFailure] = []
        for observation in patterns:
            key = observation.identity(user_id)
            try:
                analytics_store.upsert_spending_pattern(self.db, key, observation, today)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.warning(
                    "Failed to store spending pattern user_id=%s type=%s name=%s: %s",
                    user_id,
                    key.pattern_type,
                    key.name,
                    exc,
                )
                failures.append(
                    PatternPersistenceFailure(
                        pattern_type=key.pattern_type,
                        pattern_name=key.name,
                        message=str(exc),
                    )
                )
        return failures

    # -------------------------
    # Health score
    # -------------------------

    def calculate_financial_health(self, user_id: str, period: str = DEFAULT_PERIOD) -> Dict[str, Any]:
        today = self._now().date()
        start = period_start(period, today)
        try:
            expenses = ledger_service.list_expenses(self.db, user_id, start)
            budgets = ledger_service.list_budgets(self.db, user_id, start_date_from=start)
        except DataAccessError as exc:
            raise AnalyticsComputationError(
                f"could not load ledger for health score: {exc.message}",
                stage="health_score.load_ledger",
                user_id=user_id,
                period=period,
            ) from exc

        score_date = month_start(today)
        result = compute_health_score(
            sum(line.amount for line in expenses),
            sum(budget.amount for budget in budgets),
            period=period,
            score_date=score_date,
        )
        payload = result.to_dict()

        try:
            analytics_store.upsert_health_score(self.db, HealthScoreKey(user_id, score_date), result)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise AnalyticsPersistenceError(
                f"health score computed but not saved: {exc}",
                stage="health_score.persist",
                computed=payload,
                user_id=user_id,
                period=period,
            ) from exc
        return payload

    # -------------------------
    # Insights
    # -------------------------

    def generate_insights(self, user_id: str, period: str = DEFAULT_PERIOD) -> Dict[str, Any]:
        now = self._now()
        today = now.date()
        try:
            insights = self._build_insights(user_id, period, today)
        except DataAccessError as exc:
            raise AnalyticsComputationError(
                f"could not load ledger for insights: {exc.message}",
                stage="insights.load_ledger",
                user_id=user_id,
                period=period,
            ) from exc

        try:
            analytics_store.upsert_insight(
                self.db,
                InsightKey(user_id, TREND_INSIGHT_TYPE),
                title=insight_title(today),
                description=insight_summary(insights),
                data=insights,
                confidence_score=TREND_INSIGHT_CONFIDENCE,
                generated_at=now,
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise AnalyticsPersistenceError(
                f"insights computed but not saved: {exc}",
                stage="insights.persist",
                computed=insights,
                user_id=user_id,
                period=period,
            ) from exc
        return insights

    def _build_insights(self, user_id: str, period: str, today) -> Dict[str, Any]:
        resolve_name = ledger_service.category_name_resolver(self.db)
        lines = ledger_service.list_expenses(self.db, user_id, period_start(period, today))

        current_start, current_end = month_bounds(today)
        last_start, last_end = month_bounds(previous_month(today))
        current_total = ledger_service.sum_expenses_between(self.db, user_id, current_start, current_end)
        last_total = ledger_service.sum_expenses_between(self.db, user_id, last_start, last_end)

        performance = []
        for budget in ledger_service.list_budgets(self.db, user_id):
            spent = ledger_service.sum_expenses_between(
                self.db,
                user_id,
                budget.start_date,
                budget.end_date,
                category_id=budget.category_id,
                all_categories=budget.category_id is None,
            )
            performance.append(budget_performance_row(budget, spent, resolve_name(budget.category_id)))

        return {
            "top_categories": top_categories(lines, resolve_name),
            "trends": spending_trend(current_total, last_total),
            "budget_performance": performance,
        }

    # -------------------------
    # Forecasts & recommendations
    # -------------------------

    def generate_forecasts(self, user_id: str, period: str = DEFAULT_PERIOD) -> Dict[str, Any]:
        today = self._now().date()
        try:
            history = ledger_service.monthly_totals(self.db, user_id, shift_months(today, -HISTORY_MONTHS))
        except DataAccessError as exc:
            exc.user_id, exc.period = user_id, period
            raise
        return build_forecast_payload(history)

    def generate_recommendations(self, user_id: str, period: str = DEFAULT_PERIOD) -> List[Dict[str, Any]]:
        try:
            patterns = analytics_store.list_active_patterns(
                self.db,
                user_id,
                min_confidence=self.high_confidence_threshold,
            )
        except SQLAlchemyError as exc:
            raise DataAccessError(
                str(exc),
                stage="recommendations.load_patterns",
                user_id=user_id,
                period=period,
            ) from exc
        return build_recommendations(patterns)
