from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.app.analytics.errors import AnalyticsError, AnalyticsPersistenceError
from backend.app.analytics.periods import DEFAULT_PERIOD, period_start
from backend.app.api.deps import analytics_http_error, get_analytics_service, require_user
from backend.app.db import get_db
from backend.app.models import INSIGHT_TYPES, PATTERN_TYPES
from backend.app.services import analytics_store
from backend.app.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

HEALTH_HISTORY_LIMIT = 12


class AnalyticsBundleOut(BaseModel):
    spending_patterns: Dict[str, Any]
    financial_health: Dict[str, Any]
    insights: Dict[str, Any]
    forecasts: Dict[str, Any]
    recommendations: List[Dict[str, Any]]


class SpendingPatternOut(BaseModel):
    id: str
    pattern_type: str
    pattern_name: str
    description: str
    pattern_data: Dict[str, Any]
    frequency_days: float
    confidence_score: float
    impact_amount: Optional[float] = None
    first_detected: Optional[str] = None
    last_detected: Optional[str] = None
    is_active: bool
    is_recurring: bool


class HealthSnapshotOut(BaseModel):
    id: str
    score_date: str
    overall_score: float
    budget_adherence_score: float
    spending_consistency_score: float
    savings_rate_score: float
    category_balance_score: float
    score_breakdown: Dict[str, Any]
    recommendations: List[str]


class FinancialHealthOut(BaseModel):
    current: Dict[str, Any]
    history: List[HealthSnapshotOut]
    warnings: List[str] = []


class InsightOut(BaseModel):
    id: str
    insight_type: str
    title: str
    description: str
    data: Dict[str, Any]
    confidence_score: Optional[float] = None
    is_read: bool
    generated_at: Optional[str] = None


class RecommendationOut(BaseModel):
    type: str
    message: str
    category: Optional[str] = None
    potential_savings: Optional[float] = None
    suggested_amount: Optional[float] = None


@router.get("/dashboard", response_model=AnalyticsBundleOut)
def dashboard(
    user_id: str = Query(...),
    period: str = Query(DEFAULT_PERIOD),
    db: Session = Depends(get_db),
    service: AnalyticsService = Depends(get_analytics_service),
):
    require_user(db, user_id)
    try:
        return service.generate_user_analytics(user_id, period)
    except AnalyticsError as exc:
        logger.warning("Dashboard failed user_id=%s period=%s: %s", user_id, period, exc)
        raise analytics_http_error(exc) from exc


@router.post("/refresh", response_model=AnalyticsBundleOut)
def refresh(
    user_id: str = Query(...),
    period: str = Query(DEFAULT_PERIOD),
    db: Session = Depends(get_db),
    service: AnalyticsService = Depends(get_analytics_service),
):
    require_user(db, user_id)
    try:
        return service.refresh_analytics(user_id, period)
    except AnalyticsError as exc:
        logger.warning("Refresh failed user_id=%s period=%s: %s", user_id, period, exc)
        raise analytics_http_error(exc) from exc


@router.get("/patterns", response_model=List[SpendingPatternOut])
def patterns(
    user_id: str = Query(...),
    pattern_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db),
):
    require_user(db, user_id)
    if pattern_type and pattern_type not in PATTERN_TYPES:
        raise HTTPException(status_code=400, detail=f"unknown pattern type: {pattern_type}")
    rows = analytics_store.list_active_patterns(db, user_id, pattern_type=pattern_type)
    return [analytics_store.serialize_pattern(row) for row in rows]


@router.get("/health", response_model=FinancialHealthOut)
def financial_health(
    user_id: str = Query(...),
    period: str = Query(DEFAULT_PERIOD),
    db: Session = Depends(get_db),
    service: AnalyticsService = Depends(get_analytics_service),
):
    require_user(db, user_id)
    warnings: List[str] = []
    try:
        current = service.calculate_financial_health(user_id, period)
    except AnalyticsPersistenceError as exc:
        logger.warning("Health score not persisted user_id=%s: %s", user_id, exc)
        current = exc.computed
        warnings.append(str(exc))
    except AnalyticsError as exc:
        raise analytics_http_error(exc) from exc

    history = analytics_store.list_health_scores(db, user_id, limit=HEALTH_HISTORY_LIMIT)
    return {
        "current": current,
        "history": [analytics_store.serialize_health_score(row) for row in history],
        "warnings": warnings,
    }


@router.get("/insights", response_model=List[InsightOut])
def insights(
    user_id: str = Query(...),
    period: str = Query(DEFAULT_PERIOD),
    insight_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db),
    service: AnalyticsService = Depends(get_analytics_service),
):
    require_user(db, user_id)
    if insight_type and insight_type not in INSIGHT_TYPES:
        raise HTTPException(status_code=400, detail=f"unknown insight type: {insight_type}")
    since = datetime.combine(period_start(period, service.clock().date()), time.min)
    rows = analytics_store.list_insights(db, user_id, insight_type=insight_type, since=since)
    return [analytics_store.serialize_insight(row) for row in rows]


@router.post("/insights/{insight_id}/read", response_model=InsightOut)
def mark_insight_read(
    insight_id: str,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    require_user(db, user_id)
    row = analytics_store.mark_insight_read(db, user_id, insight_id)
    if row is None:
        raise HTTPException(status_code=404, detail="insight not found")
    return analytics_store.serialize_insight(row)


@router.get("/forecasts")
def forecasts(
    user_id: str = Query(...),
    period: str = Query(DEFAULT_PERIOD),
    db: Session = Depends(get_db),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    require_user(db, user_id)
    try:
        return service.generate_forecasts(user_id, period)
    except AnalyticsError as exc:
        raise analytics_http_error(exc) from exc


@router.get("/recommendations", response_model=List[RecommendationOut])
def recommendations(
    user_id: str = Query(...),
    period: str = Query(DEFAULT_PERIOD),
    db: Session = Depends(get_db),
    service: AnalyticsService = Depends(get_analytics_service),
):
    require_user(db, user_id)
    try:
        return service.generate_recommendations(user_id, period)
    except AnalyticsError as exc:
        raise analytics_http_error(exc) from exc
