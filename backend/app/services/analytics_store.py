from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.analytics.keys import HealthScoreKey, InsightKey, PatternKey
from backend.app.analytics.patterns import PatternObservation
from backend.app.analytics.scoring import HealthScoreResult
from backend.app.db import Base
from backend.app.models import FinancialHealthScore, SpendingPattern, UserInsight

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=Base)


def upsert_row(
    db: Session,
    model: Type[RowT],
    key: Dict[str, Any],
    values: Dict[str, Any],
    *,
    on_insert: Optional[Dict[str, Any]] = None,
) -> RowT:
    """
    Insert-or-update one row identified by `key`, then commit.

    `on_insert` values are only written when the row is created. A concurrent
    insert of the same key surfaces as IntegrityError; the write is retried
    once as an update (last write wins).
    """
    row = db.execute(select(model).filter_by(**key)).scalars().first()
    if row is None:
        row = model(**key, **values, **(on_insert or {}))
        db.add(row)
    else:
        for name, value in values.items():
            setattr(row, name, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Upsert raced on %s key=%s; retrying as update", model.__tablename__, key)
        row = db.execute(select(model).filter_by(**key)).scalars().first()
        if row is None:
            raise
        for name, value in values.items():
            setattr(row, name, value)
        db.commit()
    return row


# -------------------------
# Spending patterns
# -------------------------

def upsert_spending_pattern(
    db: Session,
    key: PatternKey,
    observation: PatternObservation,
    detected_on: date,
) -> SpendingPattern:
    return upsert_row(
        db,
        SpendingPattern,
        key.as_filter(),
        {
            "description": observation.stored_description,
            "pattern_data": observation.to_dict(),
            "frequency_days": observation.stored_frequency_days,
            "confidence_score": observation.stored_confidence,
            "impact_amount": round(observation.amount, 2),
            "last_detected": detected_on,
            "is_active": True,
        },
        on_insert={"first_detected": detected_on},
    )


def list_active_patterns(
    db: Session,
    user_id: str,
    *,
    min_confidence: Optional[float] = None,
    pattern_type: Optional[str] = None,
) -> List[SpendingPattern]:
    query = select(SpendingPattern).where(
        SpendingPattern.user_id == user_id,
        SpendingPattern.is_active.is_(True),
    )
    if min_confidence is not None:
        query = query.where(SpendingPattern.confidence_score >= min_confidence)
    if pattern_type:
        query = query.where(SpendingPattern.pattern_type == pattern_type)
    query = query.order_by(SpendingPattern.pattern_type.asc(), SpendingPattern.pattern_name.asc())
    return list(db.execute(query).scalars().all())


def serialize_pattern(row: SpendingPattern) -> Dict[str, Any]:
    return {
        "id": row.id,
        "pattern_type": row.pattern_type,
        "pattern_name": row.pattern_name,
        "description": row.description,
        "pattern_data": row.pattern_data,
        "frequency_days": row.frequency_days,
        "confidence_score": row.confidence_score,
        "impact_amount": row.impact_amount,
        "first_detected": row.first_detected.isoformat() if row.first_detected else None,
        "last_detected": row.last_detected.isoformat() if row.last_detected else None,
        "is_active": row.is_active,
        "is_recurring": row.is_recurring,
    }


# -------------------------
# Financial health scores
# -------------------------

def upsert_health_score(db: Session, key: HealthScoreKey, result: HealthScoreResult) -> FinancialHealthScore:
    payload = result.to_dict()
    return upsert_row(
        db,
        FinancialHealthScore,
        key.as_filter(),
        {
            "overall_score": payload["overall_score"],
            "budget_adherence_score": payload["budget_adherence_score"],
            "spending_consistency_score": payload["spending_consistency_score"],
            "savings_rate_score": payload["savings_rate_score"],
            "category_balance_score": payload["category_balance_score"],
            "score_breakdown": payload["score_breakdown"],
            "recommendations": payload["recommendations"],
        },
    )


def list_health_scores(db: Session, user_id: str, limit: int = 12) -> List[FinancialHealthScore]:
    return list(
        db.execute(
            select(FinancialHealthScore)
            .where(FinancialHealthScore.user_id == user_id)
            .order_by(FinancialHealthScore.score_date.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )


def serialize_health_score(row: FinancialHealthScore) -> Dict[str, Any]:
    return {
        "id": row.id,
        "score_date": row.score_date.isoformat(),
        "overall_score": row.overall_score,
        "budget_adherence_score": row.budget_adherence_score,
        "spending_consistency_score": row.spending_consistency_score,
        "savings_rate_score": row.savings_rate_score,
        "category_balance_score": row.category_balance_score,
        "score_breakdown": row.score_breakdown,
        "recommendations": row.recommendations,
    }


# -------------------------
# Insights
# -------------------------

def upsert_insight(
    db: Session,
    key: InsightKey,
    *,
    title: str,
    description: str,
    data: Dict[str, Any],
    confidence_score: Optional[float],
    generated_at: datetime,
) -> UserInsight:
    return upsert_row(
        db,
        UserInsight,
        key.as_filter(),
        {
            "title": title,
            "description": description,
            "data": data,
            "confidence_score": confidence_score,
            "generated_at": generated_at,
            "is_read": False,
        },
    )


def list_insights(
    db: Session,
    user_id: str,
    *,
    insight_type: Optional[str] = None,
    since: Optional[datetime] = None,
) -> List[UserInsight]:
    query = select(UserInsight).where(UserInsight.user_id == user_id)
    if insight_type:
        query = query.where(UserInsight.insight_type == insight_type)
    if since is not None:
        query = query.where(UserInsight.generated_at >= since)
    return list(db.execute(query.order_by(UserInsight.generated_at.desc())).scalars().all())


def mark_insight_read(db: Session, user_id: str, insight_id: str) -> Optional[UserInsight]:
    row = db.get(UserInsight, insight_id)
    if row is None or row.user_id != user_id:
        return None
    row.is_read = True
    db.commit()
    return row


def serialize_insight(row: UserInsight) -> Dict[str, Any]:
    return {
        "id": row.id,
        "insight_type": row.insight_type,
        "title": row.title,
        "description": row.description,
        "data": row.data,
        "confidence_score": row.confidence_score,
        "is_read": row.is_read,
        "generated_at": row.generated_at.isoformat() if row.generated_at else None,
    }
