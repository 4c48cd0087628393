from __future__ import annotations

from datetime import date, datetime
import os
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy import func, select

from backend.app.analytics.keys import HealthScoreKey, InsightKey
from backend.app.analytics.patterns import PatternObservation
from backend.app.analytics.scoring import compute_health_score
from backend.app.models import FinancialHealthScore, SpendingPattern, User, UserInsight
from backend.app.services import analytics_store


def _user(db, email="store@example.com"):
    user = User(email=email, name="Store")
    db.add(user)
    db.commit()
    return user


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar()


def test_pattern_upsert_keeps_one_row_and_first_detected(memory_session):
    user = _user(memory_session)
    first = PatternObservation(pattern_type="monthly_recurring", name="Netflix", amount=50.0, confidence=89.5)
    again = PatternObservation(pattern_type="monthly_recurring", name="Netflix", amount=55.0, confidence=91.0)

    analytics_store.upsert_spending_pattern(memory_session, first.identity(user.id), first, date(2024, 5, 1))
    row = analytics_store.upsert_spending_pattern(memory_session, again.identity(user.id), again, date(2024, 6, 1))

    assert _count(memory_session, SpendingPattern) == 1
    assert row.first_detected == date(2024, 5, 1)
    assert row.last_detected == date(2024, 6, 1)
    assert row.impact_amount == 55.0
    assert row.confidence_score == 91.0
    assert row.frequency_days == 30.0
    assert row.is_recurring is True


def test_observation_without_confidence_stores_default(memory_session):
    user = _user(memory_session)
    obs = PatternObservation(pattern_type="category_spike", name="Travel", amount=500.0, data={"category": "Travel"})

    row = analytics_store.upsert_spending_pattern(memory_session, obs.identity(user.id), obs, date(2024, 5, 1))

    assert row.confidence_score == 75.0
    assert row.frequency_days == 0.0
    assert row.pattern_data["category"] == "Travel"
    assert row.description == "Pattern detected: category spike"


def test_list_active_patterns_filters(memory_session):
    user = _user(memory_session)
    for obs in (
        PatternObservation(pattern_type="monthly_recurring", name="Rent", amount=1000.0, confidence=89.5),
        PatternObservation(pattern_type="category_spike", name="Travel", amount=500.0),
    ):
        analytics_store.upsert_spending_pattern(memory_session, obs.identity(user.id), obs, date(2024, 5, 1))

    assert len(analytics_store.list_active_patterns(memory_session, user.id)) == 2
    high = analytics_store.list_active_patterns(memory_session, user.id, min_confidence=80)
    assert [row.pattern_name for row in high] == ["Rent"]
    spikes = analytics_store.list_active_patterns(memory_session, user.id, pattern_type="category_spike")
    assert [row.pattern_name for row in spikes] == ["Travel"]


def test_health_score_upsert_per_month(memory_session):
    user = _user(memory_session)
    may = date(2024, 5, 1)

    analytics_store.upsert_health_score(
        memory_session, HealthScoreKey(user.id, may), compute_health_score(0, 0, period="monthly", score_date=may)
    )
    analytics_store.upsert_health_score(
        memory_session, HealthScoreKey(user.id, may), compute_health_score(750, 1000, period="monthly", score_date=may)
    )

    rows = analytics_store.list_health_scores(memory_session, user.id)
    assert len(rows) == 1
    assert rows[0].overall_score == 68.25
    assert _count(memory_session, FinancialHealthScore) == 1


def test_insight_regeneration_resets_read_flag(memory_session):
    user = _user(memory_session)
    key = InsightKey(user.id, "trend_analysis")
    kwargs = dict(title="t", description="d", data={}, confidence_score=85.0)

    row = analytics_store.upsert_insight(memory_session, key, generated_at=datetime(2024, 5, 2), **kwargs)
    assert analytics_store.mark_insight_read(memory_session, user.id, row.id).is_read is True
    assert analytics_store.mark_insight_read(memory_session, "someone-else", row.id) is None

    row = analytics_store.upsert_insight(memory_session, key, generated_at=datetime(2024, 5, 3), **kwargs)

    assert row.is_read is False
    assert _count(memory_session, UserInsight) == 1
    assert analytics_store.list_insights(memory_session, user.id, since=datetime(2024, 5, 4)) == []
    assert len(analytics_store.list_insights(memory_session, user.id, insight_type="trend_analysis")) == 1
