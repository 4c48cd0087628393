from __future__ import annotations

from datetime import datetime, timedelta
import os
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy import func, select

from backend.app.analytics.keys import CacheKey
from backend.app.models import AnalyticsCache, User
from backend.app.services.analytics_cache_service import AnalyticsCacheService


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _user(db):
    user = User(email="cache@example.com", name="Cache")
    db.add(user)
    db.commit()
    return user


def test_entry_expires_after_ttl(memory_session):
    user = _user(memory_session)
    clock = FakeClock(datetime(2024, 5, 1, 12, 0))
    cache = AnalyticsCacheService(memory_session, clock=clock)
    key = CacheKey.for_bundle(user.id, "monthly")

    cache.set(key, {"value": 1}, ttl_minutes=60)
    clock.advance(minutes=59)
    assert cache.get(key) == {"value": 1}

    clock.advance(minutes=1)
    assert cache.get(key) is None


def test_set_overwrites_and_resets_expiry(memory_session):
    user = _user(memory_session)
    clock = FakeClock(datetime(2024, 5, 1, 12, 0))
    cache = AnalyticsCacheService(memory_session, clock=clock)
    key = CacheKey.for_bundle(user.id, "monthly")

    cache.set(key, {"value": 1}, ttl_minutes=60)
    clock.advance(minutes=50)
    cache.set(key, {"value": 2}, ttl_minutes=60)
    clock.advance(minutes=50)

    assert cache.get(key) == {"value": 2}
    assert memory_session.execute(select(func.count()).select_from(AnalyticsCache)).scalar() == 1


def test_invalidate_and_clear_expired(memory_session):
    user = _user(memory_session)
    clock = FakeClock(datetime(2024, 5, 1, 12, 0))
    cache = AnalyticsCacheService(memory_session, clock=clock)
    monthly = CacheKey.for_bundle(user.id, "monthly")
    weekly = CacheKey.for_bundle(user.id, "weekly")

    assert monthly.cache_key == f"user_analytics_{user.id}_monthly"

    cache.set(monthly, {"p": "m"}, ttl_minutes=10)
    cache.set(weekly, {"p": "w"}, ttl_minutes=120)
    assert cache.invalidate(monthly) == 1
    assert cache.get(monthly) is None

    cache.set(monthly, {"p": "m"}, ttl_minutes=10)
    clock.advance(minutes=30)
    assert cache.clear_expired() == 1
    assert cache.get(weekly) == {"p": "w"}
    assert cache.invalidate_user(user.id) == 1
