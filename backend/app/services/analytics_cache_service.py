from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from backend.app.analytics.keys import CacheKey
from backend.app.models import AnalyticsCache, utcnow
from backend.app.services.analytics_store import upsert_row

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class AnalyticsCacheService:
    """
    Per-user keyed cache of JSON analytics payloads stored in `analytics_cache`.

    Entries whose expires_at is at or before `clock()` are treated as misses.
    Nothing here invalidates on ledger writes; callers do that explicitly.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None) -> None:
        self.db = db
        self.clock = clock or utcnow

    def get(self, key: CacheKey) -> Optional[Dict[str, Any]]:
        now = self.clock()
        row = (
            self.db.execute(
                select(AnalyticsCache).where(
                    AnalyticsCache.user_id == key.user_id,
                    AnalyticsCache.cache_key == key.cache_key,
                    AnalyticsCache.expires_at > now,
                )
            )
            .scalars()
            .first()
        )
        if row is None:
            logger.info("Analytics cache miss user_id=%s key=%s", key.user_id, key.cache_key)
            return None
        logger.info("Analytics cache hit user_id=%s key=%s", key.user_id, key.cache_key)
        return row.cached_data

    def set(self, key: CacheKey, data: Dict[str, Any], ttl_minutes: int) -> AnalyticsCache:
        expires_at = self.clock() + timedelta(minutes=ttl_minutes)
        return upsert_row(
            self.db,
            AnalyticsCache,
            key.as_filter(),
            {"cached_data": data, "expires_at": expires_at},
        )

    def invalidate(self, key: CacheKey) -> int:
        result = self.db.execute(
            delete(AnalyticsCache).where(
                AnalyticsCache.user_id == key.user_id,
                AnalyticsCache.cache_key == key.cache_key,
            )
        )
        self.db.commit()
        return int(result.rowcount or 0)

    def invalidate_user(self, user_id: str) -> int:
        result = self.db.execute(delete(AnalyticsCache).where(AnalyticsCache.user_id == user_id))
        self.db.commit()
        return int(result.rowcount or 0)

    def clear_expired(self) -> int:
        result = self.db.execute(delete(AnalyticsCache).where(AnalyticsCache.expires_at <= self.clock()))
        self.db.commit()
        removed = int(result.rowcount or 0)
        if removed:
            logger.info("Removed %s expired analytics cache entries", removed)
        return removed
