from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict


@dataclass(frozen=True)
class PatternKey:
    user_id: str
    pattern_type: str
    name: str

    def as_filter(self) -> Dict[str, Any]:
        return {"user_id": self.user_id, "pattern_type": self.pattern_type, "pattern_name": self.name}


@dataclass(frozen=True)
class HealthScoreKey:
    user_id: str
    score_date: date

    def as_filter(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InsightKey:
    user_id: str
    insight_type: str

    def as_filter(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CacheKey:
    user_id: str
    cache_key: str

    @classmethod
    def for_bundle(cls, user_id: str, period: str) -> "CacheKey":
        return cls(user_id=user_id, cache_key=f"user_analytics_{user_id}_{period}")

    def as_filter(self) -> Dict[str, Any]:
        return asdict(self)
