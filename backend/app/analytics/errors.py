from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base error for the analytics engine; carries enough context to log meaningfully."""

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        user_id: Optional[str] = None,
        period: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.user_id = user_id
        self.period = period

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "stage": self.stage,
            "user_id": self.user_id,
            "period": self.period,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class DataAccessError(AnalyticsError):
    """The ledger query layer failed or returned unusable rows. Not retried."""


class AnalyticsComputationError(AnalyticsError):
    """A computation step could not produce a result."""


class AnalyticsPersistenceError(AnalyticsComputationError):
    """The result was computed but could not be saved; `computed` holds it."""

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        computed: Dict[str, Any],
        user_id: Optional[str] = None,
        period: Optional[str] = None,
    ) -> None:
        super().__init__(message, stage=stage, user_id=user_id, period=period)
        self.computed = computed


@dataclass(frozen=True)
class PatternPersistenceFailure:
    pattern_type: str
    pattern_name: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "pattern_type": self.pattern_type,
            "pattern_name": self.pattern_name,
            "message": self.message,
        }
