from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Union

SCORE_WEIGHTS: Dict[str, float] = {
    "spending_consistency": 0.30,
    "budget_adherence": 0.30,
    "savings_rate": 0.25,
    "category_balance": 0.15,
}

# Placeholders until income and debt data are tracked.
SAVINGS_RATE_PLACEHOLDER = 75.0
CATEGORY_BALANCE_PLACEHOLDER = 80.0
NO_BUDGET_CONSISTENCY = 50.0
NO_BUDGET_ADHERENCE = 0.0

HEALTH_STATUS_BANDS = (
    (90.0, "Excellent"),
    (80.0, "Very Good"),
    (70.0, "Good"),
    (60.0, "Fair"),
    (50.0, "Poor"),
)

CONSISTENCY_STEPS = (
    (0.8, 100.0),
    (0.9, 90.0),
    (1.0, 80.0),
    (1.1, 60.0),
    (1.2, 40.0),
)


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


@dataclass(frozen=True)
class ComputedScore:
    value: float
    source: str = field(default="computed", init=False)

    @property
    def is_computed(self) -> bool:
        return True


@dataclass(frozen=True)
class UnavailableScore:
    """A fallback value used when the inputs for a real score do not exist."""

    value: float
    reason: str = ""
    source: str = field(default="unavailable", init=False)

    @property
    def is_computed(self) -> bool:
        return False


ScoreSource = Union[ComputedScore, UnavailableScore]


def budget_adherence_score(total_expenses: float, total_budget: float) -> ScoreSource:
    if total_budget <= 0:
        return UnavailableScore(NO_BUDGET_ADHERENCE, reason="no budget defined for the period")
    adherence = (total_budget - total_expenses) / total_budget * 100.0
    return ComputedScore(clamp(adherence, 0.0, 100.0))


def spending_consistency_score(total_expenses: float, total_budget: float) -> ScoreSource:
    if total_budget <= 0:
        return UnavailableScore(NO_BUDGET_CONSISTENCY, reason="no budget defined for the period")
    ratio = total_expenses / total_budget
    for upper, score in CONSISTENCY_STEPS:
        if ratio <= upper:
            return ComputedScore(score)
    return ComputedScore(20.0)


def savings_rate_score() -> ScoreSource:
    return UnavailableScore(SAVINGS_RATE_PLACEHOLDER, reason="income is not tracked")


def category_balance_score() -> ScoreSource:
    return UnavailableScore(CATEGORY_BALANCE_PLACEHOLDER, reason="debt payments are not tracked")


def overall_score(sub_scores: Dict[str, ScoreSource]) -> float:
    total = 0.0
    for name, weight in SCORE_WEIGHTS.items():
        total += clamp(sub_scores[name].value, 0.0, 100.0) * weight
    return clamp(total, 0.0, 100.0)


def health_status(score: float) -> str:
    for floor, label in HEALTH_STATUS_BANDS:
        if score >= floor:
            return label
    return "Critical"


def strongest_area(sub_scores: Dict[str, ScoreSource]) -> str:
    names = list(SCORE_WEIGHTS.keys())
    return max(names, key=lambda name: (sub_scores[name].value, -names.index(name)))


def weakest_area(sub_scores: Dict[str, ScoreSource]) -> str:
    names = list(SCORE_WEIGHTS.keys())
    return min(names, key=lambda name: (sub_scores[name].value, names.index(name)))


def health_recommendations(budget_adherence: float, spending_consistency: float) -> List[str]:
    recommendations: List[str] = []
    if budget_adherence < 70:
        recommendations.append("Consider reviewing and adjusting your budget allocation")
    if spending_consistency < 60:
        recommendations.append("Track daily expenses more closely to improve spending control")
    return recommendations


@dataclass(frozen=True)
class HealthScoreResult:
    sub_scores: Dict[str, ScoreSource]
    overall: float
    total_expenses: float
    total_budget: float
    period: str
    score_date: date

    @property
    def recommendations(self) -> List[str]:
        return health_recommendations(
            self.sub_scores["budget_adherence"].value,
            self.sub_scores["spending_consistency"].value,
        )

    def score_sources(self) -> Dict[str, Dict[str, Any]]:
        sources: Dict[str, Dict[str, Any]] = {}
        for name, score in self.sub_scores.items():
            entry: Dict[str, Any] = {"source": score.source, "value": round(score.value, 2)}
            if isinstance(score, UnavailableScore) and score.reason:
                entry["reason"] = score.reason
            sources[name] = entry
        return sources

    def breakdown(self) -> Dict[str, Any]:
        return {
            "total_expenses": round(self.total_expenses, 2),
            "total_budget": round(self.total_budget, 2),
            "budget_remaining": round(self.total_budget - self.total_expenses, 2),
            "period": self.period,
            "score_sources": self.score_sources(),
        }

    def to_dict(self) -> Dict[str, Any]:
        overall = round(self.overall, 2)
        return {
            "overall_score": overall,
            "spending_consistency_score": round(self.sub_scores["spending_consistency"].value, 2),
            "budget_adherence_score": round(self.sub_scores["budget_adherence"].value, 2),
            "savings_rate_score": round(self.sub_scores["savings_rate"].value, 2),
            "category_balance_score": round(self.sub_scores["category_balance"].value, 2),
            "health_status": health_status(overall),
            "strongest_area": strongest_area(self.sub_scores),
            "weakest_area": weakest_area(self.sub_scores),
            "score_breakdown": self.breakdown(),
            "recommendations": self.recommendations,
            "score_date": self.score_date.isoformat(),
        }


def compute_health_score(
    total_expenses: float,
    total_budget: float,
    *,
    period: str,
    score_date: date,
) -> HealthScoreResult:
    sub_scores: Dict[str, ScoreSource] = {
        "spending_consistency": spending_consistency_score(total_expenses, total_budget),
        "budget_adherence": budget_adherence_score(total_expenses, total_budget),
        "savings_rate": savings_rate_score(),
        "category_balance": category_balance_score(),
    }
    return HealthScoreResult(
        sub_scores=sub_scores,
        overall=overall_score(sub_scores),
        total_expenses=total_expenses,
        total_budget=total_budget,
        period=period,
        score_date=score_date,
    )
