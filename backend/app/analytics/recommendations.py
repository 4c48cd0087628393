from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

COST_REDUCTION_SHARE = 0.3
RECURRING_BUDGET_HEADROOM = 1.1


def recommendation_for(
    pattern_type: str,
    pattern_name: str,
    impact_amount: Optional[float],
    pattern_data: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """Map one stored pattern to a suggestion; types without a rule map to None."""
    impact = float(impact_amount or 0.0)
    data = pattern_data or {}

    if pattern_type == "category_spike":
        return {
            "type": "cost_reduction",
            "category": data.get("category") or "Unknown",
            "message": f"Consider reducing spending in {pattern_name}",
            "potential_savings": round(impact * COST_REDUCTION_SHARE, 2),
        }
    if pattern_type == "monthly_recurring":
        return {
            "type": "budget_optimization",
            "message": f"Set up automatic budget for recurring {data.get('description') or pattern_name}",
            "suggested_amount": round(impact * RECURRING_BUDGET_HEADROOM, 2),
        }
    return None


def build_recommendations(patterns: Iterable[Any]) -> List[Dict[str, Any]]:
    recommendations: List[Dict[str, Any]] = []
    for pattern in patterns:
        item = recommendation_for(
            pattern.pattern_type,
            pattern.pattern_name,
            pattern.impact_amount,
            pattern.pattern_data,
        )
        if item is not None:
            recommendations.append(item)
    return recommendations
