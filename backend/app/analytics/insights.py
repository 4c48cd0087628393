from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from backend.app.analytics.lines import BudgetLine, ExpenseLine
from backend.app.analytics.patterns import CategoryNameResolver

TOP_CATEGORY_LIMIT = 5
TREND_INSIGHT_TYPE = "trend_analysis"
TREND_INSIGHT_CONFIDENCE = 85.0


def top_categories(
    lines: Iterable[ExpenseLine],
    resolve_name: CategoryNameResolver,
    limit: int = TOP_CATEGORY_LIMIT,
) -> List[Dict[str, Any]]:
    totals: Dict[Optional[str], float] = {}
    for line in lines:
        totals[line.category_id] = totals.get(line.category_id, 0.0) + line.amount

    rows = []
    for category_id, total in totals.items():
        name = (resolve_name(category_id) if category_id else None) or "Uncategorized"
        rows.append({"category_id": category_id, "name": name, "total": round(total, 2)})
    rows.sort(key=lambda row: (-row["total"], row["name"], row["category_id"] or ""))
    return rows[:limit]


def spending_trend(current_month: float, last_month: float) -> Dict[str, Any]:
    trend = (current_month - last_month) / last_month * 100.0 if last_month > 0 else 0.0
    return {
        "current_month": round(current_month, 2),
        "last_month": round(last_month, 2),
        "trend_percentage": round(trend, 2),
        # A flat month reports "decreasing"; existing dashboards depend on it.
        "trend_direction": "increasing" if trend > 0 else "decreasing",
    }


def budget_status(utilization: float, budget: BudgetLine) -> str:
    if utilization >= budget.danger_threshold:
        return "danger"
    if utilization >= budget.warning_threshold:
        return "warning"
    return "ok"


def budget_performance_row(budget: BudgetLine, spent: float, category_name: Optional[str]) -> Dict[str, Any]:
    if budget.category_id is None:
        label = "All categories"
    else:
        label = category_name or "Unknown"
    utilization = spent / budget.amount * 100.0 if budget.amount > 0 else 0.0
    return {
        "budget_id": budget.budget_id,
        "name": budget.name,
        "category_id": budget.category_id,
        "category": label,
        "start_date": budget.start_date.isoformat(),
        "end_date": budget.end_date.isoformat(),
        "budgeted": round(budget.amount, 2),
        "spent": round(spent, 2),
        "remaining": round(budget.amount - spent, 2),
        "utilization": round(utilization, 2),
        "status": budget_status(utilization, budget),
    }


def insight_title(today: date) -> str:
    return f"Monthly Analytics for {today.strftime('%B %Y')}"


def insight_summary(insights: Dict[str, Any]) -> str:
    summary = "Financial analysis complete. "
    top = insights.get("top_categories") or []
    if top:
        summary += f"Top spending category: {top[0]['name']} (${top[0]['total']:.2f}). "
    return summary.strip()
