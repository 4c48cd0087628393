from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional


@dataclass(frozen=True)
class ExpenseLine:
    expense_id: str
    amount: float
    date: date
    category_id: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class BudgetLine:
    budget_id: str
    amount: float
    start_date: date
    end_date: date
    category_id: Optional[str] = None
    name: Optional[str] = None
    warning_threshold: float = 80.0
    danger_threshold: float = 100.0


@dataclass(frozen=True)
class MonthlyTotal:
    month: str  # "YYYY-MM"
    total: float

    def to_dict(self) -> dict:
        return {"month": self.month, "total": round(self.total, 2)}


def line_from_expense(expense: Any) -> ExpenseLine:
    amount = float(expense.amount or 0.0)
    if amount < 0:
        raise ValueError(f"expense {expense.id} has a negative amount: {amount}")
    return ExpenseLine(
        expense_id=str(expense.id),
        amount=amount,
        date=expense.date,
        category_id=getattr(expense, "category_id", None),
        description=getattr(expense, "description", None) or "",
    )


def line_from_budget(budget: Any) -> BudgetLine:
    return BudgetLine(
        budget_id=str(budget.id),
        amount=float(budget.amount or 0.0),
        start_date=budget.start_date,
        end_date=budget.end_date,
        category_id=getattr(budget, "category_id", None),
        name=getattr(budget, "name", None),
        warning_threshold=float(getattr(budget, "warning_threshold", None) or 80.0),
        danger_threshold=float(getattr(budget, "danger_threshold", None) or 100.0),
    )


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"
