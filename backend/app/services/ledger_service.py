from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.analytics.errors import DataAccessError
from backend.app.analytics.lines import (
    BudgetLine,
    ExpenseLine,
    MonthlyTotal,
    line_from_budget,
    line_from_expense,
    month_key,
)
from backend.app.models import Budget, Category, Expense

logger = logging.getLogger(__name__)


def _data_access_error(stage: str, user_id: Optional[str], exc: Exception) -> DataAccessError:
    logger.warning("Ledger query failed stage=%s user_id=%s: %s", stage, user_id, exc)
    return DataAccessError(str(exc), stage=stage, user_id=user_id)


def list_expenses(db: Session, user_id: str, date_from: date) -> List[ExpenseLine]:
    stage = "ledger.list_expenses"
    try:
        rows = (
            db.execute(
                select(Expense)
                .where(Expense.user_id == user_id, Expense.date >= date_from)
                .order_by(Expense.date.asc(), Expense.id.asc())
            )
            .scalars()
            .all()
        )
        return [line_from_expense(row) for row in rows]
    except (SQLAlchemyError, ValueError) as exc:
        raise _data_access_error(stage, user_id, exc) from exc


def list_budgets(db: Session, user_id: str, start_date_from: Optional[date] = None) -> List[BudgetLine]:
    stage = "ledger.list_budgets"
    query = select(Budget).where(Budget.user_id == user_id)
    if start_date_from is not None:
        query = query.where(Budget.start_date >= start_date_from)
    try:
        rows = db.execute(query.order_by(Budget.start_date.asc(), Budget.id.asc())).scalars().all()
        return [line_from_budget(row) for row in rows]
    except SQLAlchemyError as exc:
        raise _data_access_error(stage, user_id, exc) from exc


def get_category(db: Session, category_id: Optional[str]) -> Optional[Category]:
    if not category_id:
        return None
    try:
        return db.get(Category, category_id)
    except SQLAlchemyError as exc:
        raise _data_access_error("ledger.get_category", None, exc) from exc


def category_name_resolver(db: Session) -> Callable[[Optional[str]], Optional[str]]:
    names: Dict[str, Optional[str]] = {}

    def _resolve(category_id: Optional[str]) -> Optional[str]:
        if not category_id:
            return None
        if category_id not in names:
            category = get_category(db, category_id)
            names[category_id] = category.name if category else None
        return names[category_id]

    return _resolve


def sum_expenses_between(
    db: Session,
    user_id: str,
    start: date,
    end: date,
    *,
    category_id: Optional[str] = None,
    all_categories: bool = True,
) -> float:
    """Sum of expenses dated within [start, end]; narrowed to one category unless all_categories."""
    stage = "ledger.sum_expenses"
    query = select(func.coalesce(func.sum(Expense.amount), 0.0)).where(
        Expense.user_id == user_id,
        Expense.date >= start,
        Expense.date <= end,
    )
    if not all_categories:
        query = query.where(Expense.category_id == category_id)
    try:
        return float(db.execute(query).scalar() or 0.0)
    except SQLAlchemyError as exc:
        raise _data_access_error(stage, user_id, exc) from exc


def monthly_totals(db: Session, user_id: str, date_from: date) -> List[MonthlyTotal]:
    """Per-month sums in chronological order; months without expenses are omitted."""
    stage = "ledger.monthly_totals"
    try:
        rows = db.execute(
            select(Expense.date, Expense.amount).where(
                Expense.user_id == user_id,
                Expense.date >= date_from,
            )
        ).all()
    except SQLAlchemyError as exc:
        raise _data_access_error(stage, user_id, exc) from exc

    totals: Dict[str, float] = {}
    for expense_date, amount in rows:
        key = month_key(expense_date)
        totals[key] = totals.get(key, 0.0) + float(amount or 0.0)
    return [MonthlyTotal(month=key, total=totals[key]) for key in sorted(totals.keys())]
