from __future__ import annotations

import logging
import datetime as dt
from datetime import date, datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.api.deps import require_user
from backend.app.db import get_db
from backend.app.models import Budget, Category, Expense, User
from backend.app.services.analytics_cache_service import AnalyticsCacheService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


class UserCreateIn(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=200)


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    created_at: datetime


class CategoryCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    user_id: Optional[str] = None


class CategoryOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str


class ExpenseCreateIn(BaseModel):
    user_id: str
    amount: float = Field(ge=0)
    date: dt.date
    description: str = Field(default="", max_length=255)
    category_id: Optional[str] = None


class ExpenseOut(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    date: dt.date
    description: str


class BudgetCreateIn(BaseModel):
    user_id: str
    amount: float = Field(gt=0)
    start_date: date
    end_date: date
    period: Literal["weekly", "monthly", "yearly", "custom"] = "monthly"
    name: Optional[str] = Field(default=None, max_length=120)
    category_id: Optional[str] = None
    warning_threshold: float = Field(default=80.0, ge=0)
    danger_threshold: float = Field(default=100.0, ge=0)


class BudgetOut(BaseModel):
    id: str
    user_id: str
    category_id: Optional[str] = None
    name: Optional[str] = None
    amount: float
    period: str
    start_date: date
    end_date: date
    warning_threshold: float
    danger_threshold: float


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name, created_at=user.created_at)


def _category_out(category: Category) -> CategoryOut:
    return CategoryOut(id=category.id, user_id=category.user_id, name=category.name)


def _expense_out(expense: Expense) -> ExpenseOut:
    return ExpenseOut(
        id=expense.id,
        user_id=expense.user_id,
        category_id=expense.category_id,
        amount=expense.amount,
        date=expense.date,
        description=expense.description,
    )


def _budget_out(budget: Budget) -> BudgetOut:
    return BudgetOut(
        id=budget.id,
        user_id=budget.user_id,
        category_id=budget.category_id,
        name=budget.name,
        amount=budget.amount,
        period=budget.period,
        start_date=budget.start_date,
        end_date=budget.end_date,
        warning_threshold=budget.warning_threshold,
        danger_threshold=budget.danger_threshold,
    )


def _require_category(db: Session, category_id: Optional[str], user_id: str) -> None:
    if not category_id:
        return
    category = db.get(Category, category_id)
    if not category or (category.user_id is not None and category.user_id != user_id):
        raise HTTPException(status_code=404, detail="category not found")


def _invalidate_analytics(db: Session, user_id: str) -> None:
    removed = AnalyticsCacheService(db).invalidate_user(user_id)
    if removed:
        logger.info("Ledger write invalidated %s analytics cache rows user_id=%s", removed, user_id)


# -------------------------
# Users
# -------------------------

@router.post("/users", response_model=UserOut, status_code=201)
def create_user(payload: UserCreateIn, db: Session = Depends(get_db)):
    user = User(email=payload.email.strip().lower(), name=payload.name.strip())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="email already registered")
    db.refresh(user)
    return _user_out(user)


@router.get("/users", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db)):
    rows = db.execute(select(User).order_by(User.created_at.asc(), User.email.asc())).scalars().all()
    return [_user_out(row) for row in rows]


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return _user_out(require_user(db, user_id))


# -------------------------
# Categories
# -------------------------

@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreateIn, db: Session = Depends(get_db)):
    if payload.user_id:
        require_user(db, payload.user_id)
    category = Category(user_id=payload.user_id, name=payload.name.strip())
    db.add(category)
    db.commit()
    db.refresh(category)
    return _category_out(category)


@router.get("/categories", response_model=List[CategoryOut])
def list_categories(
    user_id: Optional[str] = Query(None, description="Include this user's categories alongside shared ones"),
    db: Session = Depends(get_db),
):
    query = select(Category)
    if user_id:
        query = query.where(or_(Category.user_id.is_(None), Category.user_id == user_id))
    else:
        query = query.where(Category.user_id.is_(None))
    rows = db.execute(query.order_by(Category.name.asc())).scalars().all()
    return [_category_out(row) for row in rows]


# -------------------------
# Expenses
# -------------------------

@router.post("/expenses", response_model=ExpenseOut, status_code=201)
def create_expense(payload: ExpenseCreateIn, db: Session = Depends(get_db)):
    require_user(db, payload.user_id)
    _require_category(db, payload.category_id, payload.user_id)
    expense = Expense(
        user_id=payload.user_id,
        category_id=payload.category_id,
        amount=payload.amount,
        date=payload.date,
        description=payload.description.strip(),
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    _invalidate_analytics(db, payload.user_id)
    return _expense_out(expense)


@router.get("/expenses", response_model=List[ExpenseOut])
def list_expenses(
    user_id: str = Query(...),
    start_date: Optional[date] = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    limit: int = Query(500, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    require_user(db, user_id)
    query = select(Expense).where(Expense.user_id == user_id)
    if start_date:
        query = query.where(Expense.date >= start_date)
    if end_date:
        query = query.where(Expense.date <= end_date)
    rows = db.execute(query.order_by(Expense.date.desc(), Expense.id.asc()).limit(limit)).scalars().all()
    return [_expense_out(row) for row in rows]


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense(expense_id: str, user_id: str = Query(...), db: Session = Depends(get_db)):
    expense = db.get(Expense, expense_id)
    if not expense or expense.user_id != user_id:
        raise HTTPException(status_code=404, detail="expense not found")
    db.delete(expense)
    db.commit()
    _invalidate_analytics(db, user_id)


# -------------------------
# Budgets
# -------------------------

@router.post("/budgets", response_model=BudgetOut, status_code=201)
def create_budget(payload: BudgetCreateIn, db: Session = Depends(get_db)):
    require_user(db, payload.user_id)
    _require_category(db, payload.category_id, payload.user_id)
    if payload.end_date < payload.start_date:
        raise HTTPException(status_code=400, detail="end_date must be on or after start_date")
    budget = Budget(
        user_id=payload.user_id,
        category_id=payload.category_id,
        name=payload.name,
        amount=payload.amount,
        period=payload.period,
        start_date=payload.start_date,
        end_date=payload.end_date,
        warning_threshold=payload.warning_threshold,
        danger_threshold=payload.danger_threshold,
    )
    db.add(budget)
    db.commit()
    db.refresh(budget)
    _invalidate_analytics(db, payload.user_id)
    return _budget_out(budget)


@router.get("/budgets", response_model=List[BudgetOut])
def list_budgets(user_id: str = Query(...), db: Session = Depends(get_db)):
    require_user(db, user_id)
    rows = (
        db.execute(
            select(Budget)
            .where(Budget.user_id == user_id)
            .order_by(Budget.start_date.asc(), Budget.id.asc())
        )
        .scalars()
        .all()
    )
    return [_budget_out(row) for row in rows]


@router.delete("/budgets/{budget_id}", status_code=204)
def delete_budget(budget_id: str, user_id: str = Query(...), db: Session = Depends(get_db)):
    budget = db.get(Budget, budget_id)
    if not budget or budget.user_id != user_id:
        raise HTTPException(status_code=404, detail="budget not found")
    db.delete(budget)
    db.commit()
    _invalidate_analytics(db, user_id)
