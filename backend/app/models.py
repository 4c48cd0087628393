from __future__ import annotations

import uuid
import datetime as dt
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db import Base


# -------------------------
# Helpers
# -------------------------

def utcnow() -> dt.datetime:
    """Naive UTC timestamp; every DateTime column in this schema is naive UTC."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def uuid_str() -> str:
    return str(uuid.uuid4())


PATTERN_TYPES = (
    "daily_recurring",
    "weekly_recurring",
    "monthly_recurring",
    "seasonal",
    "category_spike",
    "anomaly",
)

INSIGHT_TYPES = (
    "spending_pattern",
    "forecast",
    "health_score",
    "budget_alert",
    "trend_analysis",
    "recommendation",
)


# -------------------------
# Ledger (owned by the CRUD layer, read-only to analytics)
# -------------------------

class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    expenses = relationship(
        "Expense",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    budgets = relationship(
        "Budget",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Category(Base):
    """
    Spending category. user_id is null for shared/system categories.
    """
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category", "user_id", "category_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="expenses")
    category = relationship("Category")


class Budget(Base):
    """
    Spending limit over [start_date, end_date].
    category_id null means the budget applies to all categories.
    """
    __tablename__ = "budgets"
    __table_args__ = (
        Index("ix_budgets_user_start", "user_id", "start_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    period: Mapped[str] = mapped_column(String(16), nullable=False, default="monthly")
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    warning_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=80.0)
    danger_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="budgets")
    category = relationship("Category")


# -------------------------
# Analytics (owned by the analytics engine)
# -------------------------

class SpendingPattern(Base):
    __tablename__ = "spending_patterns"
    __table_args__ = (
        UniqueConstraint("user_id", "pattern_type", "pattern_name", name="uq_spending_pattern_identity"),
        Index("ix_spending_patterns_user_active", "user_id", "is_active"),
        Index("ix_spending_patterns_confidence", "confidence_score"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    pattern_type: Mapped[str] = mapped_column(String(32), nullable=False)
    pattern_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pattern_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    frequency_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=75.0)
    impact_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    first_detected: Mapped[dt.date] = mapped_column(Date, nullable=False)
    last_detected: Mapped[dt.date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_recurring(self) -> bool:
        return self.pattern_type in ("daily_recurring", "weekly_recurring", "monthly_recurring")


class FinancialHealthScore(Base):
    __tablename__ = "financial_health_scores"
    __table_args__ = (
        UniqueConstraint("user_id", "score_date", name="uq_health_score_user_date"),
        Index("ix_health_scores_overall", "overall_score"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    budget_adherence_score: Mapped[float] = mapped_column(Float, nullable=False)
    spending_consistency_score: Mapped[float] = mapped_column(Float, nullable=False)
    savings_rate_score: Mapped[float] = mapped_column(Float, nullable=False)
    category_balance_score: Mapped[float] = mapped_column(Float, nullable=False)
    score_breakdown: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    recommendations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    score_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class UserInsight(Base):
    __tablename__ = "user_insights"
    __table_args__ = (
        UniqueConstraint("user_id", "insight_type", name="uq_user_insight_type"),
        Index("ix_user_insights_user_read", "user_id", "is_read"),
        Index("ix_user_insights_generated_at", "generated_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    insight_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    generated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class AnalyticsCache(Base):
    __tablename__ = "analytics_cache"
    __table_args__ = (
        UniqueConstraint("user_id", "cache_key", name="uq_analytics_cache_user_key"),
        Index("ix_analytics_cache_expires_at", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    cache_key: Mapped[str] = mapped_column(String(200), nullable=False)
    cached_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
