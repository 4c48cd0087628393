"""create ledger and analytics tables

Revision ID: 3c9e1a7b5d20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3c9e1a7b5d20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if not _has_table("categories"):
        op.create_table(
            "categories",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=True),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_categories_user_id", "categories", ["user_id"], unique=False)

    if not _has_table("expenses"):
        op.create_table(
            "expenses",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("category_id", sa.String(length=36), nullable=True),
            sa.Column("amount", sa.Float(), nullable=False),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("description", sa.String(length=255), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_expenses_user_date", "expenses", ["user_id", "date"], unique=False)
        op.create_index("ix_expenses_user_category", "expenses", ["user_id", "category_id"], unique=False)

    if not _has_table("budgets"):
        op.create_table(
            "budgets",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("category_id", sa.String(length=36), nullable=True),
            sa.Column("name", sa.String(length=120), nullable=True),
            sa.Column("amount", sa.Float(), nullable=False),
            sa.Column("period", sa.String(length=16), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("warning_threshold", sa.Float(), nullable=False),
            sa.Column("danger_threshold", sa.Float(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_budgets_user_start", "budgets", ["user_id", "start_date"], unique=False)

    if not _has_table("spending_patterns"):
        op.create_table(
            "spending_patterns",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("pattern_type", sa.String(length=32), nullable=False),
            sa.Column("pattern_name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("pattern_data", sa.JSON(), nullable=False),
            sa.Column("frequency_days", sa.Float(), nullable=False),
            sa.Column("confidence_score", sa.Float(), nullable=False),
            sa.Column("impact_amount", sa.Float(), nullable=True),
            sa.Column("first_detected", sa.Date(), nullable=False),
            sa.Column("last_detected", sa.Date(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "pattern_type", "pattern_name", name="uq_spending_pattern_identity"),
        )
        op.create_index(
            "ix_spending_patterns_user_active", "spending_patterns", ["user_id", "is_active"], unique=False
        )
        op.create_index("ix_spending_patterns_confidence", "spending_patterns", ["confidence_score"], unique=False)

    if not _has_table("financial_health_scores"):
        op.create_table(
            "financial_health_scores",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("overall_score", sa.Float(), nullable=False),
            sa.Column("budget_adherence_score", sa.Float(), nullable=False),
            sa.Column("spending_consistency_score", sa.Float(), nullable=False),
            sa.Column("savings_rate_score", sa.Float(), nullable=False),
            sa.Column("category_balance_score", sa.Float(), nullable=False),
            sa.Column("score_breakdown", sa.JSON(), nullable=False),
            sa.Column("recommendations", sa.JSON(), nullable=False),
            sa.Column("score_date", sa.Date(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "score_date", name="uq_health_score_user_date"),
        )
        op.create_index("ix_health_scores_overall", "financial_health_scores", ["overall_score"], unique=False)

    if not _has_table("user_insights"):
        op.create_table(
            "user_insights",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("insight_type", sa.String(length=32), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("data", sa.JSON(), nullable=False),
            sa.Column("confidence_score", sa.Float(), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False),
            sa.Column("generated_at", sa.DateTime(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "insight_type", name="uq_user_insight_type"),
        )
        op.create_index("ix_user_insights_user_read", "user_insights", ["user_id", "is_read"], unique=False)
        op.create_index("ix_user_insights_generated_at", "user_insights", ["generated_at"], unique=False)

    if not _has_table("analytics_cache"):
        op.create_table(
            "analytics_cache",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("cache_key", sa.String(length=200), nullable=False),
            sa.Column("cached_data", sa.JSON(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "cache_key", name="uq_analytics_cache_user_key"),
        )
        op.create_index("ix_analytics_cache_expires_at", "analytics_cache", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_analytics_cache_expires_at", table_name="analytics_cache")
    op.drop_table("analytics_cache")
    op.drop_index("ix_user_insights_generated_at", table_name="user_insights")
    op.drop_index("ix_user_insights_user_read", table_name="user_insights")
    op.drop_table("user_insights")
    op.drop_index("ix_health_scores_overall", table_name="financial_health_scores")
    op.drop_table("financial_health_scores")
    op.drop_index("ix_spending_patterns_confidence", table_name="spending_patterns")
    op.drop_index("ix_spending_patterns_user_active", table_name="spending_patterns")
    op.drop_table("spending_patterns")
    op.drop_index("ix_budgets_user_start", table_name="budgets")
    op.drop_table("budgets")
    op.drop_index("ix_expenses_user_category", table_name="expenses")
    op.drop_index("ix_expenses_user_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_categories_user_id", table_name="categories")
    op.drop_table("categories")
    op.drop_table("users")
