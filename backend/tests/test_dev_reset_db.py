from __future__ import annotations

from datetime import date, datetime
import os
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[2]))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.orm import sessionmaker

from backend.app.models import Budget, Expense, User
from backend.app.services.analytics_service import AnalyticsService
from backend.scripts import dev_reset_db


TODAY = date(2024, 6, 15)


def _session(database_url):
    engine = create_engine(database_url, future=True)
    return engine, sessionmaker(bind=engine, future=True, expire_on_commit=False)()


def test_reset_replaces_existing_file_and_migrates(tmp_path):
    db_path = tmp_path / "dev.db"
    db_path.write_text("not a database")
    database_url = f"sqlite:///{db_path}"

    assert dev_reset_db.reset_database(database_url) is None

    engine = create_engine(database_url, future=True)
    tables = set(inspect(engine).get_table_names())
    engine.dispose()
    assert {"users", "expenses", "budgets", "spending_patterns", "analytics_cache", "alembic_version"} <= tables


def test_seeded_ledger_feeds_the_analytics_engine(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'seeded.db'}"

    user_id = dev_reset_db.reset_database(database_url, seed=True, today=TODAY)

    engine, session = _session(database_url)
    try:
        assert session.execute(select(User.email)).scalars().all() == [dev_reset_db.DEMO_EMAIL]
        expense_count = session.execute(select(func.count()).select_from(Expense)).scalar()
        assert expense_count == dev_reset_db.DEMO_MONTHS * len(dev_reset_db.DEMO_MONTHLY_EXPENSES)
        budget = session.execute(select(Budget)).scalars().one()
        assert (budget.start_date, budget.end_date) == (date(2024, 6, 1), date(2024, 6, 30))

        service = AnalyticsService(
            session,
            clock=lambda: datetime(2024, 6, 15, 12, 0),
            cache_ttl_minutes=60,
            high_confidence_threshold=80.0,
        )
        patterns = service.detect_spending_patterns(user_id, "yearly")
        assert "Streaming plan (16)" in [p["name"] for p in patterns["recurring"]]
    finally:
        session.close()
        engine.dispose()


def test_main_requires_confirmation_and_sqlite(tmp_path, capsys):
    assert dev_reset_db.main(["--url", f"sqlite:///{tmp_path / 'x.db'}"]) == 1
    assert not (tmp_path / "x.db").exists()

    assert dev_reset_db.main(["--url", "postgresql://dev@localhost/spendwise", "--yes"]) == 1
    assert "Only sqlite" in capsys.readouterr().out


def test_main_resets_and_seeds(tmp_path, capsys):
    db_path = tmp_path / "cli.db"

    assert dev_reset_db.main(["--url", f"sqlite:///{db_path}", "--yes", "--seed"]) == 0

    out = capsys.readouterr().out
    assert "Seeded demo user" in out
    assert db_path.exists()
