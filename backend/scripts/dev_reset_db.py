from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.append(str(REPO_ROOT))

from backend.app.analytics.periods import month_bounds, shift_months  # noqa: E402

logger = logging.getLogger(__name__)

ALEMBIC_INI = REPO_ROOT / "alembic.ini"

DEMO_EMAIL = "demo@example.com"
DEMO_CATEGORIES = ("Groceries", "Dining", "Transport", "Utilities", "Entertainment", "Subscriptions")
DEMO_MONTHLY_BUDGET = 1500.0

# (category, description, amount, day of month), repeated for each demo month.
DEMO_MONTHLY_EXPENSES = (
    ("Subscriptions", "Streaming plan", 15.99, 5),
    ("Utilities", "Power and water", 120.0, 12),
    ("Groceries", "Weekly groceries", 85.0, 8),
    ("Groceries", "Weekly groceries", 92.5, 22),
    ("Dining", "Dinner out", 48.0, 17),
)
DEMO_MONTHS = 4


class ResetError(RuntimeError):
    pass


def resolve_database_url(cli_url: Optional[str] = None) -> str:
    if cli_url:
        return cli_url
    env_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL")
    if env_url:
        return env_url
    ini_url = Config(str(ALEMBIC_INI)).get_main_option("sqlalchemy.url")
    if not ini_url:
        raise ResetError("No DATABASE_URL or sqlalchemy.url configured.")
    return ini_url


def _sqlite_path(database_url: str) -> Optional[Path]:
    url = make_url(database_url)
    if not url.get_backend_name().startswith("sqlite"):
        raise ResetError(f"Only sqlite dev databases can be reset, got {url.get_backend_name()}")
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def seed_demo_ledger(database_url: str, today: Optional[date] = None) -> str:
    """Create a demo user with a few months of repeating expenses and one all-category budget.

    The repeating lines give the analytics dashboard a recurring pattern and a
    month-over-month trend to show straight after a reset.
    """
    os.environ.setdefault("DATABASE_URL", database_url)
    from backend.app.models import Budget, Category, Expense, User

    today = today or date.today()
    engine = create_engine(database_url, future=True)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)
    session = Session()
    try:
        user = User(email=DEMO_EMAIL, name="Demo User")
        categories = {name: Category(name=name) for name in DEMO_CATEGORIES}
        session.add(user)
        session.add_all(categories.values())
        session.flush()

        for offset in range(DEMO_MONTHS, 0, -1):
            month = shift_months(today, -offset)
            for category, description, amount, day in DEMO_MONTHLY_EXPENSES:
                session.add(
                    Expense(
                        user_id=user.id,
                        category_id=categories[category].id,
                        amount=amount,
                        date=date(month.year, month.month, day),
                        description=description,
                    )
                )

        start, end = month_bounds(today)
        session.add(
            Budget(user_id=user.id, name="Monthly spending", amount=DEMO_MONTHLY_BUDGET, start_date=start, end_date=end)
        )
        session.commit()
        logger.info("Seeded demo ledger user_id=%s months=%s", user.id, DEMO_MONTHS)
        return user.id
    finally:
        session.close()
        engine.dispose()


def reset_database(database_url: str, *, seed: bool = False, today: Optional[date] = None) -> Optional[str]:
    """Drop the sqlite file, migrate to head and optionally seed. Returns the demo user id when seeded."""
    db_path = _sqlite_path(database_url)
    if db_path is not None and db_path.exists():
        db_path.unlink()
        logger.info("Removed %s", db_path)

    config = Config(str(ALEMBIC_INI))
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")

    if seed:
        return seed_demo_ledger(database_url, today)
    return None


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Reset the sqlite development database.")
    parser.add_argument("--url", help="Override the database URL.")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive reset.")
    parser.add_argument("--seed", action="store_true", help="Seed a demo user with a sample ledger.")
    parser.add_argument("--verbose", action="store_true", help="Log reset steps.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if not args.yes:
        print("Refusing to reset database without --yes.")
        return 1

    try:
        database_url = resolve_database_url(args.url)
        user_id = reset_database(database_url, seed=args.seed)
    except ResetError as exc:
        print(exc)
        return 1

    if user_id:
        print(f"Seeded demo user id={user_id} email={DEMO_EMAIL}")
    print(f"Database reset: {make_url(database_url).render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
