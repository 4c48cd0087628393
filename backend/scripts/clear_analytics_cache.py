from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.append(str(REPO_ROOT))

from backend.app.db import SessionLocal  # noqa: E402
from backend.app.services.analytics_cache_service import AnalyticsCacheService  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete analytics cache entries.")
    parser.add_argument("--user-id", help="Drop every cached bundle for this user, expired or not.")
    parser.add_argument("--verbose", action="store_true", help="Log cache operations.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    db = SessionLocal()
    try:
        cache = AnalyticsCacheService(db)
        if args.user_id:
            removed = cache.invalidate_user(args.user_id)
            print(f"Removed {removed} cache entries for user {args.user_id}")
        else:
            removed = cache.clear_expired()
            print(f"Removed {removed} expired cache entries")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
