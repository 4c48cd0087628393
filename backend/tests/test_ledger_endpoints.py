from __future__ import annotations

import uuid

from sqlalchemy import select

from backend.app.analytics.keys import CacheKey
from backend.app.models import AnalyticsCache, utcnow
from backend.app.services.analytics_cache_service import AnalyticsCacheService


def _create_user(api_client, name="Ledger"):
    email = f"{uuid.uuid4().hex[:10]}@example.com"
    resp = api_client.post("/api/ledger/users", json={"email": email, "name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_user_create_and_duplicate_email(api_client):
    user = _create_user(api_client)

    dup = api_client.post("/api/ledger/users", json={"email": user["email"].upper(), "name": "Again"})
    assert dup.status_code == 409

    fetched = api_client.get(f"/api/ledger/users/{user['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["email"] == user["email"]
    assert api_client.get("/api/ledger/users/missing").status_code == 404


def test_expense_and_budget_lifecycle(api_client):
    user = _create_user(api_client)
    category = api_client.post("/api/ledger/categories", json={"name": "Dining", "user_id": user["id"]}).json()
    today = utcnow().date().isoformat()

    created = api_client.post(
        "/api/ledger/expenses",
        json={
            "user_id": user["id"],
            "amount": 42.5,
            "date": today,
            "description": "Dinner",
            "category_id": category["id"],
        },
    )
    assert created.status_code == 201, created.text

    listed = api_client.get("/api/ledger/expenses", params={"user_id": user["id"]}).json()
    assert [row["amount"] for row in listed] == [42.5]

    budget = api_client.post(
        "/api/ledger/budgets",
        json={"user_id": user["id"], "amount": 300, "start_date": today, "end_date": today},
    )
    assert budget.status_code == 201, budget.text
    assert budget.json()["warning_threshold"] == 80.0

    deleted = api_client.delete(
        f"/api/ledger/expenses/{created.json()['id']}", params={"user_id": user["id"]}
    )
    assert deleted.status_code == 204
    assert api_client.get("/api/ledger/expenses", params={"user_id": user["id"]}).json() == []


def test_ledger_validation(api_client):
    user = _create_user(api_client)

    negative = api_client.post(
        "/api/ledger/expenses",
        json={"user_id": user["id"], "amount": -5, "date": "2024-05-01"},
    )
    assert negative.status_code == 422

    backwards = api_client.post(
        "/api/ledger/budgets",
        json={"user_id": user["id"], "amount": 100, "start_date": "2024-05-31", "end_date": "2024-05-01"},
    )
    assert backwards.status_code == 400

    unknown = api_client.post(
        "/api/ledger/expenses",
        json={"user_id": "nobody", "amount": 5, "date": "2024-05-01"},
    )
    assert unknown.status_code == 404


def test_ledger_write_invalidates_cached_bundles(api_client, sqlite_session):
    user = _create_user(api_client)
    AnalyticsCacheService(sqlite_session).set(CacheKey.for_bundle(user["id"], "monthly"), {"stale": True}, 60)

    resp = api_client.post(
        "/api/ledger/expenses",
        json={"user_id": user["id"], "amount": 12, "date": utcnow().date().isoformat()},
    )
    assert resp.status_code == 201

    rows = sqlite_session.execute(select(AnalyticsCache).where(AnalyticsCache.user_id == user["id"])).scalars().all()
    assert rows == []
