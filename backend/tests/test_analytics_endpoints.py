from __future__ import annotations

from datetime import timedelta
import uuid

from backend.app.models import utcnow


def _create_user(api_client):
    email = f"{uuid.uuid4().hex[:10]}@example.com"
    resp = api_client.post("/api/ledger/users", json={"email": email, "name": "Analyst"})
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _add_expense(api_client, user_id, amount, days_ago=0, description=""):
    when = (utcnow().date() - timedelta(days=days_ago)).isoformat()
    resp = api_client.post(
        "/api/ledger/expenses",
        json={"user_id": user_id, "amount": amount, "date": when, "description": description},
    )
    assert resp.status_code == 201, resp.text


def test_dashboard_requires_known_user(api_client):
    resp = api_client.get("/api/analytics/dashboard", params={"user_id": "does-not-exist"})
    assert resp.status_code == 404


def test_dashboard_for_empty_ledger(api_client):
    user_id = _create_user(api_client)

    resp = api_client.get("/api/analytics/dashboard", params={"user_id": user_id})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["financial_health"]["overall_score"] == 45.75
    assert body["recommendations"] == []
    assert body["forecasts"]["category_forecasts"]["status"] == "not_available"


def test_refresh_picks_up_new_expenses(api_client):
    user_id = _create_user(api_client)
    first = api_client.get("/api/analytics/dashboard", params={"user_id": user_id}).json()
    assert first["insights"]["top_categories"] == []

    _add_expense(api_client, user_id, 25.0, description="Coffee")
    refreshed = api_client.post("/api/analytics/refresh", params={"user_id": user_id})

    assert refreshed.status_code == 200
    assert refreshed.json()["insights"]["top_categories"][0]["total"] == 25.0


def test_health_returns_current_and_history(api_client):
    user_id = _create_user(api_client)

    resp = api_client.get("/api/analytics/health", params={"user_id": user_id})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["current"]["health_status"] == "Critical"
    assert len(body["history"]) == 1
    assert body["history"][0]["overall_score"] == 45.75
    assert body["warnings"] == []


def test_insights_listing_and_mark_read(api_client):
    user_id = _create_user(api_client)
    _add_expense(api_client, user_id, 60.0, description="Books")
    api_client.get("/api/analytics/dashboard", params={"user_id": user_id})

    listed = api_client.get("/api/analytics/insights", params={"user_id": user_id, "type": "trend_analysis"})
    assert listed.status_code == 200
    insights = listed.json()
    assert len(insights) == 1
    assert insights[0]["title"].startswith("Monthly Analytics for ")
    assert insights[0]["is_read"] is False

    read = api_client.post(f"/api/analytics/insights/{insights[0]['id']}/read", params={"user_id": user_id})
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    missing = api_client.post("/api/analytics/insights/nope/read", params={"user_id": user_id})
    assert missing.status_code == 404


def test_patterns_forecasts_and_recommendations(api_client):
    user_id = _create_user(api_client)
    for days_ago in (2, 33, 64):
        _add_expense(api_client, user_id, 15.0, days_ago=days_ago, description="Music plan")

    api_client.get("/api/analytics/dashboard", params={"user_id": user_id, "period": "yearly"})

    bad = api_client.get("/api/analytics/patterns", params={"user_id": user_id, "type": "bogus"})
    assert bad.status_code == 400

    forecasts = api_client.get("/api/analytics/forecasts", params={"user_id": user_id})
    assert forecasts.status_code == 200
    assert forecasts.json()["history_months"] >= 1

    recommendations = api_client.get("/api/analytics/recommendations", params={"user_id": user_id})
    assert recommendations.status_code == 200
    assert all(item["type"] in ("cost_reduction", "budget_optimization") for item in recommendations.json())
