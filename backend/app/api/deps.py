# backend/app/api/deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from backend.app.analytics.errors import AnalyticsError
from backend.app.db import get_db
from backend.app.models import User
from backend.app.services.analytics_service import AnalyticsService


def require_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")
    return user


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    """
    One engine per request, bound to the request's session.

    db must be injected via Depends(get_db) so FastAPI doesn't treat Session
    as a Pydantic field.
    """
    return AnalyticsService(db)


def analytics_http_error(exc: AnalyticsError) -> HTTPException:
    return HTTPException(status_code=500, detail={"stage": exc.stage, "message": exc.message})
