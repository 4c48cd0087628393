from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_MINUTES = 60
DEFAULT_HIGH_CONFIDENCE_THRESHOLD = 80.0


def _env_number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using default %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r; using default %s", name, raw, default)
        return default
    return value


def analytics_cache_ttl_minutes() -> int:
    return int(_env_number("ANALYTICS_CACHE_TTL_MINUTES", DEFAULT_CACHE_TTL_MINUTES))


def high_confidence_threshold() -> float:
    value = _env_number("ANALYTICS_HIGH_CONFIDENCE_THRESHOLD", DEFAULT_HIGH_CONFIDENCE_THRESHOLD)
    return min(value, 100.0)


def cors_allow_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS")
    if raw is None:
        origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not be empty.")
    return origins
