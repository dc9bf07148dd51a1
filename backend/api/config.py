from __future__ import annotations

import logging
import os


def heartbeat_interval_s() -> float:
    raw = (os.getenv("BHUVAN_HEARTBEAT_S") or "").strip()
    if raw:
        try:
            return max(0.01, float(raw))
        except ValueError:
            pass
    return 10.0


def query_timeout_s() -> float | None:
    """
    Optional bound on the initial query+merge pass. Unset or <= 0 means no timeout.
    """
    raw = (os.getenv("BHUVAN_QUERY_TIMEOUT_S") or "").strip()
    if not raw:
        return None
    try:
        v = float(raw)
    except ValueError:
        return None
    return v if v > 0 else None


def cors_origins() -> list[str]:
    raw = os.getenv("BHUVAN_CORS_ORIGINS") or "*"
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


def log_level() -> int:
    name = (os.getenv("BHUVAN_LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO
