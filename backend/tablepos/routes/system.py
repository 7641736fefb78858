# backend/tablepos/routes/system.py
"""
Health and version endpoints (no authentication).

/health reports whether the key-value table answers, how many records of
each kind it holds, and whether the business configuration was bootstrapped.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy import func, select

from ..extensions import db
from ..models import KvEntry
from ..services import configuration_service
from ..services.session_service import SESSION_PREFIX
from tablepos.time_utils import utcnow

system_bp = Blueprint("system", __name__)

# Kinds reported by /health, by key prefix
COUNTED_KINDS = ("order", "payment", "cash_closing", "alert", "product", "table", "user_profile")


def _count_prefix(prefix: str) -> int:
    return db.session.execute(
        select(func.count())
        .select_from(KvEntry)
        .where(KvEntry.key.startswith(prefix, autoescape=True))
    ).scalar_one()


def check_store_health() -> dict:
    """Count records per kind; any database error marks the store unhealthy."""
    started = time.perf_counter()
    try:
        counts = {kind: _count_prefix(f"{kind}:") for kind in COUNTED_KINDS}
        counts["sessions"] = _count_prefix(SESSION_PREFIX)
        configured = configuration_service.has_configuration()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "error": "Database error",
        }

    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "records": counts,
        "configured": configured,
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: store reachable
    - 503: store unreachable
    """
    store = check_store_health()
    http_status = 200 if store["status"] == "healthy" else 503

    return {
        "status": store["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "store": store,
        }
    }, http_status


@system_bp.get("/version")
def version():
    return {
        "api_version": "1.0.0",
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "timezone": current_app.config["BUSINESS_TIMEZONE"],
        "server_time": utcnow().isoformat() + "Z",
    }
