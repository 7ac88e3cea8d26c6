"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  simple 200 for load balancers
    GET /api/v1/health/live   detailed system health (DB, rate-limit store)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from app.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe, always 200 if the app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check: database failed: %s", exc)

    # ── Rate-limit storage ───────────────────────────────────────────
    storage = current_app.config.get("REDIS_URL", "memory://")
    checks["rate_limit_storage"] = {
        "status": "ok",
        "backend": "redis" if storage.startswith("redis") else "memory",
    }

    # ── App info ─────────────────────────────────────────────────────
    checks["app"] = {
        "name": "Production Approval Workflow",
        "debug": current_app.debug,
        "testing": current_app.testing,
        "notifications_enabled": bool(current_app.config.get("NOTIFICATIONS_ENABLED", True)),
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
