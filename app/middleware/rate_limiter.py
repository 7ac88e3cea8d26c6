"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.  The Limiter
instance is created in app/__init__.py with no default limits; this module
applies limits per route category, keyed by the caller's token subject
when present, else by remote IP.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"
ADMIN_LIMIT = "10/minute"


def rate_limit_key():
    """Actor id if authenticated, else remote IP."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Project workflow: 60/minute  (submissions and transitions)
        - History reads:    200/minute (polling fallback for live views)
        - Scheduler:        10/minute  (admin-only manual triggers)
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("project_bp")
    if bp:
        limiter.limit(WRITE_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("history_bp")
    if bp:
        limiter.limit(READ_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("scheduler_bp")
    if bp:
        limiter.limit(ADMIN_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: projects %s, history %s, scheduler %s",
        WRITE_LIMIT, READ_LIMIT, ADMIN_LIMIT,
    )
