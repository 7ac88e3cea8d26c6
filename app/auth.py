"""
Production Approval Workflow
Authentication & Authorization helpers.

Provides:
    - get_current_actor(): the authenticated Actor for this request, built
      only from the verified access token (see middleware/jwt_auth.py)
    - actor_required(*roles): decorator returning 401 without a valid
      token and 403 for roles outside *roles*
    - init_auth(app): Content-Type guard for state-changing API requests

Role checks here are coarse endpoint gates.  The workflow engine performs
the authoritative per-transition check against the transition table.
"""

import functools
import logging

from flask import g, request

from app.models.auth import Actor, Role
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_current_actor() -> Actor | None:
    """Actor from the verified token, or None.  Memoised on ``g``."""
    cached = getattr(g, "current_actor", None)
    if cached is not None:
        return cached

    user_id = getattr(g, "jwt_user_id", None)
    if not user_id:
        return None
    role = Role.parse(getattr(g, "jwt_role", None))
    if role is None:
        return None

    actor = Actor(
        id=str(user_id),
        role=role,
        display_name=getattr(g, "jwt_name", "") or "",
        email=getattr(g, "jwt_email", None),
    )
    g.current_actor = actor
    return actor


def actor_required(*roles: Role):
    """
    Decorator: require an authenticated actor, optionally with one of *roles*.

    Usage:
        @bp.route("/scheduler/jobs")
        @actor_required(Role.ADMIN)
        def list_jobs(): ...
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            if not getattr(g, "jwt_user_id", None):
                message = getattr(g, "jwt_error", None) or "Authentication required"
                return api_error(E.UNAUTHORIZED, message)

            actor = get_current_actor()
            if actor is None:
                logger.warning("Token for %s carries unknown role %r", g.jwt_user_id, g.jwt_role)
                return api_error(E.FORBIDDEN, f"Unknown role: {g.jwt_role}")

            if allowed and actor.role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access %s",
                    actor.role.value, request.path,
                    extra={"actor_id": actor.id},
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            return f(*args, **kwargs)
        return decorated
    return decorator


# ── CSRF protection for API ──────────────────────────────────────────────────

def _check_content_type():
    """
    For state-changing requests (POST/PUT/PATCH/DELETE), require
    Content-Type: application/json.  HTML forms cannot send that type.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return api_error(
                E.VALIDATION_INVALID,
                "Content-Type must be application/json for state-changing requests",
                status=415,
            )
    return None


def init_auth(app):
    """Install the Content-Type guard on all API routes."""

    @app.before_request
    def _before_request_guard():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None
        return _check_content_type()

    logger.debug("Auth guard installed")
