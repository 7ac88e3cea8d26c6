"""
JWT Auth Middleware: parses the Bearer token, sets g.jwt_*.

The hook never rejects a request itself.  It records what the token says
(or why it was refused in g.jwt_error); ``app.auth.actor_required`` turns
that into a 401/403 for protected endpoints.
"""

import logging

import jwt as pyjwt
from flask import g, request

from app.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/statuses",
    "/api/v1/locations",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_role = None
        g.jwt_name = None
        g.jwt_email = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected bearer token: %s", exc)
            g.jwt_error = "Invalid token"
            return

        g.jwt_user_id = payload.get("sub")
        g.jwt_role = payload.get("role")
        g.jwt_name = payload.get("name") or ""
        g.jwt_email = payload.get("email")
