"""
Project History Blueprint.

Routes:
  GET  /projects/<id>/history          – entries (?order=asc|desc&since=<iso>)
  GET  /projects/<id>/history/replay   – rebuilt status sequence + consistency
  GET  /history                        – activity log (?user_id=&limit=&offset=)
"""

from flask import Blueprint, jsonify, request

from app.auth import actor_required, get_current_actor
from app.services.history_service import (
    MAX_PAGE_SIZE,
    list_actor_history,
    list_project_history,
    replay_project_history,
)
from app.utils.errors import E, api_error, register_error_handlers
from app.utils.helpers import parse_datetime, parse_int_arg

history_bp = Blueprint("history_bp", __name__, url_prefix="/api/v1")
register_error_handlers(history_bp)


@history_bp.route("/projects/<project_id>/history", methods=["GET"])
@actor_required()
def project_history(project_id):
    order = request.args.get("order", "desc")
    since_raw = request.args.get("since")
    since = parse_datetime(since_raw)
    if since_raw and since is None:
        return api_error(E.VALIDATION_INVALID, "since must be an ISO timestamp", details={"since": since_raw})

    entries = list_project_history(project_id, get_current_actor(), order=order, since=since)
    return jsonify([e.to_dict() for e in entries])


@history_bp.route("/projects/<project_id>/history/replay", methods=["GET"])
@actor_required()
def project_history_replay(project_id):
    return jsonify(replay_project_history(project_id, get_current_actor()))


@history_bp.route("/history", methods=["GET"])
@actor_required()
def activity_log():
    """Newest-first activity; non-admins only see their own entries."""
    try:
        limit = parse_int_arg("limit", 50, minimum=1, maximum=MAX_PAGE_SIZE)
        offset = parse_int_arg("offset", 0)
    except ValueError:
        return api_error(E.VALIDATION_INVALID, "limit and offset must be integers")

    entries = list_actor_history(
        get_current_actor(),
        user_id=request.args.get("user_id") or None,
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [e.to_dict() for e in entries],
        "limit": limit,
        "offset": offset,
    })
