"""
Project Workflow Blueprint.

Routes:
  GET    /statuses                       – status registry
  GET    /locations                      – locations with alias spellings
  POST   /projects/reconcile             – reconciliation preview
  POST   /projects                       – submit a new project (vertrieb)
  GET    /projects                       – actor's workable list
  GET    /projects/archive               – archive partition (?preceding=)
  GET    /projects/<id>                  – detail + approvals + available actions
  POST   /projects/<id>/transition       – approve / reject / correct / resubmit / archive
"""

import logging

from flask import Blueprint, jsonify, request

from app.auth import actor_required, get_current_actor
from app.models.location import list_locations
from app.models.status import list_statuses
from app.services import project_workflow
from app.services.location_reconciler import MODE_CREATION, reconcile
from app.services.visibility import (
    get_accessible_project,
    list_archived_projects,
    list_workable_projects,
)
from app.utils.errors import E, api_error, register_error_handlers
from app.utils.helpers import get_json_body

logger = logging.getLogger(__name__)

project_bp = Blueprint("project_bp", __name__, url_prefix="/api/v1")
register_error_handlers(project_bp)

_TRANSITION_FIELDS = ("reason", "total_quantity", "location_distribution", "location")

_TEXT_BODY_FIELDS = ("action", "reason", "location", "operation_id")


def _non_text_fields(data: dict, keys) -> list[str]:
    """Body keys in *keys* holding something other than a string or null."""
    return [key for key in keys if data.get(key) is not None and not isinstance(data.get(key), str)]


# ═════════════════════════════════════════════════════════════════════════════
# REFERENCE DATA
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/statuses", methods=["GET"])
def statuses():
    return jsonify(list_statuses())


@project_bp.route("/locations", methods=["GET"])
def locations():
    return jsonify(list_locations())


@project_bp.route("/projects/reconcile", methods=["POST"])
@actor_required()
def reconcile_preview():
    """Preview how a quantity split reconciles without saving anything.

    Body: { total_quantity, location_distribution, mode?: creation|correction }
    """
    data = get_json_body()
    if data is None:
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    result = reconcile(
        data.get("total_quantity"),
        data.get("location_distribution") or {},
        mode=data.get("mode") or MODE_CREATION,
    )
    return jsonify(result.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["POST"])
@actor_required()
def submit_project():
    """Create a project and hand it to supply chain.

    Body: { customer, article_number, total_quantity, location_distribution,
            article_description?, quantity_fixed?, first_delivery?, last_delivery?,
            customer_id?, article_id?, description?, product_group?, price?,
            operation_id? }
    """
    data = get_json_body()
    if data is None:
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    if _non_text_fields(data, ("operation_id",)):
        return api_error(E.VALIDATION_INVALID, "operation_id must be text", details={"operation_id": "invalid"})
    result = project_workflow.submit_project(
        get_current_actor(), data, operation_id=data.get("operation_id"),
    )
    return jsonify(result), 200 if result["replayed"] else 201


@project_bp.route("/projects", methods=["GET"])
@actor_required()
def list_projects():
    projects = list_workable_projects(get_current_actor())
    return jsonify([p.to_dict() for p in projects])


@project_bp.route("/projects/archive", methods=["GET"])
@actor_required()
def list_archive():
    preceding = request.args.get("preceding") or None
    projects = list_archived_projects(get_current_actor(), preceding)
    return jsonify([p.to_dict() for p in projects])


@project_bp.route("/projects/<project_id>", methods=["GET"])
@actor_required()
def get_project(project_id):
    actor = get_current_actor()
    project = get_accessible_project(project_id, actor)
    body = project.to_dict(include_approvals=True)
    body["available_actions"] = project_workflow.get_available_actions(project, actor)
    return jsonify(body)


@project_bp.route("/projects/<project_id>/transition", methods=["POST"])
@actor_required()
def transition(project_id):
    """Run one workflow action.

    Body: { action, reason?, total_quantity?, location_distribution?,
            location?, operation_id? }
    """
    data = get_json_body()
    if data is None:
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    invalid = _non_text_fields(data, _TEXT_BODY_FIELDS)
    if invalid:
        return api_error(
            E.VALIDATION_INVALID, f"{', '.join(invalid)} must be text",
            details={key: "invalid" for key in invalid},
        )
    action = (data.get("action") or "").strip()
    if not action:
        return api_error(E.VALIDATION_REQUIRED, "action is required", details={"action": "required"})

    distribution = data.get("location_distribution")
    if distribution is not None and not isinstance(distribution, dict):
        return api_error(
            E.VALIDATION_INVALID, "location_distribution must be an object",
            details={"location_distribution": "invalid"},
        )

    kwargs = {key: data.get(key) for key in _TRANSITION_FIELDS}
    result = project_workflow.transition_project(
        project_id, action, get_current_actor(),
        operation_id=data.get("operation_id"),
        **kwargs,
    )
    return jsonify(result)
