"""
Scheduler Blueprint (admin only).

Routes:
  GET   /scheduler/jobs                   – registered jobs + run ledger
  POST  /scheduler/jobs/<name>/trigger    – run a job now
"""

import logging

from flask import Blueprint, jsonify

from app.auth import actor_required, get_current_actor
from app.models.auth import Role
from app.services.scheduler_service import SchedulerService, get_registered_jobs
from app.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

scheduler_bp = Blueprint("scheduler_bp", __name__, url_prefix="/api/v1/scheduler")
register_error_handlers(scheduler_bp)


@scheduler_bp.route("/jobs", methods=["GET"])
@actor_required(Role.ADMIN)
def list_jobs():
    return jsonify(SchedulerService.list_jobs())


@scheduler_bp.route("/jobs/<job_name>/trigger", methods=["POST"])
@actor_required(Role.ADMIN)
def trigger_job(job_name):
    if job_name not in get_registered_jobs():
        return api_error(E.NOT_FOUND, f"Unknown job: {job_name}")

    logger.info("Manual trigger of %s", job_name, extra={"actor_id": get_current_actor().id})
    result = SchedulerService.run_job(job_name)
    status_code = 500 if result["status"] in ("failed", "error") else 200
    return jsonify(result), status_code
