"""
Production Approval Workflow
Scheduled Jobs.

Jobs:
    - auto_complete_projects: closes approved projects whose last delivery
      date has passed (GENEHMIGT → ABGESCHLOSSEN, system actor)
    - send_queued_emails: sends EmailLog rows left queued by notification
      dispatch when SMTP is configured

Importing this module registers the jobs with the scheduler registry.
"""

from __future__ import annotations

import logging
from typing import Any

from app.services.email_service import EmailService
from app.services.project_workflow import auto_complete_projects
from app.services.scheduler_service import register_job

logger = logging.getLogger(__name__)


@register_job("auto_complete_projects")
def run_auto_complete(app) -> dict[str, Any]:
    """Complete approved projects past their last delivery date."""
    result = auto_complete_projects()
    if result["errors"]:
        logger.warning("Auto-complete finished with %d error(s)", len(result["errors"]))
    return result


@register_job("send_queued_emails")
def run_send_queued_emails(app) -> dict[str, Any]:
    """Deliver queued notification emails over SMTP."""
    result = EmailService.deliver_queued(limit=app.config.get("MAIL_BATCH_SIZE", 100))
    if result["failed"]:
        logger.warning("Email delivery finished with %d failure(s)", result["failed"])
    return result
