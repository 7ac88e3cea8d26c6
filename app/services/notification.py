"""
Production Approval Workflow
Notification Dispatcher.

Turns a committed workflow transition into emails for the people who have
to act next.  Recipients come from the User directory:

    task_assignment         supply chain users
    planning_assignment     planners of every affected location + unscoped planung
    supply_chain_rejection  the creator
    project_correction      the creator
    creator_rejection       supply chain users
    planning_correction     supply chain users + the creator
    project_approval        the creator

Dispatch is best-effort.  It runs after the transition committed, and any
failure is rolled back, logged as a NotificationError and swallowed; the
transition stands.  Dispatch only records EmailLog rows; with SMTP
configured they are sent by the send_queued_emails job, started on a
background thread when MAIL_BACKGROUND_DELIVERY is on.
"""

import logging

from flask import current_app
from markupsafe import Markup

from app.core.exceptions import NotificationError
from app.models import db
from app.models.auth import Actor, Role, User
from app.models.location import get_location_name
from app.models.project import ManufacturingProject
from app.services.email_service import EmailService
from app.services.scheduler_service import SchedulerService

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {
    "task_assignment",
    "planning_assignment",
    "supply_chain_rejection",
    "project_correction",
    "creator_rejection",
    "planning_correction",
    "project_approval",
}


def _active_users_with_roles(roles) -> list[User]:
    values = [r.value for r in roles]
    if not values:
        return []
    return (
        User.query
        .filter(User.role.in_(values), User.active.is_(True))
        .order_by(User.email)
        .all()
    )


def _creator(project: ManufacturingProject) -> list[User]:
    if not project.created_by_id:
        return []
    user = db.session.get(User, project.created_by_id)
    return [user] if user is not None and user.active else []


class NotificationDispatcher:
    """Stateless dispatcher; every method works on the current app + session."""

    @staticmethod
    def is_enabled() -> bool:
        return bool(current_app.config.get("NOTIFICATIONS_ENABLED", True))

    @staticmethod
    def resolve_recipients(notification_type: str, project: ManufacturingProject) -> list[User]:
        """Recipients for *notification_type*, de-duplicated, directory order."""
        if notification_type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {notification_type}")

        if notification_type in ("task_assignment", "creator_rejection"):
            users = _active_users_with_roles([Role.SUPPLY_CHAIN])
        elif notification_type == "planning_assignment":
            roles = [Role.PLANUNG]
            for code in project.positive_locations():
                role = Role.parse(f"planung_{code}")
                if role is not None:
                    roles.append(role)
            users = _active_users_with_roles(roles)
        elif notification_type == "planning_correction":
            users = _active_users_with_roles([Role.SUPPLY_CHAIN]) + _creator(project)
        else:
            users = _creator(project)

        seen = set()
        unique = []
        for user in users:
            if user.id not in seen and user.email:
                seen.add(user.id)
                unique.append(user)
        return unique

    @classmethod
    def dispatch(
        cls,
        notification_type: str,
        project: ManufacturingProject,
        actor: Actor,
        *,
        reason: str | None = None,
        before: dict | None = None,
        after: dict | None = None,
    ) -> int:
        """
        Send *notification_type* for *project*.  Returns the number of emails
        recorded; 0 when disabled, when nobody qualifies, or on failure.
        """
        project_id = project.id
        if not cls.is_enabled():
            logger.debug("Notifications disabled, skipping %s", notification_type,
                         extra={"project_id": project_id})
            return 0

        try:
            recipients = cls.resolve_recipients(notification_type, project)
            context = _build_context(project, actor, reason, before, after)
            count = queued = 0
            for user in recipients:
                log = EmailService.send_from_template(
                    to_email=user.email,
                    to_name=user.display_name,
                    template_name=notification_type,
                    context=context,
                    recipient_user_id=user.id,
                    project_id=project_id,
                    triggered_by_id=actor.id,
                )
                if log is not None:
                    count += 1
                    if log.status == "queued":
                        queued += 1
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            err = NotificationError(notification_type, project_id, exc)
            logger.exception(str(err), extra={"project_id": project_id, "actor_id": actor.id})
            return 0

        logger.info(
            "Notification %s for project #%s: %d recipient(s)",
            notification_type, project.project_number, count,
            extra={"project_id": project_id, "actor_id": actor.id},
        )
        if queued and current_app.config.get("MAIL_BACKGROUND_DELIVERY", True):
            SchedulerService.run_in_background("send_queued_emails")
        return count


def _format_distribution(distribution: dict | None) -> str:
    if not distribution:
        return "-"
    return ", ".join(
        f"{get_location_name(code)}: {qty:g}" if isinstance(qty, (int, float)) else f"{code}: {qty}"
        for code, qty in distribution.items()
    )


def _build_context(project, actor, reason, before, after) -> dict:
    details = ""
    if before is not None or after is not None:
        before = before or {}
        after = after or {}
        details = Markup(
            "<table style=\"width: 100%; border-collapse: collapse;\">"
            "<tr><td>Menge vorher</td><td>{}</td></tr>"
            "<tr><td>Menge nachher</td><td>{}</td></tr>"
            "<tr><td>Verteilung vorher</td><td>{}</td></tr>"
            "<tr><td>Verteilung nachher</td><td>{}</td></tr>"
            "</table>"
        ).format(
            before.get("total_quantity", "-"),
            after.get("total_quantity", "-"),
            _format_distribution(before.get("location_distribution")),
            _format_distribution(after.get("location_distribution")),
        )
    return {
        "project_number": project.project_number,
        "customer": project.customer,
        "article_number": project.article_number,
        "article_description": project.article_description or "",
        "actor_name": actor.display_name or actor.id,
        "reason": reason or "-",
        "locations": ", ".join(get_location_name(c) for c in project.positive_locations()) or "-",
        "details": details,
    }
