"""
Project history read path + in-process subscriptions.

The write path is ``app.models.history.write_history`` and is only called
by the workflow engine.  This module serves:

  - per-project listing, newest-first for display or oldest-first for audit
  - replay: rebuild the status sequence and compare with the stored status
  - per-actor activity log (admins see everyone, others only themselves,
    on projects they can still open)
  - subscribe_history(): callbacks invoked after an entry's transaction
    commits.  Clients without a live channel poll with ``since``.
"""

import logging
from collections.abc import Callable

from app.core.exceptions import PermissionDenied, ValidationError
from app.models import db
from app.models.auth import Actor, Role
from app.models.history import ProjectHistory
from app.models.project import ManufacturingProject
from app.models.status import coerce_status, get_status_label, status_from_label
from app.services.visibility import can_access_project, get_accessible_project

logger = logging.getLogger(__name__)

_ORDERS = ("asc", "desc")
MAX_PAGE_SIZE = 500

_subscribers: list[Callable[[dict], None]] = []


# ═════════════════════════════════════════════════════════════════════════════
# Subscriptions
# ═════════════════════════════════════════════════════════════════════════════

def subscribe_history(callback: Callable[[dict], None]) -> Callable[[dict], None]:
    """Register *callback*; it receives each committed entry as a dict."""
    if callback not in _subscribers:
        _subscribers.append(callback)
    return callback


def unsubscribe_history(callback: Callable[[dict], None]) -> None:
    if callback in _subscribers:
        _subscribers.remove(callback)


def publish_history(entry: ProjectHistory | dict) -> int:
    """Deliver a committed entry to every subscriber.  Returns the delivery count."""
    payload = entry.to_dict() if isinstance(entry, ProjectHistory) else dict(entry)
    delivered = 0
    for callback in list(_subscribers):
        try:
            callback(payload)
            delivered += 1
        except Exception:
            logger.exception(
                "History subscriber %r failed",
                callback,
                extra={"project_id": payload.get("project_id")},
            )
    return delivered


# ═════════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════════

def _ordered(q, order: str):
    if order not in _ORDERS:
        raise ValidationError(f"order must be one of {_ORDERS}", details={"order": order})
    if order == "asc":
        return q.order_by(ProjectHistory.created_at.asc(), ProjectHistory.id.asc())
    return q.order_by(ProjectHistory.created_at.desc(), ProjectHistory.id.desc())


def list_project_history(project_id: str, actor: Actor, *, order: str = "desc", since=None) -> list[ProjectHistory]:
    """
    History of one project the actor may access.

    ``since`` (datetime) returns only entries created strictly after it.
    """
    get_accessible_project(project_id, actor)
    q = ProjectHistory.query.filter_by(project_id=project_id)
    if since is not None:
        q = q.filter(ProjectHistory.created_at > since)
    return _ordered(q, order).all()


def replay_project_history(project_id: str, actor: Actor) -> dict:
    """
    Walk the project's history oldest-first and rebuild its status sequence.

    Returns:
        {"project_id", "steps": [...], "replayed_status", "stored_status",
         "consistent": bool, "entry_count"}
    """
    project = get_accessible_project(project_id, actor)
    entries = _ordered(ProjectHistory.query.filter_by(project_id=project_id), "asc").all()

    steps = []
    current = None
    for entry in entries:
        after = status_from_label(entry.new_status)
        if after is not None:
            current = after
        steps.append({
            "id": entry.id,
            "action": entry.action,
            "status": int(current) if current is not None else None,
            "label": get_status_label(current),
            "user_id": entry.user_id,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
        })

    stored = coerce_status(project.status)
    return {
        "project_id": project.id,
        "steps": steps,
        "replayed_status": int(current) if current is not None else None,
        "stored_status": project.status,
        "consistent": current is not None and current == stored,
        "entry_count": len(entries),
    }


def _accessible_project_ids(actor: Actor) -> list[str]:
    """Projects the actor has written history for and may still open."""
    touched = [
        row[0] for row in
        db.session.query(ProjectHistory.project_id).filter_by(user_id=actor.id).distinct().all()
    ]
    if not touched:
        return []
    projects = ManufacturingProject.query.filter(ManufacturingProject.id.in_(touched)).all()
    return [p.id for p in projects if can_access_project(actor, p)]


def list_actor_history(actor: Actor, *, user_id: str | None = None, limit: int = 50, offset: int = 0) -> list[ProjectHistory]:
    """
    Activity log, newest first.  Admins may list any user (or everyone when
    ``user_id`` is None); others only their own entries, restricted to
    projects they can currently access.
    """
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    offset = max(0, int(offset))

    q = ProjectHistory.query
    if actor.role is Role.ADMIN:
        if user_id:
            q = q.filter_by(user_id=user_id)
    elif user_id and user_id != actor.id:
        logger.warning("Activity log of %s refused", user_id, extra={"actor_id": actor.id})
        raise PermissionDenied(actor.id, "list_history", "only admins may view other users' activity")
    else:
        visible = _accessible_project_ids(actor)
        if not visible:
            return []
        q = q.filter(ProjectHistory.user_id == actor.id, ProjectHistory.project_id.in_(visible))
    return _ordered(q, "desc").offset(offset).limit(limit).all()
