"""
Visibility Filter

Role- and location-based rules deciding which projects an actor sees.

Workable list (non-archived partition):
  - admin, vertrieb:     every project
  - supply_chain:        only PRUEFUNG_SUPPLY_CHAIN
  - planung:             every PRUEFUNG_PLANUNG project
  - planung_<location>:  PRUEFUNG_PLANUNG projects with a positive quantity
                         for one of that location's alias spellings

Archive partition:
  - admin, vertrieb, supply_chain, planung: every archived project
  - planung_<location>: archived projects whose distribution involves it

Status and archived flag are filtered in SQL; the alias-aware location
predicate runs on the result rows, since distribution keys are free-form.
"""

import logging

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.auth import Actor, Role
from app.models.location import location_matches
from app.models.project import ManufacturingProject
from app.models.status import ProjectStatus

logger = logging.getLogger(__name__)

# Archive filter: which terminal status preceded archiving.
PRECEDING_FILTERS = {
    "approved": ProjectStatus.GENEHMIGT,
    "rejected": ProjectStatus.ABGELEHNT,
    "completed": ProjectStatus.ABGESCHLOSSEN,
}

_UNRESTRICTED_ROLES = frozenset({Role.ADMIN, Role.VERTRIEB})
_ARCHIVE_WIDE_ROLES = frozenset({Role.ADMIN, Role.VERTRIEB, Role.SUPPLY_CHAIN, Role.PLANUNG})


def _role(value) -> Role | None:
    return Role.parse(value)


def involves_location(project: ManufacturingProject, code: str) -> bool:
    """True if any alias spelling of *code* carries a positive quantity."""
    for key, qty in (project.location_distribution or {}).items():
        try:
            positive = float(qty or 0) > 0
        except (TypeError, ValueError):
            positive = False
        if positive and location_matches(code, key):
            return True
    return False


def matches_location_scope(role, project: ManufacturingProject) -> bool:
    """
    Location restriction for planning roles.

    Only applies while the project is in PRUEFUNG_PLANUNG; for every other
    status (and every role without a location) it returns True.
    """
    role = _role(role)
    if role is None or role.location is None:
        return True
    if project.status != ProjectStatus.PRUEFUNG_PLANUNG:
        return True
    return involves_location(project, role.location)


def is_project_visible(role, project: ManufacturingProject) -> bool:
    """Is *project* part of the workable list of *role*?"""
    role = _role(role)
    if role is None:
        return False
    if project.archived:
        return False
    if role in _UNRESTRICTED_ROLES:
        return True
    if role is Role.SUPPLY_CHAIN:
        return project.status == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
    if role.is_planning:
        return (
            project.status == ProjectStatus.PRUEFUNG_PLANUNG
            and matches_location_scope(role, project)
        )
    return False


def is_archive_visible(role, project: ManufacturingProject) -> bool:
    role = _role(role)
    if role is None or not project.archived:
        return False
    if role in _ARCHIVE_WIDE_ROLES:
        return True
    if role.location is not None:
        return involves_location(project, role.location)
    return False


def can_access_project(actor: Actor, project: ManufacturingProject) -> bool:
    """Detail and history reads: workable list, archive, creator, or global monitor."""
    if actor.role in _UNRESTRICTED_ROLES:
        return True
    if project.created_by_id and project.created_by_id == actor.id:
        return True
    if project.archived:
        return is_archive_visible(actor.role, project)
    return is_project_visible(actor.role, project)


def get_accessible_project(project_id: str, actor: Actor) -> ManufacturingProject:
    """Load a project the actor may read; hidden projects are reported as missing."""
    project = db.session.get(ManufacturingProject, project_id)
    if project is None or not can_access_project(actor, project):
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def _workable_query(role: Role):
    q = ManufacturingProject.query.filter(ManufacturingProject.archived.is_(False))
    if role in _UNRESTRICTED_ROLES:
        return q
    if role is Role.SUPPLY_CHAIN:
        return q.filter(ManufacturingProject.status == int(ProjectStatus.PRUEFUNG_SUPPLY_CHAIN))
    if role.is_planning:
        return q.filter(ManufacturingProject.status == int(ProjectStatus.PRUEFUNG_PLANUNG))
    return None


def list_workable_projects(actor: Actor) -> list[ManufacturingProject]:
    q = _workable_query(actor.role)
    if q is None:
        return []
    rows = q.order_by(ManufacturingProject.project_number.desc()).all()
    visible = [p for p in rows if is_project_visible(actor.role, p)]
    logger.debug(
        "Workable list for %s: %d of %d rows",
        actor.role.value, len(visible), len(rows),
        extra={"actor_id": actor.id},
    )
    return visible


def list_archived_projects(actor: Actor, preceding: str | None = None) -> list[ManufacturingProject]:
    """Archive partition, optionally filtered by the status that preceded archiving."""
    q = ManufacturingProject.query.filter(ManufacturingProject.archived.is_(True))
    if preceding:
        status = PRECEDING_FILTERS.get(preceding)
        if status is None:
            raise ValidationError(
                f"Unknown archive filter: {preceding}",
                details={"preceding": sorted(PRECEDING_FILTERS)},
            )
        q = q.filter(ManufacturingProject.status == int(status))
    rows = q.order_by(ManufacturingProject.archived_at.desc(), ManufacturingProject.project_number.desc()).all()
    return [p for p in rows if is_archive_visible(actor.role, p)]
