"""
Project Workflow Engine

Drives a manufacturing project through review:

    submit (vertrieb)                    → PRUEFUNG_SUPPLY_CHAIN
    PRUEFUNG_SUPPLY_CHAIN approve         → PRUEFUNG_PLANUNG
    PRUEFUNG_SUPPLY_CHAIN reject          → ABGELEHNT
    PRUEFUNG_SUPPLY_CHAIN correct         → PRUEFUNG_VERTRIEB
    PRUEFUNG_VERTRIEB resubmit (creator)  → PRUEFUNG_SUPPLY_CHAIN
    PRUEFUNG_PLANUNG approve (per site)   → GENEHMIGT once every site approved
    PRUEFUNG_PLANUNG correct              → PRUEFUNG_SUPPLY_CHAIN
    GENEHMIGT reject (creator)            → ABGELEHNT
    GENEHMIGT auto_complete (system)      → ABGESCHLOSSEN
    GENEHMIGT/ABGELEHNT/ABGESCHLOSSEN archive (creator) → archived flag only

Every transition writes exactly one ProjectHistory row in the same
transaction as the status change.  Checks run before any mutation, in
this order: project exists, known action, operation replay, transition
rule, archived, creator identity, reason, action-specific input.

A replayed operation_id is only honoured for the actor who wrote it and
for the action it recorded, checked against the status it was applied in.

Notifications and history subscribers run after the commit and can never
undo it.

Usage:
    from app.services.project_workflow import transition_project

    result = transition_project(project_id, "reject", actor, reason="Kapazität")
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransientError,
    ValidationError,
)
from app.models import db
from app.models.auth import SYSTEM_ACTOR, Actor
from app.models.history import ProjectHistory, write_history
from app.models.location import LOCATIONS, resolve_location_code
from app.models.project import (
    TRANSITION_ACTIONS,
    ManufacturingProject,
    ProjectLocationApproval,
    find_transition_rule,
)
from app.models.status import ProjectStatus, get_status_label, status_from_label
from app.services.history_service import publish_history
from app.services.location_reconciler import (
    MODE_CORRECTION,
    MODE_CREATION,
    enforce_reconciliation,
    normalize_distribution,
    reconcile,
)
from app.services.notification import NotificationDispatcher
from app.services.visibility import involves_location
from app.utils.helpers import parse_date

logger = logging.getLogger(__name__)

# Order of buttons offered by get_available_actions.
_ACTION_ORDER = ("approve", "correct", "reject", "resubmit", "archive")

_TEXT_FIELDS = ("customer_id", "article_id", "description", "product_group")


@dataclass
class _Outcome:
    """What a handler decided; applied and recorded by ``_commit_transition``."""
    history_action: str
    new_status: ProjectStatus
    old_data: dict | None = None
    new_data: dict | None = None
    location: str | None = None
    notification: str | None = None
    warnings: list[str] = field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════════════
# Input helpers
# ═════════════════════════════════════════════════════════════════════════════

def _positive_quantity(value, field_name="total_quantity") -> float:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required", details={field_name: "required"})
    try:
        qty = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", details={field_name: "invalid"})
    if not math.isfinite(qty) or qty <= 0:
        raise ValidationError(f"{field_name} must be greater than 0", details={field_name: "must be > 0"})
    return qty


def _required_text(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", details={key: "required"})
    return value.strip()


def _optional_date(data: dict, key: str) -> date | None:
    raw = data.get(key)
    if raw in (None, ""):
        return None
    parsed = parse_date(raw)
    if parsed is None:
        raise ValidationError(f"{key} must be a date (YYYY-MM-DD)", details={key: "invalid"})
    return parsed


_TRUE_STRINGS = {"true", "1", "yes", "ja"}
_FALSE_STRINGS = {"false", "0", "no", "nein", ""}


def _optional_flag(data: dict, key: str) -> bool:
    raw = data.get(key)
    if raw is None or isinstance(raw, bool):
        return bool(raw)
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str) and raw.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
        return raw.strip().lower() in _TRUE_STRINGS
    raise ValidationError(f"{key} must be true or false", details={key: "invalid"})


def _full_distribution(distribution: dict) -> dict[str, float]:
    """Every location code, missing ones as 0.  Used to compare distributions."""
    return {code: float(distribution.get(code, 0.0)) for code in LOCATIONS}


def _current_distribution(project: ManufacturingProject) -> dict[str, float]:
    return normalize_distribution(project.location_distribution or {})


def _pending_locations(project: ManufacturingProject) -> list[str]:
    if project.location_approvals:
        return project.outstanding_locations()
    return project.positive_locations()


def _next_project_number() -> int:
    current = db.session.query(func.max(ManufacturingProject.project_number)).scalar()
    return (current or 0) + 1


# ═════════════════════════════════════════════════════════════════════════════
# Validation (no mutation)
# ═════════════════════════════════════════════════════════════════════════════

def validate_transition(project: ManufacturingProject, action: str, actor: Actor) -> dict:
    """
    Can *actor* attempt *action* on *project* in its current state?

    Checks the transition rule, the archived flag and creator identity.
    Action input (reason, quantities) is not checked here.

    Returns:
        {"valid": bool, "from": int, "to": int|None, "reason": str|None,
         "error": "permission"|"validation"|None}
    """
    status = project.status
    rule = find_transition_rule(action, status, actor.role, system=actor.is_system)
    if rule is None:
        return {"valid": False, "from": status, "to": None,
                "reason": f"Cannot '{action}' from status '{get_status_label(status)}' "
                          f"as {actor.role.value}", "error": "permission"}

    to = int(rule.to_status) if rule.to_status is not None else status
    if project.archived and not actor.is_system:
        return {"valid": False, "from": status, "to": to, "reason": "project is archived",
                "error": "validation"}

    if rule.creator_only and project.created_by_id != actor.id:
        return {"valid": False, "from": status, "to": to, "reason": "not the project creator",
                "error": "permission"}

    if status == ProjectStatus.PRUEFUNG_PLANUNG and actor.role.location is not None:
        code = actor.role.location
        if not involves_location(project, code):
            return {"valid": False, "from": status, "to": to,
                    "reason": f"location '{code}' is not part of this project", "error": "permission"}
        if action == "approve" and code not in _pending_locations(project):
            return {"valid": False, "from": status, "to": to,
                    "reason": f"location '{code}' has already approved", "error": "validation"}

    return {"valid": True, "from": status, "to": to, "reason": None, "error": None}


def get_available_actions(project: ManufacturingProject, actor: Actor) -> list[str]:
    """Actions *actor* may invoke on *project* right now (drives UI buttons)."""
    return [
        action for action in _ACTION_ORDER
        if validate_transition(project, action, actor)["valid"]
    ]


# ═════════════════════════════════════════════════════════════════════════════
# Submission
# ═════════════════════════════════════════════════════════════════════════════

def submit_project(actor: Actor, data: dict, *, operation_id: str | None = None) -> dict:
    """
    Create a project and hand it to supply chain in one step.

    Args:
        actor: must hold the vertrieb role
        data: customer, article_number, total_quantity, location_distribution,
              optional article_description, quantity_fixed, first_delivery,
              last_delivery, customer_id, article_id, description,
              product_group, price
        operation_id: client idempotency key; a repeated key returns the
              project created by the first call

    Returns:
        Transition result dict (see ``transition_project``).

    Raises:
        PermissionDenied, ValidationError, ConflictError, TransientError
    """
    rule = find_transition_rule("submit", None, actor.role)
    if rule is None:
        logger.warning("Submit refused for role %s", actor.role.value,
                       extra={"actor_id": actor.id, "action": "submit"})
        raise PermissionDenied(actor.id, "submit", f"role '{actor.role.value}' may not submit projects")

    if operation_id:
        existing = (
            ProjectHistory.query
            .filter_by(operation_id=operation_id, action=rule.history_action, user_id=actor.id)
            .first()
        )
        if existing is not None:
            project = db.session.get(ManufacturingProject, existing.project_id)
            return _replayed_result(project, existing)

    if not isinstance(data, dict):
        raise ValidationError("Request body must be an object")

    customer = _required_text(data, "customer")
    article_number = _required_text(data, "article_number")
    total = _positive_quantity(data.get("total_quantity"))
    first_delivery = _optional_date(data, "first_delivery")
    last_delivery = _optional_date(data, "last_delivery")
    if first_delivery and last_delivery and first_delivery > last_delivery:
        raise ValidationError(
            "first_delivery must not be after last_delivery",
            details={"first_delivery": first_delivery.isoformat(), "last_delivery": last_delivery.isoformat()},
        )

    price = data.get("price")
    if price not in (None, ""):
        try:
            price = float(price)
        except (TypeError, ValueError):
            raise ValidationError("price must be a number", details={"price": "invalid"})
    else:
        price = None

    distribution = normalize_distribution(data.get("location_distribution") or {})
    warnings = enforce_reconciliation(reconcile(total, distribution, mode=MODE_CREATION))

    project = ManufacturingProject(
        customer=customer,
        article_number=article_number,
        article_description=(data.get("article_description") or "").strip(),
        total_quantity=total,
        quantity_fixed=_optional_flag(data, "quantity_fixed"),
        first_delivery=first_delivery,
        last_delivery=last_delivery,
        location_distribution=distribution,
        price=price,
        created_by_id=actor.id,
        created_by_name=actor.display_name,
    )
    for key in _TEXT_FIELDS:
        value = data.get(key)
        if value not in (None, ""):
            setattr(project, key, str(value))

    outcome = _Outcome(
        history_action=rule.history_action,
        new_status=rule.to_status,
        new_data=project.quantity_snapshot(),
        notification=rule.notification,
        warnings=warnings,
    )

    def _create():
        project.project_number = _next_project_number()
        project.status = int(ProjectStatus.ERFASSUNG)
        db.session.add(project)
        db.session.flush()

    return _commit_transition(
        project, "submit", actor, outcome,
        reason=None, operation_id=operation_id, prepare=_create,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Transitions on existing projects
# ═════════════════════════════════════════════════════════════════════════════

def transition_project(
    project_id: str,
    action: str,
    actor: Actor,
    *,
    reason: str | None = None,
    total_quantity=None,
    location_distribution: dict | None = None,
    location: str | None = None,
    operation_id: str | None = None,
) -> dict:
    """
    Execute one workflow transition.

    Args:
        project_id: project UUID
        action: approve | reject | correct | resubmit | archive | auto_complete
        actor: authenticated caller
        reason: required for reject and correct
        total_quantity, location_distribution: new values for correct/resubmit
        location: planning approval for one location (planung/admin only)
        operation_id: idempotency key; a repeated key replays the stored result

    Returns:
        {"project_id", "project_number", "action", "history_action",
         "previous_status", "new_status", "archived", "warnings",
         "outstanding_locations", "history_id", "replayed"}

    Raises:
        NotFoundError, PermissionDenied, ValidationError, ConflictError,
        TransientError
    """
    project = db.session.get(ManufacturingProject, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)

    if not isinstance(action, str) or action not in TRANSITION_ACTIONS or action == "submit":
        raise ValidationError(f"Unknown action: {action}", details={"action": action})
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason must be text", details={"reason": "invalid"})

    if operation_id:
        existing = ProjectHistory.query.filter_by(project_id=project.id, operation_id=operation_id).first()
        if existing is not None:
            _check_replay(project, existing, action, actor, operation_id)
            logger.info("Replaying operation %s", operation_id,
                        extra={"project_id": project.id, "actor_id": actor.id, "action": action})
            return _replayed_result(project, existing)

    check = validate_transition(project, action, actor)
    if not check["valid"]:
        logger.warning(
            "Transition refused: %s on #%s by %s (%s)",
            action, project.project_number, actor.role.value, check["reason"],
            extra={"project_id": project.id, "actor_id": actor.id, "action": action},
        )
        if check["error"] == "validation":
            raise ValidationError(check["reason"])
        raise PermissionDenied(actor.id, action, check["reason"])

    rule = find_transition_rule(action, project.status, actor.role, system=actor.is_system)

    reason = (reason or "").strip() or None
    if rule.requires_reason and not reason:
        raise ValidationError("reason required", details={"reason": "required"})

    handler = _HANDLERS[(action, ProjectStatus(project.status))]
    try:
        outcome = handler(
            project, actor, rule,
            reason=reason,
            total_quantity=total_quantity,
            location_distribution=location_distribution,
            location=location,
        )
    except Exception:
        db.session.rollback()
        raise
    return _commit_transition(project, action, actor, outcome, reason=reason, operation_id=operation_id)


# ── Handlers ────────────────────────────────────────────────────────────────
# Each handler validates first and only then mutates the project.  The
# caller commits mutation + history together or rolls both back.

def _apply_quantities(project, total, distribution) -> tuple[dict, dict]:
    before = project.quantity_snapshot()
    project.total_quantity = total
    project.location_distribution = dict(distribution)
    return before, project.quantity_snapshot()


def _resolve_correction(project, actor, total_quantity, location_distribution) -> tuple[float, dict]:
    """New (total, distribution) for a correction, enforcing what the role may change."""
    if total_quantity in (None, "") and location_distribution is None:
        raise ValidationError(
            "A correction must change total_quantity or location_distribution",
            details={"total_quantity": "missing", "location_distribution": "missing"},
        )

    current = _current_distribution(project)
    new_total = project.total_quantity
    if total_quantity not in (None, ""):
        new_total = _positive_quantity(total_quantity)
    provided = normalize_distribution(location_distribution) if location_distribution is not None else {}
    new_distribution = provided if location_distribution is not None else dict(current)

    own = actor.role.location
    if own is not None:
        if not math.isclose(new_total, project.total_quantity):
            raise PermissionDenied(actor.id, "correct", "location planners may not change the total quantity")
        # Keys left out of a location planner's correction keep their value.
        before_full = _full_distribution(current)
        foreign = [c for c, qty in provided.items() if c != own and not math.isclose(before_full[c], qty)]
        if foreign:
            raise PermissionDenied(
                actor.id, "correct",
                f"location planners may only change their own location (attempted: {', '.join(foreign)})",
            )
        new_distribution = dict(current)
        if own in provided:
            new_distribution[own] = provided[own]

    unchanged = math.isclose(new_total, project.total_quantity) and all(
        math.isclose(a, b)
        for a, b in zip(_full_distribution(current).values(), _full_distribution(new_distribution).values())
    )
    if unchanged:
        raise ValidationError("Correction does not change anything")
    return new_total, new_distribution


def _resubmit(project, actor, rule, *, total_quantity=None, location_distribution=None, **_):
    total = project.total_quantity
    distribution = _current_distribution(project)
    if total_quantity not in (None, ""):
        total = _positive_quantity(total_quantity)
    if location_distribution is not None:
        distribution = normalize_distribution(location_distribution)
    warnings = enforce_reconciliation(reconcile(total, distribution, mode=MODE_CREATION))

    old_data = new_data = None
    if not math.isclose(total, project.total_quantity) or _full_distribution(distribution) != _full_distribution(
        _current_distribution(project)
    ):
        old_data, new_data = _apply_quantities(project, total, distribution)
    project.rejection_reason = None
    return _Outcome(rule.history_action, rule.to_status, old_data, new_data,
                    notification=rule.notification, warnings=warnings)


def _forward_to_planning(project, actor, rule, **_):
    if not project.positive_locations():
        raise ValidationError("At least one location must receive a positive quantity")
    project.location_approvals.clear()
    db.session.flush()
    for code in project.positive_locations():
        project.location_approvals.append(ProjectLocationApproval(location=code, required=True))
    return _Outcome(rule.history_action, rule.to_status, notification=rule.notification)


def _reject(project, actor, rule, *, reason=None, **_):
    project.rejection_reason = reason
    return _Outcome(rule.history_action, rule.to_status, notification=rule.notification)


def _supply_chain_correction(project, actor, rule, *, total_quantity=None, location_distribution=None, **_):
    total, distribution = _resolve_correction(project, actor, total_quantity, location_distribution)
    warnings = enforce_reconciliation(reconcile(total, distribution, mode=MODE_CREATION))
    old_data, new_data = _apply_quantities(project, total, distribution)
    return _Outcome(rule.history_action, rule.to_status, old_data, new_data,
                    notification=rule.notification, warnings=warnings)


def _planning_correction(project, actor, rule, *, total_quantity=None, location_distribution=None, **_):
    total, distribution = _resolve_correction(project, actor, total_quantity, location_distribution)
    warnings = enforce_reconciliation(reconcile(total, distribution, mode=MODE_CORRECTION))
    old_data, new_data = _apply_quantities(project, total, distribution)
    project.location_approvals.clear()
    return _Outcome(rule.history_action, rule.to_status, old_data, new_data,
                    notification=rule.notification, warnings=warnings)


def _planning_approval(project, actor, rule, *, location=None, **_):
    if not project.location_approvals:
        for code in project.positive_locations():
            project.location_approvals.append(ProjectLocationApproval(location=code, required=True))

    own = actor.role.location
    if own is not None:
        if location not in (None, "") and resolve_location_code(location) != own:
            raise PermissionDenied(actor.id, "approve", "location planners may only approve their own location")
        targets = [own]
    elif location not in (None, ""):
        code = resolve_location_code(location)
        if code is None:
            raise NotFoundError(resource="Location", resource_id=location)
        targets = [code]
    else:
        targets = project.outstanding_locations()

    for code in targets:
        approval = project.approval_for(code)
        if approval is None or not approval.required:
            raise ValidationError(f"Location '{code}' is not part of this project",
                                  details={"location": code})
        if approval.approved:
            raise ValidationError(f"Location '{code}' has already approved",
                                  details={"location": code})

    now = datetime.now(timezone.utc)
    for code in targets:
        approval = project.approval_for(code)
        approval.approved = True
        approval.approved_by_id = actor.id
        approval.approved_at = now

    single = targets[0] if len(targets) == 1 else None
    if project.outstanding_locations():
        return _Outcome("location_approved", ProjectStatus.PRUEFUNG_PLANUNG, location=single)
    return _Outcome(rule.history_action, rule.to_status, location=single, notification=rule.notification)


def _auto_complete(project, actor, rule, **_):
    return _Outcome(rule.history_action, rule.to_status)


def _archive(project, actor, rule, **_):
    project.archived = True
    project.archived_at = datetime.now(timezone.utc)
    return _Outcome(rule.history_action, ProjectStatus(project.status))


_HANDLERS = {
    ("resubmit", ProjectStatus.PRUEFUNG_VERTRIEB): _resubmit,
    ("approve", ProjectStatus.PRUEFUNG_SUPPLY_CHAIN): _forward_to_planning,
    ("reject", ProjectStatus.PRUEFUNG_SUPPLY_CHAIN): _reject,
    ("correct", ProjectStatus.PRUEFUNG_SUPPLY_CHAIN): _supply_chain_correction,
    ("approve", ProjectStatus.PRUEFUNG_PLANUNG): _planning_approval,
    ("correct", ProjectStatus.PRUEFUNG_PLANUNG): _planning_correction,
    ("reject", ProjectStatus.GENEHMIGT): _reject,
    ("auto_complete", ProjectStatus.GENEHMIGT): _auto_complete,
    ("archive", ProjectStatus.GENEHMIGT): _archive,
    ("archive", ProjectStatus.ABGELEHNT): _archive,
    ("archive", ProjectStatus.ABGESCHLOSSEN): _archive,
}


# ═════════════════════════════════════════════════════════════════════════════
# Commit + side effects
# ═════════════════════════════════════════════════════════════════════════════

def _commit_transition(project, action, actor, outcome: _Outcome, *, reason, operation_id, prepare=None) -> dict:
    """Apply status + history in one transaction, then run post-commit side effects."""
    try:
        if prepare is not None:
            prepare()
        previous_status = project.status
        project.status = int(outcome.new_status)
        entry = write_history(
            project_id=project.id,
            action=outcome.history_action,
            user_id=actor.id,
            user_name=actor.display_name,
            previous_status=get_status_label(previous_status),
            new_status=get_status_label(project.status),
            reason=reason,
            old_data=outcome.old_data,
            new_data=outcome.new_data,
            location=outcome.location,
            operation_id=operation_id,
        )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Transition conflict: %s (%s)", action, exc.orig,
                       extra={"actor_id": actor.id, "action": action})
        if operation_id:
            raise ConflictError("ProjectHistory", "operation_id", operation_id) from exc
        raise ConflictError("ManufacturingProject", "project_number") from exc
    except OperationalError as exc:
        db.session.rollback()
        logger.error("Store unavailable during %s", action, extra={"actor_id": actor.id, "action": action})
        raise TransientError(action, exc) from exc
    except Exception:
        db.session.rollback()
        raise

    result = {
        "project_id": project.id,
        "project_number": project.project_number,
        "action": action,
        "history_action": entry.action,
        "previous_status": previous_status,
        "new_status": project.status,
        "archived": bool(project.archived),
        "warnings": list(outcome.warnings),
        "outstanding_locations": project.outstanding_locations(),
        "history_id": entry.id,
        "replayed": False,
    }
    logger.info(
        "Project #%s: %s by %s (%s -> %s)",
        project.project_number, entry.action, actor.role.value,
        get_status_label(previous_status), get_status_label(project.status),
        extra={"project_id": project.id, "actor_id": actor.id, "action": action},
    )

    publish_history(entry)
    if outcome.notification:
        NotificationDispatcher.dispatch(
            outcome.notification, project, actor,
            reason=reason,
            before=outcome.old_data,
            after=outcome.new_data if outcome.old_data is not None else None,
        )
    return result


def _check_replay(project, entry: ProjectHistory, action: str, actor: Actor, operation_id: str) -> None:
    """Refuse to replay *entry* for anyone or anything other than what it recorded."""
    applied_in = status_from_label(entry.previous_status)
    rule = find_transition_rule(action, applied_in, actor.role, system=actor.is_system)
    if entry.user_id != actor.id or rule is None:
        logger.warning("Replay of operation %s refused", operation_id,
                       extra={"project_id": project.id, "actor_id": actor.id, "action": action})
        raise PermissionDenied(actor.id, action, "operation_id belongs to another transition")
    if rule.creator_only and project.created_by_id != actor.id:
        raise PermissionDenied(actor.id, action, "not the project creator")

    recorded = {rule.history_action}
    if action == "approve" and applied_in == ProjectStatus.PRUEFUNG_PLANUNG:
        recorded.add("location_approved")
    if entry.action not in recorded:
        raise ConflictError("ProjectHistory", "operation_id", operation_id)


def _replayed_result(project: ManufacturingProject, entry: ProjectHistory) -> dict:
    previous = status_from_label(entry.previous_status)
    new = status_from_label(entry.new_status)
    return {
        "project_id": project.id,
        "project_number": project.project_number,
        "action": entry.action,
        "history_action": entry.action,
        "previous_status": int(previous) if previous is not None else None,
        "new_status": int(new) if new is not None else None,
        "archived": bool(project.archived),
        "warnings": [],
        "outstanding_locations": project.outstanding_locations(),
        "history_id": entry.id,
        "replayed": True,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Scheduled sweep
# ═════════════════════════════════════════════════════════════════════════════

def auto_complete_projects(today: date | None = None) -> dict:
    """
    Move GENEHMIGT projects whose last delivery lies before *today* to
    ABGESCHLOSSEN, as the system actor.

    Idempotent: only GENEHMIGT rows are selected, so a second run finds
    nothing to do.

    Returns:
        {"checked": int, "completed": int, "project_ids": [...], "errors": [...]}
    """
    today = today or date.today()
    candidates = (
        ManufacturingProject.query
        .filter(
            ManufacturingProject.status == int(ProjectStatus.GENEHMIGT),
            ManufacturingProject.last_delivery.isnot(None),
            ManufacturingProject.last_delivery < today,
        )
        .order_by(ManufacturingProject.project_number)
        .all()
    )
    work = [(p.id, p.last_delivery) for p in candidates]

    completed, errors = [], []
    for project_id, last_delivery in work:
        try:
            transition_project(
                project_id, "auto_complete", SYSTEM_ACTOR,
                reason=f"Automatisch abgeschlossen: letzte Anlieferung {last_delivery.isoformat()} überschritten",
            )
            completed.append(project_id)
        except (ValidationError, PermissionDenied, ConflictError, TransientError, NotFoundError) as exc:
            logger.warning("Auto-complete skipped for %s: %s", project_id, exc,
                           extra={"project_id": project_id, "action": "auto_complete"})
            errors.append({"project_id": project_id, "error": str(exc), "error_type": type(exc).__name__})

    logger.info("Auto-complete sweep: %d of %d project(s) completed", len(completed), len(work))
    return {
        "checked": len(work),
        "completed": len(completed),
        "project_ids": completed,
        "errors": errors,
    }
