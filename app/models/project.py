"""
Production Approval Workflow
Manufacturing project domain model.

Models:
    - ManufacturingProject:    a production request moving through review
    - ProjectLocationApproval: per-location approval ledger used while the
                               project sits in planning review

Constants:
    - PROJECT_TRANSITIONS: canonical, role-gated transition table.  The
      workflow engine looks rules up by (action, current status, role);
      anything without a matching rule is refused before any mutation.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from app.models import db
from app.models.auth import ALL_ROLES, PLANNING_ROLES, Role
from app.models.location import resolve_location_code
from app.models.status import ProjectStatus, describe_status

__all__ = [
    "ManufacturingProject",
    "ProjectLocationApproval",
    "TransitionRule",
    "PROJECT_TRANSITIONS",
    "find_transition_rule",
    "rules_for_status",
]


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class ManufacturingProject(db.Model):
    """
    Production request created by sales.

    Never physically deleted; terminal projects are archived via the
    ``archived`` flag, which leaves ``status`` untouched.
    """

    __tablename__ = "manufacturing_projects"
    __table_args__ = (
        db.Index("idx_mproj_status_archived", "status", "archived"),
        db.Index("idx_mproj_creator", "created_by_id"),
        db.Index("idx_mproj_last_delivery", "last_delivery"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_number = db.Column(db.Integer, nullable=False, unique=True)

    customer = db.Column(db.String(200), nullable=False)
    customer_id = db.Column(db.String(36), nullable=True)
    article_number = db.Column(db.String(100), nullable=False)
    article_description = db.Column(db.String(300), nullable=False, default="")
    article_id = db.Column(db.String(36), nullable=True)
    description = db.Column(db.Text, nullable=True)
    product_group = db.Column(db.String(100), nullable=True)
    price = db.Column(db.Float, nullable=True)

    total_quantity = db.Column(db.Float, nullable=False, comment="Gesamtmenge in kg")
    quantity_fixed = db.Column(db.Boolean, nullable=True, default=False)
    first_delivery = db.Column(db.Date, nullable=True)
    last_delivery = db.Column(db.Date, nullable=True)
    location_distribution = db.Column(
        db.JSON, nullable=False, default=dict,
        comment="Standortverteilung: {location_code: quantity}",
    )

    status = db.Column(db.Integer, nullable=False, default=int(ProjectStatus.ERFASSUNG))
    rejection_reason = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.String(36), nullable=True, comment="Immutable creator identity")
    created_by_name = db.Column(db.String(200), nullable=False, default="", comment="Display only")

    archived = db.Column(db.Boolean, nullable=False, default=False)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    location_approvals = db.relationship(
        "ProjectLocationApproval",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectLocationApproval.location",
    )

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def distributed_total(self) -> float:
        return math.fsum(float(v or 0) for v in (self.location_distribution or {}).values())

    def positive_locations(self) -> list[str]:
        """Canonical codes of locations with a positive share."""
        codes = []
        for key, qty in (self.location_distribution or {}).items():
            code = resolve_location_code(key)
            if code and float(qty or 0) > 0 and code not in codes:
                codes.append(code)
        return codes

    def quantity_snapshot(self) -> dict:
        return {
            "total_quantity": self.total_quantity,
            "location_distribution": dict(self.location_distribution or {}),
        }

    def approval_for(self, location: str) -> "ProjectLocationApproval | None":
        for approval in self.location_approvals:
            if approval.location == location:
                return approval
        return None

    def outstanding_locations(self) -> list[str]:
        return [a.location for a in self.location_approvals if a.required and not a.approved]

    def to_dict(self, include_approvals: bool = False) -> dict:
        d = {
            "id": self.id,
            "project_number": self.project_number,
            "customer": self.customer,
            "customer_id": self.customer_id,
            "article_number": self.article_number,
            "article_description": self.article_description,
            "article_id": self.article_id,
            "description": self.description,
            "product_group": self.product_group,
            "price": self.price,
            "total_quantity": self.total_quantity,
            "quantity_fixed": bool(self.quantity_fixed),
            "first_delivery": self.first_delivery.isoformat() if self.first_delivery else None,
            "last_delivery": self.last_delivery.isoformat() if self.last_delivery else None,
            "location_distribution": dict(self.location_distribution or {}),
            "distributed_total": self.distributed_total,
            "status": self.status,
            "status_info": describe_status(self.status),
            "rejection_reason": self.rejection_reason,
            "created_by_id": self.created_by_id,
            "created_by_name": self.created_by_name,
            "archived": bool(self.archived),
            "archived_at": self.archived_at.isoformat() if self.archived_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_approvals:
            d["location_approvals"] = [a.to_dict() for a in self.location_approvals]
        return d

    def __repr__(self):
        return f"<ManufacturingProject #{self.project_number} status={self.status}>"


class ProjectLocationApproval(db.Model):
    """One row per location that must confirm a project during planning review."""

    __tablename__ = "project_location_approvals"
    __table_args__ = (
        db.UniqueConstraint("project_id", "location", name="uq_location_approval_project_location"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.String(36), db.ForeignKey("manufacturing_projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    location = db.Column(db.String(30), nullable=False, comment="Canonical location code")
    required = db.Column(db.Boolean, nullable=False, default=True)
    approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_by_id = db.Column(db.String(36), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    project = db.relationship("ManufacturingProject", back_populates="location_approvals")

    def to_dict(self):
        return {
            "location": self.location,
            "required": self.required,
            "approved": self.approved,
            "approved_by_id": self.approved_by_id,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Transition table
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransitionRule:
    """
    One row of the workflow table.

    ``to_status`` is None for the archive action (status is kept).
    ``creator_only`` rules additionally require the actor's identity to equal
    the project's ``created_by_id``.  Rules with no roles are system-only.
    """
    action: str
    from_statuses: frozenset
    roles: frozenset
    to_status: ProjectStatus | None
    history_action: str
    requires_reason: bool = False
    creator_only: bool = False
    notification: str | None = None

    @property
    def system_only(self) -> bool:
        return not self.roles

    def applies_to(self, action: str, status, role: Role, *, system: bool = False) -> bool:
        if action != self.action or status not in self.from_statuses:
            return False
        if self.system_only:
            return system
        return role in self.roles


_PLANNING_REVIEWERS = PLANNING_ROLES | {Role.ADMIN}

PROJECT_TRANSITIONS: tuple[TransitionRule, ...] = (
    TransitionRule(
        action="submit",
        from_statuses=frozenset({None}),
        roles=frozenset({Role.VERTRIEB}),
        to_status=ProjectStatus.PRUEFUNG_SUPPLY_CHAIN,
        history_action="create",
        notification="task_assignment",
    ),
    TransitionRule(
        action="resubmit",
        from_statuses=frozenset({ProjectStatus.PRUEFUNG_VERTRIEB}),
        roles=frozenset({Role.VERTRIEB}),
        to_status=ProjectStatus.PRUEFUNG_SUPPLY_CHAIN,
        history_action="send_to_progress",
        creator_only=True,
        notification="task_assignment",
    ),
    TransitionRule(
        action="approve",
        from_statuses=frozenset({ProjectStatus.PRUEFUNG_SUPPLY_CHAIN}),
        roles=frozenset({Role.SUPPLY_CHAIN}),
        to_status=ProjectStatus.PRUEFUNG_PLANUNG,
        history_action="approved_forwarded",
        notification="planning_assignment",
    ),
    TransitionRule(
        action="reject",
        from_statuses=frozenset({ProjectStatus.PRUEFUNG_SUPPLY_CHAIN}),
        roles=frozenset({Role.SUPPLY_CHAIN}),
        to_status=ProjectStatus.ABGELEHNT,
        history_action="reject",
        requires_reason=True,
        notification="supply_chain_rejection",
    ),
    TransitionRule(
        action="correct",
        from_statuses=frozenset({ProjectStatus.PRUEFUNG_SUPPLY_CHAIN}),
        roles=frozenset({Role.SUPPLY_CHAIN}),
        to_status=ProjectStatus.PRUEFUNG_VERTRIEB,
        history_action="correction",
        requires_reason=True,
        notification="project_correction",
    ),
    TransitionRule(
        action="approve",
        from_statuses=frozenset({ProjectStatus.PRUEFUNG_PLANUNG}),
        roles=_PLANNING_REVIEWERS,
        to_status=ProjectStatus.GENEHMIGT,
        history_action="approve",
        notification="project_approval",
    ),
    TransitionRule(
        action="correct",
        from_statuses=frozenset({ProjectStatus.PRUEFUNG_PLANUNG}),
        roles=_PLANNING_REVIEWERS,
        to_status=ProjectStatus.PRUEFUNG_SUPPLY_CHAIN,
        history_action="correction",
        requires_reason=True,
        notification="planning_correction",
    ),
    TransitionRule(
        action="reject",
        from_statuses=frozenset({ProjectStatus.GENEHMIGT}),
        roles=ALL_ROLES,
        to_status=ProjectStatus.ABGELEHNT,
        history_action="rejected",
        requires_reason=True,
        creator_only=True,
        notification="creator_rejection",
    ),
    TransitionRule(
        action="auto_complete",
        from_statuses=frozenset({ProjectStatus.GENEHMIGT}),
        roles=frozenset(),
        to_status=ProjectStatus.ABGESCHLOSSEN,
        history_action="archive",
    ),
    TransitionRule(
        action="archive",
        from_statuses=frozenset({
            ProjectStatus.GENEHMIGT, ProjectStatus.ABGELEHNT, ProjectStatus.ABGESCHLOSSEN,
        }),
        roles=frozenset({Role.VERTRIEB}),
        to_status=None,
        history_action="archive",
        creator_only=True,
    ),
)

TRANSITION_ACTIONS = frozenset(rule.action for rule in PROJECT_TRANSITIONS)


def find_transition_rule(action: str, status, role: Role, *, system: bool = False) -> TransitionRule | None:
    """Return the rule for (action, status, role), or None if none applies."""
    for rule in PROJECT_TRANSITIONS:
        if rule.applies_to(action, status, role, system=system):
            return rule
    return None


def rules_for_status(status) -> list[TransitionRule]:
    return [rule for rule in PROJECT_TRANSITIONS if status in rule.from_statuses]
