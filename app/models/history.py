"""
Production Approval Workflow
Project history domain model.

Models:
    - ProjectHistory: immutable, append-only ledger of every workflow
      transition (actor, status labels, reason, before/after snapshot).
"""

from datetime import datetime, timezone

from sqlalchemy import event

from app.models import db

# ── Constants ────────────────────────────────────────────────────────────────

HISTORY_ACTIONS = {
    "create",
    "approve",
    "approved_forwarded",
    "location_approved",
    "reject",
    "rejected",
    "correct",
    "correction",
    "corrected",
    "archive",
    "send_to_progress",
}


class ProjectHistory(db.Model):
    """
    One row per transition.  Rows are never updated or deleted.

    Display order is newest-first; audit replay walks oldest-first.  Ties
    on ``created_at`` are broken by the autoincrement ``id``.
    """

    __tablename__ = "project_history"
    __table_args__ = (
        db.UniqueConstraint("project_id", "operation_id", name="uq_history_project_operation"),
        db.Index("idx_history_project_created", "project_id", "created_at"),
        db.Index("idx_history_user", "user_id"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("manufacturing_projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id = db.Column(db.String(36), nullable=False, comment="Actor identity")
    user_name = db.Column(db.String(200), nullable=False, default="", comment="Display name at write time")
    action = db.Column(db.String(30), nullable=False, comment="create | approve | correction | …")
    previous_status = db.Column(db.String(60), nullable=True, comment="Status label before")
    new_status = db.Column(db.String(60), nullable=True, comment="Status label after")
    reason = db.Column(db.Text, nullable=True)

    old_data = db.Column(db.JSON, nullable=True, comment="Quantity/distribution before a correction")
    new_data = db.Column(db.JSON, nullable=True, comment="Quantity/distribution after a correction")
    location = db.Column(db.String(30), nullable=True, comment="Location code for per-location approvals")
    operation_id = db.Column(db.String(100), nullable=True, comment="Client idempotency key")

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "action": self.action,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "reason": self.reason,
            "old_data": self.old_data,
            "new_data": self.new_data,
            "location": self.location,
            "operation_id": self.operation_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ProjectHistory {self.id}: {self.action} on {self.project_id}>"


@event.listens_for(ProjectHistory, "before_update")
def _refuse_update(mapper, connection, target):
    raise RuntimeError(f"ProjectHistory {target.id} is immutable")


@event.listens_for(ProjectHistory, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise RuntimeError(f"ProjectHistory {target.id} is immutable")


# ── Convenience writer ───────────────────────────────────────────────────────

def write_history(
    *,
    project_id: str,
    action: str,
    user_id: str,
    user_name: str = "",
    previous_status: str | None = None,
    new_status: str | None = None,
    reason: str | None = None,
    old_data: dict | None = None,
    new_data: dict | None = None,
    location: str | None = None,
    operation_id: str | None = None,
) -> ProjectHistory:
    """
    Append a single history row.  Uses ``flush`` so the caller keeps
    transaction control; the row commits together with the status change.
    """
    if action not in HISTORY_ACTIONS:
        raise ValueError(f"Unknown history action: {action}")

    entry = ProjectHistory(
        project_id=project_id,
        action=action,
        user_id=user_id,
        user_name=user_name or "",
        previous_status=previous_status,
        new_status=new_status,
        reason=reason,
        old_data=old_data,
        new_data=new_data,
        location=location,
        operation_id=operation_id,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
