"""
Production Approval Workflow
Scheduling & outbound mail models.

Models:
    - ScheduledJob: persisted job registry (run history + config)
    - EmailLog:     outbound notification audit trail
"""

from datetime import datetime, timezone

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

JOB_STATUSES = {"active", "paused", "completed", "failed"}
EMAIL_STATUSES = {"queued", "sent", "logged", "failed"}


class ScheduledJob(db.Model):
    """
    Registry of scheduled background jobs.

    Tracks last run time and run counters.  Rows are created lazily the
    first time a registered job runs.
    """

    __tablename__ = "scheduled_jobs"

    id = db.Column(db.Integer, primary_key=True)
    job_name = db.Column(db.String(100), unique=True, nullable=False,
                         comment="Unique job identifier, e.g. auto_complete_projects")
    description = db.Column(db.String(500), default="")
    schedule_type = db.Column(db.String(30), default="cron",
                              comment="cron, interval, once")
    schedule_config = db.Column(db.JSON, default=dict)
    status = db.Column(db.String(20), default="active",
                       comment="active, paused, completed, failed")
    is_enabled = db.Column(db.Boolean, default=True)

    last_run_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_run_status = db.Column(db.String(20), nullable=True,
                                comment="success, failed, skipped")
    last_run_duration_ms = db.Column(db.Integer, nullable=True)
    last_run_result = db.Column(db.JSON, nullable=True)
    run_count = db.Column(db.Integer, default=0)
    error_count = db.Column(db.Integer, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def record_run(self, *, status="success", duration_ms=0, result=None, error=None):
        self.last_run_at = datetime.now(timezone.utc)
        self.last_run_status = status
        self.last_run_duration_ms = duration_ms
        self.last_run_result = result
        self.run_count = (self.run_count or 0) + 1
        if status == "failed":
            self.error_count = (self.error_count or 0) + 1
            self.last_error = str(error) if error else None

    def to_dict(self):
        return {
            "id": self.id,
            "job_name": self.job_name,
            "description": self.description,
            "schedule_type": self.schedule_type,
            "schedule_config": self.schedule_config,
            "status": self.status,
            "is_enabled": self.is_enabled,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_status": self.last_run_status,
            "last_run_duration_ms": self.last_run_duration_ms,
            "last_run_result": self.last_run_result,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_error": self.last_error,
        }

    def __repr__(self):
        return f"<ScheduledJob {self.job_name} [{self.status}]>"


class EmailLog(db.Model):
    """
    Outbound email audit log.

    One row per recipient per notification.  ``status`` is ``logged`` when
    no SMTP server is configured and the message was only written to the log.
    With SMTP configured rows start ``queued`` and keep the rendered body
    until the delivery job picks them up.
    """

    __tablename__ = "email_logs"
    __table_args__ = (
        db.Index("idx_email_log_project", "project_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    recipient_name = db.Column(db.String(200), nullable=True)
    recipient_user_id = db.Column(db.String(36), nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    html_body = db.Column(db.Text, nullable=True)
    template_name = db.Column(db.String(100), nullable=True,
                              comment="Notification type that produced this email")
    status = db.Column(db.String(20), default="queued",
                       comment="queued, sent, logged, failed")
    error_message = db.Column(db.Text, nullable=True)

    project_id = db.Column(db.String(36), nullable=True)
    triggered_by_id = db.Column(db.String(36), nullable=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "recipient_user_id": self.recipient_user_id,
            "subject": self.subject,
            "template_name": self.template_name,
            "status": self.status,
            "error_message": self.error_message,
            "project_id": self.project_id,
            "triggered_by_id": self.triggered_by_id,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<EmailLog {self.id}: {self.subject[:40]} -> {self.recipient_email}>"
