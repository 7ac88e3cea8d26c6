"""
Production Approval Workflow
Email Service.

Sends workflow notification emails from short named templates.
When SMTP is not configured, emails are logged but not sent (dev/test mode).
With SMTP configured, emails are queued and sent by the send_queued_emails
job so no request waits on the mail relay.

Every email, sent or not, is recorded in EmailLog for audit.

Configuration (env vars):
    MAIL_SERVER          SMTP host (default: None, log-only mode)
    MAIL_PORT            SMTP port (default: 587)
    MAIL_USE_TLS         Use TLS (default: true)
    MAIL_USERNAME        SMTP username
    MAIL_PASSWORD        SMTP password
    MAIL_DEFAULT_SENDER  Default from address
"""

from __future__ import annotations

import logging
import smtplib
import threading
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from flask import current_app
from markupsafe import escape

from app.models import db
from app.models.scheduling import EmailLog

logger = logging.getLogger(__name__)

# One drain at a time per process
_delivery_lock = threading.Lock()


_LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <div style="background: #1e293b; color: white; padding: 16px 24px;">
        <h2 style="margin: 0; font-size: 18px;">Projekt #{project_number}: {customer}</h2>
        <p style="margin: 4px 0 0; color: #94a3b8; font-size: 13px;">{article_number} {article_description}</p>
    </div>
    <div style="background: #f8fafc; padding: 24px; border: 1px solid #e2e8f0; border-top: none;">
        <p style="color: #334155; line-height: 1.6;">{body}</p>
        {details}
    </div>
</div>
"""

_TEMPLATES: dict[str, dict[str, str]] = {
    "task_assignment": {
        "subject": "Neues Projekt zur Prüfung: #{project_number} {customer}",
        "body": "{actor_name} hat ein Projekt zur Prüfung durch SupplyChain eingereicht.",
    },
    "planning_assignment": {
        "subject": "Planungsprüfung erforderlich: #{project_number} {customer}",
        "body": "SupplyChain hat das Projekt an die Standortplanung weitergeleitet ({locations}).",
    },
    "supply_chain_rejection": {
        "subject": "Projekt abgelehnt: #{project_number} {customer}",
        "body": "SupplyChain ({actor_name}) hat Ihr Projekt abgelehnt. Grund: {reason}",
    },
    "project_correction": {
        "subject": "Korrektur zu Ihrem Projekt: #{project_number} {customer}",
        "body": "SupplyChain ({actor_name}) hat Ihr Projekt korrigiert. Grund: {reason}",
    },
    "creator_rejection": {
        "subject": "Projekt vom Ersteller storniert: #{project_number} {customer}",
        "body": "{actor_name} hat das genehmigte Projekt storniert. Grund: {reason}",
    },
    "planning_correction": {
        "subject": "Planungskorrektur: #{project_number} {customer}",
        "body": "Die Standortplanung ({actor_name}) hat Mengen korrigiert. Grund: {reason}",
    },
    "project_approval": {
        "subject": "Projekt genehmigt: #{project_number} {customer}",
        "body": "Alle Standorte haben Ihr Projekt genehmigt.",
    },
}


class EmailService:
    """
    Email sending service with template support.

    In development/test mode (no MAIL_SERVER configured), emails are
    recorded with status ``logged`` and written to the application log.
    """

    @staticmethod
    def is_configured() -> bool:
        return bool(current_app.config.get("MAIL_SERVER"))

    @staticmethod
    def get_template(template_name: str) -> dict[str, str] | None:
        return _TEMPLATES.get(template_name)

    @staticmethod
    def template_names() -> list[str]:
        return sorted(_TEMPLATES)

    @classmethod
    def send(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        subject: str,
        html_body: str,
        template_name: str | None = None,
        recipient_user_id: str | None = None,
        project_id: str | None = None,
        triggered_by_id: str | None = None,
    ) -> EmailLog:
        """
        Record an email for delivery.

        Without SMTP the row is finished as ``logged`` right away.  With SMTP
        it stays ``queued`` and no connection is opened here; ``deliver_queued``
        (the ``send_queued_emails`` job) does the sending.
        """
        log = EmailLog(
            recipient_email=to_email,
            recipient_name=to_name,
            recipient_user_id=recipient_user_id,
            subject=subject,
            html_body=html_body,
            template_name=template_name,
            status="queued",
            project_id=project_id,
            triggered_by_id=triggered_by_id,
        )
        db.session.add(log)
        db.session.flush()

        if not cls.is_configured():
            log.status = "logged"
            log.sent_at = datetime.now(timezone.utc)
            logger.info(
                "Email (log only): to=%s subject='%s' template=%s",
                to_email, subject, template_name,
                extra={"project_id": project_id},
            )
            return log

        logger.debug("Email queued: to=%s subject='%s'", to_email, subject,
                     extra={"project_id": project_id})
        return log

    @classmethod
    def deliver(cls, log: EmailLog) -> bool:
        """
        Send one queued row over SMTP.

        SMTP failures are recorded on the row (status ``failed``) and logged;
        they are not raised.  The caller commits.
        """
        try:
            cls._send_smtp(to_email=log.recipient_email, to_name=log.recipient_name,
                           subject=log.subject, html_body=log.html_body or "")
        except (smtplib.SMTPException, OSError) as exc:
            log.status = "failed"
            log.error_message = str(exc)[:1000]
            logger.error("Email failed: to=%s error=%s", log.recipient_email, exc,
                         extra={"project_id": log.project_id})
            return False

        log.status = "sent"
        log.sent_at = datetime.now(timezone.utc)
        logger.info("Email sent: to=%s subject='%s'", log.recipient_email, log.subject,
                    extra={"project_id": log.project_id})
        return True

    @classmethod
    def deliver_queued(cls, limit: int = 100) -> dict[str, int]:
        """Send up to *limit* queued emails, oldest first."""
        if not cls.is_configured():
            return {"sent": 0, "failed": 0}

        if not _delivery_lock.acquire(blocking=False):
            logger.info("Email delivery already running, skipping")
            return {"sent": 0, "failed": 0}
        try:
            queued = (
                EmailLog.query.filter_by(status="queued")
                .order_by(EmailLog.id)
                .limit(limit)
                .all()
            )
            sent = failed = 0
            for log in queued:
                if cls.deliver(log):
                    sent += 1
                else:
                    failed += 1
                db.session.commit()
        finally:
            _delivery_lock.release()
        return {"sent": sent, "failed": failed}

    @classmethod
    def send_from_template(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        template_name: str,
        context: dict[str, Any],
        recipient_user_id: str | None = None,
        project_id: str | None = None,
        triggered_by_id: str | None = None,
    ) -> EmailLog | None:
        """
        Send an email using a named template.

        Template variables are interpolated from the context dict; missing
        keys are left as ``{key}``.  Values are HTML-escaped in the body;
        pass pre-built markup as ``markupsafe.Markup``.
        """
        template = cls.get_template(template_name)
        if not template:
            logger.warning("Email template not found: %s", template_name)
            return None

        subject = template["subject"].format_map(_SafeDict(context))
        html_ctx = _SafeDict({key: escape(value) for key, value in context.items()})
        body = template["body"].format_map(html_ctx)
        html_body = _LAYOUT.format_map(_SafeDict(html_ctx, body=body, details=html_ctx.get("details", "")))

        return cls.send(
            to_email=to_email,
            to_name=to_name,
            subject=subject,
            html_body=html_body,
            template_name=template_name,
            recipient_user_id=recipient_user_id,
            project_id=project_id,
            triggered_by_id=triggered_by_id,
        )

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None,
                   subject: str, html_body: str) -> None:
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        use_tls = cfg.get("MAIL_USE_TLS", True)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER") or f"noreply@{server}"

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(server, port, timeout=30) as smtp:
            if use_tls:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)


class _SafeDict(dict):
    """Dict that returns {key} for missing keys instead of raising."""

    def __missing__(self, key):
        return f"{{{key}}}"
