"""
Production Approval Workflow
Scheduler Service.

Lightweight job registry + runner.  Jobs are plain functions registered by
name; an external cron (or the HTTP/CLI trigger) calls ``run_job``.  Each
run is recorded on its ScheduledJob row.

Architecture:
    - register_job():   decorator that adds a function to the registry
    - SchedulerService: persistence + execution inside the Flask app context
    - Manual trigger via API (POST /api/v1/scheduler/jobs/<name>/trigger)
      and CLI (flask run-job <name>)
    - run_in_background(): one-off run on a daemon thread (mail delivery)
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import nullcontext
from typing import Callable

from flask import Flask, has_app_context

from app.models import db
from app.models.scheduling import ScheduledJob

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Job Registry
# ═══════════════════════════════════════════════════════════════════════════

_job_registry: dict[str, Callable] = {}


def register_job(name: str):
    """Decorator to register a job function.

    Usage:
        @register_job("auto_complete_projects")
        def auto_complete(app):
            ...
    """
    def decorator(fn: Callable) -> Callable:
        _job_registry[name] = fn
        return fn
    return decorator


def get_registered_jobs() -> dict[str, Callable]:
    return dict(_job_registry)


class SchedulerService:
    """
    Manages job persistence and execution.

    Jobs run inside the application context; when one is already active
    (request, CLI command, test) it is reused so the job shares its session.
    """

    _app: Flask | None = None

    @classmethod
    def init_app(cls, app: Flask) -> None:
        cls._app = app
        app.extensions["scheduler"] = cls
        logger.info("SchedulerService initialized with %d registered jobs",
                    len(_job_registry))

    @classmethod
    def _context(cls):
        return nullcontext() if has_app_context() else cls._app.app_context()

    @staticmethod
    def _get_or_create_record(job_name: str, fn: Callable) -> ScheduledJob:
        record = ScheduledJob.query.filter_by(job_name=job_name).first()
        if record is None:
            record = ScheduledJob(
                job_name=job_name,
                description=(fn.__doc__ or f"Scheduled job: {job_name}").strip().splitlines()[0],
                schedule_type="cron",
                schedule_config=_get_default_schedule(job_name),
                status="active",
                is_enabled=True,
                run_count=0,
                error_count=0,
            )
            db.session.add(record)
            db.session.flush()
        return record

    @classmethod
    def ensure_jobs_registered(cls) -> list[ScheduledJob]:
        """Create a ScheduledJob row for every registered job that has none."""
        if not cls._app:
            return []
        created = []
        with cls._context():
            for name, fn in _job_registry.items():
                if ScheduledJob.query.filter_by(job_name=name).first() is None:
                    created.append(cls._get_or_create_record(name, fn))
            if created:
                db.session.commit()
                logger.info("Created %d scheduled job records", len(created))
        return created

    @classmethod
    def run_job(cls, job_name: str) -> dict:
        """
        Execute a single job by name.

        Returns:
            Dict with job_name, status (success | failed | skipped | error),
            duration_ms, result or error.
        """
        fn = _job_registry.get(job_name)
        if not fn:
            return {"job_name": job_name, "status": "error", "error": f"Unknown job: {job_name}"}
        if not cls._app:
            return {"job_name": job_name, "status": "error", "error": "Scheduler not initialized"}

        with cls._context():
            record = cls._get_or_create_record(job_name, fn)
            if not record.is_enabled:
                db.session.commit()
                logger.info("Job %s is paused, skipping", job_name)
                return {"job_name": job_name, "status": "skipped", "duration_ms": 0,
                        "result": None, "error": None}
            db.session.commit()

            start = time.monotonic()
            result = None
            error = None
            status = "success"
            try:
                result = fn(cls._app)
            except Exception as exc:
                db.session.rollback()
                status = "failed"
                error = str(exc)
                logger.exception("Job %s failed: %s", job_name, exc)

            duration_ms = int((time.monotonic() - start) * 1000)

            try:
                record = ScheduledJob.query.filter_by(job_name=job_name).first()
                record.record_run(
                    status=status,
                    duration_ms=duration_ms,
                    result=result if isinstance(result, dict) else {"output": str(result)},
                    error=error,
                )
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.exception("Failed to update job record for %s", job_name)

        logger.info("Job %s finished: %s in %dms", job_name, status, duration_ms)
        return {
            "job_name": job_name,
            "status": status,
            "duration_ms": duration_ms,
            "result": result,
            "error": error,
        }

    @classmethod
    def run_in_background(cls, job_name: str) -> threading.Thread:
        """Start *job_name* on a daemon thread with its own app context."""
        thread = threading.Thread(
            target=cls.run_job, args=(job_name,),
            name=f"job-{job_name}", daemon=True,
        )
        thread.start()
        logger.debug("Job %s started in background", job_name)
        return thread

    @classmethod
    def list_jobs(cls) -> list[dict]:
        jobs = []
        for name in _job_registry:
            job_record = ScheduledJob.query.filter_by(job_name=name).first()
            jobs.append({
                "job_name": name,
                "registered": True,
                "db_record": job_record.to_dict() if job_record else None,
            })
        return jobs


def _get_default_schedule(job_name: str) -> dict:
    defaults = {
        "auto_complete_projects": {"hour": "1", "minute": "0", "description": "Daily at 01:00"},
        "send_queued_emails": {"hour": "*", "minute": "*/5", "description": "Every 5 minutes"},
    }
    return defaults.get(job_name, {"hour": "0", "minute": "0",
                                   "description": "Daily at midnight"})
