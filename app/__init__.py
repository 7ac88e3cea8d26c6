"""
Production Approval Workflow
Flask Application Factory.

Usage:
    from app import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import importlib
import logging
import os

import click
from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_migrate import Migrate

from app.config import config
from app.models import db
from app.auth import init_auth
from app.middleware.logging_config import configure_logging
from app.middleware.timing import init_request_timing
from app.middleware.rate_limiter import init_rate_limits, rate_limit_key
from app.middleware.jwt_auth import init_jwt_middleware

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # ProductionConfig validates its environment on instantiation
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Content-Type guard ───────────────────────────────────────────────
    init_auth(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT identity (sets g.jwt_user_id / g.jwt_role) ───────────────────
    init_jwt_middleware(app)

    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")

    # ── Import all models so Alembic can detect them ─────────────────────
    from app.models import auth as _auth_models              # noqa: F401
    from app.models import project as _project_models        # noqa: F401
    from app.models import history as _history_models        # noqa: F401
    from app.models import scheduling as _scheduling_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name != "production":
        with app.app_context():
            if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
                os.makedirs(app.instance_path, exist_ok=True)
            db.create_all()
            app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from app.blueprints.project_bp import project_bp
    from app.blueprints.history_bp import history_bp
    from app.blueprints.scheduler_bp import scheduler_bp
    from app.blueprints.health_bp import health_bp

    app.register_blueprint(project_bp)
    app.register_blueprint(history_bp)
    app.register_blueprint(scheduler_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("issue-token")
    @click.argument("user_id")
    def issue_token_cmd(user_id):
        """Print an access token for an existing user."""
        from app.models.auth import User
        from app.services.jwt_service import generate_token_for_user

        user = db.session.get(User, user_id)
        if user is None or not user.active:
            raise click.ClickException(f"No active user with id {user_id}")
        click.echo(generate_token_for_user(user)["access_token"])

    @app.cli.command("run-job")
    @click.argument("job_name")
    def run_job_cmd(job_name):
        """Run a registered scheduled job once."""
        from app.services.scheduler_service import SchedulerService

        result = SchedulerService.run_job(job_name)
        click.echo(f"{result['job_name']}: {result['status']}")
        if result.get("result"):
            click.echo(result["result"])
        if result["status"] in ("error", "failed"):
            raise click.ClickException(result.get("error") or "job failed")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── Scheduler initialization (import jobs to register them) ──────────
    importlib.import_module("app.services.scheduled_jobs")  # registers @register_job handlers
    from app.services.scheduler_service import SchedulerService as _SchedulerSvc
    _SchedulerSvc.init_app(app)

    return app
