"""
WSGI entry point and Flask-Migrate / Alembic entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi issue-token <user_id>
    flask --app wsgi run-job auto_complete_projects
"""

from app import create_app

app = create_app()
