"""
Shared pytest fixtures for the Production Approval Workflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / users: User directory rows, one per role
    - actor_for: Actor helper for service-level tests
    - auth_headers: Bearer header for API tests
    - make_project: ORM project factory in any status
    - submitted_project: project submitted through the workflow engine
"""

from datetime import date, timedelta

import pytest

from app import create_app
from app.models import db as _db
from app.models.auth import ROLE_LABELS, Role, User
from app.models.project import ManufacturingProject, ProjectLocationApproval
from app.models.status import ProjectStatus
from app.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        app.config["NOTIFICATIONS_ENABLED"] = True
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Identity fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Factory: create an active User for *role*."""
    counter = {"n": 0}

    def _make(role=Role.VERTRIEB, *, email=None, display_name=None, active=True):
        role = Role(role)
        counter["n"] += 1
        user = User(
            email=email or f"{role.value}.{counter['n']}@example.test",
            display_name=display_name or ROLE_LABELS[role],
            role=role.value,
            active=active,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def users(make_user):
    """One active user per role, keyed by Role."""
    return {role: make_user(role) for role in Role}


@pytest.fixture()
def actor_for(users):
    """Actor of the seeded user holding *role*."""
    def _actor(role):
        return users[Role(role)].to_actor()
    return _actor


@pytest.fixture()
def auth_headers(users):
    """Authorization header for the seeded user holding *role*."""
    def _headers(role):
        user = users[Role(role)]
        token = generate_access_token(user.id, user.role, user.display_name, user.email)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ── Project fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def make_project(users):
    """
    Factory: insert a project directly in *status*.

    Projects in PRUEFUNG_PLANUNG get one required approval row per location
    with a positive quantity, as if supply chain had forwarded them.
    """
    counter = {"n": 1000}

    def _make(status=ProjectStatus.PRUEFUNG_SUPPLY_CHAIN, *, distribution=None, total=1000,
              creator=None, archived=False, last_delivery=None, **fields):
        creator = creator or users[Role.VERTRIEB]
        counter["n"] += 1
        project = ManufacturingProject(
            project_number=counter["n"],
            customer=fields.pop("customer", "Backhaus Nord GmbH"),
            article_number=fields.pop("article_number", f"ART-{counter['n']}"),
            article_description=fields.pop("article_description", "Weizenmischbrot"),
            total_quantity=total,
            location_distribution=distribution if distribution is not None else {"gudensberg": 600, "brenz": 400},
            status=int(status),
            created_by_id=creator.id,
            created_by_name=creator.display_name,
            archived=archived,
            last_delivery=last_delivery,
            **fields,
        )
        if int(status) == ProjectStatus.PRUEFUNG_PLANUNG:
            for code in project.positive_locations():
                project.location_approvals.append(ProjectLocationApproval(location=code, required=True))
        _db.session.add(project)
        _db.session.commit()
        return project

    return _make


@pytest.fixture()
def project_payload():
    return {
        "customer": "Backhaus Nord GmbH",
        "article_number": "ART-1001",
        "article_description": "Weizenmischbrot 750g",
        "total_quantity": 1000,
        "location_distribution": {"gudensberg": 600, "brenz": 400},
        "first_delivery": (date.today() + timedelta(days=7)).isoformat(),
        "last_delivery": (date.today() + timedelta(days=60)).isoformat(),
    }


@pytest.fixture()
def submitted_project(actor_for, project_payload):
    """Project submitted by vertrieb; status PRUEFUNG_SUPPLY_CHAIN."""
    from app.services.project_workflow import submit_project

    result = submit_project(actor_for(Role.VERTRIEB), project_payload)
    return _db.session.get(ManufacturingProject, result["project_id"])
