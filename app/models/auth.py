"""
Production Approval Workflow
Identity domain model.

Models:
    - User: directory of people who act on projects (display names,
      notification recipients).  Authorization never reads this table;
      the authenticated actor comes from the access token.

Types:
    - Role:  closed set of workflow roles
    - Actor: the authenticated caller as seen by the service layer
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from app.models import db


class Role(str, Enum):
    VERTRIEB = "vertrieb"
    SUPPLY_CHAIN = "supply_chain"
    PLANUNG = "planung"
    PLANUNG_GUDENSBERG = "planung_gudensberg"
    PLANUNG_BRENZ = "planung_brenz"
    PLANUNG_STORKOW = "planung_storkow"
    PLANUNG_VISBEK = "planung_visbek"
    PLANUNG_DOEBELN = "planung_doebeln"
    ADMIN = "admin"

    @property
    def location(self) -> str | None:
        """Location code of a location-scoped planning role, else None."""
        if self.value.startswith("planung_"):
            return self.value[len("planung_"):]
        return None

    @property
    def is_planning(self) -> bool:
        return self is Role.PLANUNG or self.location is not None

    @classmethod
    def parse(cls, value) -> "Role | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


ALL_ROLES = frozenset(Role)
LOCATION_PLANNING_ROLES = frozenset(r for r in Role if r.location is not None)
PLANNING_ROLES = LOCATION_PLANNING_ROLES | {Role.PLANUNG}

ROLE_LABELS = {
    Role.ADMIN: "Administrator",
    Role.SUPPLY_CHAIN: "SupplyChain",
    Role.VERTRIEB: "Vertrieb",
    Role.PLANUNG: "Planung",
    Role.PLANUNG_STORKOW: "Planung Storkow",
    Role.PLANUNG_BRENZ: "Planung Brenz",
    Role.PLANUNG_GUDENSBERG: "Planung Gudensberg",
    Role.PLANUNG_DOEBELN: "Planung Döbeln",
    Role.PLANUNG_VISBEK: "Planung Visbek",
}

SYSTEM_USER_ID = "00000000-0000-0000-0000-000000000000"
SYSTEM_USER_NAME = "System"


@dataclass(frozen=True)
class Actor:
    """Authenticated caller.  ``id`` is the only field used for identity checks."""
    id: str
    role: Role
    display_name: str = ""
    email: str | None = None

    @property
    def is_system(self) -> bool:
        return self.id == SYSTEM_USER_ID


SYSTEM_ACTOR = Actor(id=SYSTEM_USER_ID, role=Role.ADMIN, display_name=SYSTEM_USER_NAME)


def _uuid():
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_active", "role", "active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(200), nullable=False, unique=True)
    display_name = db.Column(db.String(200), nullable=False, default="")
    role = db.Column(db.String(30), nullable=False, default=Role.VERTRIEB.value)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def role_enum(self) -> Role | None:
        return Role.parse(self.role)

    def to_actor(self) -> Actor:
        return Actor(id=self.id, role=Role(self.role), display_name=self.display_name, email=self.email)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
            "role_label": ROLE_LABELS.get(self.role_enum, self.role),
            "active": self.active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
