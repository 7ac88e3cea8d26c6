#!/usr/bin/env python3
"""
Production Approval Workflow: Demo Data Seed Script.

Creates one user per role and a handful of projects walked through the
workflow (submitted, forwarded to planning, approved, rejected).  Safe to
re-run: users are matched by email and every workflow step carries a fixed
operation_id, so repeated runs replay instead of duplicating.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --tokens     # also print access tokens
    python scripts/seed_demo_data.py --verbose
"""

import argparse
import sys
from datetime import date, timedelta

sys.path.insert(0, ".")

from app import create_app
from app.models import db
from app.models.auth import ROLE_LABELS, Role, User
from app.services.jwt_service import generate_token_for_user
from app.services.project_workflow import submit_project, transition_project

DEMO_DOMAIN = "demo.approval-workflow.local"

# (key, customer, article, total, distribution, steps)
# steps: (role, action, extra kwargs)
PROJECTS = [
    ("p1", "Backhaus Nord GmbH", "ART-1001", 1200, {"gudensberg": 700, "brenz": 500}, []),
    ("p2", "Frischemarkt AG", "ART-2040", 800, {"storkow": 800}, [
        (Role.SUPPLY_CHAIN, "approve", {}),
    ]),
    ("p3", "Müller Feinkost", "ART-3300", 2000, {"visbek": 1500, "Döbeln": 500}, [
        (Role.SUPPLY_CHAIN, "approve", {}),
        (Role.PLANUNG_VISBEK, "approve", {}),
        (Role.PLANUNG_DOEBELN, "approve", {}),
    ]),
    ("p4", "Kantine Süd eG", "ART-4100", 300, {"brenz": 300}, [
        (Role.SUPPLY_CHAIN, "reject", {"reason": "Kapazität im Zeitraum ausgeschöpft"}),
    ]),
    ("p5", "Hofladen Weber", "ART-5005", 450, {"gudensberg": 450}, [
        (Role.SUPPLY_CHAIN, "correct", {
            "reason": "Menge an Mindestlos angepasst",
            "total_quantity": 500,
            "location_distribution": {"gudensberg": 500},
        }),
    ]),
]


def seed_users(verbose=False):
    users = {}
    created = 0
    for role in Role:
        email = f"{role.value}@{DEMO_DOMAIN}"
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, display_name=ROLE_LABELS[role], role=role.value, active=True)
            db.session.add(user)
            created += 1
        users[role] = user
    db.session.commit()
    if verbose:
        print(f"   users: {created} created, {len(users) - created} existing")
    return users


def seed_projects(users, verbose=False):
    sales = users[Role.VERTRIEB].to_actor()
    today = date.today()
    for index, (key, customer, article, total, distribution, steps) in enumerate(PROJECTS):
        result = submit_project(
            sales,
            {
                "customer": customer,
                "article_number": article,
                "article_description": f"Demoartikel {article}",
                "total_quantity": total,
                "location_distribution": distribution,
                "first_delivery": (today + timedelta(days=14 + index * 7)).isoformat(),
                "last_delivery": (today + timedelta(days=90 + index * 7)).isoformat(),
            },
            operation_id=f"seed-{key}-submit",
        )
        project_id = result["project_id"]
        for step_no, (role, action, extra) in enumerate(steps, 1):
            result = transition_project(
                project_id, action, users[role].to_actor(),
                operation_id=f"seed-{key}-{step_no}",
                **extra,
            )
        if verbose:
            state = "replayed" if result["replayed"] else "seeded"
            print(f"   #{result['project_number']} {customer}: {result['new_status']} ({state})")


def main():
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--tokens", action="store_true", help="print an access token per user")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    app = create_app()
    app.config["NOTIFICATIONS_ENABLED"] = False
    print(f"DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        db.create_all()
        users = seed_users(verbose=args.verbose)
        seed_projects(users, verbose=args.verbose)
        if args.tokens:
            for role, user in users.items():
                print(f"{role.value:<20} {generate_token_for_user(user)['access_token']}")
    print("Demo data seed complete")


if __name__ == "__main__":
    main()
