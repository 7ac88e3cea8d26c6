"""
Project workflow engine: state machine, authorization, atomicity.

Tests cover:
  - submission: validation, canonical location keys, numbering, idempotency
  - every row of the transition table, plus refused (action, status, role) tuples
  - creator identity checks (display names never authorize)
  - per-location planning approval and corrections
  - archive flag semantics
  - status + history written together or not at all
  - operation_id replay
"""
import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransientError,
    ValidationError,
)
from app.models import db
from app.models.auth import Role
from app.models.history import ProjectHistory
from app.models.project import (
    TRANSITION_ACTIONS,
    ManufacturingProject,
    ProjectLocationApproval,
    find_transition_rule,
)
from app.models.status import ProjectStatus
from app.services import project_workflow
from app.services.project_workflow import (
    get_available_actions,
    submit_project,
    transition_project,
    validate_transition,
)


def _history(project_id):
    return (
        ProjectHistory.query.filter_by(project_id=project_id)
        .order_by(ProjectHistory.id)
        .all()
    )


def _reload(project_id):
    db.session.expire_all()
    return db.session.get(ManufacturingProject, project_id)


_REFUSED = [
    (status, action, role)
    for status in ProjectStatus
    for action in sorted(TRANSITION_ACTIONS - {"submit"})
    for role in Role
    if find_transition_rule(action, status, role) is None
]


# ═════════════════════════════════════════════════════════════════════════
# SUBMISSION
# ═════════════════════════════════════════════════════════════════════════

class TestSubmit:
    def test_submit_moves_to_supply_chain_review(self, actor_for, project_payload):
        result = submit_project(actor_for(Role.VERTRIEB), project_payload)

        assert result["new_status"] == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
        assert result["project_number"] == 1
        assert result["replayed"] is False

        project = db.session.get(ManufacturingProject, result["project_id"])
        assert project.status == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
        assert project.created_by_id == actor_for(Role.VERTRIEB).id

        entries = _history(project.id)
        assert [e.action for e in entries] == ["create"]
        assert entries[0].previous_status == "Erfassung"
        assert entries[0].new_status == "Prüfung SupplyChain"

    def test_project_numbers_are_sequential(self, actor_for, project_payload):
        first = submit_project(actor_for(Role.VERTRIEB), project_payload)
        second = submit_project(actor_for(Role.VERTRIEB), project_payload)
        assert second["project_number"] == first["project_number"] + 1

    def test_alias_keys_are_stored_canonically(self, actor_for, project_payload):
        project_payload["location_distribution"] = {"Döbeln": 300, "DÃ¶beln": 200, "Brenz": 500}
        result = submit_project(actor_for(Role.VERTRIEB), project_payload)
        project = db.session.get(ManufacturingProject, result["project_id"])
        assert project.location_distribution == {"doebeln": 500.0, "brenz": 500.0}

    @pytest.mark.parametrize("role", [Role.SUPPLY_CHAIN, Role.PLANUNG, Role.PLANUNG_BRENZ, Role.ADMIN])
    def test_only_sales_may_submit(self, actor_for, project_payload, role):
        with pytest.raises(PermissionDenied):
            submit_project(actor_for(role), project_payload)
        assert ManufacturingProject.query.count() == 0

    @pytest.mark.parametrize("change", [
        {"location_distribution": {"gudensberg": 800, "brenz": 400}},   # over-distributed
        {"location_distribution": {}},                                  # nothing distributed
        {"location_distribution": {"hamburg": 100}},                    # unknown location
        {"location_distribution": {"brenz": -1}},                       # negative
        {"total_quantity": 0},
        {"total_quantity": "viel"},
        {"customer": "  "},
        {"article_number": None},
        {"first_delivery": "2026-12-01", "last_delivery": "2026-11-01"},
        {"last_delivery": "next week"},
        {"price": "teuer"},
    ])
    def test_invalid_submissions_create_nothing(self, actor_for, project_payload, change):
        project_payload.update(change)
        with pytest.raises(ValidationError):
            submit_project(actor_for(Role.VERTRIEB), project_payload)
        assert ManufacturingProject.query.count() == 0
        assert ProjectHistory.query.count() == 0

    @pytest.mark.parametrize("raw, expected", [
        ("false", False), ("nein", False), (0, False), (None, False),
        ("true", True), ("Ja", True), (True, True), (1, True),
    ])
    def test_quantity_fixed_parsing(self, actor_for, project_payload, raw, expected):
        project_payload["quantity_fixed"] = raw
        result = submit_project(actor_for(Role.VERTRIEB), project_payload)
        assert db.session.get(ManufacturingProject, result["project_id"]).quantity_fixed is expected

    @pytest.mark.parametrize("raw", ["maybe", 2, [True]])
    def test_unreadable_quantity_fixed(self, actor_for, project_payload, raw):
        project_payload["quantity_fixed"] = raw
        with pytest.raises(ValidationError):
            submit_project(actor_for(Role.VERTRIEB), project_payload)
        assert ManufacturingProject.query.count() == 0

    def test_german_date_format(self, actor_for, project_payload):
        project_payload.update(first_delivery="01.11.2026", last_delivery="15.12.2026")
        result = submit_project(actor_for(Role.VERTRIEB), project_payload)
        project = db.session.get(ManufacturingProject, result["project_id"])
        assert project.last_delivery.isoformat() == "2026-12-15"

    def test_repeated_operation_id_returns_first_project(self, actor_for, project_payload):
        actor = actor_for(Role.VERTRIEB)
        first = submit_project(actor, project_payload, operation_id="op-submit-1")
        again = submit_project(actor, project_payload, operation_id="op-submit-1")

        assert again["replayed"] is True
        assert again["project_id"] == first["project_id"]
        assert ManufacturingProject.query.count() == 1
        assert ProjectHistory.query.count() == 1


# ═════════════════════════════════════════════════════════════════════════
# SUPPLY CHAIN REVIEW
# ═════════════════════════════════════════════════════════════════════════

class TestSupplyChainReview:
    def test_approve_forwards_and_builds_location_ledger(self, actor_for, submitted_project):
        result = transition_project(submitted_project.id, "approve", actor_for(Role.SUPPLY_CHAIN))

        assert result["new_status"] == ProjectStatus.PRUEFUNG_PLANUNG
        assert result["history_action"] == "approved_forwarded"
        assert sorted(result["outstanding_locations"]) == ["brenz", "gudensberg"]
        rows = ProjectLocationApproval.query.filter_by(project_id=submitted_project.id).all()
        assert sorted(r.location for r in rows) == ["brenz", "gudensberg"]
        assert all(r.required and not r.approved for r in rows)

    def test_reject_requires_reason(self, actor_for, submitted_project):
        with pytest.raises(ValidationError):
            transition_project(submitted_project.id, "reject", actor_for(Role.SUPPLY_CHAIN), reason="   ")
        assert _reload(submitted_project.id).status == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
        assert len(_history(submitted_project.id)) == 1

    def test_reject(self, actor_for, submitted_project):
        result = transition_project(
            submitted_project.id, "reject", actor_for(Role.SUPPLY_CHAIN), reason="Keine Kapazität",
        )
        project = _reload(submitted_project.id)
        assert result["new_status"] == ProjectStatus.ABGELEHNT
        assert project.rejection_reason == "Keine Kapazität"
        assert _history(project.id)[-1].action == "reject"
        assert _history(project.id)[-1].reason == "Keine Kapazität"

    def test_correction_returns_to_sales_with_snapshots(self, actor_for, submitted_project):
        result = transition_project(
            submitted_project.id, "correct", actor_for(Role.SUPPLY_CHAIN),
            reason="Mindestlos", total_quantity=1200,
            location_distribution={"gudensberg": 800, "brenz": 400},
        )
        assert result["new_status"] == ProjectStatus.PRUEFUNG_VERTRIEB

        entry = _history(submitted_project.id)[-1]
        assert entry.action == "correction"
        assert entry.old_data["total_quantity"] == 1000
        assert entry.new_data["total_quantity"] == 1200
        assert entry.new_data["location_distribution"] == {"gudensberg": 800.0, "brenz": 400.0}

    def test_supply_chain_correction_blocks_over_distribution(self, actor_for, submitted_project):
        with pytest.raises(ValidationError):
            transition_project(
                submitted_project.id, "correct", actor_for(Role.SUPPLY_CHAIN),
                reason="zu viel", location_distribution={"gudensberg": 900, "brenz": 400},
            )
        assert _reload(submitted_project.id).status == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN

    def test_correction_without_change_is_rejected(self, actor_for, submitted_project):
        with pytest.raises(ValidationError):
            transition_project(
                submitted_project.id, "correct", actor_for(Role.SUPPLY_CHAIN),
                reason="nichts", total_quantity=1000,
            )

    @pytest.mark.parametrize("role", [Role.VERTRIEB, Role.PLANUNG, Role.PLANUNG_BRENZ, Role.ADMIN])
    def test_other_roles_cannot_review(self, actor_for, submitted_project, role):
        with pytest.raises(PermissionDenied):
            transition_project(submitted_project.id, "approve", actor_for(role))
        assert len(_history(submitted_project.id)) == 1


# ═════════════════════════════════════════════════════════════════════════
# SALES RE-CONFIRMATION
# ═════════════════════════════════════════════════════════════════════════

class TestResubmit:
    def test_creator_resubmits_after_correction(self, actor_for, submitted_project):
        transition_project(
            submitted_project.id, "correct", actor_for(Role.SUPPLY_CHAIN),
            reason="Mindestlos", total_quantity=1200,
        )
        result = transition_project(submitted_project.id, "resubmit", actor_for(Role.VERTRIEB))
        assert result["new_status"] == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
        assert _history(submitted_project.id)[-1].action == "send_to_progress"

    def test_other_sales_user_cannot_resubmit(self, make_user, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_VERTRIEB)
        other = make_user(Role.VERTRIEB)
        with pytest.raises(PermissionDenied):
            transition_project(project.id, "resubmit", other.to_actor())


# ═════════════════════════════════════════════════════════════════════════
# PLANNING REVIEW
# ═════════════════════════════════════════════════════════════════════════

class TestPlanningApproval:
    def test_each_location_approves_once(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)

        first = transition_project(project.id, "approve", actor_for(Role.PLANUNG_GUDENSBERG))
        assert first["new_status"] == ProjectStatus.PRUEFUNG_PLANUNG
        assert first["history_action"] == "location_approved"
        assert first["outstanding_locations"] == ["brenz"]

        second = transition_project(project.id, "approve", actor_for(Role.PLANUNG_BRENZ))
        assert second["new_status"] == ProjectStatus.GENEHMIGT
        assert second["history_action"] == "approve"

        entries = _history(project.id)
        assert [(e.action, e.location) for e in entries] == [
            ("location_approved", "gudensberg"),
            ("approve", "brenz"),
        ]

    def test_location_cannot_approve_twice(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        transition_project(project.id, "approve", actor_for(Role.PLANUNG_GUDENSBERG))
        with pytest.raises(ValidationError):
            transition_project(project.id, "approve", actor_for(Role.PLANUNG_GUDENSBERG))

    def test_uninvolved_location_planner_is_refused(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(PermissionDenied):
            transition_project(project.id, "approve", actor_for(Role.PLANUNG_STORKOW))

    def test_location_planner_cannot_name_foreign_location(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(PermissionDenied):
            transition_project(project.id, "approve", actor_for(Role.PLANUNG_GUDENSBERG), location="brenz")

    def test_unscoped_planning_approves_everything_at_once(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        result = transition_project(project.id, "approve", actor_for(Role.PLANUNG))
        assert result["new_status"] == ProjectStatus.GENEHMIGT
        assert [e.action for e in _history(project.id)] == ["approve"]

    def test_admin_approves_named_location(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        result = transition_project(project.id, "approve", actor_for(Role.ADMIN), location="Brenz")
        assert result["history_action"] == "location_approved"
        assert result["outstanding_locations"] == ["gudensberg"]

    def test_unknown_location_is_not_found(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(NotFoundError):
            transition_project(project.id, "approve", actor_for(Role.PLANUNG), location="Hamburg")

    def test_location_outside_ledger_is_invalid(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(ValidationError):
            transition_project(project.id, "approve", actor_for(Role.PLANUNG), location="storkow")

    def test_doebeln_alias_counts_as_involvement(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG, distribution={"Döbeln": 500})
        result = transition_project(project.id, "approve", actor_for(Role.PLANUNG_DOEBELN))
        assert result["new_status"] == ProjectStatus.GENEHMIGT


class TestPlanningCorrection:
    def test_location_planner_corrects_own_share_with_warning(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        result = transition_project(
            project.id, "correct", actor_for(Role.PLANUNG_GUDENSBERG),
            reason="Linie ausgelastet", location_distribution={"gudensberg": 700},
        )
        assert result["new_status"] == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
        assert any("exceeds total quantity" in w for w in result["warnings"])

        project = _reload(project.id)
        assert project.location_distribution == {"gudensberg": 700.0, "brenz": 400.0}
        assert project.location_approvals == []

    def test_location_planner_cannot_touch_other_locations(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(PermissionDenied):
            transition_project(
                project.id, "correct", actor_for(Role.PLANUNG_GUDENSBERG),
                reason="x", location_distribution={"gudensberg": 600, "brenz": 100},
            )
        assert _reload(project.id).status == ProjectStatus.PRUEFUNG_PLANUNG

    def test_location_planner_cannot_change_total(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(PermissionDenied):
            transition_project(
                project.id, "correct", actor_for(Role.PLANUNG_GUDENSBERG),
                reason="x", total_quantity=2000,
            )

    def test_planning_correction_requires_reason(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        with pytest.raises(ValidationError):
            transition_project(project.id, "correct", actor_for(Role.PLANUNG), total_quantity=900)

    def test_reforwarding_after_correction_rebuilds_ledger(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        transition_project(project.id, "approve", actor_for(Role.PLANUNG_GUDENSBERG))
        transition_project(
            project.id, "correct", actor_for(Role.PLANUNG), reason="Umverteilung",
            location_distribution={"storkow": 1000},
        )
        result = transition_project(project.id, "approve", actor_for(Role.SUPPLY_CHAIN))
        assert result["outstanding_locations"] == ["storkow"]


# ═════════════════════════════════════════════════════════════════════════
# AFTER APPROVAL
# ═════════════════════════════════════════════════════════════════════════

class TestCreatorRejection:
    def test_creator_rejects_approved_project(self, actor_for, make_project):
        project = make_project(ProjectStatus.GENEHMIGT)
        result = transition_project(project.id, "reject", actor_for(Role.VERTRIEB), reason="Kunde storniert")
        assert result["new_status"] == ProjectStatus.ABGELEHNT
        assert _history(project.id)[-1].action == "rejected"

    def test_same_display_name_does_not_authorize(self, make_user, make_project):
        u1 = make_user(Role.VERTRIEB, display_name="Max Mustermann")
        u2 = make_user(Role.VERTRIEB, display_name="Max Mustermann")
        project = make_project(ProjectStatus.GENEHMIGT, creator=u1)

        with pytest.raises(PermissionDenied):
            transition_project(project.id, "reject", u2.to_actor(), reason="storniert")
        assert _reload(project.id).status == ProjectStatus.GENEHMIGT
        assert _history(project.id) == []

        transition_project(project.id, "reject", u1.to_actor(), reason="storniert")
        assert _reload(project.id).status == ProjectStatus.ABGELEHNT

    def test_admin_is_not_the_creator(self, actor_for, make_project):
        project = make_project(ProjectStatus.GENEHMIGT)
        with pytest.raises(PermissionDenied):
            transition_project(project.id, "reject", actor_for(Role.ADMIN), reason="x")


class TestArchive:
    @pytest.mark.parametrize("status", [ProjectStatus.GENEHMIGT, ProjectStatus.ABGELEHNT, ProjectStatus.ABGESCHLOSSEN])
    def test_archive_keeps_status(self, actor_for, make_project, status):
        project = make_project(status)
        result = transition_project(project.id, "archive", actor_for(Role.VERTRIEB))
        project = _reload(project.id)
        assert result["archived"] is True
        assert project.archived is True
        assert project.archived_at is not None
        assert project.status == status
        assert _history(project.id)[-1].action == "archive"

    @pytest.mark.parametrize("status", [ProjectStatus.PRUEFUNG_SUPPLY_CHAIN, ProjectStatus.PRUEFUNG_PLANUNG])
    def test_open_projects_cannot_be_archived(self, actor_for, make_project, status):
        project = make_project(status)
        with pytest.raises(PermissionDenied):
            transition_project(project.id, "archive", actor_for(Role.VERTRIEB))

    def test_archived_project_accepts_no_transitions(self, actor_for, make_project):
        project = make_project(ProjectStatus.GENEHMIGT, archived=True)
        with pytest.raises(ValidationError):
            transition_project(project.id, "archive", actor_for(Role.VERTRIEB))
        with pytest.raises(ValidationError):
            transition_project(project.id, "reject", actor_for(Role.VERTRIEB), reason="x")


# ═════════════════════════════════════════════════════════════════════════
# ENGINE GUARANTEES
# ═════════════════════════════════════════════════════════════════════════

class TestEngine:
    def test_missing_project(self, actor_for):
        with pytest.raises(NotFoundError):
            transition_project("does-not-exist", "approve", actor_for(Role.SUPPLY_CHAIN))

    @pytest.mark.parametrize("action", ["submit", "delete", ""])
    def test_unknown_action(self, actor_for, submitted_project, action):
        with pytest.raises(ValidationError):
            transition_project(submitted_project.id, action, actor_for(Role.SUPPLY_CHAIN))

    def test_auto_complete_is_system_only(self, actor_for, make_project):
        project = make_project(ProjectStatus.GENEHMIGT)
        with pytest.raises(PermissionDenied):
            transition_project(project.id, "auto_complete", actor_for(Role.ADMIN))

    def test_history_failure_rolls_back_status(self, actor_for, submitted_project, monkeypatch):
        def _broken(**kwargs):
            raise RuntimeError("history store down")

        monkeypatch.setattr(project_workflow, "write_history", _broken)
        with pytest.raises(RuntimeError):
            transition_project(submitted_project.id, "approve", actor_for(Role.SUPPLY_CHAIN))

        project = _reload(submitted_project.id)
        assert project.status == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN
        assert ProjectLocationApproval.query.count() == 0
        assert len(_history(project.id)) == 1

    def test_store_outage_is_transient(self, actor_for, submitted_project, monkeypatch):
        def _down():
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        monkeypatch.setattr(db.session, "commit", _down)
        with pytest.raises(TransientError):
            transition_project(submitted_project.id, "reject", actor_for(Role.SUPPLY_CHAIN), reason="x")
        monkeypatch.undo()

        assert _reload(submitted_project.id).status == ProjectStatus.PRUEFUNG_SUPPLY_CHAIN

    def test_repeated_operation_id_is_replayed(self, actor_for, submitted_project):
        actor = actor_for(Role.SUPPLY_CHAIN)
        first = transition_project(submitted_project.id, "reject", actor, reason="x", operation_id="op-7")
        again = transition_project(submitted_project.id, "reject", actor, reason="x", operation_id="op-7")

        assert again["replayed"] is True
        assert again["history_id"] == first["history_id"]
        assert again["new_status"] == ProjectStatus.ABGELEHNT
        assert [e.action for e in _history(submitted_project.id)] == ["create", "reject"]

    def test_operation_id_of_another_actor_is_refused(self, actor_for, submitted_project):
        transition_project(
            submitted_project.id, "reject", actor_for(Role.SUPPLY_CHAIN), reason="x", operation_id="op-8",
        )
        with pytest.raises(PermissionDenied):
            transition_project(submitted_project.id, "approve", actor_for(Role.PLANUNG_BRENZ), operation_id="op-8")

        assert _reload(submitted_project.id).status == ProjectStatus.ABGELEHNT
        assert [e.action for e in _history(submitted_project.id)] == ["create", "reject"]

    def test_operation_id_reused_for_another_action_conflicts(self, actor_for, submitted_project):
        actor = actor_for(Role.SUPPLY_CHAIN)
        transition_project(submitted_project.id, "reject", actor, reason="x", operation_id="op-9")
        with pytest.raises(ConflictError):
            transition_project(submitted_project.id, "approve", actor, operation_id="op-9")
        assert len(_history(submitted_project.id)) == 2

    def test_planner_replay_of_partial_approval(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        planner = actor_for(Role.PLANUNG_GUDENSBERG)
        first = transition_project(project.id, "approve", planner, operation_id="op-10")
        again = transition_project(project.id, "approve", planner, operation_id="op-10")
        assert again["replayed"] is True
        assert again["history_id"] == first["history_id"]

    @pytest.mark.parametrize(
        "status, action, role", _REFUSED,
        ids=[f"{s.name}-{a}-{r.value}" for s, a, r in _REFUSED],
    )
    def test_refused_tuples_change_nothing(self, actor_for, make_project, status, action, role):
        project = make_project(status)
        entries_before = len(_history(project.id))
        with pytest.raises((PermissionDenied, ValidationError)):
            transition_project(
                project.id, action, actor_for(role),
                reason="Kapazität", location_distribution={"gudensberg": 500, "brenz": 500},
            )
        assert _reload(project.id).status == status
        assert len(_history(project.id)) == entries_before

    def test_every_transition_writes_exactly_one_entry(self, actor_for, submitted_project):
        transition_project(submitted_project.id, "approve", actor_for(Role.SUPPLY_CHAIN))
        transition_project(submitted_project.id, "approve", actor_for(Role.PLANUNG_GUDENSBERG))
        transition_project(submitted_project.id, "approve", actor_for(Role.PLANUNG_BRENZ))
        transition_project(submitted_project.id, "archive", actor_for(Role.VERTRIEB))
        assert [e.action for e in _history(submitted_project.id)] == [
            "create", "approved_forwarded", "location_approved", "approve", "archive",
        ]


class TestAvailableActions:
    def test_supply_chain_buttons(self, actor_for, submitted_project):
        assert get_available_actions(submitted_project, actor_for(Role.SUPPLY_CHAIN)) == [
            "approve", "correct", "reject",
        ]

    def test_creator_buttons_on_approved_project(self, actor_for, make_user, make_project):
        project = make_project(ProjectStatus.GENEHMIGT)
        assert get_available_actions(project, actor_for(Role.VERTRIEB)) == ["reject", "archive"]
        assert get_available_actions(project, make_user(Role.VERTRIEB).to_actor()) == []

    def test_location_planner_buttons(self, actor_for, make_project):
        project = make_project(ProjectStatus.PRUEFUNG_PLANUNG)
        assert get_available_actions(project, actor_for(Role.PLANUNG_BRENZ)) == ["approve", "correct"]
        assert get_available_actions(project, actor_for(Role.PLANUNG_STORKOW)) == []

    def test_archived_project_has_no_buttons(self, actor_for, make_project):
        project = make_project(ProjectStatus.ABGELEHNT, archived=True)
        assert get_available_actions(project, actor_for(Role.VERTRIEB)) == []

    def test_validate_transition_reports_error_kind(self, actor_for, make_project):
        project = make_project(ProjectStatus.GENEHMIGT, archived=True)
        check = validate_transition(project, "reject", actor_for(Role.VERTRIEB))
        assert check == {"valid": False, "from": 5, "to": 6, "reason": "project is archived", "error": "validation"}
