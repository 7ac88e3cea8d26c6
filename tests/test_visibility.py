"""
Visibility filter: workable list, archive partition, detail access.
"""
import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.models.auth import Role
from app.models.status import ProjectStatus
from app.services.visibility import (
    can_access_project,
    get_accessible_project,
    is_project_visible,
    list_archived_projects,
    list_workable_projects,
    matches_location_scope,
)


@pytest.fixture()
def portfolio(make_project):
    """One project per interesting state."""
    return {
        "supply_chain": make_project(ProjectStatus.PRUEFUNG_SUPPLY_CHAIN),
        "planning_gb": make_project(ProjectStatus.PRUEFUNG_PLANUNG, distribution={"gudensberg": 1000}),
        "planning_doebeln": make_project(ProjectStatus.PRUEFUNG_PLANUNG, distribution={"DÃ¶beln": 500, "brenz": 0}),
        "approved": make_project(ProjectStatus.GENEHMIGT),
        "archived_rejected": make_project(ProjectStatus.ABGELEHNT, archived=True, distribution={"storkow": 10}),
        "archived_completed": make_project(ProjectStatus.ABGESCHLOSSEN, archived=True, distribution={"brenz": 10}),
    }


def _numbers(projects):
    return sorted(p.project_number for p in projects)


class TestWorkableList:
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.VERTRIEB])
    def test_global_roles_see_every_open_project(self, actor_for, portfolio, role):
        visible = list_workable_projects(actor_for(role))
        expected = [p for k, p in portfolio.items() if not k.startswith("archived")]
        assert _numbers(visible) == _numbers(expected)

    def test_supply_chain_sees_only_its_queue(self, actor_for, portfolio):
        visible = list_workable_projects(actor_for(Role.SUPPLY_CHAIN))
        assert _numbers(visible) == [portfolio["supply_chain"].project_number]

    def test_unscoped_planning_sees_all_planning_projects(self, actor_for, portfolio):
        visible = list_workable_projects(actor_for(Role.PLANUNG))
        assert _numbers(visible) == _numbers([portfolio["planning_gb"], portfolio["planning_doebeln"]])

    def test_location_planner_sees_own_location(self, actor_for, portfolio):
        assert _numbers(list_workable_projects(actor_for(Role.PLANUNG_GUDENSBERG))) == [
            portfolio["planning_gb"].project_number
        ]

    def test_legacy_alias_matches_location_planner(self, actor_for, portfolio):
        assert _numbers(list_workable_projects(actor_for(Role.PLANUNG_DOEBELN))) == [
            portfolio["planning_doebeln"].project_number
        ]

    def test_zero_quantity_is_not_involvement(self, actor_for, portfolio):
        assert list_workable_projects(actor_for(Role.PLANUNG_BRENZ)) == []

    def test_list_is_newest_first(self, actor_for, portfolio):
        numbers = [p.project_number for p in list_workable_projects(actor_for(Role.ADMIN))]
        assert numbers == sorted(numbers, reverse=True)


class TestPredicates:
    def test_location_scope_only_applies_in_planning(self, make_project):
        project = make_project(ProjectStatus.GENEHMIGT, distribution={"brenz": 100})
        assert matches_location_scope(Role.PLANUNG_VISBEK, project)
        assert not is_project_visible(Role.PLANUNG_VISBEK, project)

    def test_unknown_role_sees_nothing(self, make_project):
        assert not is_project_visible("guest", make_project())

    def test_archived_projects_leave_the_workable_list(self, make_project):
        assert not is_project_visible(Role.ADMIN, make_project(ProjectStatus.GENEHMIGT, archived=True))


class TestArchive:
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.VERTRIEB, Role.SUPPLY_CHAIN, Role.PLANUNG])
    def test_wide_roles_see_entire_archive(self, actor_for, portfolio, role):
        assert len(list_archived_projects(actor_for(role))) == 2

    def test_location_planner_sees_involved_archive(self, actor_for, portfolio):
        visible = list_archived_projects(actor_for(Role.PLANUNG_STORKOW))
        assert _numbers(visible) == [portfolio["archived_rejected"].project_number]

    @pytest.mark.parametrize("preceding,key", [("rejected", "archived_rejected"), ("completed", "archived_completed")])
    def test_preceding_filter(self, actor_for, portfolio, preceding, key):
        visible = list_archived_projects(actor_for(Role.ADMIN), preceding)
        assert _numbers(visible) == [portfolio[key].project_number]

    def test_approved_filter_can_be_empty(self, actor_for, portfolio):
        assert list_archived_projects(actor_for(Role.ADMIN), "approved") == []

    def test_unknown_filter(self, actor_for, portfolio):
        with pytest.raises(ValidationError):
            list_archived_projects(actor_for(Role.ADMIN), "cancelled")


class TestDetailAccess:
    def test_creator_always_has_access(self, make_user, make_project):
        creator = make_user(Role.VERTRIEB)
        project = make_project(ProjectStatus.ABGELEHNT, creator=creator)
        assert can_access_project(creator.to_actor(), project)

    def test_hidden_project_is_reported_missing(self, actor_for, portfolio):
        with pytest.raises(NotFoundError):
            get_accessible_project(portfolio["approved"].id, actor_for(Role.SUPPLY_CHAIN))

    def test_visible_project_loads(self, actor_for, portfolio):
        project = get_accessible_project(portfolio["planning_gb"].id, actor_for(Role.PLANUNG_GUDENSBERG))
        assert project.id == portfolio["planning_gb"].id
