"""
Status registry, location aliases and role model.

Tests cover:
  - label / colour lookup for known and unknown status values
  - archivability of terminal statuses
  - alias-aware location resolution (incl. legacy mis-encoded spelling)
  - Role parsing and location scope
"""
import pytest

from app.models.auth import PLANNING_ROLES, Role
from app.models.location import (
    list_locations,
    location_matches,
    resolve_location_code,
)
from app.models.status import (
    ProjectStatus,
    can_archive,
    describe_status,
    get_status_color,
    get_status_label,
    list_statuses,
    status_from_label,
)


class TestStatusRegistry:
    @pytest.mark.parametrize("value,label", [
        (1, "Erfassung"),
        (3, "Prüfung SupplyChain"),
        (4, "Prüfung Planung Standort"),
        (7, "Abgeschlossen"),
    ])
    def test_labels(self, value, label):
        assert get_status_label(value) == label

    @pytest.mark.parametrize("value", [0, 8, 99, None, "abc", -1])
    def test_unknown_values_are_safe(self, value):
        assert get_status_label(value) == "Unbekannt"
        assert get_status_color(value) == "bg-gray-100 text-gray-800"
        assert can_archive(value) is False

    def test_archivable_statuses(self):
        archivable = {s for s in ProjectStatus if can_archive(s)}
        assert archivable == {ProjectStatus.GENEHMIGT, ProjectStatus.ABGELEHNT, ProjectStatus.ABGESCHLOSSEN}

    def test_label_round_trip_used_by_replay(self):
        assert status_from_label("Genehmigt") is ProjectStatus.GENEHMIGT
        assert status_from_label("Unbekannt") is None
        assert status_from_label(None) is None

    def test_describe_and_list(self):
        entry = describe_status(6)
        assert entry == {
            "value": 6,
            "label": "Abgelehnt",
            "color": "bg-red-100 text-red-800",
            "archivable": True,
            "known": True,
        }
        assert [s["value"] for s in list_statuses()] == [1, 2, 3, 4, 5, 6, 7]


class TestLocations:
    @pytest.mark.parametrize("key", ["doebeln", "Döbeln", "Doebeln", "Dobeln", "DÃ¶beln", "  DÖBELN "])
    def test_doebeln_aliases(self, key):
        assert resolve_location_code(key) == "doebeln"
        assert location_matches("doebeln", key)

    def test_unknown_location(self):
        assert resolve_location_code("Hamburg") is None
        assert resolve_location_code(None) is None
        assert not location_matches("brenz", "gudensberg")

    def test_list_locations(self):
        codes = [loc["code"] for loc in list_locations()]
        assert codes == ["gudensberg", "brenz", "storkow", "visbek", "doebeln"]


class TestRoles:
    def test_location_scope(self):
        assert Role.PLANUNG_VISBEK.location == "visbek"
        assert Role.PLANUNG.location is None
        assert Role.SUPPLY_CHAIN.location is None

    def test_planning_roles(self):
        assert Role.PLANUNG in PLANNING_ROLES
        assert Role.PLANUNG_DOEBELN in PLANNING_ROLES
        assert Role.ADMIN not in PLANNING_ROLES
        assert Role.PLANUNG_BRENZ.is_planning
        assert not Role.VERTRIEB.is_planning

    def test_parse(self):
        assert Role.parse("Supply_Chain") is Role.SUPPLY_CHAIN
        assert Role.parse("superuser") is None
        assert Role.parse(None) is None
