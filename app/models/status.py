"""
Production Approval Workflow
Status registry: the fixed project lifecycle.

    ERFASSUNG(1) → PRUEFUNG_VERTRIEB(2) → PRUEFUNG_SUPPLY_CHAIN(3)
        → PRUEFUNG_PLANUNG(4) → GENEHMIGT(5) | ABGELEHNT(6)
    GENEHMIGT(5) → ABGESCHLOSSEN(7) once the delivery window has passed

Status is persisted as a plain integer, so every lookup here resolves
unknown values to a safe "unknown" label/colour instead of raising.
Archiving is an orthogonal flag on the project, not a status value.
"""

from enum import IntEnum


class ProjectStatus(IntEnum):
    ERFASSUNG = 1
    PRUEFUNG_VERTRIEB = 2
    PRUEFUNG_SUPPLY_CHAIN = 3
    PRUEFUNG_PLANUNG = 4
    GENEHMIGT = 5
    ABGELEHNT = 6
    ABGESCHLOSSEN = 7


STATUS_LABELS = {
    ProjectStatus.ERFASSUNG: "Erfassung",
    ProjectStatus.PRUEFUNG_VERTRIEB: "Prüfung Vertrieb",
    ProjectStatus.PRUEFUNG_SUPPLY_CHAIN: "Prüfung SupplyChain",
    ProjectStatus.PRUEFUNG_PLANUNG: "Prüfung Planung Standort",
    ProjectStatus.GENEHMIGT: "Genehmigt",
    ProjectStatus.ABGELEHNT: "Abgelehnt",
    ProjectStatus.ABGESCHLOSSEN: "Abgeschlossen",
}

STATUS_COLORS = {
    ProjectStatus.ERFASSUNG: "bg-slate-100 text-slate-800",
    ProjectStatus.PRUEFUNG_VERTRIEB: "bg-blue-100 text-blue-800",
    ProjectStatus.PRUEFUNG_SUPPLY_CHAIN: "bg-yellow-100 text-yellow-800",
    ProjectStatus.PRUEFUNG_PLANUNG: "bg-orange-100 text-orange-800",
    ProjectStatus.GENEHMIGT: "bg-green-100 text-green-800",
    ProjectStatus.ABGELEHNT: "bg-red-100 text-red-800",
    ProjectStatus.ABGESCHLOSSEN: "bg-purple-100 text-purple-800",
}

UNKNOWN_STATUS_LABEL = "Unbekannt"
UNKNOWN_STATUS_COLOR = "bg-gray-100 text-gray-800"

ARCHIVABLE_STATUSES = frozenset({
    ProjectStatus.GENEHMIGT,
    ProjectStatus.ABGELEHNT,
    ProjectStatus.ABGESCHLOSSEN,
})

_LABEL_TO_STATUS = {label: status for status, label in STATUS_LABELS.items()}


def coerce_status(value) -> ProjectStatus | None:
    """Return the ProjectStatus for *value*, or None if it is not a known status."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return ProjectStatus(int(value))
    except (TypeError, ValueError):
        return None


def get_status_label(value) -> str:
    status = coerce_status(value)
    return STATUS_LABELS[status] if status is not None else UNKNOWN_STATUS_LABEL


def get_status_color(value) -> str:
    status = coerce_status(value)
    return STATUS_COLORS[status] if status is not None else UNKNOWN_STATUS_COLOR


def can_archive(value) -> bool:
    return coerce_status(value) in ARCHIVABLE_STATUSES


def status_from_label(label: str | None) -> ProjectStatus | None:
    """Reverse lookup used when replaying history entries (which store labels)."""
    if not label:
        return None
    return _LABEL_TO_STATUS.get(label)


def describe_status(value) -> dict:
    """Registry entry for *value*: integer, label, colour class, archivability."""
    status = coerce_status(value)
    return {
        "value": int(status) if status is not None else value,
        "label": get_status_label(value),
        "color": get_status_color(value),
        "archivable": can_archive(value),
        "known": status is not None,
    }


def list_statuses() -> list[dict]:
    return [describe_status(s) for s in ProjectStatus]
