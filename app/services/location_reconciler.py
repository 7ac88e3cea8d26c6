"""
Location Quantity Reconciler

Checks a per-location quantity distribution (Standortverteilung) against a
project's total quantity (Gesamtmenge).

Policy:
  - every location at zero           → invalid in every mode
  - distributed < total              → allowed (under-distribution)
  - distributed > total, "creation"  → blocks submission
  - distributed > total, "correction" → warning only

The creation/correction asymmetry is intentional: planning corrections may
temporarily exceed the original total pending renegotiation with sales.

Usage:
    from app.services.location_reconciler import reconcile, enforce_reconciliation

    result = reconcile(1000, {"storkow": 300, "brenz": 700}, mode="creation")
    enforce_reconciliation(result)   # raises ValidationError when blocking
"""

import math
from dataclasses import dataclass, field

from app.core.exceptions import ValidationError
from app.models.location import get_location_name, resolve_location_code

MODE_CREATION = "creation"
MODE_CORRECTION = "correction"
RECONCILE_MODES = (MODE_CREATION, MODE_CORRECTION)


@dataclass
class ReconciliationResult:
    total: float
    distributed_total: float
    is_over_distributed: bool
    is_empty: bool
    mode: str
    per_location_warnings: list[str] = field(default_factory=list)

    @property
    def blocking(self) -> bool:
        if self.is_empty:
            return True
        return self.is_over_distributed and self.mode == MODE_CREATION

    @property
    def remaining(self) -> float:
        return self.total - self.distributed_total

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "distributed_total": self.distributed_total,
            "remaining": self.remaining,
            "is_over_distributed": self.is_over_distributed,
            "is_empty": self.is_empty,
            "blocking": self.blocking,
            "mode": self.mode,
            "per_location_warnings": list(self.per_location_warnings),
        }


def _as_quantity(value) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValueError("boolean is not a quantity")
    return float(value)


def normalize_distribution(distribution: dict | None) -> dict[str, float]:
    """
    Validate *distribution* and re-key it under canonical location codes.

    Raises ValidationError for unknown locations, non-numeric or negative
    quantities.  Two spellings of one location are summed.
    """
    if distribution is None:
        return {}
    if not isinstance(distribution, dict):
        raise ValidationError("location_distribution must be an object",
                              details={"location_distribution": "invalid"})

    errors = {}
    normalized: dict[str, float] = {}
    for key, raw in distribution.items():
        code = resolve_location_code(key)
        if code is None:
            errors[str(key)] = "unknown location"
            continue
        try:
            qty = _as_quantity(raw)
        except (TypeError, ValueError):
            errors[str(key)] = "quantity must be a number"
            continue
        if not math.isfinite(qty):
            errors[str(key)] = "quantity must be a number"
            continue
        if qty < 0:
            errors[str(key)] = "quantity must be >= 0"
            continue
        normalized[code] = normalized.get(code, 0.0) + qty

    if errors:
        raise ValidationError("Invalid location distribution", details=errors)
    return normalized


def reconcile(total, distribution: dict | None, *, mode: str = MODE_CREATION) -> ReconciliationResult:
    """
    Compare *distribution* against *total*.

    Never raises for policy violations; the result carries ``blocking`` and
    the caller decides (see ``enforce_reconciliation``).  Malformed input
    (unknown location, negative quantity) raises ValidationError.
    """
    if mode not in RECONCILE_MODES:
        raise ValidationError(f"Unknown reconciliation mode: {mode}", details={"mode": "invalid"})
    try:
        total_qty = _as_quantity(total)
    except (TypeError, ValueError):
        raise ValidationError("total_quantity must be a number", details={"total_quantity": "invalid"})

    normalized = normalize_distribution(distribution)
    distributed = math.fsum(normalized.values())
    is_empty = not any(qty > 0 for qty in normalized.values())
    over = distributed > total_qty

    warnings = []
    if is_empty:
        warnings.append("At least one location must receive a positive quantity")
    if over:
        warnings.append(
            f"Distributed quantity {distributed:g} exceeds total quantity {total_qty:g} "
            f"by {distributed - total_qty:g}"
        )
    for code, qty in normalized.items():
        if qty > total_qty:
            warnings.append(
                f"{get_location_name(code)}: {qty:g} exceeds total quantity {total_qty:g}"
            )

    return ReconciliationResult(
        total=total_qty,
        distributed_total=distributed,
        is_over_distributed=over,
        is_empty=is_empty,
        mode=mode,
        per_location_warnings=warnings,
    )


def enforce_reconciliation(result: ReconciliationResult) -> list[str]:
    """Raise ValidationError when *result* blocks; otherwise return its warnings."""
    if result.is_empty:
        raise ValidationError(
            "At least one location must receive a positive quantity",
            details={"location_distribution": "empty"},
        )
    if result.blocking:
        raise ValidationError(
            "Distributed quantity exceeds total quantity",
            details={
                "distributed_total": result.distributed_total,
                "total_quantity": result.total,
            },
        )
    return list(result.per_location_warnings)
