"""Constraint catalogue loader for decision validation."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from src.models.trust.decision_models import ConstraintSpec, ConstraintType, Severity, ThresholdOp
from src.services.errors import InvalidConfiguration

_CATALOGUE_FILE = Path(__file__).resolve().parent / "constraints.yaml"


class ConstraintNotFoundError(KeyError):
    """Raised when a constraint id is missing from the catalogue."""


def _default_constraints() -> Dict[str, ConstraintSpec]:
    defaults = [
        ConstraintSpec(
            id="slippage-max",
            description="Maximum allowed slippage (percent)",
            metric="slippage_percent",
            threshold_op=ThresholdOp.BELOW,
            threshold_value=0.5,
            severity=Severity.HIGH,
            constraint_type=ConstraintType.FINANCIAL_SAFETY,
        ),
        ConstraintSpec(
            id="balance-min",
            description="Minimum balance kept for operations",
            metric="balance",
            threshold_op=ThresholdOp.ABOVE,
            threshold_value=1.0,
            severity=Severity.CRITICAL,
            constraint_type=ConstraintType.OPERATIONAL_SAFETY,
        ),
        ConstraintSpec(
            id="battery-soc-min",
            description="Battery state of charge reserve (percent)",
            metric="battery_soc_percent",
            threshold_op=ThresholdOp.ABOVE,
            threshold_value=20.0,
            severity=Severity.CRITICAL,
            constraint_type=ConstraintType.PHYSICAL_SAFETY,
            risk_mitigation="Halt discharge and hold reserve",
        ),
        ConstraintSpec(
            id="trust-score-min",
            description="Minimum composite trust of supporting data",
            metric="trust_score",
            threshold_op=ThresholdOp.ABOVE,
            threshold_value=70.0,
            severity=Severity.MEDIUM,
            constraint_type=ConstraintType.GOVERNANCE_SAFETY,
        ),
    ]
    return {spec.id: spec for spec in defaults}


def parse_constraint(item: dict) -> ConstraintSpec:
    """Build a ConstraintSpec from a raw mapping, failing with InvalidConfiguration."""
    try:
        return ConstraintSpec(**item)
    except InvalidConfiguration:
        raise
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"Invalid constraint definition {item!r}: {exc}") from exc


def _load_catalogue_file(path: Optional[Union[str, Path]] = None) -> Dict[str, ConstraintSpec]:
    catalogue_file = Path(path) if path else _CATALOGUE_FILE
    if not catalogue_file.exists():
        if path:
            raise InvalidConfiguration(f"Constraint catalogue not found: {catalogue_file}")
        return {}

    with open(catalogue_file, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    constraints: Dict[str, ConstraintSpec] = {}
    for item in data.get("constraints", []):
        spec = parse_constraint(item)
        constraints[spec.id] = spec
    return constraints


def load_constraints(path: Optional[Union[str, Path]] = None) -> Dict[str, ConstraintSpec]:
    """Defaults first, then file entries override by id."""
    base = _default_constraints()
    base.update(_load_catalogue_file(path))
    return dict(base)


def get_constraint(constraint_id: str, catalogue: Optional[Dict[str, ConstraintSpec]] = None) -> ConstraintSpec:
    constraints = catalogue if catalogue is not None else load_constraints()
    spec = constraints.get(constraint_id)
    if spec is None:
        raise ConstraintNotFoundError(constraint_id)
    return spec
