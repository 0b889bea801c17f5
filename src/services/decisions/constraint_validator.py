"""
Constraint Validator - Pre-Commit Safety Gate

Checks a proposed autonomous action against declarative constraints
({id, threshold_op, threshold_value, severity}).

Every constraint is evaluated, even after the first failure, so the audit
record always carries the full list of checks.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from src.models.trust.decision_models import (
    ComplianceStatus,
    ConstraintCheck,
    ConstraintSpec,
    ProposedAction,
    SafetyStatus,
    Severity,
    ThresholdOp,
    ValidationReport,
)

logger = logging.getLogger(__name__)

DEFAULT_MARGINAL_PERCENT = 10.0
DEFAULT_EQUALS_TOLERANCE = 1e-9


class ConstraintValidator:
    """Generic threshold validator; knows nothing about individual domains."""

    def __init__(
        self,
        catalogue: Optional[Dict[str, ConstraintSpec]] = None,
        marginal_margin_percent: float = DEFAULT_MARGINAL_PERCENT,
        equals_tolerance: float = DEFAULT_EQUALS_TOLERANCE,
    ):
        """
        Initialize constraint validator.

        Args:
            catalogue: Constraints used when validate() is given none
            marginal_margin_percent: Passing checks closer than this to the threshold are marginal
            equals_tolerance: Absolute tolerance of the `equals` operator
        """
        self.catalogue = dict(catalogue or {})
        self.marginal_margin_percent = marginal_margin_percent
        self.equals_tolerance = equals_tolerance

        logger.info(f"ConstraintValidator initialized with {len(self.catalogue)} catalogue constraints")

    def _compare(self, spec: ConstraintSpec, actual: float) -> Tuple[bool, float]:
        threshold = spec.threshold_value
        if spec.threshold_op == ThresholdOp.ABOVE:
            passed = actual >= threshold
            distance = actual - threshold
        elif spec.threshold_op == ThresholdOp.BELOW:
            passed = actual <= threshold
            distance = threshold - actual
        else:
            passed = abs(actual - threshold) <= self.equals_tolerance
            distance = -abs(actual - threshold)

        if threshold == 0:
            margin = distance
        else:
            margin = distance / abs(threshold) * 100.0
        return passed, margin

    def check(self, spec: ConstraintSpec, action: ProposedAction, warnings: List[str]) -> ConstraintCheck:
        """Evaluate one constraint against one action"""
        actual = action.metrics.get(spec.metric_key)

        if actual is None:
            warnings.append(f"Constraint {spec.id}: metric '{spec.metric_key}' not reported by action")
            return ConstraintCheck(
                constraint_id=spec.id,
                description=spec.description,
                threshold=spec.threshold_value,
                threshold_op=spec.threshold_op,
                actual_value=None,
                passed=False,
                margin_percent=None,
                severity=spec.severity,
                compliance_status=ComplianceStatus.UNKNOWN,
            )

        passed, margin = self._compare(spec, actual)
        if not passed:
            status = ComplianceStatus.VIOLATED
        elif spec.threshold_op != ThresholdOp.EQUALS and margin < self.marginal_margin_percent:
            status = ComplianceStatus.MARGINAL
            warnings.append(f"Constraint {spec.id} passes with only {margin:.1f}% margin")
        else:
            status = ComplianceStatus.COMPLIANT

        return ConstraintCheck(
            constraint_id=spec.id,
            description=spec.description,
            threshold=spec.threshold_value,
            threshold_op=spec.threshold_op,
            actual_value=actual,
            passed=passed,
            margin_percent=margin,
            severity=spec.severity,
            compliance_status=status,
        )

    def validate(
        self,
        proposed_action: ProposedAction,
        constraints: Optional[Iterable[ConstraintSpec]] = None,
    ) -> ValidationReport:
        """
        Validate a proposed action against constraints.

        Args:
            proposed_action: Action with the metrics to check
            constraints: Constraints to apply (defaults to the catalogue)

        Returns:
            ValidationReport with every check and the overall safety status
        """
        specs = list(constraints) if constraints is not None else list(self.catalogue.values())
        warnings: List[str] = []
        checks = [self.check(spec, proposed_action, warnings) for spec in specs]

        failed = [check for check in checks if not check.passed]
        if any(check.severity == Severity.CRITICAL for check in failed):
            safety_status = SafetyStatus.CRITICAL
        elif failed:
            safety_status = SafetyStatus.WARNING
        else:
            safety_status = SafetyStatus.SAFE

        if failed:
            logger.warning(
                f"Action {proposed_action.action_type} failed {len(failed)}/{len(checks)} constraints "
                f"({safety_status.value}): {', '.join(check.constraint_id for check in failed)}"
            )

        return ValidationReport(
            all_passed=not failed,
            checks=checks,
            safety_status=safety_status,
            warnings=warnings,
        )
