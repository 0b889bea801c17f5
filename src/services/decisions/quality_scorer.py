"""
Decision Quality Scorer - Closing the Loop

Compares what a decision predicted with what actually happened and
produces a 0-100 quality score.

Quality components (weights):
- accuracy (0.35): 100 * (1 - mean |variance|) over predicted metrics
- efficiency (0.15): budgeted / actual cost
- timeliness (0.15): expected / actual duration
- risk_management (0.20): severity-weighted share of passed constraint checks
- compliance (0.15): 100 minus a penalty per failed constraint check

Root-cause text is caller input; metrics that drift beyond tolerance without
one are listed as pending, never filled in by the scorer.
"""

import logging
from typing import Dict, List, Optional

from src.models.trust.decision_models import (
    Decision,
    DecisionOutcome,
    OutcomeObservation,
    OutcomeStatus,
    QualityComponents,
    RootCause,
    Severity,
)
from src.services.errors import InsufficientData

logger = logging.getLogger(__name__)

DEFAULT_VARIANCE_TOLERANCE = 0.05
NEUTRAL_COMPONENT_SCORE = 70.0

QUALITY_WEIGHTS = {
    "accuracy": 0.35,
    "efficiency": 0.15,
    "timeliness": 0.15,
    "risk_management": 0.20,
    "compliance": 0.15,
}

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 4.0,
    Severity.HIGH: 3.0,
    Severity.MEDIUM: 2.0,
    Severity.LOW: 1.0,
}

COMPLIANCE_PENALTIES = {
    Severity.CRITICAL: 40.0,
    Severity.HIGH: 30.0,
    Severity.MEDIUM: 15.0,
    Severity.LOW: 5.0,
}

SUCCESS_THRESHOLD = 80.0
PARTIAL_THRESHOLD = 50.0


def _bounded(value: float) -> float:
    return min(100.0, max(0.0, value))


def _ratio_score(expected: Optional[float], actual: Optional[float]) -> Optional[float]:
    if expected is None or actual is None:
        return None
    if actual == 0:
        return 100.0
    return _bounded(expected / actual * 100.0)


class DecisionQualityScorer:
    """Scores executed decisions against observed ground truth."""

    def __init__(self, variance_tolerance: float = DEFAULT_VARIANCE_TOLERANCE):
        self.variance_tolerance = variance_tolerance
        logger.info(f"DecisionQualityScorer initialized: variance_tolerance={variance_tolerance:.1%}")

    def variance(self, predicted: float, actual: float, metric: str, warnings: List[str]) -> float:
        """(actual - predicted) / predicted; +/-1 when a zero prediction missed"""
        if predicted == 0:
            if actual == 0:
                return 0.0
            warnings.append(f"Metric {metric} predicted 0 but observed {actual}; variance capped at +/-1")
            return 1.0 if actual > 0 else -1.0
        return (actual - predicted) / predicted

    def _components(
        self,
        decision: Decision,
        observation: OutcomeObservation,
        variances: Dict[str, float],
        warnings: List[str],
    ) -> QualityComponents:
        if variances:
            mean_abs = sum(abs(v) for v in variances.values()) / len(variances)
            accuracy = _bounded(100.0 * (1.0 - mean_abs))
        else:
            accuracy = NEUTRAL_COMPONENT_SCORE
            warnings.append("No comparable predicted/actual metrics; accuracy uses neutral score")

        efficiency = _ratio_score(observation.budgeted_cost, observation.actual_cost)
        if efficiency is None:
            efficiency = NEUTRAL_COMPONENT_SCORE
            warnings.append("Cost not observed; efficiency uses neutral score")

        timeliness = _ratio_score(observation.expected_duration_seconds, observation.actual_duration_seconds)
        if timeliness is None:
            timeliness = NEUTRAL_COMPONENT_SCORE
            warnings.append("Duration not observed; timeliness uses neutral score")

        checks = decision.constraint_checks
        if checks:
            total_weight = sum(SEVERITY_WEIGHTS[check.severity] for check in checks)
            passed_weight = sum(SEVERITY_WEIGHTS[check.severity] for check in checks if check.passed)
            risk_management = passed_weight / total_weight * 100.0
            penalty = sum(COMPLIANCE_PENALTIES[check.severity] for check in checks if not check.passed)
            compliance = _bounded(100.0 - penalty)
        else:
            risk_management = NEUTRAL_COMPONENT_SCORE
            compliance = NEUTRAL_COMPONENT_SCORE
            warnings.append("Decision carries no constraint checks; risk and compliance use neutral scores")

        return QualityComponents(
            accuracy=accuracy,
            efficiency=efficiency,
            timeliness=timeliness,
            risk_management=risk_management,
            compliance=compliance,
        )

    def score(self, decision: Optional[Decision], observation: OutcomeObservation) -> DecisionOutcome:
        """
        Score a decision against its observed outcome.

        Args:
            decision: The prior decision (required)
            observation: Predicted/actual metrics and caller-supplied root causes

        Returns:
            Terminal DecisionOutcome

        Raises:
            InsufficientData: No decision, or the observation refers to another decision
        """
        if decision is None:
            raise InsufficientData(f"No prior decision for outcome {observation.decision_id}")
        if decision.decision_id != observation.decision_id:
            raise InsufficientData(
                f"Outcome for {observation.decision_id} does not match decision {decision.decision_id}"
            )

        warnings: List[str] = []
        if not decision.is_executed:
            warnings.append(f"Decision {decision.decision_id} was never marked executed")

        variances: Dict[str, float] = {}
        for metric, predicted in observation.predicted.items():
            if metric not in observation.actual:
                warnings.append(f"Metric {metric} predicted but not observed")
                continue
            variances[metric] = self.variance(predicted, observation.actual[metric], metric, warnings)

        flagged = [metric for metric, v in variances.items() if abs(v) > self.variance_tolerance]
        root_causes = [
            RootCause(metric=metric, variance=variances[metric], note=observation.root_causes[metric])
            for metric in flagged
            if observation.root_causes.get(metric)
        ]
        pending = [metric for metric in flagged if not observation.root_causes.get(metric)]
        if pending:
            warnings.append(f"Root cause required for: {', '.join(pending)}")
            logger.warning(f"Decision {decision.decision_id} has {len(pending)} metric(s) awaiting root cause")

        components = self._components(decision, observation, variances, warnings)
        values = components.model_dump()
        quality = _bounded(sum(QUALITY_WEIGHTS[name] * values[name] for name in QUALITY_WEIGHTS))

        if quality >= SUCCESS_THRESHOLD:
            status = OutcomeStatus.SUCCESS
        elif quality >= PARTIAL_THRESHOLD:
            status = OutcomeStatus.PARTIAL
        else:
            status = OutcomeStatus.FAILURE

        logger.info(f"Decision {decision.decision_id} scored {quality:.1f} ({status.value})")

        return DecisionOutcome(
            decision_id=decision.decision_id,
            predicted=dict(observation.predicted),
            actual=dict(observation.actual),
            variance_by_metric=variances,
            quality_score=quality,
            components=components,
            root_causes=root_causes,
            flagged_metrics=flagged,
            pending_root_causes=pending,
            outcome_status=status,
            warnings=warnings,
        )
