import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.models.trust.decision_models import (  # noqa: E402
    ComplianceStatus,
    ConstraintCheck,
    Decision,
    OutcomeObservation,
    OutcomeStatus,
    ProposedAction,
    Severity,
    ThresholdOp,
)
from src.services.decisions.quality_scorer import DecisionQualityScorer  # noqa: E402
from src.services.errors import InsufficientData  # noqa: E402


def check(passed, severity):
    return ConstraintCheck(
        constraint_id=f"{severity}-{passed}",
        description="",
        threshold=1.0,
        threshold_op=ThresholdOp.ABOVE,
        actual_value=2.0 if passed else 0.0,
        passed=passed,
        margin_percent=100.0 if passed else -100.0,
        severity=severity,
        compliance_status=ComplianceStatus.COMPLIANT if passed else ComplianceStatus.VIOLATED,
    )


def decision(checks=()):
    return Decision(
        agent_id="agent:grid-optimizer",
        proposed_action=ProposedAction(action_type="battery_discharge"),
        constraint_checks=list(checks),
        executed_at=datetime(2025, 10, 2, 10, 0, tzinfo=timezone.utc),
    )


def test_perfect_prediction_scores_success():
    d = decision([check(True, Severity.CRITICAL), check(True, Severity.LOW)])
    observation = OutcomeObservation(
        decision_id=d.decision_id,
        predicted={"energy_kwh": 100.0, "revenue": 50.0},
        actual={"energy_kwh": 100.0, "revenue": 50.0},
        expected_duration_seconds=600,
        actual_duration_seconds=600,
        budgeted_cost=10.0,
        actual_cost=10.0,
    )

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.quality_score == pytest.approx(100.0)
    assert outcome.outcome_status == OutcomeStatus.SUCCESS
    assert outcome.flagged_metrics == []
    assert outcome.warnings == []


def test_variance_is_relative_to_prediction():
    d = decision()
    observation = OutcomeObservation(
        decision_id=d.decision_id, predicted={"energy_kwh": 100.0}, actual={"energy_kwh": 90.0}
    )

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.variance_by_metric["energy_kwh"] == pytest.approx(-0.1)
    assert outcome.components.accuracy == pytest.approx(90.0)


def test_flagged_metric_without_root_cause_is_pending():
    d = decision()
    observation = OutcomeObservation(
        decision_id=d.decision_id,
        predicted={"energy_kwh": 100.0, "revenue": 50.0},
        actual={"energy_kwh": 80.0, "revenue": 51.0},
        root_causes={},
    )

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.flagged_metrics == ["energy_kwh"]
    assert outcome.pending_root_causes == ["energy_kwh"]
    assert outcome.root_causes == []
    assert any("Root cause required" in warning for warning in outcome.warnings)


def test_caller_root_cause_is_attached_verbatim():
    d = decision()
    observation = OutcomeObservation(
        decision_id=d.decision_id,
        predicted={"energy_kwh": 100.0},
        actual={"energy_kwh": 80.0},
        root_causes={"energy_kwh": "Cloud cover reduced solar input"},
    )

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.pending_root_causes == []
    assert outcome.root_causes[0].note == "Cloud cover reduced solar input"
    assert outcome.root_causes[0].variance == pytest.approx(-0.2)


def test_zero_prediction_is_capped_with_warning():
    d = decision()
    observation = OutcomeObservation(decision_id=d.decision_id, predicted={"errors": 0.0}, actual={"errors": 3.0})

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.variance_by_metric["errors"] == 1.0
    assert any("predicted 0" in warning for warning in outcome.warnings)


def test_failed_checks_cost_risk_and_compliance():
    d = decision([check(True, Severity.CRITICAL), check(False, Severity.HIGH)])
    observation = OutcomeObservation(decision_id=d.decision_id)

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.components.risk_management == pytest.approx(4 / 7 * 100)
    assert outcome.components.compliance == pytest.approx(70.0)


def test_unobserved_components_are_neutral():
    d = decision()
    outcome = DecisionQualityScorer().score(d, OutcomeObservation(decision_id=d.decision_id))

    assert outcome.quality_score == pytest.approx(70.0)
    assert outcome.outcome_status == OutcomeStatus.PARTIAL
    assert len(outcome.warnings) == 4


def test_poor_outcome_is_failure():
    d = decision([check(False, Severity.CRITICAL), check(False, Severity.HIGH)])
    observation = OutcomeObservation(
        decision_id=d.decision_id,
        predicted={"energy_kwh": 100.0},
        actual={"energy_kwh": 10.0},
        budgeted_cost=10.0,
        actual_cost=40.0,
        expected_duration_seconds=60,
        actual_duration_seconds=600,
    )

    outcome = DecisionQualityScorer().score(d, observation)

    assert outcome.outcome_status == OutcomeStatus.FAILURE


def test_missing_decision_is_insufficient_data():
    with pytest.raises(InsufficientData):
        DecisionQualityScorer().score(None, OutcomeObservation(decision_id="decision-missing"))


def test_mismatched_decision_is_insufficient_data():
    with pytest.raises(InsufficientData):
        DecisionQualityScorer().score(decision(), OutcomeObservation(decision_id="decision-other"))
