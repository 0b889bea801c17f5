import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.config import constraints as catalogue_module  # noqa: E402
from src.models.trust.decision_models import (  # noqa: E402
    ComplianceStatus,
    ConstraintSpec,
    ProposedAction,
    SafetyStatus,
)
from src.services.decisions.constraint_validator import ConstraintValidator  # noqa: E402
from src.services.errors import InvalidConfiguration  # noqa: E402


def spec(id, op, threshold, severity="medium", metric=None):
    return ConstraintSpec(id=id, threshold_op=op, threshold_value=threshold, severity=severity, metric=metric)


def action(**metrics):
    return ProposedAction(action_type="rebalance", metrics=metrics)


def test_above_constraint_with_comfortable_margin_passes():
    report = ConstraintValidator().validate(action(reserve=75.0), [spec("reserve", "above", 50.0, "critical")])

    check = report.checks[0]
    assert check.passed is True
    assert check.margin_percent == pytest.approx(50.0)
    assert check.compliance_status == ComplianceStatus.COMPLIANT
    assert report.safety_status == SafetyStatus.SAFE
    assert report.all_passed is True


def test_every_constraint_is_evaluated_after_a_failure():
    constraints = [
        spec("slippage", "below", 0.5, "critical"),
        spec("reserve", "above", 10.0, "low"),
        spec("fee", "below", 2.0, "high"),
    ]
    report = ConstraintValidator().validate(action(slippage=0.9, reserve=5.0, fee=1.0), constraints)

    assert len(report.checks) == 3
    assert [check.passed for check in report.checks] == [False, False, True]
    assert report.safety_status == SafetyStatus.CRITICAL
    assert report.all_passed is False


def test_only_lower_severity_failures_give_warning_status():
    report = ConstraintValidator().validate(action(reserve=5.0), [spec("reserve", "above", 10.0, "high")])

    assert report.safety_status == SafetyStatus.WARNING


def test_threshold_is_inclusive_for_above_and_below():
    report = ConstraintValidator().validate(
        action(a=10.0, b=10.0),
        [spec("a", "above", 10.0), spec("b", "below", 10.0)],
    )

    assert all(check.passed for check in report.checks)


def test_equals_uses_tolerance():
    validator = ConstraintValidator(equals_tolerance=0.01)
    report = validator.validate(action(mode=1.005), [spec("mode", "equals", 1.0)])

    assert report.checks[0].passed is True
    assert report.checks[0].compliance_status == ComplianceStatus.COMPLIANT


def test_small_margin_is_marginal_with_warning():
    report = ConstraintValidator().validate(action(reserve=52.0), [spec("reserve", "above", 50.0)])

    assert report.checks[0].compliance_status == ComplianceStatus.MARGINAL
    assert report.warnings


def test_zero_threshold_uses_absolute_margin():
    report = ConstraintValidator().validate(action(drift=-0.25), [spec("drift", "below", 0.0)])

    assert report.checks[0].margin_percent == pytest.approx(0.25)


def test_missing_metric_fails_as_unknown():
    report = ConstraintValidator().validate(action(), [spec("reserve", "above", 10.0, "critical")])

    check = report.checks[0]
    assert check.passed is False
    assert check.actual_value is None
    assert check.compliance_status == ComplianceStatus.UNKNOWN
    assert report.safety_status == SafetyStatus.CRITICAL


def test_metric_name_can_differ_from_constraint_id():
    report = ConstraintValidator().validate(
        action(slippage_percent=0.2), [spec("slippage-max", "below", 0.5, metric="slippage_percent")]
    )

    assert report.checks[0].passed is True


def test_validator_defaults_to_catalogue():
    validator = ConstraintValidator(catalogue=catalogue_module.load_constraints())
    report = validator.validate(action(slippage_percent=0.1, balance=5.0, battery_soc_percent=80.0, trust_score=90.0))

    assert len(report.checks) == 4
    assert report.all_passed is True


def test_unknown_operator_is_invalid_configuration():
    with pytest.raises(InvalidConfiguration):
        ConstraintSpec(id="x", threshold_op="greater", threshold_value=1.0)


def test_catalogue_file_overrides_defaults(tmp_path, monkeypatch):
    catalogue_file = tmp_path / "constraints.yaml"
    catalogue_file.write_text(
        """
        constraints:
          - id: slippage-max
            metric: slippage_percent
            threshold_op: below
            threshold_value: 1.0
            severity: critical
          - id: gas-max
            threshold_op: below
            threshold_value: 0.01
            severity: low
        """
    )
    monkeypatch.setattr(catalogue_module, "_CATALOGUE_FILE", catalogue_file)

    catalogue = catalogue_module.load_constraints()

    assert catalogue["slippage-max"].threshold_value == 1.0
    assert catalogue["gas-max"].severity.value == "low"
    assert "balance-min" in catalogue


def test_catalogue_with_unknown_severity_fails_at_load(tmp_path):
    catalogue_file = tmp_path / "bad.yaml"
    catalogue_file.write_text(
        """
        constraints:
          - id: broken
            threshold_op: above
            threshold_value: 1
            severity: catastrophic
        """
    )

    with pytest.raises(InvalidConfiguration):
        catalogue_module.load_constraints(catalogue_file)


def test_explicit_missing_catalogue_path_is_invalid(tmp_path):
    with pytest.raises(InvalidConfiguration):
        catalogue_module.load_constraints(tmp_path / "missing.yaml")


def test_get_constraint_raises_for_unknown_id():
    with pytest.raises(catalogue_module.ConstraintNotFoundError):
        catalogue_module.get_constraint("nope")
