import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.models.trust.score_models import DecayPolicy, FreshnessGrade  # noqa: E402
from src.services.errors import InvalidConfiguration  # noqa: E402
from src.services.trust.decay_model import DecayModel, decay, freshness_grade  # noqa: E402


def test_exponential_decay_matches_half_life_formula():
    multiplier = decay(400, half_life_seconds=1200, grace_period_seconds=30)

    assert multiplier == pytest.approx(0.5 ** (370 / 1200))
    assert multiplier == pytest.approx(0.81, abs=0.01)


@pytest.mark.parametrize("policy", ["linear", "exponential", "step"])
def test_zero_age_is_never_penalised(policy):
    assert decay(0, policy=policy) == 1.0


def test_grace_period_is_inclusive():
    assert decay(30, grace_period_seconds=30) == 1.0
    assert decay(31, grace_period_seconds=30) < 1.0


def test_linear_policy_halves_at_one_half_life():
    assert decay(1230, half_life_seconds=1200, grace_period_seconds=30, policy="linear") == pytest.approx(0.5)


def test_step_policy_drops_at_whole_half_lives():
    kwargs = dict(half_life_seconds=100, grace_period_seconds=0, policy=DecayPolicy.STEP)

    assert decay(99, **kwargs) == 1.0
    assert decay(100, **kwargs) == pytest.approx(0.5)
    assert decay(250, **kwargs) == pytest.approx(0.25)


def test_floor_keeps_ancient_data_above_zero():
    assert decay(10 ** 7, floor=0.05) == 0.05
    assert decay(10 ** 7, policy="linear", floor=0.05) == 0.05


def test_unknown_policy_is_invalid_configuration():
    with pytest.raises(InvalidConfiguration):
        decay(100, policy="logarithmic")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"half_life_seconds": 0},
        {"grace_period_seconds": -1},
        {"floor": 1.5},
    ],
)
def test_out_of_range_parameters_fail_at_construction(kwargs):
    with pytest.raises(InvalidConfiguration):
        DecayModel(**kwargs)


def test_evaluate_clamps_clock_skew_with_warning():
    model = DecayModel()
    report = model.evaluate(-12.5, label="dp-1")

    assert report.age_seconds == 0.0
    assert report.multiplier == 1.0
    assert report.within_grace is True
    assert any("clock skew" in warning for warning in report.warnings)


def test_evaluate_reports_grade_and_staleness():
    model = DecayModel()
    report = model.evaluate(400)

    assert report.freshness_grade == FreshnessGrade.STALE
    assert report.is_stale is True
    assert report.penalty_percent == pytest.approx((1 - report.multiplier) * 100)


def test_evaluate_warns_at_floor():
    model = DecayModel(floor=0.2)
    report = model.evaluate(100_000)

    assert report.multiplier == 0.2
    assert any("floor" in warning for warning in report.warnings)


@pytest.mark.parametrize(
    "age, grade",
    [
        (0, FreshnessGrade.FRESH),
        (30, FreshnessGrade.FRESH),
        (90, FreshnessGrade.RECENT),
        (300, FreshnessGrade.AGING),
        (600, FreshnessGrade.STALE),
        (601, FreshnessGrade.EXPIRED),
    ],
)
def test_freshness_grades(age, grade):
    assert freshness_grade(age) == grade


def test_decay_is_deterministic():
    values = {decay(777, policy=p) for p in ["exponential"] * 5}
    assert len(values) == 1
    assert not math.isnan(values.pop())
