import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.models.trust.witness_models import Claim  # noqa: E402
from src.services.errors import InsufficientData  # noqa: E402
from src.services.trust.consensus_aggregator import ConsensusAggregator  # noqa: E402


def claims(*values):
    return [Claim(source_id=f"source-{i}", value=v, confidence=v) for i, v in enumerate(values)]


def test_outlier_is_excluded_and_majority_agrees():
    result = ConsensusAggregator().aggregate(claims(90, 91, 30))

    assert result.agreement_reached is True
    assert result.consensus_score == pytest.approx(90.5)
    assert [c.value for c in result.outliers] == [30]
    assert result.agreeing_sources == ["source-0", "source-1"]
    assert result.consensus_value == pytest.approx(90.5)
    assert result.claim_count == 3


def test_single_claim_is_never_consensus():
    result = ConsensusAggregator().aggregate([Claim(source_id="oracle:pyth", value=142.5, confidence=88.0)])

    assert result.agreement_reached is False
    assert result.consensus_score == 88.0
    assert result.outliers == []
    assert result.warnings


def test_zero_claims_is_insufficient_data():
    with pytest.raises(InsufficientData):
        ConsensusAggregator().aggregate([])


def test_even_split_prefers_most_reliable_source_with_warning():
    split = [
        Claim(source_id="oracle:a", value=100.0, confidence=80.0),
        Claim(source_id="oracle:b", value=200.0, confidence=80.0),
    ]
    result = ConsensusAggregator().aggregate(split, reliability={"oracle:a": 60.0, "oracle:b": 95.0})

    assert result.agreeing_sources == ["oracle:b"]
    assert result.agreement_reached is False
    assert any("split evenly" in warning for warning in result.warnings)


def test_state_claims_agree_on_equality():
    states = [
        Claim(source_id="rpc:a", value="confirmed", confidence=90.0),
        Claim(source_id="rpc:b", value="confirmed", confidence=80.0),
        Claim(source_id="rpc:c", value="pending", confidence=70.0),
    ]
    result = ConsensusAggregator().aggregate(states)

    assert result.agreement_reached is True
    assert result.consensus_value == "confirmed"
    assert result.consensus_score == pytest.approx(85.0)
    assert result.deviation_sigma is None


def test_absolute_tolerance_widens_band_near_zero():
    near_zero = claims(0.0, 0.01)

    assert ConsensusAggregator().aggregate(near_zero).agreement_reached is False
    assert ConsensusAggregator(absolute_tolerance=0.05).aggregate(near_zero).agreement_reached is True


def test_out_of_range_confidence_is_clamped_with_warning():
    result = ConsensusAggregator().aggregate(
        [
            Claim(source_id="a", value=10.0, confidence=120.0),
            Claim(source_id="b", value=10.0, confidence=80.0),
        ]
    )

    assert result.consensus_score == pytest.approx(90.0)
    assert any("clamped" in warning for warning in result.warnings)


def test_agreement_matrix_is_symmetric():
    matrix = ConsensusAggregator().agreement_matrix(claims(90, 91, 30))

    assert (matrix == matrix.T).all()
    assert matrix.diagonal().all()


def test_overlapping_groups_are_not_reported_as_even_split():
    result = ConsensusAggregator().aggregate(claims(10.0, 10.4, 10.8, 11.2))

    assert result.agreeing_sources == ["source-1", "source-2", "source-3"]
    assert result.agreement_reached is True
    assert not any("split evenly" in warning for warning in result.warnings)
    assert any("overlapping agreement groups of 3" in warning for warning in result.warnings)


def test_nan_confidence_counts_as_zero_with_warning():
    result = ConsensusAggregator().aggregate(
        [
            Claim(source_id="a", value=10.0, confidence=float("nan")),
            Claim(source_id="b", value=10.0, confidence=80.0),
        ]
    )

    assert result.consensus_score == pytest.approx(40.0)
    assert any("not a number" in warning for warning in result.warnings)
