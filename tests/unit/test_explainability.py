import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.models.trust.explanation_models import ExplainabilityDepth  # noqa: E402
from src.models.trust.witness_models import DataPoint, SourceAuthority, TruthWitness  # noqa: E402
from src.services.trust.explainability import ExplainabilityRenderer, extract_factors  # noqa: E402
from src.services.trust.trust_calculator import TrustScoreCalculator  # noqa: E402

NOW = datetime(2025, 10, 2, 10, 30, 15, tzinfo=timezone.utc)


@pytest.fixture
def trust_score():
    witnessed_at = NOW - timedelta(seconds=400)
    data_point = DataPoint(
        value=42.7,
        unit="kW",
        source_id="sensor:inverter-3",
        observed_at=witnessed_at,
        confidence=92.0,
    )
    witness = TruthWitness(source_authority=SourceAuthority.SENSOR, witnessed_at=witnessed_at)
    return TrustScoreCalculator().score(data_point, witness, source_reliability=64.0, consensus=90.5, now=NOW)


def test_beginner_uses_one_percentage_and_at_most_four_bullets(trust_score):
    explanation = ExplainabilityRenderer().render(trust_score, "beginner")

    assert explanation.depth == ExplainabilityDepth.BEGINNER
    assert 1 <= len(explanation.bullet_points) <= 4
    text = " ".join([explanation.title, explanation.summary] + explanation.bullet_points)
    assert len(re.findall(r"\d+%", text)) == 1
    assert re.findall(r"\d", text.replace(re.search(r"\d+%", text).group(0), "")) == []
    assert explanation.factor_breakdown == []


def test_intermediate_lists_inputs_and_assumptions(trust_score):
    explanation = ExplainabilityRenderer().render(trust_score, ExplainabilityDepth.INTERMEDIATE)

    keys = [item.key for item in explanation.supporting_inputs]
    assert "source_reliability" in keys
    assert all(item.freshness_seconds == pytest.approx(400) for item in explanation.supporting_inputs)
    assert explanation.assumptions
    assert explanation.warnings == trust_score.warnings


def test_expert_breakdown_round_trips_exact_factors(trust_score):
    explanation = ExplainabilityRenderer().render(trust_score, "expert")

    assert extract_factors(explanation) == trust_score.factors()
    contributions = sum(row.contribution for row in explanation.factor_breakdown)
    assert contributions == pytest.approx(trust_score.composite_score)
    assert trust_score.algorithm in explanation.algorithms
    assert explanation.limitations


def test_expert_uncertainty_brackets_composite(trust_score):
    explanation = ExplainabilityRenderer().render(trust_score, "expert")

    bounds = explanation.uncertainty
    assert bounds.lower <= trust_score.composite_score <= bounds.upper
    assert 0.0 <= bounds.lower and bounds.upper <= 100.0


def test_rendering_is_idempotent_and_does_not_alter_score(trust_score):
    renderer = ExplainabilityRenderer()
    before = trust_score.model_dump()

    first = renderer.render(trust_score, "expert")
    second = renderer.render(trust_score, "expert")

    assert first == second
    assert trust_score.model_dump() == before


def test_extract_factors_requires_expert_depth(trust_score):
    explanation = ExplainabilityRenderer().render(trust_score, "beginner")

    with pytest.raises(ValueError):
        extract_factors(explanation)
