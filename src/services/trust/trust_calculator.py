"""
Trust Score Calculator - Composite Trust Mathematics

Combines the four trust factors of a data point into one composite score
and grade:

    composite = w_base * base + w_fresh * freshness + w_rel * reliability + w_cons * consensus

- base: the data point's own confidence, or the baseline of its witness authority
- freshness: decay multiplier for the witness age, scaled to 0-100
- reliability: historical accuracy of the source (SourceReliabilityRegistry)
- consensus: agreement with sibling sources (ConsensusAggregator)

The calculator never touches the registry's counters; outcomes are recorded
separately once ground truth is known.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional, Tuple, Union

from src.models.trust.score_models import (
    ConsensusResult,
    GradeThresholds,
    TrustScore,
    TrustWeights,
)
from src.models.trust.witness_models import (
    AUTHORITY_BASELINE_CONFIDENCE,
    DataPoint,
    TruthWitness,
    utc_now,
)
from src.services.trust.decay_model import DecayModel

logger = logging.getLogger(__name__)

ALGORITHM_ID = "weighted-sum/v1"

FACTOR_LABELS = {
    "base": "Base confidence",
    "freshness": "Freshness",
    "reliability": "Source reliability",
    "consensus": "Consensus",
}


def _clamp(value: float, label: str, warnings: List[str]) -> float:
    if math.isnan(value):
        warnings.append(f"{label} is not a number; treated as 0.0")
        return 0.0
    if value < 0.0 or value > 100.0:
        clamped = min(100.0, max(0.0, value))
        warnings.append(f"{label} {value} outside [0, 100]; clamped to {clamped}")
        return clamped
    return float(value)


class TrustScoreCalculator:
    """
    Weighted-sum trust scoring with configurable weights and grade thresholds.

    Weights and thresholds are validated by their models, so a constructed
    calculator cannot fail on a per-request basis.
    """

    def __init__(
        self,
        weights: Optional[TrustWeights] = None,
        thresholds: Optional[GradeThresholds] = None,
        decay_model: Optional[DecayModel] = None,
    ):
        self.weights = weights or TrustWeights()
        self.thresholds = thresholds or GradeThresholds()
        self.decay_model = decay_model or DecayModel()

        logger.info(
            f"TrustScoreCalculator initialized: weights={self.weights.as_dict()}, "
            f"decay={self.decay_model.policy.value}"
        )

    def base_confidence(self, data_point: DataPoint, witness: TruthWitness) -> float:
        """Data point confidence, falling back to the witness authority baseline"""
        if data_point.confidence is not None:
            return data_point.confidence
        return AUTHORITY_BASELINE_CONFIDENCE[witness.source_authority]

    def _consensus_factor(
        self,
        consensus: Union[ConsensusResult, float, None],
        base: float,
        warnings: List[str],
    ) -> float:
        if consensus is None:
            warnings.append("No sibling claims; consensus defaults to base confidence (single-source data)")
            return base
        if isinstance(consensus, ConsensusResult):
            warnings.extend(consensus.warnings)
            if not consensus.agreement_reached and consensus.claim_count == 1:
                warnings.append("Single-source data; consensus not established")
            return _clamp(consensus.consensus_score, "Consensus score", warnings)
        return _clamp(float(consensus), "Consensus score", warnings)

    def composite(self, factors: dict, weights: TrustWeights) -> float:
        w = weights.as_dict()
        total = sum(w[name] * factors[name] for name in w)
        return min(100.0, max(0.0, total))

    def score(
        self,
        data_point: DataPoint,
        witness: TruthWitness,
        source_reliability: float,
        consensus: Union[ConsensusResult, float, None] = None,
        weights: Optional[TrustWeights] = None,
        now: Optional[datetime] = None,
    ) -> TrustScore:
        """
        Score one data point at the current instant.

        Args:
            data_point: Observation being scored
            witness: Who witnessed it and when
            source_reliability: Reliability of data_point.source_id (0-100)
            consensus: ConsensusResult, a raw 0-100 score, or None for single-source data
            weights: Per-call weights (defaults to the calculator's)
            now: Reference instant (defaults to the current UTC time)

        Returns:
            TrustScore with factors, composite, grade and warnings
        """
        weights = weights or self.weights
        now = now or utc_now()
        warnings: List[str] = []

        base = _clamp(self.base_confidence(data_point, witness), "Base confidence", warnings)
        reliability = _clamp(source_reliability, "Source reliability", warnings)

        freshness = self.decay_model.evaluate(witness.age_at(now), label=data_point.data_point_id)
        warnings.extend(freshness.warnings)
        freshness_score = freshness.multiplier * 100.0

        consensus_score = self._consensus_factor(consensus, base, warnings)

        factors = {
            "base": base,
            "freshness": freshness_score,
            "reliability": reliability,
            "consensus": consensus_score,
        }
        composite = self.composite(factors, weights)
        grade = self.thresholds.grade_for(composite)

        # Every weak factor is reported, whatever the composite grade
        for name, value in factors.items():
            if value < self.thresholds.fair:
                warnings.append(
                    f"{FACTOR_LABELS[name]} {value:.1f} below fair threshold {self.thresholds.fair:.0f}"
                )

        if warnings:
            logger.debug(f"Trust score for {data_point.data_point_id} carries {len(warnings)} warning(s)")

        return TrustScore(
            base_confidence=base,
            freshness_score=freshness_score,
            source_reliability=reliability,
            consensus_score=consensus_score,
            composite_score=composite,
            grade=grade,
            warnings=warnings,
            source_id=data_point.source_id,
            data_point_id=data_point.data_point_id,
            data_age_seconds=freshness.age_seconds,
            freshness_grade=freshness.freshness_grade,
            decay_policy=freshness.policy,
            weights=weights,
            thresholds=self.thresholds,
            algorithm=ALGORITHM_ID,
            computed_at=now,
        )

    def score_with_registry(
        self,
        data_point: DataPoint,
        witness: TruthWitness,
        registry,
        consensus: Union[ConsensusResult, float, None] = None,
        weights: Optional[TrustWeights] = None,
        now: Optional[datetime] = None,
    ) -> TrustScore:
        """Score using the reliability the given registry holds for the data point's source"""
        reliability = registry.reliability_of(data_point.source_id)
        return self.score(data_point, witness, reliability, consensus, weights=weights, now=now)

    def factor_contributions(self, trust_score: TrustScore) -> List[Tuple[str, float, float, float]]:
        """(factor, score, weight, contribution) for each factor of a score"""
        w = trust_score.weights.as_dict()
        factors = trust_score.factors()
        return [(name, factors[name], w[name], factors[name] * w[name]) for name in w]
