"""
Explainability Renderer - Audience-Specific Trust Explanations

Projects a TrustScore into one of three depths:

- beginner: summary + up to 4 plain-language bullets, a single percentage
- intermediate: summary + supporting inputs + stated assumptions
- expert: summary + full factor breakdown + algorithm ids + uncertainty
  bounds + known limitations

Rendering is a pure projection: the score is never recomputed or altered,
and rendering the same score twice at the same depth gives equal output.
"""

import logging
from typing import Dict, List, Union

from src.models.trust.explanation_models import (
    ExplainabilityDepth,
    Explanation,
    ExplanationInput,
    FactorContribution,
    UncertaintyBounds,
)
from src.models.trust.score_models import FreshnessGrade, TrustGrade, TrustScore

logger = logging.getLogger(__name__)

MAX_BEGINNER_BULLETS = 4

_GRADE_PHRASES = {
    TrustGrade.EXCELLENT: "highly trustworthy",
    TrustGrade.GOOD: "trustworthy",
    TrustGrade.FAIR: "usable with some caution",
    TrustGrade.POOR: "weak and should be double-checked",
    TrustGrade.SUSPECT: "suspect and should not be relied on",
}

_FRESHNESS_PHRASES = {
    FreshnessGrade.FRESH: "The data was captured moments ago.",
    FreshnessGrade.RECENT: "The data is recent.",
    FreshnessGrade.AGING: "The data is getting old, so it counts for a little less.",
    FreshnessGrade.STALE: "The data is stale, so it counts for noticeably less.",
    FreshnessGrade.EXPIRED: "The data is very old and is treated as suspect.",
}

_ALGORITHM_IDS = [
    "reliability/cumulative-ratio",
    "consensus/tolerance-band-majority",
]

_LIMITATIONS = [
    "Source reliability falls back to a neutral default until enough observations exist",
    "Consensus only reflects the sibling claims supplied with this request",
    "The score is valid for the instant it was computed; freshness keeps decaying afterwards",
    "Factor weights are configured policy, not learned from outcomes",
]


class ExplainabilityRenderer:
    """Renders explanations of trust scores at three depths."""

    def render(
        self,
        trust_score: TrustScore,
        depth: Union[ExplainabilityDepth, str] = ExplainabilityDepth.BEGINNER,
    ) -> Explanation:
        """
        Render an explanation of a trust score.

        Args:
            trust_score: Score to explain
            depth: beginner, intermediate or expert

        Returns:
            Explanation for the requested audience
        """
        depth = ExplainabilityDepth(depth)
        renderer = {
            ExplainabilityDepth.BEGINNER: self._render_beginner,
            ExplainabilityDepth.INTERMEDIATE: self._render_intermediate,
            ExplainabilityDepth.EXPERT: self._render_expert,
        }[depth]
        return renderer(trust_score)

    def _title(self, trust_score: TrustScore) -> str:
        return f"Trust assessment: {trust_score.grade.value}"

    def _plain_level(self, value: float, fair: float) -> str:
        if value >= fair:
            return "solid"
        return "weak"

    def _render_beginner(self, trust_score: TrustScore) -> Explanation:
        fair = trust_score.thresholds.fair
        summary = (
            f"We are {trust_score.composite_score:.0f}% confident in this data; "
            f"it is {_GRADE_PHRASES[trust_score.grade]}."
        )

        bullets = [_FRESHNESS_PHRASES[trust_score.freshness_grade]]
        if self._plain_level(trust_score.source_reliability, fair) == "solid":
            bullets.append("Its source has a good track record.")
        else:
            bullets.append("Its source has a weak or limited track record.")
        if self._plain_level(trust_score.consensus_score, fair) == "solid":
            bullets.append("Other sources broadly agree with it.")
        else:
            bullets.append("Other sources do not clearly back it up.")
        if trust_score.warnings:
            bullets.append("Some factors need attention; ask for a detailed view before acting.")

        return Explanation(
            depth=ExplainabilityDepth.BEGINNER,
            title=self._title(trust_score),
            summary=summary,
            grade=trust_score.grade,
            bullet_points=bullets[:MAX_BEGINNER_BULLETS],
        )

    def _render_intermediate(self, trust_score: TrustScore) -> Explanation:
        age = trust_score.data_age_seconds
        summary = (
            f"Composite trust {trust_score.composite_score:.1f}/100 ({trust_score.grade.value}) "
            f"for {trust_score.data_point_id} from {trust_score.source_id}, "
            f"{age:.0f}s old ({trust_score.freshness_grade.value})."
        )

        inputs = [
            ExplanationInput(key="data_point", value=trust_score.data_point_id, source=trust_score.source_id, freshness_seconds=age),
            ExplanationInput(key="base_confidence", value=trust_score.base_confidence, source=trust_score.source_id, freshness_seconds=age),
            ExplanationInput(key="freshness_score", value=trust_score.freshness_score, source="decay-model", freshness_seconds=age),
            ExplanationInput(key="source_reliability", value=trust_score.source_reliability, source="source-registry", freshness_seconds=age),
            ExplanationInput(key="consensus_score", value=trust_score.consensus_score, source="consensus", freshness_seconds=age),
        ]

        assumptions = [
            f"Freshness decays with the {trust_score.decay_policy.value} policy once the grace period has passed",
            "Source reliability is the historical share of validated observations",
            "Consensus counts only claims within the agreement tolerance of the majority",
            "All four factors are combined as a weighted sum",
        ]

        return Explanation(
            depth=ExplainabilityDepth.INTERMEDIATE,
            title=self._title(trust_score),
            summary=summary,
            grade=trust_score.grade,
            supporting_inputs=inputs,
            assumptions=assumptions,
            warnings=list(trust_score.warnings),
        )

    def _render_expert(self, trust_score: TrustScore) -> Explanation:
        weights = trust_score.weights.as_dict()
        factors = trust_score.factors()
        composite = trust_score.composite_score

        breakdown = [
            FactorContribution(
                factor=name,
                score=factors[name],
                weight=weights[name],
                contribution=factors[name] * weights[name],
            )
            for name in weights
        ]

        # Weighted absolute deviation of the factors around the composite
        margin = sum(weights[name] * abs(factors[name] - composite) for name in weights)
        margin = min(100.0, max(0.0, margin))
        uncertainty = UncertaintyBounds(
            lower=max(0.0, composite - margin),
            upper=min(100.0, composite + margin),
            method="weighted-absolute-deviation",
        )

        summary = (
            f"composite = sum(w_i * f_i) = {composite:.4f} -> {trust_score.grade.value} "
            f"(thresholds excellent>={trust_score.thresholds.excellent:g}, good>={trust_score.thresholds.good:g}, "
            f"fair>={trust_score.thresholds.fair:g}, poor>={trust_score.thresholds.poor:g}); "
            f"uncertainty +/-{margin:.2f}"
        )

        algorithms = [trust_score.algorithm, f"decay/{trust_score.decay_policy.value}"] + _ALGORITHM_IDS

        return Explanation(
            depth=ExplainabilityDepth.EXPERT,
            title=self._title(trust_score),
            summary=summary,
            grade=trust_score.grade,
            factor_breakdown=breakdown,
            composite_score=composite,
            algorithms=algorithms,
            uncertainty=uncertainty,
            limitations=list(_LIMITATIONS),
            warnings=list(trust_score.warnings),
        )


def extract_factors(explanation: Explanation) -> Dict[str, float]:
    """
    Recover the factor scores from an expert explanation.

    Raises:
        ValueError: If the explanation carries no factor breakdown
    """
    if explanation.depth != ExplainabilityDepth.EXPERT or not explanation.factor_breakdown:
        raise ValueError(f"Factor breakdown requires expert depth (got {explanation.depth.value})")
    return {row.factor: row.score for row in explanation.factor_breakdown}
