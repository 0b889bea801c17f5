"""
Score Models

Pydantic V2 models for trust mathematics: factor weights, grade thresholds,
freshness reports, consensus results, the composite TrustScore and the
per-source reliability record.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from src.models.trust.witness_models import ClaimValue, Claim, utc_now
from src.services.errors import InvalidConfiguration

WEIGHT_SUM_TOLERANCE = 1e-6


class TrustGrade(str, Enum):
    """Human-readable trust classification"""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    SUSPECT = "suspect"


class DecayPolicy(str, Enum):
    """Curve used to erode trust in stale data"""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    STEP = "step"


class FreshnessGrade(str, Enum):
    """Age buckets for witnessed data"""

    FRESH = "fresh"
    RECENT = "recent"
    AGING = "aging"
    STALE = "stale"
    EXPIRED = "expired"


class TrustWeights(BaseModel):
    """Weights of the four trust factors; must sum to 1.0"""

    base: float = 0.30
    freshness: float = 0.25
    reliability: float = 0.25
    consensus: float = 0.20

    @model_validator(mode="after")
    def check_weights(self) -> "TrustWeights":
        values = self.as_dict()
        negative = [name for name, weight in values.items() if weight < 0]
        if negative:
            raise InvalidConfiguration(f"Trust weights must be non-negative: {negative}")
        total = sum(values.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise InvalidConfiguration(f"Trust weights must sum to 1.0 (got {total:.6f})")
        return self

    def as_dict(self) -> Dict[str, float]:
        return {
            "base": self.base,
            "freshness": self.freshness,
            "reliability": self.reliability,
            "consensus": self.consensus,
        }

    model_config = {"frozen": True}


class GradeThresholds(BaseModel):
    """Inclusive lower bounds for each grade; anything below `poor` is suspect"""

    excellent: float = 95.0
    good: float = 85.0
    fair: float = 70.0
    poor: float = 50.0

    @model_validator(mode="after")
    def check_monotonic(self) -> "GradeThresholds":
        ordered = [self.excellent, self.good, self.fair, self.poor]
        if any(value < 0.0 or value > 100.0 for value in ordered):
            raise InvalidConfiguration(f"Grade thresholds must lie in [0, 100]: {ordered}")
        if not all(higher > lower for higher, lower in zip(ordered, ordered[1:])):
            raise InvalidConfiguration(
                f"Grade thresholds must be strictly decreasing excellent > good > fair > poor: {ordered}"
            )
        return self

    def grade_for(self, score: float) -> TrustGrade:
        if score >= self.excellent:
            return TrustGrade.EXCELLENT
        if score >= self.good:
            return TrustGrade.GOOD
        if score >= self.fair:
            return TrustGrade.FAIR
        if score >= self.poor:
            return TrustGrade.POOR
        return TrustGrade.SUSPECT

    model_config = {"frozen": True}


class FreshnessReport(BaseModel):
    """Result of evaluating the decay model for one age"""

    age_seconds: float = Field(..., ge=0.0)
    multiplier: float = Field(..., ge=0.0, le=1.0)
    policy: DecayPolicy
    within_grace: bool
    freshness_grade: FreshnessGrade
    is_stale: bool
    warnings: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def penalty_percent(self) -> float:
        """Confidence removed by decay, in percent"""
        return (1.0 - self.multiplier) * 100.0


class ConsensusResult(BaseModel):
    """Agreement between sibling claims about the same fact"""

    consensus_score: float = Field(..., ge=0.0, le=100.0)
    agreement_reached: bool
    consensus_value: Optional[ClaimValue] = None
    agreeing_sources: List[str] = Field(default_factory=list)
    outliers: List[Claim] = Field(default_factory=list)
    agreement_ratio: float = Field(default=0.0, ge=0.0, le=1.0, description="Share of agreeing claim pairs")
    deviation_sigma: Optional[float] = Field(default=None, description="Std deviation of agreeing numeric values")
    claim_count: int = Field(..., ge=1)
    warnings: List[str] = Field(default_factory=list)


class TrustScore(BaseModel):
    """
    Composite trust in one data point at one instant.

    A function of the current instant: recomputed per request and never
    cached beyond it.
    """

    base_confidence: float = Field(..., ge=0.0, le=100.0)
    freshness_score: float = Field(..., ge=0.0, le=100.0)
    source_reliability: float = Field(..., ge=0.0, le=100.0)
    consensus_score: float = Field(..., ge=0.0, le=100.0)
    composite_score: float = Field(..., ge=0.0, le=100.0)
    grade: TrustGrade
    warnings: List[str] = Field(default_factory=list)

    source_id: str
    data_point_id: str
    data_age_seconds: float = Field(..., ge=0.0)
    freshness_grade: FreshnessGrade
    decay_policy: DecayPolicy
    weights: TrustWeights
    thresholds: GradeThresholds
    algorithm: str = Field(..., description="Identifier of the scoring algorithm used")
    computed_at: datetime = Field(default_factory=utc_now)

    def factors(self) -> Dict[str, float]:
        """Factor scores keyed like the weights"""
        return {
            "base": self.base_confidence,
            "freshness": self.freshness_score,
            "reliability": self.source_reliability,
            "consensus": self.consensus_score,
        }

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "base_confidence": 92.0,
                    "freshness_score": 80.78,
                    "source_reliability": 96.0,
                    "consensus_score": 90.5,
                    "composite_score": 89.9,
                    "grade": "good",
                    "warnings": [],
                    "source_id": "oracle:pyth",
                    "data_point_id": "dp-3f9a1c22b7e0",
                    "data_age_seconds": 400.0,
                    "freshness_grade": "aging",
                    "decay_policy": "exponential",
                    "weights": {"base": 0.3, "freshness": 0.25, "reliability": 0.25, "consensus": 0.2},
                    "thresholds": {"excellent": 95, "good": 85, "fair": 70, "poor": 50},
                    "algorithm": "weighted-sum/v1",
                    "computed_at": "2025-10-02T10:36:55Z",
                }
            ]
        }
    }


class SourceRecord(BaseModel):
    """Historical accuracy of one named source"""

    source_id: str
    total_observations: int = Field(default=0, ge=0)
    validated_observations: int = Field(default=0, ge=0)
    rolling_reliability: float = Field(..., ge=0.0, le=100.0)
    meets_sample_floor: bool = False
