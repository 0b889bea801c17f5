"""Validated trust engine configuration built from flat settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.config.settings import Settings, settings as default_settings
from src.models.trust.score_models import DecayPolicy, GradeThresholds, TrustWeights
from src.services.errors import InvalidConfiguration


class EngineConfig(BaseModel):
    """Every recognised engine option, checked once at startup."""

    weights: TrustWeights = Field(default_factory=TrustWeights)
    grade_thresholds: GradeThresholds = Field(default_factory=GradeThresholds)
    decay_policy: DecayPolicy = DecayPolicy.EXPONENTIAL
    half_life_seconds: float = Field(default=1200.0, gt=0)
    grace_period_seconds: float = Field(default=30.0, ge=0)
    decay_floor: float = Field(default=0.05, ge=0.0, le=1.0)
    min_observations_for_reliability: int = Field(default=10, ge=1)
    neutral_reliability: float = Field(default=70.0, ge=0.0, le=100.0)
    consensus_relative_tolerance: float = Field(default=0.05, ge=0.0)
    consensus_absolute_tolerance: float = Field(default=0.0, ge=0.0)
    constraint_catalogue_path: Optional[str] = None
    constraint_marginal_percent: float = Field(default=10.0, ge=0.0)
    reversal_grace_window_seconds: float = Field(default=300.0, gt=0)
    reversal_step_cost: float = Field(default=1.0, ge=0.0)
    variance_tolerance: float = Field(default=0.05, ge=0.0)

    @field_validator("decay_policy", mode="before")
    @classmethod
    def known_policy(cls, v):
        if isinstance(v, DecayPolicy):
            return v
        if v not in {policy.value for policy in DecayPolicy}:
            raise InvalidConfiguration(f"Unknown decay policy: {v!r}")
        return v

    model_config = {"frozen": True}


def build_engine_config(source: Optional[Settings] = None, **overrides) -> EngineConfig:
    """
    Build an EngineConfig from settings.

    Args:
        source: Settings instance (defaults to the global settings)
        **overrides: Field overrides applied on top of the settings

    Returns:
        Validated EngineConfig

    Raises:
        InvalidConfiguration: Weights don't sum to 1.0, thresholds not monotonic,
            unknown decay policy, or any out-of-range option
    """
    s = source or default_settings
    values = {
        "weights": {
            "base": s.WEIGHT_BASE,
            "freshness": s.WEIGHT_FRESHNESS,
            "reliability": s.WEIGHT_RELIABILITY,
            "consensus": s.WEIGHT_CONSENSUS,
        },
        "grade_thresholds": {
            "excellent": s.GRADE_EXCELLENT,
            "good": s.GRADE_GOOD,
            "fair": s.GRADE_FAIR,
            "poor": s.GRADE_POOR,
        },
        "decay_policy": s.DECAY_POLICY,
        "half_life_seconds": s.HALF_LIFE_SECONDS,
        "grace_period_seconds": s.GRACE_PERIOD_SECONDS,
        "decay_floor": s.DECAY_FLOOR,
        "min_observations_for_reliability": s.MIN_OBSERVATIONS_FOR_RELIABILITY,
        "neutral_reliability": s.NEUTRAL_RELIABILITY,
        "consensus_relative_tolerance": s.CONSENSUS_RELATIVE_TOLERANCE,
        "consensus_absolute_tolerance": s.CONSENSUS_ABSOLUTE_TOLERANCE,
        "constraint_catalogue_path": s.CONSTRAINT_CATALOGUE_PATH,
        "constraint_marginal_percent": s.CONSTRAINT_MARGINAL_PERCENT,
        "reversal_grace_window_seconds": s.REVERSAL_GRACE_WINDOW_SECONDS,
        "reversal_step_cost": s.REVERSAL_STEP_COST,
        "variance_tolerance": s.VARIANCE_TOLERANCE,
    }
    values.update(overrides)

    try:
        return EngineConfig(**values)
    except ValidationError as exc:
        raise InvalidConfiguration(f"Invalid engine configuration: {exc}") from exc
