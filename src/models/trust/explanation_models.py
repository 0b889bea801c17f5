"""
Explanation Models

Audience-specific projections of a TrustScore.
"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from src.models.trust.score_models import TrustGrade


class ExplainabilityDepth(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class ExplanationInput(BaseModel):
    """A supporting input shown at intermediate depth"""

    key: str
    value: Union[float, str]
    source: str
    freshness_seconds: float = Field(..., ge=0.0)


class FactorContribution(BaseModel):
    """One row of the expert factor breakdown"""

    factor: str
    score: float
    weight: float
    contribution: float


class UncertaintyBounds(BaseModel):
    lower: float = Field(..., ge=0.0, le=100.0)
    upper: float = Field(..., ge=0.0, le=100.0)
    method: str


class Explanation(BaseModel):
    """Rendered explanation; fields beyond summary depend on depth"""

    depth: ExplainabilityDepth
    title: str
    summary: str
    grade: TrustGrade
    bullet_points: List[str] = Field(default_factory=list)
    supporting_inputs: List[ExplanationInput] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    factor_breakdown: List[FactorContribution] = Field(default_factory=list)
    composite_score: Optional[float] = None
    algorithms: List[str] = Field(default_factory=list)
    uncertainty: Optional[UncertaintyBounds] = None
    limitations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
