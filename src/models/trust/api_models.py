"""
API Models

Request/response bodies for the HTTP layer. Domain records are embedded
as-is so their field names stay stable across the engine and the API.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.models.trust.decision_models import (
    Decision,
    DecisionOutcome,
    ProposedAction,
    ReversalReason,
    ReversalRecord,
    ValidationReport,
)
from src.models.trust.explanation_models import ExplainabilityDepth, Explanation
from src.models.trust.score_models import TrustScore
from src.models.trust.witness_models import Claim, DataPoint, TruthWitness


class ScoreRequest(BaseModel):
    """Score one data point against its sibling claims"""

    data_point: DataPoint
    witness: TruthWitness
    claims: List[Claim] = Field(default_factory=list, description="Sibling claims about the same fact")
    depth: Optional[ExplainabilityDepth] = Field(
        default=None, description="Also render an explanation at this depth"
    )


class ScoreResponse(BaseModel):
    trust_score: TrustScore
    explanation: Optional[Explanation] = None


class ExplainRequest(BaseModel):
    trust_score: TrustScore
    depth: ExplainabilityDepth = ExplainabilityDepth.BEGINNER


class OpenChainRequest(BaseModel):
    data_point_id: str = Field(..., min_length=1)


class ProposeDecisionRequest(BaseModel):
    agent_id: str = Field(..., min_length=1)
    proposed_action: ProposedAction
    supporting_data_points: List[str] = Field(default_factory=list)
    trust_score_at_decision: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    constraint_ids: Optional[List[str]] = Field(
        default=None, description="Catalogue constraints to apply; all of them when omitted"
    )
    reversal_window_seconds: Optional[float] = Field(default=None, gt=0)


class ProposeDecisionResponse(BaseModel):
    decision: Decision
    validation: ValidationReport


class ExecuteDecisionRequest(BaseModel):
    executed_at: Optional[datetime] = None


class PointOfNoReturnRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class ReverseDecisionRequest(BaseModel):
    reason: ReversalReason
    authority: str = Field(..., min_length=1)
    corrective_actions: List[str] = Field(default_factory=list)


class OutcomeRequest(BaseModel):
    """Ground truth for a decision; the decision id comes from the path"""

    predicted: Dict[str, float] = Field(default_factory=dict)
    actual: Dict[str, float] = Field(default_factory=dict)
    root_causes: Dict[str, str] = Field(default_factory=dict)
    expected_duration_seconds: Optional[float] = Field(default=None, gt=0)
    actual_duration_seconds: Optional[float] = Field(default=None, ge=0)
    budgeted_cost: Optional[float] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)


class DecisionRecordResponse(BaseModel):
    decision: Decision
    outcome: Optional[DecisionOutcome] = None
    reversals: List[ReversalRecord] = Field(default_factory=list)


class SourceOutcomeRequest(BaseModel):
    was_accurate: bool
