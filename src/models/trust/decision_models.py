"""
Decision Models

Pydantic V2 models for the decision lifecycle of an autonomous agent:
constraint catalogue and checks, the decision record, reversal plans,
observed outcomes and reversal history.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, Field, computed_field, field_validator

from src.models.trust.witness_models import ensure_utc, utc_now
from src.services.errors import InvalidConfiguration


class ThresholdOp(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    EQUALS = "equals"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConstraintType(str, Enum):
    PHYSICAL_SAFETY = "physical_safety"
    FINANCIAL_SAFETY = "financial_safety"
    OPERATIONAL_SAFETY = "operational_safety"
    GOVERNANCE_SAFETY = "governance_safety"
    TEMPORAL_SAFETY = "temporal_safety"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    MARGINAL = "marginal"
    VIOLATED = "violated"
    UNKNOWN = "unknown"


class SafetyStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


class DecisionImpact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ConstraintSpec(BaseModel):
    """Declarative constraint from the catalogue"""

    id: str = Field(..., min_length=1)
    description: str = ""
    metric: Optional[str] = Field(default=None, description="Action metric to compare; defaults to id")
    threshold_op: ThresholdOp
    threshold_value: float
    severity: Severity = Severity.MEDIUM
    constraint_type: ConstraintType = ConstraintType.OPERATIONAL_SAFETY
    risk_mitigation: Optional[str] = None

    @field_validator("threshold_op", mode="before")
    @classmethod
    def known_operator(cls, v: Any) -> Any:
        if isinstance(v, ThresholdOp):
            return v
        if v not in {op.value for op in ThresholdOp}:
            raise InvalidConfiguration(f"Unknown constraint operator: {v!r}")
        return v

    @field_validator("severity", mode="before")
    @classmethod
    def known_severity(cls, v: Any) -> Any:
        if isinstance(v, Severity):
            return v
        if v not in {severity.value for severity in Severity}:
            raise InvalidConfiguration(f"Unknown constraint severity: {v!r}")
        return v

    @property
    def metric_key(self) -> str:
        return self.metric or self.id

    model_config = {"frozen": True}


class ConstraintCheck(BaseModel):
    """Result of evaluating one constraint against one proposed action"""

    constraint_id: str
    description: str
    threshold: float
    threshold_op: ThresholdOp
    actual_value: Optional[float] = None
    passed: bool
    margin_percent: Optional[float] = None
    severity: Severity
    compliance_status: ComplianceStatus

    model_config = {"frozen": True}


class ValidationReport(BaseModel):
    all_passed: bool
    checks: List[ConstraintCheck]
    safety_status: SafetyStatus
    warnings: List[str] = Field(default_factory=list)
    validated_at: datetime = Field(default_factory=utc_now)


class ProposedAction(BaseModel):
    """An action an agent wants to take, with the metrics constraints look at"""

    action_type: str = Field(..., min_length=1)
    description: str = ""
    metrics: Dict[str, float] = Field(default_factory=dict)
    dependent_systems: List[str] = Field(default_factory=list)
    impact: DecisionImpact = DecisionImpact.MEDIUM

    model_config = {"frozen": True}


class PointOfNoReturn(BaseModel):
    reached: bool = False
    timestamp: Optional[datetime] = None
    reason: Optional[str] = None

    model_config = {"frozen": True}


class Decision(BaseModel):
    """
    An agent's proposed action and the evidence it rests on.

    Immutable; execution produces a new copy with executed_at set, recorded
    once in the ledger.
    """

    decision_id: str = Field(default_factory=lambda: f"decision-{uuid.uuid4().hex[:12]}")
    agent_id: str = Field(..., min_length=1)
    proposed_action: ProposedAction
    supporting_data_points: List[str] = Field(default_factory=list, description="DataPoint ids")
    constraint_checks: List[ConstraintCheck] = Field(default_factory=list)
    trust_score_at_decision: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    timestamp: datetime = Field(default_factory=utc_now)
    executed_at: Optional[datetime] = None
    point_of_no_return: PointOfNoReturn = Field(default_factory=PointOfNoReturn)
    reversal_window_seconds: Optional[float] = Field(
        default=None, gt=0, description="Overrides the impact-derived reversal window"
    )

    @field_validator("timestamp", "executed_at")
    @classmethod
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @property
    def is_executed(self) -> bool:
        return self.executed_at is not None

    model_config = {"frozen": True}


class ReversalComplexity(str, Enum):
    TRIVIAL = "trivial"
    SIMPLE = "simple"
    COMPLEX = "complex"
    EXPERT = "expert"


class ReversalMethod(str, Enum):
    IMMEDIATE_HALT = "immediate_halt"
    GRACEFUL_ROLLBACK = "graceful_rollback"
    COMPENSATING_ACTION = "compensating_action"
    MANUAL_OVERRIDE = "manual_override"
    IRREVERSIBLE = "irreversible"


class ReversalStep(BaseModel):
    step: int = Field(..., ge=1)
    action: str
    required_permissions: List[str] = Field(default_factory=list)
    estimated_seconds: float = Field(..., ge=0.0)
    risks: List[str] = Field(default_factory=list)


class ReversalCost(BaseModel):
    execution_cost: float = Field(..., ge=0.0)
    opportunity_cost: float = Field(..., ge=0.0)

    @computed_field
    @property
    def total(self) -> float:
        return self.execution_cost + self.opportunity_cost


class ReversalPlan(BaseModel):
    """How (and whether) an executed decision can be undone"""

    decision_id: str
    can_reverse: bool
    complexity: ReversalComplexity
    time_window_seconds: float = Field(..., ge=0.0)
    remaining_seconds: float = Field(..., ge=0.0)
    elapsed_seconds: float = Field(..., ge=0.0)
    methods: List[ReversalMethod] = Field(default_factory=list)
    steps: List[ReversalStep] = Field(default_factory=list)
    cost_estimate: ReversalCost
    authorities: List[str] = Field(default_factory=list)
    point_of_no_return: PointOfNoReturn = Field(default_factory=PointOfNoReturn)
    expires_at: Optional[datetime] = None
    terminal: bool = False
    estimated_reversal_minutes: float = Field(..., ge=0.0)
    reasons: List[str] = Field(default_factory=list)
    assessed_at: datetime = Field(default_factory=utc_now)


class OutcomeObservation(BaseModel):
    """Ground truth reported by the caller once a decision has played out"""

    decision_id: str
    predicted: Dict[str, float] = Field(default_factory=dict)
    actual: Dict[str, float] = Field(default_factory=dict)
    root_causes: Dict[str, str] = Field(
        default_factory=dict, description="Root-cause text per metric, supplied by the caller"
    )
    expected_duration_seconds: Optional[float] = Field(default=None, gt=0)
    actual_duration_seconds: Optional[float] = Field(default=None, ge=0)
    budgeted_cost: Optional[float] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    observed_at: datetime = Field(default_factory=utc_now)


class QualityComponents(BaseModel):
    accuracy: float = Field(..., ge=0.0, le=100.0)
    efficiency: float = Field(..., ge=0.0, le=100.0)
    timeliness: float = Field(..., ge=0.0, le=100.0)
    risk_management: float = Field(..., ge=0.0, le=100.0)
    compliance: float = Field(..., ge=0.0, le=100.0)

    model_config = {"frozen": True}


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


class RootCause(BaseModel):
    metric: str
    variance: float
    note: str

    model_config = {"frozen": True}


class DecisionOutcome(BaseModel):
    """Terminal after-the-fact assessment of one decision"""

    decision_id: str
    predicted: Dict[str, float]
    actual: Dict[str, float]
    variance_by_metric: Dict[str, float]
    quality_score: float = Field(..., ge=0.0, le=100.0)
    components: QualityComponents
    root_causes: List[RootCause] = Field(default_factory=list)
    flagged_metrics: List[str] = Field(default_factory=list)
    pending_root_causes: List[str] = Field(default_factory=list)
    outcome_status: OutcomeStatus
    warnings: List[str] = Field(default_factory=list)
    scored_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class ReversalReason(str, Enum):
    HUMAN_OVERRIDE = "human_override"
    CONSTRAINT_VIOLATION = "constraint_violation"
    IMPROVED_DATA = "improved_data"
    POLICY_CHANGE = "policy_change"
    ERROR_CORRECTION = "error_correction"


class ReversalRecord(BaseModel):
    reversal_id: str = Field(default_factory=lambda: f"reversal-{uuid.uuid4().hex[:12]}")
    decision_id: str
    reason: ReversalReason
    authority: str = Field(..., min_length=1)
    reversed_at: datetime = Field(default_factory=utc_now)
    corrective_actions: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}
