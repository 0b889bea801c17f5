"""
Trust Models

Pydantic V2 models for trust scoring, provenance and decision accountability.
"""

# Witness models
from src.models.trust.witness_models import (
    AUTHORITY_BASELINE_CONFIDENCE,
    Claim,
    DataPoint,
    SourceAuthority,
    TruthWitness,
)

# Score models
from src.models.trust.score_models import (
    ConsensusResult,
    DecayPolicy,
    FreshnessGrade,
    FreshnessReport,
    GradeThresholds,
    SourceRecord,
    TrustGrade,
    TrustScore,
    TrustWeights,
)

# Provenance models
from src.models.trust.provenance_models import (
    ChainIntegrity,
    ChainState,
    GapDetection,
    ProvenanceChain,
    ProvenanceStage,
    ProvenanceStep,
)

# Explanation models
from src.models.trust.explanation_models import (
    ExplainabilityDepth,
    Explanation,
    ExplanationInput,
    FactorContribution,
    UncertaintyBounds,
)

# Decision models
from src.models.trust.decision_models import (
    ComplianceStatus,
    ConstraintCheck,
    ConstraintSpec,
    ConstraintType,
    Decision,
    DecisionImpact,
    DecisionOutcome,
    OutcomeObservation,
    OutcomeStatus,
    PointOfNoReturn,
    ProposedAction,
    QualityComponents,
    ReversalComplexity,
    ReversalPlan,
    ReversalReason,
    ReversalRecord,
    SafetyStatus,
    Severity,
    ThresholdOp,
    ValidationReport,
)

__all__ = [
    # Witness
    "AUTHORITY_BASELINE_CONFIDENCE",
    "Claim",
    "DataPoint",
    "SourceAuthority",
    "TruthWitness",
    # Score
    "ConsensusResult",
    "DecayPolicy",
    "FreshnessGrade",
    "FreshnessReport",
    "GradeThresholds",
    "SourceRecord",
    "TrustGrade",
    "TrustScore",
    "TrustWeights",
    # Provenance
    "ChainIntegrity",
    "ChainState",
    "GapDetection",
    "ProvenanceChain",
    "ProvenanceStage",
    "ProvenanceStep",
    # Explanation
    "ExplainabilityDepth",
    "Explanation",
    "ExplanationInput",
    "FactorContribution",
    "UncertaintyBounds",
    # Decision
    "ComplianceStatus",
    "ConstraintCheck",
    "ConstraintSpec",
    "ConstraintType",
    "Decision",
    "DecisionImpact",
    "DecisionOutcome",
    "OutcomeObservation",
    "OutcomeStatus",
    "PointOfNoReturn",
    "ProposedAction",
    "QualityComponents",
    "ReversalComplexity",
    "ReversalPlan",
    "ReversalReason",
    "ReversalRecord",
    "SafetyStatus",
    "Severity",
    "ThresholdOp",
    "ValidationReport",
]
