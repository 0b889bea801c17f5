"""
Trust Witness Server Models
Data models for trust scoring, provenance chains and decision accountability
"""

# Trust models (from trust/ subdirectory)
from .trust.witness_models import (
    Claim,
    DataPoint,
    TruthWitness,
)
from .trust.score_models import (
    ConsensusResult,
    TrustScore,
)
from .trust.provenance_models import (
    ProvenanceChain,
    ProvenanceStep,
)
from .trust.explanation_models import Explanation
from .trust.decision_models import (
    Decision,
    DecisionOutcome,
    ReversalPlan,
)

__all__ = [
    # Witness
    "Claim",
    "DataPoint",
    "TruthWitness",
    # Score
    "ConsensusResult",
    "TrustScore",
    # Provenance
    "ProvenanceChain",
    "ProvenanceStep",
    # Explanation
    "Explanation",
    # Decisions
    "Decision",
    "DecisionOutcome",
    "ReversalPlan",
]
