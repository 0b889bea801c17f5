"""Trust mathematics services package."""

from .decay_model import (  # noqa: F401
    DecayModel,
    decay,
    freshness_grade,
)
from .source_registry import (  # noqa: F401
    SourceReliabilityRegistry,
    get_source_registry,
)
from .consensus_aggregator import ConsensusAggregator  # noqa: F401
from .trust_calculator import (  # noqa: F401
    ALGORITHM_ID,
    TrustScoreCalculator,
)
from .explainability import (  # noqa: F401
    ExplainabilityRenderer,
    extract_factors,
)

__all__ = [
    "DecayModel",
    "decay",
    "freshness_grade",
    "SourceReliabilityRegistry",
    "get_source_registry",
    "ConsensusAggregator",
    "ALGORITHM_ID",
    "TrustScoreCalculator",
    "ExplainabilityRenderer",
    "extract_factors",
]
