"""Decision accountability services: validation, reversibility, quality and audit."""

from src.services.decisions.constraint_validator import ConstraintValidator
from src.services.decisions.ledger import DecisionLedger
from src.services.decisions.quality_scorer import DecisionQualityScorer
from src.services.decisions.reversibility import ReversibilityAssessor

__all__ = [
    "ConstraintValidator",
    "DecisionLedger",
    "DecisionQualityScorer",
    "ReversibilityAssessor",
]
