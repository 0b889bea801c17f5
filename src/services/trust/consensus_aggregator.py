"""
Consensus Aggregator - Multi-Source Agreement

Combines several sources' claims about the same fact into one agreement
score.

Key Features:
- Pairwise agreement matrix (NumPy) with a relative/absolute tolerance band
- Majority group = largest set of claims agreeing with one anchor claim
- Outliers excluded from the consensus average but kept for audit
- Even splits broken in favour of the most reliable source, with a warning
"""

import logging
import math
import numbers
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from src.models.trust.score_models import ConsensusResult
from src.models.trust.witness_models import Claim
from src.services.errors import InsufficientData

logger = logging.getLogger(__name__)


def _is_numeric(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _clamp_confidence(claim: Claim, warnings: List[str]) -> float:
    confidence = claim.confidence
    if math.isnan(confidence):
        warnings.append(f"Confidence from {claim.source_id} is not a number; treated as 0.0")
        return 0.0
    if confidence < 0.0 or confidence > 100.0:
        clamped = min(100.0, max(0.0, confidence))
        warnings.append(
            f"Confidence {confidence} from {claim.source_id} outside [0, 100]; clamped to {clamped}"
        )
        return clamped
    return confidence


class ConsensusAggregator:
    """
    Cross-checks sibling claims about one fact.

    A single claim never constitutes consensus: its own confidence is
    reported with agreement_reached = False.
    """

    def __init__(self, relative_tolerance: float = 0.05, absolute_tolerance: float = 0.0):
        """
        Initialize consensus aggregator.

        Args:
            relative_tolerance: Agreement band as a fraction of the larger magnitude
            absolute_tolerance: Minimum agreement band in value units
        """
        self.relative_tolerance = relative_tolerance
        self.absolute_tolerance = absolute_tolerance

        logger.info(
            f"ConsensusAggregator initialized: relative={relative_tolerance:.1%}, absolute={absolute_tolerance}"
        )

    def agreement_matrix(self, claims: List[Claim]) -> np.ndarray:
        """
        Pairwise agreement between claims.

        Numeric claims agree when |a - b| <= max(absolute, relative * max(|a|, |b|));
        any other values agree only on equality.

        Returns:
            Boolean (n, n) matrix, symmetric with a true diagonal
        """
        values = [claim.value for claim in claims]

        if all(_is_numeric(value) for value in values):
            vals = np.array(values, dtype=float)
            diff = np.abs(vals[:, None] - vals[None, :])
            magnitude = np.maximum(np.abs(vals)[:, None], np.abs(vals)[None, :])
            band = np.maximum(self.absolute_tolerance, self.relative_tolerance * magnitude)
            return diff <= band

        n = len(values)
        matrix = np.zeros((n, n), dtype=bool)
        for i in range(n):
            for j in range(n):
                a, b = values[i], values[j]
                same_kind = _is_numeric(a) == _is_numeric(b) and isinstance(a, bool) == isinstance(b, bool)
                matrix[i, j] = same_kind and a == b
        return matrix

    def _majority(
        self,
        claims: List[Claim],
        matrix: np.ndarray,
        reliability: Optional[Dict[str, float]],
        warnings: List[str],
    ) -> Tuple[Tuple[int, ...], bool]:
        groups: List[Tuple[int, ...]] = []
        for row in matrix:
            members = tuple(int(index) for index in np.flatnonzero(row))
            if members not in groups:
                groups.append(members)

        best_size = max(len(group) for group in groups)
        top = [group for group in groups if len(group) == best_size]
        if len(top) == 1:
            return top[0], False

        def strongest_source(group: Tuple[int, ...]) -> float:
            scores = []
            for index in group:
                claim = claims[index]
                if reliability is not None and claim.source_id in reliability:
                    scores.append(reliability[claim.source_id])
                else:
                    scores.append(claim.confidence)
            return max(scores)

        ranked = sorted(top, key=strongest_source, reverse=True)
        chosen = ranked[0]
        chosen_sources = [claims[index].source_id for index in chosen]
        disjoint = all(
            not set(a) & set(b) for position, a in enumerate(top) for b in top[position + 1:]
        )
        if disjoint:
            shape = f"Claims split evenly into {len(top)} groups of {best_size}"
        else:
            shape = f"{len(top)} overlapping agreement groups of {best_size}"
        warnings.append(
            f"{shape}; preferred the group containing the most reliable source ({', '.join(chosen_sources)})"
        )
        if strongest_source(ranked[0]) == strongest_source(ranked[1]):
            warnings.append("Reliability tie between groups; kept the first group in claim order")
        return chosen, True

    def aggregate(
        self,
        claims: Iterable[Claim],
        reliability: Optional[Dict[str, float]] = None,
    ) -> ConsensusResult:
        """
        Aggregate claims into a consensus result.

        Args:
            claims: Claims about the same fact from different sources
            reliability: Optional source_id -> reliability (0-100) used for tie-breaks

        Returns:
            ConsensusResult with score, agreement flag and outliers

        Raises:
            InsufficientData: If no claims were given
        """
        claims = list(claims)
        if not claims:
            raise InsufficientData("Consensus requires at least one claim")

        warnings: List[str] = []
        confidences = [_clamp_confidence(claim, warnings) for claim in claims]

        if len(claims) == 1:
            claim = claims[0]
            warnings.append(f"Single source {claim.source_id}; no corroborating claims")
            return ConsensusResult(
                consensus_score=confidences[0],
                agreement_reached=False,
                consensus_value=claim.value,
                agreeing_sources=[claim.source_id],
                outliers=[],
                agreement_ratio=0.0,
                deviation_sigma=None,
                claim_count=1,
                warnings=warnings,
            )

        n = len(claims)
        matrix = self.agreement_matrix(claims)
        upper = np.triu_indices(n, k=1)
        agreement_ratio = float(matrix[upper].sum()) / len(upper[0])

        majority, tie_broken = self._majority(claims, matrix, reliability, warnings)
        majority_set = set(majority)
        outliers = [claim for index, claim in enumerate(claims) if index not in majority_set]

        agreement_reached = len(majority) >= 2 and len(majority) * 2 > n
        consensus_score = min(100.0, max(0.0, float(np.mean([confidences[index] for index in majority]))))

        majority_values = [claims[index].value for index in majority]
        if all(_is_numeric(value) for value in majority_values):
            vals = np.array(majority_values, dtype=float)
            consensus_value = float(np.mean(vals))
            deviation_sigma: Optional[float] = float(np.std(vals))
        else:
            consensus_value = majority_values[0]
            deviation_sigma = None

        if outliers:
            logger.info(
                f"Consensus excluded {len(outliers)} outlier(s): "
                f"{', '.join(claim.source_id for claim in outliers)}"
            )
        if not agreement_reached and not tie_broken:
            warnings.append(f"No majority agreement among {n} claims")

        return ConsensusResult(
            consensus_score=consensus_score,
            agreement_reached=agreement_reached,
            consensus_value=consensus_value,
            agreeing_sources=[claims[index].source_id for index in majority],
            outliers=outliers,
            agreement_ratio=agreement_ratio,
            deviation_sigma=deviation_sigma,
            claim_count=n,
            warnings=warnings,
        )
