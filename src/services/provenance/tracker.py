"""
Provenance Chain Tracker

Stamps each processing stage a data point passes through and checks the
links between stages.

Key Features:
- Per-chain state machine: OPEN -> (append step)* -> CLOSED
- Gap detection on close (missing or misordered stages)
- Integrity walk over adjacent steps (digest links, strict time order)
- SHA-256 digests over canonical JSON for stage inputs/outputs

Provenance is advisory: a chain with gaps still closes, it is just marked
questionable instead of verified.
"""

import hashlib
import json
import logging
from typing import Any, Dict, List

from src.models.trust.provenance_models import (
    STAGE_ORDER,
    ChainIntegrity,
    ChainState,
    GapDetection,
    ProvenanceChain,
    ProvenanceStep,
)
from src.models.trust.witness_models import utc_now
from src.services.errors import ChainStateError, UnknownChain

logger = logging.getLogger(__name__)


def compute_digest(payload: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of a payload"""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ProvenanceChainTracker:
    """
    Holds provenance chains by id.

    Each chain is owned by the single request that opened it, so chains
    are kept in a plain dict without locking. Callers only ever receive
    copies; steps change through append_step alone. A chain left OPEN (e.g. its
    owner crashed) reads back as questionable.
    """

    def __init__(self):
        self._chains: Dict[str, ProvenanceChain] = {}
        logger.info("Provenance chain tracker initialized")

    def open_chain(self, data_point_id: str) -> ProvenanceChain:
        """
        Open a new chain for a data point.

        Args:
            data_point_id: Data point whose lineage is tracked

        Returns:
            The new OPEN chain
        """
        chain = ProvenanceChain(data_point_id=data_point_id)
        self._chains[chain.chain_id] = chain
        logger.debug(f"Opened provenance chain {chain.chain_id} for {data_point_id}")
        return chain.model_copy(deep=True)

    def _require(self, chain_id: str) -> ProvenanceChain:
        chain = self._chains.get(chain_id)
        if chain is None:
            raise UnknownChain(f"Unknown provenance chain: {chain_id}")
        return chain

    def append_step(self, chain_id: str, step: ProvenanceStep) -> ProvenanceChain:
        """
        Append a processing stage to an open chain.

        Raises:
            ChainStateError: Chain unknown or already closed
        """
        chain = self._require(chain_id)
        if chain.state == ChainState.CLOSED:
            raise ChainStateError(f"Cannot append to closed chain {chain_id}")

        chain.steps.append(step)
        return chain.model_copy(deep=True)

    def _detect_gaps(self, steps: List[ProvenanceStep]) -> GapDetection:
        present = {step.stage for step in steps}
        missing = [stage for stage in STAGE_ORDER if stage not in present]
        reasons = [f"Missing {stage.value} stage" for stage in missing]

        highest = -1
        for index, step in enumerate(steps):
            position = STAGE_ORDER.index(step.stage)
            if position < highest:
                reasons.append(
                    f"Step {index} ({step.stage.value}) follows {STAGE_ORDER[highest].value}; stages out of order"
                )
            highest = max(highest, position)

        return GapDetection(has_gaps=bool(reasons), missing_stages=missing, gap_reasons=reasons)

    def close(self, chain_id: str) -> ProvenanceChain:
        """
        Close a chain and run gap detection and integrity verification.

        Missing or misordered stages do not block the close; they mark
        the chain questionable.

        Raises:
            ChainStateError: Chain unknown or already closed
        """
        chain = self._require(chain_id)
        if chain.state == ChainState.CLOSED:
            raise ChainStateError(f"Chain {chain_id} is already closed")

        chain.gap_detection = self._detect_gaps(chain.steps)
        chain.state = ChainState.CLOSED
        chain.closed_at = utc_now()
        integrity = self.verify_integrity(chain_id)

        if chain.gap_detection.has_gaps:
            logger.warning(f"Chain {chain_id} closed with gaps: {'; '.join(chain.gap_detection.gap_reasons)}")
        else:
            logger.info(f"Chain {chain_id} closed ({integrity.value}, {len(chain.steps)} steps)")
        return chain.model_copy(deep=True)

    def verify_integrity(self, chain_id: str) -> ChainIntegrity:
        """
        Walk adjacent steps and grade the chain.

        - broken: output_digest[i] != input_digest[i+1] (both present), or a
          timestamp not strictly later than its predecessor
        - questionable: chain still OPEN, or closed with gaps
        - verified: closed, complete, every adjacent pair digest-linked
        - intact: closed and complete without full digest links

        Raises:
            ChainStateError: Chain unknown
        """
        chain = self._require(chain_id)
        steps = chain.steps

        broken_reasons = []
        linked_pairs = 0
        for index, (previous, current) in enumerate(zip(steps, steps[1:]), start=1):
            if current.timestamp <= previous.timestamp:
                broken_reasons.append(f"step {index} is not later than step {index - 1}")
            if previous.output_digest is not None and current.input_digest is not None:
                if previous.output_digest != current.input_digest:
                    broken_reasons.append(f"digest mismatch between steps {index - 1} and {index}")
                else:
                    linked_pairs += 1

        if broken_reasons:
            integrity = ChainIntegrity.BROKEN
            logger.warning(f"Chain {chain_id} broken: {'; '.join(broken_reasons)}")
        elif chain.state == ChainState.OPEN or chain.gap_detection.has_gaps:
            integrity = ChainIntegrity.QUESTIONABLE
        elif steps and linked_pairs == len(steps) - 1:
            integrity = ChainIntegrity.VERIFIED
        else:
            integrity = ChainIntegrity.INTACT

        chain.integrity = integrity
        return integrity

    def get_chain(self, chain_id: str) -> ProvenanceChain:
        """
        Read a chain back with a freshly computed integrity verdict.

        Raises:
            ChainStateError: Chain unknown
        """
        self.verify_integrity(chain_id)
        return self._chains[chain_id].model_copy(deep=True)

    def chain_ids(self) -> List[str]:
        return list(self._chains)
