"""Append-only decision ledger: decisions, outcomes and reversals keyed by id."""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from src.models.trust.decision_models import (
    Decision,
    DecisionOutcome,
    ReversalPlan,
    ReversalRecord,
)
from src.models.trust.witness_models import ensure_utc, utc_now
from src.services.errors import LedgerError, UnknownDecision

logger = logging.getLogger(__name__)


class DecisionLedger:
    """
    Arena-style audit log.

    Records live in insertion-ordered dicts keyed by their id; other
    records refer to them by id only. Nothing is ever removed. Inserts use
    dict.setdefault so a duplicate id can never overwrite history.
    """

    def __init__(self):
        self._decisions: Dict[str, Decision] = {}
        self._outcomes: Dict[str, DecisionOutcome] = {}
        self._reversals: Dict[str, ReversalRecord] = {}
        self._execution_lock = threading.Lock()

    def record_decision(self, decision: Decision) -> Decision:
        stored = self._decisions.setdefault(decision.decision_id, decision)
        if stored is not decision:
            raise LedgerError(f"Decision {decision.decision_id} already recorded")
        logger.info(f"Recorded decision {decision.decision_id} by {decision.agent_id}")
        return decision

    def get_decision(self, decision_id: str) -> Optional[Decision]:
        return self._decisions.get(decision_id)

    def require_decision(self, decision_id: str) -> Decision:
        decision = self._decisions.get(decision_id)
        if decision is None:
            raise UnknownDecision(f"Unknown decision: {decision_id}")
        return decision

    def mark_executed(self, decision_id: str, at: Optional[datetime] = None) -> Decision:
        """
        Stamp a decision as executed; it is immutable from then on.

        Raises:
            UnknownDecision: Decision not in the ledger
            LedgerError: Decision already executed
        """
        with self._execution_lock:
            decision = self.require_decision(decision_id)
            if decision.is_executed:
                raise LedgerError(f"Decision {decision_id} already executed at {decision.executed_at.isoformat()}")
            executed = decision.model_copy(update={"executed_at": ensure_utc(at) if at else utc_now()})
            self._decisions[decision_id] = executed
        logger.info(f"Decision {decision_id} executed")
        return executed

    def record_outcome(self, outcome: DecisionOutcome) -> DecisionOutcome:
        self.require_decision(outcome.decision_id)
        stored = self._outcomes.setdefault(outcome.decision_id, outcome)
        if stored is not outcome:
            raise LedgerError(f"Outcome for {outcome.decision_id} already recorded")
        return outcome

    def get_outcome(self, decision_id: str) -> Optional[DecisionOutcome]:
        return self._outcomes.get(decision_id)

    def record_reversal(self, record: ReversalRecord, plan: Optional[ReversalPlan] = None) -> ReversalRecord:
        """
        Append a reversal of an executed decision.

        Args:
            record: The reversal performed
            plan: Reversal plan assessed just before reversing

        Raises:
            UnknownDecision: Decision not in the ledger
            LedgerError: Decision not executed, not reversible, or already reversed
        """
        # One reversal per decision: check and insert under the execution lock
        with self._execution_lock:
            decision = self.require_decision(record.decision_id)
            if not decision.is_executed:
                raise LedgerError(f"Decision {record.decision_id} was never executed")
            if plan is not None and not plan.can_reverse:
                raise LedgerError(
                    f"Decision {record.decision_id} can no longer be reversed: {'; '.join(plan.reasons)}"
                )
            if self.reversals_for(record.decision_id):
                raise LedgerError(f"Decision {record.decision_id} already reversed")

            stored = self._reversals.setdefault(record.reversal_id, record)
            if stored is not record:
                raise LedgerError(f"Reversal {record.reversal_id} already recorded")
        logger.warning(f"Decision {record.decision_id} reversed by {record.authority} ({record.reason.value})")
        return record

    def reversals_for(self, decision_id: str) -> List[ReversalRecord]:
        return [record for record in self._reversals.values() if record.decision_id == decision_id]

    def decisions(self) -> List[Decision]:
        return list(self._decisions.values())
