import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.models.trust.decision_models import (  # noqa: E402
    Decision,
    DecisionOutcome,
    OutcomeStatus,
    ProposedAction,
    QualityComponents,
    ReversalReason,
    ReversalRecord,
)
from src.services.decisions.ledger import DecisionLedger  # noqa: E402
from src.services.decisions.reversibility import ReversibilityAssessor  # noqa: E402
from src.services.errors import LedgerError, UnknownDecision  # noqa: E402

EXECUTED_AT = datetime(2025, 10, 2, 10, 0, tzinfo=timezone.utc)


def make_decision(**overrides):
    payload = {
        "agent_id": "agent:treasury",
        "proposed_action": ProposedAction(action_type="swap", metrics={"slippage_percent": 0.2}),
    }
    payload.update(overrides)
    return Decision(**payload)


def make_outcome(decision_id):
    return DecisionOutcome(
        decision_id=decision_id,
        predicted={},
        actual={},
        variance_by_metric={},
        quality_score=90.0,
        components=QualityComponents(
            accuracy=90, efficiency=90, timeliness=90, risk_management=90, compliance=90
        ),
        outcome_status=OutcomeStatus.SUCCESS,
    )


def reversal(decision_id):
    return ReversalRecord(
        decision_id=decision_id,
        reason=ReversalReason.HUMAN_OVERRIDE,
        authority="human:ops-lead",
    )


def test_record_and_lookup_preserves_order():
    ledger = DecisionLedger()
    first, second = make_decision(), make_decision()
    ledger.record_decision(first)
    ledger.record_decision(second)

    assert [d.decision_id for d in ledger.decisions()] == [first.decision_id, second.decision_id]
    assert ledger.get_decision(first.decision_id) is first
    assert ledger.get_decision("decision-missing") is None


def test_duplicate_decision_keeps_original():
    ledger = DecisionLedger()
    original = make_decision(decision_id="decision-1")
    ledger.record_decision(original)

    with pytest.raises(LedgerError):
        ledger.record_decision(make_decision(decision_id="decision-1", agent_id="agent:other"))

    assert ledger.get_decision("decision-1").agent_id == "agent:treasury"


def test_require_unknown_decision():
    with pytest.raises(UnknownDecision):
        DecisionLedger().require_decision("decision-missing")


def test_mark_executed_returns_new_copy():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())

    executed = ledger.mark_executed(decision.decision_id, at=EXECUTED_AT)

    assert executed.executed_at == EXECUTED_AT
    assert not decision.is_executed
    assert ledger.get_decision(decision.decision_id).is_executed


def test_execute_twice_is_rejected():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())
    ledger.mark_executed(decision.decision_id, at=EXECUTED_AT)

    with pytest.raises(LedgerError):
        ledger.mark_executed(decision.decision_id)


def test_concurrent_execution_has_one_winner():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())
    errors = []
    successes = []

    def worker():
        try:
            successes.append(ledger.mark_executed(decision.decision_id))
        except LedgerError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(successes) == 1
    assert len(errors) == 7


def test_outcome_recorded_once():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())
    ledger.record_outcome(make_outcome(decision.decision_id))

    with pytest.raises(LedgerError):
        ledger.record_outcome(make_outcome(decision.decision_id))

    assert ledger.get_outcome(decision.decision_id).quality_score == 90.0


def test_outcome_for_unknown_decision():
    with pytest.raises(UnknownDecision):
        DecisionLedger().record_outcome(make_outcome("decision-missing"))


def test_reversal_requires_execution():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())

    with pytest.raises(LedgerError):
        ledger.record_reversal(reversal(decision.decision_id))


def test_reversal_rejected_when_plan_is_irreversible():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())
    executed = ledger.mark_executed(decision.decision_id, at=EXECUTED_AT)
    plan = ReversibilityAssessor().assess(executed, now=EXECUTED_AT + timedelta(hours=2))

    assert not plan.can_reverse
    with pytest.raises(LedgerError):
        ledger.record_reversal(reversal(decision.decision_id), plan)
    assert ledger.reversals_for(decision.decision_id) == []


def test_decision_reversed_only_once():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())
    executed = ledger.mark_executed(decision.decision_id, at=EXECUTED_AT)
    plan = ReversibilityAssessor().assess(executed, now=EXECUTED_AT + timedelta(seconds=60))

    record = ledger.record_reversal(reversal(decision.decision_id), plan)

    assert ledger.reversals_for(decision.decision_id) == [record]
    with pytest.raises(LedgerError):
        ledger.record_reversal(reversal(decision.decision_id), plan)


def test_concurrent_reversals_have_one_winner():
    ledger = DecisionLedger()
    decision = ledger.record_decision(make_decision())
    executed = ledger.mark_executed(decision.decision_id, at=EXECUTED_AT)
    plan = ReversibilityAssessor().assess(executed, now=EXECUTED_AT + timedelta(seconds=60))
    errors = []
    successes = []

    def worker():
        try:
            successes.append(ledger.record_reversal(reversal(decision.decision_id), plan))
        except LedgerError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(successes) == 1
    assert len(errors) == 7
    assert ledger.reversals_for(decision.decision_id) == successes
