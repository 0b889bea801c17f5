"""
Trust Engine - Composition Root

Wires every trust component from one validated EngineConfig:

    FeedReader -> DataPoint -> ProvenanceChainTracker -> ConsensusAggregator
              -> TrustScoreCalculator (DecayModel + SourceReliabilityRegistry)
              -> ConstraintValidator -> DecisionLedger
              -> ReversibilityAssessor / DecisionQualityScorer

Scores also carry a warning when the witness is older than the maximum
age for its authority.

Scoring calls are side-effect free; only record_source_outcome touches the
registry, and only the decision methods append to the ledger.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from src.config.constraints import load_constraints
from src.config.engine_config import EngineConfig, build_engine_config
from src.models.trust.decision_models import (
    ConstraintSpec,
    Decision,
    DecisionOutcome,
    OutcomeObservation,
    PointOfNoReturn,
    ProposedAction,
    ReversalPlan,
    ReversalReason,
    ReversalRecord,
    ValidationReport,
)
from src.models.trust.explanation_models import ExplainabilityDepth, Explanation
from src.models.trust.provenance_models import ProvenanceChain, ProvenanceStep
from src.models.trust.score_models import ConsensusResult, SourceRecord, TrustScore
from src.models.trust.witness_models import Claim, DataPoint, TruthWitness, utc_now
from src.services.decisions.constraint_validator import ConstraintValidator
from src.services.decisions.ledger import DecisionLedger
from src.services.decisions.quality_scorer import DecisionQualityScorer
from src.services.decisions.reversibility import ReversibilityAssessor
from src.services.ingestion.sources import (
    FeedReader,
    FreshnessRequirement,
    IngestionSource,
    check_freshness_requirements,
    ingest,
)
from src.services.provenance.tracker import ProvenanceChainTracker
from src.services.trust.consensus_aggregator import ConsensusAggregator
from src.services.trust.decay_model import DecayModel
from src.services.trust.explainability import ExplainabilityRenderer
from src.services.trust.source_registry import SourceReliabilityRegistry, get_source_registry
from src.services.trust.trust_calculator import TrustScoreCalculator

logger = logging.getLogger(__name__)

TRUST_SCORE_METRIC = "trust_score"


class TrustEngine:
    """One per process (or per tenant); holds the only shared state."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[SourceReliabilityRegistry] = None,
        catalogue: Optional[Dict[str, ConstraintSpec]] = None,
    ):
        self.config = config or EngineConfig()
        self.registry = registry or SourceReliabilityRegistry(
            min_observations=self.config.min_observations_for_reliability,
            neutral_reliability=self.config.neutral_reliability,
        )
        if catalogue is None:
            catalogue = load_constraints(self.config.constraint_catalogue_path)

        self.decay_model = DecayModel(
            policy=self.config.decay_policy,
            half_life_seconds=self.config.half_life_seconds,
            grace_period_seconds=self.config.grace_period_seconds,
            floor=self.config.decay_floor,
        )
        self.calculator = TrustScoreCalculator(
            weights=self.config.weights,
            thresholds=self.config.grade_thresholds,
            decay_model=self.decay_model,
        )
        self.aggregator = ConsensusAggregator(
            relative_tolerance=self.config.consensus_relative_tolerance,
            absolute_tolerance=self.config.consensus_absolute_tolerance,
        )
        self.renderer = ExplainabilityRenderer()
        self.tracker = ProvenanceChainTracker()
        self.validator = ConstraintValidator(
            catalogue=catalogue,
            marginal_margin_percent=self.config.constraint_marginal_percent,
        )
        self.assessor = ReversibilityAssessor(
            grace_window_seconds=self.config.reversal_grace_window_seconds,
            step_cost=self.config.reversal_step_cost,
        )
        self.quality_scorer = DecisionQualityScorer(variance_tolerance=self.config.variance_tolerance)
        self.ledger = DecisionLedger()

        logger.info("Trust engine initialized")

    # Trust scoring

    def consensus_for(self, data_point: DataPoint, witness: TruthWitness, claims: Iterable[Claim]) -> Optional[ConsensusResult]:
        """Aggregate sibling claims together with the data point's own claim; None when there are no siblings"""
        siblings = list(claims)
        if not siblings:
            return None
        if all(claim.source_id != data_point.source_id for claim in siblings):
            own_confidence = self.calculator.base_confidence(data_point, witness)
            siblings.insert(0, Claim(source_id=data_point.source_id, value=data_point.value, confidence=own_confidence))
        reliability = self.registry.reliability_map(*{claim.source_id for claim in siblings})
        return self.aggregator.aggregate(siblings, reliability=reliability)

    def ingest(
        self,
        reader: FeedReader,
        source: IngestionSource,
        now: Optional[datetime] = None,
    ) -> List[Tuple[DataPoint, TruthWitness]]:
        return ingest(reader, source, now=now)

    def freshness_requirements(
        self,
        witnesses: Iterable[TruthWitness],
        now: Optional[datetime] = None,
    ) -> List[FreshnessRequirement]:
        return check_freshness_requirements(witnesses, now=now)

    def score(
        self,
        data_point: DataPoint,
        witness: TruthWitness,
        claims: Iterable[Claim] = (),
        now: Optional[datetime] = None,
    ) -> TrustScore:
        """Score a data point; a witness older than its authority's maximum age adds a warning"""
        now = now or utc_now()
        consensus = self.consensus_for(data_point, witness, claims)
        trust_score = self.calculator.score_with_registry(
            data_point, witness, self.registry, consensus=consensus, now=now
        )

        stale = [
            f"Witness {requirement.global_trace_id} age {requirement.age_seconds:.1f}s exceeds "
            f"{requirement.max_age_seconds:.0f}s maximum for {requirement.source_authority.value} data"
            for requirement in self.freshness_requirements([witness], now=now)
            if not requirement.satisfied
        ]
        if stale:
            trust_score = trust_score.model_copy(update={"warnings": trust_score.warnings + stale})
        return trust_score

    def explain(self, trust_score: TrustScore, depth: Union[ExplainabilityDepth, str]) -> Explanation:
        return self.renderer.render(trust_score, depth)

    def record_source_outcome(self, source_id: str, was_accurate: bool) -> SourceRecord:
        return self.registry.record_outcome(source_id, was_accurate)

    def source_records(self) -> Dict[str, SourceRecord]:
        return self.registry.all_records()

    # Provenance

    def open_chain(self, data_point_id: str) -> ProvenanceChain:
        return self.tracker.open_chain(data_point_id)

    def append_step(self, chain_id: str, step: ProvenanceStep) -> ProvenanceChain:
        return self.tracker.append_step(chain_id, step)

    def close_chain(self, chain_id: str) -> ProvenanceChain:
        return self.tracker.close(chain_id)

    def get_chain(self, chain_id: str) -> ProvenanceChain:
        return self.tracker.get_chain(chain_id)

    # Decisions

    def propose_decision(
        self,
        agent_id: str,
        proposed_action: ProposedAction,
        supporting_data_points: Iterable[str] = (),
        trust_score_at_decision: Optional[float] = None,
        constraints: Optional[List[ConstraintSpec]] = None,
        reversal_window_seconds: Optional[float] = None,
    ) -> Tuple[Decision, ValidationReport]:
        """
        Validate a proposed action and record the resulting decision.

        The trust score at decision time is exposed to constraints as the
        `trust_score` metric unless the action already reports one.
        """
        action = proposed_action
        if trust_score_at_decision is not None and TRUST_SCORE_METRIC not in action.metrics:
            metrics = dict(action.metrics)
            metrics[TRUST_SCORE_METRIC] = trust_score_at_decision
            action = action.model_copy(update={"metrics": metrics})

        report = self.validator.validate(action, constraints)
        decision = Decision(
            agent_id=agent_id,
            proposed_action=action,
            supporting_data_points=list(supporting_data_points),
            constraint_checks=report.checks,
            trust_score_at_decision=trust_score_at_decision,
            reversal_window_seconds=reversal_window_seconds,
        )
        self.ledger.record_decision(decision)
        return decision, report

    def execute_decision(self, decision_id: str, at: Optional[datetime] = None) -> Decision:
        return self.ledger.mark_executed(decision_id, at=at)

    def assess_reversal(self, decision_id: str, now: Optional[datetime] = None) -> ReversalPlan:
        return self.assessor.assess(self.ledger.require_decision(decision_id), now=now)

    def mark_point_of_no_return(self, decision_id: str, reason: str, at: Optional[datetime] = None) -> PointOfNoReturn:
        self.ledger.require_decision(decision_id)
        return self.assessor.mark_point_of_no_return(decision_id, reason, at=at)

    def reverse_decision(
        self,
        decision_id: str,
        reason: ReversalReason,
        authority: str,
        corrective_actions: Iterable[str] = (),
        now: Optional[datetime] = None,
    ) -> ReversalRecord:
        plan = self.assess_reversal(decision_id, now=now)
        record = ReversalRecord(
            decision_id=decision_id,
            reason=reason,
            authority=authority,
            corrective_actions=list(corrective_actions),
        )
        return self.ledger.record_reversal(record, plan)

    def record_outcome(self, observation: OutcomeObservation) -> DecisionOutcome:
        decision = self.ledger.get_decision(observation.decision_id)
        outcome = self.quality_scorer.score(decision, observation)
        return self.ledger.record_outcome(outcome)


_engine: Optional[TrustEngine] = None


def get_engine() -> TrustEngine:
    """Return the per-process engine, built from settings on first use."""

    global _engine
    if _engine is None:
        config = build_engine_config()
        _engine = TrustEngine(config=config, registry=get_source_registry())
    return _engine


__all__ = [
    "TrustEngine",
    "get_engine",
]
