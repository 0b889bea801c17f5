"""
Reversibility Assessor - Undo Plans for Executed Decisions

Computes whether, how, and at what cost an executed decision can be undone.

Rules:
- Reversal window from decision impact (low 1h, medium 30m, high/critical 10m),
  unless the decision overrides it
- Complexity from dependent systems, raised one level once the grace window
  has passed, and expert once the point of no return is reached
- Point of no return reached -> can_reverse = False, terminal
- Window elapsed -> can_reverse = False, terminal; never flips back
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from src.models.trust.decision_models import (
    Decision,
    DecisionImpact,
    PointOfNoReturn,
    ReversalComplexity,
    ReversalCost,
    ReversalMethod,
    ReversalPlan,
    ReversalStep,
)
from src.models.trust.witness_models import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_GRACE_WINDOW_SECONDS = 300.0
DEFAULT_STEP_COST = 1.0

IMPACT_WINDOW_SECONDS = {
    DecisionImpact.LOW: 3600.0,
    DecisionImpact.MEDIUM: 1800.0,
    DecisionImpact.HIGH: 600.0,
    DecisionImpact.CRITICAL: 600.0,
}

COMPLEXITY_ORDER = [
    ReversalComplexity.TRIVIAL,
    ReversalComplexity.SIMPLE,
    ReversalComplexity.COMPLEX,
    ReversalComplexity.EXPERT,
]

ESTIMATED_REVERSAL_MINUTES = {
    ReversalComplexity.TRIVIAL: 1.0,
    ReversalComplexity.SIMPLE: 5.0,
    ReversalComplexity.COMPLEX: 60.0,
    ReversalComplexity.EXPERT: 120.0,
}

_METHODS = {
    ReversalComplexity.TRIVIAL: [ReversalMethod.IMMEDIATE_HALT],
    ReversalComplexity.SIMPLE: [ReversalMethod.IMMEDIATE_HALT, ReversalMethod.GRACEFUL_ROLLBACK],
    ReversalComplexity.COMPLEX: [ReversalMethod.GRACEFUL_ROLLBACK, ReversalMethod.COMPENSATING_ACTION],
    ReversalComplexity.EXPERT: [ReversalMethod.COMPENSATING_ACTION, ReversalMethod.MANUAL_OVERRIDE],
}

_AUTHORITIES = {
    ReversalComplexity.TRIVIAL: ["agent"],
    ReversalComplexity.SIMPLE: ["agent", "operator"],
    ReversalComplexity.COMPLEX: ["operator", "supervisor"],
    ReversalComplexity.EXPERT: ["supervisor", "governance"],
}

# (action, permissions, seconds, risks)
_STEP_TEMPLATES = {
    ReversalComplexity.TRIVIAL: [
        ("Halt the action", ["agent"], 30.0, []),
    ],
    ReversalComplexity.SIMPLE: [
        ("Halt the action", ["agent"], 30.0, []),
        ("Restore previous state", ["agent"], 240.0, ["State drift since execution"]),
    ],
    ReversalComplexity.COMPLEX: [
        ("Halt the action", ["operator"], 60.0, []),
        ("Notify dependent systems", ["operator"], 600.0, ["Dependent systems already acted on the change"]),
        ("Apply compensating action", ["operator", "supervisor"], 1800.0, ["Partial rollback"]),
        ("Verify restored state", ["operator"], 1140.0, []),
    ],
    ReversalComplexity.EXPERT: [
        ("Freeze affected systems", ["supervisor"], 300.0, ["Service interruption"]),
        ("Convene reversal authority", ["governance"], 1800.0, ["Approval delay"]),
        ("Apply compensating action", ["supervisor"], 3600.0, ["Partial rollback", "Cascading effects"]),
        ("Audit and verify restored state", ["supervisor", "governance"], 1500.0, []),
    ],
}


def complexity_for_dependents(dependent_systems: int) -> ReversalComplexity:
    if dependent_systems == 0:
        return ReversalComplexity.TRIVIAL
    if dependent_systems <= 2:
        return ReversalComplexity.SIMPLE
    if dependent_systems <= 4:
        return ReversalComplexity.COMPLEX
    return ReversalComplexity.EXPERT


def _raise_level(complexity: ReversalComplexity) -> ReversalComplexity:
    index = COMPLEXITY_ORDER.index(complexity)
    return COMPLEXITY_ORDER[min(index + 1, len(COMPLEXITY_ORDER) - 1)]


class ReversibilityAssessor:
    """
    Assesses reversal plans and remembers terminal verdicts.

    Once a plan is terminal (point of no return, or window expired) the same
    plan is returned for that decision on every later call.
    """

    def __init__(
        self,
        grace_window_seconds: float = DEFAULT_GRACE_WINDOW_SECONDS,
        step_cost: float = DEFAULT_STEP_COST,
    ):
        self.grace_window_seconds = grace_window_seconds
        self.step_cost = step_cost
        self._points_of_no_return: Dict[str, PointOfNoReturn] = {}
        self._terminal_plans: Dict[str, ReversalPlan] = {}
        self._lock = threading.Lock()

        logger.info(
            f"ReversibilityAssessor initialized: grace_window={grace_window_seconds}s, step_cost={step_cost}"
        )

    def mark_point_of_no_return(
        self,
        decision_id: str,
        reason: str,
        at: Optional[datetime] = None,
    ) -> PointOfNoReturn:
        """
        Record that a decision can no longer be undone.

        Idempotent: the first mark for a decision wins.
        """
        point = PointOfNoReturn(reached=True, timestamp=ensure_utc(at) if at else utc_now(), reason=reason)
        with self._lock:
            stored = self._points_of_no_return.setdefault(decision_id, point)
        if stored is point:
            logger.warning(f"Point of no return reached for {decision_id}: {reason}")
        return stored

    def point_of_no_return(self, decision: Decision) -> PointOfNoReturn:
        if decision.point_of_no_return.reached:
            with self._lock:
                return self._points_of_no_return.setdefault(decision.decision_id, decision.point_of_no_return)
        return self._points_of_no_return.get(decision.decision_id, decision.point_of_no_return)

    def window_for(self, decision: Decision) -> float:
        if decision.reversal_window_seconds is not None:
            return decision.reversal_window_seconds
        return IMPACT_WINDOW_SECONDS[decision.proposed_action.impact]

    def _steps(self, complexity: ReversalComplexity) -> List[ReversalStep]:
        return [
            ReversalStep(
                step=index,
                action=action,
                required_permissions=list(permissions),
                estimated_seconds=seconds,
                risks=list(risks),
            )
            for index, (action, permissions, seconds, risks) in enumerate(_STEP_TEMPLATES[complexity], start=1)
        ]

    def assess(self, decision: Decision, now: Optional[datetime] = None) -> ReversalPlan:
        """
        Assess how a decision can be reversed at the given instant.

        Args:
            decision: Decision to assess (executed or merely proposed)
            now: Reference instant (defaults to the current UTC time)

        Returns:
            ReversalPlan; terminal plans are cached per decision
        """
        cached = self._terminal_plans.get(decision.decision_id)
        if cached is not None:
            return cached

        now = ensure_utc(now) if now is not None else utc_now()
        reasons: List[str] = []
        window = self.window_for(decision)
        point = self.point_of_no_return(decision)

        if decision.is_executed:
            elapsed = (now - decision.executed_at).total_seconds()
            if elapsed < 0:
                reasons.append(f"Execution time is {abs(elapsed):.1f}s in the future (clock skew); elapsed clamped to 0")
                elapsed = 0.0
            expires_at: Optional[datetime] = decision.executed_at + timedelta(seconds=window)
        else:
            elapsed = 0.0
            expires_at = None
            reasons.append("Decision not yet executed; window starts at execution")

        complexity = complexity_for_dependents(len(decision.proposed_action.dependent_systems))
        if elapsed > self.grace_window_seconds:
            complexity = _raise_level(complexity)
            reasons.append(f"Grace window of {self.grace_window_seconds:.0f}s passed; complexity raised")

        if point.reached:
            complexity = ReversalComplexity.EXPERT
            can_reverse = False
            reasons.append(f"Point of no return reached: {point.reason or 'unspecified'}")
        elif decision.is_executed and elapsed >= window:
            can_reverse = False
            reasons.append(f"Reversal window of {window:.0f}s expired")
        else:
            can_reverse = True

        remaining = max(0.0, window - elapsed) if can_reverse else 0.0

        if can_reverse:
            methods = list(_METHODS[complexity])
            steps = self._steps(complexity)
            execution_cost = len(steps) * self.step_cost
            opportunity_cost = execution_cost * min(1.0, elapsed / window)
            authorities = list(_AUTHORITIES[complexity])
            minutes = ESTIMATED_REVERSAL_MINUTES[complexity]
        else:
            methods = [ReversalMethod.IRREVERSIBLE]
            steps = []
            execution_cost = 0.0
            opportunity_cost = 0.0
            authorities = []
            minutes = 0.0

        plan = ReversalPlan(
            decision_id=decision.decision_id,
            can_reverse=can_reverse,
            complexity=complexity,
            time_window_seconds=window,
            remaining_seconds=remaining,
            elapsed_seconds=elapsed,
            methods=methods,
            steps=steps,
            cost_estimate=ReversalCost(execution_cost=execution_cost, opportunity_cost=opportunity_cost),
            authorities=authorities,
            point_of_no_return=point,
            expires_at=expires_at,
            terminal=not can_reverse,
            estimated_reversal_minutes=minutes,
            reasons=reasons,
            assessed_at=now,
        )

        if plan.terminal:
            with self._lock:
                plan = self._terminal_plans.setdefault(decision.decision_id, plan)
            logger.info(f"Reversal plan for {decision.decision_id} is terminal: {'; '.join(plan.reasons)}")
        return plan
