"""
Decision API Routes - Validation, execution, reversal and outcomes

Endpoints:
- POST /api/decisions - Validate a proposed action and record the decision
- GET /api/decisions/{decision_id} - Decision with its outcome and reversals
- POST /api/decisions/{decision_id}/execute - Mark a decision executed
- GET /api/decisions/{decision_id}/reversal - Current reversal plan
- POST /api/decisions/{decision_id}/point-of-no-return - Make a decision irreversible
- POST /api/decisions/{decision_id}/reverse - Reverse an executed decision
- POST /api/decisions/{decision_id}/outcome - Score the observed outcome
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.errors import to_http_exception
from src.config.constraints import ConstraintNotFoundError, get_constraint
from src.models.trust.api_models import (
    DecisionRecordResponse,
    ExecuteDecisionRequest,
    OutcomeRequest,
    PointOfNoReturnRequest,
    ProposeDecisionRequest,
    ProposeDecisionResponse,
    ReverseDecisionRequest,
)
from src.models.trust.decision_models import (
    Decision,
    DecisionOutcome,
    OutcomeObservation,
    PointOfNoReturn,
    ReversalPlan,
    ReversalRecord,
)
from src.services.errors import TrustEngineError
from src.services.trust_engine import TrustEngine, get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/decisions", tags=["decisions"])


@router.post("", response_model=ProposeDecisionResponse, status_code=status.HTTP_201_CREATED)
async def propose_decision(
    request: ProposeDecisionRequest,
    engine: TrustEngine = Depends(get_engine),
) -> ProposeDecisionResponse:
    """
    Validate a proposed action against the constraint catalogue and record it.

    Every constraint is evaluated; a failing check does not reject the
    decision, it is reported in the validation and safety status.

    Returns:
    - 201 Created: Decision recorded with its validation report
    - 400 Bad Request: Unknown constraint id
    """
    try:
        constraints = None
        if request.constraint_ids is not None:
            constraints = [
                get_constraint(constraint_id, engine.validator.catalogue)
                for constraint_id in request.constraint_ids
            ]

        decision, report = engine.propose_decision(
            agent_id=request.agent_id,
            proposed_action=request.proposed_action,
            supporting_data_points=request.supporting_data_points,
            trust_score_at_decision=request.trust_score_at_decision,
            constraints=constraints,
            reversal_window_seconds=request.reversal_window_seconds,
        )
        return ProposeDecisionResponse(decision=decision, validation=report)

    except ConstraintNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown constraint: {e.args[0]}"
        )
    except TrustEngineError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Decision proposal failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}"
        )


@router.get("/{decision_id}", response_model=DecisionRecordResponse)
async def get_decision(
    decision_id: str,
    engine: TrustEngine = Depends(get_engine),
) -> DecisionRecordResponse:
    try:
        decision = engine.ledger.require_decision(decision_id)
    except TrustEngineError as e:
        raise to_http_exception(e) from e

    return DecisionRecordResponse(
        decision=decision,
        outcome=engine.ledger.get_outcome(decision_id),
        reversals=engine.ledger.reversals_for(decision_id),
    )


@router.post("/{decision_id}/execute", response_model=Decision)
async def execute_decision(
    decision_id: str,
    request: Optional[ExecuteDecisionRequest] = None,
    engine: TrustEngine = Depends(get_engine),
) -> Decision:
    """
    Returns:
    - 200 OK: Executed decision
    - 404 Not Found: Unknown decision
    - 409 Conflict: Already executed
    """
    try:
        executed_at = request.executed_at if request is not None else None
        return engine.execute_decision(decision_id, at=executed_at)
    except TrustEngineError as e:
        raise to_http_exception(e) from e


@router.get("/{decision_id}/reversal", response_model=ReversalPlan)
async def get_reversal_plan(
    decision_id: str,
    engine: TrustEngine = Depends(get_engine),
) -> ReversalPlan:
    """Re-evaluate the reversal plan; expired plans stay irreversible."""
    try:
        return engine.assess_reversal(decision_id)
    except TrustEngineError as e:
        raise to_http_exception(e) from e


@router.post("/{decision_id}/point-of-no-return", response_model=PointOfNoReturn)
async def mark_point_of_no_return(
    decision_id: str,
    request: PointOfNoReturnRequest,
    engine: TrustEngine = Depends(get_engine),
) -> PointOfNoReturn:
    try:
        return engine.mark_point_of_no_return(decision_id, request.reason)
    except TrustEngineError as e:
        raise to_http_exception(e) from e


@router.post("/{decision_id}/reverse", response_model=ReversalRecord, status_code=status.HTTP_201_CREATED)
async def reverse_decision(
    decision_id: str,
    request: ReverseDecisionRequest,
    engine: TrustEngine = Depends(get_engine),
) -> ReversalRecord:
    """
    Returns:
    - 201 Created: Reversal recorded
    - 404 Not Found: Unknown decision
    - 409 Conflict: Not executed, no longer reversible, or already reversed
    """
    try:
        return engine.reverse_decision(
            decision_id,
            reason=request.reason,
            authority=request.authority,
            corrective_actions=request.corrective_actions,
        )
    except TrustEngineError as e:
        raise to_http_exception(e) from e


@router.post("/{decision_id}/outcome", response_model=DecisionOutcome, status_code=status.HTTP_201_CREATED)
async def record_outcome(
    decision_id: str,
    request: OutcomeRequest,
    engine: TrustEngine = Depends(get_engine),
) -> DecisionOutcome:
    """
    Score a decision against observed ground truth.

    Returns:
    - 201 Created: Terminal DecisionOutcome
    - 409 Conflict: Outcome already recorded
    - 422 Unprocessable Entity: No prior decision with this id
    """
    try:
        observation = OutcomeObservation(decision_id=decision_id, **request.model_dump())
        return engine.record_outcome(observation)
    except TrustEngineError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Outcome scoring failed for {decision_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}"
        )
