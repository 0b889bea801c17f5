"""
Trust API Routes - Scoring and explainability

Endpoints:
- POST /api/trust/score - Score a data point (optionally with an explanation)
- POST /api/trust/explain - Render an explanation of an existing score
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.errors import to_http_exception
from src.models.trust.api_models import ExplainRequest, ScoreRequest, ScoreResponse
from src.models.trust.explanation_models import Explanation
from src.services.errors import TrustEngineError
from src.services.trust_engine import TrustEngine, get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trust", tags=["trust"])


@router.post("/score", response_model=ScoreResponse, status_code=status.HTTP_200_OK)
async def score_data_point(
    request: ScoreRequest,
    engine: TrustEngine = Depends(get_engine),
) -> ScoreResponse:
    """
    Score a data point at the current instant.

    Returns:
    - 200 OK: TrustScore (low trust is a valid answer, not an error)
    - 422 Unprocessable Entity: Malformed data point or witness
    """
    try:
        trust_score = engine.score(request.data_point, request.witness, request.claims)
        explanation = None
        if request.depth is not None:
            explanation = engine.explain(trust_score, request.depth)
        return ScoreResponse(trust_score=trust_score, explanation=explanation)

    except HTTPException:
        raise
    except TrustEngineError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Trust scoring failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}"
        )


@router.post("/explain", response_model=Explanation, status_code=status.HTTP_200_OK)
async def explain_score(
    request: ExplainRequest,
    engine: TrustEngine = Depends(get_engine),
) -> Explanation:
    """Render a trust score at beginner, intermediate or expert depth."""
    try:
        return engine.explain(request.trust_score, request.depth)

    except Exception as e:
        logger.error(f"Explanation rendering failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}"
        )
