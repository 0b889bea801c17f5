"""
Provenance API Routes - Chain lifecycle

Endpoints:
- POST /api/provenance/chains - Open a chain for a data point
- POST /api/provenance/chains/{chain_id}/steps - Append a processing stage
- POST /api/provenance/chains/{chain_id}/close - Close and verify a chain
- GET /api/provenance/chains/{chain_id} - Read a chain with current integrity
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.errors import to_http_exception
from src.models.trust.api_models import OpenChainRequest
from src.models.trust.provenance_models import ProvenanceChain, ProvenanceStep
from src.services.errors import TrustEngineError
from src.services.trust_engine import TrustEngine, get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/provenance", tags=["provenance"])


@router.post("/chains", response_model=ProvenanceChain, status_code=status.HTTP_201_CREATED)
async def open_chain(
    request: OpenChainRequest,
    engine: TrustEngine = Depends(get_engine),
) -> ProvenanceChain:
    return engine.open_chain(request.data_point_id)


@router.post("/chains/{chain_id}/steps", response_model=ProvenanceChain)
async def append_step(
    chain_id: str,
    step: ProvenanceStep,
    engine: TrustEngine = Depends(get_engine),
) -> ProvenanceChain:
    """
    Append a step to an open chain.

    Returns:
    - 200 OK: Updated chain
    - 404 Not Found: Unknown chain
    - 409 Conflict: Chain already closed
    """
    try:
        return engine.append_step(chain_id, step)
    except TrustEngineError as e:
        raise to_http_exception(e) from e


@router.post("/chains/{chain_id}/close", response_model=ProvenanceChain)
async def close_chain(
    chain_id: str,
    engine: TrustEngine = Depends(get_engine),
) -> ProvenanceChain:
    """
    Close a chain; gaps mark it questionable instead of rejecting the close.

    Returns:
    - 200 OK: Closed chain with gap detection and integrity
    - 404 Not Found: Unknown chain
    - 409 Conflict: Chain already closed
    """
    try:
        return engine.close_chain(chain_id)
    except TrustEngineError as e:
        raise to_http_exception(e) from e


@router.get("/chains/{chain_id}", response_model=ProvenanceChain)
async def get_chain(
    chain_id: str,
    engine: TrustEngine = Depends(get_engine),
) -> ProvenanceChain:
    try:
        return engine.get_chain(chain_id)
    except TrustEngineError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to read chain {chain_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error: {str(e)}"
        )
