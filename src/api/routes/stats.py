"""Stats endpoints for source reliability."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from src.models.trust.api_models import SourceOutcomeRequest
from src.models.trust.score_models import SourceRecord
from src.services.trust_engine import TrustEngine, get_engine

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/sources")
async def get_source_reliability(engine: TrustEngine = Depends(get_engine)) -> Dict[str, Any]:
    """Expose per-source reliability for dashboards and tooling."""

    records = engine.source_records()

    sources: List[Dict[str, Any]] = []
    for source_id, record in sorted(records.items()):
        sources.append({
            "source_id": source_id,
            "total_observations": record.total_observations,
            "validated_observations": record.validated_observations,
            "rolling_reliability": record.rolling_reliability,
            "meets_sample_floor": record.meets_sample_floor,
        })

    return {
        "sources": sources,
        "min_observations": engine.registry.min_observations,
        "neutral_reliability": engine.registry.neutral_reliability,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/sources/{source_id}/outcomes", response_model=SourceRecord)
async def record_source_outcome(
    source_id: str,
    request: SourceOutcomeRequest,
    engine: TrustEngine = Depends(get_engine),
) -> SourceRecord:
    """Append one validated/invalidated observation for a source."""

    return engine.record_source_outcome(source_id, request.was_accurate)
