"""
Provenance Models

Pydantic V2 models for provenance chains: the ordered processing stages a
data point passes through on its way to a decision.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field, field_validator

from src.models.trust.witness_models import ensure_utc, utc_now


class ProvenanceStage(str, Enum):
    """Pipeline stages, in the order a chain must visit them"""

    INGESTION = "ingestion"
    PROCESSING = "processing"
    ANALYSIS = "analysis"
    DECISION = "decision"


STAGE_ORDER = [
    ProvenanceStage.INGESTION,
    ProvenanceStage.PROCESSING,
    ProvenanceStage.ANALYSIS,
    ProvenanceStage.DECISION,
]


class ChainState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ChainIntegrity(str, Enum):
    """Integrity verdict, strongest first"""

    VERIFIED = "verified"
    INTACT = "intact"
    QUESTIONABLE = "questionable"
    BROKEN = "broken"


class ProvenanceStep(BaseModel):
    """One processing stage stamped onto a chain"""

    stage: ProvenanceStage
    actor: str = Field(..., min_length=1, description="Agent/service that performed the stage")
    timestamp: datetime = Field(default_factory=utc_now)
    description: Optional[str] = None
    transformations_applied: List[str] = Field(default_factory=list)
    validations_applied: List[str] = Field(default_factory=list)
    input_digest: Optional[str] = Field(default=None, description="Digest of the stage input")
    output_digest: Optional[str] = Field(default=None, description="Digest of the stage output")

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    model_config = {"frozen": True}


class GapDetection(BaseModel):
    """Missing or misordered stages found when a chain is closed"""

    has_gaps: bool = False
    missing_stages: List[ProvenanceStage] = Field(default_factory=list)
    gap_reasons: List[str] = Field(default_factory=list)


class ProvenanceChain(BaseModel):
    """
    Append-only lineage of a single data point.

    Owned by exactly one in-flight request; never mutated concurrently.
    """

    chain_id: str = Field(default_factory=lambda: f"chain-{uuid.uuid4().hex[:12]}")
    data_point_id: str
    state: ChainState = ChainState.OPEN
    steps: List[ProvenanceStep] = Field(default_factory=list)
    integrity: ChainIntegrity = ChainIntegrity.QUESTIONABLE
    gap_detection: GapDetection = Field(default_factory=GapDetection)
    opened_at: datetime = Field(default_factory=utc_now)
    closed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state == ChainState.OPEN

    def stages(self) -> List[ProvenanceStage]:
        return [step.stage for step in self.steps]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "chain_id": "chain-51d0c2a9e4f1",
                    "data_point_id": "dp-3f9a1c22b7e0",
                    "state": "closed",
                    "steps": [
                        {
                            "stage": "ingestion",
                            "actor": "oracle:pyth+switchboard",
                            "timestamp": "2025-10-02T10:30:15Z",
                            "transformations_applied": ["price_aggregation", "outlier_removal"],
                            "validations_applied": ["schema_check", "range_validation"],
                            "output_digest": "9f2c...",
                        }
                    ],
                    "integrity": "verified",
                    "gap_detection": {"has_gaps": False, "missing_stages": [], "gap_reasons": []},
                    "opened_at": "2025-10-02T10:30:15Z",
                    "closed_at": "2025-10-02T10:30:20Z",
                }
            ]
        }
    }
