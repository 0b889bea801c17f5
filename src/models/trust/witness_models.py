"""
Witness Models

Pydantic V2 models for incoming information: the data point itself, the
truth witness describing who saw it and when, and the claims sibling sources
make about the same fact.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union
import uuid

from pydantic import BaseModel, Field, computed_field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current instant (UTC)"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so ages can always be computed"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


ClaimValue = Union[bool, int, float, str]


class SourceAuthority(str, Enum):
    """Entities capable of witnessing a piece of information"""

    ORACLE = "oracle"
    ONCHAIN = "onchain"
    RPC = "rpc"
    INDEXER = "indexer"
    HUMAN_OPERATOR = "human-operator"
    AGENT = "agent"
    SENSOR = "sensor"


# Baseline confidence (0-100) used when a data point carries none of its own
AUTHORITY_BASELINE_CONFIDENCE = {
    SourceAuthority.ONCHAIN: 95.0,
    SourceAuthority.ORACLE: 90.0,
    SourceAuthority.HUMAN_OPERATOR: 88.0,
    SourceAuthority.RPC: 85.0,
    SourceAuthority.SENSOR: 82.0,
    SourceAuthority.INDEXER: 80.0,
    SourceAuthority.AGENT: 75.0,
}


class DataPoint(BaseModel):
    """
    A single observed value produced by an ingestion feed.

    Immutable once created; every downstream record refers to it by
    data_point_id.
    """

    data_point_id: str = Field(
        default_factory=lambda: f"dp-{uuid.uuid4().hex[:12]}",
        description="Stable identifier for this observation"
    )
    value: ClaimValue = Field(..., description="Observed value (numeric or state)")
    unit: Optional[str] = Field(default=None, description="Unit of measure, e.g. kW, USD")
    source_id: str = Field(..., min_length=1, description="Named source, e.g. oracle:pyth")
    observed_at: datetime = Field(..., description="When the value was observed (ISO-8601)")
    causal_origin: str = Field(default="", description="Why this value exists (free text)")
    confidence: Optional[float] = Field(
        default=None, description="Source-reported confidence (0-100)"
    )

    @field_validator("observed_at")
    @classmethod
    def normalize_observed_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "data_point_id": "dp-3f9a1c22b7e0",
                    "value": 42.7,
                    "unit": "kW",
                    "source_id": "sensor:inverter-3",
                    "observed_at": "2025-10-02T10:30:15Z",
                    "causal_origin": "Periodic inverter telemetry poll",
                    "confidence": 92.0,
                }
            ]
        },
    }


class TruthWitness(BaseModel):
    """
    Who witnessed a data point and when.

    truth_age_seconds is derived on every read from witnessed_at and is
    never stored, so a witness can be held across requests without going stale.
    """

    source_authority: SourceAuthority = Field(..., description="Class of witnessing entity")
    witnessed_at: datetime = Field(..., description="Moment of capture")
    global_trace_id: str = Field(
        default_factory=lambda: f"trace-{uuid.uuid4().hex[:16]}",
        description="Distributed trace for cross-system lineage"
    )

    @field_validator("witnessed_at")
    @classmethod
    def normalize_witnessed_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def age_at(self, now: Optional[datetime] = None) -> float:
        """Raw age in seconds at `now`; negative when the witness clock runs ahead"""
        reference = ensure_utc(now) if now is not None else utc_now()
        return (reference - self.witnessed_at).total_seconds()

    @computed_field
    @property
    def truth_age_seconds(self) -> float:
        """Seconds since witnessing, clamped at zero"""
        return max(0.0, self.age_at())

    model_config = {"frozen": True}


class Claim(BaseModel):
    """One source's claim about a shared fact, input to consensus"""

    source_id: str = Field(..., min_length=1)
    value: ClaimValue
    confidence: float = Field(..., description="Claim confidence (0-100)")

    @classmethod
    def from_data_point(cls, data_point: DataPoint, default_confidence: float = 70.0) -> "Claim":
        confidence = data_point.confidence if data_point.confidence is not None else default_confidence
        return cls(source_id=data_point.source_id, value=data_point.value, confidence=confidence)
