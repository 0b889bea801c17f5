"""
Ingestion Sources - Feed Variants Producing DataPoints

Each feed type is a pydantic model tagged by `kind`; the tagged union
IngestionSource is dispatched through a handler table rather than a class
hierarchy. Raw readings come from a FeedReader, the only I/O seam of the
engine, and are normalized into (DataPoint, TruthWitness) pairs.
"""

import logging
from datetime import datetime
from typing import Annotated, Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Protocol, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter

from src.models.trust.witness_models import (
    DataPoint,
    SourceAuthority,
    TruthWitness,
    ensure_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

UNCONFIRMED_LEDGER_CONFIDENCE = 50.0

# Maximum acceptable witness age per authority
MAX_AGE_SECONDS = {
    SourceAuthority.ORACLE: 10.0,
}
DEFAULT_MAX_AGE_SECONDS = 60.0


class OracleFeedSource(BaseModel):
    """Price/value feed aggregated by one or more oracle providers"""

    kind: Literal["oracle"] = "oracle"
    source_id: str = Field(..., min_length=1, description="e.g. oracle:pyth")
    feed_id: str = Field(..., min_length=1, description="e.g. SOL/USD")
    unit: Optional[str] = None
    providers: List[str] = Field(default_factory=list)


class LedgerFeedSource(BaseModel):
    """On-chain account or program state"""

    kind: Literal["ledger"] = "ledger"
    source_id: str = Field(..., min_length=1, description="e.g. onchain:solana")
    network: str = Field(..., min_length=1)
    account: str = Field(..., min_length=1)
    unit: Optional[str] = None
    confirmations_required: int = Field(default=1, ge=0)


class SensorFeedSource(BaseModel):
    """Physical telemetry from a device"""

    kind: Literal["sensor"] = "sensor"
    source_id: str = Field(..., min_length=1, description="e.g. sensor:inverter-3")
    device_id: str = Field(..., min_length=1)
    metric: str = Field(..., min_length=1)
    unit: Optional[str] = None
    calibration_offset: float = 0.0


IngestionSource = Annotated[
    Union[OracleFeedSource, LedgerFeedSource, SensorFeedSource],
    Field(discriminator="kind"),
]

_source_adapter = TypeAdapter(IngestionSource)


def parse_source(data: Mapping[str, Any]):
    """Build the matching feed variant from a mapping carrying `kind`"""
    return _source_adapter.validate_python(dict(data))


class FeedReader(Protocol):
    """Anything that can pull raw readings for a source"""

    def read(self, source: IngestionSource) -> Iterable[Mapping[str, Any]]:
        ...


def _witness(authority: SourceAuthority, reading: Mapping[str, Any], observed_at: Any) -> TruthWitness:
    payload = {
        "source_authority": authority,
        "witnessed_at": reading.get("witnessed_at", observed_at),
    }
    if reading.get("trace_id"):
        payload["global_trace_id"] = reading["trace_id"]
    return TruthWitness(**payload)


def _oracle_reading(source: OracleFeedSource, reading: Mapping[str, Any], now: datetime) -> Tuple[DataPoint, TruthWitness]:
    observed_at = reading.get("observed_at", now)
    providers = ", ".join(source.providers) or source.source_id
    data_point = DataPoint(
        value=reading.get("price", reading.get("value")),
        unit=source.unit,
        source_id=source.source_id,
        observed_at=observed_at,
        causal_origin=f"Oracle feed {source.feed_id} aggregated from {providers}",
        confidence=reading.get("confidence"),
    )
    return data_point, _witness(SourceAuthority.ORACLE, reading, observed_at)


def _ledger_reading(source: LedgerFeedSource, reading: Mapping[str, Any], now: datetime) -> Tuple[DataPoint, TruthWitness]:
    observed_at = reading.get("observed_at", now)
    confirmations = int(reading.get("confirmations", source.confirmations_required))
    confidence = reading.get("confidence")
    origin = f"Ledger state of {source.account} on {source.network}"
    if confirmations < source.confirmations_required:
        origin += f" ({confirmations}/{source.confirmations_required} confirmations)"
        confidence = UNCONFIRMED_LEDGER_CONFIDENCE
        logger.debug(f"Unconfirmed ledger reading from {source.source_id}: {confirmations} confirmations")

    data_point = DataPoint(
        value=reading["value"],
        unit=source.unit,
        source_id=source.source_id,
        observed_at=observed_at,
        causal_origin=origin,
        confidence=confidence,
    )
    return data_point, _witness(SourceAuthority.ONCHAIN, reading, observed_at)


def _sensor_reading(source: SensorFeedSource, reading: Mapping[str, Any], now: datetime) -> Tuple[DataPoint, TruthWitness]:
    observed_at = reading.get("observed_at", now)
    value = reading["value"]
    if source.calibration_offset and isinstance(value, (int, float)) and not isinstance(value, bool):
        value = value + source.calibration_offset

    data_point = DataPoint(
        value=value,
        unit=source.unit,
        source_id=source.source_id,
        observed_at=observed_at,
        causal_origin=f"Telemetry {source.metric} from device {source.device_id}",
        confidence=reading.get("confidence"),
    )
    return data_point, _witness(SourceAuthority.SENSOR, reading, observed_at)


_HANDLERS: Dict[str, Callable[[Any, Mapping[str, Any], datetime], Tuple[DataPoint, TruthWitness]]] = {
    "oracle": _oracle_reading,
    "ledger": _ledger_reading,
    "sensor": _sensor_reading,
}


def normalize_reading(
    source: IngestionSource,
    reading: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[DataPoint, TruthWitness]:
    """
    Turn one raw reading into a data point and its witness.

    Args:
        source: Feed the reading came from
        reading: Raw mapping with at least `value` (or `price` for oracles);
            optional observed_at, witnessed_at, confidence, trace_id
        now: Fallback observation time when the reading has none

    Returns:
        (DataPoint, TruthWitness)
    """
    now = ensure_utc(now) if now is not None else utc_now()
    return _HANDLERS[source.kind](source, reading, now)


def ingest(reader: FeedReader, source: IngestionSource, now: Optional[datetime] = None) -> List[Tuple[DataPoint, TruthWitness]]:
    """Pull every pending reading for a source and normalize it"""
    results = [normalize_reading(source, reading, now=now) for reading in reader.read(source)]
    logger.info(f"Ingested {len(results)} reading(s) from {source.source_id} ({source.kind})")
    return results


class FreshnessRequirement(BaseModel):
    """Whether one witness is recent enough for decision-making"""

    source_authority: SourceAuthority
    global_trace_id: str
    age_seconds: float
    max_age_seconds: float
    satisfied: bool


def check_freshness_requirements(
    witnesses: Iterable[TruthWitness],
    now: Optional[datetime] = None,
) -> List[FreshnessRequirement]:
    """Compare each witness age against its authority's maximum age"""
    reference = ensure_utc(now) if now is not None else utc_now()
    results = []
    for witness in witnesses:
        age = max(0.0, witness.age_at(reference))
        limit = MAX_AGE_SECONDS.get(witness.source_authority, DEFAULT_MAX_AGE_SECONDS)
        results.append(
            FreshnessRequirement(
                source_authority=witness.source_authority,
                global_trace_id=witness.global_trace_id,
                age_seconds=age,
                max_age_seconds=limit,
                satisfied=age <= limit,
            )
        )
    return results
