"""Feed ingestion: tagged feed variants normalized into data points and witnesses."""

from src.services.ingestion.sources import (
    FeedReader,
    FreshnessRequirement,
    IngestionSource,
    LedgerFeedSource,
    OracleFeedSource,
    SensorFeedSource,
    check_freshness_requirements,
    ingest,
    normalize_reading,
    parse_source,
)

__all__ = [
    "FeedReader",
    "FreshnessRequirement",
    "IngestionSource",
    "LedgerFeedSource",
    "OracleFeedSource",
    "SensorFeedSource",
    "check_freshness_requirements",
    "ingest",
    "normalize_reading",
    "parse_source",
]
