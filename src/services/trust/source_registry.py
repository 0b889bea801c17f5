"""Historical reliability of named sources, persisted in Redis with in-memory fallback."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import redis

from src.config.settings import settings
from src.models.trust.score_models import SourceRecord

logger = logging.getLogger(__name__)

DEFAULT_MIN_OBSERVATIONS = 10
DEFAULT_NEUTRAL_RELIABILITY = 70.0


@dataclass
class _Counters:
    """Append-only observation counters for one source."""

    total: int = 0
    validated: int = 0


class SourceReliabilityRegistry:
    """
    Tracks how often each source turned out to be accurate.

    Counters only ever grow. Writers for the same source serialise on a
    per-source lock (in memory) or on Redis HINCRBY (shared). With Redis,
    every read goes back to the shared hash, so outcomes recorded by other
    processes show up on the next read.
    """

    def __init__(
        self,
        redis_client=None,
        namespace: str = "trust:sources",
        min_observations: int = DEFAULT_MIN_OBSERVATIONS,
        neutral_reliability: float = DEFAULT_NEUTRAL_RELIABILITY,
    ) -> None:
        self.redis_client = redis_client
        self.namespace = namespace
        self.min_observations = min_observations
        self.neutral_reliability = neutral_reliability
        self._counters: Dict[str, _Counters] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        logger.info(
            f"SourceReliabilityRegistry initialized (backend={'redis' if redis_client is not None else 'memory'}, "
            f"min_observations={min_observations}, neutral={neutral_reliability})"
        )

    def _key(self, source_id: str) -> str:
        return f"{self.namespace}:{source_id}"

    def _lock_for(self, source_id: str) -> threading.Lock:
        lock = self._locks.get(source_id)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(source_id, threading.Lock())
        return lock

    def _counters_for(self, source_id: str) -> _Counters:
        counters = self._counters.get(source_id)
        if counters is None:
            counters = self._counters.setdefault(source_id, _Counters())
        return counters

    def _load_remote(self, source_id: str) -> Optional[_Counters]:
        if self.redis_client is None:
            return None
        try:
            data = self.redis_client.hgetall(self._key(source_id))
        except Exception as exc:  # pragma: no cover
            logger.warning("Failed to load reliability for %s: %s", source_id, exc)
            return None
        if not data:
            return None
        decoded = {
            (key.decode("utf-8") if isinstance(key, bytes) else key): int(value)
            for key, value in data.items()
        }
        return _Counters(total=decoded.get("total", 0), validated=decoded.get("validated", 0))

    def _increment_remote(self, source_id: str, was_accurate: bool) -> Optional[_Counters]:
        if self.redis_client is None:
            return None
        try:
            pipe = self.redis_client.pipeline(transaction=True)
            pipe.hincrby(self._key(source_id), "total", 1)
            pipe.hincrby(self._key(source_id), "validated", 1 if was_accurate else 0)
            total, validated = pipe.execute()
            return _Counters(total=int(total), validated=int(validated))
        except Exception as exc:  # pragma: no cover
            logger.warning("Failed to persist reliability for %s: %s", source_id, exc)
            return None

    def record_outcome(self, source_id: str, was_accurate: bool) -> SourceRecord:
        """
        Append one validated/invalidated observation for a source.

        Args:
            source_id: Named source, e.g. oracle:pyth
            was_accurate: Whether ground truth confirmed the observation

        Returns:
            SourceRecord after the update
        """
        remote = self._increment_remote(source_id, was_accurate)

        with self._lock_for(source_id):
            counters = self._counters_for(source_id)
            if remote is not None:
                counters.total = max(counters.total, remote.total)
                counters.validated = max(counters.validated, remote.validated)
            else:
                counters.total += 1
                if was_accurate:
                    counters.validated += 1
            snapshot = _Counters(total=counters.total, validated=counters.validated)

        if not was_accurate:
            logger.debug(f"Inaccurate observation recorded for {source_id} ({snapshot.validated}/{snapshot.total})")
        return self._to_record(source_id, snapshot)

    def _to_record(self, source_id: str, counters: _Counters) -> SourceRecord:
        meets_floor = counters.total >= self.min_observations and counters.total > 0
        if meets_floor:
            reliability = counters.validated / counters.total * 100.0
        else:
            reliability = self.neutral_reliability
        return SourceRecord(
            source_id=source_id,
            total_observations=counters.total,
            validated_observations=counters.validated,
            rolling_reliability=reliability,
            meets_sample_floor=meets_floor,
        )

    def get_record(self, source_id: str) -> SourceRecord:
        """Current record; Redis is authoritative when configured, local counters are the fallback."""
        remote = self._load_remote(source_id)
        if remote is not None:
            with self._lock_for(source_id):
                counters = self._counters_for(source_id)
                counters.total = max(counters.total, remote.total)
                counters.validated = max(counters.validated, remote.validated)
                snapshot = _Counters(total=counters.total, validated=counters.validated)
            return self._to_record(source_id, snapshot)

        counters = self._counters.get(source_id)
        if counters is None:
            counters = _Counters()
        return self._to_record(source_id, counters)

    def reliability_of(self, source_id: str) -> float:
        """Reliability in [0, 100]; neutral default below the sample floor."""
        return self.get_record(source_id).rolling_reliability

    def reliability_map(self, *source_ids: str) -> Dict[str, float]:
        return {source_id: self.reliability_of(source_id) for source_id in source_ids}

    def all_records(self) -> Dict[str, SourceRecord]:
        if self.redis_client is not None:
            try:
                keys = [
                    key.decode("utf-8") if isinstance(key, bytes) else key
                    for key in self.redis_client.keys(f"{self.namespace}:*")
                ]
                for key in keys:
                    self.get_record(key[len(self.namespace) + 1:])
            except Exception as exc:  # pragma: no cover
                logger.warning("Failed to enumerate reliability keys: %s", exc)
        return {source_id: self.get_record(source_id) for source_id in list(self._counters)}


_default_registry: Optional[SourceReliabilityRegistry] = None


def get_source_registry() -> SourceReliabilityRegistry:
    """Return the per-process registry, backed by Redis when reachable."""

    global _default_registry
    if _default_registry is None:
        redis_client = None
        if settings.USE_REDIS:
            try:
                redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=False)
                redis_client.ping()
            except Exception as exc:
                logger.warning(f"Redis unavailable at {settings.REDIS_URL}, using in-memory registry: {exc}")
                redis_client = None
        _default_registry = SourceReliabilityRegistry(
            redis_client=redis_client,
            namespace=settings.REDIS_NAMESPACE,
            min_observations=settings.MIN_OBSERVATIONS_FOR_RELIABILITY,
            neutral_reliability=settings.NEUTRAL_RELIABILITY,
        )
    return _default_registry


__all__ = [
    "SourceReliabilityRegistry",
    "get_source_registry",
]
