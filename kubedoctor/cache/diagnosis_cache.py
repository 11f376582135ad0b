"""In-process TTL cache of diagnoses keyed by fingerprint."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from kubedoctor.models.analysis import DiagnosisResult
from kubedoctor.observability.logging import get_logger
from kubedoctor.observability.metrics import cache_lookups_total

_logger = get_logger("cache.diagnosis")

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass(frozen=True)
class CacheEntry:
    result: DiagnosisResult
    stored_at: float


class DiagnosisCache:
    """Fingerprint-keyed store of prior diagnoses.

    Entries are valid while ``clock() - stored_at < ttl``. Expired entries
    are never evicted proactively; a stale read is a miss and the next
    ``put`` overwrites it. There is no per-key locking: concurrent misses
    may both call the backend, and the last ``put`` wins.

    Args:
        ttl_seconds: Entry lifetime. Defaults to 30 minutes.
        clock:       Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, fingerprint: str) -> DiagnosisResult | None:
        entry = self._entries.get(fingerprint)
        if entry is None:
            cache_lookups_total.labels(result="miss").inc()
            return None
        age = self._clock() - entry.stored_at
        if age >= self._ttl:
            cache_lookups_total.labels(result="expired").inc()
            _logger.debug("diagnosis_cache_expired", fingerprint=fingerprint, age_seconds=round(age, 1))
            return None
        cache_lookups_total.labels(result="hit").inc()
        return entry.result

    def put(self, fingerprint: str, result: DiagnosisResult) -> None:
        self._entries[fingerprint] = CacheEntry(result=result, stored_at=self._clock())

    def __len__(self) -> int:
        return len(self._entries)
