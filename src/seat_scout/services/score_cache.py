"""In-memory TTL cache for computed admission scores.

The scoring engine never caches.  This cache sits in front of it in the
web layer and is keyed on the full request tuple (facility, child, class,
priorities, waitlist position): two children at the same facility never
share an entry.  Writes to a facility's history or metadata must call
``invalidate_facility``.

Expired entries are dropped when read and swept on every write.  Each
facility carries a generation number bumped on invalidation; a score
computed before an invalidation is not stored after it.
"""

from __future__ import annotations

import logging
import threading
import time

from seat_scout.models.admission import ScoreRequest, ScoreResult

logger = logging.getLogger(__name__)

_score_cache: dict[tuple, tuple[float, ScoreResult]] = {}
_generations: dict[str, int] = {}
_lock = threading.Lock()


def generation(facility_id: str) -> int:
    """Return the current invalidation generation for *facility_id*."""
    with _lock:
        return _generations.get(facility_id, 0)


def get_cached(request: ScoreRequest, ttl: int) -> ScoreResult | None:
    """Return the cached result if still valid, else ``None``."""
    if ttl <= 0:
        return None
    key = request.cache_key()
    with _lock:
        entry = _score_cache.get(key)
        if entry is None:
            return None
        ts, result = entry
        if time.monotonic() - ts >= ttl:
            del _score_cache[key]
            return None
    logger.debug("Score cache hit for %s", request.facilityId)
    return result


def cache_set(
    request: ScoreRequest,
    result: ScoreResult,
    *,
    ttl: int,
    computed_at_generation: int | None = None,
) -> bool:
    """Store *result* and sweep expired entries.

    Returns ``False`` without storing when the facility was invalidated
    after ``computed_at_generation`` was read.
    """
    now = time.monotonic()
    with _lock:
        current = _generations.get(request.facilityId, 0)
        if computed_at_generation is not None and computed_at_generation != current:
            logger.debug("Discarding score for %s computed before invalidation", request.facilityId)
            return False
        expired = [k for k, (ts, _) in _score_cache.items() if now - ts >= ttl]
        for key in expired:
            del _score_cache[key]
        _score_cache[request.cache_key()] = (now, result)
    return True


def invalidate_facility(facility_id: str) -> int:
    """Drop every cached score for *facility_id*.  Returns count removed."""
    with _lock:
        _generations[facility_id] = _generations.get(facility_id, 0) + 1
        stale = [k for k in _score_cache if k[0] == facility_id]
        for key in stale:
            del _score_cache[key]
    return len(stale)


def cache_size() -> int:
    with _lock:
        return len(_score_cache)


def clear_score_cache() -> None:
    """Clear the score cache (for testing)."""
    with _lock:
        _score_cache.clear()
        _generations.clear()
