"""Shared scoring entry point for the web app, MCP server and CLI.

Builds one ``ScoringEngine`` over the SQLite store, fronts it with the
request-keyed TTL cache and records every computed score per child.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from seat_scout.models.admission import ScoreRequest, ScoreResult
from seat_scout.scoring.engine import ScoringEngine, parse_request
from seat_scout.services import history_store, score_cache
from seat_scout.settings import settings

_engine: ScoringEngine | None = None


def build_engine() -> ScoringEngine:
    store = history_store.SqliteStore()
    return ScoringEngine(
        metadata_provider=store,
        history_provider=store,
        fetch_timeout=settings.fetch_timeout_seconds,
    )


def get_engine() -> ScoringEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = build_engine()
    return _engine


def score(request: ScoreRequest | Mapping[str, Any], *, use_cache: bool = True) -> ScoreResult:
    """Validate, score, cache and record.  Propagates the engine's typed errors.

    Freshly computed scores are appended to the child's score history when
    ``settings.record_score_history`` is on; cache hits are not recorded.
    """
    req = parse_request(request)
    ttl = settings.score_cache_ttl_seconds
    if use_cache:
        cached = score_cache.get_cached(req, ttl)
        if cached is not None:
            return cached

    computed_at_generation = score_cache.generation(req.facilityId)
    result = get_engine().compute_admission_score(req)
    if use_cache and ttl > 0:
        score_cache.cache_set(
            req, result, ttl=ttl, computed_at_generation=computed_at_generation
        )
    if settings.record_score_history:
        history_store.record_score(req.childId, result)
    return result
