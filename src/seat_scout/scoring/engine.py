"""Admission scoring engine – the only component exposed to callers.

Sequence for one request:

1. Validate the request (``InvalidRequestError`` on unknown enumerations).
2. Resolve the child (optional provider) and fetch facility metadata and
   history concurrently, bounded by ``fetch_timeout``.
3. Score the five factors, aggregate, retrieve similar cases, estimate
   confidence, band the grade and generate recommendations.
4. Assemble the ``ScoreResult`` – all or nothing.

The engine is stateless and never caches.  Given the same request,
external data and clock, the result is identical.
"""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

from pydantic import ValidationError

from seat_scout.errors import DataUnavailableError, InvalidRequestError
from seat_scout.models.admission import (
    ChildProfile,
    FacilityMetadata,
    HistoricalCase,
    ScoreRequest,
    ScoreResult,
)
from seat_scout.providers import (
    ChildProfileProvider,
    FacilityHistoryProvider,
    FacilityMetadataProvider,
)
from seat_scout.scoring.aggregator import PROBABILITY_UNAVAILABLE, aggregate_probability
from seat_scout.scoring.confidence import count_estimated, estimate_confidence, freshest_year
from seat_scout.scoring.config import SCORING_VERSION, ScoringConfig
from seat_scout.scoring.factors import FactorContext, score_factors
from seat_scout.scoring.grading import assign_grade
from seat_scout.scoring.recommendations import generate_recommendations
from seat_scout.scoring.similar_cases import (
    estimate_wait_months,
    estimate_wait_months_80th,
    retrieve_similar_cases,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 5.0

# Long-lived fetch workers shared by every engine in the process; SQLite
# thread-local connections are reused across requests.
_fetch_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="seat-scout-fetch")


def _utc_today() -> datetime.date:
    return datetime.datetime.now(datetime.UTC).date()


def parse_request(request: ScoreRequest | Mapping[str, Any]) -> ScoreRequest:
    """Return a validated ``ScoreRequest`` or raise ``InvalidRequestError``."""
    if isinstance(request, ScoreRequest):
        return request
    try:
        return ScoreRequest.model_validate(request)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidRequestError(f"Invalid score request – {details}") from exc


class ScoringEngine:
    """Orchestrates the scoring pipeline over injected collaborators."""

    def __init__(
        self,
        metadata_provider: FacilityMetadataProvider,
        history_provider: FacilityHistoryProvider,
        *,
        config: ScoringConfig | None = None,
        child_provider: ChildProfileProvider | None = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        clock: Callable[[], datetime.date] = _utc_today,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._metadata_provider = metadata_provider
        self._history_provider = history_provider
        self._child_provider = child_provider
        self.config = config or ScoringConfig()
        self.fetch_timeout = fetch_timeout
        self._clock = clock
        self._executor = executor or _fetch_pool

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def compute_admission_score(self, request: ScoreRequest | Mapping[str, Any]) -> ScoreResult:
        """Compute the admission score for *request*.

        Raises
        ------
        InvalidRequestError
            ``targetClass`` or ``priorityType`` (or another field) is invalid.
        DataUnavailableError
            The facility or child cannot be resolved.
        """
        req = parse_request(request)
        metadata, history = self._fetch_context(req)
        return self._assemble(req, metadata, history)

    # -----------------------------------------------------------------
    # Data fetch stage
    # -----------------------------------------------------------------

    def _fetch_context(
        self, req: ScoreRequest
    ) -> tuple[FacilityMetadata | None, list[HistoricalCase]]:
        """Resolve the child and fetch metadata and history concurrently.

        All three lookups share one ``fetch_timeout`` deadline.  A child
        that cannot be resolved in time is fatal.  A timed-out metadata
        fetch degrades to ``None`` (all facility stats unknown).  Any
        history failure degrades to an empty list.  An unknown facility,
        or a provider raising ``DataUnavailableError`` for metadata, is
        fatal.
        """
        pool = self._executor
        child_future: Future[ChildProfile | None] | None = None
        if self._child_provider is not None:
            child_future = pool.submit(self._child_provider.get, req.childId)
        meta_future = pool.submit(self._metadata_provider.get, req.facilityId)
        hist_future = pool.submit(
            self._history_provider.get_cases, req.facilityId, req.targetClass
        )
        deadline = time.monotonic() + self.fetch_timeout

        def remaining() -> float:
            return max(0.0, deadline - time.monotonic())

        try:
            if child_future is not None:
                self._resolve_child(req.childId, child_future, remaining())

            metadata: FacilityMetadata | None
            try:
                metadata = meta_future.result(timeout=remaining())
            except FutureTimeoutError:
                logger.warning(
                    "Facility metadata fetch for %s timed out after %.1fs – using defaults",
                    req.facilityId,
                    self.fetch_timeout,
                )
                metadata = None
            except DataUnavailableError:
                raise
            except Exception as exc:
                raise DataUnavailableError(
                    f"Facility '{req.facilityId}' metadata could not be fetched: {exc}"
                ) from exc
            else:
                if metadata is None:
                    raise DataUnavailableError(f"Facility '{req.facilityId}' not found")

            history: list[HistoricalCase]
            try:
                history = list(hist_future.result(timeout=remaining()))
            except FutureTimeoutError:
                logger.warning(
                    "History fetch for %s timed out – scoring without similar cases",
                    req.facilityId,
                )
                history = []
            except Exception as exc:
                logger.warning("History fetch for %s failed: %s", req.facilityId, exc)
                history = []
        finally:
            for future in (child_future, meta_future, hist_future):
                if future is not None:
                    future.cancel()

        return metadata, history

    def _resolve_child(
        self, child_id: str, future: Future[ChildProfile | None], timeout: float
    ) -> None:
        try:
            profile = future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise DataUnavailableError(
                f"Child '{child_id}' lookup timed out after {self.fetch_timeout:.1f}s"
            ) from exc
        except DataUnavailableError:
            raise
        except Exception as exc:
            raise DataUnavailableError(f"Child '{child_id}' could not be resolved: {exc}") from exc
        if profile is None:
            raise DataUnavailableError(f"Child '{child_id}' could not be resolved")

    # -----------------------------------------------------------------
    # Pure computation stage
    # -----------------------------------------------------------------

    def _assemble(
        self,
        req: ScoreRequest,
        metadata: FacilityMetadata | None,
        history: list[HistoricalCase],
    ) -> ScoreResult:
        cfg = self.config
        today = self._clock()

        ctx = FactorContext(request=req, metadata=metadata, as_of=today, config=cfg)
        factors = score_factors(ctx)

        probability = aggregate_probability(factors)
        if probability == PROBABILITY_UNAVAILABLE:
            raise RuntimeError("factor scoring returned an incomplete factor set")

        similar = retrieve_similar_cases(
            history,
            facility_id=req.facilityId,
            target_class=req.targetClass,
            priority_type=req.priorityType,
            current_year=today.year,
            config=cfg,
            comparable_facility_ids=metadata.comparableFacilityIds if metadata else (),
        )

        confidence = estimate_confidence(
            estimated_count=count_estimated(factors),
            case_count=len(similar),
            freshest_case_year=freshest_year(similar),
            current_year=today.year,
            config=cfg,
        )
        grade = assign_grade(probability, confidence, cfg)
        recommendations = generate_recommendations(factors, grade, similar, cfg)

        result = ScoreResult(
            facilityId=req.facilityId,
            facilityName=metadata.name if metadata else req.facilityId,
            grade=grade,
            probability=probability,
            confidence=confidence,
            estimatedMonths=estimate_wait_months(similar, probability, cfg),
            estimatedMonths80th=estimate_wait_months_80th(similar, probability, cfg),
            factors=factors,
            similarCases=similar,
            recommendations=recommendations,
            scoringVersion=SCORING_VERSION,
        )
        logger.debug(
            "Scored %s/%s: probability=%.1f confidence=%.3f grade=%s",
            req.facilityId,
            req.targetClass.value,
            probability,
            confidence,
            grade,
        )
        return result
