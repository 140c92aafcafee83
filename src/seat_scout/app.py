"""seat-scout – FastAPI web application.

REST surface over the Admission Probability Scoring Engine: score a
child's chances at a facility and feed the store with facility
statistics and past admission outcomes.
"""

import logging
from typing import Any

from fastapi import Body, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from seat_scout import __version__
from seat_scout.errors import DataUnavailableError, InvalidRequestError
from seat_scout.models.admission import FacilityMetadata, HistoricalCase
from seat_scout.scoring.config import SCORING_VERSION
from seat_scout.scoring.summary import format_summary
from seat_scout.services import history_store, score_cache, scoring_service

_RETRY_AFTER_SECONDS = 30

app = FastAPI(
    title="seat-scout API",
    version=__version__,
    description=(
        "REST API for childcare admission scoring. "
        "Computes an admission probability, letter grade, confidence, "
        "expected wait, comparable past cases and next steps for a child "
        "at a given facility."
    ),
    license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


def _setup_logging(level: int = logging.WARNING) -> None:
    """Configure the root ``seat_scout`` logger with uvicorn-style colours."""
    from uvicorn.logging import DefaultFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(
        DefaultFormatter(fmt="%(levelprefix)s %(name)s - %(message)s", use_colors=True)
    )
    app_logger = logging.getLogger("seat_scout")
    app_logger.handlers = [handler]
    app_logger.setLevel(level)
    app_logger.propagate = False


_setup_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CaseBatchRequest(BaseModel):
    """Admission outcomes to record; every case must carry ``targetClass``."""

    cases: list[HistoricalCase] = Field(min_length=1)


def _error(message: str, status_code: int) -> JSONResponse:
    headers = {"Retry-After": str(_RETRY_AFTER_SECONDS)} if status_code == 503 else None
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"], summary="Service health")
def health() -> JSONResponse:
    return JSONResponse(
        {"status": "ok", "version": __version__, "scoringVersion": SCORING_VERSION}
    )


@app.post(
    "/api/admission-score",
    tags=["Admission"],
    summary="Compute an admission score",
)
def admission_score(body: dict[str, Any] = Body(...)) -> JSONResponse:  # noqa: B008
    """Compute the admission probability, grade and recommendations.

    Returns 400 for unrecognised enumerations and 503 (with
    ``Retry-After``) when the facility or child cannot be resolved.
    """
    try:
        result = scoring_service.score(body)
    except InvalidRequestError as exc:
        return _error(str(exc), 400)
    except DataUnavailableError as exc:
        logger.info("Admission score unavailable: %s", exc)
        return _error(str(exc), 503)
    return JSONResponse(result.model_dump(mode="json"))


@app.post(
    "/api/admission-score/summary",
    tags=["Admission"],
    summary="Compute an admission score as plain text",
    response_model=None,
)
def admission_score_summary(
    body: dict[str, Any] = Body(...),  # noqa: B008
) -> PlainTextResponse | JSONResponse:
    """Same as ``/api/admission-score`` rendered as a chat-friendly summary."""
    try:
        result = scoring_service.score(body)
    except InvalidRequestError as exc:
        return _error(str(exc), 400)
    except DataUnavailableError as exc:
        return _error(str(exc), 503)
    return PlainTextResponse(format_summary(result))


@app.get("/api/facilities/{facility_id}", tags=["Facilities"], summary="Get facility data")
def get_facility(facility_id: str) -> JSONResponse:
    try:
        metadata = history_store.get_facility(facility_id)
    except DataUnavailableError as exc:
        return _error(str(exc), 503)
    if metadata is None:
        return _error(f"Facility '{facility_id}' not found", 404)
    payload = metadata.model_dump(mode="json")
    payload["caseCount"] = history_store.get_case_count(facility_id)
    return JSONResponse(payload)


@app.put("/api/facilities/{facility_id}", tags=["Facilities"], summary="Store facility data")
def put_facility(facility_id: str, metadata: FacilityMetadata) -> JSONResponse:
    """Insert or replace facility statistics and drop its cached scores."""
    if metadata.facilityId != facility_id:
        return _error("Path facility_id does not match body facilityId", 400)
    history_store.save_facility(metadata)
    invalidated = score_cache.invalidate_facility(facility_id)
    logger.info("Saved metadata for %s (%d cached scores dropped)", facility_id, invalidated)
    return JSONResponse({"facilityId": facility_id, "status": "saved"})


@app.post(
    "/api/facilities/{facility_id}/cases",
    tags=["Facilities"],
    summary="Record past admission outcomes",
)
def post_cases(facility_id: str, body: CaseBatchRequest) -> JSONResponse:
    """Record outcomes for *facility_id* and drop its cached scores."""
    missing_class = [i for i, c in enumerate(body.cases) if c.targetClass is None]
    if missing_class:
        return _error(f"targetClass is required (cases {missing_class})", 400)

    rows: list[history_store.CaseRow] = [
        history_store.CaseRow(
            facility_id=facility_id,
            target_class=c.targetClass.value,  # type: ignore[union-attr]
            priority_type=c.priorityType.value,
            waiting_months=c.waitingMonths,
            result=c.result,
            year=c.year,
        )
        for c in body.cases
    ]
    history_store.record_cases_batch(rows)
    invalidated = score_cache.invalidate_facility(facility_id)
    return JSONResponse(
        {"facilityId": facility_id, "recorded": len(rows), "invalidated": invalidated}
    )


@app.get(
    "/api/children/{child_id}/scores",
    tags=["Admission"],
    summary="List a child's computed scores",
)
def child_scores(
    child_id: str,
    limit: int = Query(history_store.SCORE_HISTORY_LIMIT, ge=1, le=100),
) -> JSONResponse:
    """Latest computed scores for *child_id*, newest first."""
    entries = history_store.get_score_history(child_id, limit=limit)
    return JSONResponse(
        {
            "childId": child_id,
            "results": [e.model_dump(mode="json") for e in entries],
            "total": len(entries),
        }
    )
