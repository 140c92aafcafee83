"""Shared test fixtures for seat-scout tests."""

from __future__ import annotations

import datetime

import pytest
from fastapi.testclient import TestClient

from seat_scout.models.admission import (
    CompetitionStats,
    DemandObservation,
    FacilityMetadata,
    HistoricalCase,
    QueueEstimate,
    QueueObservation,
    SeasonalWindow,
    TargetClass,
    TurnoverStats,
    VacancyObservation,
)
from seat_scout.scoring.engine import ScoringEngine
from seat_scout.services import history_store, score_cache, scoring_service

SCORING_DATE = datetime.date(2026, 2, 15)


class FakeMetadataProvider:
    """Dict-backed metadata provider."""

    def __init__(self, facilities: dict[str, FacilityMetadata] | None = None) -> None:
        self.facilities = facilities or {}
        self.calls: list[str] = []

    def get(self, facility_id: str) -> FacilityMetadata | None:
        self.calls.append(facility_id)
        return self.facilities.get(facility_id)


class FakeHistoryProvider:
    """List-backed history provider."""

    def __init__(self, cases: list[HistoricalCase] | None = None) -> None:
        self.cases = cases or []

    def get_cases(self, facility_id: str, target_class: TargetClass) -> list[HistoricalCase]:
        return list(self.cases)


def make_case(
    priority: str = "dual_income",
    months: float = 3,
    result: str = "admitted",
    year: int = 2025,
    **extra,
) -> HistoricalCase:
    return HistoricalCase(
        priorityType=priority, waitingMonths=months, result=result, year=year, **extra
    )


@pytest.fixture()
def bare_facility() -> FacilityMetadata:
    """A facility with a name and no statistics at all."""
    return FacilityMetadata(facilityId="fac-1", name="Sunflower Daycare")


@pytest.fixture()
def strong_facility() -> FacilityMetadata:
    """A facility whose statistics all score above the strong threshold for age_2."""
    return FacilityMetadata(
        facilityId="fac-1",
        name="Sunflower Daycare",
        turnoverStats=TurnoverStats(
            byClass={TargetClass.age_2: VacancyObservation(vacancies=20, seatMonths=400)}
        ),
        competitionStats=CompetitionStats(
            byClass={TargetClass.age_2: DemandObservation(applicants=30, availableSeats=40)}
        ),
        seasonalWindow=SeasonalWindow(openingMonths=[3]),
        queueEstimate=QueueEstimate(
            byClass={TargetClass.age_2: QueueObservation(position=2, annualSeatTurnover=12)}
        ),
    )


@pytest.fixture()
def strong_cases() -> list[HistoricalCase]:
    """8 cases, 6 admitted (median wait 2 months), 5 single_parent matches."""
    return [
        make_case("single_parent", 1, "admitted", 2025),
        make_case("single_parent", 2, "admitted", 2025),
        make_case("single_parent", 2, "admitted", 2024),
        make_case("single_parent", 3, "admitted", 2024),
        make_case("single_parent", 6, "waiting", 2025),
        make_case("dual_income", 2, "admitted", 2025),
        make_case("dual_income", 3, "admitted", 2024),
        make_case("multi_child", 8, "withdrawn", 2023),
    ]


def engine_for(
    metadata: FacilityMetadata | None,
    cases: list[HistoricalCase] | None = None,
    **kwargs,
) -> ScoringEngine:
    facilities = {metadata.facilityId: metadata} if metadata else {}
    return ScoringEngine(
        FakeMetadataProvider(facilities),
        FakeHistoryProvider(cases),
        clock=lambda: SCORING_DATE,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def _memory_store():
    """Run every test against a fresh in-memory SQLite store."""
    history_store.use_memory_db()
    yield
    history_store.reset_test_db()


@pytest.fixture(autouse=True)
def _clear_score_cache():
    """Clear the score cache and the shared engine between tests."""
    score_cache.clear_score_cache()
    scoring_service._engine = None
    yield
    score_cache.clear_score_cache()
    scoring_service._engine = None


@pytest.fixture()
def client():
    """FastAPI test client over the in-memory store."""
    from seat_scout.app import app

    with TestClient(app) as c:
        yield c
