"""Pydantic models for the Admission Probability Scoring Engine.

Request models describe who is applying where.  Facility models carry the
externally supplied statistics the factor scorers consume.  Response
models describe a fully assembled, deterministic score.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TargetClass(StrEnum):
    """Age-class bands, ordered youngest first."""

    age_0 = "age_0"
    age_1 = "age_1"
    age_2 = "age_2"
    age_3 = "age_3"
    age_4 = "age_4"
    age_5 = "age_5"


class PriorityType(StrEnum):
    """Applicant classifications affecting queue precedence."""

    basic_livelihood = "basic_livelihood"
    single_parent = "single_parent"
    disability = "disability"
    government_merit = "government_merit"
    multi_child = "multi_child"
    low_income = "low_income"
    dual_income = "dual_income"
    sibling_enrolled = "sibling_enrolled"
    near_workplace = "near_workplace"
    none = "none"


class FactorKey(StrEnum):
    """The five scored dimensions, in canonical order."""

    turnover_rate = "turnover_rate"
    regional_competition = "regional_competition"
    priority_bonus = "priority_bonus"
    seasonal_fit = "seasonal_fit"
    waitlist_position = "waitlist_position"


CaseResult = Literal["admitted", "waiting", "withdrawn"]
Grade = Literal["A", "B", "C", "D", "F"]

# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class ScoreRequest(BaseModel):
    """Immutable scoring request.

    ``additionalPriorities`` is normalised on construction: the primary
    ``priorityType`` and the ``none`` sentinel are removed and duplicates
    collapse (set semantics).
    """

    model_config = ConfigDict(frozen=True)

    facilityId: str = Field(min_length=1, max_length=128)
    childId: str = Field(min_length=1, max_length=128)
    targetClass: TargetClass
    priorityType: PriorityType = PriorityType.none
    additionalPriorities: frozenset[PriorityType] = frozenset()
    waitingPosition: int | None = Field(default=None, ge=0)

    @field_validator("additionalPriorities")
    @classmethod
    def _normalize_additional(
        cls, value: frozenset[PriorityType], info: ValidationInfo
    ) -> frozenset[PriorityType]:
        primary = info.data.get("priorityType")
        return frozenset(p for p in value if p is not PriorityType.none and p != primary)

    def cache_key(self) -> tuple[str, str, str, str, tuple[str, ...], int | None]:
        """Return the full tuple a caller must key memoised results on."""
        return (
            self.facilityId,
            self.childId,
            self.targetClass.value,
            self.priorityType.value,
            tuple(sorted(p.value for p in self.additionalPriorities)),
            self.waitingPosition,
        )


# ---------------------------------------------------------------------------
# External data
# ---------------------------------------------------------------------------


class HistoricalCase(BaseModel):
    """A past admission attempt.  Never mutated by the engine."""

    model_config = ConfigDict(frozen=True)

    priorityType: PriorityType
    waitingMonths: float = Field(ge=0)
    result: CaseResult
    year: int
    facilityId: str | None = None
    targetClass: TargetClass | None = None


class VacancyObservation(BaseModel):
    """Vacancies created over an observed exposure for one class."""

    vacancies: int = Field(ge=0)
    seatMonths: float = Field(ge=0)


class DemandObservation(BaseModel):
    """Applicants versus available seats over a trailing window."""

    applicants: int = Field(ge=0)
    availableSeats: int = Field(ge=0)


class QueueObservation(BaseModel):
    """Estimated queue position and yearly seat turnover for one class."""

    position: int | None = Field(default=None, ge=0)
    annualSeatTurnover: float | None = Field(default=None, ge=0)


class TurnoverStats(BaseModel):
    byClass: dict[TargetClass, VacancyObservation] = Field(default_factory=dict)


class CompetitionStats(BaseModel):
    byClass: dict[TargetClass, DemandObservation] = Field(default_factory=dict)
    windowMonths: int = 12


class SeasonalWindow(BaseModel):
    openingMonths: list[Annotated[int, Field(ge=1, le=12)]] = Field(default_factory=list)


class QueueEstimate(BaseModel):
    byClass: dict[TargetClass, QueueObservation] = Field(default_factory=dict)


class FacilityMetadata(BaseModel):
    """Facility context supplied by the metadata provider.

    Every stats block is optional; missing blocks degrade the matching
    factor to an estimated default rather than failing the request.
    """

    facilityId: str
    name: str
    comparableFacilityIds: list[str] = Field(default_factory=list)
    turnoverStats: TurnoverStats | None = None
    competitionStats: CompetitionStats | None = None
    seasonalWindow: SeasonalWindow | None = None
    queueEstimate: QueueEstimate | None = None


class ChildProfile(BaseModel):
    childId: str


# ---------------------------------------------------------------------------
# Factor scores (tagged variants)
# ---------------------------------------------------------------------------


class MeasuredFactor(BaseModel):
    """Factor score backed by supplied data."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["measured"] = "measured"
    score: float = Field(ge=0, le=100)
    weight: float = Field(gt=0)
    description: str = ""


class EstimatedFactor(BaseModel):
    """Factor score defaulted because its source data was missing."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["estimated"] = "estimated"
    score: float = Field(ge=0, le=100)
    weight: float = Field(gt=0)
    description: str = ""


FactorScore = Annotated[MeasuredFactor | EstimatedFactor, Field(discriminator="kind")]

# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class ScoreResult(BaseModel):
    """Fully assembled admission score."""

    model_config = ConfigDict(frozen=True)

    facilityId: str
    facilityName: str
    grade: Grade
    probability: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=1)
    estimatedMonths: int = Field(ge=0)
    estimatedMonths80th: int = Field(ge=0)
    factors: dict[FactorKey, FactorScore]
    similarCases: list[HistoricalCase] = Field(default_factory=list)
    recommendations: list[str] = Field(min_length=1, max_length=4)
    scoringVersion: str
    disclaimer: str = (
        "This is a statistical estimate based on past admissions, "
        "not a guarantee of a place."
    )


class ScoreHistoryEntry(BaseModel):
    """A previously computed score, as persisted for a child."""

    childId: str
    calculatedAt: datetime
    result: ScoreResult
