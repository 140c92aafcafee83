"""Scoring configuration – every weight, threshold and curve constant.

The engine never reads module-level mutable state: a frozen
``ScoringConfig`` is handed to ``ScoringEngine`` so alternate weight sets
can be tested side by side.

Factor weights (sum = 1.0):
    turnover_rate          0.30   Vacancies created per seat-month
    regional_competition   0.25   Applicants per available seat
    priority_bonus         0.25   Priority classification points
    seasonal_fit           0.10   Proximity to an enrollment opening
    waitlist_position      0.10   Queue position vs. annual turnover

Grade bands (lower bound inclusive):
    >=80 A   >=60 B   >=40 C   >=20 D   else F
    confidence < 0.5 → one band lower (F stays F)

Bump ``SCORING_VERSION`` whenever a default below changes.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from seat_scout.models.admission import FactorKey, PriorityType, TargetClass

SCORING_VERSION = "v1"

DEFAULT_WEIGHTS: dict[FactorKey, float] = {
    FactorKey.turnover_rate: 0.30,
    FactorKey.regional_competition: 0.25,
    FactorKey.priority_bonus: 0.25,
    FactorKey.seasonal_fit: 0.10,
    FactorKey.waitlist_position: 0.10,
}

DEFAULT_PRIORITY_POINTS: dict[PriorityType, int] = {
    PriorityType.basic_livelihood: 90,
    PriorityType.single_parent: 85,
    PriorityType.disability: 85,
    PriorityType.government_merit: 80,
    PriorityType.multi_child: 75,
    PriorityType.low_income: 70,
    PriorityType.sibling_enrolled: 60,
    PriorityType.dual_income: 50,
    PriorityType.near_workplace: 40,
    PriorityType.none: 20,
}

# Prior mean vacancy rate per seat-month, by age class.
DEFAULT_TURNOVER_PRIOR: dict[TargetClass, float] = {
    TargetClass.age_0: 0.008,
    TargetClass.age_1: 0.010,
    TargetClass.age_2: 0.011,
    TargetClass.age_3: 0.012,
    TargetClass.age_4: 0.015,
    TargetClass.age_5: 0.015,
}

GRADE_THRESHOLDS: list[tuple[float, str]] = [
    (80, "A"),
    (60, "B"),
    (40, "C"),
    (20, "D"),
]


class ScoringConfig(BaseModel):
    """Immutable set of scoring constants."""

    model_config = ConfigDict(frozen=True)

    weights: dict[FactorKey, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    default_score: float = 50.0

    # turnover_rate
    turnover_prior_means: dict[TargetClass, float] = Field(
        default_factory=lambda: dict(DEFAULT_TURNOVER_PRIOR)
    )
    turnover_prior_strength: float = 3.0  # pseudo seat-months
    turnover_saturation_rate: float = 0.025

    # regional_competition
    competition_pivot_ratio: float = 2.0

    # priority_bonus
    priority_points: dict[PriorityType, int] = Field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_POINTS)
    )
    additional_priority_share: float = 0.15

    # similar cases
    max_similar_cases: int = 10
    priority_match_weight: float = 3.0
    recency_weight: float = 2.0
    recency_lookback_years: int = 5

    # confidence
    estimated_factor_penalty: float = 0.10
    sample_penalty: float = 0.30
    sample_half_saturation: float = 4.0
    staleness_years: int = 3
    staleness_penalty: float = 0.10
    confidence_floor: float = 0.20
    low_confidence_threshold: float = 0.50

    # recommendations
    strong_factor_threshold: float = 70.0
    insufficient_data_min_estimated: int = 3
    max_recommendations: int = 4

    # wait estimate fallback: missing probability points per month
    fallback_wait_divisor: float = 8.0
    fallback_wait_divisor_80th: float = 5.0
    max_wait_months: int = 24

    @model_validator(mode="after")
    def _validate_weights(self) -> ScoringConfig:
        missing = [k.value for k in FactorKey if k not in self.weights]
        if missing:
            raise ValueError(f"weights missing for factors: {', '.join(missing)}")
        if any(w <= 0 for w in self.weights.values()):
            raise ValueError("factor weights must be positive")
        total = sum(self.weights.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"factor weights must sum to 1.0 (got {total:.4f})")
        if not 1 <= self.max_recommendations <= 4:
            raise ValueError("max_recommendations must be between 1 and 4")
        return self
