"""Similar-case retrieval and wait estimation.

Cases are filtered to the facility (or its declared comparable group)
and the target class, then ranked by a computed similarity key:

    similarity = 3 × exact priority match + 2 × recency
    recency    = max(0, 1 − age_years / 5)

Ties are broken by more recent year first; full ties keep input order.
Outcomes are deliberately *not* clustered so both admitted and
non-admitted cases stay visible.
"""

from __future__ import annotations

import statistics
from collections.abc import Iterable

from seat_scout.models.admission import HistoricalCase, PriorityType, TargetClass
from seat_scout.scoring.config import ScoringConfig


def _recency(case: HistoricalCase, current_year: int, lookback_years: int) -> float:
    age = max(0, current_year - case.year)
    return max(0.0, 1.0 - age / lookback_years)


def similarity(
    case: HistoricalCase,
    *,
    priority_type: PriorityType,
    current_year: int,
    config: ScoringConfig,
) -> float:
    match = 1.0 if case.priorityType == priority_type else 0.0
    recency = _recency(case, current_year, config.recency_lookback_years)
    return config.priority_match_weight * match + config.recency_weight * recency


def retrieve_similar_cases(
    cases: Iterable[HistoricalCase],
    *,
    facility_id: str,
    target_class: TargetClass,
    priority_type: PriorityType,
    current_year: int,
    config: ScoringConfig,
    comparable_facility_ids: Iterable[str] = (),
) -> list[HistoricalCase]:
    """Return the top ``config.max_similar_cases`` comparable cases.

    Cases without ``facilityId`` / ``targetClass`` are assumed to be
    pre-filtered by the history provider.  An empty history yields an
    empty list.
    """
    allowed = {facility_id, *comparable_facility_ids}
    eligible = [
        c
        for c in cases
        if (c.facilityId is None or c.facilityId in allowed)
        and (c.targetClass is None or c.targetClass == target_class)
    ]
    ranked = sorted(
        eligible,
        key=lambda c: (
            -similarity(c, priority_type=priority_type, current_year=current_year, config=config),
            -c.year,
        ),
    )
    return ranked[: config.max_similar_cases]


def _round_half_up(value: float) -> int:
    # ``round`` would bank 2.5 down to 2.
    return int(value + 0.5)


def _admitted_waits(cases: list[HistoricalCase]) -> list[float]:
    return sorted(c.waitingMonths for c in cases if c.result == "admitted")


def _fallback_wait(probability: float, divisor: float, config: ScoringConfig) -> int:
    months = _round_half_up((100.0 - probability) / divisor)
    return min(config.max_wait_months, max(1, months))


def estimate_wait_months(
    cases: list[HistoricalCase],
    probability: float,
    config: ScoringConfig,
) -> int:
    """Median wait of admitted similar cases, else a probability-based fallback."""
    admitted = _admitted_waits(cases)
    if admitted:
        return _round_half_up(statistics.median(admitted))
    return _fallback_wait(probability, config.fallback_wait_divisor, config)


def estimate_wait_months_80th(
    cases: list[HistoricalCase],
    probability: float,
    config: ScoringConfig,
) -> int:
    """Months within which 80 % of admitted similar cases got a seat.

    Never below the median estimate.  Without admitted cases the same
    probability fallback is used with a smaller divisor.
    """
    median = estimate_wait_months(cases, probability, config)
    admitted = _admitted_waits(cases)
    if len(admitted) == 1:
        p80 = _round_half_up(admitted[0])
    elif admitted:
        p80 = _round_half_up(statistics.quantiles(admitted, n=10, method="inclusive")[7])
    else:
        p80 = _fallback_wait(probability, config.fallback_wait_divisor_80th, config)
    return max(median, p80)
