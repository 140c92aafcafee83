"""Confidence estimation – how much data backs the probability.

    confidence = 1
               − 0.10 × estimated factors
               − 0.30 × (1 − n / (n + 4))        n = similar cases
               − 0.10 if no case is within 3 years of the scoring year

clamped to [0.20, 1] and rounded to three decimals.  The sample term
saturates toward zero but never reaches it, so no sample size alone
buys full confidence.

The function is monotonic in each input: one more estimated factor
never raises it; one more (or fresher) case never lowers it.  A missing
history counts as stale, so the first case can only help.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from seat_scout.models.admission import FactorKey, FactorScore, HistoricalCase
from seat_scout.scoring.config import ScoringConfig
from seat_scout.scoring.factors import is_estimated


def count_estimated(factors: Mapping[FactorKey, FactorScore]) -> int:
    return sum(1 for f in factors.values() if is_estimated(f))


def freshest_year(cases: Iterable[HistoricalCase]) -> int | None:
    return max((c.year for c in cases), default=None)


def estimate_confidence(
    *,
    estimated_count: int,
    case_count: int,
    freshest_case_year: int | None,
    current_year: int,
    config: ScoringConfig,
) -> float:
    """Return a 0–1 confidence value."""
    confidence = 1.0
    confidence -= config.estimated_factor_penalty * max(0, estimated_count)

    n = max(0, case_count)
    saturation = n / (n + config.sample_half_saturation)
    confidence -= config.sample_penalty * (1.0 - saturation)

    is_stale = (
        freshest_case_year is None
        or current_year - freshest_case_year > config.staleness_years
    )
    if is_stale:
        confidence -= config.staleness_penalty

    confidence = max(config.confidence_floor, min(1.0, confidence))
    return round(max(0.0, min(1.0, confidence)), 3)


def zero_data_confidence(config: ScoringConfig) -> float:
    """Confidence when every facility-backed factor is estimated and no case exists."""
    return estimate_confidence(
        estimated_count=len(FactorKey) - 1,
        case_count=0,
        freshest_case_year=None,
        current_year=0,
        config=config,
    )
