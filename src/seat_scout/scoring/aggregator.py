"""Weighted aggregation of factor scores into an admission probability."""

from __future__ import annotations

from collections.abc import Mapping

from seat_scout.models.admission import FactorKey, FactorScore

# Returned instead of raising when the factor set is incomplete.
PROBABILITY_UNAVAILABLE = -1.0


def aggregate_probability(factors: Mapping[FactorKey, FactorScore]) -> float:
    """Return ``Σ score × weight`` rounded to one decimal and clamped to 0..100.

    Returns ``PROBABILITY_UNAVAILABLE`` when any of the five factor keys
    is absent.  The orchestrator treats that as a programming error.
    """
    if any(key not in factors for key in FactorKey):
        return PROBABILITY_UNAVAILABLE

    weighted_sum = sum(factors[key].score * factors[key].weight for key in FactorKey)
    return round(max(0.0, min(100.0, weighted_sum)), 1)


def contributions(factors: Mapping[FactorKey, FactorScore]) -> dict[FactorKey, float]:
    """Per-factor contribution to the probability, in canonical order."""
    return {key: factors[key].score * factors[key].weight for key in FactorKey if key in factors}
