"""Actionable recommendations derived from the weakest factors.

Always returns between 1 and ``config.max_recommendations`` messages:

1. No similar cases and several estimated factors → a single
   "insufficient data" message.
2. Otherwise one message per weak factor (score below the strong
   threshold), weakest weighted contribution first.
3. No weak factor → a single next-step message.
4. Grades D and F add a "spread your applications" message if room remains.
"""

from __future__ import annotations

from collections.abc import Mapping

from seat_scout.models.admission import FactorKey, FactorScore, Grade, HistoricalCase
from seat_scout.scoring.aggregator import contributions
from seat_scout.scoring.config import ScoringConfig
from seat_scout.scoring.factors import is_estimated

INSUFFICIENT_DATA_MESSAGE = (
    "There is not enough admission history for this facility yet. "
    "Enable vacancy alerts and check back once more data is collected."
)

STRONG_POSITION_MESSAGE = (
    "Your admission chances look strong. Prepare your enrollment documents "
    "so you can respond as soon as a seat is offered."
)

SPREAD_APPLICATIONS_MESSAGE = (
    "Competition is tight. Apply to several facilities at the same time "
    "to improve your overall chances."
)

# (measured template, estimated template)
_FACTOR_TEMPLATES: dict[FactorKey, tuple[str, str]] = {
    FactorKey.turnover_rate: (
        "Seats rarely open up at this facility. Set a vacancy alert so you "
        "hear about openings immediately.",
        "Vacancy history for this facility is missing. Set a vacancy alert "
        "to start tracking openings.",
    ),
    FactorKey.regional_competition: (
        "Demand in this area is high. Consider nearby facilities with fewer "
        "applicants per seat.",
        "Local demand could not be measured. Compare applicant numbers at "
        "nearby facilities before deciding.",
    ),
    FactorKey.priority_bonus: (
        "Check whether your family qualifies for additional priority "
        "categories (dual income, multi-child, sibling enrolled, ...).",
        "Check whether your family qualifies for additional priority "
        "categories (dual income, multi-child, sibling enrolled, ...).",
    ),
    FactorKey.seasonal_fit: (
        "Most seats open around the enrollment season. Time your application "
        "just before the next opening window.",
        "The enrollment calendar for this facility is unknown. Ask the "
        "facility when its next intake opens.",
    ),
    FactorKey.waitlist_position: (
        "Your waitlist position is far back relative to yearly turnover. "
        "Keep your application active and confirm it regularly.",
        "Enter your current waitlist position to get a sharper estimate.",
    ),
}


def generate_recommendations(
    factors: Mapping[FactorKey, FactorScore],
    grade: Grade,
    similar_cases: list[HistoricalCase],
    config: ScoringConfig,
) -> list[str]:
    """Return ordered, deduplicated recommendations (never empty)."""
    estimated = sum(1 for f in factors.values() if is_estimated(f))
    if not similar_cases and estimated >= config.insufficient_data_min_estimated:
        return [INSUFFICIENT_DATA_MESSAGE]

    order = {key: idx for idx, key in enumerate(FactorKey)}
    weak = [
        key
        for key, factor in factors.items()
        if factor.score < config.strong_factor_threshold
    ]
    contrib = contributions(factors)
    weak.sort(key=lambda k: (contrib[k], order[k]))

    messages: list[str] = []
    for key in weak:
        measured_tpl, estimated_tpl = _FACTOR_TEMPLATES[key]
        message = estimated_tpl if is_estimated(factors[key]) else measured_tpl
        if message not in messages:
            messages.append(message)

    if not messages:
        messages.append(STRONG_POSITION_MESSAGE)

    if grade in ("D", "F") and SPREAD_APPLICATIONS_MESSAGE not in messages:
        messages.append(SPREAD_APPLICATIONS_MESSAGE)

    return messages[: config.max_recommendations]
