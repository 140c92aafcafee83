"""Factor scorers – five independent, pure 0–100 scores.

Each scorer reads a ``FactorContext`` and returns exactly one factor
entry.  Scorers never raise on missing optional data: they return an
``EstimatedFactor`` carrying ``config.default_score`` so the confidence
estimator can penalise it.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable
from dataclasses import dataclass

from seat_scout.models.admission import (
    EstimatedFactor,
    FacilityMetadata,
    FactorKey,
    FactorScore,
    MeasuredFactor,
    ScoreRequest,
)
from seat_scout.scoring.config import ScoringConfig


@dataclass(frozen=True)
class FactorContext:
    """Everything a scorer may read.  ``metadata`` is ``None`` when unavailable."""

    request: ScoreRequest
    metadata: FacilityMetadata | None
    as_of: datetime.date
    config: ScoringConfig


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _measured(ctx: FactorContext, key: FactorKey, score: float, description: str) -> MeasuredFactor:
    return MeasuredFactor(
        score=round(_clamp(score), 1),
        weight=ctx.config.weights[key],
        description=description,
    )


def _estimated(ctx: FactorContext, key: FactorKey, description: str) -> EstimatedFactor:
    return EstimatedFactor(
        score=ctx.config.default_score,
        weight=ctx.config.weights[key],
        description=description,
    )


# ---------------------------------------------------------------------------
# Scorers
# ---------------------------------------------------------------------------


def score_turnover(ctx: FactorContext) -> FactorScore:
    """Vacancy creation rate per seat-month, Gamma-smoothed toward a class prior."""
    key = FactorKey.turnover_rate
    cls = ctx.request.targetClass
    stats = ctx.metadata.turnoverStats if ctx.metadata else None
    obs = stats.byClass.get(cls) if stats else None
    if obs is None or obs.seatMonths <= 0:
        return _estimated(ctx, key, "No vacancy history for this class; using a neutral default")

    cfg = ctx.config
    prior_mean = cfg.turnover_prior_means.get(cls, 0.0)
    strength = cfg.turnover_prior_strength
    rate = (prior_mean * strength + obs.vacancies) / (strength + obs.seatMonths)
    score = 100.0 * rate / cfg.turnover_saturation_rate
    return _measured(
        ctx,
        key,
        score,
        f"{obs.vacancies} vacancies over {obs.seatMonths:.1f} seat-months "
        f"(rate {rate:.4f}/seat-month)",
    )


def score_competition(ctx: FactorContext) -> FactorScore:
    """Inverse of applicants per available seat over the trailing window."""
    key = FactorKey.regional_competition
    stats = ctx.metadata.competitionStats if ctx.metadata else None
    obs = stats.byClass.get(ctx.request.targetClass) if stats else None
    if obs is None or (obs.availableSeats == 0 and obs.applicants == 0):
        return _estimated(ctx, key, "No demand data for this area; using a neutral default")

    window = stats.windowMonths if stats else 12
    if obs.availableSeats == 0:
        return _measured(
            ctx, key, 0.0, f"{obs.applicants} applicants and no open seats ({window} months)"
        )

    ratio = obs.applicants / obs.availableSeats
    pivot = ctx.config.competition_pivot_ratio
    score = 100.0 * pivot / (pivot + ratio)
    return _measured(
        ctx,
        key,
        score,
        f"{ratio:.1f} applicants per seat over the last {window} months",
    )


def score_priority(ctx: FactorContext) -> FactorScore:
    """Primary priority points plus a share of each distinct additional priority."""
    key = FactorKey.priority_bonus
    cfg = ctx.config
    request = ctx.request
    base = cfg.priority_points.get(request.priorityType, 0)
    bonus = sum(
        round(cfg.priority_points.get(p, 0) * cfg.additional_priority_share)
        for p in request.additionalPriorities
    )
    extras = ", ".join(sorted(p.value for p in request.additionalPriorities))
    description = f"{request.priorityType.value} priority"
    if extras:
        description += f" (+ {extras})"
    return _measured(ctx, key, base + bonus, description)


def score_seasonal(ctx: FactorContext) -> FactorScore:
    """Higher when the next enrollment opening is close."""
    key = FactorKey.seasonal_fit
    window = ctx.metadata.seasonalWindow if ctx.metadata else None
    if window is None or not window.openingMonths:
        return _estimated(ctx, key, "Enrollment calendar unknown; using a neutral default")

    month = ctx.as_of.month
    months_until = min((opening - month) % 12 for opening in window.openingMonths)
    score = 100.0 * (1 - months_until / 12)
    if months_until == 0:
        description = "Enrollment window is open this month"
    else:
        description = f"Next enrollment window opens in {months_until} month(s)"
    return _measured(ctx, key, score, description)


def score_waitlist(ctx: FactorContext) -> FactorScore:
    """Inverse of queue position relative to annual seat turnover."""
    key = FactorKey.waitlist_position
    cls = ctx.request.targetClass
    queue = ctx.metadata.queueEstimate if ctx.metadata else None
    obs = queue.byClass.get(cls) if queue else None

    position = ctx.request.waitingPosition
    if position is None and obs is not None:
        position = obs.position
    if position is None:
        return _estimated(ctx, key, "Waitlist position unknown; using a neutral default")
    if position == 0:
        return _measured(ctx, key, 100.0, "First in line")

    turnover = obs.annualSeatTurnover if obs else None
    if turnover is None:
        return _estimated(
            ctx, key, f"Waitlist position {position} but yearly seat turnover unknown"
        )

    score = 100.0 * turnover / (turnover + position) if turnover > 0 else 0.0
    return _measured(
        ctx,
        key,
        score,
        f"Waitlist position {position} against ~{turnover:.0f} seats freed per year",
    )


FACTOR_SCORERS: dict[FactorKey, Callable[[FactorContext], FactorScore]] = {
    FactorKey.turnover_rate: score_turnover,
    FactorKey.regional_competition: score_competition,
    FactorKey.priority_bonus: score_priority,
    FactorKey.seasonal_fit: score_seasonal,
    FactorKey.waitlist_position: score_waitlist,
}


def score_factors(ctx: FactorContext) -> dict[FactorKey, FactorScore]:
    """Run all five scorers; keys always come back in canonical order."""
    return {key: FACTOR_SCORERS[key](ctx) for key in FactorKey}


def is_estimated(factor: FactorScore) -> bool:
    return isinstance(factor, EstimatedFactor)
