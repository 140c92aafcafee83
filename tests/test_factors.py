"""Tests for the five factor scorers."""

import pytest

from conftest import SCORING_DATE
from seat_scout.models.admission import (
    CompetitionStats,
    DemandObservation,
    EstimatedFactor,
    FacilityMetadata,
    FactorKey,
    MeasuredFactor,
    QueueEstimate,
    QueueObservation,
    ScoreRequest,
    SeasonalWindow,
    TargetClass,
    TurnoverStats,
    VacancyObservation,
)
from seat_scout.scoring.config import ScoringConfig
from seat_scout.scoring.factors import (
    FactorContext,
    score_competition,
    score_factors,
    score_priority,
    score_seasonal,
    score_turnover,
    score_waitlist,
)


def _ctx(
    metadata: FacilityMetadata | None = None,
    *,
    target_class: str = "age_3",
    priority: str = "dual_income",
    additional: list[str] | None = None,
    position: int | None = None,
) -> FactorContext:
    request = ScoreRequest(
        facilityId="fac-1",
        childId="child-1",
        targetClass=target_class,
        priorityType=priority,
        additionalPriorities=additional or [],
        waitingPosition=position,
    )
    return FactorContext(
        request=request, metadata=metadata, as_of=SCORING_DATE, config=ScoringConfig()
    )


def _facility(**stats) -> FacilityMetadata:
    return FacilityMetadata(facilityId="fac-1", name="Test", **stats)


def _turnover(vacancies: int, seat_months: float, cls=TargetClass.age_3) -> TurnoverStats:
    return TurnoverStats(
        byClass={cls: VacancyObservation(vacancies=vacancies, seatMonths=seat_months)}
    )


# ===================================================================
# turnover_rate
# ===================================================================


class TestTurnover:
    def test_no_metadata_is_estimated_default(self):
        factor = score_turnover(_ctx(None))
        assert isinstance(factor, EstimatedFactor)
        assert factor.score == 50.0
        assert factor.weight == 0.30

    def test_missing_class_is_estimated(self):
        stats = _turnover(1, 10, TargetClass.age_0)
        factor = score_turnover(_ctx(_facility(turnoverStats=stats)))
        assert factor.kind == "estimated"

    def test_zero_exposure_is_estimated(self):
        stats = _turnover(0, 0)
        assert score_turnover(_ctx(_facility(turnoverStats=stats))).kind == "estimated"

    def test_gamma_smoothed_rate(self):
        # (0.012 * 3 + 3) / (3 + 297) = 0.01012 → 0.01012 / 0.025 * 100 = 40.48
        stats = _turnover(3, 297)
        factor = score_turnover(_ctx(_facility(turnoverStats=stats)))
        assert isinstance(factor, MeasuredFactor)
        assert factor.score == 40.5

    def test_high_rate_clipped_to_100(self):
        stats = _turnover(50, 100)
        assert score_turnover(_ctx(_facility(turnoverStats=stats))).score == 100.0

    def test_more_vacancies_score_higher(self):
        low = _turnover(1, 300)
        high = _turnover(4, 300)
        assert (
            score_turnover(_ctx(_facility(turnoverStats=high))).score
            > score_turnover(_ctx(_facility(turnoverStats=low))).score
        )


# ===================================================================
# regional_competition
# ===================================================================


class TestCompetition:
    def _meta(self, applicants: int, seats: int) -> FacilityMetadata:
        obs = DemandObservation(applicants=applicants, availableSeats=seats)
        return _facility(competitionStats=CompetitionStats(byClass={TargetClass.age_3: obs}))

    def test_no_data_is_estimated(self):
        factor = score_competition(_ctx(_facility()))
        assert factor.kind == "estimated"
        assert factor.score == 50.0

    def test_pivot_ratio_scores_50(self):
        factor = score_competition(_ctx(self._meta(40, 20)))
        assert factor.kind == "measured"
        assert factor.score == 50.0

    def test_no_applicants_scores_100(self):
        assert score_competition(_ctx(self._meta(0, 10))).score == 100.0

    def test_no_seats_scores_0(self):
        factor = score_competition(_ctx(self._meta(5, 0)))
        assert factor.kind == "measured"
        assert factor.score == 0.0

    def test_empty_observation_is_estimated(self):
        assert score_competition(_ctx(self._meta(0, 0))).kind == "estimated"

    def test_more_competition_scores_lower(self):
        calm = score_competition(_ctx(self._meta(10, 20)))
        busy = score_competition(_ctx(self._meta(80, 20)))
        assert busy.score < calm.score


# ===================================================================
# priority_bonus
# ===================================================================


class TestPriority:
    def test_primary_only(self):
        factor = score_priority(_ctx(priority="dual_income"))
        assert factor.kind == "measured"
        assert factor.score == 50.0
        assert factor.weight == 0.25

    def test_additional_adds_fifteen_percent(self):
        # 85 + round(75 * 0.15) = 96
        factor = score_priority(_ctx(priority="single_parent", additional=["multi_child"]))
        assert factor.score == 96.0

    def test_duplicates_counted_once(self):
        once = score_priority(_ctx(priority="single_parent", additional=["multi_child"]))
        twice = score_priority(
            _ctx(priority="single_parent", additional=["multi_child", "multi_child"])
        )
        assert once.score == twice.score

    def test_primary_and_none_ignored_in_additional(self):
        ctx = _ctx(priority="dual_income", additional=["dual_income", "none"])
        assert ctx.request.additionalPriorities == frozenset()
        assert score_priority(ctx).score == 50.0

    def test_clamped_to_100(self):
        factor = score_priority(
            _ctx(
                priority="basic_livelihood",
                additional=["single_parent", "disability", "government_merit", "multi_child"],
            )
        )
        assert factor.score == 100.0

    def test_none_priority_lowest(self):
        assert score_priority(_ctx(priority="none")).score == 20.0


# ===================================================================
# seasonal_fit (scoring date is mid-February)
# ===================================================================


class TestSeasonal:
    @pytest.mark.parametrize(
        ("openings", "expected"),
        [
            ([2], 100.0),  # open this month
            ([3], 91.7),  # one month ahead
            ([8], 50.0),  # mid-cycle
            ([1], 8.3),  # just missed
            ([9, 3], 91.7),  # nearest opening wins
        ],
    )
    def test_proximity_to_opening(self, openings, expected):
        meta = _facility(seasonalWindow=SeasonalWindow(openingMonths=openings))
        factor = score_seasonal(_ctx(meta))
        assert factor.kind == "measured"
        assert factor.score == expected

    def test_unknown_window_is_estimated(self):
        assert score_seasonal(_ctx(_facility())).kind == "estimated"

    def test_empty_window_is_estimated(self):
        meta = _facility(seasonalWindow=SeasonalWindow(openingMonths=[]))
        assert score_seasonal(_ctx(meta)).kind == "estimated"


# ===================================================================
# waitlist_position
# ===================================================================


class TestWaitlist:
    def _queue(self, position: int | None, turnover: float | None) -> QueueEstimate:
        return QueueEstimate(
            byClass={
                TargetClass.age_3: QueueObservation(position=position, annualSeatTurnover=turnover)
            }
        )

    def test_unknown_is_estimated(self):
        factor = score_waitlist(_ctx(_facility()))
        assert factor.kind == "estimated"
        assert factor.score == 50.0

    def test_position_equal_to_turnover_scores_50(self):
        factor = score_waitlist(_ctx(_facility(queueEstimate=self._queue(12, 12))))
        assert factor.kind == "measured"
        assert factor.score == 50.0

    def test_request_position_overrides_estimate(self):
        # 100 * 12 / (12 + 4) = 75
        meta = _facility(queueEstimate=self._queue(12, 12))
        assert score_waitlist(_ctx(meta, position=4)).score == 75.0

    def test_front_of_queue(self):
        factor = score_waitlist(_ctx(None, position=0))
        assert factor.kind == "measured"
        assert factor.score == 100.0

    def test_position_without_turnover_is_estimated(self):
        assert score_waitlist(_ctx(_facility(), position=5)).kind == "estimated"

    def test_no_turnover_scores_0(self):
        assert score_waitlist(_ctx(_facility(queueEstimate=self._queue(5, 0)))).score == 0.0


# ===================================================================
# score_factors
# ===================================================================


class TestScoreFactors:
    def test_always_five_entries_in_order(self):
        factors = score_factors(_ctx(None))
        assert list(factors) == list(FactorKey)

    def test_weights_come_from_config(self):
        factors = score_factors(_ctx(None))
        assert sum(f.weight for f in factors.values()) == pytest.approx(1.0)

    def test_missing_data_never_raises(self):
        factors = score_factors(_ctx(_facility(), position=3))
        assert all(0 <= f.score <= 100 for f in factors.values())
