"""Letter grade banding with a low-confidence downgrade."""

from __future__ import annotations

from seat_scout.models.admission import Grade
from seat_scout.scoring.config import GRADE_THRESHOLDS, ScoringConfig

GRADE_ORDER: tuple[Grade, ...] = ("A", "B", "C", "D", "F")


def provisional_grade(probability: float) -> Grade:
    """Band by probability alone; a value on a boundary takes the higher band."""
    for threshold, grade in GRADE_THRESHOLDS:
        if probability >= threshold:
            return grade  # type: ignore[return-value]
    return "F"


def downgrade(grade: Grade) -> Grade:
    """One band lower; F is a fixed point."""
    idx = GRADE_ORDER.index(grade)
    return GRADE_ORDER[min(idx + 1, len(GRADE_ORDER) - 1)]


def assign_grade(probability: float, confidence: float, config: ScoringConfig) -> Grade:
    grade = provisional_grade(probability)
    if confidence < config.low_confidence_threshold:
        return downgrade(grade)
    return grade
