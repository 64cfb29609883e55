# CampusGate - grading engine (total, letter grade, grade point, CGPA)
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from pydantic import BaseModel

from .errors import ScoreOutOfRange

# Default component maxima for an internal assessment (total 75)
DEFAULT_MAXIMA: dict[str, float] = {
    "test1": 20,
    "test2": 20,
    "presentation": 10,
    "assignment": 15,
    "attendance": 10,
}


class GradeBoundary(NamedTuple):
    lower_bound: float  # inclusive percentage
    letter: str
    grade_point: int


# Single table for both consumers: letter for display, grade point for CGPA.
GRADE_SCALE: tuple[GradeBoundary, ...] = (
    GradeBoundary(90, "A+", 10),
    GradeBoundary(80, "A", 9),
    GradeBoundary(70, "B+", 8),
    GradeBoundary(60, "B", 7),
    GradeBoundary(50, "C+", 6),
    GradeBoundary(40, "C", 5),
    GradeBoundary(0, "F", 0),
)


def validate_scale(scale: tuple[GradeBoundary, ...] = GRADE_SCALE) -> None:
    """Raise ValueError unless bounds strictly decrease, grade points never rise, and 0 is covered."""
    if not scale:
        raise ValueError("grade scale is empty")
    for upper, lower in zip(scale, scale[1:]):
        if lower.lower_bound >= upper.lower_bound:
            raise ValueError(f"grade bounds not strictly decreasing at {lower.letter}")
        if lower.grade_point > upper.grade_point:
            raise ValueError(f"grade points increase at {lower.letter}")
    if scale[-1].lower_bound != 0:
        raise ValueError("grade scale does not cover 0%")


validate_scale()


class GradeResult(BaseModel):
    total: float
    max_total: float
    percentage: float
    letter: str
    grade_point: int


class GradedRecord(BaseModel):
    grade_point: float
    credits: float


def _boundary_for(percentage: float) -> GradeBoundary:
    if not 0 <= percentage <= 100:
        raise ScoreOutOfRange(f"Percentage {percentage} is outside 0-100")
    for boundary in GRADE_SCALE:
        if percentage >= boundary.lower_bound:
            return boundary
    return GRADE_SCALE[-1]


def letter_for(percentage: float) -> str:
    return _boundary_for(percentage).letter


def grade_point_for(percentage: float) -> int:
    return _boundary_for(percentage).grade_point


def compute_grade(components: Mapping[str, float], maxima: Mapping[str, float] = DEFAULT_MAXIMA) -> GradeResult:
    """
    Sum the component scores and grade the total against the sum of maxima.

    Every component must lie in [0, maxima[name]]; components not submitted
    count as 0, components not declared in maxima are rejected.
    """
    unknown = set(components) - set(maxima)
    if unknown:
        raise ScoreOutOfRange(f"Undeclared score components: {', '.join(sorted(unknown))}")

    total = 0.0
    max_total = 0.0
    for name, maximum in maxima.items():
        if not maximum >= 0:
            raise ScoreOutOfRange(f"Maximum for {name} must not be negative")
        value = components.get(name, 0)
        if not 0 <= value <= maximum:
            raise ScoreOutOfRange(f"{name} must be between 0 and {maximum}, got {value}")
        total += value
        max_total += maximum

    if max_total <= 0:
        raise ScoreOutOfRange("Sum of maxima must be positive")

    # multiply first so exact boundaries (e.g. 37.5 of 75) stay exact
    percentage = total * 100 / max_total
    boundary = _boundary_for(percentage)
    return GradeResult(
        total=total,
        max_total=max_total,
        percentage=percentage,
        letter=boundary.letter,
        grade_point=boundary.grade_point,
    )


def compute_cgpa(records: Iterable[GradedRecord]) -> float:
    """Credit-weighted mean grade point; 0.0 for a student with no graded courses."""
    total_points = 0.0
    total_credits = 0.0
    top = GRADE_SCALE[0].grade_point
    for record in records:
        if not 0 <= record.grade_point <= top:
            raise ScoreOutOfRange(f"Grade point must be between 0 and {top}, got {record.grade_point}")
        if not record.credits > 0:
            raise ScoreOutOfRange(f"Credits must be positive, got {record.credits}")
        total_points += record.grade_point * record.credits
        total_credits += record.credits
    if total_credits == 0:
        return 0.0
    return total_points / total_credits
