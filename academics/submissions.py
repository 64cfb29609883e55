# CampusGate - submission policy (limits, lateness, late penalty)
from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from .errors import LateSubmissionRejected, MaxSubmissionsExceeded, ScoreOutOfRange


def _as_utc(value: datetime) -> datetime:
    # the store hands back naive datetimes; they are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_late(submitted_at: datetime, deadline: datetime) -> bool:
    return _as_utc(submitted_at) > _as_utc(deadline)


class AssignmentTerms(BaseModel):
    """The submission-relevant settings of an assignment."""
    assignment_id: str
    deadline: datetime
    max_submissions: int = Field(default=1, ge=1)
    allow_late_submission: bool = True
    late_penalty: float = Field(default=10.0, ge=0, le=100, description="Percent deducted from late work")
    total_points: float = Field(default=100.0, gt=0)


class Submission(BaseModel):
    student_id: str
    assignment_id: str
    submission_number: int = Field(..., ge=1)
    submitted_at: datetime
    is_late: bool = False
    grade: float | None = None
    final_grade: float | None = None


def record_submission(
    assignment: AssignmentTerms,
    student_id: str,
    existing: Iterable[Submission],
    now: datetime | None = None,
) -> Submission:
    """
    Build the next submission for a student, or raise if the cap is reached.

    existing may hold other students' submissions; only the given student's
    count. Nothing in existing is modified.
    """
    now = now or datetime.now(timezone.utc)
    count = sum(
        1 for s in existing
        if s.student_id == student_id and s.assignment_id == assignment.assignment_id
    )
    if count >= assignment.max_submissions:
        raise MaxSubmissionsExceeded(f"Maximum {assignment.max_submissions} submission(s) allowed")

    late = is_late(now, assignment.deadline)
    if late and not assignment.allow_late_submission:
        raise LateSubmissionRejected("The deadline has passed and late submissions are not accepted")

    return Submission(
        student_id=student_id,
        assignment_id=assignment.assignment_id,
        submission_number=count + 1,
        submitted_at=now,
        is_late=late,
    )


def reevaluate_lateness(submissions: Iterable[Submission], deadline: datetime) -> list[Submission]:
    """Recompute is_late for every submission after a deadline edit (either direction)."""
    return [
        s.model_copy(update={"is_late": is_late(s.submitted_at, deadline)})
        for s in submissions
    ]


def apply_late_penalty(grade: float, late_penalty: float) -> float:
    if not 0 <= late_penalty <= 100:
        raise ScoreOutOfRange(f"Late penalty must be between 0 and 100, got {late_penalty}")
    return grade * (100 - late_penalty) / 100


def grade_submission(assignment: AssignmentTerms, submission: Submission, grade: float) -> Submission:
    if not 0 <= grade <= assignment.total_points:
        raise ScoreOutOfRange(f"Grade must be between 0 and {assignment.total_points}")
    final = apply_late_penalty(grade, assignment.late_penalty) if submission.is_late else grade
    return submission.model_copy(update={"grade": grade, "final_grade": final})
