# CampusGate - grading, attendance and submission computations
from .errors import (
    AcademicError,
    AttendanceOutOfRange,
    LateSubmissionRejected,
    MaxSubmissionsExceeded,
    ScoreOutOfRange,
)
from .grading import (
    DEFAULT_MAXIMA,
    GRADE_SCALE,
    GradeResult,
    GradedRecord,
    compute_cgpa,
    compute_grade,
    grade_point_for,
    letter_for,
)
from .attendance import AttendanceStatus, AttendanceSummary, ClassStatus, classify, compute_percentage, summarize
from .submissions import (
    AssignmentTerms,
    Submission,
    apply_late_penalty,
    grade_submission,
    record_submission,
    reevaluate_lateness,
)

__all__ = [
    "AcademicError",
    "AttendanceOutOfRange",
    "LateSubmissionRejected",
    "MaxSubmissionsExceeded",
    "ScoreOutOfRange",
    "DEFAULT_MAXIMA",
    "GRADE_SCALE",
    "GradeResult",
    "GradedRecord",
    "compute_cgpa",
    "compute_grade",
    "grade_point_for",
    "letter_for",
    "AttendanceStatus",
    "AttendanceSummary",
    "ClassStatus",
    "classify",
    "compute_percentage",
    "summarize",
    "AssignmentTerms",
    "Submission",
    "apply_late_penalty",
    "grade_submission",
    "record_submission",
    "reevaluate_lateness",
]
