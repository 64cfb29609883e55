# CampusGate - attendance engine
from collections import Counter
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel

from .errors import AttendanceOutOfRange

EXCELLENT_THRESHOLD = 90.0
SATISFACTORY_THRESHOLD = 75.0


class AttendanceStatus(str, Enum):
    EXCELLENT = "excellent"
    SATISFACTORY = "satisfactory"
    AT_RISK = "at risk"


class ClassStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


# Credit each class mark earns toward effective attendance
CLASS_POINTS: dict[ClassStatus, float] = {
    ClassStatus.PRESENT: 1.0,
    ClassStatus.EXCUSED: 1.0,
    ClassStatus.LATE: 0.5,
    ClassStatus.ABSENT: 0.0,
}


class AttendanceSummary(BaseModel):
    total_classes: int
    attended_classes: int
    late_classes: int
    absent_classes: int
    effective_attendance: float
    percentage: float
    status: AttendanceStatus


def compute_percentage(attended: float, total: float) -> float:
    """attended/total as a percentage; a subject with no classes reports 0."""
    if total < 0 or attended < 0:
        raise AttendanceOutOfRange("Class counts must not be negative")
    if attended > total:
        raise AttendanceOutOfRange(f"Attended classes ({attended}) exceed total classes ({total})")
    if total == 0:
        return 0.0
    return attended / total * 100


def classify(percentage: float) -> AttendanceStatus:
    # display and alerting only; never consulted by access decisions
    if percentage >= EXCELLENT_THRESHOLD:
        return AttendanceStatus.EXCELLENT
    if percentage >= SATISFACTORY_THRESHOLD:
        return AttendanceStatus.SATISFACTORY
    return AttendanceStatus.AT_RISK


def summarize(statuses: Iterable[ClassStatus | str]) -> AttendanceSummary:
    """Summarize per-class marks; late counts as half a class."""
    counts = Counter(ClassStatus(s) for s in statuses)
    total = sum(counts.values())
    effective = sum(CLASS_POINTS[s] * n for s, n in counts.items())
    percentage = round(compute_percentage(effective, total), 2)
    attended = counts[ClassStatus.PRESENT] + counts[ClassStatus.EXCUSED]
    return AttendanceSummary(
        total_classes=total,
        attended_classes=attended,
        late_classes=counts[ClassStatus.LATE],
        absent_classes=counts[ClassStatus.ABSENT],
        effective_attendance=round(effective, 1),
        percentage=percentage,
        status=classify(percentage),
    )
