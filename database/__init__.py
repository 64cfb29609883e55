# CampusGate database
from .models import (
    Base,
    User,
    StudentProfile,
    Course,
    Enrollment,
    Assignment,
    Submission,
    Marks,
    Attendance,
    Notice,
    Leave,
    Role,
    AccountStatus,
)
from .database import get_db, init_db, get_sessionmaker

__all__ = [
    "Base",
    "User",
    "StudentProfile",
    "Course",
    "Enrollment",
    "Assignment",
    "Submission",
    "Marks",
    "Attendance",
    "Notice",
    "Leave",
    "Role",
    "AccountStatus",
    "get_db",
    "init_db",
    "get_sessionmaker",
]
