"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from database import database as db
from database.models import Assignment, Attendance, Course, Enrollment, Leave, Marks, Notice, User
from gatekeeper import (
    AccessPolicyEngine,
    AuditSink,
    EnrollmentStatus,
    OwnershipFacts,
    Principal,
    ResourceKind,
    Role,
    StaticOwnershipResolver,
)


# ============================================================================
# Principals
# ============================================================================

ADMIN = Principal(user_id="admin-1", role=Role.ADMIN)
FACULTY = Principal(user_id="faculty-1", role=Role.FACULTY)
OTHER_FACULTY = Principal(user_id="faculty-2", role=Role.FACULTY)
STUDENT = Principal(user_id="student-1", role=Role.STUDENT)
OTHER_STUDENT = Principal(user_id="student-2", role=Role.STUDENT)


def course_facts(owner_id: str | None = None) -> OwnershipFacts:
    """course-1: taught by faculty-1; student-1 active, student-2 dropped."""
    return OwnershipFacts(
        owner_id=owner_id,
        course_id="course-1",
        instructor_id=FACULTY.user_id,
        roster={
            STUDENT.user_id: EnrollmentStatus.ACTIVE,
            OTHER_STUDENT.user_id: EnrollmentStatus.DROPPED,
        },
    )


@pytest.fixture
def resolver() -> StaticOwnershipResolver:
    r = StaticOwnershipResolver()
    r.add(ResourceKind.COURSE, "course-1", course_facts())
    r.add(ResourceKind.ASSIGNMENT, "assignment-1", course_facts())
    r.add(ResourceKind.MARKS, "marks-1", course_facts(owner_id=STUDENT.user_id))
    r.add(ResourceKind.MARKS, "marks-2", course_facts(owner_id=OTHER_STUDENT.user_id))
    r.add(ResourceKind.ATTENDANCE, "attendance-1", course_facts(owner_id=STUDENT.user_id))
    r.add(ResourceKind.SUBMISSION, "submission-1", course_facts(owner_id=STUDENT.user_id))
    r.add(ResourceKind.USER_RECORD, STUDENT.user_id, OwnershipFacts(owner_id=STUDENT.user_id))
    r.add(ResourceKind.USER_RECORD, OTHER_STUDENT.user_id, OwnershipFacts(owner_id=OTHER_STUDENT.user_id))
    r.add(ResourceKind.LEAVE, "leave-1", OwnershipFacts(owner_id=STUDENT.user_id))
    r.add(ResourceKind.LEAVE, "leave-orphan", OwnershipFacts(owner_id=None))
    r.add(ResourceKind.NOTICE, "notice-general", OwnershipFacts(owner_id=FACULTY.user_id))
    r.add(ResourceKind.NOTICE, "notice-course", course_facts(owner_id=FACULTY.user_id))
    return r


@pytest.fixture
def audit_sink():
    sink = AuditSink()
    yield sink
    sink.stop()


@pytest.fixture
def engine(resolver, audit_sink) -> AccessPolicyEngine:
    return AccessPolicyEngine(resolver, audit_sink, timeout_seconds=1.0)


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def session_factory(tmp_path):
    await db.init_db(f"sqlite+aiosqlite:///{tmp_path / 'campusgate-test.db'}")
    yield db.get_sessionmaker()
    await db.dispose_db()


@pytest.fixture
async def seeded(session_factory):
    """Small fixed data set with predictable ids."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    async with session_factory() as session:
        session.add_all([
            User(id=ADMIN.user_id, username="admin", password_hash="x", role="admin", status="approved"),
            User(id=FACULTY.user_id, username="faculty1", password_hash="x", role="faculty", status="approved"),
            User(id=OTHER_FACULTY.user_id, username="faculty2", password_hash="x", role="faculty", status="approved"),
            User(id=STUDENT.user_id, username="student1", password_hash="x", role="student", status="approved"),
            User(id=OTHER_STUDENT.user_id, username="student2", password_hash="x", role="student", status="approved"),
            User(id="student-3", username="student3", password_hash="x", role="student", status="pending"),
        ])
        await session.flush()
        session.add_all([
            Course(id="course-1", code="CS101", title="Programming", credits=4, instructor_id=FACULTY.user_id),
            Course(id="course-2", code="CS102", title="Data Structures", credits=2, instructor_id=OTHER_FACULTY.user_id),
        ])
        await session.flush()
        session.add_all([
            Enrollment(course_id="course-1", student_id=STUDENT.user_id, status="active"),
            Enrollment(course_id="course-1", student_id=OTHER_STUDENT.user_id, status="dropped"),
            Enrollment(course_id="course-2", student_id=STUDENT.user_id, status="active"),
            Enrollment(course_id="course-2", student_id=OTHER_STUDENT.user_id, status="active"),
        ])
        session.add_all([
            Assignment(id="assignment-1", course_id="course-1", title="Loops",
                       deadline=now + timedelta(days=1), max_submissions=3),
            Assignment(id="assignment-closed", course_id="course-1", title="Closed",
                       deadline=now - timedelta(days=1), allow_late_submission=False),
            Marks(id="marks-2", student_id=OTHER_STUDENT.user_id, course_id="course-2", max_total=75,
                  total=60, percentage=80.0, grade="A", grade_point=9, credits=2),
            Attendance(id="attendance-1", student_id=STUDENT.user_id, course_id="course-1",
                       subject="Lab", total_classes=20, attended_classes=19),
            Notice(id="notice-general", title="Holiday", body="Closed Monday", created_by=ADMIN.user_id),
            Leave(id="leave-1", user_id=STUDENT.user_id, leave_type="medical", reason="Fever",
                  from_date=now, to_date=now + timedelta(days=1)),
        ])
        await session.commit()
    return session_factory
