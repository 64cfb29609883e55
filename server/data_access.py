# CampusGate - data access (ownership lookups, write paths with derived fields)
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academics import (
    AssignmentTerms,
    GradedRecord,
    MaxSubmissionsExceeded,
    Submission as SubmissionRecord,
    compute_cgpa,
    compute_grade,
    grade_submission,
    record_submission,
    reevaluate_lateness,
)
from database.models import (
    AccountStatus,
    Assignment,
    Attendance,
    Course,
    Enrollment,
    Leave,
    Marks,
    Notice,
    StudentProfile,
    Submission,
    User,
)
from gatekeeper import EnrollmentStatus, OwnershipFacts, ResourceKind

logger = logging.getLogger(__name__)


def naive_utc(value: datetime) -> datetime:
    """Normalize to the naive-UTC form stored in DateTime columns."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# =============================================
# OWNERSHIP RESOLVER
# =============================================

class SqlOwnershipResolver:
    """OwnershipResolver over the relational store, one lookup per kind."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._lookups: dict[ResourceKind, Callable[[AsyncSession, str], Awaitable[OwnershipFacts | None]]] = {
            ResourceKind.USER_RECORD: self._user_record,
            ResourceKind.COURSE: self._course,
            ResourceKind.ASSIGNMENT: self._assignment,
            ResourceKind.SUBMISSION: self._submission,
            ResourceKind.MARKS: self._marks,
            ResourceKind.ATTENDANCE: self._attendance,
            ResourceKind.NOTICE: self._notice,
            ResourceKind.LEAVE: self._leave,
        }

    @property
    def supported_kinds(self) -> set[ResourceKind]:
        return set(self._lookups)

    async def resolve(self, kind: ResourceKind, resource_id: str) -> OwnershipFacts | None:
        lookup = self._lookups[kind]
        async with self.session_factory() as session:
            return await lookup(session, resource_id)

    async def _course_facts(self, session: AsyncSession, course_id: str, owner_id: str | None = None) -> OwnershipFacts | None:
        course = await session.get(Course, course_id)
        if course is None:
            return None
        r = await session.execute(
            select(Enrollment.student_id, Enrollment.status).where(Enrollment.course_id == course_id)
        )
        roster = {student_id: EnrollmentStatus(status) for student_id, status in r.all()}
        return OwnershipFacts(
            owner_id=owner_id,
            course_id=course.id,
            instructor_id=course.instructor_id,
            roster=roster,
        )

    async def _user_record(self, session: AsyncSession, user_id: str) -> OwnershipFacts | None:
        user = await session.get(User, user_id)
        if user is None:
            return None
        return OwnershipFacts(owner_id=user.id)

    async def _course(self, session: AsyncSession, course_id: str) -> OwnershipFacts | None:
        return await self._course_facts(session, course_id)

    async def _assignment(self, session: AsyncSession, assignment_id: str) -> OwnershipFacts | None:
        assignment = await session.get(Assignment, assignment_id)
        if assignment is None:
            return None
        return await self._course_facts(session, assignment.course_id)

    async def _submission(self, session: AsyncSession, submission_id: str) -> OwnershipFacts | None:
        r = await session.execute(
            select(Submission.student_id, Assignment.course_id)
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .where(Submission.id == submission_id)
        )
        row = r.one_or_none()
        if row is None:
            return None
        return await self._course_facts(session, row.course_id, owner_id=row.student_id)

    async def _marks(self, session: AsyncSession, marks_id: str) -> OwnershipFacts | None:
        marks = await session.get(Marks, marks_id)
        if marks is None:
            return None
        return await self._course_facts(session, marks.course_id, owner_id=marks.student_id)

    async def _attendance(self, session: AsyncSession, attendance_id: str) -> OwnershipFacts | None:
        record = await session.get(Attendance, attendance_id)
        if record is None:
            return None
        return await self._course_facts(session, record.course_id, owner_id=record.student_id)

    async def _notice(self, session: AsyncSession, notice_id: str) -> OwnershipFacts | None:
        notice = await session.get(Notice, notice_id)
        if notice is None:
            return None
        if notice.course_id is None:
            return OwnershipFacts(owner_id=notice.created_by)
        return await self._course_facts(session, notice.course_id, owner_id=notice.created_by)

    async def _leave(self, session: AsyncSession, leave_id: str) -> OwnershipFacts | None:
        leave = await session.get(Leave, leave_id)
        if leave is None:
            return None
        return OwnershipFacts(owner_id=leave.user_id)


# =============================================
# MARKS + CGPA
# =============================================

async def recompute_cgpa(session: AsyncSession, student_id: str) -> float:
    """Rebuild the derived CGPA from every finalized mark of the student."""
    r = await session.execute(
        select(Marks.grade_point, Marks.credits).where(
            Marks.student_id == student_id,
            Marks.is_final.is_(True),
        )
    )
    rows = r.all()
    cgpa = compute_cgpa(GradedRecord(grade_point=gp, credits=credits) for gp, credits in rows)
    profile = await session.get(StudentProfile, student_id)
    if profile is None:
        profile = StudentProfile(user_id=student_id)
        session.add(profile)
    profile.cgpa = cgpa
    profile.total_credits = float(sum(credits for _, credits in rows))
    profile.updated_at = naive_utc(datetime.now(timezone.utc))
    return cgpa


async def finalize_marks(
    session: AsyncSession,
    course: Course,
    student_id: str,
    components: dict[str, float],
    maxima: dict[str, float],
    updated_by: str,
) -> tuple[Marks, float]:
    """Grade the components, upsert the student's mark for the course, recompute CGPA."""
    result = compute_grade(components, maxima)
    r = await session.execute(
        select(Marks).where(Marks.student_id == student_id, Marks.course_id == course.id)
    )
    marks = r.scalar_one_or_none()
    if marks is None:
        marks = Marks(student_id=student_id, course_id=course.id)
        session.add(marks)
    marks.components = dict(components)
    marks.total = result.total
    marks.max_total = result.max_total
    marks.percentage = result.percentage
    marks.grade = result.letter
    marks.grade_point = result.grade_point
    marks.credits = course.credits
    marks.is_final = True
    marks.updated_by = updated_by
    marks.updated_at = naive_utc(datetime.now(timezone.utc))
    await session.flush()
    cgpa = await recompute_cgpa(session, student_id)
    logger.info("Marks finalized for student %s in %s: %s (cgpa %.3f)", student_id, course.code, result.letter, cgpa)
    return marks, cgpa


async def list_marks(session: AsyncSession, owner_id: str | None = None, course_id: str | None = None) -> list[Marks]:
    query = select(Marks)
    if owner_id is not None:
        query = query.where(Marks.student_id == owner_id)
    if course_id is not None:
        query = query.where(Marks.course_id == course_id)
    r = await session.execute(query.order_by(Marks.updated_at.desc()))
    return list(r.scalars().all())


# =============================================
# SUBMISSIONS
# =============================================

def assignment_terms(assignment: Assignment) -> AssignmentTerms:
    return AssignmentTerms(
        assignment_id=assignment.id,
        deadline=assignment.deadline,
        max_submissions=assignment.max_submissions,
        allow_late_submission=assignment.allow_late_submission,
        late_penalty=assignment.late_penalty,
        total_points=assignment.total_points,
    )


def _to_record(row: Submission) -> SubmissionRecord:
    return SubmissionRecord(
        student_id=row.student_id,
        assignment_id=row.assignment_id,
        submission_number=row.submission_number,
        submitted_at=row.submitted_at,
        is_late=row.is_late,
        grade=row.grade,
        final_grade=row.final_grade,
    )


async def get_assignment_for_update(session: AsyncSession, assignment_id: str) -> Assignment | None:
    r = await session.execute(select(Assignment).where(Assignment.id == assignment_id).with_for_update())
    return r.scalar_one_or_none()


async def add_submission(
    session: AsyncSession,
    assignment: Assignment,
    student_id: str,
    comments: str | None = None,
    now: datetime | None = None,
) -> Submission:
    """
    Count-then-append in the caller's transaction.

    The assignment row should be locked (get_assignment_for_update); the
    unique (assignment, student, number) constraint catches writers that
    slipped past the count anyway.
    """
    r = await session.execute(
        select(Submission).where(
            Submission.assignment_id == assignment.id,
            Submission.student_id == student_id,
        )
    )
    existing = [_to_record(row) for row in r.scalars().all()]
    record = record_submission(assignment_terms(assignment), student_id, existing, now=now)
    row = Submission(
        assignment_id=assignment.id,
        student_id=student_id,
        submission_number=record.submission_number,
        submitted_at=naive_utc(record.submitted_at),
        is_late=record.is_late,
        comments=comments,
    )
    session.add(row)
    try:
        await session.flush()
    except IntegrityError as e:
        logger.warning("Concurrent submission for %s by %s lost the race", assignment.id, student_id)
        raise MaxSubmissionsExceeded(f"Maximum {assignment.max_submissions} submission(s) allowed") from e
    return row


async def change_deadline(session: AsyncSession, assignment: Assignment, deadline: datetime) -> list[Submission]:
    """Move the deadline, recompute is_late on every submission and re-apply the late penalty to graded ones."""
    assignment.deadline = naive_utc(deadline)
    terms = assignment_terms(assignment)
    r = await session.execute(select(Submission).where(Submission.assignment_id == assignment.id))
    rows = list(r.scalars().all())
    updated = reevaluate_lateness([_to_record(row) for row in rows], assignment.deadline)
    flipped = 0
    for row, record in zip(rows, updated):
        if row.is_late != record.is_late:
            flipped += 1
        row.is_late = record.is_late
        if record.grade is not None:
            row.final_grade = grade_submission(terms, record, record.grade).final_grade
    if flipped:
        logger.info("Deadline change on %s flipped lateness of %d submission(s)", assignment.id, flipped)
    await session.flush()
    return rows


async def set_submission_grade(session: AsyncSession, submission_id: str, grade: float) -> Submission | None:
    """Store the raw grade and the final grade after any late penalty."""
    row = await session.get(Submission, submission_id)
    if row is None:
        return None
    assignment = await session.get(Assignment, row.assignment_id)
    graded = grade_submission(assignment_terms(assignment), _to_record(row), grade)
    row.grade = graded.grade
    row.final_grade = graded.final_grade
    await session.flush()
    logger.info("Submission %s graded %.2f (final %.2f)", row.id, graded.grade, graded.final_grade)
    return row


# =============================================
# APPROVALS
# =============================================

async def approve_user(session: AsyncSession, user_id: str, approver_id: str) -> User | None:
    user = await session.get(User, user_id)
    if user is None:
        return None
    user.status = AccountStatus.approved.value
    user.approved_by = approver_id
    if user.role == "student" and await session.get(StudentProfile, user.id) is None:
        session.add(StudentProfile(user_id=user.id))
    await session.flush()
    return user


async def review_leave(session: AsyncSession, leave_id: str, reviewer_id: str, approved: bool) -> Leave | None:
    leave = await session.get(Leave, leave_id)
    if leave is None:
        return None
    leave.status = "approved" if approved else "rejected"
    leave.reviewed_by = reviewer_id
    leave.review_date = naive_utc(datetime.now(timezone.utc))
    await session.flush()
    return leave
