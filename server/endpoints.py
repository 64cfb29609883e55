"""
Academic records API.

Every route follows the same shape: principal -> resource descriptor ->
policy decision -> data access. Denials raise AccessDenied and are turned
into uniform responses by the handlers registered in main.py.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics import DEFAULT_MAXIMA, classify, compute_percentage
from auth import require_principal
from database.database import get_db
from database.models import Assignment, Attendance, Course, Enrollment, Marks, Notice, StudentProfile, User
from gatekeeper import AccessPolicyEngine, Action, EnrollmentStatus, Principal, ResourceDescriptor, ResourceKind, Role, owner_filter
from server import data_access

router = APIRouter(prefix="/api")


def get_policy_engine(request: Request) -> AccessPolicyEngine:
    return request.app.state.policy_engine


def _trace_id(request: Request) -> str | None:
    return request.headers.get("X-Request-ID")


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"success": False, "code": "RESOURCE_NOT_FOUND", "message": f"{what} not found."})


async def _require_on_roster(session: AsyncSession, course_id: str, student_id: str) -> None:
    """Marks and attendance may only be recorded for students on the roster (active or completed)."""
    r = await session.execute(
        select(Enrollment.status).where(Enrollment.course_id == course_id, Enrollment.student_id == student_id)
    )
    status = r.scalar_one_or_none()
    if status is None or status == EnrollmentStatus.DROPPED.value:
        raise HTTPException(status_code=422, detail="Student is not enrolled in this course")


# ============ REQUEST BODIES ============

class MarksIn(BaseModel):
    student_id: str
    components: dict[str, float]
    maxima: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_MAXIMA))


class AttendanceIn(BaseModel):
    student_id: str
    subject: str = Field(..., min_length=1, max_length=100)
    total_classes: int
    attended_classes: int


class SubmissionIn(BaseModel):
    comments: str | None = Field(default=None, max_length=1000)


class AssignmentPatch(BaseModel):
    title: str | None = None
    deadline: datetime | None = None
    max_submissions: int | None = Field(default=None, ge=1)


class NoticeIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str
    course_id: str | None = None


class NoticePatch(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    body: str | None = None


class GradeIn(BaseModel):
    grade: float


class LeaveReview(BaseModel):
    approved: bool = True


# ============ SERIALIZERS ============

def _marks_out(m: Marks) -> dict:
    return {
        "id": m.id,
        "student_id": m.student_id,
        "course_id": m.course_id,
        "components": m.components,
        "total": m.total,
        "max_total": m.max_total,
        "percentage": m.percentage,
        "grade": m.grade,
        "grade_point": m.grade_point,
        "credits": m.credits,
    }


def _attendance_out(a: Attendance) -> dict:
    percentage = compute_percentage(a.attended_classes, a.total_classes)
    return {
        "id": a.id,
        "student_id": a.student_id,
        "course_id": a.course_id,
        "subject": a.subject,
        "total_classes": a.total_classes,
        "attended_classes": a.attended_classes,
        "percentage": round(percentage, 2),
        "status": classify(percentage).value,
    }


# ============ USERS & REGISTRATION ============

@router.post("/registrations/{user_id}/approve")
async def approve_registration(
    user_id: str,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.APPROVE, ResourceDescriptor(kind=ResourceKind.USER_RECORD, id=user_id), _trace_id(request))
    user = await data_access.approve_user(session, user_id, principal.user_id)
    if user is None:
        raise _not_found("User")
    await session.commit()
    return {"success": True, "user_id": user.id, "status": user.status}


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.READ, ResourceDescriptor(kind=ResourceKind.USER_RECORD, id=user_id), _trace_id(request))
    user = await session.get(User, user_id)
    if user is None:
        raise _not_found("User")
    out = {"id": user.id, "username": user.username, "role": user.role, "full_name": user.full_name, "status": user.status}
    if user.role == Role.STUDENT.value:
        profile = await session.get(StudentProfile, user.id)
        out["cgpa"] = profile.cgpa if profile else 0.0
        out["total_credits"] = profile.total_credits if profile else 0.0
    return out


# ============ COURSES ============

@router.get("/courses/{course_id}")
async def get_course(
    course_id: str,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.READ, ResourceDescriptor(kind=ResourceKind.COURSE, id=course_id), _trace_id(request))
    course = await session.get(Course, course_id)
    if course is None:
        raise _not_found("Course")
    return {"id": course.id, "code": course.code, "title": course.title, "credits": course.credits, "instructor_id": course.instructor_id}


# ============ MARKS ============

@router.post("/courses/{course_id}/marks")
async def upload_marks(
    course_id: str,
    body: MarksIn,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.CREATE, ResourceDescriptor(kind=ResourceKind.MARKS, course_id=course_id), _trace_id(request))
    course = await session.get(Course, course_id)
    if course is None:
        raise _not_found("Course")
    await _require_on_roster(session, course_id, body.student_id)
    marks, cgpa = await data_access.finalize_marks(session, course, body.student_id, body.components, body.maxima, principal.user_id)
    await session.commit()
    return {"success": True, "marks": _marks_out(marks), "cgpa": cgpa}


@router.get("/marks")
async def list_marks(
    request: Request,
    course_id: str | None = None,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.READ, ResourceDescriptor(kind=ResourceKind.MARKS, course_id=course_id), _trace_id(request))
    rows = await data_access.list_marks(session, owner_id=owner_filter(principal), course_id=course_id)
    return {"marks": [_marks_out(m) for m in rows]}


@router.get("/marks/{marks_id}")
async def get_marks(
    marks_id: str,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.READ, ResourceDescriptor(kind=ResourceKind.MARKS, id=marks_id), _trace_id(request))
    marks = await session.get(Marks, marks_id)
    if marks is None:
        raise _not_found("Marks")
    return _marks_out(marks)


# ============ ATTENDANCE ============

@router.post("/courses/{course_id}/attendance")
async def upload_attendance(
    course_id: str,
    body: AttendanceIn,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.CREATE, ResourceDescriptor(kind=ResourceKind.ATTENDANCE, course_id=course_id), _trace_id(request))
    if await session.get(Course, course_id) is None:
        raise _not_found("Course")
    await _require_on_roster(session, course_id, body.student_id)
    # validates 0 <= attended <= total before anything is stored
    compute_percentage(body.attended_classes, body.total_classes)
    r = await session.execute(
        select(Attendance).where(
            Attendance.student_id == body.student_id,
            Attendance.course_id == course_id,
            Attendance.subject == body.subject,
        )
    )
    record = r.scalar_one_or_none()
    if record is None:
        record = Attendance(student_id=body.student_id, course_id=course_id, subject=body.subject)
        session.add(record)
    record.total_classes = body.total_classes
    record.attended_classes = body.attended_classes
    record.marked_by = principal.user_id
    await session.commit()
    return {"success": True, "attendance": _attendance_out(record)}


@router.get("/attendance/{attendance_id}")
async def get_attendance(
    attendance_id: str,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.READ, ResourceDescriptor(kind=ResourceKind.ATTENDANCE, id=attendance_id), _trace_id(request))
    record = await session.get(Attendance, attendance_id)
    if record is None:
        raise _not_found("Attendance")
    return _attendance_out(record)


# ============ ASSIGNMENTS & SUBMISSIONS ============

@router.post("/assignments/{assignment_id}/submissions")
async def submit_assignment(
    assignment_id: str,
    body: SubmissionIn,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    assignment = await session.get(Assignment, assignment_id)
    course_id = assignment.course_id if assignment else None
    await engine.require(
        principal,
        Action.CREATE,
        ResourceDescriptor(kind=ResourceKind.SUBMISSION, owner_id=principal.user_id if principal else None, course_id=course_id),
        _trace_id(request),
    )
    assignment = await data_access.get_assignment_for_update(session, assignment_id)
    if assignment is None:
        raise _not_found("Assignment")
    row = await data_access.add_submission(session, assignment, principal.user_id, comments=body.comments)
    await session.commit()
    return {
        "success": True,
        "submission": {
            "id": row.id,
            "assignment_id": row.assignment_id,
            "student_id": row.student_id,
            "submission_number": row.submission_number,
            "submitted_at": row.submitted_at.isoformat(),
            "is_late": row.is_late,
        },
    }


@router.patch("/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    body: AssignmentPatch,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.UPDATE, ResourceDescriptor(kind=ResourceKind.ASSIGNMENT, id=assignment_id), _trace_id(request))
    assignment = await data_access.get_assignment_for_update(session, assignment_id)
    if assignment is None:
        raise _not_found("Assignment")
    if body.title is not None:
        assignment.title = body.title
    if body.max_submissions is not None:
        assignment.max_submissions = body.max_submissions
    submissions = []
    if body.deadline is not None:
        submissions = await data_access.change_deadline(session, assignment, body.deadline)
    await session.commit()
    return {
        "success": True,
        "assignment": {
            "id": assignment.id,
            "title": assignment.title,
            "deadline": assignment.deadline.isoformat(),
            "max_submissions": assignment.max_submissions,
        },
        "submissions": [
            {"id": s.id, "student_id": s.student_id, "is_late": s.is_late, "final_grade": s.final_grade}
            for s in submissions
        ],
    }


@router.patch("/submissions/{submission_id}/grade")
async def grade_submission(
    submission_id: str,
    body: GradeIn,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    """Grade a submission; late work loses the assignment's late penalty."""
    await engine.require(principal, Action.UPDATE, ResourceDescriptor(kind=ResourceKind.SUBMISSION, id=submission_id), _trace_id(request))
    row = await data_access.set_submission_grade(session, submission_id, body.grade)
    if row is None:
        raise _not_found("Submission")
    await session.commit()
    return {
        "success": True,
        "submission": {"id": row.id, "is_late": row.is_late, "grade": row.grade, "final_grade": row.final_grade},
    }


# ============ NOTICES & LEAVES ============

@router.post("/notices")
async def create_notice(
    body: NoticeIn,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.CREATE, ResourceDescriptor(kind=ResourceKind.NOTICE, course_id=body.course_id), _trace_id(request))
    if body.course_id is not None and await session.get(Course, body.course_id) is None:
        raise _not_found("Course")
    notice = Notice(title=body.title, body=body.body, course_id=body.course_id, created_by=principal.user_id)
    session.add(notice)
    await session.commit()
    return {"success": True, "notice": {"id": notice.id, "title": notice.title, "course_id": notice.course_id}}


@router.patch("/notices/{notice_id}")
async def update_notice(
    notice_id: str,
    body: NoticePatch,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.UPDATE, ResourceDescriptor(kind=ResourceKind.NOTICE, id=notice_id), _trace_id(request))
    notice = await session.get(Notice, notice_id)
    if notice is None:
        raise _not_found("Notice")
    if body.title is not None:
        notice.title = body.title
    if body.body is not None:
        notice.body = body.body
    await session.commit()
    return {"success": True, "notice": {"id": notice.id, "title": notice.title, "course_id": notice.course_id}}


@router.delete("/notices/{notice_id}")
async def delete_notice(
    notice_id: str,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.DELETE, ResourceDescriptor(kind=ResourceKind.NOTICE, id=notice_id), _trace_id(request))
    notice = await session.get(Notice, notice_id)
    if notice is None:
        raise _not_found("Notice")
    await session.delete(notice)
    await session.commit()
    return {"success": True, "notice_id": notice_id}


@router.post("/leaves/{leave_id}/approve")
async def review_leave(
    leave_id: str,
    body: LeaveReview,
    request: Request,
    principal: Principal | None = Depends(require_principal),
    engine: AccessPolicyEngine = Depends(get_policy_engine),
    session: AsyncSession = Depends(get_db),
):
    await engine.require(principal, Action.APPROVE, ResourceDescriptor(kind=ResourceKind.LEAVE, id=leave_id), _trace_id(request))
    leave = await data_access.review_leave(session, leave_id, principal.user_id, body.approved)
    if leave is None:
        raise _not_found("Leave")
    await session.commit()
    return {"success": True, "leave_id": leave.id, "status": leave.status}


# ============ AUDIT ============

@router.get("/audit/sample")
async def audit_sample(request: Request, limit: int = 20, principal: Principal | None = Depends(require_principal)):
    """Recent audit events (admin only; entries carry ids, never record contents)."""
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if principal.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="Admin only")
    sink = request.app.state.audit_sink
    return {"entries": sink.recent(limit)}
