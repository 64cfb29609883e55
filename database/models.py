# CampusGate - database models
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, declarative_base


Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # naive UTC: DateTime columns carry no zone
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    admin = "admin"
    faculty = "faculty"
    student = "student"


class AccountStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(64), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    role = Column(String(20), nullable=False)  # admin, faculty, student
    full_name = Column(String(128), nullable=True)
    status = Column(String(20), nullable=False, default=AccountStatus.pending.value)
    approved_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class StudentProfile(Base):
    """Derived academic standing; recomputed from marks, never edited directly."""
    __tablename__ = "student_profiles"
    user_id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    cgpa = Column(Float, nullable=False, default=0.0)
    total_credits = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, default=_utcnow)

    user = relationship("User", backref="profile")


class Course(Base):
    __tablename__ = "courses"
    id = Column(String(36), primary_key=True, default=_uuid)
    code = Column(String(32), unique=True, nullable=False)
    title = Column(String(128), nullable=False)
    credits = Column(Integer, nullable=False, default=3)
    instructor_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    instructor = relationship("User", backref="courses_taught")

    def __repr__(self):
        return f"<Course(id={self.id}, code={self.code})>"


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("course_id", "student_id"),)
    id = Column(String(36), primary_key=True, default=_uuid)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active, dropped, completed
    created_at = Column(DateTime, default=_utcnow)

    course = relationship("Course", backref="enrollments")
    student = relationship("User", backref="enrollments")


class Assignment(Base):
    __tablename__ = "assignments"
    id = Column(String(36), primary_key=True, default=_uuid)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    deadline = Column(DateTime, nullable=False)
    max_submissions = Column(Integer, nullable=False, default=1)
    allow_late_submission = Column(Boolean, nullable=False, default=True)
    late_penalty = Column(Float, nullable=False, default=10.0)
    total_points = Column(Float, nullable=False, default=100.0)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    course = relationship("Course", backref="assignments")


class Submission(Base):
    __tablename__ = "submissions"
    # a second writer racing past the count check collides here
    __table_args__ = (UniqueConstraint("assignment_id", "student_id", "submission_number"),)
    id = Column(String(36), primary_key=True, default=_uuid)
    assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    submission_number = Column(Integer, nullable=False)
    submitted_at = Column(DateTime, nullable=False)
    is_late = Column(Boolean, nullable=False, default=False)
    comments = Column(Text, nullable=True)
    grade = Column(Float, nullable=True)
    final_grade = Column(Float, nullable=True)

    assignment = relationship("Assignment", backref="submissions")


class Marks(Base):
    __tablename__ = "marks"
    __table_args__ = (UniqueConstraint("student_id", "course_id"),)
    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False)
    components = Column(JSON, nullable=False, default=dict)
    total = Column(Float, nullable=False, default=0.0)
    max_total = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False, default=0.0)
    grade = Column(String(4), nullable=False, default="F")
    grade_point = Column(Integer, nullable=False, default=0)
    credits = Column(Integer, nullable=False, default=3)
    is_final = Column(Boolean, nullable=False, default=True)
    updated_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, default=_utcnow)

    course = relationship("Course", backref="marks")


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("student_id", "course_id", "subject"),)
    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False)
    subject = Column(String(100), nullable=False)
    total_classes = Column(Integer, nullable=False, default=0)
    attended_classes = Column(Integer, nullable=False, default=0)
    marked_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, default=_utcnow)

    course = relationship("Course", backref="attendance")


class Notice(Base):
    __tablename__ = "notices"
    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True)  # null: institution-wide
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=_utcnow)


class Leave(Base):
    __tablename__ = "leaves"
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    from_date = Column(DateTime, nullable=False)
    to_date = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected, cancelled
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    review_date = Column(DateTime, nullable=True)
