# CampusGate - access control protocol objects
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "admin"
    FACULTY = "faculty"
    STUDENT = "student"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"


class ResourceKind(str, Enum):
    USER_RECORD = "user_record"
    COURSE = "course"
    ASSIGNMENT = "assignment"
    SUBMISSION = "submission"
    MARKS = "marks"
    ATTENDANCE = "attendance"
    NOTICE = "notice"
    LEAVE = "leave"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    DROPPED = "dropped"
    COMPLETED = "completed"


# --- Principal (who is asking) ---
class Principal(BaseModel):
    """Authenticated identity for one request. Never persisted."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Opaque user identifier")
    role: Role


# --- Resource Descriptor (what is being accessed) ---
class ResourceDescriptor(BaseModel):
    """
    Storage-independent description of the target of a request.

    owner_id is informational only: ownership decisions use resolver facts.
    course_id names the target course for requests without an id (create, list).
    """
    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    id: str | None = None
    owner_id: str | None = None
    course_id: str | None = None


# --- Ownership facts (from the resolver) ---
class OwnershipFacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner_id: str | None = None
    course_id: str | None = None
    instructor_id: str | None = None
    roster: dict[str, EnrollmentStatus] = Field(default_factory=dict)

    def is_enrolled(self, student_id: str) -> bool:
        return self.roster.get(student_id) == EnrollmentStatus.ACTIVE

    @property
    def enrolled_student_ids(self) -> set[str]:
        return {sid for sid, status in self.roster.items() if status == EnrollmentStatus.ACTIVE}


# --- Policy decision ---
class ReasonCode(str, Enum):
    # Values are published to audit logs and support tooling; never change them.
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    DATA_ACCESS_VIOLATION = "DATA_ACCESS_VIOLATION"
    COURSE_ACCESS_DENIED = "COURSE_ACCESS_DENIED"
    COURSE_OWNERSHIP_DENIED = "COURSE_OWNERSHIP_DENIED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    NO_MATCHING_RULE = "NO_MATCHING_RULE"
    RESOLVER_TIMEOUT = "RESOLVER_TIMEOUT"
    AUTHOR_OWNERSHIP_DENIED = "AUTHOR_OWNERSHIP_DENIED"


REASON_MESSAGES: dict[ReasonCode, str] = {
    ReasonCode.AUTH_REQUIRED: "Authentication required. Please login first.",
    ReasonCode.INSUFFICIENT_PERMISSIONS: "Access denied. Your role is not permitted to perform this action.",
    ReasonCode.DATA_ACCESS_VIOLATION: "Access denied. Students can only access their own data.",
    ReasonCode.COURSE_ACCESS_DENIED: "Access denied. You must be enrolled in this course.",
    ReasonCode.COURSE_OWNERSHIP_DENIED: "Access denied. You can only modify courses you teach.",
    ReasonCode.RESOURCE_NOT_FOUND: "Resource not found.",
    ReasonCode.NO_MATCHING_RULE: "Access denied. No policy rule covers this request.",
    ReasonCode.RESOLVER_TIMEOUT: "Access check timed out. Please retry.",
    ReasonCode.AUTHOR_OWNERSHIP_DENIED: "Access denied. Only the author or an admin can change this record.",
}


class PolicyDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: PolicyDecision
    reason: ReasonCode | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(decision=PolicyDecision.ALLOW)

    @classmethod
    def deny(cls, reason: ReasonCode) -> "Decision":
        return cls(decision=PolicyDecision.DENY, reason=reason)

    @property
    def allowed(self) -> bool:
        return self.decision == PolicyDecision.ALLOW

    @property
    def message(self) -> str:
        if self.reason is None:
            return "ok"
        return REASON_MESSAGES[self.reason]


# --- Audit event (every denial, every approval) ---
class AuditEvent(BaseModel):
    trace_id: str
    user_id: str | None = None
    role: str | None = None
    action: Action
    resource_kind: ResourceKind
    resource_id: str | None = None
    course_id: str | None = None
    policy_decision: PolicyDecision
    reason: ReasonCode | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    details: dict[str, Any] = Field(default_factory=dict)
