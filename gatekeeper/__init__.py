# CampusGate - access decision layer
from .models import (
    Action,
    AuditEvent,
    Decision,
    EnrollmentStatus,
    OwnershipFacts,
    PolicyDecision,
    Principal,
    REASON_MESSAGES,
    ReasonCode,
    ResourceDescriptor,
    ResourceKind,
    Role,
)
from .resources import ROLE_GATES, SELF_DATA_KINDS, COURSE_SCOPED_KINDS, missing_role_gates
from .resolver import OwnershipResolver, StaticOwnershipResolver
from .audit import AuditSink
from .errors import AccessDenied, ResolverUnavailable
from .policy import AccessPolicyEngine, evaluate, owner_filter

__all__ = [
    "Action",
    "AuditEvent",
    "Decision",
    "EnrollmentStatus",
    "OwnershipFacts",
    "PolicyDecision",
    "Principal",
    "REASON_MESSAGES",
    "ReasonCode",
    "ResourceDescriptor",
    "ResourceKind",
    "Role",
    "ROLE_GATES",
    "SELF_DATA_KINDS",
    "COURSE_SCOPED_KINDS",
    "missing_role_gates",
    "OwnershipResolver",
    "StaticOwnershipResolver",
    "AuditSink",
    "AccessDenied",
    "ResolverUnavailable",
    "AccessPolicyEngine",
    "evaluate",
    "owner_filter",
]
