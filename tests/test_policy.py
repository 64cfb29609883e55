"""
Access policy engine: gate order, reason codes, audit side effects.
"""

import asyncio
import logging

import pytest

from gatekeeper import (
    AccessDenied,
    AccessPolicyEngine,
    Action,
    EnrollmentStatus,
    OwnershipFacts,
    PolicyDecision,
    ROLE_GATES,
    ReasonCode,
    ResolverUnavailable,
    ResourceDescriptor,
    ResourceKind,
    evaluate,
    missing_role_gates,
    owner_filter,
)
from gatekeeper.policy import lookup_key

from conftest import ADMIN, FACULTY, OTHER_FACULTY, OTHER_STUDENT, STUDENT, course_facts


def res(kind: ResourceKind, id: str | None = None, course_id: str | None = None) -> ResourceDescriptor:
    return ResourceDescriptor(kind=kind, id=id, course_id=course_id)


# ============================================================================
# Gate order
# ============================================================================

async def test_unauthenticated_is_denied_and_audited(engine, audit_sink):
    decision = await engine.decide(None, Action.READ, res(ResourceKind.COURSE, "course-1"))

    assert decision.reason == ReasonCode.AUTH_REQUIRED
    audit_sink.flush()
    [entry] = audit_sink.recent()
    assert entry["reason"] == "AUTH_REQUIRED"
    assert entry["user_id"] is None


@pytest.mark.parametrize("action", list(Action))
@pytest.mark.parametrize("kind", list(ResourceKind))
async def test_admin_is_allowed_everything_without_lookups(engine, resolver, action, kind):
    decision = await engine.decide(ADMIN, action, res(kind, "anything"))

    assert decision.allowed
    assert resolver.calls == []


async def test_role_gate_rejects_student_notice_creation(engine, resolver):
    decision = await engine.decide(STUDENT, Action.CREATE, res(ResourceKind.NOTICE))

    assert decision.reason == ReasonCode.INSUFFICIENT_PERMISSIONS
    assert resolver.calls == []


@pytest.mark.parametrize("principal", [FACULTY, STUDENT])
@pytest.mark.parametrize("kind", [ResourceKind.USER_RECORD, ResourceKind.LEAVE])
async def test_only_admin_may_approve(engine, principal, kind):
    decision = await engine.decide(principal, Action.APPROVE, res(kind, "leave-1"))

    assert decision.reason == ReasonCode.INSUFFICIENT_PERMISSIONS


def test_role_gate_table_covers_every_pair():
    assert missing_role_gates() == []


# ============================================================================
# Self-data gate
# ============================================================================

async def test_student_reads_own_marks(engine):
    decision = await engine.decide(STUDENT, Action.READ, res(ResourceKind.MARKS, "marks-1"))

    assert decision.allowed


@pytest.mark.parametrize("kind,resource_id", [
    (ResourceKind.MARKS, "marks-2"),
    (ResourceKind.USER_RECORD, "student-2"),
])
async def test_student_cannot_read_someone_elses_record(engine, kind, resource_id):
    decision = await engine.decide(STUDENT, Action.READ, res(kind, resource_id))

    assert decision.reason == ReasonCode.DATA_ACCESS_VIOLATION


async def test_caller_supplied_owner_is_ignored(engine):
    claimed = ResourceDescriptor(kind=ResourceKind.MARKS, id="marks-2", owner_id=STUDENT.user_id)

    decision = await engine.decide(STUDENT, Action.READ, claimed)

    assert decision.reason == ReasonCode.DATA_ACCESS_VIOLATION


@pytest.mark.parametrize("resource_id", ["missing", "leave-orphan"])
async def test_unresolvable_or_ownerless_record_is_not_found(engine, resource_id):
    decision = await engine.decide(STUDENT, Action.READ, res(ResourceKind.LEAVE, resource_id))

    assert decision.reason == ReasonCode.RESOURCE_NOT_FOUND


@pytest.mark.parametrize("action,kind", [
    (Action.UPDATE, ResourceKind.LEAVE),
    (Action.DELETE, ResourceKind.LEAVE),
    (Action.UPDATE, ResourceKind.USER_RECORD),
])
async def test_student_change_without_record_id_is_not_found(engine, resolver, action, kind):
    decision = await engine.decide(STUDENT, action, res(kind))

    assert decision.reason == ReasonCode.RESOURCE_NOT_FOUND
    assert resolver.calls == []


async def test_student_files_new_leave_without_id(engine):
    assert (await engine.decide(STUDENT, Action.CREATE, res(ResourceKind.LEAVE))).allowed


async def test_listing_own_records_needs_no_lookup(engine, resolver):
    decision = await engine.decide(STUDENT, Action.READ, res(ResourceKind.MARKS))

    assert decision.allowed
    assert resolver.calls == []
    assert owner_filter(STUDENT) == STUDENT.user_id
    assert owner_filter(FACULTY) is None


# ============================================================================
# Course-enrollment gate
# ============================================================================

async def test_enrolled_student_reads_course(engine):
    assert (await engine.decide(STUDENT, Action.READ, res(ResourceKind.COURSE, "course-1"))).allowed


async def test_dropped_student_loses_course_access(engine):
    decision = await engine.decide(OTHER_STUDENT, Action.READ, res(ResourceKind.ASSIGNMENT, "assignment-1"))

    assert decision.reason == ReasonCode.COURSE_ACCESS_DENIED


def test_own_record_in_dropped_course_is_denied():
    facts = course_facts(owner_id=OTHER_STUDENT.user_id)

    decision = evaluate(OTHER_STUDENT, Action.READ, res(ResourceKind.MARKS, "marks-x"), facts)

    assert decision.reason == ReasonCode.COURSE_ACCESS_DENIED


def test_completed_student_lists_but_cannot_open_own_mark():
    facts = OwnershipFacts(
        owner_id=STUDENT.user_id,
        course_id="course-9",
        instructor_id=FACULTY.user_id,
        roster={STUDENT.user_id: EnrollmentStatus.COMPLETED},
    )

    by_id = evaluate(STUDENT, Action.READ, res(ResourceKind.MARKS, "marks-9"), facts)
    listing = evaluate(STUDENT, Action.READ, res(ResourceKind.MARKS))

    assert by_id.reason == ReasonCode.COURSE_ACCESS_DENIED
    assert listing.allowed


async def test_submission_create_checks_target_course_roster(engine, resolver):
    ok = await engine.decide(STUDENT, Action.CREATE, res(ResourceKind.SUBMISSION, course_id="course-1"))
    denied = await engine.decide(OTHER_STUDENT, Action.CREATE, res(ResourceKind.SUBMISSION, course_id="course-1"))

    assert ok.allowed
    assert denied.reason == ReasonCode.COURSE_ACCESS_DENIED
    assert resolver.calls == [(ResourceKind.COURSE, "course-1"), (ResourceKind.COURSE, "course-1")]


async def test_general_notice_is_public_course_notice_is_not(engine):
    general = await engine.decide(OTHER_STUDENT, Action.READ, res(ResourceKind.NOTICE, "notice-general"))
    course = await engine.decide(OTHER_STUDENT, Action.READ, res(ResourceKind.NOTICE, "notice-course"))

    assert general.allowed
    assert course.reason == ReasonCode.COURSE_ACCESS_DENIED


# ============================================================================
# Instructor-ownership gate
# ============================================================================

async def test_instructor_updates_own_course_assignment(engine):
    assert (await engine.decide(FACULTY, Action.UPDATE, res(ResourceKind.ASSIGNMENT, "assignment-1"))).allowed


@pytest.mark.parametrize("kind,resource_id", [
    (ResourceKind.COURSE, "course-1"),
    (ResourceKind.ASSIGNMENT, "assignment-1"),
])
async def test_faculty_cannot_update_course_they_do_not_teach(engine, audit_sink, kind, resource_id):
    decision = await engine.decide(OTHER_FACULTY, Action.UPDATE, res(kind, resource_id))

    assert decision.reason == ReasonCode.COURSE_OWNERSHIP_DENIED
    audit_sink.flush()
    [entry] = audit_sink.recent()
    assert entry["reason"] == "COURSE_OWNERSHIP_DENIED"
    assert entry["user_id"] == OTHER_FACULTY.user_id
    assert entry["resource_kind"] == kind.value
    assert entry["resource_id"] == resource_id
    assert entry["policy_decision"] == "deny"


@pytest.mark.parametrize("action", [Action.UPDATE, Action.DELETE])
async def test_only_the_author_changes_a_notice(engine, audit_sink, action):
    decision = await engine.decide(OTHER_FACULTY, action, res(ResourceKind.NOTICE, "notice-general"))

    assert decision.reason == ReasonCode.AUTHOR_OWNERSHIP_DENIED
    audit_sink.flush()
    assert audit_sink.recent()[-1]["reason"] == "AUTHOR_OWNERSHIP_DENIED"


async def test_author_changes_own_notices(engine):
    general = await engine.decide(FACULTY, Action.UPDATE, res(ResourceKind.NOTICE, "notice-general"))
    course = await engine.decide(FACULTY, Action.DELETE, res(ResourceKind.NOTICE, "notice-course"))

    assert general.allowed
    assert course.allowed


async def test_notice_change_needs_a_resolvable_notice(engine):
    no_id = await engine.decide(FACULTY, Action.UPDATE, res(ResourceKind.NOTICE))
    unknown = await engine.decide(FACULTY, Action.DELETE, res(ResourceKind.NOTICE, "missing"))

    assert no_id.reason == ReasonCode.RESOURCE_NOT_FOUND
    assert unknown.reason == ReasonCode.RESOURCE_NOT_FOUND


def test_course_instructor_cannot_change_someone_elses_course_notice():
    facts = course_facts(owner_id=ADMIN.user_id)

    decision = evaluate(FACULTY, Action.UPDATE, res(ResourceKind.NOTICE, "notice-x"), facts)

    assert decision.reason == ReasonCode.AUTHOR_OWNERSHIP_DENIED


async def test_faculty_reads_any_course_data(engine, resolver):
    decision = await engine.decide(OTHER_FACULTY, Action.READ, res(ResourceKind.MARKS, "marks-1"))

    assert decision.allowed
    assert resolver.calls == []


async def test_faculty_create_without_course_is_not_found(engine):
    missing = await engine.decide(FACULTY, Action.CREATE, res(ResourceKind.MARKS))
    unknown = await engine.decide(FACULTY, Action.CREATE, res(ResourceKind.MARKS, course_id="nope"))

    assert missing.reason == ReasonCode.RESOURCE_NOT_FOUND
    assert unknown.reason == ReasonCode.RESOURCE_NOT_FOUND


# ============================================================================
# Failure semantics
# ============================================================================

class SlowResolver:
    async def resolve(self, kind, resource_id):
        await asyncio.sleep(5)
        return OwnershipFacts(owner_id="never")


class BrokenResolver:
    async def resolve(self, kind, resource_id):
        raise ConnectionError("store unreachable")


async def test_resolver_timeout_denies(audit_sink):
    engine = AccessPolicyEngine(SlowResolver(), audit_sink, timeout_seconds=0.01)

    decision = await engine.decide(STUDENT, Action.READ, res(ResourceKind.MARKS, "marks-1"))

    assert decision.reason == ReasonCode.RESOLVER_TIMEOUT
    audit_sink.flush()
    assert audit_sink.recent()[-1]["reason"] == "RESOLVER_TIMEOUT"


async def test_unreachable_resolver_is_a_hard_failure(audit_sink):
    engine = AccessPolicyEngine(BrokenResolver(), audit_sink)

    with pytest.raises(ResolverUnavailable):
        await engine.decide(STUDENT, Action.READ, res(ResourceKind.MARKS, "marks-1"))


async def test_missing_rule_fails_closed_and_logs_error(resolver, audit_sink, caplog):
    gates = dict(ROLE_GATES)
    del gates[(Action.READ, ResourceKind.COURSE)]
    engine = AccessPolicyEngine(resolver, audit_sink, gates=gates)

    with caplog.at_level(logging.ERROR, logger="gatekeeper.policy"):
        decision = await engine.decide(STUDENT, Action.READ, res(ResourceKind.COURSE, "course-1"))

    assert decision.reason == ReasonCode.NO_MATCHING_RULE
    assert "No policy rule" in caplog.text


# ============================================================================
# Audit policy and determinism
# ============================================================================

async def test_allowed_reads_are_not_audited(engine, audit_sink):
    await engine.decide(STUDENT, Action.READ, res(ResourceKind.COURSE, "course-1"))

    audit_sink.flush()
    assert audit_sink.recent() == []


async def test_allowed_approval_is_audited(engine, audit_sink):
    await engine.decide(ADMIN, Action.APPROVE, res(ResourceKind.USER_RECORD, "student-3"))

    audit_sink.flush()
    [entry] = audit_sink.recent()
    assert entry["policy_decision"] == PolicyDecision.ALLOW.value
    assert entry["action"] == "approve"


async def test_require_raises_access_denied(engine):
    with pytest.raises(AccessDenied) as exc:
        await engine.require(STUDENT, Action.READ, res(ResourceKind.MARKS, "marks-2"))

    assert exc.value.reason == ReasonCode.DATA_ACCESS_VIOLATION


async def test_decide_is_deterministic(engine):
    target = res(ResourceKind.ATTENDANCE, "attendance-1")

    first = await engine.decide(OTHER_STUDENT, Action.READ, target)
    second = await engine.decide(OTHER_STUDENT, Action.READ, target)

    assert first == second


def test_lookup_key_prefers_resource_over_course():
    assert lookup_key(res(ResourceKind.MARKS, "m", "c")) == (ResourceKind.MARKS, "m")
    assert lookup_key(res(ResourceKind.MARKS, course_id="c")) == (ResourceKind.COURSE, "c")
    assert lookup_key(res(ResourceKind.MARKS)) is None
