# CampusGate - policy enforcement (auth > admin > role > self-data > enrollment > author > instructor)
import asyncio
import logging
import uuid

from .audit import AuditSink
from .errors import AccessDenied, ResolverUnavailable
from .models import (
    Action,
    AuditEvent,
    Decision,
    OwnershipFacts,
    Principal,
    ReasonCode,
    ResourceDescriptor,
    ResourceKind,
    Role,
)
from .resolver import OwnershipResolver
from .resources import (
    AUTHOR_ACTIONS,
    AUTHORED_KINDS,
    COLLECTION_ACTIONS,
    COURSE_SCOPED_KINDS,
    MUTATING_ACTIONS,
    OPTIONALLY_COURSE_SCOPED_KINDS,
    ROLE_GATES,
    SELF_DATA_KINDS,
)

logger = logging.getLogger(__name__)

RoleGates = dict[tuple[Action, ResourceKind], frozenset[Role]]


def _role_gate(principal: Principal, action: Action, resource: ResourceDescriptor, gates: RoleGates) -> Decision | None:
    permitted = gates.get((action, resource.kind))
    if permitted is None:
        return Decision.deny(ReasonCode.NO_MATCHING_RULE)
    if principal.role not in permitted:
        return Decision.deny(ReasonCode.INSUFFICIENT_PERMISSIONS)
    return None


def _pre_resolution(
    principal: Principal | None,
    action: Action,
    resource: ResourceDescriptor,
    gates: RoleGates,
) -> Decision | None:
    """Gates that need no stored facts. Returns a final decision or None to continue."""
    if principal is None:
        return Decision.deny(ReasonCode.AUTH_REQUIRED)
    if principal.role == Role.ADMIN:
        return Decision.allow()
    return _role_gate(principal, action, resource, gates)


def _is_course_scoped(resource: ResourceDescriptor, facts: OwnershipFacts | None) -> bool:
    if resource.kind in COURSE_SCOPED_KINDS:
        return True
    if resource.kind in OPTIONALLY_COURSE_SCOPED_KINDS:
        if resource.id is None:
            return resource.course_id is not None
        # unresolved notice: scope unknown, the caller already failed closed
        return facts is None or facts.course_id is not None
    return False


def _is_owner_filtered_listing(action: Action, resource: ResourceDescriptor) -> bool:
    # "list my own records" with no course: the caller filters on the principal
    return (
        action == Action.READ
        and resource.id is None
        and resource.course_id is None
        and resource.kind in SELF_DATA_KINDS
    )


def _is_idless_record_action(action: Action, resource: ResourceDescriptor) -> bool:
    # update/delete of "some" own record: there is no owner to check
    return resource.kind in SELF_DATA_KINDS and resource.id is None and action not in COLLECTION_ACTIONS


def _is_authored_change(principal: Principal, action: Action, resource: ResourceDescriptor) -> bool:
    return principal.role == Role.FACULTY and action in AUTHOR_ACTIONS and resource.kind in AUTHORED_KINDS


def needs_facts(principal: Principal, action: Action, resource: ResourceDescriptor) -> bool:
    """True when some ownership gate applies to this request."""
    if principal.role == Role.STUDENT:
        if _is_idless_record_action(action, resource):
            return False
        if resource.kind in SELF_DATA_KINDS and resource.id is not None:
            return True
        if resource.kind in COURSE_SCOPED_KINDS:
            return not _is_owner_filtered_listing(action, resource)
        if resource.kind in OPTIONALLY_COURSE_SCOPED_KINDS:
            return resource.id is not None or resource.course_id is not None
        return False
    if _is_authored_change(principal, action, resource):
        return resource.id is not None
    if principal.role == Role.FACULTY and action in MUTATING_ACTIONS:
        if resource.kind in COURSE_SCOPED_KINDS:
            return True
        if resource.kind in OPTIONALLY_COURSE_SCOPED_KINDS:
            return resource.id is not None or resource.course_id is not None
    return False


def lookup_key(resource: ResourceDescriptor) -> tuple[ResourceKind, str] | None:
    """Which record the resolver must load: the resource itself, else its target course."""
    if resource.id is not None:
        return resource.kind, resource.id
    if resource.course_id is not None:
        return ResourceKind.COURSE, resource.course_id
    return None


def evaluate(
    principal: Principal | None,
    action: Action,
    resource: ResourceDescriptor,
    facts: OwnershipFacts | None = None,
    gates: RoleGates = ROLE_GATES,
) -> Decision:
    """
    Pure decision over a principal, an action, a resource and resolved facts.

    facts must be what the resolver returned for lookup_key(resource), or None
    when the record does not exist or nothing was looked up.
    """
    early = _pre_resolution(principal, action, resource, gates)
    if early is not None:
        return early

    if principal.role == Role.STUDENT:
        if _is_idless_record_action(action, resource):
            return Decision.deny(ReasonCode.RESOURCE_NOT_FOUND)
        if resource.kind in SELF_DATA_KINDS and resource.id is not None:
            if facts is None or facts.owner_id is None:
                return Decision.deny(ReasonCode.RESOURCE_NOT_FOUND)
            if facts.owner_id != principal.user_id:
                return Decision.deny(ReasonCode.DATA_ACCESS_VIOLATION)
        if _is_course_scoped(resource, facts) and not _is_owner_filtered_listing(action, resource):
            if facts is None or facts.course_id is None:
                return Decision.deny(ReasonCode.RESOURCE_NOT_FOUND)
            if not facts.is_enrolled(principal.user_id):
                return Decision.deny(ReasonCode.COURSE_ACCESS_DENIED)

    elif principal.role == Role.FACULTY:
        if _is_authored_change(principal, action, resource):
            if resource.id is None or facts is None or facts.owner_id is None:
                return Decision.deny(ReasonCode.RESOURCE_NOT_FOUND)
            if facts.owner_id != principal.user_id:
                return Decision.deny(ReasonCode.AUTHOR_OWNERSHIP_DENIED)
        if action in MUTATING_ACTIONS and _is_course_scoped(resource, facts):
            if facts is None or facts.instructor_id is None:
                return Decision.deny(ReasonCode.RESOURCE_NOT_FOUND)
            if facts.instructor_id != principal.user_id:
                return Decision.deny(ReasonCode.COURSE_OWNERSHIP_DENIED)

    return Decision.allow()


def owner_filter(principal: Principal) -> str | None:
    """Owner id a listing query must be restricted to, None for staff."""
    if principal.role == Role.STUDENT:
        return principal.user_id
    return None


class AccessPolicyEngine:
    """Single entry point for authorization: resolves facts, decides, audits."""

    def __init__(
        self,
        resolver: OwnershipResolver,
        audit_sink: AuditSink | None = None,
        timeout_seconds: float = 2.0,
        gates: RoleGates = ROLE_GATES,
        audit_approvals: bool = True,
    ):
        self.resolver = resolver
        self.audit_sink = audit_sink
        self.timeout_seconds = timeout_seconds
        self.gates = gates
        self.audit_approvals = audit_approvals

    async def _resolve(self, resource: ResourceDescriptor) -> OwnershipFacts | None:
        key = lookup_key(resource)
        if key is None:
            return None
        try:
            return await asyncio.wait_for(self.resolver.resolve(*key), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, ResolverUnavailable):
            raise
        except Exception as e:
            logger.error("Ownership lookup failed for %s/%s: %s", key[0].value, key[1], e)
            raise ResolverUnavailable(str(e)) from e

    async def decide(
        self,
        principal: Principal | None,
        action: Action,
        resource: ResourceDescriptor,
        trace_id: str | None = None,
    ) -> Decision:
        trace_id = trace_id or str(uuid.uuid4())
        decision = _pre_resolution(principal, action, resource, self.gates)
        if decision is None:
            if needs_facts(principal, action, resource):
                try:
                    facts = await self._resolve(resource)
                except asyncio.TimeoutError:
                    logger.warning("Ownership lookup timed out after %.2fs (trace %s)", self.timeout_seconds, trace_id)
                    decision = Decision.deny(ReasonCode.RESOLVER_TIMEOUT)
                else:
                    decision = evaluate(principal, action, resource, facts, self.gates)
            else:
                decision = evaluate(principal, action, resource, None, self.gates)

        if decision.reason == ReasonCode.NO_MATCHING_RULE:
            logger.error(
                "No policy rule for %s %s (role=%s); check the role gate table",
                action.value, resource.kind.value, principal.role if principal else None,
            )
        if not decision.allowed or (action == Action.APPROVE and self.audit_approvals):
            self._audit(trace_id, principal, action, resource, decision)
        return decision

    async def require(
        self,
        principal: Principal | None,
        action: Action,
        resource: ResourceDescriptor,
        trace_id: str | None = None,
    ) -> Decision:
        """decide() for request handlers: raises AccessDenied instead of returning a Deny."""
        decision = await self.decide(principal, action, resource, trace_id=trace_id)
        if not decision.allowed:
            raise AccessDenied(decision)
        return decision

    def _audit(
        self,
        trace_id: str,
        principal: Principal | None,
        action: Action,
        resource: ResourceDescriptor,
        decision: Decision,
    ) -> None:
        if self.audit_sink is None:
            return
        event = AuditEvent(
            trace_id=trace_id,
            user_id=principal.user_id if principal else None,
            role=principal.role.value if principal else None,
            action=action,
            resource_kind=resource.kind,
            resource_id=resource.id,
            course_id=resource.course_id,
            policy_decision=decision.decision,
            reason=decision.reason,
        )
        self.audit_sink.record(event)
