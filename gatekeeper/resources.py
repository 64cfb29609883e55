# CampusGate - static policy tables (role gates, data scopes)
from .models import Action, ResourceKind, Role

ADMIN = frozenset({Role.ADMIN})
STAFF = frozenset({Role.ADMIN, Role.FACULTY})
EVERYONE = frozenset({Role.ADMIN, Role.FACULTY, Role.STUDENT})

# Role gate: (action, kind) -> roles permitted to even attempt the action.
# Ownership and enrollment gates narrow this further per record.
ROLE_GATES: dict[tuple[Action, ResourceKind], frozenset[Role]] = {
    (Action.READ, ResourceKind.USER_RECORD): EVERYONE,
    (Action.CREATE, ResourceKind.USER_RECORD): ADMIN,
    (Action.UPDATE, ResourceKind.USER_RECORD): frozenset({Role.ADMIN, Role.STUDENT}),
    (Action.DELETE, ResourceKind.USER_RECORD): ADMIN,
    (Action.APPROVE, ResourceKind.USER_RECORD): ADMIN,

    (Action.READ, ResourceKind.COURSE): EVERYONE,
    (Action.CREATE, ResourceKind.COURSE): ADMIN,
    (Action.UPDATE, ResourceKind.COURSE): STAFF,
    (Action.DELETE, ResourceKind.COURSE): ADMIN,
    (Action.APPROVE, ResourceKind.COURSE): ADMIN,

    (Action.READ, ResourceKind.ASSIGNMENT): EVERYONE,
    (Action.CREATE, ResourceKind.ASSIGNMENT): STAFF,
    (Action.UPDATE, ResourceKind.ASSIGNMENT): STAFF,
    (Action.DELETE, ResourceKind.ASSIGNMENT): STAFF,
    (Action.APPROVE, ResourceKind.ASSIGNMENT): ADMIN,

    (Action.READ, ResourceKind.SUBMISSION): EVERYONE,
    (Action.CREATE, ResourceKind.SUBMISSION): frozenset({Role.ADMIN, Role.STUDENT}),
    (Action.UPDATE, ResourceKind.SUBMISSION): STAFF,  # grading
    (Action.DELETE, ResourceKind.SUBMISSION): ADMIN,
    (Action.APPROVE, ResourceKind.SUBMISSION): ADMIN,

    (Action.READ, ResourceKind.MARKS): EVERYONE,
    (Action.CREATE, ResourceKind.MARKS): STAFF,
    (Action.UPDATE, ResourceKind.MARKS): STAFF,
    (Action.DELETE, ResourceKind.MARKS): STAFF,
    (Action.APPROVE, ResourceKind.MARKS): ADMIN,

    (Action.READ, ResourceKind.ATTENDANCE): EVERYONE,
    (Action.CREATE, ResourceKind.ATTENDANCE): STAFF,
    (Action.UPDATE, ResourceKind.ATTENDANCE): STAFF,
    (Action.DELETE, ResourceKind.ATTENDANCE): STAFF,
    (Action.APPROVE, ResourceKind.ATTENDANCE): ADMIN,

    (Action.READ, ResourceKind.NOTICE): EVERYONE,
    (Action.CREATE, ResourceKind.NOTICE): STAFF,
    (Action.UPDATE, ResourceKind.NOTICE): STAFF,
    (Action.DELETE, ResourceKind.NOTICE): STAFF,
    (Action.APPROVE, ResourceKind.NOTICE): ADMIN,

    (Action.READ, ResourceKind.LEAVE): EVERYONE,
    (Action.CREATE, ResourceKind.LEAVE): frozenset({Role.FACULTY, Role.STUDENT}),
    (Action.UPDATE, ResourceKind.LEAVE): frozenset({Role.ADMIN, Role.STUDENT}),
    (Action.DELETE, ResourceKind.LEAVE): frozenset({Role.ADMIN, Role.STUDENT}),
    (Action.APPROVE, ResourceKind.LEAVE): ADMIN,
}

# Kinds whose records belong to one student (self-data gate)
SELF_DATA_KINDS: frozenset[ResourceKind] = frozenset({
    ResourceKind.USER_RECORD,
    ResourceKind.ATTENDANCE,
    ResourceKind.MARKS,
    ResourceKind.LEAVE,
    ResourceKind.SUBMISSION,
})

# Kinds that always hang off a course; a missing course is a resolution failure
COURSE_SCOPED_KINDS: frozenset[ResourceKind] = frozenset({
    ResourceKind.COURSE,
    ResourceKind.ASSIGNMENT,
    ResourceKind.SUBMISSION,
    ResourceKind.MARKS,
    ResourceKind.ATTENDANCE,
})

# Kinds that are course-scoped only when they carry a course (course notices)
OPTIONALLY_COURSE_SCOPED_KINDS: frozenset[ResourceKind] = frozenset({ResourceKind.NOTICE})

MUTATING_ACTIONS: frozenset[Action] = frozenset({Action.CREATE, Action.UPDATE, Action.DELETE})

# Actions a student may aim at a self-data collection instead of one record
# (list own records, file a new one). Anything else needs an id.
COLLECTION_ACTIONS: frozenset[Action] = frozenset({Action.READ, Action.CREATE})

# Kinds only their author (or an admin) may change, whoever teaches the course
AUTHORED_KINDS: frozenset[ResourceKind] = frozenset({ResourceKind.NOTICE})
AUTHOR_ACTIONS: frozenset[Action] = frozenset({Action.UPDATE, Action.DELETE})


def missing_role_gates(
    gates: dict[tuple[Action, ResourceKind], frozenset[Role]] = ROLE_GATES,
) -> list[tuple[Action, ResourceKind]]:
    """(action, kind) pairs with no declared role gate. Empty for a correct table."""
    return [(a, k) for a in Action for k in ResourceKind if (a, k) not in gates]
