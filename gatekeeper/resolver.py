# CampusGate - ownership resolution contract
from typing import Protocol

from .models import OwnershipFacts, ResourceKind


class OwnershipResolver(Protocol):
    """
    Fetches the ownership facts the policy engine needs for one record.

    Returns None when the record does not exist. A record that exists but has
    no owner comes back as facts with owner_id=None; the engine treats both
    conservatively. For course-scoped kinds the facts carry the course's
    instructor and roster so one lookup answers every gate.
    """

    async def resolve(self, kind: ResourceKind, resource_id: str) -> OwnershipFacts | None:
        ...


class StaticOwnershipResolver:
    """Resolver over a fixed mapping; used for tests and offline policy checks."""

    def __init__(self, facts: dict[tuple[ResourceKind, str], OwnershipFacts] | None = None):
        self._facts = dict(facts or {})
        self.calls: list[tuple[ResourceKind, str]] = []

    def add(self, kind: ResourceKind, resource_id: str, facts: OwnershipFacts) -> None:
        self._facts[(kind, resource_id)] = facts

    async def resolve(self, kind: ResourceKind, resource_id: str) -> OwnershipFacts | None:
        self.calls.append((kind, resource_id))
        return self._facts.get((kind, resource_id))
