# CampusGate - access control errors
from .models import Decision, ReasonCode


class ResolverUnavailable(Exception):
    """The ownership store could not be reached. Never treated as a grant."""


class AccessDenied(Exception):
    """Raised by request handlers after a Deny decision so the app can reject uniformly."""

    def __init__(self, decision: Decision):
        self.decision = decision
        self.reason: ReasonCode = decision.reason or ReasonCode.NO_MATCHING_RULE
        super().__init__(f"{self.reason.value}: {decision.message}")
