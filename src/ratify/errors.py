"""Typed failures raised by the ratification core.

Every failure is synchronous, locally detected and non-retryable: it
represents a caller mistake or a state conflict, never a transient fault.
Each class carries a stable ``kind`` so a host can map it to a response
code without string matching.

All failures derive from ValueError, so callers that catch ValueError
for invalid input keep working.
"""

from __future__ import annotations


class RatifyError(ValueError):
    """Base class for every failure surfaced by the core."""
    kind = "error"


class ValidationError(RatifyError):
    """A required field is missing or malformed."""
    kind = "validation"


class NotFound(RatifyError):
    """A referenced candidate or member does not exist."""
    kind = "not_found"


class CandidateNotFound(NotFound):
    def __init__(self, candidate_id: str) -> None:
        super().__init__(f"Candidate not found: {candidate_id}")
        self.candidate_id = candidate_id


class UnknownMember(NotFound):
    def __init__(self, member_name: str) -> None:
        super().__init__(f"Member not recognized: {member_name}")
        self.member_name = member_name


class Conflict(RatifyError):
    """A uniqueness rule would be violated."""
    kind = "conflict"


class DuplicateCandidate(Conflict):
    def __init__(self, first_name: str, last_initial: str) -> None:
        super().__init__(
            f"Candidate already exists: {first_name} {last_initial}"
        )


class MemberExists(Conflict):
    def __init__(self, name: str) -> None:
        super().__init__(f"Member already exists: {name}")
        self.name = name


class InvalidStatus(RatifyError):
    """An unrecognised forced status or tally mode."""
    kind = "invalid_status"


class Unauthorized(RatifyError):
    """Credential verification failed."""
    kind = "unauthorized"
