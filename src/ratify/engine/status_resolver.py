"""Status resolver — derives a candidate's status from its vote ledger.

Resolution rules, evaluated in order:
    every member voted yes                        → BANNED
    every member voted no (full participation)    → ALLOWED
    anything else                                 → PENDING

A missing vote fails both "all yes" and "all no", so silence never
rejects a candidate.

An empty registry always resolves to PENDING; no unanimous decision is
possible without members.

Pure computation apart from the in-place write in ``apply``. Side
effects (audit events, persistence) are handled by the service layer.
"""

from __future__ import annotations

from typing import Sequence

from ratify.models.candidate import Candidate, CandidateStatus, VoteLedger


class StatusResolver:
    """Maps (ledger, registry) to a candidate status."""

    @staticmethod
    def resolve(
        ledger: VoteLedger,
        member_names: Sequence[str],
    ) -> tuple[CandidateStatus, int]:
        """Return (status, total_members) for a ledger."""
        total = len(member_names)
        if total == 0:
            return CandidateStatus.PENDING, 0

        all_yes = all(ledger.vote_of(name) is True for name in member_names)
        if all_yes:
            return CandidateStatus.BANNED, total

        all_no = all(ledger.vote_of(name) is False for name in member_names)
        if all_no:
            return CandidateStatus.ALLOWED, total

        return CandidateStatus.PENDING, total

    @staticmethod
    def apply(candidate: Candidate, member_names: Sequence[str]) -> CandidateStatus:
        """Resolve and write status and total_members onto the candidate.

        total_members is written unconditionally so the cached count
        heals after any membership change.
        """
        status, total = StatusResolver.resolve(candidate.votes, member_names)
        candidate.status = status
        candidate.total_members = total
        return status
