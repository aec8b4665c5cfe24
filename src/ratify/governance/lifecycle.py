"""Candidate lifecycle controller — creation, voting and admin actions.

The controller operates on one in-memory snapshot (member registry plus
candidate list) handed to it by the service layer. It never performs
I/O and never caches state between calls: the service reloads a fresh
snapshot before every operation.

Every operation validates completely before mutating anything, so a
failure never leaves a partially applied change behind.

Admin actions:
- reopen:        clear the ledger and restart deliberation.
- force_status:  fabricate a unanimous ledger matching the forced
                 status, so a later resolve reproduces it.
- resolve_by_tally: set status from a simple majority of cast votes
                 without rewriting the ledger.
- delete:        remove the candidate entirely.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone
from typing import Callable, Optional

from ratify.engine.status_resolver import StatusResolver
from ratify.engine.tally import TallyMode, TallyOutcome, tally
from ratify.errors import (
    CandidateNotFound,
    DuplicateCandidate,
    InvalidStatus,
    UnknownMember,
    ValidationError,
)
from ratify.models.candidate import Candidate, CandidateStatus, VoteLedger
from ratify.models.member import Member, MemberRegistry


_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 7


def generate_candidate_id() -> str:
    """Short random base-36 token."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _required_text(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


class CandidateLifecycleController:
    """Applies lifecycle operations to a member registry and candidate list.

    Thread-safety: not thread-safe. The host serialises operations.
    """

    def __init__(
        self,
        registry: MemberRegistry,
        candidates: list[Candidate],
        id_factory: Callable[[], str] = generate_candidate_id,
    ) -> None:
        self._registry = registry
        self._candidates = candidates
        self._id_factory = id_factory

    @property
    def registry(self) -> MemberRegistry:
        return self._registry

    @property
    def candidates(self) -> list[Candidate]:
        return self._candidates

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, candidate_id: str) -> Candidate:
        """Return the candidate with this id.

        Raises:
            CandidateNotFound: no candidate matches.
        """
        for candidate in self._candidates:
            if candidate.candidate_id == candidate_id:
                return candidate
        raise CandidateNotFound(candidate_id)

    def _resolve(self, candidate: Candidate) -> CandidateStatus:
        return StatusResolver.apply(candidate, self._registry.names())

    def refresh_all(self) -> None:
        """Re-run the status resolver on every candidate."""
        for candidate in self._candidates:
            self._resolve(candidate)

    def refresh_member_counts(self) -> None:
        """Heal the cached total_members on every candidate.

        Status is left as last resolved, so a tally decision survives
        a read.
        """
        total = len(self._registry)
        for candidate in self._candidates:
            candidate.total_members = total

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_member(self, name: str, credential_hash: Optional[str] = None) -> Member:
        """Register a member and recompute every candidate.

        The newcomer has not voted, so previously unanimous candidates
        fall back to PENDING.

        Raises:
            ValidationError: blank name.
            MemberExists: name already registered.
        """
        member = self._registry.add(
            Member(name=_required_text(name, "name"), credential_hash=credential_hash)
        )
        self.refresh_all()
        return member

    # ------------------------------------------------------------------
    # Candidate lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        first_name: str,
        last_initial: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Candidate:
        """Nominate a new candidate.

        Raises:
            ValidationError: first name or last initial missing.
            DuplicateCandidate: same (first name, last initial) exists,
                compared case-insensitively.
        """
        first = _required_text(first_name, "firstName")
        initial = _required_text(last_initial, "lastInitial")[:1].upper()

        for existing in self._candidates:
            if existing.same_identity(first, initial):
                raise DuplicateCandidate(first, initial)

        taken = {c.candidate_id for c in self._candidates}
        candidate_id = self._id_factory()
        while candidate_id in taken:
            candidate_id = self._id_factory()

        candidate = Candidate(
            candidate_id=candidate_id,
            first_name=first,
            last_initial=initial,
            notes=notes if isinstance(notes, str) else "",
            votes=VoteLedger(),
            status=CandidateStatus.PENDING,
            created_utc=now or datetime.now(timezone.utc),
        )
        self._resolve(candidate)
        self._candidates.append(candidate)
        return candidate

    def record_vote(self, candidate_id: str, member_name: str, vote: bool) -> Candidate:
        """Record or overwrite a member's vote and resolve status.

        Raises:
            ValidationError: missing id or member, or vote is not a bool.
            CandidateNotFound: unknown candidate id.
            UnknownMember: member is not registered.
        """
        _required_text(candidate_id, "candidateId")
        _required_text(member_name, "memberName")
        if not isinstance(vote, bool):
            raise ValidationError("vote must be a boolean")

        candidate = self.get(candidate_id)
        if member_name not in self._registry:
            raise UnknownMember(member_name)

        candidate.votes.cast(member_name, vote)
        self._resolve(candidate)
        return candidate

    def reopen(self, candidate_id: str) -> Candidate:
        """Discard every vote and return the candidate to PENDING."""
        candidate = self.get(candidate_id)
        candidate.votes.clear()
        self._resolve(candidate)
        return candidate

    def force_status(self, candidate_id: str, new_status: object) -> Candidate:
        """Force a status by fabricating a matching unanimous ledger.

        BANNED fills the ledger with yes from every member, ALLOWED with
        no, PENDING clears it. The status resolver then reproduces the
        forced status from the ledger alone.

        Raises:
            InvalidStatus: new_status is not a known status.
            CandidateNotFound: unknown candidate id.
        """
        try:
            status = CandidateStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in CandidateStatus)
            raise InvalidStatus(
                f"Invalid status: {new_status!r}. Allowed: [{allowed}]"
            ) from None

        candidate = self.get(candidate_id)
        if status == CandidateStatus.BANNED:
            candidate.votes.fill(self._registry.names(), True)
        elif status == CandidateStatus.ALLOWED:
            candidate.votes.fill(self._registry.names(), False)
        else:
            candidate.votes.clear()
        self._resolve(candidate)
        return candidate

    def resolve_by_tally(
        self,
        candidate_id: str,
        mode: object = TallyMode.MAJORITY,
    ) -> tuple[Candidate, TallyOutcome]:
        """Set status from a simple majority of the votes cast so far.

        Raises:
            InvalidStatus: unknown mode.
            CandidateNotFound: unknown candidate id.
        """
        tally_mode = TallyMode.parse(mode)
        candidate = self.get(candidate_id)
        outcome = tally(candidate.votes, tally_mode)
        candidate.status = outcome.status
        candidate.total_members = len(self._registry)
        return candidate, outcome

    def delete(self, candidate_id: str) -> Candidate:
        """Remove a candidate. Irreversible."""
        candidate = self.get(candidate_id)
        self._candidates.remove(candidate)
        return candidate
