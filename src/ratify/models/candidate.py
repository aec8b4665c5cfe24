"""Candidate and vote ledger data models.

A candidate is a person nominated for ratification. Its status is
derived from the per-member vote ledger by the status resolver:

- PENDING: partial or mixed votes (the stable resting state).
- BANNED:  every member voted yes ("ratified").
- ALLOWED: every member voted no, with full participation ("cleared").

The legacy ``ratified`` flag is a read-only view of status == BANNED.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional


logger = logging.getLogger(__name__)


class CandidateStatus(str, enum.Enum):
    """Derived decision state of a candidate."""
    PENDING = "pending"
    BANNED = "banned"
    ALLOWED = "allowed"


class VoteLedger:
    """Partial mapping of member name to a yes/no vote.

    Presence and value are distinct: ``vote_of`` returns None for a
    member who has not voted, never False. Writes are validated by the
    lifecycle controller before they reach the ledger.

    Only real booleans count as votes. Any other value read from a
    stored document is kept verbatim under ``unreadable`` so the
    document round-trips unchanged, and that member counts as not
    having voted until they vote again.
    """

    def __init__(self, votes: Optional[dict[str, Any]] = None) -> None:
        self._votes: dict[str, bool] = {}
        self._unreadable: dict[str, Any] = {}
        for name, value in (votes or {}).items():
            if isinstance(value, bool):
                self._votes[name] = value
            else:
                self._unreadable[name] = value

    def cast(self, member_name: str, value: bool) -> None:
        """Record or overwrite a member's vote."""
        if not isinstance(value, bool):
            raise TypeError(f"vote must be a bool, got {value!r}")
        self._unreadable.pop(member_name, None)
        self._votes[member_name] = value

    def vote_of(self, member_name: str) -> Optional[bool]:
        return self._votes.get(member_name)

    def has_voted(self, member_name: str) -> bool:
        return member_name in self._votes

    @property
    def unreadable(self) -> dict[str, Any]:
        """Stored entries that are not booleans, keyed by member name."""
        return dict(self._unreadable)

    def clear(self) -> None:
        self._votes.clear()
        self._unreadable.clear()

    def fill(self, member_names: Iterable[str], value: bool) -> None:
        """Replace the ledger with a unanimous vote from every member."""
        self._votes = {name: bool(value) for name in member_names}
        self._unreadable = {}

    @property
    def yes_count(self) -> int:
        return sum(1 for v in self._votes.values() if v is True)

    @property
    def no_count(self) -> int:
        return sum(1 for v in self._votes.values() if v is False)

    def to_dict(self) -> dict[str, Any]:
        return {**self._unreadable, **self._votes}

    def __len__(self) -> int:
        return len(self._votes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._votes))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, VoteLedger):
            return self.to_dict() == other.to_dict()
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"VoteLedger({self.to_dict()!r})"


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Candidate:
    """A nominated person with a vote ledger and derived status.

    total_members caches the registry size at the last recompute; it is
    not a source of truth.
    """
    candidate_id: str
    first_name: str
    last_initial: str
    notes: str = ""
    votes: VoteLedger = field(default_factory=VoteLedger)
    status: CandidateStatus = CandidateStatus.PENDING
    total_members: int = 0
    created_utc: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def ratified(self) -> bool:
        return self.status == CandidateStatus.BANNED

    def same_identity(self, first_name: str, last_initial: str) -> bool:
        """Case-insensitive (first name, last initial) comparison."""
        return (
            self.first_name.lower() == first_name.lower()
            and self.last_initial.lower() == last_initial.lower()
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.candidate_id,
            "firstName": self.first_name,
            "lastInitial": self.last_initial,
            "notes": self.notes,
            "votes": self.votes.to_dict(),
            "status": self.status.value,
            "ratified": self.ratified,
            "totalMembers": self.total_members,
            "createdAt": format_timestamp(self.created_utc),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Candidate:
        """Restore a candidate record.

        Documents written before the status field existed carry only the
        legacy ``ratified`` flag; it maps to BANNED or PENDING.
        """
        if "status" in data:
            status = CandidateStatus(data["status"])
        elif data.get("ratified"):
            status = CandidateStatus.BANNED
        else:
            status = CandidateStatus.PENDING

        votes = VoteLedger(data.get("votes") or {})
        if votes.unreadable:
            logger.warning(
                "Candidate %s: ignoring non-boolean votes from %s",
                data["id"], sorted(votes.unreadable),
            )

        created = data.get("createdAt")
        return Candidate(
            candidate_id=data["id"],
            first_name=data["firstName"],
            last_initial=data["lastInitial"],
            notes=data.get("notes") or "",
            votes=votes,
            status=status,
            total_members=int(data.get("totalMembers", 0)),
            created_utc=(
                parse_timestamp(created) if created
                else datetime.now(timezone.utc)
            ),
        )
