"""Member registry — the ordered set of members eligible to vote.

The registry is the source of truth for who may cast a vote. Its size
and ordering feed every status resolution, so adding a member
invalidates previously unanimous tallies (the newcomer has not voted).

Members are never deleted. Identity is the case-sensitive name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional

from ratify.errors import MemberExists, ValidationError


@dataclass
class Member:
    """A registered voter.

    credential_hash is opaque to the core; None for bootstrap members
    that never set a PIN.
    """
    name: str
    credential_hash: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "credentialHash": self.credential_hash}

    @staticmethod
    def from_dict(data: Any) -> Member:
        """Restore a member record.

        Older documents stored members as bare name strings.
        """
        if isinstance(data, str):
            return Member(name=data)
        return Member(
            name=data["name"],
            credential_hash=data.get("credentialHash"),
        )


class MemberRegistry:
    """Ordered registry of members.

    Thread-safety: this class is not thread-safe. The host must
    serialise access.
    """

    def __init__(self, members: Optional[list[Member]] = None) -> None:
        self._members: dict[str, Member] = {}
        for member in members or []:
            self.add(member)

    def add(self, member: Member) -> Member:
        """Register a new member under its name exactly as given.

        Raises:
            ValidationError: name is blank.
            MemberExists: a member with this name is already registered.
        """
        name = member.name
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Member name is required")
        if name in self._members:
            raise MemberExists(name)
        self._members[name] = member
        return member

    def get(self, name: str) -> Optional[Member]:
        return self._members.get(name)

    def names(self) -> list[str]:
        """Member names in registration order."""
        return list(self._members)

    def __contains__(self, name: object) -> bool:
        return name in self._members

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Member]:
        return iter(list(self._members.values()))
