"""Tally resolution — admin decision by simple majority of cast votes.

Unlike the unanimity rule in the status resolver, a tally decides on
whatever has been cast so far. Ties (including no votes at all) count
as a yes-majority.

    mode       yes-majority   no-majority
    MAJORITY   BANNED         ALLOWED
    OPPOSITE   ALLOWED        BANNED

The ledger is never rewritten. A later vote re-runs the status
resolver and may overwrite the tallied status.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ratify.errors import InvalidStatus
from ratify.models.candidate import CandidateStatus, VoteLedger


class TallyMode(str, enum.Enum):
    MAJORITY = "majority"
    OPPOSITE = "opposite"

    @classmethod
    def parse(cls, value: object) -> TallyMode:
        """Coerce a raw value, raising InvalidStatus if unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise InvalidStatus(
                f"Unknown tally mode: {value!r}. Allowed: [{allowed}]"
            ) from None


@dataclass(frozen=True)
class TallyOutcome:
    yes: int
    no: int
    mode: TallyMode
    status: CandidateStatus

    @property
    def yes_majority(self) -> bool:
        return self.yes >= self.no


def tally(ledger: VoteLedger, mode: TallyMode) -> TallyOutcome:
    """Count cast votes and map the majority to a status."""
    yes = ledger.yes_count
    no = ledger.no_count
    yes_majority = yes >= no
    if mode == TallyMode.MAJORITY:
        status = CandidateStatus.BANNED if yes_majority else CandidateStatus.ALLOWED
    else:
        status = CandidateStatus.ALLOWED if yes_majority else CandidateStatus.BANNED
    return TallyOutcome(yes=yes, no=no, mode=mode, status=status)
