"""Core data models for Ratify."""

from ratify.models.candidate import Candidate, CandidateStatus, VoteLedger
from ratify.models.member import Member, MemberRegistry

__all__ = [
    "Candidate",
    "CandidateStatus",
    "Member",
    "MemberRegistry",
    "VoteLedger",
]
