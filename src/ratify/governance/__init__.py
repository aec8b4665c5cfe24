"""Candidate governance — lifecycle and admin actions."""

from ratify.governance.lifecycle import (
    CandidateLifecycleController,
    generate_candidate_id,
)

__all__ = ["CandidateLifecycleController", "generate_candidate_id"]
