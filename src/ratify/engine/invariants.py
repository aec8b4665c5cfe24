"""Data-model invariant checks over a loaded snapshot.

Documents may be edited by hand or written by older hosts, so a loaded
snapshot is not guaranteed to satisfy the rules the lifecycle
controller enforces on write. ``check_snapshot`` reports every
violation it finds; an empty list means the snapshot is consistent.
"""

from __future__ import annotations

from ratify.persistence.snapshot_store import Snapshot


def check_snapshot(snapshot: Snapshot) -> list[str]:
    errors: list[str] = []
    members = snapshot.registry.names()
    seen_ids: set[str] = set()
    seen_identities: dict[tuple[str, str], str] = {}

    for candidate in snapshot.candidates:
        cid = candidate.candidate_id
        if cid in seen_ids:
            errors.append(f"Duplicate candidate id: {cid}")
        seen_ids.add(cid)

        identity = (candidate.first_name.lower(), candidate.last_initial.lower())
        if identity in seen_identities:
            errors.append(
                f"Candidate {cid} duplicates {seen_identities[identity]}: "
                f"{candidate.first_name} {candidate.last_initial}"
            )
        else:
            seen_identities[identity] = cid

        if len(candidate.last_initial) != 1 or candidate.last_initial != candidate.last_initial.upper():
            errors.append(f"Candidate {cid} lastInitial must be one uppercase letter")

        for voter in candidate.votes.to_dict():
            if voter not in snapshot.registry:
                errors.append(f"Candidate {cid} has a vote from non-member: {voter}")

        for voter, value in candidate.votes.unreadable.items():
            errors.append(f"Candidate {cid} has a non-boolean vote from {voter}: {value!r}")

        if candidate.total_members != len(members):
            errors.append(
                f"Candidate {cid} totalMembers {candidate.total_members} "
                f"!= registry size {len(members)}"
            )

    return errors
