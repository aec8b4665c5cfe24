"""Ratify service — unified facade for the ratification core.

This is the primary interface for hosts (the CLI, or any transport a
deployment wraps around it). Every mutating operation follows the same
cycle:

1. Load a fresh snapshot from the store (nothing is cached between calls).
2. Check credentials.
3. Apply the operation through the lifecycle controller, which validates
   before it mutates.
4. Persist the whole snapshot.
5. Append an audit event.

Operations return typed ServiceResults. Caller mistakes surface with an
``error_kind`` taken from the raised RatifyError so the host can map it
to a response code. Because each operation works on its own freshly
loaded snapshot, a failed persist needs no in-memory rollback.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ratify.config import Settings
from ratify.engine.invariants import check_snapshot
from ratify.engine.tally import TallyMode
from ratify.errors import RatifyError, Unauthorized
from ratify.governance.lifecycle import (
    CandidateLifecycleController,
    generate_candidate_id,
)
from ratify.identity.credentials import hash_credential, verify_credential
from ratify.models.candidate import Candidate
from ratify.persistence.event_log import EventKind, EventLog, EventRecord
from ratify.persistence.snapshot_store import Snapshot, SnapshotStore


logger = logging.getLogger(__name__)

ADMIN_ACTOR = "admin"
PUBLIC_ACTOR = "public"

# A mutation returns (result data, audit payload).
_Mutation = Callable[[CandidateLifecycleController], tuple[dict[str, Any], dict[str, Any]]]


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None


class RatifyService:
    """Ratification facade over a snapshot store.

    Usage:
        store = JsonSnapshotStore(Path("data/data.json"))
        service = RatifyService(store, event_log=EventLog(Path("data/events.jsonl")))

        result = service.create_candidate("Jamie", "S", notes="")
        cid = result.data["candidate"]["id"]
        service.record_vote(cid, "Alice A", True)
        service.force_status(cid, "allowed", admin_pin="...")

    The host serialises calls; the service holds no locks.
    """

    def __init__(
        self,
        store: SnapshotStore,
        event_log: Optional[EventLog] = None,
        settings: Optional[Settings] = None,
        id_factory: Callable[[], str] = generate_candidate_id,
    ) -> None:
        self._store = store
        self._event_log = event_log
        self._settings = settings or Settings()
        self._id_factory = id_factory

        # Set when an audit append fails after the snapshot was persisted.
        # State is correct but the audit trail has a gap.
        self._audit_degraded: bool = False

    @property
    def audit_degraded(self) -> bool:
        return self._audit_degraded

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_members(self) -> list[str]:
        """Member names in registration order."""
        return self._store.load().registry.names()

    def list_candidates(self) -> list[Candidate]:
        """All candidates with member counts refreshed."""
        snapshot = self._store.load()
        self._controller(snapshot).refresh_member_counts()
        return snapshot.candidates

    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        snapshot = self._store.load()
        controller = self._controller(snapshot)
        controller.refresh_member_counts()
        for candidate in snapshot.candidates:
            if candidate.candidate_id == candidate_id:
                return candidate
        return None

    def check_invariants(self) -> list[str]:
        """Report data-model violations in the stored document."""
        return check_snapshot(self._store.load())

    def verify_credential(self, name: str, pin: Optional[str]) -> bool:
        """Check a member's PIN. Unknown members never verify."""
        member = self._store.load().registry.get(name)
        if member is None:
            return False
        return verify_credential(pin, member.credential_hash)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_member(self, name: str, pin: Optional[str] = None) -> ServiceResult:
        """Register a member, optionally with a PIN, and re-resolve all candidates."""
        def mutation(controller: CandidateLifecycleController):
            credential_hash = None
            if pin is not None:
                credential_hash = hash_credential(pin, self._settings.pin_iterations)
            member = controller.add_member(name, credential_hash)
            members = controller.registry.names()
            return (
                {"member": member.name, "members": members},
                {"member": member.name, "total_members": len(members)},
            )

        return self._run("add_member", EventKind.MEMBER_ADDED, ADMIN_ACTOR, mutation)

    # ------------------------------------------------------------------
    # Candidate lifecycle
    # ------------------------------------------------------------------

    def create_candidate(
        self,
        first_name: str,
        last_initial: str,
        notes: Optional[str] = None,
    ) -> ServiceResult:
        def mutation(controller: CandidateLifecycleController):
            candidate = controller.create(first_name, last_initial, notes)
            return (
                {"candidate": candidate.to_dict()},
                {
                    "candidate_id": candidate.candidate_id,
                    "first_name": candidate.first_name,
                    "last_initial": candidate.last_initial,
                },
            )

        return self._run("create_candidate", EventKind.CANDIDATE_CREATED, PUBLIC_ACTOR, mutation)

    def record_vote(
        self,
        candidate_id: str,
        member_name: str,
        vote: bool,
        pin: Optional[str] = None,
    ) -> ServiceResult:
        """Record a member's vote.

        Members with a PIN on file must supply it.
        """
        def mutation(controller: CandidateLifecycleController):
            member = controller.registry.get(member_name) if isinstance(member_name, str) else None
            if member is not None and member.credential_hash:
                if not verify_credential(pin, member.credential_hash):
                    raise Unauthorized(f"Invalid PIN for member: {member_name}")
            candidate = controller.record_vote(candidate_id, member_name, vote)
            return (
                {"candidate": candidate.to_dict()},
                {
                    "candidate_id": candidate.candidate_id,
                    "vote": vote,
                    "status": candidate.status.value,
                },
            )

        actor = member_name if isinstance(member_name, str) and member_name else PUBLIC_ACTOR
        return self._run("record_vote", EventKind.VOTE_RECORDED, actor, mutation)

    def reopen(self, candidate_id: str, admin_pin: Optional[str] = None) -> ServiceResult:
        def mutation(controller: CandidateLifecycleController):
            self._check_admin(admin_pin)
            candidate = controller.reopen(candidate_id)
            return (
                {"candidate": candidate.to_dict()},
                {"candidate_id": candidate.candidate_id},
            )

        return self._run("reopen", EventKind.CANDIDATE_REOPENED, ADMIN_ACTOR, mutation)

    def force_status(
        self,
        candidate_id: str,
        status: str,
        admin_pin: Optional[str] = None,
    ) -> ServiceResult:
        def mutation(controller: CandidateLifecycleController):
            self._check_admin(admin_pin)
            candidate = controller.force_status(candidate_id, status)
            return (
                {"candidate": candidate.to_dict()},
                {
                    "candidate_id": candidate.candidate_id,
                    "status": candidate.status.value,
                },
            )

        return self._run("force_status", EventKind.STATUS_FORCED, ADMIN_ACTOR, mutation)

    def resolve_by_tally(
        self,
        candidate_id: str,
        mode: str = TallyMode.MAJORITY.value,
        admin_pin: Optional[str] = None,
    ) -> ServiceResult:
        def mutation(controller: CandidateLifecycleController):
            self._check_admin(admin_pin)
            candidate, outcome = controller.resolve_by_tally(candidate_id, mode)
            tally_data = {
                "yes": outcome.yes,
                "no": outcome.no,
                "mode": outcome.mode.value,
            }
            return (
                {"candidate": candidate.to_dict(), "tally": tally_data},
                {
                    "candidate_id": candidate.candidate_id,
                    "status": outcome.status.value,
                    **tally_data,
                },
            )

        return self._run("resolve_by_tally", EventKind.TALLY_RESOLVED, ADMIN_ACTOR, mutation)

    def delete_candidate(
        self,
        candidate_id: str,
        admin_pin: Optional[str] = None,
    ) -> ServiceResult:
        def mutation(controller: CandidateLifecycleController):
            self._check_admin(admin_pin)
            candidate = controller.delete(candidate_id)
            return (
                {"deleted": candidate.candidate_id},
                {"candidate_id": candidate.candidate_id},
            )

        return self._run("delete_candidate", EventKind.CANDIDATE_DELETED, ADMIN_ACTOR, mutation)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _controller(self, snapshot: Snapshot) -> CandidateLifecycleController:
        return CandidateLifecycleController(
            snapshot.registry, snapshot.candidates, id_factory=self._id_factory,
        )

    def _check_admin(self, admin_pin: Optional[str]) -> None:
        expected = self._settings.admin_pin
        if not expected:
            return
        if not isinstance(admin_pin, str) or not admin_pin:
            raise Unauthorized("Admin PIN required")
        if not hmac.compare_digest(admin_pin.encode("utf-8"), expected.encode("utf-8")):
            raise Unauthorized("Invalid admin PIN")

    def _run(
        self,
        operation: str,
        event_kind: EventKind,
        actor_id: str,
        mutation: _Mutation,
    ) -> ServiceResult:
        """Load, apply, persist, audit."""
        try:
            snapshot = self._store.load()
        except (OSError, ValueError) as e:
            logger.error("%s: cannot load data: %s", operation, e)
            return ServiceResult(
                success=False,
                errors=[f"Persistence failure: {e}"],
                error_kind="persistence",
            )

        try:
            data, payload = mutation(self._controller(snapshot))
        except RatifyError as e:
            logger.warning("%s rejected (%s): %s", operation, e.kind, e)
            return ServiceResult(success=False, errors=[str(e)], error_kind=e.kind)

        err = self._safe_persist(snapshot)
        if err:
            return ServiceResult(success=False, errors=[err], error_kind="persistence")

        warning = self._safe_record_event(event_kind, actor_id, payload)
        if warning:
            data["warnings"] = [warning]
        logger.info("%s by %s: %s", operation, actor_id, payload)
        return ServiceResult(success=True, data=data)

    def _safe_persist(self, snapshot: Snapshot) -> Optional[str]:
        """Write the snapshot. Returns an error string on failure."""
        try:
            self._store.save(snapshot)
            return None
        except OSError as e:
            logger.error("Persistence failure: %s", e)
            return f"Persistence failure: {e}"

    def _safe_record_event(
        self,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event after the snapshot is durable.

        Must not undo the mutation: the snapshot is already written. On
        failure the audit_degraded flag is set and a warning returned.
        """
        if self._event_log is None:
            return None
        try:
            self._event_log.append(EventRecord.create(event_kind, actor_id, payload))
            return None
        except (OSError, ValueError) as e:
            self._audit_degraded = True
            logger.error("Audit log append failed: %s", e)
            return f"Audit degraded: {e} — state persisted but event not recorded"
