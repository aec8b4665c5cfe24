"""Tests for RatifyService — proves the facade reloads, persists and audits correctly."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from ratify.config import Settings
from ratify.models.member import Member
from ratify.persistence.event_log import EventKind, EventLog, EventRecord
from ratify.persistence.snapshot_store import JsonSnapshotStore, MemoryStore, Snapshot
from ratify.service import RatifyService


FAST_SETTINGS = Settings(pin_iterations=1000, event_log_path=None)


def _ids():
    counter = itertools.count(1)
    return lambda: f"cand{next(counter):03d}"


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(default_members=["A", "B", "C"])


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def service(store: MemoryStore, event_log: EventLog) -> RatifyService:
    return RatifyService(store, event_log=event_log, settings=FAST_SETTINGS, id_factory=_ids())


def _create(service: RatifyService, first: str = "X", initial: str = "Y") -> str:
    result = service.create_candidate(first, initial, "")
    assert result.success, result.errors
    return result.data["candidate"]["id"]


class FailingStore(MemoryStore):
    def save(self, snapshot: Snapshot) -> None:
        raise OSError("disk full")


class FailingEventLog(EventLog):
    def append(self, event: EventRecord) -> None:
        raise OSError("log volume read-only")


class TestMembers:
    def test_get_members(self, service: RatifyService) -> None:
        assert service.get_members() == ["A", "B", "C"]

    def test_add_member_persists(self, service: RatifyService, store: MemoryStore) -> None:
        result = service.add_member("D")
        assert result.success
        assert result.data["members"] == ["A", "B", "C", "D"]
        assert [m["name"] for m in store.document["members"]] == ["A", "B", "C", "D"]

    def test_add_duplicate_member(self, service: RatifyService) -> None:
        result = service.add_member("A")
        assert not result.success
        assert result.error_kind == "conflict"

    def test_add_member_with_pin_stores_hash_only(
        self, service: RatifyService, store: MemoryStore,
    ) -> None:
        service.add_member("D", pin="2468")
        stored = store.document["members"][-1]["credentialHash"]
        assert stored.startswith("pbkdf2_sha256$")
        assert "2468" not in stored.split("$")

    def test_verify_credential(self, service: RatifyService) -> None:
        service.add_member("D", pin="2468")
        assert service.verify_credential("D", "2468")
        assert not service.verify_credential("D", "0000")
        assert not service.verify_credential("A", "2468")
        assert not service.verify_credential("Nobody", "2468")

    def test_empty_pin_rejected(self, service: RatifyService) -> None:
        result = service.add_member("D", pin="")
        assert not result.success
        assert result.error_kind == "validation"
        assert "D" not in service.get_members()


class TestEndToEnd:
    def test_ratification_then_membership_change(self, service: RatifyService) -> None:
        cid = _create(service)
        service.record_vote(cid, "A", True)
        result = service.record_vote(cid, "B", True)
        assert result.data["candidate"]["status"] == "pending"
        result = service.record_vote(cid, "C", True)
        assert result.data["candidate"]["status"] == "banned"
        assert result.data["candidate"]["ratified"] is True

        assert service.add_member("D").success
        candidate = service.get_candidate(cid)
        assert candidate.status.value == "pending"
        assert candidate.total_members == 4

    def test_list_candidates_refreshes_member_count(
        self, service: RatifyService, store: MemoryStore,
    ) -> None:
        cid = _create(service)
        # Membership edited behind the service's back.
        snapshot = store.load()
        snapshot.registry.add(Member("E"))
        store.save(snapshot)
        candidates = service.list_candidates()
        assert candidates[0].candidate_id == cid
        assert candidates[0].total_members == 4

    def test_list_keeps_tally_status(self, service: RatifyService) -> None:
        cid = _create(service)
        service.record_vote(cid, "A", False)
        service.resolve_by_tally(cid, "majority")
        assert service.list_candidates()[0].status.value == "allowed"

    def test_non_boolean_votes_never_decide(self) -> None:
        store = MemoryStore({
            "members": ["A", "B", "C"],
            "candidates": [{
                "id": "x1", "firstName": "Sam", "lastInitial": "T",
                "votes": {"A": "false", "B": "false", "C": "false"},
                "status": "pending", "totalMembers": 3,
            }],
        })
        service = RatifyService(store, settings=FAST_SETTINGS)
        assert service.add_member("D").success
        result = service.record_vote("x1", "D", True)
        assert result.data["candidate"]["status"] == "pending"
        assert store.document["candidates"][0]["votes"] == {
            "A": "false", "B": "false", "C": "false", "D": True,
        }

    def test_null_vote_is_not_a_no(self) -> None:
        store = MemoryStore({
            "members": ["A", "B", "C"],
            "candidates": [{
                "id": "x1", "firstName": "Sam", "lastInitial": "T",
                "votes": {"A": False, "B": False, "C": None},
                "status": "pending", "totalMembers": 3,
            }],
        })
        service = RatifyService(store, settings=FAST_SETTINGS)
        result = service.record_vote("x1", "A", False)
        assert result.data["candidate"]["status"] == "pending"
        assert len(service.check_invariants()) == 1


class TestErrors:
    def test_duplicate_candidate_conflict(self, service: RatifyService) -> None:
        _create(service, "Jamie", "S")
        result = service.create_candidate("jamie", "s")
        assert not result.success
        assert result.error_kind == "conflict"

    def test_missing_name_validation(self, service: RatifyService) -> None:
        result = service.create_candidate("", "S")
        assert result.error_kind == "validation"

    def test_unknown_candidate_not_found(self, service: RatifyService) -> None:
        result = service.record_vote("missing", "A", True)
        assert result.error_kind == "not_found"

    def test_unknown_member_not_found(self, service: RatifyService) -> None:
        cid = _create(service)
        result = service.record_vote(cid, "Mallory", True)
        assert result.error_kind == "not_found"
        assert service.get_candidate(cid).votes.to_dict() == {}

    def test_invalid_force_status(self, service: RatifyService) -> None:
        cid = _create(service)
        result = service.force_status(cid, "approved")
        assert result.error_kind == "invalid_status"

    def test_failed_operation_writes_nothing(
        self, service: RatifyService, store: MemoryStore, event_log: EventLog,
    ) -> None:
        _create(service)
        before = store.document
        service.create_candidate("x", "y")
        assert store.document == before
        assert event_log.count == 1


class TestAuthorization:
    def test_member_with_pin_must_supply_it(self, service: RatifyService) -> None:
        service.add_member("D", pin="2468")
        cid = _create(service)
        result = service.record_vote(cid, "D", True)
        assert result.error_kind == "unauthorized"
        result = service.record_vote(cid, "D", True, pin="0000")
        assert result.error_kind == "unauthorized"
        result = service.record_vote(cid, "D", True, pin="2468")
        assert result.success

    def test_member_without_pin_votes_freely(self, service: RatifyService) -> None:
        cid = _create(service)
        assert service.record_vote(cid, "A", True).success

    def test_admin_pin_enforced_when_configured(self, store: MemoryStore) -> None:
        settings = Settings(pin_iterations=1000, event_log_path=None, admin_pin="root")
        service = RatifyService(store, settings=settings, id_factory=_ids())
        cid = _create(service)
        assert service.reopen(cid).error_kind == "unauthorized"
        assert service.force_status(cid, "banned", admin_pin="nope").error_kind == "unauthorized"
        assert service.resolve_by_tally(cid, admin_pin="").error_kind == "unauthorized"
        assert service.delete_candidate(cid).error_kind == "unauthorized"
        assert service.force_status(cid, "banned", admin_pin="root").success

    def test_admin_actions_open_without_admin_pin(self, service: RatifyService) -> None:
        cid = _create(service)
        assert service.reopen(cid).success

    @pytest.mark.parametrize("pin", [1234, b"root", ["root"]])
    def test_non_string_admin_pin_unauthorized(self, store: MemoryStore, pin: object) -> None:
        service = RatifyService(store, settings=Settings(pin_iterations=1000, admin_pin="root"))
        cid = _create(service)
        result = service.reopen(cid, admin_pin=pin)  # type: ignore[arg-type]
        assert not result.success
        assert result.error_kind == "unauthorized"


class TestAdminActions:
    def test_force_status_survives_recompute(self, service: RatifyService) -> None:
        cid = _create(service)
        result = service.force_status(cid, "banned")
        assert result.data["candidate"]["votes"] == {"A": True, "B": True, "C": True}
        # A re-vote by an existing member recomputes from the fabricated ledger.
        result = service.record_vote(cid, "A", True)
        assert result.data["candidate"]["status"] == "banned"

    def test_reopen_clears_votes(self, service: RatifyService) -> None:
        cid = _create(service)
        service.force_status(cid, "banned")
        result = service.reopen(cid)
        assert result.data["candidate"]["votes"] == {}
        assert result.data["candidate"]["status"] == "pending"

    def test_resolve_by_tally_reports_counts(self, service: RatifyService) -> None:
        cid = _create(service)
        service.record_vote(cid, "A", True)
        service.record_vote(cid, "B", False)
        result = service.resolve_by_tally(cid, "majority")
        assert result.data["tally"] == {"yes": 1, "no": 1, "mode": "majority"}
        assert result.data["candidate"]["status"] == "banned"

    def test_resolve_opposite(self, service: RatifyService) -> None:
        cid = _create(service)
        service.record_vote(cid, "A", True)
        result = service.resolve_by_tally(cid, "opposite")
        assert result.data["candidate"]["status"] == "allowed"

    def test_delete(self, service: RatifyService) -> None:
        cid = _create(service)
        result = service.delete_candidate(cid)
        assert result.data == {"deleted": cid}
        assert service.list_candidates() == []
        assert service.delete_candidate(cid).error_kind == "not_found"


class TestAudit:
    def test_each_mutation_is_logged(self, service: RatifyService, event_log: EventLog) -> None:
        cid = _create(service)
        service.record_vote(cid, "A", True)
        service.add_member("D", pin="2468")
        service.reopen(cid)
        service.force_status(cid, "allowed")
        service.resolve_by_tally(cid)
        service.delete_candidate(cid)
        kinds = [e.event_kind for e in event_log.events()]
        assert kinds == [
            EventKind.CANDIDATE_CREATED,
            EventKind.VOTE_RECORDED,
            EventKind.MEMBER_ADDED,
            EventKind.CANDIDATE_REOPENED,
            EventKind.STATUS_FORCED,
            EventKind.TALLY_RESOLVED,
            EventKind.CANDIDATE_DELETED,
        ]

    def test_vote_event_names_member(self, service: RatifyService, event_log: EventLog) -> None:
        cid = _create(service)
        service.record_vote(cid, "B", False)
        event = event_log.last_event
        assert event.actor_id == "B"
        assert event.payload == {"candidate_id": cid, "vote": False, "status": "pending"}

    def test_pin_never_logged(self, service: RatifyService, event_log: EventLog) -> None:
        service.add_member("D", pin="2468")
        assert "2468" not in repr(event_log.last_event.payload)
        assert "credential" not in repr(event_log.last_event.payload).lower()

    def test_audit_failure_keeps_mutation(self, store: MemoryStore) -> None:
        service = RatifyService(
            store, event_log=FailingEventLog(), settings=FAST_SETTINGS, id_factory=_ids(),
        )
        assert not service.audit_degraded
        result = service.create_candidate("Jamie", "S")
        assert result.success
        assert result.data["candidate"]["id"] == "cand001"
        assert "Audit degraded" in result.data["warnings"][0]
        assert service.audit_degraded
        assert [c["id"] for c in store.document["candidates"]] == ["cand001"]


class TestPersistenceFailure:
    def test_save_failure_reported(self) -> None:
        service = RatifyService(FailingStore(), settings=FAST_SETTINGS)
        result = service.create_candidate("Jamie", "S")
        assert not result.success
        assert result.error_kind == "persistence"
        assert "disk full" in result.errors[0]

    def test_corrupt_file_reported(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        path.write_text("{oops", encoding="utf-8")
        service = RatifyService(JsonSnapshotStore(path), settings=FAST_SETTINGS)
        result = service.create_candidate("Jamie", "S")
        assert result.error_kind == "persistence"


class TestFileBacked:
    def test_state_survives_new_service(self, tmp_path: Path) -> None:
        path = tmp_path / "data.json"
        first = RatifyService(JsonSnapshotStore(path), settings=FAST_SETTINGS)
        cid = first.create_candidate("Jamie", "S").data["candidate"]["id"]
        first.record_vote(cid, "Alice A", True)

        second = RatifyService(JsonSnapshotStore(path), settings=FAST_SETTINGS)
        candidate = second.get_candidate(cid)
        assert candidate.votes.to_dict() == {"Alice A": True}
        assert candidate.status.value == "pending"
