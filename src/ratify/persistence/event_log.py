"""Audit log of ratification actions, one JSON object per line.

Each successful mutation appends one event. A record is hashed over its
canonical JSON (sorted keys, no hash field) and the hash is re-checked
when the file is read back. A log that fails the check is rejected as a
whole rather than partially loaded.

Payloads identify candidates and outcomes only. PINs and credential
hashes are never written here.
"""

from __future__ import annotations

import enum
import hashlib
import json
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ratify.models.candidate import format_timestamp


class EventKind(str, enum.Enum):
    MEMBER_ADDED = "member_added"
    CANDIDATE_CREATED = "candidate_created"
    VOTE_RECORDED = "vote_recorded"
    # Admin actions
    CANDIDATE_REOPENED = "candidate_reopened"
    STATUS_FORCED = "status_forced"
    TALLY_RESOLVED = "tally_resolved"
    CANDIDATE_DELETED = "candidate_deleted"


_HASHED_FIELDS = ("event_id", "event_kind", "timestamp_utc", "actor_id", "payload")


def _digest(fields: dict[str, Any]) -> str:
    body = json.dumps(
        {name: fields[name] for name in _HASHED_FIELDS},
        sort_keys=True,
        ensure_ascii=False,
    )
    return "sha256:" + hashlib.sha256(body.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class EventRecord:
    """One audit entry. ``actor_id`` is a member name, "admin" or "public"."""
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        event_id: Optional[str] = None,
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        fields = {
            "event_id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
            "event_kind": event_kind.value,
            "timestamp_utc": format_timestamp(timestamp_utc or datetime.now(timezone.utc)),
            "actor_id": actor_id,
            "payload": dict(payload),
        }
        return EventRecord(
            event_id=fields["event_id"],
            event_kind=event_kind,
            timestamp_utc=fields["timestamp_utc"],
            actor_id=actor_id,
            payload=fields["payload"],
            event_hash=_digest(fields),
        )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> EventRecord:
        """Rebuild a stored record, verifying its hash.

        Raises ValueError on a hash mismatch or unknown event kind.
        """
        expected = _digest(data)
        if data["event_hash"] != expected:
            raise ValueError(
                f"Integrity check failed for event {data['event_id']}: "
                f"stored {data['event_hash']} != computed {expected}"
            )
        return EventRecord(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            actor_id=data["actor_id"],
            payload=data["payload"],
            event_hash=data["event_hash"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only event log, in memory or backed by a JSONL file.

    The file is written before the in-memory index, so an append that
    fails on disk leaves the log unchanged.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = Path(storage_path) if storage_path else None
        self._events: list[EventRecord] = []
        self._ids: set[str] = set()
        self._by_candidate: dict[str, list[EventRecord]] = defaultdict(list)

        if self._storage_path is not None and self._storage_path.exists():
            for record in self._read(self._storage_path):
                self._index(record)

    @property
    def storage_path(self) -> Optional[Path]:
        return self._storage_path

    def append(self, event: EventRecord) -> None:
        """Append an event.

        Raises ValueError if an event with the same id was already logged.
        """
        if event.event_id in self._ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        if self._storage_path is not None:
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False))
                f.write("\n")
        self._index(event)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_for_candidate(self, candidate_id: str) -> list[EventRecord]:
        """Events whose payload names this candidate, oldest first."""
        return list(self._by_candidate.get(candidate_id, ()))

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def _index(self, event: EventRecord) -> None:
        self._events.append(event)
        self._ids.add(event.event_id)
        candidate_id = event.payload.get("candidate_id")
        if candidate_id:
            self._by_candidate[candidate_id].append(event)

    @staticmethod
    def _read(path: Path) -> list[EventRecord]:
        """Parse and verify every line of a log file.

        Raises ValueError naming the first bad line: unparseable JSON,
        a missing field, a hash mismatch or a repeated event id.
        """
        records: list[EventRecord] = []
        seen: set[str] = set()
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    record = EventRecord.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError) as e:
                    raise ValueError(f"Unreadable event (line {line_num}): {e!r}") from e
                except ValueError as e:
                    raise ValueError(f"{e} (line {line_num})") from e
                if record.event_id in seen:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {record.event_id}"
                    )
                seen.add(record.event_id)
                records.append(record)
        return records
