"""Persistence — snapshot store and audit event log."""

from ratify.persistence.event_log import EventKind, EventLog, EventRecord
from ratify.persistence.snapshot_store import (
    DEFAULT_MEMBERS,
    JsonSnapshotStore,
    MemoryStore,
    Snapshot,
    SnapshotStore,
)

__all__ = [
    "DEFAULT_MEMBERS",
    "EventKind",
    "EventLog",
    "EventRecord",
    "JsonSnapshotStore",
    "MemoryStore",
    "Snapshot",
    "SnapshotStore",
]
