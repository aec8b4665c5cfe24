"""Snapshot store — whole-document persistence of members and candidates.

The store is the only place state survives between operations. The
service loads a fresh snapshot before every operation and writes the
whole document back after every mutation; there are no partial writes
and nothing is cached across calls.

Document shape:

    {
      "members": [{"name": ..., "credentialHash": ...}],
      "candidates": [{"id": ..., "firstName": ..., ...}]
    }

A missing file is bootstrapped with the default member list.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from ratify.models.candidate import Candidate
from ratify.models.member import Member, MemberRegistry


logger = logging.getLogger(__name__)

DEFAULT_MEMBERS: tuple[str, ...] = ("Alice A", "Bob B", "Charlie C")


@dataclass
class Snapshot:
    """One loaded copy of the persisted document."""
    registry: MemberRegistry = field(default_factory=MemberRegistry)
    candidates: list[Candidate] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "members": [m.to_dict() for m in self.registry],
            "candidates": [c.to_dict() for c in self.candidates],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Snapshot:
        registry = MemberRegistry(
            [Member.from_dict(m) for m in data.get("members", [])]
        )
        candidates = [Candidate.from_dict(c) for c in data.get("candidates", [])]
        return Snapshot(registry=registry, candidates=candidates)

    @staticmethod
    def bootstrap(member_names: Sequence[str] = DEFAULT_MEMBERS) -> Snapshot:
        return Snapshot(registry=MemberRegistry([Member(name=n) for n in member_names]))


class SnapshotStore:
    """Load-snapshot / persist-snapshot contract."""

    def load(self) -> Snapshot:
        raise NotImplementedError

    def save(self, snapshot: Snapshot) -> None:
        raise NotImplementedError


class JsonSnapshotStore(SnapshotStore):
    """Snapshot persisted as a single pretty-printed JSON file."""

    def __init__(
        self,
        storage_path: Path,
        default_members: Sequence[str] = DEFAULT_MEMBERS,
    ) -> None:
        self._storage_path = Path(storage_path)
        self._default_members = tuple(default_members)

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def load(self) -> Snapshot:
        """Read the document, creating it with default members if absent.

        Raises ValueError if the file is not valid JSON or lacks required
        candidate fields.
        """
        if not self._storage_path.exists():
            logger.info("Bootstrapping data file %s", self._storage_path)
            snapshot = Snapshot.bootstrap(self._default_members)
            self.save(snapshot)
            return snapshot

        with self._storage_path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(
                    f"Corrupt data file {self._storage_path}: {e}"
                ) from e
        try:
            return Snapshot.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(
                f"Malformed data file {self._storage_path}: {e!r}"
            ) from e

    def save(self, snapshot: Snapshot) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("w", encoding="utf-8") as f:
            json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)


class MemoryStore(SnapshotStore):
    """In-memory store holding the serialised document.

    Every load returns a freshly deserialised copy, so callers see the
    same reload semantics as the file-backed store.
    """

    def __init__(
        self,
        data: Optional[dict[str, Any]] = None,
        default_members: Sequence[str] = DEFAULT_MEMBERS,
    ) -> None:
        if data is None:
            data = Snapshot.bootstrap(default_members).to_dict()
        self._data = copy.deepcopy(data)

    @property
    def document(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def load(self) -> Snapshot:
        return Snapshot.from_dict(copy.deepcopy(self._data))

    def save(self, snapshot: Snapshot) -> None:
        self._data = snapshot.to_dict()
