# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Value types of the synchronization layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class MutationKind(str, Enum):
    """Operation recorded while offline."""

    INSERT = "Insert"
    UPDATE = "Update"
    DELETE = "Delete"
    DELETE_ALL = "DeleteAll"


@dataclass
class PendingMutation:
    """One queued offline write.

    ``record`` is the JSON-safe rendering of the record as written locally
    (``None`` for :attr:`MutationKind.DELETE_ALL`); ``record_id`` is its local
    identity.
    """

    kind: MutationKind
    record: dict[str, Any] | None = None
    record_id: Any = None
    seq: int | None = None
    attempts: int = 0
    last_error: str | None = None
    queued_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_row(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "kind": self.kind.value,
            "record": self.record,
            "record_id": self.record_id,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "queued_at": self.queued_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PendingMutation:
        return cls(
            kind=MutationKind(row["kind"]),
            record=row.get("record"),
            record_id=row.get("record_id"),
            seq=row.get("seq"),
            attempts=int(row.get("attempts") or 0),
            last_error=row.get("last_error"),
            queued_at=row.get("queued_at") or "",
        )


@dataclass(frozen=True)
class KeyMapping:
    """Link between a local identity and its remote identity.

    ``remote_id`` is ``None`` while the record exists only locally.
    """

    local_id: Any
    remote_id: Any = None

    @property
    def provisional(self) -> bool:
        return self.remote_id is None


@dataclass(frozen=True)
class DataChangedEvent:
    """Raised after a peer's change has been applied to the local mirror."""

    table: str
    action: str
    record_id: str
