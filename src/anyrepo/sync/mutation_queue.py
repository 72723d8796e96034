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
"""Durable, ordered queue of writes made while offline."""

from __future__ import annotations

from typing import Any

import structlog

from anyrepo.data.ports.outbound import LocalTablePort
from anyrepo.sync.types import MutationKind, PendingMutation

logger = structlog.get_logger("anyrepo.sync")

SEQ_FIELD = "seq"


class PendingMutationQueue:
    """Queue of :class:`PendingMutation` entries in insertion order.

    Appends are awaited, so once a local write returns its queue entry is
    durable. Entries leave the queue one at a time when replayed; an entry
    that keeps failing moves to the dead-letter store after *max_attempts*.
    """

    def __init__(
        self,
        table: LocalTablePort,
        store_name: str,
        dead_letter_store: str,
        max_attempts: int = 5,
    ) -> None:
        self._table = table
        self.store_name = store_name
        self.dead_letter_store = dead_letter_store
        self.max_attempts = max_attempts

    async def open(self) -> None:
        await self._table.open({self.store_name: SEQ_FIELD, self.dead_letter_store: SEQ_FIELD})

    async def append(
        self,
        kind: MutationKind,
        record: dict[str, Any] | None = None,
        record_id: Any = None,
    ) -> PendingMutation:
        entry = PendingMutation(kind=kind, record=record, record_id=record_id)
        entry.seq = await self._table.add_record(self.store_name, entry.to_row())
        logger.debug("mutation_queued", store=self.store_name, seq=entry.seq, kind=kind.value, record_id=record_id)
        return entry

    async def pending(self) -> list[PendingMutation]:
        rows = await self._table.to_array(self.store_name)
        return [PendingMutation.from_row(row) for row in rows]

    async def is_empty(self) -> bool:
        return not await self._table.to_array(self.store_name)

    async def remove(self, entry: PendingMutation) -> bool:
        return await self._table.delete_record(self.store_name, entry.seq)

    async def mark_failed(self, entry: PendingMutation, error: str) -> bool:
        """Count a failed replay; returns ``True`` when the entry was dead-lettered."""
        entry.attempts += 1
        entry.last_error = error
        if entry.attempts >= self.max_attempts:
            await self._table.add_record(self.dead_letter_store, entry.to_row())
            await self._table.delete_record(self.store_name, entry.seq)
            logger.error(
                "mutation_dead_lettered",
                store=self.store_name,
                seq=entry.seq,
                kind=entry.kind.value,
                record_id=entry.record_id,
                attempts=entry.attempts,
                error=error,
            )
            return True
        await self._table.update_record(self.store_name, entry.to_row())
        logger.warning(
            "mutation_replay_failed",
            store=self.store_name,
            seq=entry.seq,
            kind=entry.kind.value,
            attempts=entry.attempts,
            error=error,
        )
        return False

    async def dead_letters(self) -> list[PendingMutation]:
        rows = await self._table.to_array(self.dead_letter_store)
        return [PendingMutation.from_row(row) for row in rows]

    async def clear(self) -> None:
        await self._table.clear_table(self.store_name)
