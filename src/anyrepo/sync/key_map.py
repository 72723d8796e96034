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
"""Local/remote identity reconciliation table."""

from __future__ import annotations

from typing import Any

import structlog

from anyrepo.data.ports.outbound import LocalTablePort
from anyrepo.sync.types import KeyMapping

logger = structlog.get_logger("anyrepo.sync")

KEY_FIELD = "local_id"


def _same(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


class KeyReconciliationMap:
    """Persistent ``local_id -> remote_id`` mapping for one record store.

    Identities are compared through their string form, so ``5`` and ``"5"``
    name the same record.
    """

    def __init__(self, table: LocalTablePort, store_name: str) -> None:
        self._table = table
        self.store_name = store_name

    async def open(self) -> None:
        await self._table.open({self.store_name: KEY_FIELD})

    async def all(self) -> list[KeyMapping]:
        rows = await self._table.to_array(self.store_name)
        return [KeyMapping(local_id=row[KEY_FIELD], remote_id=row.get("remote_id")) for row in rows]

    async def for_local(self, local_id: Any) -> KeyMapping | None:
        return next((m for m in await self.all() if _same(m.local_id, local_id)), None)

    async def for_remote(self, remote_id: Any) -> KeyMapping | None:
        return next((m for m in await self.all() if _same(m.remote_id, remote_id)), None)

    async def local_id_for(self, remote_id: Any) -> Any:
        """Local identity of *remote_id*; unmapped identities are shared by both sides."""
        mapping = await self.for_remote(remote_id)
        return mapping.local_id if mapping is not None else remote_id

    async def record(self, local_id: Any, remote_id: Any) -> KeyMapping:
        """Create or replace the mapping for *local_id*."""
        mapping = KeyMapping(local_id=local_id, remote_id=remote_id)
        row = {KEY_FIELD: local_id, "remote_id": remote_id}
        existing = await self.for_local(local_id)
        if existing is not None:
            row[KEY_FIELD] = existing.local_id
            await self._table.update_record(self.store_name, row)
        else:
            await self._table.add_record(self.store_name, row)
        logger.debug("key_mapping_recorded", store=self.store_name, local_id=local_id, remote_id=remote_id)
        return mapping

    async def provisional(self, local_id: Any) -> KeyMapping:
        return await self.record(local_id, None)

    async def forget_local(self, local_id: Any) -> bool:
        mapping = await self.for_local(local_id)
        if mapping is None:
            return False
        return await self._table.delete_record(self.store_name, mapping.local_id)

    async def forget_remote(self, remote_id: Any) -> bool:
        mapping = await self.for_remote(remote_id)
        if mapping is None:
            return False
        return await self._table.delete_record(self.store_name, mapping.local_id)

    async def replace_all(self, mappings: list[KeyMapping]) -> None:
        await self._table.clear_table(self.store_name)
        await self._table.bulk_add(
            self.store_name,
            [{KEY_FIELD: m.local_id, "remote_id": m.remote_id} for m in mappings],
        )

    async def clear(self) -> None:
        await self._table.clear_table(self.store_name)
