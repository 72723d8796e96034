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
"""Repository over a local table store; filters are evaluated in memory."""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from anyrepo.data.engine import QueryFilterEngine
from anyrepo.data.ports.outbound import LocalTablePort
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import RecordDescriptor
from anyrepo.kernel.exceptions import ConfigurationException

T = TypeVar("T")
ID = TypeVar("ID")

logger = logging.getLogger(__name__)


class LocalDocumentRepository(Generic[T, ID]):
    """CRUD over one table of a :class:`LocalTablePort`.

    Records are stored as JSON-safe dicts; the table assigns integer keys to
    records inserted with an unset identity.
    """

    def __init__(
        self,
        record_type: type[T],
        table: LocalTablePort,
        store_name: str | None = None,
        id_field: str | None = None,
    ) -> None:
        self._descriptor: RecordDescriptor[T] = RecordDescriptor.of(record_type, id_field)
        self._engine = QueryFilterEngine(self._descriptor)
        self._table = table
        self.store_name = store_name or self._descriptor.table_name
        self._opened = False

    @property
    def descriptor(self) -> RecordDescriptor[T]:
        return self._descriptor

    async def _ensure_open(self) -> None:
        if not self._opened:
            await self._table.open({self.store_name: self._descriptor.identity_field.name})
            self._opened = True

    async def fetch_all(self) -> list[T]:
        await self._ensure_open()
        return [self._descriptor.from_primitive(row) for row in await self._table.to_array(self.store_name)]

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T]:
        # validate before touching the store
        self._engine.compile(query_filter)
        return list(self._engine.evaluate(query_filter, await self.fetch_all()))

    async def fetch_by_id(self, id: ID) -> T | None:
        try:
            key = self._descriptor.coerce_identity(id)
        except ConfigurationException:
            return None
        await self._ensure_open()
        row = await self._table.get(self.store_name, key)
        return self._descriptor.from_primitive(row) if row is not None else None

    async def insert(self, record: T) -> T:
        await self._ensure_open()
        row = self._descriptor.to_primitive(record)
        key = await self._table.add_record(self.store_name, row)
        logger.debug("Inserted %s key=%s into %s", self._descriptor.record_type.__name__, key, self.store_name)
        return self._descriptor.copy_with_identity(record, key)

    async def update(self, record: T) -> T | None:
        await self._ensure_open()
        updated = await self._table.update_record(self.store_name, self._descriptor.to_primitive(record))
        return record if updated else None

    async def delete_by_id(self, id: ID) -> bool:
        try:
            key = self._descriptor.coerce_identity(id)
        except ConfigurationException:
            return False
        await self._ensure_open()
        return await self._table.delete_record(self.store_name, key)

    async def delete(self, record: T) -> bool:
        return await self.delete_by_id(self._descriptor.identity(record))

    async def delete_all(self) -> None:
        await self._ensure_open()
        await self._table.clear_table(self.store_name)

    async def replace_all(self, records: list[T]) -> None:
        """Clear the table and store *records* with their identities as given."""
        await self._ensure_open()
        await self._table.clear_table(self.store_name)
        await self._table.bulk_add(self.store_name, [self._descriptor.to_primitive(r) for r in records])
