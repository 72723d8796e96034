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
"""List-backed repository for tests, demos and caches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from anyrepo.data.engine import QueryFilterEngine
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import RecordDescriptor
from anyrepo.kernel.exceptions import DuplicateKeyException

T = TypeVar("T")
ID = TypeVar("ID")

logger = logging.getLogger(__name__)


class MemoryRepository(Generic[T, ID]):
    """Repository holding records in a Python list.

    Mutations are serialized by an :class:`asyncio.Lock`. Integer identities
    that are unset on insert are assigned ``max + 1``; inserting an identity
    that is already present raises :class:`DuplicateKeyException`.

    Usage::

        repo = MemoryRepository(Customer)
        saved = await repo.insert(Customer(name="Jenny Jones"))
        saved.id  # 1
    """

    def __init__(
        self,
        record_type: type[T],
        id_field: str | None = None,
        records: Iterable[T] | None = None,
    ) -> None:
        self._descriptor: RecordDescriptor[T] = RecordDescriptor.of(record_type, id_field)
        self._engine = QueryFilterEngine(self._descriptor)
        self._records: list[T] = list(records or [])
        self._lock = asyncio.Lock()

    @property
    def descriptor(self) -> RecordDescriptor[T]:
        return self._descriptor

    def _index_of(self, id: Any) -> int:
        for index, record in enumerate(self._records):
            if self._descriptor.same_identity(self._descriptor.identity(record), id):
                return index
        return -1

    def _next_identity(self) -> int:
        ids = [self._descriptor.identity(r) for r in self._records]
        return max((int(i) for i in ids if isinstance(i, int)), default=0) + 1

    async def fetch_all(self) -> list[T]:
        return list(self._records)

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T]:
        return list(self._engine.evaluate(query_filter, self._records))

    async def fetch_by_id(self, id: ID) -> T | None:
        index = self._index_of(id)
        return self._records[index] if index >= 0 else None

    async def insert(self, record: T) -> T:
        async with self._lock:
            identity = self._descriptor.identity(record)
            if self._descriptor.is_unset(identity):
                self._descriptor.require_assignable_identity()
                record = self._descriptor.copy_with_identity(record, self._next_identity())
            elif self._index_of(identity) >= 0:
                raise DuplicateKeyException(
                    f"{self._descriptor.record_type.__name__} with id {identity!r} already exists",
                    code="DUPLICATE_KEY",
                    context={"id": identity},
                )
            self._records.append(record)
            logger.debug("Inserted %s id=%s", self._descriptor.record_type.__name__, self._descriptor.identity(record))
            return record

    async def update(self, record: T) -> T | None:
        async with self._lock:
            index = self._index_of(self._descriptor.identity(record))
            if index < 0:
                return None
            self._records[index] = record
            return record

    async def delete_by_id(self, id: ID) -> bool:
        async with self._lock:
            index = self._index_of(id)
            if index < 0:
                return False
            del self._records[index]
            return True

    async def delete(self, record: T) -> bool:
        return await self.delete_by_id(self._descriptor.identity(record))

    async def delete_all(self) -> None:
        async with self._lock:
            self._records.clear()
