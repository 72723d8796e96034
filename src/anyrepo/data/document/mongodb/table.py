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
"""Local tables on a Motor database.

Each table is one collection whose documents keep their key in ``_id``.
Integer keys come from a per-table counter document, bumped atomically with
``find_one_and_update``; an explicitly supplied integer key moves the counter
forward so generated keys never collide with it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from anyrepo.config.properties import DocumentProperties
from anyrepo.data.record import RecordDescriptor
from anyrepo.kernel.exceptions import DuplicateKeyException

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorDatabase

    from anyrepo.core.config import Config

logger = logging.getLogger(__name__)

COUNTERS_COLLECTION = "__anyrepo_counters"


class MotorLocalTable:
    """:class:`~anyrepo.data.ports.outbound.LocalTablePort` over MongoDB."""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._db = database
        self._keys: dict[str, str] = {}

    @classmethod
    def from_config(cls, config: Config) -> MotorLocalTable:
        from motor.motor_asyncio import AsyncIOMotorClient

        props = config.bind(DocumentProperties)
        return cls(AsyncIOMotorClient(props.uri)[props.database])

    def key_field(self, table: str) -> str:
        return self._keys.get(table, "id")

    async def open(self, tables: dict[str, str]) -> None:
        self._keys.update(tables)

    def _to_document(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        key_field = self.key_field(table)
        document = {k: v for k, v in record.items() if k != key_field}
        document["_id"] = record.get(key_field)
        return document

    def _to_record(self, table: str, document: dict[str, Any]) -> dict[str, Any]:
        record = {k: v for k, v in document.items() if k != "_id"}
        record[self.key_field(table)] = document["_id"]
        return record

    async def _next_key(self, table: str) -> int:
        counter = await self._db[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": table},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])

    async def _advance_counter(self, table: str, key: int) -> None:
        await self._db[COUNTERS_COLLECTION].update_one({"_id": table}, {"$max": {"seq": key}}, upsert=True)

    async def clear_table(self, table: str) -> None:
        await self._db[table].delete_many({})

    async def add_record(self, table: str, record: dict[str, Any]) -> Any:
        document = self._to_document(table, record)
        key = document["_id"]
        if RecordDescriptor.is_unset(key):
            key = document["_id"] = await self._next_key(table)
        elif isinstance(key, int) and not isinstance(key, bool):
            await self._advance_counter(table, key)
        try:
            await self._db[table].insert_one(document)
        except DuplicateKeyError as exc:
            raise DuplicateKeyException(
                f"Table '{table}' already holds key {key!r}",
                code="DUPLICATE_KEY",
                context={"table": table, "id": key},
            ) from exc
        return key

    async def update_record(self, table: str, record: dict[str, Any]) -> bool:
        document = self._to_document(table, record)
        result = await self._db[table].replace_one({"_id": document["_id"]}, document)
        return result.matched_count > 0

    async def delete_record(self, table: str, key: Any) -> bool:
        result = await self._db[table].delete_one({"_id": key})
        return result.deleted_count > 0

    async def bulk_add(self, table: str, records: list[dict[str, Any]]) -> None:
        for record in records:
            await self.add_record(table, record)

    async def to_array(self, table: str) -> list[dict[str, Any]]:
        cursor = self._db[table].find({}).sort("_id", 1)
        return [self._to_record(table, document) async for document in cursor]

    async def where(self, table: str, field: str, value: Any) -> list[dict[str, Any]]:
        query_field = "_id" if field == self.key_field(table) else field
        cursor = self._db[table].find({query_field: value}).sort("_id", 1)
        return [self._to_record(table, document) async for document in cursor]

    async def get(self, table: str, key: Any) -> dict[str, Any] | None:
        document = await self._db[table].find_one({"_id": key})
        return self._to_record(table, document) if document is not None else None
