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
"""Outbound ports: the uniform repository contract and the local table store."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

from anyrepo.data.query_filter import QueryFilter

T = TypeVar("T")
ID = TypeVar("ID")


@runtime_checkable
class RepositoryPort(Protocol[T, ID]):
    """CRUD contract every storage adapter implements.

    "Not found" is an expected outcome and is reported as ``None``/``False``,
    never raised. Adapters that reach a database or service over a connection
    report transport faults the same way after logging them. ``delete_all``
    returns ``False`` on such a fault and ``True`` or ``None`` otherwise.
    """

    async def fetch_all(self) -> list[T] | None: ...

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T] | None: ...

    async def fetch_by_id(self, id: ID) -> T | None: ...

    async def insert(self, record: T) -> T | None: ...

    async def update(self, record: T) -> T | None: ...

    async def delete_by_id(self, id: ID) -> bool: ...

    async def delete(self, record: T) -> bool: ...

    async def delete_all(self) -> bool | None: ...


@runtime_checkable
class LocalTablePort(Protocol):
    """Durable key/value tables on the local side of a synchronized store.

    Records are plain dicts. Each table has a key field; inserting a record
    whose key is unset lets the table assign the next integer key.
    """

    async def open(self, tables: dict[str, str]) -> None:
        """Declare tables as ``{table_name: key_field}``; idempotent."""
        ...

    async def clear_table(self, table: str) -> None: ...

    async def add_record(self, table: str, record: dict[str, Any]) -> Any:
        """Insert *record* and return its key."""
        ...

    async def update_record(self, table: str, record: dict[str, Any]) -> bool: ...

    async def delete_record(self, table: str, key: Any) -> bool: ...

    async def bulk_add(self, table: str, records: list[dict[str, Any]]) -> None: ...

    async def to_array(self, table: str) -> list[dict[str, Any]]:
        """Every record of *table* in ascending key order."""
        ...

    async def where(self, table: str, field: str, value: Any) -> list[dict[str, Any]]: ...

    async def get(self, table: str, key: Any) -> dict[str, Any] | None: ...
