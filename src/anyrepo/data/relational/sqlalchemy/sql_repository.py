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
"""Repository issuing raw SQL text over an async SQLAlchemy engine.

Every statement is built from descriptor identifiers and bound parameters.
Integer keys the database does not generate are allocated as ``MAX + 1``
inside the inserting transaction and retried when a concurrent writer wins
the race. Connection and driver faults are logged and reported as ``None`` or
``False``; constraint violations raise.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import bindparam, text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from anyrepo.data.dialect import SqlDialect
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import FieldAccessor, RecordDescriptor, from_primitive_value
from anyrepo.data.sql_renderer import SqlFilterRenderer, sqlalchemy_type
from anyrepo.kernel.exceptions import ConfigurationException, DuplicateKeyException, ValidationException

T = TypeVar("T")
ID = TypeVar("ID")

logger = logging.getLogger(__name__)

MAX_KEY_ATTEMPTS = 3


class SqlRepository(Generic[T, ID]):
    """CRUD repository rendering plain SQL for any supported record type.

    Args:
        record_type: Dataclass, pydantic model or mapped class describing a row.
        engine: Async engine the statements run on.
        table_name: Table to target; defaults to the mapped table or class name.
        id_field: Identity field; defaults to the primary key or ``id``.
        identity_generated: Whether the database assigns the key. Defaults to
            what the mapping declares (``False`` for unmapped records).
    """

    def __init__(
        self,
        record_type: type[T],
        engine: AsyncEngine,
        table_name: str | None = None,
        id_field: str | None = None,
        identity_generated: bool | None = None,
    ) -> None:
        self._descriptor: RecordDescriptor[T] = RecordDescriptor.of(record_type, id_field)
        self._engine = engine
        self._dialect = SqlDialect.from_engine(engine)
        self._renderer = SqlFilterRenderer(self._descriptor, self._dialect, table_name)
        self._generated = self._descriptor.identity_generated if identity_generated is None else identity_generated
        self._by_column = {a.column.lower(): a for a in self._descriptor.fields}

    @property
    def table(self) -> str:
        return self._renderer.table

    @property
    def _key(self) -> FieldAccessor:
        return self._descriptor.identity_field

    def _q(self, accessor: FieldAccessor) -> str:
        return self._renderer.column(accessor)

    @staticmethod
    def _bind(accessor: FieldAccessor, name: str, value: Any) -> Any:
        sa_type = accessor.sa_type if accessor.sa_type is not None else sqlalchemy_type(accessor.field_type)
        return bindparam(name, value, type_=sa_type)

    def _to_record(self, row: Any, partial: bool = False) -> T:
        values: dict[str, Any] = {}
        for column, value in row._mapping.items():
            accessor = self._by_column.get(str(column).lower())
            if accessor is not None:
                values[accessor.name] = from_primitive_value(accessor.field_type, value)
        return self._descriptor.build(values, partial=partial)

    def _fault(self, operation: str, exc: DBAPIError) -> None:
        logger.warning("%s on %s failed: %s", operation, self.table, exc.orig)

    def _constraint_violation(self, exc: IntegrityError, identity: Any) -> ValidationException:
        return ValidationException(
            f"Insert into {self.table} violated a constraint: {exc.orig}",
            code="CONSTRAINT_VIOLATION",
            context={"id": identity, "table": self._renderer.table_name},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_all(self) -> list[T] | None:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text(f"SELECT * FROM {self.table}"))
                return [self._to_record(row) for row in result]
        except DBAPIError as exc:
            self._fault("fetch_all", exc)
            return None

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T] | None:
        rendered = self._renderer.render(query_filter)
        logger.debug("Filtered query: %s %s", rendered.sql, rendered.parameters)
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(rendered.statement())
                partial = bool(rendered.columns)
                return [self._to_record(row, partial=partial) for row in result]
        except DBAPIError as exc:
            self._fault("fetch_filtered", exc)
            return None

    async def fetch_by_id(self, id: ID) -> T | None:
        try:
            key = self._descriptor.coerce_identity(id)
        except ConfigurationException:
            return None
        stmt = text(f"SELECT * FROM {self.table} WHERE {self._q(self._key)} = :id").bindparams(
            self._bind(self._key, "id", key)
        )
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        except DBAPIError as exc:
            self._fault("fetch_by_id", exc)
            return None
        return self._to_record(row) if row is not None else None

    async def _key_exists(self, key: Any) -> bool:
        stmt = text(f"SELECT 1 FROM {self.table} WHERE {self._q(self._key)} = :id").bindparams(
            self._bind(self._key, "id", key)
        )
        async with self._engine.connect() as conn:
            return (await conn.execute(stmt)).first() is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _insert_statement(self, values: dict[FieldAccessor, Any], returning: bool) -> Any:
        columns = ", ".join(self._q(a) for a in values)
        names = [f"v{i}" for i in range(len(values))]
        placeholders = ", ".join(f":{n}" for n in names)
        key = self._q(self._key)
        if returning and self._dialect.returning == "output":
            sql = f"INSERT INTO {self.table} ({columns}) OUTPUT INSERTED.{key} VALUES ({placeholders})"
        elif returning and self._dialect.returning == "returning":
            sql = f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders}) RETURNING {key}"
        else:
            sql = f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})"
        binds = [self._bind(a, n, v) for n, (a, v) in zip(names, values.items(), strict=True)]
        return text(sql).bindparams(*binds)

    def _values(self, record: T, include_key: bool) -> dict[FieldAccessor, Any]:
        return {
            accessor: accessor.get(record)
            for accessor in self._descriptor.fields
            if include_key or accessor is not self._key
        }

    async def insert(self, record: T) -> T | None:
        """Insert *record* and return it with its key.

        Returns ``None`` when the database cannot be reached.

        Raises:
            DuplicateKeyException: The explicit key is already taken.
            ValidationException: The row violates another constraint, or a
                string key was left empty.
        """
        identity = self._descriptor.identity(record)
        try:
            if not self._descriptor.is_unset(identity):
                return await self._insert_with_key(record, identity)
            if self._generated:
                return await self._insert_generated(record)
            self._descriptor.require_assignable_identity()
            return await self._insert_next_key(record)
        except DBAPIError as exc:
            self._fault("insert", exc)
            return None

    async def _insert_generated(self, record: T) -> T:
        try:
            async with self._engine.begin() as conn:
                stmt = self._insert_statement(self._values(record, include_key=False), returning=True)
                result = await conn.execute(stmt)
                if self._dialect.returning is not None:
                    new_id = result.scalar_one()
                else:
                    new_id = await self._max_key(conn)
        except IntegrityError as exc:
            raise self._constraint_violation(exc, None) from exc
        logger.debug("Inserted into %s with generated id=%s", self.table, new_id)
        return self._descriptor.copy_with_identity(record, new_id)

    async def _insert_with_key(self, record: T, identity: Any) -> T:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(self._insert_statement(self._values(record, include_key=True), returning=False))
        except IntegrityError as exc:
            if not await self._key_exists(identity):
                raise self._constraint_violation(exc, identity) from exc
            raise DuplicateKeyException(
                f"{self.table} already holds id {identity!r}",
                code="DUPLICATE_KEY",
                context={"id": identity, "table": self._renderer.table_name},
            ) from exc
        return record

    async def _insert_next_key(self, record: T) -> T:
        for attempt in range(1, MAX_KEY_ATTEMPTS + 1):
            next_id = 0
            try:
                async with self._engine.begin() as conn:
                    next_id = await self._max_key(conn) + 1
                    candidate = self._descriptor.copy_with_identity(record, next_id)
                    stmt = self._insert_statement(self._values(candidate, include_key=True), returning=False)
                    await conn.execute(stmt)
                return candidate
            except IntegrityError as exc:
                # retry only when another writer took the candidate key
                if not await self._key_exists(next_id):
                    raise self._constraint_violation(exc, next_id) from exc
                logger.warning("Key collision inserting into %s (attempt %s/%s)", self.table, attempt, MAX_KEY_ATTEMPTS)
        raise DuplicateKeyException(
            f"Could not allocate a key in {self.table} after {MAX_KEY_ATTEMPTS} attempts",
            code="DUPLICATE_KEY",
            context={"table": self._renderer.table_name},
        )

    async def _max_key(self, conn: AsyncConnection) -> int:
        result = await conn.execute(text(f"SELECT COALESCE(MAX({self._q(self._key)}), 0) FROM {self.table}"))
        return int(result.scalar_one())

    async def update(self, record: T) -> T | None:
        values = self._values(record, include_key=False)
        names = [f"v{i}" for i in range(len(values))]
        assignments = ", ".join(f"{self._q(a)} = :{n}" for n, a in zip(names, values, strict=True))
        binds = [self._bind(a, n, v) for n, (a, v) in zip(names, values.items(), strict=True)]
        binds.append(self._bind(self._key, "id", self._descriptor.identity(record)))
        stmt = text(f"UPDATE {self.table} SET {assignments} WHERE {self._q(self._key)} = :id").bindparams(*binds)
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
        except IntegrityError as exc:
            raise self._constraint_violation(exc, self._descriptor.identity(record)) from exc
        except DBAPIError as exc:
            self._fault("update", exc)
            return None
        return record if result.rowcount else None

    async def delete_by_id(self, id: ID) -> bool:
        try:
            key = self._descriptor.coerce_identity(id)
        except ConfigurationException:
            return False
        stmt = text(f"DELETE FROM {self.table} WHERE {self._q(self._key)} = :id").bindparams(
            self._bind(self._key, "id", key)
        )
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
        except DBAPIError as exc:
            self._fault("delete_by_id", exc)
            return False
        return bool(result.rowcount)

    async def delete(self, record: T) -> bool:
        return await self.delete_by_id(self._descriptor.identity(record))

    async def delete_all(self) -> bool:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(text(self._dialect.truncate.format(table=self.table)))
        except DBAPIError as exc:
            self._fault("delete_all", exc)
            return False
        return True
