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
"""Repository that compiles query filters into SQLAlchemy ORM expressions."""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from anyrepo.data.dialect import SqlDialect
from anyrepo.data.engine import QueryFilterEngine
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import RecordDescriptor
from anyrepo.kernel.exceptions import ConfigurationException, DuplicateKeyException, ValidationException

T = TypeVar("T")
ID = TypeVar("ID")

logger = logging.getLogger(__name__)


class OrmRepository(Generic[T, ID]):
    """CRUD repository for SQLAlchemy mapped records.

    The session's transaction belongs to the caller: mutations are flushed so
    generated keys are populated, but never committed here.

    Usage::

        async with session_factory() as session:
            repo = OrmRepository(Customer, session)
            saved = await repo.insert(Customer(name="Jenny Jones"))
            await session.commit()
    """

    def __init__(self, model: type[T], session: AsyncSession | None = None, id_field: str | None = None) -> None:
        self._model = model
        self._session = session
        self._descriptor: RecordDescriptor[T] = RecordDescriptor.of(model, id_field)
        self._engine = QueryFilterEngine(self._descriptor)

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("No AsyncSession configured for OrmRepository")
        return self._session

    def _column(self, name: str) -> Any:
        return getattr(self._model, name)

    def _dialect(self) -> SqlDialect:
        return SqlDialect.for_name(self._require_session().get_bind().dialect.name)

    def build_query(self, query_filter: QueryFilter) -> Select[Any]:
        """Compile *query_filter* into a ``SELECT`` over the mapped class."""
        comparators = self._engine.compile(query_filter)
        order_field = self._engine.order_field(query_filter)
        include = [self._descriptor.field(name) for name in query_filter.include_fields]
        dialect = self._dialect()

        stmt = select(*[self._column(a.name) for a in include]) if include else select(self._model)
        for comparator in comparators:
            stmt = stmt.where(comparator.clause(self._column(comparator.accessor.name), dialect))
        if order_field is not None:
            column = self._column(order_field.name)
            stmt = stmt.order_by(column.desc() if query_filter.order_by_descending else column.asc())
        return stmt

    def _fault(self, operation: str, exc: DBAPIError) -> None:
        logger.warning("%s on %s failed: %s", operation, self._model.__name__, exc.orig)

    def _integrity_failure(self, exc: IntegrityError, record: T) -> Exception:
        identity = self._descriptor.identity(record)
        if _is_key_conflict(exc):
            return DuplicateKeyException(
                f"Insert of {self._model.__name__} violated a unique constraint",
                code="DUPLICATE_KEY",
                context={"id": identity},
            )
        return ValidationException(
            f"{self._model.__name__} violated a constraint: {exc.orig}",
            code="CONSTRAINT_VIOLATION",
            context={"id": identity},
        )

    async def fetch_all(self) -> list[T] | None:
        try:
            result = await self._require_session().execute(select(self._model))
        except DBAPIError as exc:
            self._fault("fetch_all", exc)
            return None
        return list(result.scalars().all())

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T] | None:
        stmt = self.build_query(query_filter)
        try:
            result = await self._require_session().execute(stmt)
        except DBAPIError as exc:
            self._fault("fetch_filtered", exc)
            return None
        if not query_filter.include_fields:
            return list(result.scalars().all())
        return [self._descriptor.build(row._asdict(), partial=True) for row in result.all()]

    async def fetch_by_id(self, id: ID) -> T | None:
        try:
            key = self._descriptor.coerce_identity(id)
        except ConfigurationException:
            return None
        try:
            return await self._require_session().get(self._model, key)
        except DBAPIError as exc:
            self._fault("fetch_by_id", exc)
            return None

    async def _assign_identity(self, session: AsyncSession, record: T) -> None:
        identity = self._descriptor.identity(record)
        if self._descriptor.is_unset(identity):
            if self._descriptor.identity_generated:
                # 0 would be inserted literally; None lets the database assign the key
                self._descriptor.identity_field.set(record, None)
            else:
                self._descriptor.require_assignable_identity()
                key_column = self._column(self._descriptor.identity_field.name)
                next_id = await session.scalar(select(func.coalesce(func.max(key_column), 0) + 1))
                self._descriptor.set_identity(record, next_id)
        elif await session.get(self._model, identity) is not None:
            raise DuplicateKeyException(
                f"{self._model.__name__} with id {identity!r} already exists",
                code="DUPLICATE_KEY",
                context={"id": identity},
            )

    async def insert(self, record: T) -> T | None:
        """Add and flush *record*; ``None`` when the database cannot be reached.

        A failed flush leaves the session needing a rollback.

        Raises:
            DuplicateKeyException: The key is already taken.
            ValidationException: Another constraint failed, or a string key
                was left empty.
        """
        session = self._require_session()
        try:
            await self._assign_identity(session, record)
            session.add(record)
            await session.flush()
        except IntegrityError as exc:
            raise self._integrity_failure(exc, record) from exc
        except DBAPIError as exc:
            self._fault("insert", exc)
            return None
        logger.debug("Inserted %s id=%s", self._model.__name__, self._descriptor.identity(record))
        return record

    async def update(self, record: T) -> T | None:
        session = self._require_session()
        identity = self._descriptor.identity(record)
        try:
            if await session.get(self._model, identity) is None:
                return None
            merged = await session.merge(record)
            await session.flush()
        except IntegrityError as exc:
            raise self._integrity_failure(exc, record) from exc
        except DBAPIError as exc:
            self._fault("update", exc)
            return None
        return merged

    async def delete_by_id(self, id: ID) -> bool:
        session = self._require_session()
        try:
            key = self._descriptor.coerce_identity(id)
        except ConfigurationException:
            return False
        try:
            record = await session.get(self._model, key)
            if record is None:
                return False
            await session.delete(record)
            await session.flush()
        except DBAPIError as exc:
            self._fault("delete_by_id", exc)
            return False
        return True

    async def delete(self, record: T) -> bool:
        return await self.delete_by_id(self._descriptor.identity(record))

    async def delete_all(self) -> bool:
        session = self._require_session()
        try:
            await session.execute(delete(self._model))
            await session.flush()
        except DBAPIError as exc:
            self._fault("delete_all", exc)
            return False
        return True


def _is_key_conflict(exc: IntegrityError) -> bool:
    """Whether a driver error reports a unique or primary key violation."""
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate:
        return str(sqlstate) == "23505"
    message = str(exc.orig).lower()
    return any(marker in message for marker in ("unique", "duplicate", "primary key"))
