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
"""Raw SQL rendering of query filters.

Identifiers only ever come from the record descriptor (never from the wire),
and literals are always bound, so a filter cannot inject SQL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from anyrepo.data.comparator import FieldComparator
from anyrepo.data.dialect import SqlDialect
from anyrepo.data.engine import QueryFilterEngine
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import FieldAccessor, FieldType, RecordDescriptor

T = TypeVar("T")


@dataclass
class RenderedQuery:
    """SQL text plus its bound parameters (``:p0``, ``:p1``, ...)."""

    sql: str
    parameters: dict[str, Any] = field(default_factory=dict)
    parameter_fields: dict[str, FieldAccessor] = field(default_factory=dict)
    columns: list[FieldAccessor] = field(default_factory=list)

    def statement(self) -> Any:
        """Build a SQLAlchemy ``TextClause`` with typed bind parameters."""
        from sqlalchemy import String, bindparam, text

        binds = []
        for name, value in self.parameters.items():
            accessor = self.parameter_fields[name]
            if isinstance(value, str) and accessor.field_type is FieldType.STRING:
                sa_type = String()
            else:
                sa_type = accessor.sa_type if accessor.sa_type is not None else sqlalchemy_type(accessor.field_type)
            binds.append(bindparam(name, value, type_=sa_type))
        return text(self.sql).bindparams(*binds)


class SqlFilterRenderer(Generic[T]):
    """Turns a :class:`QueryFilter` into a parameterized ``SELECT``."""

    def __init__(
        self,
        descriptor: RecordDescriptor[T],
        dialect: SqlDialect,
        table_name: str | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.dialect = dialect
        self.table_name = table_name or descriptor.table_name
        self._engine = QueryFilterEngine(descriptor)

    @property
    def table(self) -> str:
        return self.dialect.quote(self.table_name)

    def column(self, accessor: FieldAccessor) -> str:
        return self.dialect.quote(accessor.column)

    def render(self, query_filter: QueryFilter) -> RenderedQuery:
        """Render ``SELECT <cols|*> FROM <table> [WHERE ...] [ORDER BY ...]``.

        Raises:
            ConfigurationException: Unknown field in a condition, projection
                or ordering.
            InvalidValueException: A literal does not parse.
            UnsupportedOperatorException: Operator illegal for the field type.
        """
        comparators = self._engine.compile(query_filter)
        order_field = self._engine.order_field(query_filter)
        columns = [self.descriptor.field(name) for name in query_filter.include_fields]

        select_list = ", ".join(self.column(c) for c in columns) if columns else "*"
        rendered = RenderedQuery(sql="", columns=columns)
        sql = f"SELECT {select_list} FROM {self.table}"

        where = self.where(comparators, rendered)
        if where:
            sql += f" WHERE {where}"
        if order_field is not None:
            sql += f" ORDER BY {self.column(order_field)}"
            if query_filter.order_by_descending:
                sql += " DESC"
        rendered.sql = sql
        return rendered

    def where(self, comparators: list[FieldComparator], rendered: RenderedQuery) -> str:
        fragments = []
        for index, comparator in enumerate(comparators):
            name = f"p{index}"
            fragment, value = comparator.sql(self.column(comparator.accessor), name, self.dialect)
            fragments.append(fragment)
            rendered.parameters[name] = value
            rendered.parameter_fields[name] = comparator.accessor
        return " AND ".join(fragments)


def sqlalchemy_type(field_type: FieldType | None) -> Any:
    from sqlalchemy import types as sa

    if field_type is None:
        return sa.NullType()
    if field_type in (FieldType.STRING, FieldType.CHAR):
        return sa.String()
    if field_type is FieldType.INT16 or field_type is FieldType.BYTE:
        return sa.SmallInteger()
    if field_type in (FieldType.INT32, FieldType.UINT16):
        return sa.Integer()
    if field_type.is_integer:
        return sa.BigInteger()
    if field_type is FieldType.FLOAT32:
        return sa.Float(precision=24)
    if field_type is FieldType.FLOAT64:
        return sa.Float()
    if field_type is FieldType.DECIMAL:
        return sa.Numeric(asdecimal=True)
    if field_type is FieldType.BOOL:
        return sa.Boolean()
    return sa.DateTime()
