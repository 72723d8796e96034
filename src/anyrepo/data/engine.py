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
"""In-memory query evaluation.

:class:`QueryFilterEngine` applies a :class:`QueryFilter` to a sequence of
records: every condition narrows the working set in the order supplied, and the
survivors are optionally ordered by one field. The SQL paths share the same
:class:`FieldComparator` instances, so all backends agree on parsing and
operator legality.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, Generic, TypeVar

from anyrepo.data.comparator import FieldComparator
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import FieldAccessor, FieldType, RecordDescriptor, as_datetime

T = TypeVar("T")


class QueryFilterEngine(Generic[T]):
    """Evaluates query filters against records of one type."""

    def __init__(self, descriptor: RecordDescriptor[T]) -> None:
        self.descriptor = descriptor

    @classmethod
    def for_type(cls, record_type: type[T], id_field: str | None = None) -> QueryFilterEngine[T]:
        return cls(RecordDescriptor.of(record_type, id_field))

    def compile(self, query_filter: QueryFilter) -> list[FieldComparator]:
        """Resolve and validate every condition, in order.

        Included field names are resolved too, so an unknown projection fails
        the same way on every backend.
        """
        for name in query_filter.include_fields:
            self.descriptor.field(name)
        return [FieldComparator(self.descriptor.field(c.name), c) for c in query_filter.conditions]

    def order_field(self, query_filter: QueryFilter) -> FieldAccessor | None:
        if not query_filter.order_by:
            return None
        return self.descriptor.field(query_filter.order_by)

    def evaluate(self, query_filter: QueryFilter, records: Iterable[T]) -> Iterator[T]:
        """Return the records matching every condition, ordered as requested.

        The filter is validated eagerly, so a bad field name, operator or
        literal raises here rather than while the result is consumed.
        """
        comparators = self.compile(query_filter)
        order_field = self.order_field(query_filter)

        working = list(records)
        for comparator in comparators:
            working = [record for record in working if comparator.matches(record)]

        if order_field is not None:
            working.sort(
                key=lambda record: _sort_key(order_field, order_field.get(record)),
                reverse=query_filter.order_by_descending,
            )
        return iter(working)

    def project(self, records: Iterable[T], query_filter: QueryFilter) -> list[dict[str, Any]]:
        """Render records as dicts limited to the filter's ``include_fields``."""
        include = query_filter.include_fields or None
        return [self.descriptor.to_primitive(record, include) for record in records]


def _sort_key(accessor: FieldAccessor, value: Any) -> tuple[bool, Any]:
    # None sorts first ascending
    if value is None:
        return (False, 0)
    if accessor.field_type is FieldType.DATETIME:
        value = as_datetime(value)
        if value.tzinfo is not None:
            value = value.replace(tzinfo=None) - value.utcoffset()
    return (True, value)
