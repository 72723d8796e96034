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
"""AnyRepo Data: query filters, record descriptors and the repository contract.

One :class:`RepositoryPort` contract, several storage adapters:

    - ``anyrepo.data.memory``: list-backed, for tests and caches.
    - ``anyrepo.data.relational.sqlalchemy``: SQLAlchemy ORM expressions
      (:class:`OrmRepository`) and raw SQL text (:class:`SqlRepository`).
    - ``anyrepo.data.document.mongodb``: local tables on Motor.
    - ``anyrepo.client``: a remote CRUD API over httpx.

Filters are evaluated by :class:`QueryFilterEngine` in memory or rendered by
:class:`SqlFilterRenderer`; both share :class:`FieldComparator`.
"""

from anyrepo.data.comparator import FieldComparator
from anyrepo.data.dialect import SqlDialect
from anyrepo.data.engine import QueryFilterEngine
from anyrepo.data.lookup import require_by_id, require_update
from anyrepo.data.memory import MemoryRepository
from anyrepo.data.ports.outbound import LocalTablePort, RepositoryPort
from anyrepo.data.query_filter import FilterOperator, FilterProperty, QueryFilter
from anyrepo.data.record import FieldAccessor, FieldType, RecordDescriptor
from anyrepo.data.sql_renderer import RenderedQuery, SqlFilterRenderer

__all__ = [
    "FieldAccessor",
    "FieldComparator",
    "FieldType",
    "FilterOperator",
    "FilterProperty",
    "LocalTablePort",
    "MemoryRepository",
    "QueryFilter",
    "QueryFilterEngine",
    "RecordDescriptor",
    "RenderedQuery",
    "RepositoryPort",
    "SqlDialect",
    "SqlFilterRenderer",
    "require_by_id",
    "require_update",
]
