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
"""Lookups that treat "not found" as an error.

Repositories report a missing record as ``None``/``False``; these helpers are
for call sites where absence is a bug.
"""

from __future__ import annotations

from typing import Any, TypeVar

from anyrepo.data.ports.outbound import RepositoryPort
from anyrepo.kernel.exceptions import ResourceNotFoundException

T = TypeVar("T")


async def require_by_id(repository: RepositoryPort[T, Any], id: Any) -> T:
    """Fetch a record or raise :class:`ResourceNotFoundException`."""
    record = await repository.fetch_by_id(id)
    if record is None:
        raise ResourceNotFoundException(f"No record with id {id!r}", code="RECORD_NOT_FOUND", context={"id": id})
    return record


async def require_update(repository: RepositoryPort[T, Any], record: T) -> T:
    """Update a record or raise :class:`ResourceNotFoundException` when its identity is absent."""
    updated = await repository.update(record)
    if updated is None:
        raise ResourceNotFoundException("Record to update does not exist", code="RECORD_NOT_FOUND")
    return updated
