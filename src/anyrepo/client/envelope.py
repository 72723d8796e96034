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
"""Response envelopes returned by the remote CRUD endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = False
    error_messages: list[str] = Field(default_factory=list)


class EntityResponse(_Envelope):
    """``{"success": ..., "errorMessages": [...], "data": {...}}``"""

    data: dict[str, Any] | None = None


class ListResponse(_Envelope):
    """``{"success": ..., "errorMessages": [...], "data": [{...}, ...]}``"""

    data: list[dict[str, Any]] | None = None
