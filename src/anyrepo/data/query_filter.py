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
"""Wire model for filtered queries.

A :class:`QueryFilter` is sent by callers (and relayed verbatim by the HTTP
adapter), so the models serialize with the PascalCase field names that remote
peers expect while exposing snake_case attributes to Python code.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FilterOperator(str, enum.Enum):
    """Comparison applied by one filter condition.

    Peers may send the operator by name (``"StartsWith"``) or by ordinal
    (``2``); both forms are accepted.
    """

    EQUALS = "Equals"
    NOT_EQUALS = "NotEquals"
    STARTS_WITH = "StartsWith"
    ENDS_WITH = "EndsWith"
    CONTAINS = "Contains"
    LESS_THAN = "LessThan"
    GREATER_THAN = "GreaterThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"

    @classmethod
    def _missing_(cls, value: object) -> FilterOperator | None:
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < len(members):
            return members[value]
        if isinstance(value, str):
            folded = value.replace("_", "").lower()
            for member in members:
                if member.value.lower() == folded:
                    return member
        return None

    @property
    def is_pattern(self) -> bool:
        return self in (FilterOperator.STARTS_WITH, FilterOperator.ENDS_WITH, FilterOperator.CONTAINS)


class FilterProperty(BaseModel):
    """One condition: ``<field> <operator> <value>``.

    ``value`` is always carried as a string and parsed against the field's
    type when the filter is evaluated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="Name")
    value: str = Field(default="", alias="Value")
    operator: FilterOperator = Field(default=FilterOperator.EQUALS, alias="Operator")
    case_sensitive: bool = Field(default=False, alias="CaseSensitive")

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return value if isinstance(value, str) else str(value)


class QueryFilter(BaseModel):
    """A conjunction of conditions plus optional projection and ordering."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    include_fields: tuple[str, ...] = Field(default=(), alias="IncludePropertyNames")
    conditions: tuple[FilterProperty, ...] = Field(default=(), alias="FilterProperties")
    order_by: str = Field(default="", alias="OrderByPropertyName")
    order_by_descending: bool = Field(default=False, alias="OrderByDescending")

    @field_validator("include_fields", "order_by", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any, info: Any) -> Any:
        if value is None:
            return () if info.field_name == "include_fields" else ""
        return value

    @field_validator("conditions", mode="before")
    @classmethod
    def _no_conditions(cls, value: Any) -> Any:
        return () if value is None else value

    def where(
        self,
        name: str,
        operator: FilterOperator,
        value: Any,
        case_sensitive: bool = False,
    ) -> QueryFilter:
        """Return a copy with one more condition appended."""
        condition = FilterProperty(name=name, operator=operator, value=value, case_sensitive=case_sensitive)
        return self.model_copy(update={"conditions": (*self.conditions, condition)})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
