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
"""Per-field comparison: literal parsing, operator legality, and the three renderings.

A :class:`FieldComparator` is built from one resolved field and one filter
condition. Construction validates the operator against the field type and
parses the literal, so a malformed filter fails before any record is touched.
The comparator can then be rendered as

* an in-memory predicate (``predicate``),
* a SQLAlchemy boolean clause (``clause``), or
* a raw SQL fragment plus bound parameter (``sql``).
"""

from __future__ import annotations

import math
import operator as op
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from anyrepo.data.dialect import LIKE_ESCAPE, SqlDialect
from anyrepo.data.query_filter import FilterOperator, FilterProperty
from anyrepo.data.record import INTEGER_BOUNDS, FieldAccessor, FieldType, align_datetimes, as_datetime
from anyrepo.kernel.exceptions import ConfigurationException, InvalidValueException, UnsupportedOperatorException

_ORDERING = frozenset(
    {
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.LESS_THAN,
        FilterOperator.GREATER_THAN,
        FilterOperator.LESS_THAN_OR_EQUAL,
        FilterOperator.GREATER_THAN_OR_EQUAL,
    }
)
_EQUALITY = frozenset({FilterOperator.EQUALS, FilterOperator.NOT_EQUALS})

_COMPARE: dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.EQUALS: op.eq,
    FilterOperator.NOT_EQUALS: op.ne,
    FilterOperator.LESS_THAN: op.lt,
    FilterOperator.GREATER_THAN: op.gt,
    FilterOperator.LESS_THAN_OR_EQUAL: op.le,
    FilterOperator.GREATER_THAN_OR_EQUAL: op.ge,
    FilterOperator.STARTS_WITH: str.startswith,
    FilterOperator.ENDS_WITH: str.endswith,
    FilterOperator.CONTAINS: op.contains,
}

_SQL_OPERATORS: dict[FilterOperator, str] = {
    FilterOperator.EQUALS: "=",
    FilterOperator.NOT_EQUALS: "<>",
    FilterOperator.LESS_THAN: "<",
    FilterOperator.GREATER_THAN: ">",
    FilterOperator.LESS_THAN_OR_EQUAL: "<=",
    FilterOperator.GREATER_THAN_OR_EQUAL: ">=",
}


def legal_operators(field_type: FieldType) -> frozenset[FilterOperator]:
    if field_type is FieldType.STRING:
        return frozenset(FilterOperator)
    if field_type is FieldType.BOOL:
        return _EQUALITY
    return _ORDERING


def _parse_integer(field_type: FieldType, literal: str) -> int:
    value = int(literal.strip())
    low, high = INTEGER_BOUNDS[field_type]
    if not low <= value <= high:
        raise ValueError(f"{value} is outside [{low}, {high}]")
    return value


def _parse_bool(literal: str) -> bool:
    folded = literal.strip().lower()
    if folded not in ("true", "false"):
        raise ValueError("expected 'true' or 'false'")
    return folded == "true"


def _parse_decimal(literal: str) -> Decimal:
    value = Decimal(literal.strip())
    if not value.is_finite():
        raise ValueError("decimal must be finite")
    return value


def _parse_float(literal: str) -> float:
    value = float(literal.strip())
    if math.isnan(value):
        raise ValueError("NaN is not comparable")
    return value


def _parse_char(literal: str) -> str:
    if len(literal) != 1:
        raise ValueError("expected exactly one character")
    return literal


def parse_literal(field_type: FieldType, literal: str) -> Any:
    """Parse a wire literal into the field's Python type.

    Raises:
        ValueError: The literal is not a valid value of *field_type*.
    """
    if field_type is FieldType.STRING:
        return literal
    if field_type.is_integer:
        return _parse_integer(field_type, literal)
    if field_type is FieldType.BOOL:
        return _parse_bool(literal)
    if field_type is FieldType.DECIMAL:
        return _parse_decimal(literal)
    if field_type in (FieldType.FLOAT32, FieldType.FLOAT64):
        return _parse_float(literal)
    if field_type is FieldType.DATETIME:
        return datetime.fromisoformat(literal.strip())
    return _parse_char(literal)


def _comparable(field_type: FieldType, value: Any) -> Any:
    """Bring a stored field value into the same Python type as the parsed literal."""
    if field_type is FieldType.STRING or field_type is FieldType.CHAR:
        return value if isinstance(value, str) else str(value)
    if field_type is FieldType.DECIMAL:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    if field_type is FieldType.DATETIME:
        return as_datetime(value)
    if field_type is FieldType.BOOL:
        return bool(value)
    if field_type in (FieldType.FLOAT32, FieldType.FLOAT64):
        return float(value)
    return int(value)


class FieldComparator:
    """One validated ``<field> <operator> <literal>`` condition."""

    def __init__(self, accessor: FieldAccessor, condition: FilterProperty) -> None:
        if accessor.field_type is None:
            raise ConfigurationException(
                f"Field '{accessor.name}' has a type that cannot be filtered",
                code="FILTER_FIELD_UNSUPPORTED",
                context={"field": accessor.name},
            )
        self.accessor = accessor
        self.field_type: FieldType = accessor.field_type
        self.operator = condition.operator
        self.literal = condition.value
        self.case_sensitive = condition.case_sensitive

        if self.operator not in legal_operators(self.field_type):
            raise UnsupportedOperatorException(
                f"Operator {self.operator.value} is not supported for {self.field_type.value} field '{accessor.name}'",
                code="FILTER_OPERATOR_UNSUPPORTED",
                context={"field": accessor.name, "operator": self.operator.value, "type": self.field_type.value},
            )
        try:
            self.value = parse_literal(self.field_type, condition.value)
        except (ValueError, InvalidOperation) as exc:
            raise InvalidValueException(
                f"'{condition.value}' is not a valid {self.field_type.value} for field '{accessor.name}'",
                code="FILTER_VALUE_INVALID",
                context={"field": accessor.name, "value": condition.value, "type": self.field_type.value},
            ) from exc

    @property
    def folds_case(self) -> bool:
        return self.field_type is FieldType.STRING and not self.case_sensitive

    # ------------------------------------------------------------------
    # In-memory
    # ------------------------------------------------------------------

    def matches(self, record: Any) -> bool:
        stored = self.accessor.get(record)
        if stored is None:
            return False
        left = _comparable(self.field_type, stored)
        right = self.value
        if self.folds_case:
            left, right = left.lower(), right.lower()
        elif self.field_type is FieldType.DATETIME:
            left, right = align_datetimes(left, right)
        return _COMPARE[self.operator](left, right)

    def predicate(self) -> Callable[[Any], bool]:
        return self.matches

    # ------------------------------------------------------------------
    # SQLAlchemy expression
    # ------------------------------------------------------------------

    def clause(self, column: Any, dialect: SqlDialect) -> Any:
        """Build a SQLAlchemy boolean clause against *column*."""
        from sqlalchemy import func

        value = self.value
        if self.folds_case:
            column = func.lower(column)
            value = value.lower()
        elif self.field_type is FieldType.STRING and dialect.case_sensitive_collation:
            column = column.collate(dialect.case_sensitive_collation.strip('"'))

        if self.operator is FilterOperator.STARTS_WITH:
            return column.startswith(value, autoescape=True)
        if self.operator is FilterOperator.ENDS_WITH:
            return column.endswith(value, autoescape=True)
        if self.operator is FilterOperator.CONTAINS:
            return column.contains(value, autoescape=True)
        return _COMPARE[self.operator](column, value)

    # ------------------------------------------------------------------
    # Raw SQL
    # ------------------------------------------------------------------

    def sql(self, column_sql: str, param_name: str, dialect: SqlDialect) -> tuple[str, Any]:
        """Render ``(fragment, parameter value)`` for a ``:param_name`` placeholder."""
        param_sql = f":{param_name}"
        if self.field_type is FieldType.STRING:
            if self.case_sensitive:
                column_sql = dialect.collate(column_sql, True)
            elif dialect.case_insensitive_collation is not None:
                column_sql = dialect.collate(column_sql, False)
            else:
                column_sql, param_sql = dialect.fold(column_sql), dialect.fold(param_sql)

        if not self.operator.is_pattern:
            return f"{column_sql} {_SQL_OPERATORS[self.operator]} {param_sql}", self.value

        pattern = {
            FilterOperator.STARTS_WITH: f"{param_sql} {dialect.concat} '%'",
            FilterOperator.ENDS_WITH: f"'%' {dialect.concat} {param_sql}",
            FilterOperator.CONTAINS: f"'%' {dialect.concat} {param_sql} {dialect.concat} '%'",
        }[self.operator]
        return f"{column_sql} LIKE {pattern} ESCAPE '{LIKE_ESCAPE}'", dialect.escape_like(self.value)
