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
"""SQL dialect traits used when rendering filters as raw SQL text."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

LIKE_ESCAPE = "/"


def _double_quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _bracket_quote(name: str) -> str:
    return "[" + name.replace("]", "]]") + "]"


@dataclass(frozen=True)
class SqlDialect:
    """What differs between SQL Server, SQLite and PostgreSQL for our statements.

    Attributes:
        name: SQLAlchemy dialect name (``mssql``, ``sqlite``, ``postgresql``).
        concat: String concatenation operator.
        case_sensitive_collation: Collation forcing a case-sensitive compare.
        case_insensitive_collation: Collation forcing a case-insensitive
            compare, or ``None`` when the dialect lowers both operands instead.
        returning: ``"output"`` (``OUTPUT INSERTED.col``), ``"returning"``
            (``RETURNING col``) or ``None``.
        truncate: Statement template emptying a table.
        quote: Identifier quoting function.
    """

    name: str
    concat: str = "||"
    case_sensitive_collation: str | None = None
    case_insensitive_collation: str | None = None
    returning: str | None = "returning"
    truncate: str = "TRUNCATE TABLE {table}"
    quote: Callable[[str], str] = field(default=_double_quote, compare=False, repr=False)
    like_specials: str = "%_"

    @classmethod
    def for_name(cls, name: str, quote: Callable[[str], str] | None = None) -> SqlDialect:
        if name == "mssql":
            return cls(
                name=name,
                concat="+",
                case_sensitive_collation="Latin1_General_CS_AS",
                case_insensitive_collation="Latin1_General_CI_AS",
                returning="output",
                quote=quote or _bracket_quote,
                like_specials="%_[",
            )
        if name == "sqlite":
            return cls(
                name=name,
                case_sensitive_collation="BINARY",
                case_insensitive_collation="NOCASE",
                truncate="DELETE FROM {table}",
                quote=quote or _double_quote,
            )
        if name == "postgresql":
            return cls(name=name, case_sensitive_collation='"C"', quote=quote or _double_quote)
        return cls(name=name, returning=None, truncate="DELETE FROM {table}", quote=quote or _double_quote)

    @classmethod
    def from_engine(cls, engine: Any) -> SqlDialect:
        """Derive traits from a SQLAlchemy (async) engine."""
        dialect = engine.dialect
        return cls.for_name(dialect.name, quote=dialect.identifier_preparer.quote)

    def collate(self, column_sql: str, case_sensitive: bool) -> str:
        collation = self.case_sensitive_collation if case_sensitive else self.case_insensitive_collation
        return f"{column_sql} COLLATE {collation}" if collation else column_sql

    def fold(self, sql: str) -> str:
        """Lower-case an operand when the dialect has no case-insensitive collation."""
        return f"LOWER({sql})" if self.case_insensitive_collation is None else sql

    def escape_like(self, value: str) -> str:
        escaped = value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        for special in self.like_specials:
            escaped = escaped.replace(special, LIKE_ESCAPE + special)
        return escaped
