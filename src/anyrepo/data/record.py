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
"""Record descriptors: the field-accessor table for a record type.

A record is any caller-defined aggregate with named, typed fields and one
identity field. Dataclasses, pydantic models and SQLAlchemy mapped classes are
supported. The shape is introspected once per type and cached, so filters that
arrive over the wire resolve a field name to a typed accessor without
re-inspecting the class for every record.

Example::

    @dataclass
    class Customer:
        id: int = 0
        name: str = ""
        email: str = ""

    descriptor = RecordDescriptor.of(Customer)
    descriptor.field("Name").field_type   # FieldType.STRING
    descriptor.identity(Customer(id=5))   # 5
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import threading
import types
import typing
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar, get_args, get_origin, get_type_hints

from anyrepo.kernel.exceptions import ConfigurationException, ValidationException

T = TypeVar("T")


class FieldType(enum.Enum):
    """Primitive type tag of a record field."""

    STRING = "string"
    CHAR = "char"
    BYTE = "byte"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DECIMAL = "decimal"
    BOOL = "bool"
    DATETIME = "datetime"

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_BOUNDS

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self in (FieldType.FLOAT32, FieldType.FLOAT64, FieldType.DECIMAL)


INTEGER_BOUNDS: dict[FieldType, tuple[int, int]] = {
    FieldType.BYTE: (0, 2**8 - 1),
    FieldType.INT16: (-(2**15), 2**15 - 1),
    FieldType.INT32: (-(2**31), 2**31 - 1),
    FieldType.INT64: (-(2**63), 2**63 - 1),
    FieldType.UINT16: (0, 2**16 - 1),
    FieldType.UINT32: (0, 2**32 - 1),
    FieldType.UINT64: (0, 2**64 - 1),
}

_IDENTITY_TYPES = frozenset(
    {FieldType.INT16, FieldType.INT32, FieldType.INT64, FieldType.UINT16, FieldType.UINT32, FieldType.UINT64,
     FieldType.STRING}
)

_PYTHON_TYPES: list[tuple[type, FieldType]] = [
    # bool before int: bool is an int subclass
    (bool, FieldType.BOOL),
    (int, FieldType.INT64),
    (float, FieldType.FLOAT64),
    (Decimal, FieldType.DECIMAL),
    (datetime, FieldType.DATETIME),
    (date, FieldType.DATETIME),
    (str, FieldType.STRING),
]


@dataclass(frozen=True)
class FieldAccessor:
    """Typed accessor for one record field.

    Attributes:
        name: Attribute name on the record class.
        field_type: Primitive type tag, or ``None`` when the field's type
            cannot be compared (e.g. a relationship or a JSON blob).
        column: Storage column name (differs from ``name`` only for
            SQLAlchemy attributes mapped to a differently named column).
        nullable: Whether the field may hold ``None``.
        sa_type: SQLAlchemy column type, when the record is a mapped class.
    """

    name: str
    field_type: FieldType | None
    column: str
    nullable: bool = False
    sa_type: Any = dataclasses.field(default=None, compare=False, hash=False)

    def get(self, record: Any) -> Any:
        return getattr(record, self.name)

    def set(self, record: Any, value: Any) -> None:
        setattr(record, self.name, value)


class RecordDescriptor(Generic[T]):
    """Introspected shape of a record type: typed fields plus the identity field."""

    _cache: dict[tuple[type, str | None], RecordDescriptor[Any]] = {}
    _cache_lock = threading.Lock()

    def __init__(
        self,
        record_type: type[T],
        fields: list[FieldAccessor],
        id_field: str | None = None,
        identity_generated: bool = False,
        table_name: str | None = None,
    ) -> None:
        self.record_type = record_type
        self.table_name = table_name or record_type.__name__
        self._fields: dict[str, FieldAccessor] = {f.name: f for f in fields}
        self._folded: dict[str, list[FieldAccessor]] = {}
        for f in fields:
            self._folded.setdefault(f.name.lower(), []).append(f)
        self.identity_field = self._resolve_identity(id_field)
        if self.identity_field.field_type not in _IDENTITY_TYPES:
            raise ConfigurationException(
                f"Identity field '{self.identity_field.name}' on {record_type.__name__} must be an integer or string",
                code="IDENTITY_TYPE_UNSUPPORTED",
                context={"record_type": record_type.__name__, "field": self.identity_field.name},
            )
        self.identity_generated = identity_generated

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def of(cls, record_type: type[T], id_field: str | None = None) -> RecordDescriptor[T]:
        """Return the cached descriptor for *record_type*, building it on first use."""
        key = (record_type, id_field)
        cached = cls._cache.get(key)
        if cached is not None:
            return cached
        with cls._cache_lock:
            cached = cls._cache.get(key)
            if cached is None:
                cached = cls._build(record_type, id_field)
                cls._cache[key] = cached
        return cached

    @classmethod
    def _build(cls, record_type: type[T], id_field: str | None) -> RecordDescriptor[T]:
        mapper = _sqlalchemy_mapper(record_type)
        if mapper is not None:
            return cls._from_mapper(record_type, mapper, id_field)
        if dataclasses.is_dataclass(record_type):
            names = [f.name for f in dataclasses.fields(record_type)]
        elif hasattr(record_type, "model_fields"):
            names = list(record_type.model_fields)  # type: ignore[attr-defined]
        else:
            raise ConfigurationException(
                f"{record_type.__name__} is not a dataclass, pydantic model or SQLAlchemy mapped class",
                code="RECORD_TYPE_UNSUPPORTED",
                context={"record_type": record_type.__name__},
            )
        hints = get_type_hints(record_type, include_extras=True)
        fields = []
        for name in names:
            field_type, nullable = _field_type_from_annotation(hints.get(name))
            fields.append(FieldAccessor(name=name, field_type=field_type, column=name, nullable=nullable))
        return cls(record_type, fields, id_field=id_field)

    @classmethod
    def _from_mapper(cls, record_type: type[T], mapper: Any, id_field: str | None) -> RecordDescriptor[T]:
        fields: list[FieldAccessor] = []
        pk_name: str | None = None
        generated = False
        for prop in mapper.column_attrs:
            column = prop.columns[0]
            fields.append(
                FieldAccessor(
                    name=prop.key,
                    field_type=_field_type_from_column(column),
                    column=column.name,
                    nullable=bool(column.nullable),
                    sa_type=column.type,
                )
            )
            if column.primary_key and pk_name is None:
                pk_name = prop.key
                generated = (
                    len(mapper.primary_key) == 1
                    and fields[-1].field_type is not None
                    and fields[-1].field_type.is_integer
                    and column.autoincrement is not False
                    and not column.info.get("explicit_key", False)
                )
        descriptor = cls(
            record_type,
            fields,
            id_field=id_field or pk_name,
            table_name=mapper.local_table.name,
        )
        # a caller-chosen identity that is not the primary key is never generated by the database
        descriptor.identity_generated = generated and descriptor.identity_field.name == pk_name
        return descriptor

    def _resolve_identity(self, id_field: str | None) -> FieldAccessor:
        if id_field is not None:
            return self.field(id_field)
        if "id" in self._folded and len(self._folded["id"]) == 1:
            return self._folded["id"][0]
        raise ConfigurationException(
            f"{self.record_type.__name__} has no identity field; pass id_field explicitly",
            code="IDENTITY_FIELD_MISSING",
            context={"record_type": self.record_type.__name__},
        )

    # ------------------------------------------------------------------
    # Field lookup
    # ------------------------------------------------------------------

    @property
    def fields(self) -> list[FieldAccessor]:
        return list(self._fields.values())

    def field(self, name: str) -> FieldAccessor:
        """Resolve a wire field name to its accessor.

        Exact attribute names win; otherwise a unique case-insensitive match is
        accepted, so ``"Name"`` resolves the ``name`` attribute.

        Raises:
            ConfigurationException: No field (or more than one) matches *name*.
        """
        accessor = self._fields.get(name)
        if accessor is not None:
            return accessor
        candidates = self._folded.get(name.lower(), [])
        if len(candidates) == 1:
            return candidates[0]
        raise ConfigurationException(
            f"{self.record_type.__name__} has no field named '{name}'",
            code="FILTER_FIELD_UNKNOWN",
            context={"record_type": self.record_type.__name__, "field": name},
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def identity(self, record: T) -> Any:
        return self.identity_field.get(record)

    def set_identity(self, record: T, value: Any) -> None:
        self.identity_field.set(record, self.coerce_identity(value))

    @staticmethod
    def is_unset(value: Any) -> bool:
        """Identity values that mean "let the store assign one"."""
        if value is None or isinstance(value, bool):
            return value is None
        return value == 0 or value == ""

    def unset_identity(self) -> Any:
        """The "assign one for me" identity value for this record type."""
        return "" if self.identity_field.field_type is FieldType.STRING else 0

    def require_assignable_identity(self) -> None:
        """Raise unless the store may assign a key for this record type."""
        if self.identity_field.field_type is FieldType.STRING:
            raise ValidationException(
                "String identities must be supplied by the caller",
                code="IDENTITY_REQUIRED",
                context={"record_type": self.record_type.__name__},
            )

    def coerce_identity(self, value: Any) -> Any:
        """Convert *value* into the identity field's type (``"5"`` -> ``5``)."""
        if value is None:
            return None
        if self.identity_field.field_type is FieldType.STRING:
            return str(value)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationException(
                f"'{value}' is not a valid identity for {self.record_type.__name__}",
                code="IDENTITY_VALUE_INVALID",
                context={"record_type": self.record_type.__name__, "value": value},
            ) from exc

    def same_identity(self, left: Any, right: Any) -> bool:
        """Compare identities across representations (``5 == "5"``)."""
        if left is None or right is None:
            return False
        return str(left) == str(right)

    def copy_with_identity(self, record: T, value: Any) -> T:
        """Return a copy of *record* whose identity is *value*."""
        value = self.coerce_identity(value)
        name = self.identity_field.name
        if dataclasses.is_dataclass(record):
            return dataclasses.replace(record, **{name: value})  # type: ignore[type-var]
        if hasattr(record, "model_copy"):
            return record.model_copy(update={name: value})  # type: ignore[attr-defined,no-any-return]
        if _sqlalchemy_mapper(type(record)) is not None:
            values = {f.name: f.get(record) for f in self.fields}
            values[name] = value
            return self.build(values)
        clone = copy.copy(record)
        setattr(clone, name, value)
        return clone

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def build(self, values: dict[str, Any], partial: bool = False) -> T:
        """Construct a record from attribute values.

        With ``partial=True`` fields missing from *values* are set to ``None``
        (used for projected SELECTs that return only some columns).
        """
        if partial:
            values = {f.name: values.get(f.name) for f in self.fields}
        if hasattr(self.record_type, "model_construct") and partial:
            return self.record_type.model_construct(**values)  # type: ignore[attr-defined,no-any-return]
        return self.record_type(**values)

    def to_primitive(self, record: T, include: typing.Iterable[str] | None = None) -> dict[str, Any]:
        """Render *record* as a JSON-safe dict, optionally projected to *include*."""
        accessors = [self.field(n) for n in include] if include else self.fields
        return {a.name: to_primitive_value(a.field_type, a.get(record)) for a in accessors}

    def from_primitive(self, data: dict[str, Any], partial: bool = False) -> T:
        """Rebuild a record from a JSON-safe dict; keys match field names case-insensitively."""
        values: dict[str, Any] = {}
        for key, raw in data.items():
            try:
                accessor = self.field(key)
            except ConfigurationException:
                continue
            values[accessor.name] = from_primitive_value(accessor.field_type, raw)
        return self.build(values, partial=partial)


def to_primitive_value(field_type: FieldType | None, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def from_primitive_value(field_type: FieldType | None, value: Any) -> Any:
    if value is None or field_type is None:
        return value
    if field_type is FieldType.DATETIME:
        return as_datetime(value)
    if field_type is FieldType.BOOL:
        return value.strip().lower() == "true" if isinstance(value, str) else bool(value)
    if field_type is FieldType.DECIMAL:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    if field_type.is_integer:
        return int(value)
    if field_type in (FieldType.FLOAT32, FieldType.FLOAT64):
        return float(value)
    return value


def as_datetime(value: Any) -> datetime:
    """Normalize ``datetime``/``date``/ISO strings to ``datetime``."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def align_datetimes(left: datetime, right: datetime) -> tuple[datetime, datetime]:
    """Make two datetimes comparable; a naive value is taken to be UTC."""
    if (left.tzinfo is None) == (right.tzinfo is None):
        return left, right
    if left.tzinfo is None:
        return left.replace(tzinfo=UTC), right
    return left, right.replace(tzinfo=UTC)


def _field_type_from_annotation(annotation: Any) -> tuple[FieldType | None, bool]:
    if annotation is None:
        return None, True
    nullable = False
    if get_origin(annotation) is typing.Annotated:
        base, *extras = get_args(annotation)
        tagged = next((e for e in extras if isinstance(e, FieldType)), None)
        if tagged is not None:
            _, nullable = _field_type_from_annotation(base)
            return tagged, nullable
        annotation = base
    origin = get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        nullable = len(args) != len(get_args(annotation))
        if len(args) != 1:
            return None, nullable
        inner, _ = _field_type_from_annotation(args[0])
        return inner, nullable
    for python_type, field_type in _PYTHON_TYPES:
        if isinstance(annotation, type) and issubclass(annotation, python_type):
            return field_type, nullable
    return None, nullable


def _field_type_from_column(column: Any) -> FieldType | None:
    from sqlalchemy import types as sa

    override = column.info.get("field_type")
    if isinstance(override, FieldType):
        return override
    col_type = column.type
    if isinstance(col_type, sa.Boolean):
        return FieldType.BOOL
    if isinstance(col_type, sa.SmallInteger):
        return FieldType.INT16
    if isinstance(col_type, sa.BigInteger):
        return FieldType.INT64
    if isinstance(col_type, sa.Integer):
        return FieldType.INT32
    if isinstance(col_type, sa.Float):
        precision = getattr(col_type, "precision", None)
        return FieldType.FLOAT32 if precision is not None and precision <= 24 else FieldType.FLOAT64
    if isinstance(col_type, sa.Numeric):
        return FieldType.DECIMAL
    if isinstance(col_type, sa.DateTime | sa.Date):
        return FieldType.DATETIME
    if isinstance(col_type, sa.String):
        return FieldType.CHAR if getattr(col_type, "length", None) == 1 else FieldType.STRING
    return None


def _sqlalchemy_mapper(record_type: type) -> Any:
    try:
        from sqlalchemy import inspect
        from sqlalchemy.exc import NoInspectionAvailable
    except ImportError:  # pragma: no cover - sqlalchemy is a core dependency
        return None
    try:
        return inspect(record_type)
    except NoInspectionAvailable:
        return None
