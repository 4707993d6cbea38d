"""Typed attribute values shared by events, objects, and the log itself.

An OcelValue is a closed union of seven kinds. Scalars carry a Python
primitive; lists and maps nest further values. Every codec matches on the
concrete classes below, so adding a kind means adding a case everywhere.

Timestamps are always timezone-aware and kept at millisecond precision.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union, assert_never

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictStr, field_validator

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    """Tag of an OcelValue, also used in attribute declarations."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    LIST = "list"
    MAP = "map"


def normalize_timestamp(value: datetime) -> datetime:
    """Make a datetime timezone-aware (UTC if naive) and drop sub-millisecond digits."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class _Value(BaseModel):
    # non-finite floats are written as Infinity / NaN literals, not null
    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")


class StringValue(_Value):
    kind: Literal["string"] = "string"
    value: StrictStr


class IntegerValue(_Value):
    kind: Literal["integer"] = "integer"
    value: int = Field(strict=True, ge=INT64_MIN, le=INT64_MAX)


class FloatValue(_Value):
    kind: Literal["float"] = "float"
    value: StrictFloat


class BooleanValue(_Value):
    kind: Literal["boolean"] = "boolean"
    value: StrictBool


class TimestampValue(_Value):
    kind: Literal["timestamp"] = "timestamp"
    value: datetime

    @field_validator("value")
    @classmethod
    def _millisecond_precision(cls, v: datetime) -> datetime:
        return normalize_timestamp(v)


class ListValue(_Value):
    kind: Literal["list"] = "list"
    value: tuple[OcelValue, ...] = ()


class MapValue(_Value):
    kind: Literal["map"] = "map"
    value: dict[str, OcelValue] = Field(default_factory=dict)


OcelValue = Annotated[
    Union[
        StringValue,
        IntegerValue,
        FloatValue,
        BooleanValue,
        TimestampValue,
        ListValue,
        MapValue,
    ],
    Field(discriminator="kind"),
]

ListValue.model_rebuild()
MapValue.model_rebuild()


def kind_of(value: OcelValue) -> ValueKind:
    """Return the tag of a value."""
    return ValueKind(value.kind)


def value_of(obj: Any) -> OcelValue:
    """Build an OcelValue from a plain Python value.

    bool is checked before int because bool is an int subclass.
    """
    if isinstance(obj, bool):
        return BooleanValue(value=obj)
    if isinstance(obj, int):
        return IntegerValue(value=obj)
    if isinstance(obj, float):
        return FloatValue(value=obj)
    if isinstance(obj, str):
        return StringValue(value=obj)
    if isinstance(obj, datetime):
        return TimestampValue(value=obj)
    if isinstance(obj, (list, tuple)):
        return ListValue(value=tuple(value_of(item) for item in obj))
    if isinstance(obj, dict):
        return MapValue(value={str(k): value_of(v) for k, v in obj.items()})
    raise TypeError(f"Cannot convert {type(obj).__name__} to an OCEL value")


def to_python(value: OcelValue) -> Any:
    """Unwrap an OcelValue into plain Python objects (lists and dicts for nested kinds)."""
    match value:
        case StringValue() | IntegerValue() | FloatValue() | BooleanValue() | TimestampValue():
            return value.value
        case ListValue():
            return [to_python(item) for item in value.value]
        case MapValue():
            return {key: to_python(item) for key, item in value.value.items()}
        case _:
            assert_never(value)


def format_timestamp(value: datetime) -> str:
    """ISO 8601 with millisecond precision and an explicit offset."""
    return normalize_timestamp(value).isoformat(timespec="milliseconds")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO 8601 timestamp; raises ValueError on malformed text."""
    return normalize_timestamp(datetime.fromisoformat(text.strip()))


def format_scalar(value: OcelValue) -> str:
    """Render a scalar value as the literal text used in element-based formats."""
    match value:
        case StringValue():
            return value.value
        case IntegerValue():
            return str(value.value)
        case FloatValue():
            return repr(value.value)
        case BooleanValue():
            return "true" if value.value else "false"
        case TimestampValue():
            return format_timestamp(value.value)
        case ListValue() | MapValue():
            raise ValueError(f"{value.kind} values have no literal text form")
        case _:
            assert_never(value)


def parse_scalar(kind: ValueKind, text: str) -> OcelValue:
    """Parse literal text as a value of the given scalar kind.

    Raises ValueError if the text is not a valid literal of that kind.
    """
    match kind:
        case ValueKind.STRING:
            return StringValue(value=text)
        case ValueKind.INTEGER:
            return IntegerValue(value=int(text.strip()))
        case ValueKind.FLOAT:
            return FloatValue(value=float(text.strip()))
        case ValueKind.BOOLEAN:
            literal = text.strip().lower()
            if literal not in ("true", "false"):
                raise ValueError(f"Invalid boolean literal {text!r}")
            return BooleanValue(value=literal == "true")
        case ValueKind.TIMESTAMP:
            return TimestampValue(value=parse_timestamp(text))
        case ValueKind.LIST | ValueKind.MAP:
            raise ValueError(f"{kind.value} values have no literal text form")
        case _:
            assert_never(kind)
