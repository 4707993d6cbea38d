"""OCEL JSON dialect.

Layout of a document:

    {
      "ocel:global-log": {name: typed value},
      "ocel:event-attributes": {name: kind},
      "ocel:object-attributes": {name: kind},
      "ocel:events": {id: {"ocel:activity", "ocel:timestamp", "ocel:omap", "ocel:vmap"}},
      "ocel:objects": {id: {"ocel:type", "ocel:ovmap": {name: [entry, ...]}}}
    }

JSON cannot tell integers, floats, timestamps and strings apart reliably,
so every value is written as {"type": kind, "value": ...}. Object history
entries add a "time" key (null when the assignment has no timestamp).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, assert_never

from ocelconv.codecs.base import BaseCodec, EncodeOptions, OcelFormat
from ocelconv.errors import DecodeError, EncodeError, ValidationError
from ocelconv.models.ocel import ObjectAttributeEntry, OcelEvent, OcelLog, OcelObject
from ocelconv.models.values import (
    BooleanValue,
    FloatValue,
    IntegerValue,
    ListValue,
    MapValue,
    OcelValue,
    StringValue,
    TimestampValue,
    ValueKind,
    format_timestamp,
    parse_timestamp,
)
from ocelconv.validation.schema import validate_ocel_dict
from ocelconv.validation.semantic import find_violations

logger = logging.getLogger(__name__)

GLOBAL_LOG = "ocel:global-log"
EVENT_ATTRIBUTES = "ocel:event-attributes"
OBJECT_ATTRIBUTES = "ocel:object-attributes"
EVENTS = "ocel:events"
OBJECTS = "ocel:objects"


def value_to_json(value: OcelValue) -> dict[str, Any]:
    """Convert a value to its tagged JSON form."""
    match value:
        case StringValue() | IntegerValue() | FloatValue() | BooleanValue():
            return {"type": value.kind, "value": value.value}
        case TimestampValue():
            return {"type": value.kind, "value": format_timestamp(value.value)}
        case ListValue():
            return {"type": value.kind, "value": [value_to_json(item) for item in value.value]}
        case MapValue():
            return {
                "type": value.kind,
                "value": {key: value_to_json(item) for key, item in value.value.items()},
            }
        case _:
            assert_never(value)


def value_from_json(data: Any) -> OcelValue:
    """Convert a tagged JSON value back into an OcelValue."""
    if not isinstance(data, dict) or "type" not in data or "value" not in data:
        raise DecodeError(f"Expected a typed value object, got {data!r}")
    try:
        kind = ValueKind(data["type"])
    except ValueError:
        raise DecodeError(f"Unknown value type '{data['type']}'") from None
    raw = data["value"]

    try:
        match kind:
            case ValueKind.STRING:
                return StringValue(value=raw)
            case ValueKind.INTEGER:
                return IntegerValue(value=raw)
            case ValueKind.FLOAT:
                # JSON writers may drop the fraction of whole floats
                if isinstance(raw, int) and not isinstance(raw, bool):
                    raw = float(raw)
                return FloatValue(value=raw)
            case ValueKind.BOOLEAN:
                return BooleanValue(value=raw)
            case ValueKind.TIMESTAMP:
                if not isinstance(raw, str):
                    raise DecodeError(f"Timestamp value must be a string, got {raw!r}")
                return TimestampValue(value=parse_timestamp(raw))
            case ValueKind.LIST:
                if not isinstance(raw, list):
                    raise DecodeError(f"List value must be an array, got {raw!r}")
                return ListValue(value=tuple(value_from_json(item) for item in raw))
            case ValueKind.MAP:
                if not isinstance(raw, dict):
                    raise DecodeError(f"Map value must be an object, got {raw!r}")
                return MapValue(value={key: value_from_json(item) for key, item in raw.items()})
            case _:
                assert_never(kind)
    except (ValueError, OverflowError) as exc:
        raise DecodeError(f"Invalid {kind.value} value: {exc}") from exc


def _section(data: dict[str, Any], key: str, where: str) -> dict[str, Any]:
    """Fetch an optional JSON object member, defaulting to {}."""
    section = data.get(key, {})
    if not isinstance(section, dict):
        raise DecodeError(f"{where}: '{key}' must be an object")
    return section


def _timestamp(raw: Any, where: str) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise DecodeError(f"{where}: timestamp must be a string, got {raw!r}")
    try:
        return parse_timestamp(raw)
    except ValueError as exc:
        raise DecodeError(f"{where}: invalid timestamp {raw!r}") from exc


def _declarations(raw: dict[str, Any], where: str) -> dict[str, ValueKind]:
    try:
        return {name: ValueKind(kind) for name, kind in raw.items()}
    except ValueError as exc:
        raise DecodeError(f"{where}: {exc}") from exc


def _event_from_json(event_id: str, raw: Any) -> OcelEvent:
    where = f"event '{event_id}'"
    if not isinstance(raw, dict):
        raise DecodeError(f"{where}: must be an object")
    if "ocel:activity" not in raw or "ocel:timestamp" not in raw:
        raise DecodeError(f"{where}: missing activity or timestamp")
    omap = raw.get("ocel:omap", [])
    if not isinstance(omap, list):
        raise DecodeError(f"{where}: 'ocel:omap' must be an array")
    vmap = _section(raw, "ocel:vmap", where)
    try:
        return OcelEvent(
            id=event_id,
            activity=raw["ocel:activity"],
            timestamp=_timestamp(raw["ocel:timestamp"], where),
            attributes={name: value_from_json(value) for name, value in vmap.items()},
            object_refs=frozenset(omap),
        )
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{where}: {exc}") from exc


def _object_from_json(object_id: str, raw: Any) -> OcelObject:
    where = f"object '{object_id}'"
    if not isinstance(raw, dict):
        raise DecodeError(f"{where}: must be an object")
    if "ocel:type" not in raw:
        raise DecodeError(f"{where}: missing type")
    attributes: dict[str, tuple[ObjectAttributeEntry, ...]] = {}
    for name, entries in _section(raw, "ocel:ovmap", where).items():
        if not isinstance(entries, list):
            raise DecodeError(f"{where}: history of '{name}' must be an array")
        history = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise DecodeError(f"{where}: history entry of '{name}' must be an object")
            history.append(ObjectAttributeEntry(
                value=value_from_json(entry),
                time=_timestamp(entry.get("time"), where),
            ))
        attributes[name] = tuple(history)
    try:
        return OcelObject(id=object_id, type=raw["ocel:type"], attributes=attributes)
    except ValueError as exc:
        raise DecodeError(f"{where}: {exc}") from exc


def log_to_dict(log: OcelLog) -> dict[str, Any]:
    """Convert an OcelLog to a dict in the OCEL JSON layout."""
    return {
        GLOBAL_LOG: {name: value_to_json(v) for name, v in log.global_attributes.items()},
        EVENT_ATTRIBUTES: {name: k.value for name, k in log.event_attribute_declarations.items()},
        OBJECT_ATTRIBUTES: {name: k.value for name, k in log.object_attribute_declarations.items()},
        EVENTS: {
            event_id: {
                "ocel:activity": event.activity,
                "ocel:timestamp": format_timestamp(event.timestamp),
                "ocel:omap": sorted(event.object_refs),
                "ocel:vmap": {name: value_to_json(v) for name, v in event.attributes.items()},
            }
            for event_id, event in log.events.items()
        },
        OBJECTS: {
            object_id: {
                "ocel:type": obj.type,
                "ocel:ovmap": {
                    name: [
                        {
                            **value_to_json(entry.value),
                            "time": format_timestamp(entry.time) if entry.time is not None else None,
                        }
                        for entry in entries
                    ]
                    for name, entries in obj.attributes.items()
                },
            }
            for object_id, obj in log.objects.items()
        },
    }


def log_from_dict(data: dict[str, Any]) -> OcelLog:
    """Build an OcelLog from a dict in the OCEL JSON layout."""
    if not isinstance(data, dict):
        raise DecodeError("Top-level JSON value must be an object")
    events = [_event_from_json(eid, raw) for eid, raw in _section(data, EVENTS, "log").items()]
    objects = [_object_from_json(oid, raw) for oid, raw in _section(data, OBJECTS, "log").items()]
    global_attributes = {
        name: value_from_json(raw) for name, raw in _section(data, GLOBAL_LOG, "log").items()
    }
    return OcelLog.from_items(
        events,
        objects,
        event_attribute_declarations=_declarations(_section(data, EVENT_ATTRIBUTES, "log"), "log"),
        object_attribute_declarations=_declarations(_section(data, OBJECT_ATTRIBUTES, "log"), "log"),
        global_attributes=global_attributes,
    )


class JsonCodec(BaseCodec):
    """Reads and writes the OCEL JSON dialect (.jsonocel)."""

    @property
    def format(self) -> OcelFormat:
        return OcelFormat.JSON

    @property
    def extensions(self) -> tuple[str, ...]:
        return (".jsonocel",)

    def decode(self, data: bytes, *, validate: bool = False) -> OcelLog:
        try:
            document = json.loads(data)
        except ValueError as exc:
            raise DecodeError(f"Malformed JSON: {exc}") from exc

        if validate:
            errors = validate_ocel_dict(document)
            if errors:
                raise ValidationError(errors)

        log = log_from_dict(document)
        if validate:
            violations = find_violations(log)
            if violations:
                raise ValidationError(violations)
        logger.debug("Decoded JSON log: %d events, %d objects", len(log.events), len(log.objects))
        return log

    def encode(self, log: OcelLog, options: EncodeOptions | None = None) -> bytes:
        options = options or EncodeOptions()
        document = log_to_dict(log)

        if options.validate:
            violations = find_violations(log) + validate_ocel_dict(document)
            if violations:
                raise ValidationError(violations)

        try:
            if options.pretty:
                text = json.dumps(document, indent=2, ensure_ascii=False)
            else:
                text = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
            return text.encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"Cannot serialize log to JSON: {exc}") from exc
