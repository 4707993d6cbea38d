"""Object-centric event log models.

A log holds four things:
- events: timestamped activity occurrences referencing objects by id
- objects: typed entities whose attributes keep their full value history
- attribute declarations: one table per namespace (event / object)
- global attributes: log-level metadata such as version or ordering

Every model is frozen. Operations that change a log (repair, merge) return a
new OcelLog that shares the untouched events and objects with its input.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ocelconv.models.values import OcelValue, ValueKind, kind_of, normalize_timestamp


class AttributeScope(str, Enum):
    """Namespace an attribute name lives in."""

    EVENT = "event"
    OBJECT = "object"


class OcelEvent(BaseModel):
    """A single event: an activity at a point in time, touching zero or more objects."""

    model_config = ConfigDict(frozen=True)

    id: str
    activity: str
    timestamp: datetime
    attributes: dict[str, OcelValue] = Field(default_factory=dict)
    object_refs: frozenset[str] = frozenset()

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, v: datetime) -> datetime:
        return normalize_timestamp(v)

    def same_content(self, other: OcelEvent) -> bool:
        """True if activity, timestamp and attributes match (object refs are ignored)."""
        return (
            self.activity == other.activity
            and self.timestamp == other.timestamp
            and self.attributes == other.attributes
        )


class ObjectAttributeEntry(BaseModel):
    """One assignment in an object attribute's history."""

    model_config = ConfigDict(frozen=True)

    value: OcelValue
    time: datetime | None = None

    @field_validator("time")
    @classmethod
    def _normalize_time(cls, v: datetime | None) -> datetime | None:
        return normalize_timestamp(v) if v is not None else None


class OcelObject(BaseModel):
    """A typed entity. Attribute histories are kept in assignment order."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    attributes: dict[str, tuple[ObjectAttributeEntry, ...]] = Field(default_factory=dict)

    def history(self, name: str) -> tuple[ObjectAttributeEntry, ...]:
        return self.attributes.get(name, ())


class OcelLog(BaseModel):
    """Top-level object-centric event log container."""

    model_config = ConfigDict(frozen=True)

    events: dict[str, OcelEvent] = Field(default_factory=dict)
    objects: dict[str, OcelObject] = Field(default_factory=dict)
    event_attribute_declarations: dict[str, ValueKind] = Field(default_factory=dict)
    object_attribute_declarations: dict[str, ValueKind] = Field(default_factory=dict)
    global_attributes: dict[str, OcelValue] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _keys_match_ids(self) -> OcelLog:
        for key, event in self.events.items():
            if key != event.id:
                raise ValueError(f"Event stored under '{key}' has id '{event.id}'")
        for key, obj in self.objects.items():
            if key != obj.id:
                raise ValueError(f"Object stored under '{key}' has id '{obj.id}'")
        return self

    @classmethod
    def empty(cls) -> OcelLog:
        return cls()

    @classmethod
    def from_items(
        cls,
        events: Iterable[OcelEvent] = (),
        objects: Iterable[OcelObject] = (),
        **fields: Any,
    ) -> OcelLog:
        """Build a log from event and object sequences, keying them by id.

        Raises ValueError on a repeated event or object id.
        """
        event_map: dict[str, OcelEvent] = {}
        for event in events:
            if event.id in event_map:
                raise ValueError(f"Duplicate event id '{event.id}'")
            event_map[event.id] = event
        object_map: dict[str, OcelObject] = {}
        for obj in objects:
            if obj.id in object_map:
                raise ValueError(f"Duplicate object id '{obj.id}'")
            object_map[obj.id] = obj
        return cls(events=event_map, objects=object_map, **fields)

    def declarations(self, scope: AttributeScope) -> dict[str, ValueKind]:
        if scope is AttributeScope.EVENT:
            return self.event_attribute_declarations
        return self.object_attribute_declarations

    @property
    def activities(self) -> list[str]:
        return sorted({e.activity for e in self.events.values()})

    @property
    def object_types(self) -> list[str]:
        return sorted({o.type for o in self.objects.values()})

    @property
    def attribute_names(self) -> list[str]:
        """All attribute names used by events and objects."""
        names: set[str] = set()
        for event in self.events.values():
            names.update(event.attributes)
        for obj in self.objects.values():
            names.update(obj.attributes)
        return sorted(names)

    def with_inferred_declarations(self) -> OcelLog:
        """Return a log whose declaration tables cover every attribute in use.

        Existing declarations are kept as-is; missing ones are inferred from
        the first occurrence of each attribute name.
        """
        inferred_events, inferred_objects = infer_declarations(self)
        event_decls = {**inferred_events, **self.event_attribute_declarations}
        object_decls = {**inferred_objects, **self.object_attribute_declarations}
        if (
            event_decls == self.event_attribute_declarations
            and object_decls == self.object_attribute_declarations
        ):
            return self
        return self.model_copy(update={
            "event_attribute_declarations": event_decls,
            "object_attribute_declarations": object_decls,
        })


def infer_declarations(log: OcelLog) -> tuple[dict[str, ValueKind], dict[str, ValueKind]]:
    """Infer (event, object) declaration tables from attribute occurrences.

    The first occurrence of a name decides its kind.
    """
    event_decls: dict[str, ValueKind] = {}
    for event in log.events.values():
        for name, value in event.attributes.items():
            event_decls.setdefault(name, kind_of(value))
    object_decls: dict[str, ValueKind] = {}
    for obj in log.objects.values():
        for name, entries in obj.attributes.items():
            if entries:
                object_decls.setdefault(name, kind_of(entries[0].value))
    return event_decls, object_decls
