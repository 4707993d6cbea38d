"""Merge several logs into one.

Logs are folded left to right, starting from an empty log, in the order the
caller gives them. For every step, with accumulated log A and next log B:

- Events are unioned by id. When both contain an id with different
  activity, timestamp or attributes, B's event wins (a MergeOverride is
  recorded) and the object references of both are unioned.
- Objects are unioned by id. Shared objects get their attribute histories
  concatenated (A then B) with consecutive duplicate entries collapsed. A
  differing object type is a fatal conflict.
- Declaration tables are unioned per namespace. A differing kind for the
  same name is a fatal conflict.
- Global attributes from B override those from A.

Fatal conflicts abort the whole merge; no partial log is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ocelconv.errors import Conflict, MergeConflict
from ocelconv.models.ocel import (
    AttributeScope,
    ObjectAttributeEntry,
    OcelEvent,
    OcelLog,
    OcelObject,
)
from ocelconv.models.values import OcelValue, ValueKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeOverride:
    """Non-fatal event collision resolved in favour of the later log."""

    event_id: str
    fields: tuple[str, ...]
    source_index: int  # position of the winning log in the input sequence


@dataclass
class MergeReport:
    """Result of a merge, with the overrides that were applied."""

    log: OcelLog
    overrides: list[MergeOverride] = field(default_factory=list)
    inputs: int = 0


def _collapse(entries: tuple[ObjectAttributeEntry, ...]) -> tuple[ObjectAttributeEntry, ...]:
    """Drop entries equal to the one right before them."""
    result: list[ObjectAttributeEntry] = []
    for entry in entries:
        if result and result[-1] == entry:
            continue
        result.append(entry)
    return tuple(result)


def _differing_fields(a: OcelEvent, b: OcelEvent) -> tuple[str, ...]:
    names = ("activity", "timestamp", "attributes")
    return tuple(name for name in names if getattr(a, name) != getattr(b, name))


class _Accumulator:
    """Mutable fold state; turned into an OcelLog once all inputs are absorbed."""

    def __init__(self) -> None:
        self.events: dict[str, OcelEvent] = {}
        self.objects: dict[str, OcelObject] = {}
        self.declarations: dict[AttributeScope, dict[str, ValueKind]] = {
            AttributeScope.EVENT: {},
            AttributeScope.OBJECT: {},
        }
        self.global_attributes: dict[str, OcelValue] = {}
        self.overrides: list[MergeOverride] = []

    def conflicts_with(self, log: OcelLog) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for object_id, obj in log.objects.items():
            existing = self.objects.get(object_id)
            if existing is not None and existing.type != obj.type:
                conflicts.append(Conflict(
                    kind="object_type",
                    key=object_id,
                    detail=f"type '{existing.type}' vs '{obj.type}'",
                ))
        for scope in AttributeScope:
            known = self.declarations[scope]
            for name, kind in log.declarations(scope).items():
                if name in known and known[name] != kind:
                    conflicts.append(Conflict(
                        kind="declaration",
                        key=name,
                        detail=f"{scope.value} attribute declared "
                        f"'{known[name].value}' vs '{kind.value}'",
                    ))
        return conflicts

    def absorb(self, log: OcelLog, index: int) -> None:
        conflicts = self.conflicts_with(log)
        if conflicts:
            raise MergeConflict(conflicts)

        for event_id, event in log.events.items():
            self._absorb_event(event_id, event, index)
        for object_id, obj in log.objects.items():
            existing = self.objects.get(object_id)
            self.objects[object_id] = obj if existing is None else self._merge_object(existing, obj)
        for scope in AttributeScope:
            self.declarations[scope].update(log.declarations(scope))
        self.global_attributes.update(log.global_attributes)

    def _absorb_event(self, event_id: str, event: OcelEvent, index: int) -> None:
        existing = self.events.get(event_id)
        if existing is None:
            self.events[event_id] = event
            return

        refs = existing.object_refs | event.object_refs
        if existing.same_content(event):
            if refs != existing.object_refs:
                self.events[event_id] = existing.model_copy(update={"object_refs": refs})
            return

        override = MergeOverride(
            event_id=event_id,
            fields=_differing_fields(existing, event),
            source_index=index,
        )
        logger.debug("Event '%s' overridden by input %d (%s)", event_id, index, ", ".join(override.fields))
        self.overrides.append(override)
        self.events[event_id] = event if refs == event.object_refs else event.model_copy(
            update={"object_refs": refs}
        )

    @staticmethod
    def _merge_object(a: OcelObject, b: OcelObject) -> OcelObject:
        attributes = dict(a.attributes)
        for name, entries in b.attributes.items():
            current = attributes.get(name)
            attributes[name] = entries if current is None else _collapse(current + entries)
        return a.model_copy(update={"attributes": attributes})

    def build(self) -> OcelLog:
        return OcelLog(
            events=self.events,
            objects=self.objects,
            event_attribute_declarations=self.declarations[AttributeScope.EVENT],
            object_attribute_declarations=self.declarations[AttributeScope.OBJECT],
            global_attributes=self.global_attributes,
        )


def merge_with_report(logs: Sequence[OcelLog]) -> MergeReport:
    """Merge logs in the given order and report the event overrides applied.

    Raises:
        MergeConflict: if an object type or a declared attribute kind differs
            between inputs. Every conflict of the failing step is reported.
    """
    acc = _Accumulator()
    for index, log in enumerate(logs):
        acc.absorb(log, index)

    merged = acc.build()
    logger.info(
        "Merged %d log(s): %d events, %d objects, %d override(s)",
        len(logs), len(merged.events), len(merged.objects), len(acc.overrides),
    )
    return MergeReport(log=merged, overrides=acc.overrides, inputs=len(logs))


def merge(logs: Sequence[OcelLog]) -> OcelLog:
    """Merge logs in the given order into a single new log."""
    return merge_with_report(logs).log
