"""Reference consistency between events and objects.

An event may reference an object id that is not present in the same log
(a dangling reference). Dangling references are reported by
check_references and can be stripped with remove_unknown_object_references.
Neither function fails or mutates its input.
"""

from __future__ import annotations

import logging

from ocelconv.models.ocel import OcelEvent, OcelLog

logger = logging.getLogger(__name__)


def check_references(log: OcelLog) -> set[tuple[str, str]]:
    """Return every (event id, object id) pair whose object is missing from the log."""
    known = log.objects.keys()
    return {
        (event.id, object_id)
        for event in log.events.values()
        for object_id in event.object_refs
        if object_id not in known
    }


def remove_unknown_object_references(log: OcelLog) -> OcelLog:
    """Return a copy of the log with dangling object references removed.

    Events and objects are never deleted. Events without dangling references
    are shared with the input log, and a log with nothing to remove is
    returned unchanged.
    """
    known = frozenset(log.objects)
    removed = 0
    events: dict[str, OcelEvent] = {}
    for event_id, event in log.events.items():
        if event.object_refs <= known:
            events[event_id] = event
            continue
        kept = event.object_refs & known
        removed += len(event.object_refs) - len(kept)
        events[event_id] = event.model_copy(update={"object_refs": kept})

    if not removed:
        return log

    logger.info("Removed %d unknown object reference(s)", removed)
    return log.model_copy(update={"events": events})
