"""Semantic checks that no file-level schema can express.

A log passes when:
- every event and object has a non-empty id, and events a non-empty
  activity and objects a non-empty type
- every attribute occurrence is declared in its namespace with the kind
  of the value it holds (object attributes: every history entry)
- every object reference points at an object of the same log
"""

from __future__ import annotations

from ocelconv.errors import ValidationError
from ocelconv.integrity.references import check_references
from ocelconv.models.ocel import AttributeScope, OcelLog
from ocelconv.models.values import OcelValue, ValueKind, kind_of


def _check_attribute(
    owner: str,
    name: str,
    value: OcelValue,
    declarations: dict[str, ValueKind],
    scope: AttributeScope,
) -> str | None:
    declared = declarations.get(name)
    kind = kind_of(value)
    if declared is None:
        return f"{owner}: {scope.value} attribute '{name}' is not declared"
    if declared != kind:
        return f"{owner}: attribute '{name}' holds {kind.value} but is declared {declared.value}"
    return None


def find_violations(log: OcelLog) -> list[str]:
    """Return every semantic violation in the log (empty if valid)."""
    violations: list[str] = []

    for event_id, event in log.events.items():
        owner = f"event '{event_id}'"
        if not event_id:
            violations.append("event with empty id")
        if not event.activity:
            violations.append(f"{owner}: empty activity")
        for name, value in event.attributes.items():
            problem = _check_attribute(
                owner, name, value, log.event_attribute_declarations, AttributeScope.EVENT
            )
            if problem:
                violations.append(problem)

    for object_id, obj in log.objects.items():
        owner = f"object '{object_id}'"
        if not object_id:
            violations.append("object with empty id")
        if not obj.type:
            violations.append(f"{owner}: empty type")
        for name, entries in obj.attributes.items():
            if name not in log.object_attribute_declarations:
                violations.append(f"{owner}: object attribute '{name}' is not declared")
                continue
            for position, entry in enumerate(entries):
                problem = _check_attribute(
                    f"{owner} history entry {position}",
                    name,
                    entry.value,
                    log.object_attribute_declarations,
                    AttributeScope.OBJECT,
                )
                if problem:
                    violations.append(problem)

    for event_id, object_id in sorted(check_references(log)):
        violations.append(f"event '{event_id}': references unknown object '{object_id}'")

    return violations


def validate_log(log: OcelLog) -> None:
    """Raise ValidationError listing every violation, if there are any."""
    violations = find_violations(log)
    if violations:
        raise ValidationError(violations)
