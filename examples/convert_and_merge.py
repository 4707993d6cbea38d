#!/usr/bin/env python3
"""Basic example: build, convert and merge OCEL logs programmatically.

This script uses the ocelconv API directly (without the CLI) to build two
small logs, merge them, repair dangling references, and write the result
in every supported format.
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

from ocelconv.codecs.base import EncodeOptions, OcelFormat
from ocelconv.files import file_extension, read_log, write_log
from ocelconv.integrity.references import check_references, remove_unknown_object_references
from ocelconv.merging.engine import merge_with_report
from ocelconv.models.ocel import ObjectAttributeEntry, OcelEvent, OcelLog, OcelObject
from ocelconv.models.values import value_of
from ocelconv.validation.semantic import find_violations

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def order_log() -> OcelLog:
    order = OcelObject(
        id="o1",
        type="order",
        attributes={"status": (ObjectAttributeEntry(value=value_of("open"), time=T0),)},
    )
    place = OcelEvent(
        id="e1",
        activity="place order",
        timestamp=T0,
        attributes={"items": value_of(["book", "pen"])},
        object_refs=frozenset({"o1"}),
    )
    return OcelLog.from_items([place], [order]).with_inferred_declarations()


def shipping_log() -> OcelLog:
    order = OcelObject(
        id="o1",
        type="order",
        attributes={
            "status": (ObjectAttributeEntry(value=value_of("shipped"), time=T0 + timedelta(days=1)),),
        },
    )
    ship = OcelEvent(
        id="e2",
        activity="ship order",
        timestamp=T0 + timedelta(days=1),
        attributes={"carrier": value_of("DHL")},
        # p1 is never defined in this log
        object_refs=frozenset({"o1", "p1"}),
    )
    return OcelLog.from_items([ship], [order]).with_inferred_declarations()


def main() -> None:
    report = merge_with_report([order_log(), shipping_log()])
    merged = report.log

    print(f"Input logs:      {report.inputs}")
    print(f"Events:          {len(merged.events)}")
    print(f"Objects:         {len(merged.objects)}")
    print(f"Overrides:       {len(report.overrides)}")
    print(f"Dangling refs:   {sorted(check_references(merged))}")
    print(f"Status history:  {[e.value.value for e in merged.objects['o1'].history('status')]}")

    repaired = remove_unknown_object_references(merged)
    violations = find_violations(repaired)
    print(f"\nSemantic validation: {'PASS' if not violations else 'FAIL'}")
    for violation in violations:
        print(f"  - {violation}")

    output_dir = Path("output")
    for fmt in OcelFormat:
        path = output_dir / f"merged{file_extension(fmt)}"
        write_log(repaired, path, fmt, EncodeOptions(pretty=True, validate=True))
        assert read_log(path) == repaired
        print(f"Wrote {path}")


if __name__ == "__main__":
    main()
