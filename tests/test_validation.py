"""Tests for JSON schema validation and semantic log checks."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from ocelconv.codecs.json_codec import log_to_dict
from ocelconv.errors import ValidationError
from ocelconv.models.ocel import ObjectAttributeEntry, OcelEvent, OcelLog, OcelObject
from ocelconv.models.values import ValueKind, value_of
from ocelconv.validation.schema import SCHEMA_PATH, validate_ocel_dict, validate_ocel_file
from ocelconv.validation.semantic import find_violations, validate_log

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


class TestSchema:
    def test_schema_file_is_vendored(self) -> None:
        assert SCHEMA_PATH.is_file()
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        assert schema["$schema"].startswith("http://json-schema.org/draft-07")

    def test_sample_log_is_valid(self, sample_log: OcelLog) -> None:
        assert validate_ocel_dict(log_to_dict(sample_log)) == []

    def test_random_logs_are_valid(self, random_log_factory) -> None:  # type: ignore[no-untyped-def]
        for seed in range(5):
            errors = validate_ocel_dict(log_to_dict(random_log_factory(seed)))
            assert errors == [], f"seed {seed}: {errors}"

    def test_empty_log_is_valid(self) -> None:
        assert validate_ocel_dict(log_to_dict(OcelLog())) == []

    def test_missing_events(self) -> None:
        errors = validate_ocel_dict({"ocel:objects": {}})
        assert len(errors) == 1
        assert "ocel:events" in errors[0]

    def test_unknown_top_level_key(self) -> None:
        errors = validate_ocel_dict({"ocel:events": {}, "ocel:objects": {}, "ocel:extra": 1})
        assert errors

    def test_value_does_not_match_its_type(self, sample_log: OcelLog) -> None:
        data = log_to_dict(sample_log)
        data["ocel:events"]["e1"]["ocel:vmap"]["quantity"] = {"type": "integer", "value": "two"}
        errors = validate_ocel_dict(data)
        assert errors
        assert any("ocel:events.e1.ocel:vmap.quantity" in e for e in errors)

    def test_unknown_declared_kind(self) -> None:
        data = {
            "ocel:event-attributes": {"amount": "decimal"},
            "ocel:events": {},
            "ocel:objects": {},
        }
        assert validate_ocel_dict(data)

    def test_errors_are_all_reported(self, sample_log: OcelLog) -> None:
        data = log_to_dict(sample_log)
        del data["ocel:events"]["e1"]["ocel:activity"]
        del data["ocel:objects"]["o1"]["ocel:type"]
        assert len(validate_ocel_dict(data)) == 2

    def test_validate_file(self, tmp_path: Path, sample_log: OcelLog) -> None:
        path = tmp_path / "log.jsonocel"
        path.write_text(json.dumps(log_to_dict(sample_log)), encoding="utf-8")
        assert validate_ocel_file(path) == []

    def test_validate_file_that_is_not_json(self, tmp_path: Path) -> None:
        path = tmp_path / "log.jsonocel"
        path.write_bytes(b"<log/>")
        errors = validate_ocel_file(path)
        assert len(errors) == 1
        assert errors[0].startswith("not a JSON document")


class TestSemantic:
    def test_sample_log_is_valid(self, sample_log: OcelLog) -> None:
        assert find_violations(sample_log) == []
        validate_log(sample_log)

    def test_undeclared_event_attribute(self) -> None:
        event = OcelEvent(id="e1", activity="a", timestamp=T0, attributes={"n": value_of(1)})
        log = OcelLog.from_items([event])
        assert find_violations(log) == ["event 'e1': event attribute 'n' is not declared"]

    def test_kind_mismatch(self) -> None:
        event = OcelEvent(id="e1", activity="a", timestamp=T0, attributes={"n": value_of(1)})
        log = OcelLog.from_items([event], event_attribute_declarations={"n": ValueKind.FLOAT})
        assert find_violations(log) == ["event 'e1': attribute 'n' holds integer but is declared float"]

    def test_every_bad_history_entry_is_reported(self) -> None:
        obj = OcelObject(
            id="o1",
            type="order",
            attributes={
                "n": (
                    ObjectAttributeEntry(value=value_of("x")),
                    ObjectAttributeEntry(value=value_of(3)),
                    ObjectAttributeEntry(value=value_of(True)),
                ),
                "extra": (
                    ObjectAttributeEntry(value=value_of(1)),
                    ObjectAttributeEntry(value=value_of(2)),
                ),
            },
        )
        log = OcelLog.from_items([], [obj], object_attribute_declarations={"n": ValueKind.INTEGER})
        assert find_violations(log) == [
            "object 'o1' history entry 0: attribute 'n' holds string but is declared integer",
            "object 'o1' history entry 2: attribute 'n' holds boolean but is declared integer",
            "object 'o1': object attribute 'extra' is not declared",
        ]

    def test_event_and_object_namespaces_are_separate(self) -> None:
        event = OcelEvent(id="e1", activity="a", timestamp=T0, attributes={"n": value_of(1)})
        log = OcelLog.from_items([event], object_attribute_declarations={"n": ValueKind.INTEGER})
        assert find_violations(log) == ["event 'e1': event attribute 'n' is not declared"]

    def test_empty_activity_and_type(self) -> None:
        log = OcelLog.from_items(
            [OcelEvent(id="e1", activity="", timestamp=T0)],
            [OcelObject(id="o1", type="")],
        )
        assert find_violations(log) == ["event 'e1': empty activity", "object 'o1': empty type"]

    def test_dangling_reference(self) -> None:
        event = OcelEvent(id="e1", activity="a", timestamp=T0, object_refs=frozenset({"o9"}))
        log = OcelLog.from_items([event])
        assert find_violations(log) == ["event 'e1': references unknown object 'o9'"]

    def test_validate_log_collects_every_violation(self) -> None:
        event = OcelEvent(
            id="e1",
            activity="",
            timestamp=T0,
            attributes={"n": value_of(1)},
            object_refs=frozenset({"o9"}),
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_log(OcelLog.from_items([event]))
        assert len(exc_info.value.violations) == 3
        assert "3 validation error(s)" in str(exc_info.value)

    def test_inferred_declarations_make_log_valid(self, random_log_factory) -> None:  # type: ignore[no-untyped-def]
        log = random_log_factory(11)
        stripped = log.model_copy(update={
            "event_attribute_declarations": {},
            "object_attribute_declarations": {},
        })
        assert find_violations(stripped)
        assert find_violations(stripped.with_inferred_declarations()) == []
