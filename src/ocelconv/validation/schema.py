"""Structural checks of JSON-dialect documents against the vendored schema.

Only the JSON dialect has a file-level schema. Semantic rules that need the
decoded log (declared kinds, dangling references) live in semantic.py.
"""

from __future__ import annotations

import json
from functools import cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import ValidationError as SchemaError

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "ocel-json.schema.json"


@cache
def _validator() -> jsonschema.Draft7Validator:
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        schema = json.load(f)
    jsonschema.Draft7Validator.check_schema(schema)
    return jsonschema.Draft7Validator(schema)


def _describe(error: SchemaError) -> str:
    path = ".".join(str(p) for p in error.absolute_path)
    return f"{path}: {error.message}" if path else error.message


def validate_ocel_dict(data: Any) -> list[str]:
    """Check a decoded JSON document against the schema.

    Returns one "path: message" string per error, ordered by path, or an
    empty list when the document is valid.
    """
    errors = sorted(_validator().iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    return [_describe(error) for error in errors]


def validate_ocel_file(path: Path) -> list[str]:
    """Check a .jsonocel file. A file that is not JSON at all yields a single error."""
    try:
        data = json.loads(path.read_bytes())
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        return [f"not a JSON document: {exc}"]
    return validate_ocel_dict(data)
