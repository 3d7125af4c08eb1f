"""JSON schemas for user-editable documents."""

from __future__ import annotations

import json
from functools import cache
from importlib import resources
from typing import Any

import jsonschema

from ..exceptions import BmadKitError


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    """Load a bundled ``<schema_name>.schema.json``."""
    resource = resources.files(__name__) / f"{schema_name}.schema.json"
    try:
        return json.loads(resource.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        msg = f"Failed to load schema {schema_name}: {e}"
        raise BmadKitError(msg) from e


def validate_against_schema(
    data: Any,
    schema_name: str,
    error_cls: type[BmadKitError],
) -> None:
    """Validate parsed YAML data, raising ``error_cls`` on violation."""
    schema = load_schema(schema_name)

    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as e:
        msg = f"Schema validation failed: {e.message}"
        raise error_cls(
            msg,
            details={"path": list(e.absolute_path), "schema": schema_name},
        ) from e
