"""Tool argument validation and result rendering."""

import json
import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Any

import jsonschema
from jsonschema.exceptions import SchemaError
from pydantic import JsonValue

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_arguments(schema: dict[str, Any] | None, arguments: dict[str, JsonValue]) -> ValidationResult:
    """Check tool arguments against the tool's input schema.

    A missing or malformed schema places no constraints on the arguments.

    Args:
        schema: JSON schema from the tool catalog
        arguments: Arguments produced by the model

    Returns:
        ValidationResult listing every violation found
    """
    if not schema:
        return ValidationResult(True)

    validator_cls = jsonschema.validators.validator_for(schema)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as e:
        logger.warning(f"Ignoring invalid tool schema: {e.message}")
        return ValidationResult(True)

    validator = validator_cls(schema)
    errors = []
    for error in validator.iter_errors(arguments):
        location = "/".join(str(part) for part in error.absolute_path)
        errors.append(f"{location}: {error.message}" if location else error.message)
    errors.sort()

    if errors:
        return ValidationResult(False, [f"Schema validation failed: {msg}" for msg in errors])
    return ValidationResult(True)


def render_tool_output(content: JsonValue) -> str:
    """Render a tool payload as text for the model.

    Text content blocks are joined by newlines; any other block or payload
    is rendered as JSON.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str):
                parts.append(block["text"])
            else:
                parts.append(json.dumps(block, ensure_ascii=False))
        return "\n".join(parts)
    return json.dumps(content, ensure_ascii=False)
